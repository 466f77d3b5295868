from .DocumentStore import DocumentStore, Subscription
from .SubscriptionCache import SubscriptionCache, CacheEntry
