"""Backing store connections."""

from .Db import Db, StoredDocument, BatchOperation, Unsubscribe
from .FirestoreDb import FirestoreDb, create_db, build_query
