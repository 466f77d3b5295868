"""Job match service (read-only; matches are written by the matching worker)."""

from typing import Callable, List, Optional

from jobfinder_sync.apis.Db import Unsubscribe
from jobfinder_sync.documents.DocumentStore import DocumentStore
from jobfinder_sync.documents.SubscriptionCache import SubscriptionCache
from jobfinder_sync.models.filter_types import JobMatchFilters
from jobfinder_sync.models.firestore_types import JOB_MATCHES, JobMatchDoc
from jobfinder_sync.models.query_types import QueryConstraints, SortDirection
from jobfinder_sync.models.util_types import ApplicationPriority, JobMatchStats
from jobfinder_sync.util.identity import IdentityProvider


def matches_search(match: JobMatchDoc, search: Optional[str]) -> bool:
    if not search:
        return True
    parts = [match.jobTitle, match.companyName, match.location, match.jobDescription]
    parts.extend(match.matchedSkills)
    parts.extend(match.missingSkills)
    return search.lower() in " ".join(part for part in parts if part).lower()


class JobMatchService:
    """Service for the current user's job matches."""

    def __init__(self, store: DocumentStore, identity: IdentityProvider, cache: Optional[SubscriptionCache] = None):
        self.store = store
        self.identity = identity
        self.cache = cache or SubscriptionCache(store)

    def _build_constraints(
        self,
        user_id: str,
        filters: JobMatchFilters,
        order_field: str = "matchScore",
        direction: SortDirection = "desc",
    ) -> QueryConstraints:
        constraints = QueryConstraints()
        constraints.add_where("submittedBy", "==", user_id)

        if filters.min_score is not None:
            constraints.add_where("matchScore", ">=", filters.min_score)
        if filters.max_score is not None:
            constraints.add_where("matchScore", "<=", filters.max_score)
        if filters.company_name:
            constraints.add_where("companyName", "==", filters.company_name)
        if filters.application_priority:
            constraints.add_where("applicationPriority", "in", list(filters.application_priority))

        constraints.add_order_by(order_field, direction)
        if filters.limit:
            constraints.limit = filters.limit
        return constraints

    async def get_matches(self, filters: Optional[JobMatchFilters] = None) -> List[JobMatchDoc]:
        """Matches ordered by score, highest first."""
        filters = filters or JobMatchFilters()
        user_id = self.identity.require_user_id()
        matches = await self.store.list(JOB_MATCHES, self._build_constraints(user_id, filters))
        return [match for match in matches if matches_search(match, filters.search)]

    async def get_match(self, match_id: str) -> Optional[JobMatchDoc]:
        return await self.store.get_owned(JOB_MATCHES, match_id, self.identity.require_user_id())

    async def get_match_stats(self, filters: Optional[JobMatchFilters] = None) -> JobMatchStats:
        matches = await self.get_matches(filters)
        stats = JobMatchStats(total=len(matches))
        for match in matches:
            if match.applicationPriority == ApplicationPriority.HIGH.value:
                stats.highPriority += 1
            elif match.applicationPriority == ApplicationPriority.MEDIUM.value:
                stats.mediumPriority += 1
            elif match.applicationPriority == ApplicationPriority.LOW.value:
                stats.lowPriority += 1
        if matches:
            stats.averageScore = sum(match.matchScore for match in matches) / len(matches)
        return stats

    async def get_top_matches(self, count: int = 10) -> List[JobMatchDoc]:
        return await self.get_matches(JobMatchFilters(limit=count))

    async def get_high_priority_matches(self) -> List[JobMatchDoc]:
        return await self.get_matches(JobMatchFilters(application_priority=[ApplicationPriority.HIGH]))

    async def get_matches_by_company(self, company_name: str) -> List[JobMatchDoc]:
        return await self.get_matches(JobMatchFilters(company_name=company_name))

    def subscribe_to_matches(
        self,
        filters: Optional[JobMatchFilters],
        on_data: Callable[[List[JobMatchDoc]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Unsubscribe:
        """Live matches, newest first."""
        filters = filters or JobMatchFilters()
        constraints = self._build_constraints(
            self.identity.require_user_id(), filters, order_field="createdAt", direction="desc"
        )

        def deliver(matches: List[JobMatchDoc]) -> None:
            on_data([match for match in matches if matches_search(match, filters.search)])

        return self.cache.subscribe_to_collection(JOB_MATCHES, constraints, deliver, on_error)
