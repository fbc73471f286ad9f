"""Decide how a cache entry is brought up to date for a refresh mode"""

from dataclasses import dataclass

from src.models.site_config import RefreshMode


@dataclass(frozen=True)
class SyncPlan:
    """Steps the checkout engine runs for one source"""

    # Fetch before the first checkout attempt
    fetch_first: bool
    # Hard-reset the working tree before checking out
    discard_local_changes: bool
    # Fetch and retry once when a checkout from cached refs fails
    fetch_on_failure: bool

    @property
    def network_allowed(self) -> bool:
        return self.fetch_first or self.fetch_on_failure


class SyncPolicy:
    """Map a refresh mode and cache entry state to a SyncPlan"""

    def __init__(self, mode: RefreshMode):
        self.mode = RefreshMode(mode)

    def plan(self, has_cached_refs: bool) -> SyncPlan:
        """
        Plan the sync of one cache entry

        Args:
            has_cached_refs: Whether the entry already holds the remote branch ref

        Returns:
            SyncPlan for the configured mode
        """
        if self.mode is RefreshMode.ALWAYS:
            return SyncPlan(fetch_first=True, discard_local_changes=True, fetch_on_failure=False)

        if self.mode is RefreshMode.LAST_RESORT:
            # Nothing cached means the local attempt cannot succeed
            return SyncPlan(
                fetch_first=not has_cached_refs,
                discard_local_changes=False,
                fetch_on_failure=has_cached_refs,
            )

        return SyncPlan(fetch_first=False, discard_local_changes=False, fetch_on_failure=False)
