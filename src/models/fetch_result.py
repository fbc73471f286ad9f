"""Result of synchronizing a remote source into a local checkout"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class FetchOutcome(str, Enum):
    """Why a sync ended the way it did"""

    CHECKED_OUT = "checked_out"
    # None of the requested subtrees exists on the branch
    SPARSE_ABSENT = "sparse_absent"
    # Refresh mode forbids network access and nothing is checked out yet
    NOT_CACHED = "not_cached"


class FetchResult(BaseModel):
    """Outcome of one synchronization attempt"""

    success: bool = Field(description="Whether the checkout is usable")
    reason: FetchOutcome = Field(description="Outcome of the attempt")
    newly_initialized: bool = Field(
        default=False, description="Whether the cache entry was created by this attempt"
    )
    modified_at: datetime | None = Field(
        default=None, description="Commit time of the latest commit on the branch"
    )

    @classmethod
    def checked_out(cls, modified_at: datetime, newly_initialized: bool) -> "FetchResult":
        return cls(
            success=True,
            reason=FetchOutcome.CHECKED_OUT,
            newly_initialized=newly_initialized,
            modified_at=modified_at,
        )

    @classmethod
    def failed(cls, reason: FetchOutcome, newly_initialized: bool = False) -> "FetchResult":
        return cls(success=False, reason=reason, newly_initialized=newly_initialized)
