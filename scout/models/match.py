"""Pattern match history record."""

import enum
from datetime import datetime

from pydantic import Field

from scout.models.base import RecordModel, utcnow


class MatchDecision(str, enum.Enum):
    """What happened to a scored candidate."""

    ADMITTED = "admitted"
    REJECTED = "rejected"
    DUPLICATE_SKIPPED = "duplicate_skipped"


class MatchRecord(RecordModel):
    """One scored candidate in the recent match feed.

    Attributes:
        source_url: Normalized URL
        pattern_id: Pattern the verdict was computed against (None for the default)
        score: Final score
        matched_criteria: Criteria that contributed to the score
        decision: Admission outcome
        job_id: Job created or found for the URL, if any
        observed_at: When the candidate was observed
    """

    source_url: str
    pattern_id: str | None = None
    score: float = Field(default=0.0, ge=0, le=100)
    matched_criteria: list[str] = Field(default_factory=list)
    decision: MatchDecision
    job_id: str | None = None
    observed_at: datetime = Field(default_factory=utcnow)


__all__ = ["MatchDecision", "MatchRecord"]
