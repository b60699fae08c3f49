"""Collection job record.

This module defines the CollectionJob record and its enums. Status changes
go through the job state machine in scout.core.state_machine; the job
store is the only writer.
"""

import enum
from datetime import datetime
from typing import Any

from pydantic import Field

from scout.models.base import RecordModel


class JobStatus(str, enum.Enum):
    """Collection job lifecycle status."""

    PENDING = "pending"  # Admitted, waiting for a worker
    PROCESSING = "processing"  # Claimed by a worker
    COMPLETED = "completed"  # Terminal
    FAILED = "failed"  # Terminal unless retried

    @property
    def is_active(self) -> bool:
        """Non-terminal statuses hold the URL's dedup slot."""
        return self in (JobStatus.PENDING, JobStatus.PROCESSING)


class JobPriority(str, enum.Enum):
    """Dispatch priority assigned at admission."""

    HIGH = "high"  # Score at or above the priority threshold
    NORMAL = "normal"  # Score at or above the auto-collect threshold
    REVIEW = "review"  # Admitted below auto-collect, waits for promotion


class EventOrigin(str, enum.Enum):
    """Adapter that produced a candidate."""

    SCAN = "scan"
    WEBHOOK = "webhook"
    MANUAL = "manual"


class SourceType(str, enum.Enum):
    """Kind of source, detected from the URL."""

    GITHUB = "github"
    DOCUMENTATION = "documentation"
    WEBSITE = "website"


class CollectionJob(RecordModel):
    """Unit of enrichment work for one source URL.

    Attributes:
        source_url: Normalized URL (dedup key)
        source_type: Detected kind of source
        origin: Adapter that produced the candidate
        status: Lifecycle status
        priority: Dispatch priority
        progress: Advisory progress (0-100, never decreases within a run)
        score: Relevance score at admission
        pattern_id: Pattern the score was computed against
        metadata: Candidate metadata at admission
        insights: Extracted insights (set on completion)
        failure_reason: Why the job failed
        retry_count: Manual retries performed
        auto_dispatch: Whether the job may be handed to workers without promotion
        dispatched: Whether the job is currently queued in the pool
        history: Statuses the job has passed through, in order
        started_at: When the current run was claimed
        completed_at: When the job reached a terminal status
    """

    source_url: str = Field(..., min_length=1)
    source_type: SourceType = Field(default=SourceType.WEBSITE)
    origin: EventOrigin = Field(default=EventOrigin.SCAN)
    status: JobStatus = Field(default=JobStatus.PENDING)
    priority: JobPriority = Field(default=JobPriority.NORMAL)
    progress: int = Field(default=0, ge=0, le=100)
    score: float = Field(default=0.0, ge=0, le=100)
    pattern_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    insights: list[str] = Field(default_factory=list)
    failure_reason: str | None = None
    retry_count: int = Field(default=0, ge=0)
    auto_dispatch: bool = Field(default=True)
    dispatched: bool = Field(default=False)
    history: list[JobStatus] = Field(default_factory=lambda: [JobStatus.PENDING])
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Whether the job holds the dedup slot for its URL."""
        return self.status.is_active


__all__ = ["JobStatus", "JobPriority", "EventOrigin", "SourceType", "CollectionJob"]
