"""Enrichment worker pool configuration models."""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from scout.config.validators import validate_non_decreasing
from scout.core.config_loader import load_section


class ProgressSteps(BaseModel):
    """Advisory progress values reported while a job is processed.

    Attributes:
        claimed: Reported right after a worker claims the job
        analyzing: Reported before the analysis step starts
        analyzed: Reported after the analysis step returns
        insights_extracted: Reported after insights are cleaned up
    """

    claimed: int = Field(default=10, ge=0, le=99)
    analyzing: int = Field(default=25, ge=0, le=99)
    analyzed: int = Field(default=75, ge=0, le=99)
    insights_extracted: int = Field(default=90, ge=0, le=99)

    @model_validator(mode="after")
    def check_monotonic(self) -> "ProgressSteps":
        """Progress steps must not go backwards."""
        validate_non_decreasing(list(self.model_dump().items()))
        return self


class WorkerPoolConfig(BaseModel):
    """Configuration for the enrichment worker pool.

    Attributes:
        worker_count: Number of concurrent workers
        max_queue_depth: Queue depth at which normal jobs stop being dispatched
        job_timeout_seconds: Hard deadline for one analysis step
        promotion_interval: Consecutive high-lane items served before a normal one
        max_insights: Insights kept per job
        max_retries: Manual retries allowed per job
        progress: Progress values reported during processing
    """

    worker_count: int = Field(default=4, ge=1, le=32)
    max_queue_depth: int = Field(default=100, ge=1)
    job_timeout_seconds: float = Field(default=120.0, gt=0)
    promotion_interval: int = Field(default=4, ge=1)
    max_insights: int = Field(default=10, ge=1)
    max_retries: int = Field(default=1, ge=0)
    progress: ProgressSteps = Field(default_factory=ProgressSteps)

    @classmethod
    def from_defaults(cls, **overrides: Any) -> "WorkerPoolConfig":
        """Build from the enrichment section of defaults.yaml.

        Args:
            **overrides: Values taking precedence (usually from process settings)

        Returns:
            WorkerPoolConfig instance
        """
        return cls.model_validate({**load_section("enrichment"), **overrides})


__all__ = ["ProgressSteps", "WorkerPoolConfig"]
