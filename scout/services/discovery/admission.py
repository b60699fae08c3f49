"""Admission controller.

Decides what happens to a scored candidate:
1. Rejected when vetoed or below the minimum relevance score
2. Duplicate-skipped when an active job already holds the URL
3. Admitted otherwise, as a pending job with a priority

Admitted jobs at or above the auto-collect threshold are handed to the
worker pool right away, unless the pool is backed up (normal jobs wait) or
auto-collection is switched off. Jobs below auto-collect wait for an
operator to promote them.
"""

from pydantic import BaseModel, ConfigDict

from scout.config import RelevanceSettings
from scout.core.logging import get_logger
from scout.models.job import CollectionJob, JobPriority
from scout.services.discovery.base import (
    AdmissionOutcome,
    CandidateEvent,
    RelevanceVerdict,
    detect_source_type,
    job_priority_for,
)
from scout.services.enrichment.worker_pool import EnrichmentWorkerPool
from scout.services.stores.job_store import JobStore
from scout.services.stores.pattern_store import PatternStore

logger = get_logger(__name__)


class AdmissionResult(BaseModel):
    """Outcome of one admission decision.

    Attributes:
        outcome: rejected, admitted or duplicate_skipped
        job: Created job (admitted) or the existing active job (duplicate)
        dispatched: Whether the job was handed to the worker pool
        reason: Why the candidate was rejected or not dispatched
    """

    model_config = ConfigDict(frozen=True)

    outcome: AdmissionOutcome
    job: CollectionJob | None = None
    dispatched: bool = False
    reason: str | None = None


class AdmissionController:
    """Turns verdicts into collection jobs.

    Attributes:
        job_store: Job store (owns the one-active-job-per-URL rule)
        pattern_store: Source of the current thresholds
        pool: Worker pool receiving auto-dispatched jobs (optional)
    """

    def __init__(
        self,
        job_store: JobStore,
        pattern_store: PatternStore,
        pool: EnrichmentWorkerPool | None = None,
    ):
        """Initialize admission controller.

        Args:
            job_store: Job store
            pattern_store: Pattern and threshold store
            pool: Worker pool (jobs stay pending if not provided)
        """
        self.job_store = job_store
        self.pattern_store = pattern_store
        self.pool = pool

    def admit(
        self,
        event: CandidateEvent,
        verdict: RelevanceVerdict,
        thresholds: RelevanceSettings | None = None,
        pattern_auto_collect: bool = True,
    ) -> AdmissionResult:
        """Admit or reject a scored candidate.

        Args:
            event: Candidate event
            verdict: Verdict computed for the event
            thresholds: Threshold snapshot the verdict was computed with
            pattern_auto_collect: Whether the verdict's pattern allows auto-collection

        Returns:
            AdmissionResult
        """
        thresholds = thresholds or self.pattern_store.thresholds()

        if verdict.vetoed or verdict.score < thresholds.minimum_relevance_score:
            reason = "vetoed" if verdict.vetoed else "below minimum relevance score"
            logger.info(
                "Candidate rejected",
                source_url=event.source_url,
                score=round(verdict.score, 2),
                reason=reason,
            )
            return AdmissionResult(outcome=AdmissionOutcome.REJECTED, reason=reason)

        priority = job_priority_for(
            verdict.score, thresholds.auto_collect_threshold, thresholds.priority_threshold
        )
        auto_dispatch = (
            priority != JobPriority.REVIEW
            and thresholds.auto_collect_enabled
            and pattern_auto_collect
        )
        candidate = CollectionJob(
            source_url=event.source_url,
            source_type=detect_source_type(event.source_url),
            origin=event.origin,
            priority=priority,
            score=verdict.score,
            pattern_id=verdict.pattern_id,
            metadata=event.metadata.model_dump(),
            auto_dispatch=auto_dispatch,
        )

        job, created = self.job_store.create_if_absent(candidate)
        if not created:
            logger.info(
                "Duplicate candidate skipped",
                source_url=event.source_url,
                existing_job_id=job.id,
                status=job.status.value,
            )
            return AdmissionResult(
                outcome=AdmissionOutcome.DUPLICATE_SKIPPED,
                job=job,
                reason="active job exists",
            )

        reason = None
        dispatched = False
        if not auto_dispatch:
            reason = "awaiting promotion"
        else:
            dispatched, reason = self.try_dispatch(job)

        logger.info(
            "Candidate admitted",
            job_id=job.id,
            source_url=job.source_url,
            score=round(verdict.score, 2),
            priority=priority.value,
            dispatched=dispatched,
        )
        if dispatched:
            job = self.job_store.get(job.id)
        return AdmissionResult(
            outcome=AdmissionOutcome.ADMITTED,
            job=job,
            dispatched=dispatched,
            reason=reason,
        )

    def try_dispatch(self, job: CollectionJob) -> tuple[bool, str | None]:
        """Hand a pending job to the pool if capacity allows.

        Args:
            job: Pending auto-dispatch job

        Returns:
            (dispatched, reason): reason explains a deferral
        """
        if self.pool is None:
            return False, "no worker pool"
        if not self.pool.has_capacity(job.priority):
            logger.info(
                "Dispatch deferred (backpressure)",
                job_id=job.id,
                priority=job.priority.value,
                queue_depth=self.pool.queue_depth,
            )
            return False, "backpressure"
        self.pool.dispatch(job)
        return True, None


__all__ = ["AdmissionController", "AdmissionResult"]
