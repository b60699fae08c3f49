"""Discovery pipeline facade.

Wires the relevance scorer, admission controller, stores and worker pool
into the operations the event sources and the API use:

- submit: score and admit a candidate event
- evaluate: score a URL without creating a job
- retry / promote: operator actions on jobs
- dispatch_deferred: re-offer jobs held back by backpressure
- list_jobs / get_job / recent_matches / stats: read access
"""

import threading
from collections import deque
from typing import Any

from scout.config import MatchHistoryConfig, RelevanceSettings
from scout.core.exceptions import RecordNotFoundError
from scout.core.logging import get_logger
from scout.models.job import CollectionJob, EventOrigin, JobPriority, JobStatus
from scout.models.match import MatchDecision, MatchRecord
from scout.models.pattern import DiscoveryPattern
from scout.services.discovery.admission import AdmissionController, AdmissionResult
from scout.services.discovery.base import (
    AdmissionOutcome,
    CandidateEvent,
    CandidateMetadata,
    RelevanceVerdict,
)
from scout.services.discovery.scorer import RelevanceScorer
from scout.services.enrichment.worker_pool import EnrichmentWorkerPool
from scout.services.stores.job_store import JobStore
from scout.services.stores.model_registry import ModelRegistry
from scout.services.stores.pattern_store import PatternStore

logger = get_logger(__name__)

_DECISIONS = {
    AdmissionOutcome.ADMITTED: MatchDecision.ADMITTED,
    AdmissionOutcome.REJECTED: MatchDecision.REJECTED,
    AdmissionOutcome.DUPLICATE_SKIPPED: MatchDecision.DUPLICATE_SKIPPED,
}


class DiscoveryPipeline:
    """Facade over scoring, admission and job operations.

    Attributes:
        pattern_store: Patterns and thresholds
        model_registry: Scoring models
        job_store: Collection jobs
        scorer: Relevance scorer
        admission: Admission controller
        pool: Enrichment worker pool (optional)
    """

    def __init__(
        self,
        pattern_store: PatternStore,
        model_registry: ModelRegistry,
        job_store: JobStore,
        scorer: RelevanceScorer,
        admission: AdmissionController,
        pool: EnrichmentWorkerPool | None = None,
        match_history: MatchHistoryConfig | None = None,
    ):
        """Initialize pipeline.

        Args:
            pattern_store: Pattern and threshold store
            model_registry: Scoring model registry
            job_store: Job store
            scorer: Relevance scorer
            admission: Admission controller
            pool: Worker pool; its finished-job hook is set to dispatch_deferred
            match_history: Match feed settings (uses defaults if not provided)
        """
        self.pattern_store = pattern_store
        self.model_registry = model_registry
        self.job_store = job_store
        self.scorer = scorer
        self.admission = admission
        self.pool = pool
        history = match_history or MatchHistoryConfig()
        self._matches: deque[MatchRecord] = deque(maxlen=history.size)
        self._matches_lock = threading.Lock()
        if pool is not None and pool.on_job_finished is None:
            pool.on_job_finished = self._on_job_finished

    # =========================================================================
    # Intake
    # =========================================================================

    async def submit(self, event: CandidateEvent) -> AdmissionResult:
        """Score and admit a candidate event.

        Args:
            event: Candidate from a scan, webhook or operator

        Returns:
            AdmissionResult
        """
        verdict, pattern, thresholds = self._score(event)
        if pattern is not None and verdict.score >= pattern.relevance_threshold:
            self.pattern_store.record_match(pattern.id, event.observed_at)

        auto_collect = (pattern or self.scorer.default_pattern).auto_collect
        result = self.admission.admit(
            event,
            verdict,
            thresholds=thresholds,
            pattern_auto_collect=auto_collect,
        )

        self._record(event, verdict, _DECISIONS[result.outcome], result.job)
        return result

    async def evaluate(
        self,
        url: str,
        metadata: CandidateMetadata | None = None,
        pattern_id: str | None = None,
    ) -> RelevanceVerdict:
        """Score a URL without admitting it.

        Args:
            url: Source URL (normalized here)
            metadata: Candidate metadata
            pattern_id: Pattern to score against (best active pattern if None)

        Returns:
            RelevanceVerdict

        Raises:
            ValueError: If the URL cannot be normalized
        """
        event = CandidateEvent(
            source_url=url,
            origin=EventOrigin.MANUAL,
            metadata=metadata or CandidateMetadata(),
            pattern_id=pattern_id,
        )
        verdict, _, _ = self._score(event)
        return verdict

    # =========================================================================
    # Operator actions
    # =========================================================================

    def retry(self, job_id: str) -> CollectionJob:
        """Retry a failed job and re-dispatch it when allowed.

        Raises:
            RecordNotFoundError: If no such job exists
            InvalidTransitionError: If the job is not failed
            RetryLimitExceededError: If the job has used up its retries
            DuplicateJobError: If another active job holds the URL
        """
        job = self.job_store.retry(job_id)
        if job.auto_dispatch:
            dispatched, _ = self.admission.try_dispatch(job)
            if dispatched:
                job = self.job_store.get(job_id)
        return job

    def promote(self, job_id: str) -> CollectionJob:
        """Promote a pending review job to auto-dispatch and dispatch it.

        Raises:
            RecordNotFoundError: If no such job exists
        """
        job = self.job_store.promote(job_id)
        if job.status == JobStatus.PENDING and job.auto_dispatch and not job.dispatched:
            dispatched, _ = self.admission.try_dispatch(job)
            if dispatched:
                job = self.job_store.get(job_id)
        return job

    def dispatch_deferred(self) -> int:
        """Re-offer pending jobs that were not dispatched, oldest first.

        Returns:
            Number of jobs dispatched
        """
        if self.pool is None:
            return 0
        count = 0
        for job in self.job_store.pending_undispatched():
            if not self.pool.has_capacity(job.priority):
                continue
            self.pool.dispatch(job)
            count += 1
        if count:
            logger.info("Deferred jobs dispatched", count=count, queue_depth=self.pool.queue_depth)
        return count

    # =========================================================================
    # Read access
    # =========================================================================

    def get_job(self, job_id: str) -> CollectionJob:
        """Get a job by ID."""
        return self.job_store.get(job_id)

    def list_jobs(
        self,
        status: JobStatus | None = None,
        priority: JobPriority | None = None,
        origin: EventOrigin | None = None,
    ) -> list[CollectionJob]:
        """List jobs, oldest first."""
        return self.job_store.list_jobs(status=status, priority=priority, origin=origin)

    def recent_matches(self, limit: int | None = None) -> list[MatchRecord]:
        """Recent scored candidates, newest first."""
        with self._matches_lock:
            records = list(self._matches)
        return records[:limit] if limit is not None else records

    def stats(self) -> dict[str, Any]:
        """Job counts, queue state and threshold version."""
        stats = self.job_store.stats()
        stats["queue_depth"] = self.pool.queue_depth if self.pool else 0
        stats["queue_lanes"] = self.pool.queue.lane_sizes() if self.pool else {}
        stats["thresholds_version"] = self.pattern_store.thresholds().version
        active_model = self.model_registry.active()
        stats["active_model_id"] = active_model.id if active_model else None
        return stats

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _score(
        self, event: CandidateEvent
    ) -> tuple[RelevanceVerdict, DiscoveryPattern | None, RelevanceSettings]:
        """Score an event.

        Returns:
            (verdict, pattern used or None for the default, threshold snapshot)
        """
        thresholds = self.pattern_store.thresholds()
        model = self.model_registry.active()

        if event.pattern_id is not None:
            pattern = self._lookup_pattern(event.pattern_id)
            verdict = self.scorer.score(event, pattern, thresholds, model)
            return verdict, pattern, thresholds

        patterns = self.pattern_store.list_patterns(active_only=True)
        verdict = self.scorer.score_best(event, patterns, thresholds, model)
        pattern = next((p for p in patterns if p.id == verdict.pattern_id), None)
        return verdict, pattern, thresholds

    def _lookup_pattern(self, pattern_id: str) -> DiscoveryPattern | None:
        """Get an active pattern, or None to fall back to the default."""
        try:
            pattern = self.pattern_store.get(pattern_id)
        except RecordNotFoundError:
            logger.warning("Pattern lookup failed, using default pattern", pattern_id=pattern_id)
            return None
        if not pattern.is_active:
            logger.info("Pattern inactive, using default pattern", pattern_id=pattern_id)
            return None
        return pattern

    def _record(
        self,
        event: CandidateEvent,
        verdict: RelevanceVerdict,
        decision: MatchDecision,
        job: CollectionJob | None,
    ) -> None:
        record = MatchRecord(
            source_url=event.source_url,
            pattern_id=verdict.pattern_id,
            score=verdict.score,
            matched_criteria=list(verdict.matched_criteria),
            decision=decision,
            job_id=job.id if job else None,
            observed_at=event.observed_at,
        )
        with self._matches_lock:
            self._matches.appendleft(record)

    async def _on_job_finished(self, job: CollectionJob) -> None:
        self.dispatch_deferred()


__all__ = ["DiscoveryPipeline"]
