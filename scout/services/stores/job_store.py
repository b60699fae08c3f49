"""Collection job store.

In-memory store for CollectionJob records. It is the single owner of the
"at most one active job per source URL" rule: the check and the insert
happen under one lock in create_if_absent, so concurrent admissions for the
same URL cannot both create a job.

Every status change goes through the job state machine. Callers always
receive copies; mutating a returned job has no effect on the store.
"""

import threading
from collections import Counter
from typing import Any

from scout.core.exceptions import DuplicateJobError, RecordNotFoundError, RetryLimitExceededError
from scout.core.logging import get_logger
from scout.core.state_machine import create_job_state_machine
from scout.models.base import utcnow
from scout.models.job import CollectionJob, EventOrigin, JobPriority, JobStatus

logger = get_logger(__name__)


class JobStore:
    """Thread-safe in-memory job store.

    Attributes:
        max_retries: Manual retries allowed per job
    """

    def __init__(self, max_retries: int = 1):
        """Initialize job store.

        Args:
            max_retries: Manual retries allowed per job
        """
        self.max_retries = max_retries
        self._jobs: dict[str, CollectionJob] = {}
        # source_url -> id of the job holding the URL's active slot
        self._active_by_url: dict[str, str] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # Creation / lookup
    # =========================================================================

    def create_if_absent(self, job: CollectionJob) -> tuple[CollectionJob, bool]:
        """Insert a job unless an active job exists for its URL.

        Args:
            job: New job (status must be pending)

        Returns:
            (job, created): the stored copy of the new job and True, or the
            existing active job and False
        """
        with self._lock:
            existing_id = self._active_by_url.get(job.source_url)
            if existing_id is not None:
                return self._jobs[existing_id].model_copy(deep=True), False

            stored = job.model_copy(deep=True)
            self._jobs[stored.id] = stored
            self._active_by_url[stored.source_url] = stored.id

        logger.info(
            "Job created",
            job_id=stored.id,
            source_url=stored.source_url,
            priority=stored.priority.value,
            auto_dispatch=stored.auto_dispatch,
        )
        return stored.model_copy(deep=True), True

    def get(self, job_id: str) -> CollectionJob:
        """Get a job by ID.

        Raises:
            RecordNotFoundError: If no such job exists
        """
        with self._lock:
            return self._require(job_id).model_copy(deep=True)

    def find_active(self, source_url: str) -> CollectionJob | None:
        """Get the active job for a normalized URL, if any."""
        with self._lock:
            job_id = self._active_by_url.get(source_url)
            return self._jobs[job_id].model_copy(deep=True) if job_id else None

    def list_jobs(
        self,
        status: JobStatus | None = None,
        priority: JobPriority | None = None,
        origin: EventOrigin | None = None,
    ) -> list[CollectionJob]:
        """List jobs, oldest first, optionally filtered.

        Args:
            status: Only jobs in this status
            priority: Only jobs with this priority
            origin: Only jobs from this adapter

        Returns:
            Matching jobs (copies)
        """
        with self._lock:
            jobs = [
                job.model_copy(deep=True)
                for job in self._jobs.values()
                if (status is None or job.status == status)
                and (priority is None or job.priority == priority)
                and (origin is None or job.origin == origin)
            ]
        return sorted(jobs, key=lambda j: j.created_at)

    def pending_undispatched(self) -> list[CollectionJob]:
        """Pending auto-dispatch jobs not currently queued, oldest first."""
        with self._lock:
            jobs = [
                job.model_copy(deep=True)
                for job in self._jobs.values()
                if job.status == JobStatus.PENDING and job.auto_dispatch and not job.dispatched
            ]
        return sorted(jobs, key=lambda j: j.created_at)

    def stats(self) -> dict[str, Any]:
        """Job counts by status and by priority."""
        with self._lock:
            by_status = Counter(job.status.value for job in self._jobs.values())
            by_priority = Counter(job.priority.value for job in self._jobs.values())
            total = len(self._jobs)
        return {
            "total": total,
            "by_status": {s.value: by_status.get(s.value, 0) for s in JobStatus},
            "by_priority": {p.value: by_priority.get(p.value, 0) for p in JobPriority},
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def claim(self, job_id: str) -> CollectionJob | None:
        """Move a pending job to processing.

        Compare-and-swap: only one caller can claim a given job.

        Args:
            job_id: Job to claim

        Returns:
            Claimed job, or None if the job is no longer pending

        Raises:
            RecordNotFoundError: If no such job exists
        """
        with self._lock:
            job = self._require(job_id)
            if job.status != JobStatus.PENDING:
                return None
            self._transition(job, JobStatus.PROCESSING)
            job.started_at = utcnow()
            job.dispatched = False
            claimed = job.model_copy(deep=True)

        logger.debug("Job claimed", job_id=job_id)
        return claimed

    def report_progress(self, job_id: str, progress: int) -> CollectionJob:
        """Record advisory progress for a processing job.

        Progress never decreases; lower values are ignored, and reports for
        jobs that are not processing are ignored as well.

        Args:
            job_id: Job ID
            progress: Progress value (clamped to 0-100)

        Returns:
            Job after the update

        Raises:
            RecordNotFoundError: If no such job exists
        """
        value = max(0, min(100, int(progress)))
        with self._lock:
            job = self._require(job_id)
            if job.status == JobStatus.PROCESSING and value > job.progress:
                job.progress = value
            return job.model_copy(deep=True)

    def complete(self, job_id: str, insights: list[str]) -> CollectionJob:
        """Move a processing job to completed.

        Raises:
            RecordNotFoundError: If no such job exists
            InvalidTransitionError: If the job is not processing
        """
        with self._lock:
            job = self._require(job_id)
            self._transition(job, JobStatus.COMPLETED)
            job.progress = 100
            job.insights = list(insights)
            job.completed_at = utcnow()
            self._release(job)
            done = job.model_copy(deep=True)

        logger.info("Job completed", job_id=job_id, insights=len(insights))
        return done

    def fail(self, job_id: str, reason: str) -> CollectionJob:
        """Move a processing job to failed.

        Raises:
            RecordNotFoundError: If no such job exists
            InvalidTransitionError: If the job is not processing
        """
        with self._lock:
            job = self._require(job_id)
            self._transition(job, JobStatus.FAILED)
            job.failure_reason = reason
            job.completed_at = utcnow()
            self._release(job)
            failed = job.model_copy(deep=True)

        logger.warning("Job failed", job_id=job_id, reason=reason)
        return failed

    def retry(self, job_id: str) -> CollectionJob:
        """Move a failed job back to pending.

        Progress resets to 0, failure_reason clears and retry_count increments.

        Raises:
            RecordNotFoundError: If no such job exists
            InvalidTransitionError: If the job is not failed
            RetryLimitExceededError: If the job has used up its retries
            DuplicateJobError: If another active job now holds the URL
        """
        with self._lock:
            job = self._require(job_id)
            if job.status == JobStatus.FAILED and job.retry_count >= self.max_retries:
                raise RetryLimitExceededError(
                    job_id=job_id, retry_count=job.retry_count, max_retries=self.max_retries
                )
            holder = self._active_by_url.get(job.source_url)
            if job.status == JobStatus.FAILED and holder is not None and holder != job.id:
                raise DuplicateJobError(
                    source_url=job.source_url, existing_job_id=holder, job_id=job_id
                )
            self._transition(job, JobStatus.PENDING)
            job.retry_count += 1
            job.progress = 0
            job.failure_reason = None
            job.completed_at = None
            job.started_at = None
            job.dispatched = False
            self._active_by_url[job.source_url] = job.id
            retried = job.model_copy(deep=True)

        logger.info("Job retried", job_id=job_id, retry_count=retried.retry_count)
        return retried

    def promote(self, job_id: str) -> CollectionJob:
        """Allow a pending review job to be dispatched.

        Returns:
            Job after promotion (unchanged if it was not pending)

        Raises:
            RecordNotFoundError: If no such job exists
        """
        with self._lock:
            job = self._require(job_id)
            if job.status == JobStatus.PENDING and not job.auto_dispatch:
                job.auto_dispatch = True
                logger.info("Job promoted", job_id=job_id, priority=job.priority.value)
            return job.model_copy(deep=True)

    def mark_dispatched(self, job_id: str, dispatched: bool = True) -> CollectionJob:
        """Flag a job as handed to (or taken back from) the worker pool."""
        with self._lock:
            job = self._require(job_id)
            job.dispatched = dispatched
            return job.model_copy(deep=True)

    # =========================================================================
    # Internal helpers (caller holds the lock)
    # =========================================================================

    def _require(self, job_id: str) -> CollectionJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise RecordNotFoundError("CollectionJob", job_id)
        return job

    def _transition(self, job: CollectionJob, target: JobStatus) -> None:
        machine = create_job_state_machine(job.status.value)
        job.status = machine.transition_to(target)
        job.history.append(target)

    def _release(self, job: CollectionJob) -> None:
        if self._active_by_url.get(job.source_url) == job.id:
            del self._active_by_url[job.source_url]


__all__ = ["JobStore"]
