"""Enrichment worker pool.

A fixed number of asyncio workers pull job IDs from a two-lane priority
queue and drive each job from pending to a terminal status:

    claim -> analyze (under a deadline) -> extract insights -> complete

A job that exceeds the deadline fails with reason "timeout"; an analyzer
exception fails it with "analysis error: <message>". A worker never dies
because of one job: store errors are logged, the job is failed if the store
still allows it, and the worker moves on. On shutdown, jobs in flight get a
drain period; whatever is still running after it is failed with
SHUTDOWN_REASON so its URL is free for a retry.
"""

import asyncio
from collections.abc import Awaitable, Callable

from scout.config import ProgressSteps, WorkerPoolConfig
from scout.core.exceptions import EnrichmentError, EnrichmentTimeoutError, ScoutError
from scout.core.logging import get_logger
from scout.models.job import CollectionJob, JobPriority
from scout.services.enrichment.analyzer import AnalysisResult, BaseAnalyzer
from scout.services.enrichment.priority_queue import TwoLaneQueue
from scout.services.stores.job_store import JobStore

logger = get_logger(__name__)

# Called with the job after it reaches a terminal status
JobFinishedCallback = Callable[[CollectionJob], Awaitable[None]]

TIMEOUT_REASON = "timeout"
SHUTDOWN_REASON = "cancelled at shutdown"


def clean_insights(raw: list[str], limit: int) -> list[str]:
    """Strip, de-duplicate (case-insensitive) and cap insights.

    Args:
        raw: Insights as returned by the analyzer
        limit: Maximum insights kept

    Returns:
        Cleaned insights in original order
    """
    seen: set[str] = set()
    cleaned: list[str] = []
    for item in raw:
        text = " ".join(str(item).split())
        key = text.lower()
        if not text or key in seen:
            continue
        seen.add(key)
        cleaned.append(text)
        if len(cleaned) >= limit:
            break
    return cleaned


class EnrichmentWorkerPool:
    """Pool of asyncio workers processing collection jobs.

    Attributes:
        job_store: Job store (single writer of job state)
        analyzer: Analysis step
        config: Pool configuration
        queue: Two-lane queue of job IDs
    """

    def __init__(
        self,
        job_store: JobStore,
        analyzer: BaseAnalyzer,
        config: WorkerPoolConfig | None = None,
        on_job_finished: JobFinishedCallback | None = None,
    ):
        """Initialize worker pool.

        Args:
            job_store: Job store
            analyzer: Analysis step
            config: Pool configuration (uses defaults if not provided)
            on_job_finished: Awaited after each job reaches a terminal status
        """
        self.job_store = job_store
        self.analyzer = analyzer
        self.config = config or WorkerPoolConfig()
        self.on_job_finished = on_job_finished
        self.queue = TwoLaneQueue(promotion_interval=self.config.promotion_interval)
        self._workers: list[asyncio.Task] = []
        self._busy: set[asyncio.Task] = set()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def queue_depth(self) -> int:
        """Job IDs waiting in the queue."""
        return self.queue.qsize()

    def has_capacity(self, priority: JobPriority) -> bool:
        """Whether a job of this priority may be queued now.

        High-priority jobs are always accepted; others only while the queue
        is below max_queue_depth.
        """
        if priority == JobPriority.HIGH:
            return True
        return self.queue_depth < self.config.max_queue_depth

    def dispatch(self, job: CollectionJob) -> None:
        """Queue a pending job for processing.

        Args:
            job: Job to queue (its priority picks the lane)
        """
        self.job_store.mark_dispatched(job.id)
        self.queue.put(job.id, job.priority)
        logger.debug(
            "Job dispatched",
            job_id=job.id,
            priority=job.priority.value,
            queue_depth=self.queue_depth,
        )

    async def start(self) -> None:
        """Start the workers."""
        if self._running:
            return
        self._running = True
        for worker_id in range(self.config.worker_count):
            self._workers.append(asyncio.create_task(self._worker(worker_id)))
        logger.info("Worker pool started", workers=self.config.worker_count)

    async def stop(self, drain_timeout: float | None = None) -> None:
        """Stop the workers.

        Idle workers stop at once. Workers in the middle of a job get up to
        drain_timeout seconds to finish it; jobs still running after that are
        cancelled and failed with SHUTDOWN_REASON. Queued jobs stay pending.

        Args:
            drain_timeout: Seconds to wait for running jobs (default: the job deadline)
        """
        if not self._running:
            return
        self._running = False

        busy = [task for task in self._workers if task in self._busy]
        for task in self._workers:
            if task not in self._busy:
                task.cancel()
        if busy:
            if drain_timeout is None:
                drain_timeout = self.config.job_timeout_seconds
            logger.info("Draining running jobs", running=len(busy), timeout=drain_timeout)
            await asyncio.wait(busy, timeout=drain_timeout)

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()
        self._busy.clear()
        logger.info("Worker pool stopped", queued=self.queue_depth)

    async def _worker(self, worker_id: int) -> None:
        """Worker loop: take the next job ID and process it."""
        worker_log = logger.bind(worker_id=worker_id)
        worker_log.debug("Worker started")
        task = asyncio.current_task()
        while self._running:
            try:
                job_id = await asyncio.wait_for(self.queue.get(), timeout=1.0)
            except TimeoutError:
                continue
            self._busy.add(task)
            try:
                await self.process(job_id)
            except Exception as e:
                # Log error but keep the worker alive
                worker_log.error(
                    "Worker processing error", job_id=job_id, error=str(e), exc_info=True
                )
            finally:
                self._busy.discard(task)

    async def process(self, job_id: str) -> CollectionJob | None:
        """Process one job end to end.

        Args:
            job_id: Job to process

        Returns:
            Job in its terminal status, or None if it was skipped
        """
        try:
            job = self.job_store.claim(job_id)
        except ScoutError as e:
            logger.error("Job claim failed", job_id=job_id, **e.to_dict())
            return None
        if job is None:
            logger.debug("Job no longer pending, skipped", job_id=job_id)
            return None

        progress = self.config.progress
        try:
            self.job_store.report_progress(job_id, progress.claimed)
            finished = await self._run(job, progress)
        except ScoutError as e:
            logger.error("Job store error during processing", job_id=job_id, **e.to_dict())
            self._abandon(job_id, f"store error: {e}")
            return None
        except asyncio.CancelledError:
            self._abandon(job_id, SHUTDOWN_REASON)
            raise

        if self.on_job_finished is not None:
            try:
                await self.on_job_finished(finished)
            except ScoutError as e:
                logger.error("Job finished callback failed", job_id=job_id, **e.to_dict())
        return finished

    def _abandon(self, job_id: str, reason: str) -> None:
        """Fail a claimed job that cannot finish normally, if the store allows it."""
        try:
            self.job_store.fail(job_id, reason)
        except ScoutError as e:
            logger.warning(
                "Abandoned job left as is", job_id=job_id, reason=reason, **e.to_dict()
            )

    async def _run(self, job: CollectionJob, progress: ProgressSteps) -> CollectionJob:
        """Analyze a claimed job and record the outcome."""
        self.job_store.report_progress(job.id, progress.analyzing)
        try:
            result = await self._analyze(job)
        except EnrichmentTimeoutError as e:
            logger.warning("Job analysis timed out", **e.context)
            return self.job_store.fail(job.id, TIMEOUT_REASON)
        except EnrichmentError as e:
            logger.warning("Job analysis failed", error=str(e), **e.context)
            return self.job_store.fail(job.id, str(e))

        self.job_store.report_progress(job.id, progress.analyzed)
        insights = clean_insights(result.insights, self.config.max_insights)
        self.job_store.report_progress(job.id, progress.insights_extracted)
        return self.job_store.complete(job.id, insights)

    async def _analyze(self, job: CollectionJob) -> AnalysisResult:
        """Run the analyzer under the job deadline.

        Raises:
            EnrichmentTimeoutError: If the deadline passes
            EnrichmentError: If the analyzer raises
        """
        timeout = self.config.job_timeout_seconds
        try:
            return await asyncio.wait_for(
                self.analyzer.analyze(job.source_url, job.metadata), timeout=timeout
            )
        except TimeoutError as e:
            raise EnrichmentTimeoutError(
                timeout, job_id=job.id, source_url=job.source_url
            ) from e
        except Exception as e:
            raise EnrichmentError(
                f"analysis error: {e}", job_id=job.id, source_url=job.source_url
            ) from e


__all__ = [
    "SHUTDOWN_REASON",
    "TIMEOUT_REASON",
    "EnrichmentWorkerPool",
    "JobFinishedCallback",
    "clean_insights",
]
