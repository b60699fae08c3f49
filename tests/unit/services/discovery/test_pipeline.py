"""Unit tests for DiscoveryPipeline.

Tests cover:
- Submit: admission, rejection, duplicates, concurrent submits
- Pattern match counters and default-pattern fallback
- Promote / retry / deferred dispatch
- Match feed and stats
"""

import asyncio

import pytest

from scout.core.exceptions import RecordNotFoundError
from scout.models.job import JobPriority, JobStatus
from scout.models.match import MatchDecision
from scout.models.pattern import DiscoveryPattern
from scout.services.discovery.base import AdmissionOutcome, CandidateMetadata


class TestSubmit:
    """Tests for submit()."""

    @pytest.mark.asyncio
    async def test_relevant_event_admitted_high(self, pipeline, worker_pool, event_factory):
        """Test the spark engine repository becomes a dispatched high job."""
        result = await pipeline.submit(event_factory())

        assert result.outcome == AdmissionOutcome.ADMITTED
        assert result.job.priority == JobPriority.HIGH
        assert result.dispatched is True
        assert worker_pool.queue_depth == 1

    @pytest.mark.asyncio
    async def test_tutorial_rejected(self, pipeline, job_store, event_factory):
        """Test an excluded keyword rejects the candidate."""
        result = await pipeline.submit(event_factory(description="spark tutorial for beginners"))

        assert result.outcome == AdmissionOutcome.REJECTED
        assert job_store.list_jobs() == []

    @pytest.mark.asyncio
    async def test_duplicate(self, pipeline, event_factory):
        """Test resubmitting an active URL is skipped."""
        first = await pipeline.submit(event_factory())
        second = await pipeline.submit(event_factory())

        assert second.outcome == AdmissionOutcome.DUPLICATE_SKIPPED
        assert second.job.id == first.job.id

    @pytest.mark.asyncio
    async def test_concurrent_submits_single_job(self, pipeline, job_store, event_factory):
        """Test concurrent submits for one URL create exactly one job."""
        results = await asyncio.gather(*(pipeline.submit(event_factory()) for _ in range(10)))

        outcomes = [r.outcome for r in results]
        assert outcomes.count(AdmissionOutcome.ADMITTED) == 1
        assert outcomes.count(AdmissionOutcome.DUPLICATE_SKIPPED) == 9
        assert len(job_store.list_jobs()) == 1

    @pytest.mark.asyncio
    async def test_review_job_then_promote(self, pipeline, worker_pool, event_factory):
        """Test a review job waits until promoted."""
        event = event_factory(url="https://github.com/acme/sparkle", description="sparkle lights")

        result = await pipeline.submit(event)

        assert result.job.priority == JobPriority.REVIEW
        assert result.reason == "awaiting promotion"
        assert worker_pool.queue_depth == 0

        promoted = pipeline.promote(result.job.id)

        assert promoted.auto_dispatch is True
        assert promoted.dispatched is True
        assert worker_pool.queue_depth == 1

    @pytest.mark.asyncio
    async def test_pattern_without_auto_collect(self, pipeline, pattern_store, event_factory):
        """Test a pattern with auto_collect off never dispatches."""
        pattern_store.update("spark", {"auto_collect": False})

        result = await pipeline.submit(event_factory())

        assert result.outcome == AdmissionOutcome.ADMITTED
        assert result.dispatched is False
        assert result.job.status == JobStatus.PENDING

    @pytest.mark.asyncio
    async def test_record_match_above_pattern_threshold(
        self, pipeline, pattern_store, event_factory
    ):
        """Test only scores at or above the pattern threshold count as matches."""
        await pipeline.submit(event_factory())
        await pipeline.submit(
            event_factory(url="https://github.com/acme/sparkle", description="sparkle lights")
        )

        pattern = pattern_store.get("spark")
        assert pattern.total_matches == 1
        assert pattern.last_matched_at is not None

    @pytest.mark.asyncio
    async def test_default_pattern_never_auto_dispatches(
        self, pipeline, pattern_store, event_factory
    ):
        """Test the built-in fallback admits for review only."""
        pattern_store.deactivate("spark")
        pattern_store.set_thresholds(0, 0, 0)

        result = await pipeline.submit(event_factory())

        assert result.outcome == AdmissionOutcome.ADMITTED
        assert result.job.pattern_id is None
        assert result.job.score == pytest.approx(30.0)
        assert result.dispatched is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("pattern_id", ["retired", "unknown"])
    async def test_tagged_pattern_falls_back(
        self, pipeline, pattern_store, event_factory, pattern_id
    ):
        """Test a scanner-tagged inactive or unknown pattern uses the default."""
        pattern_store.add(DiscoveryPattern(id="retired", keywords=["spark"], is_active=False))

        result = await pipeline.submit(event_factory(pattern_id=pattern_id))

        assert result.outcome == AdmissionOutcome.REJECTED
        assert pipeline.recent_matches()[0].pattern_id is None
        assert pipeline.recent_matches()[0].score == pytest.approx(30.0)

    @pytest.mark.asyncio
    async def test_tagged_pattern_used(self, pipeline, pattern_store, event_factory):
        """Test a tagged active pattern is scored directly."""
        pattern_store.add(DiscoveryPattern(id="streaming", keywords=["kafka"]))

        await pipeline.submit(event_factory(pattern_id="streaming"))

        match = pipeline.recent_matches()[0]
        assert match.pattern_id == "streaming"
        assert "keyword:spark" not in match.matched_criteria


class TestEvaluate:
    """Tests for evaluate()."""

    @pytest.mark.asyncio
    async def test_no_side_effects(self, pipeline, job_store, pattern_store):
        """Test evaluation creates no job, match record or counter update."""
        verdict = await pipeline.evaluate(
            "https://github.com/apache/spark",
            CandidateMetadata(description="apache spark", star_count=500, language="Scala"),
        )

        assert verdict.score == pytest.approx(100.0)
        assert verdict.pattern_id == "spark"
        assert job_store.list_jobs() == []
        assert pipeline.recent_matches() == []
        assert pattern_store.get("spark").total_matches == 0

    @pytest.mark.asyncio
    async def test_invalid_url(self, pipeline):
        """Test invalid URLs raise ValueError."""
        with pytest.raises(ValueError):
            await pipeline.evaluate("https://")


class TestOperatorActions:
    """Tests for retry, promote and deferred dispatch."""

    @pytest.mark.asyncio
    async def test_retry_redispatches(self, pipeline, job_store, worker_pool, event_factory):
        """Test a failed auto-dispatch job is queued again on retry."""
        result = await pipeline.submit(event_factory())
        worker_pool.queue.get_nowait()
        job_store.claim(result.job.id)
        job_store.fail(result.job.id, "timeout")

        retried = pipeline.retry(result.job.id)

        assert retried.status == JobStatus.PENDING
        assert retried.retry_count == 1
        assert retried.dispatched is True
        assert worker_pool.queue_depth == 1

    def test_promote_unknown(self, pipeline):
        """Test promoting an unknown job raises RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            pipeline.promote("missing")

    @pytest.mark.asyncio
    async def test_dispatch_deferred(self, pipeline, worker_pool, event_factory):
        """Test jobs held back by backpressure are dispatched when room frees up."""
        results = [
            await pipeline.submit(
                event_factory(url=f"https://github.com/a/repo{i}", stars=5)
            )
            for i in range(3)
        ]
        assert [r.dispatched for r in results] == [True, True, False]
        assert pipeline.dispatch_deferred() == 0

        worker_pool.queue.get_nowait()

        assert pipeline.dispatch_deferred() == 1
        assert pipeline.get_job(results[2].job.id).dispatched is True

    @pytest.mark.asyncio
    async def test_finished_job_triggers_backfill(
        self, pipeline, worker_pool, job_store, event_factory
    ):
        """Test the pool's finished hook dispatches deferred jobs."""
        results = [
            await pipeline.submit(
                event_factory(url=f"https://github.com/a/repo{i}", stars=5)
            )
            for i in range(3)
        ]

        job_id = worker_pool.queue.get_nowait()
        await worker_pool.process(job_id)

        assert job_store.get(job_id).status == JobStatus.COMPLETED
        assert pipeline.get_job(results[2].job.id).dispatched is True


class TestReadAccess:
    """Tests for the match feed and stats."""

    @pytest.mark.asyncio
    async def test_recent_matches_newest_first(self, pipeline, event_factory):
        """Test the feed records every decision, newest first."""
        await pipeline.submit(event_factory())
        await pipeline.submit(event_factory(url="https://github.com/a/b", description="tutorial"))
        await pipeline.submit(event_factory())

        matches = pipeline.recent_matches()

        assert [m.decision for m in matches] == [
            MatchDecision.DUPLICATE_SKIPPED,
            MatchDecision.REJECTED,
            MatchDecision.ADMITTED,
        ]
        assert matches[2].matched_criteria == ["keyword:spark", "stars>=10"]
        assert pipeline.recent_matches(limit=1) == matches[:1]

    @pytest.mark.asyncio
    async def test_stats(self, pipeline, pattern_store, event_factory):
        """Test stats expose counts, queue state and versions."""
        await pipeline.submit(event_factory())
        pattern_store.set_thresholds(50, 70, 90)

        stats = pipeline.stats()

        assert stats["total"] == 1
        assert stats["by_status"]["pending"] == 1
        assert stats["by_priority"]["high"] == 1
        assert stats["queue_depth"] == 1
        assert stats["queue_lanes"] == {"high": 1, "normal": 0}
        assert stats["thresholds_version"] == 2
        assert stats["active_model_id"] is None

    def test_list_jobs_filters(self, pipeline):
        """Test list_jobs on an empty store."""
        assert pipeline.list_jobs(status=JobStatus.FAILED) == []
