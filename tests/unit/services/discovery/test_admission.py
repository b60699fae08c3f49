"""Unit tests for AdmissionController."""

import pytest

from scout.config import RelevanceSettings
from scout.models.job import JobPriority, JobStatus
from scout.services.discovery.admission import AdmissionController
from scout.services.discovery.base import AdmissionOutcome, RelevanceVerdict


def verdict(score: float, vetoed: bool = False) -> RelevanceVerdict:
    """Create a verdict against the spark pattern."""
    return RelevanceVerdict(score=score, rule_score=score, pattern_id="spark", vetoed=vetoed)


@pytest.fixture
def admission(job_store, pattern_store, worker_pool) -> AdmissionController:
    """Admission controller with a worker pool."""
    return AdmissionController(job_store, pattern_store, pool=worker_pool)


class TestAdmit:
    """Tests for admission decisions."""

    def test_reject_below_minimum(self, admission, job_store, event_factory):
        """Test scores below the minimum create no job."""
        result = admission.admit(event_factory(), verdict(59.9))

        assert result.outcome == AdmissionOutcome.REJECTED
        assert result.reason == "below minimum relevance score"
        assert result.job is None
        assert job_store.list_jobs() == []

    def test_reject_vetoed(self, admission, event_factory):
        """Test vetoed verdicts are rejected whatever the score."""
        result = admission.admit(event_factory(), verdict(90, vetoed=True))

        assert result.outcome == AdmissionOutcome.REJECTED
        assert result.reason == "vetoed"

    @pytest.mark.parametrize(
        "score,priority,dispatched",
        [
            (60, JobPriority.REVIEW, False),
            (75, JobPriority.NORMAL, True),
            (85, JobPriority.HIGH, True),
        ],
    )
    def test_priority_bands(self, admission, event_factory, score, priority, dispatched):
        """Test threshold bands map to priorities."""
        result = admission.admit(event_factory(), verdict(score))

        assert result.outcome == AdmissionOutcome.ADMITTED
        assert result.job.priority == priority
        assert result.job.status == JobStatus.PENDING
        assert result.dispatched is dispatched
        assert result.job.dispatched is dispatched

    def test_review_awaits_promotion(self, admission, event_factory):
        """Test review jobs are not auto-dispatched."""
        result = admission.admit(event_factory(), verdict(65))

        assert result.reason == "awaiting promotion"
        assert result.job.auto_dispatch is False

    def test_job_fields(self, admission, event_factory):
        """Test the job carries the event's data."""
        result = admission.admit(event_factory(stars=42), verdict(90))

        job = result.job
        assert job.source_url == "github.com/apache/spark"
        assert job.score == 90
        assert job.pattern_id == "spark"
        assert job.metadata["star_count"] == 42

    def test_duplicate_skipped(self, admission, event_factory):
        """Test a second event for an active URL is skipped."""
        first = admission.admit(event_factory(), verdict(90))
        second = admission.admit(event_factory(url="https://GitHub.com/apache/spark/"), verdict(95))

        assert second.outcome == AdmissionOutcome.DUPLICATE_SKIPPED
        assert second.job.id == first.job.id
        assert second.dispatched is False

    def test_auto_collect_disabled(self, admission, pattern_store, event_factory):
        """Test the global switch keeps jobs pending."""
        pattern_store.update_thresholds(auto_collect_enabled=False)

        result = admission.admit(event_factory(), verdict(95))

        assert result.outcome == AdmissionOutcome.ADMITTED
        assert result.dispatched is False
        assert result.job.auto_dispatch is False

    def test_pattern_auto_collect_off(self, admission, event_factory):
        """Test a pattern without auto-collect keeps jobs pending."""
        result = admission.admit(event_factory(), verdict(95), pattern_auto_collect=False)

        assert result.dispatched is False
        assert result.reason == "awaiting promotion"

    def test_threshold_snapshot(self, admission, event_factory):
        """Test the supplied snapshot wins over the store."""
        snapshot = RelevanceSettings(
            minimum_relevance_score=10, auto_collect_threshold=20, priority_threshold=30
        )

        result = admission.admit(event_factory(), verdict(25), thresholds=snapshot)

        assert result.job.priority == JobPriority.NORMAL

    def test_backpressure(self, admission, event_factory):
        """Test normal jobs wait when the pool is full, high jobs do not."""
        for i in range(2):
            admission.admit(event_factory(url=f"https://github.com/a/repo{i}"), verdict(80))

        normal = admission.admit(event_factory(url="https://github.com/a/late"), verdict(80))
        high = admission.admit(event_factory(url="https://github.com/a/urgent"), verdict(99))

        assert normal.dispatched is False
        assert normal.reason == "backpressure"
        assert high.dispatched is True

    def test_no_pool(self, job_store, pattern_store, event_factory):
        """Test jobs stay pending without a pool."""
        admission = AdmissionController(job_store, pattern_store)

        result = admission.admit(event_factory(), verdict(90))

        assert result.dispatched is False
        assert result.reason == "no worker pool"
