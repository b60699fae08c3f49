"""Pytest configuration and fixtures.

This module provides common fixtures used across all tests.
"""

from datetime import UTC, datetime
from typing import Any

import pytest

from scout.config import RelevanceSettings, WorkerPoolConfig
from scout.core.logging import setup_logging
from scout.models.job import EventOrigin
from scout.models.pattern import DiscoveryPattern
from scout.services.discovery.admission import AdmissionController
from scout.services.discovery.base import CandidateEvent, CandidateMetadata
from scout.services.discovery.pipeline import DiscoveryPipeline
from scout.services.discovery.scorer import RelevanceScorer
from scout.services.enrichment.analyzer import AnalysisResult, BaseAnalyzer
from scout.services.enrichment.worker_pool import EnrichmentWorkerPool
from scout.services.stores.job_store import JobStore
from scout.services.stores.model_registry import ModelRegistry
from scout.services.stores.pattern_store import PatternStore

# Setup logging for tests
setup_logging()

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


class StubAnalyzer(BaseAnalyzer):
    """Analyzer returning canned insights and recording its calls."""

    def __init__(self, insights: list[str] | None = None):
        self.insights = insights if insights is not None else ["Spark connector"]
        self.calls: list[str] = []

    async def analyze(self, source_url: str, metadata: dict[str, Any]) -> AnalysisResult:
        self.calls.append(source_url)
        return AnalysisResult(insights=list(self.insights))


def _make_event(
    url: str = "https://github.com/apache/spark",
    description: str | None = "apache spark core engine",
    stars: int = 500,
    language: str | None = "Scala",
    age_days: int | None = None,
    topics: list[str] | None = None,
    origin: EventOrigin = EventOrigin.WEBHOOK,
    pattern_id: str | None = None,
) -> CandidateEvent:
    """Create a candidate event for tests."""
    full_name = url.rstrip("/").split("github.com/")[-1] if "github.com/" in url else None
    return CandidateEvent(
        source_url=url,
        origin=origin,
        pattern_id=pattern_id,
        observed_at=FIXED_NOW,
        metadata=CandidateMetadata(
            full_name=full_name,
            description=description,
            language=language,
            star_count=stars,
            age_days=age_days,
            topics=topics or [],
        ),
    )


@pytest.fixture
def event_factory():
    """Factory for candidate events observed at FIXED_NOW."""
    return _make_event


@pytest.fixture
def spark_pattern() -> DiscoveryPattern:
    """Simple spark pattern: one keyword, one exclusion, min 10 stars."""
    return DiscoveryPattern(
        id="spark",
        name="Spark",
        keywords=["spark"],
        exclude_keywords=["tutorial"],
        min_stars=10,
        relevance_threshold=75,
    )


@pytest.fixture
def thresholds() -> RelevanceSettings:
    """Thresholds (60, 75, 85) with model scoring on."""
    return RelevanceSettings(
        minimum_relevance_score=60,
        auto_collect_threshold=75,
        priority_threshold=85,
    )


@pytest.fixture
def pattern_store(spark_pattern: DiscoveryPattern, thresholds: RelevanceSettings) -> PatternStore:
    """Pattern store holding the spark pattern."""
    return PatternStore(patterns=[spark_pattern], thresholds=thresholds)


@pytest.fixture
def job_store() -> JobStore:
    """Empty job store allowing one retry."""
    return JobStore(max_retries=1)


@pytest.fixture
def model_registry() -> ModelRegistry:
    """Empty model registry."""
    return ModelRegistry()


@pytest.fixture
def scorer(model_registry: ModelRegistry) -> RelevanceScorer:
    """Scorer with default weights."""
    return RelevanceScorer(registry=model_registry)


@pytest.fixture
def analyzer() -> StubAnalyzer:
    """Analyzer with canned insights."""
    return StubAnalyzer()


@pytest.fixture
def worker_pool(job_store: JobStore, analyzer: StubAnalyzer) -> EnrichmentWorkerPool:
    """Worker pool that is never started; tests drive process() directly."""
    return EnrichmentWorkerPool(
        job_store=job_store,
        analyzer=analyzer,
        config=WorkerPoolConfig(worker_count=2, max_queue_depth=2, job_timeout_seconds=1.0),
    )


@pytest.fixture
def pipeline(
    pattern_store: PatternStore,
    model_registry: ModelRegistry,
    job_store: JobStore,
    scorer: RelevanceScorer,
    worker_pool: EnrichmentWorkerPool,
) -> DiscoveryPipeline:
    """Fully wired pipeline over in-memory stores."""
    admission = AdmissionController(job_store, pattern_store, pool=worker_pool)
    return DiscoveryPipeline(
        pattern_store=pattern_store,
        model_registry=model_registry,
        job_store=job_store,
        scorer=scorer,
        admission=admission,
        pool=worker_pool,
    )
