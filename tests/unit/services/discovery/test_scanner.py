"""Unit tests for PatternScanner.

Tests cover:
- Search query construction
- Repository to event conversion
- Scan cycle counts, error handling and rate limits
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from scout.config import ScannerConfig
from scout.core.exceptions import ExternalAPIError, RateLimitError
from scout.models.job import EventOrigin
from scout.models.pattern import DiscoveryPattern
from scout.services.discovery.admission import AdmissionResult
from scout.services.discovery.base import AdmissionOutcome
from scout.services.discovery.sources.scanner import (
    PatternScanner,
    build_search_query,
    repository_to_event,
)
from scout.services.stores.pattern_store import PatternStore

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def create_repo(name: str = "apache/spark", **overrides) -> dict:
    """Create a search API repository object."""
    repo = {
        "full_name": name,
        "html_url": f"https://github.com/{name}",
        "description": "apache spark core engine",
        "language": "Scala",
        "stargazers_count": 500,
        "created_at": "2025-05-02T12:00:00Z",
        "topics": ["big-data"],
    }
    repo.update(overrides)
    return repo


def admitted() -> AdmissionResult:
    return AdmissionResult(outcome=AdmissionOutcome.ADMITTED)


@pytest.fixture
def scan_store(thresholds) -> PatternStore:
    """Store with three active patterns and one inactive."""
    return PatternStore(
        patterns=[
            DiscoveryPattern(id="p1", keywords=["spark"]),
            DiscoveryPattern(id="p2", keywords=["mllib"]),
            DiscoveryPattern(id="off", keywords=["flink"], is_active=False),
            DiscoveryPattern(id="p3", keywords=["kafka"]),
        ],
        thresholds=thresholds,
    )


@pytest.fixture
def github() -> MagicMock:
    client = MagicMock()
    client.search_repositories = AsyncMock(return_value=[])
    return client


@pytest.fixture
def sink() -> AsyncMock:
    return AsyncMock(return_value=admitted())


@pytest.fixture
def scanner(sink, github, scan_store) -> PatternScanner:
    return PatternScanner(sink, github, scan_store, ScannerConfig(max_results_per_pattern=20))


class TestBuildSearchQuery:
    """Tests for search query construction."""

    def test_simple(self, spark_pattern):
        """Test keywords and star qualifier."""
        assert build_search_query(spark_pattern, NOW) == "spark stars:>=10"

    def test_full(self):
        """Test phrases are quoted and all qualifiers are added."""
        pattern = DiscoveryPattern(
            id="streaming",
            keywords=["spark", "structured streaming"],
            language_filters=["Scala"],
            min_stars=3,
            max_age_days=365,
        )

        assert build_search_query(pattern, NOW) == (
            'spark OR "structured streaming" language:Scala stars:>=3 created:>=2024-06-01'
        )

    def test_keyword_cap(self):
        """Test only the first five keywords are searched."""
        pattern = DiscoveryPattern(id="p", keywords=[f"k{i}" for i in range(7)])

        assert build_search_query(pattern, NOW) == "k0 OR k1 OR k2 OR k3 OR k4"


class TestRepositoryToEvent:
    """Tests for repository conversion."""

    def test_convert(self):
        """Test fields map onto the candidate event."""
        event = repository_to_event(create_repo(), "p1", NOW)

        assert event.source_url == "github.com/apache/spark"
        assert event.origin == EventOrigin.SCAN
        assert event.pattern_id == "p1"
        assert event.observed_at == NOW
        assert event.metadata.star_count == 500
        assert event.metadata.age_days == 30
        assert event.metadata.topics == ["big-data"]

    def test_missing_optional_fields(self):
        """Test null counts and dates are tolerated."""
        repo = create_repo(stargazers_count=None, created_at=None, topics=None)

        event = repository_to_event(repo, None, NOW)

        assert event.metadata.star_count == 0
        assert event.metadata.age_days is None
        assert event.metadata.topics == []

    def test_missing_url(self):
        """Test repositories without html_url are rejected."""
        with pytest.raises(ValidationError):
            repository_to_event(create_repo(html_url=None), "p1", NOW)

    def test_bad_date(self):
        """Test unparseable dates raise ValueError."""
        with pytest.raises(ValueError):
            repository_to_event(create_repo(created_at="yesterday"), "p1", NOW)


class TestScanOnce:
    """Tests for one scan cycle."""

    @pytest.mark.asyncio
    async def test_counts(self, scanner, github, sink):
        """Test failures are skipped and counted per pattern."""
        github.search_repositories.side_effect = [
            [create_repo("a/one"), create_repo("a/bad", html_url="")],
            ExternalAPIError(service="github", message="HTTP 500", status_code=500),
            [create_repo("a/two")],
        ]

        result = await scanner.scan_once(now=NOW)

        assert github.search_repositories.await_count == 3
        assert result.patterns_scanned == 2
        assert result.candidates == 2
        assert result.invalid == 1
        assert result.admitted == 2
        assert len(result.errors) == 1
        assert result.errors[0].startswith("p2:")
        assert result.rate_limited is False
        assert result.completed_at is not None

    @pytest.mark.asyncio
    async def test_events_tagged(self, scanner, github, sink):
        """Test events carry the pattern that found them."""
        github.search_repositories.side_effect = [[create_repo("a/one")], [], []]

        await scanner.scan_once(now=NOW)

        event = sink.await_args.args[0]
        assert event.pattern_id == "p1"
        assert event.origin == EventOrigin.SCAN
        assert github.search_repositories.call_args_list[0].kwargs["limit"] == 20

    @pytest.mark.asyncio
    async def test_rate_limit_ends_cycle(self, sink, github, scan_store):
        """Test a rate limit stops the cycle and still runs the hook."""
        hook = MagicMock()
        scanner = PatternScanner(sink, github, scan_store, on_cycle_complete=hook)
        github.search_repositories.side_effect = RateLimitError(service="github", retry_after=60)

        result = await scanner.scan_once(now=NOW)

        assert github.search_repositories.await_count == 1
        assert result.rate_limited is True
        assert result.patterns_scanned == 0
        hook.assert_called_once()

    @pytest.mark.asyncio
    async def test_outcomes_counted(self, scanner, github, sink):
        """Test admission outcomes are tallied."""
        github.search_repositories.side_effect = [
            [create_repo(f"a/r{i}") for i in range(4)],
            [],
            [],
        ]
        sink.side_effect = [
            admitted(),
            AdmissionResult(outcome=AdmissionOutcome.REJECTED),
            AdmissionResult(outcome=AdmissionOutcome.DUPLICATE_SKIPPED),
            None,
        ]

        result = await scanner.scan_once(now=NOW)

        assert result.candidates == 4
        assert (result.admitted, result.rejected, result.duplicates) == (1, 1, 1)

    @pytest.mark.asyncio
    async def test_stopped(self, scanner, github):
        """Test a stopped scanner searches nothing until restarted."""
        await scanner.stop()

        result = await scanner.scan_once(now=NOW)
        assert result.patterns_scanned == 0
        github.search_repositories.assert_not_awaited()

        await scanner.start()
        await scanner.scan_once(now=NOW)
        assert github.search_repositories.await_count == 3
