"""Unit tests for discovery DTOs and URL normalization."""

import pytest
from pydantic import ValidationError

from scout.models.job import EventOrigin, JobPriority, SourceType
from scout.services.discovery.base import (
    CandidateEvent,
    CandidateMetadata,
    RelevanceVerdict,
    detect_source_type,
    job_priority_for,
    normalize_source_url,
)


class TestNormalizeSourceUrl:
    """Tests for normalize_source_url."""

    @pytest.mark.parametrize(
        "raw",
        [
            "https://github.com/apache/spark",
            "http://github.com/apache/spark/",
            "https://www.github.com/Apache/Spark",
            "https://github.com/apache/spark.git",
            "github.com/apache/spark",
            "https://GITHUB.com/apache/spark#readme",
        ],
    )
    def test_github_variants_collapse(self, raw):
        """Test that GitHub URL variants share one dedup key."""
        assert normalize_source_url(raw) == "github.com/apache/spark"

    def test_non_github_path_keeps_case(self):
        """Test that only GitHub paths are lowercased."""
        assert (
            normalize_source_url("https://Spark.Apache.org/docs/Latest/")
            == "spark.apache.org/docs/Latest"
        )

    def test_query_kept_and_port_kept(self):
        """Test query string and explicit port survive."""
        assert (
            normalize_source_url("http://localhost:8080/page?id=3#top")
            == "localhost:8080/page?id=3"
        )

    @pytest.mark.parametrize("raw", ["", "   ", "https://", "/just/a/path"])
    def test_invalid_urls(self, raw):
        """Test URLs without a host are rejected."""
        with pytest.raises(ValueError):
            normalize_source_url(raw)


class TestDetectSourceType:
    """Tests for detect_source_type."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("github.com/apache/spark", SourceType.GITHUB),
            ("spark.apache.org/docs/latest", SourceType.DOCUMENTATION),
            ("pyspark.readthedocs.io", SourceType.DOCUMENTATION),
            ("databricks.com/blog", SourceType.WEBSITE),
        ],
    )
    def test_detection(self, url, expected):
        """Test URL classification."""
        assert detect_source_type(url) == expected


class TestCandidateMetadata:
    """Tests for CandidateMetadata."""

    def test_owner_and_repo_name(self):
        """Test full_name split."""
        meta = CandidateMetadata(full_name="apache/spark")
        assert meta.owner == "apache"
        assert meta.repo_name == "spark"

    def test_no_owner_without_slash(self):
        """Test full_name without owner."""
        meta = CandidateMetadata(full_name="spark")
        assert meta.owner is None
        assert meta.repo_name == "spark"

    def test_searchable_text(self):
        """Test searchable text joins name, description and topics."""
        meta = CandidateMetadata(
            full_name="Apache/Spark", description="Unified Engine", topics=["Big-Data"]
        )
        assert meta.searchable_text() == "apache/spark unified engine big-data"

    def test_negative_stars_rejected(self):
        """Test star count must be non-negative."""
        with pytest.raises(ValidationError):
            CandidateMetadata(star_count=-1)


class TestCandidateEvent:
    """Tests for CandidateEvent."""

    def test_url_normalized(self):
        """Test the URL is normalized on construction."""
        event = CandidateEvent(
            source_url="https://github.com/Apache/Spark.git", origin=EventOrigin.SCAN
        )
        assert event.source_url == "github.com/apache/spark"

    def test_invalid_url_rejected(self):
        """Test a URL without host fails validation."""
        with pytest.raises(ValidationError):
            CandidateEvent(source_url="", origin=EventOrigin.WEBHOOK)

    def test_frozen(self):
        """Test events are immutable."""
        event = CandidateEvent(source_url="github.com/a/b", origin=EventOrigin.SCAN)
        with pytest.raises(ValidationError):
            event.source_url = "github.com/c/d"


class TestVerdictHelpers:
    """Tests for verdict helpers."""

    def test_display_score_rounds(self):
        """Test display score rounding."""
        assert RelevanceVerdict(score=84.6).display_score == 85
        assert RelevanceVerdict(score=59.0).display_score == 59

    @pytest.mark.parametrize(
        "score,expected",
        [
            (90, JobPriority.HIGH),
            (85, JobPriority.HIGH),
            (80, JobPriority.NORMAL),
            (75, JobPriority.NORMAL),
            (70, JobPriority.REVIEW),
        ],
    )
    def test_job_priority_for(self, score, expected):
        """Test score to priority mapping with thresholds (75, 85)."""
        assert job_priority_for(score, 75, 85) == expected
