"""Unit tests for PatternStore."""

import pytest

from scout.core.exceptions import (
    ConfigInvariantViolation,
    ConfigValidationError,
    RecordNotFoundError,
)
from scout.models.base import utcnow
from scout.models.pattern import DiscoveryPattern
from scout.services.stores.pattern_store import PatternStore


class TestPatterns:
    """Tests for pattern CRUD."""

    def test_seeded_store(self):
        """Test seed patterns load from defaults.yaml in order."""
        store = PatternStore.with_seed_patterns()

        ids = [p.id for p in store.list_patterns()]

        assert ids == [
            "official-apache-spark",
            "spark-ml-analytics",
            "spark-streaming",
            "spark-infrastructure",
        ]
        assert store.get("spark-streaming").auto_collect is False

    def test_add_duplicate_id(self, pattern_store, spark_pattern):
        """Test pattern IDs are unique."""
        with pytest.raises(ConfigValidationError, match="already exists"):
            pattern_store.add(spark_pattern)

    def test_get_unknown(self, pattern_store):
        """Test unknown pattern IDs raise."""
        with pytest.raises(RecordNotFoundError):
            pattern_store.get("missing")

    def test_update_field(self, pattern_store):
        """Test a field update bumps the version."""
        updated = pattern_store.update("spark", {"min_stars": 50, "keywords": ["Spark", "MLlib"]})

        assert updated.min_stars == 50
        assert updated.keywords == ["spark", "mllib"]
        assert updated.version == 2
        assert pattern_store.get("spark").min_stars == 50

    def test_invalid_update_keeps_prior(self, pattern_store):
        """Test a rejected update leaves the pattern unchanged."""
        with pytest.raises(ConfigValidationError) as exc_info:
            pattern_store.update("spark", {"relevance_threshold": 150})

        assert exc_info.value.field == "relevance_threshold"
        pattern = pattern_store.get("spark")
        assert pattern.relevance_threshold == 75
        assert pattern.version == 1

    def test_update_unknown_field(self, pattern_store):
        """Test unknown fields are refused."""
        with pytest.raises(ConfigValidationError, match="unknown pattern field"):
            pattern_store.update("spark", {"colour": "blue"})

    def test_update_managed_field(self, pattern_store):
        """Test store-managed fields are refused."""
        with pytest.raises(ConfigValidationError, match="managed"):
            pattern_store.update("spark", {"total_matches": 10})

    def test_replace_resets_unspecified_fields(self, pattern_store):
        """Test replace falls back to defaults but keeps identity and counters."""
        pattern_store.record_match("spark")

        replaced = pattern_store.replace(
            "spark", {"name": "Spark v2", "keywords": ["pyspark"], "id": "hijack"}
        )

        assert replaced.id == "spark"
        assert replaced.name == "Spark v2"
        assert replaced.min_stars == 0
        assert replaced.exclude_keywords == []
        assert replaced.total_matches == 1
        assert replaced.version == 2

    def test_deactivate(self, pattern_store):
        """Test soft delete hides the pattern from active listings."""
        pattern_store.deactivate("spark")

        assert pattern_store.list_patterns(active_only=True) == []
        assert len(pattern_store.list_patterns()) == 1

    def test_record_match(self, pattern_store):
        """Test match counters."""
        matched_at = utcnow()
        pattern_store.record_match("spark", matched_at)
        pattern_store.record_match("unknown")

        pattern = pattern_store.get("spark")
        assert pattern.total_matches == 1
        assert pattern.last_matched_at == matched_at

    def test_list_returns_copies(self, pattern_store):
        """Test callers cannot mutate stored patterns."""
        pattern_store.list_patterns()[0].keywords.append("hadoop")

        assert pattern_store.get("spark").keywords == ["spark"]

    def test_add_new_pattern(self, pattern_store):
        """Test added patterns are listed after existing ones."""
        pattern_store.add(DiscoveryPattern(id="kafka", keywords=["kafka"]))

        assert [p.id for p in pattern_store.list_patterns()] == ["spark", "kafka"]


class TestThresholds:
    """Tests for the threshold record."""

    def test_defaults(self):
        """Test a fresh store uses defaults.yaml thresholds."""
        thresholds = PatternStore().thresholds()

        assert thresholds.minimum_relevance_score == 60
        assert thresholds.version == 1

    def test_set_thresholds(self, pattern_store):
        """Test a valid write replaces all three and bumps the version."""
        updated = pattern_store.set_thresholds(50, 70, 90)

        assert (
            updated.minimum_relevance_score,
            updated.auto_collect_threshold,
            updated.priority_threshold,
        ) == (50, 70, 90)
        assert updated.version == 2
        assert pattern_store.thresholds() == updated

    @pytest.mark.parametrize(
        "minimum,auto,priority",
        [(80, 75, 85), (60, 90, 85)],
    )
    def test_order_violation_keeps_prior(self, pattern_store, minimum, auto, priority):
        """Test an out-of-order write is rejected atomically."""
        before = pattern_store.thresholds()

        with pytest.raises(ConfigInvariantViolation):
            pattern_store.set_thresholds(minimum, auto, priority)

        assert pattern_store.thresholds() == before

    def test_single_field_update_checked(self, pattern_store):
        """Test single-field writes are checked against the others."""
        with pytest.raises(ConfigInvariantViolation):
            pattern_store.update_thresholds(minimum_relevance_score=95)

        assert pattern_store.thresholds().minimum_relevance_score == 60

    def test_switch_update(self, pattern_store):
        """Test switches can be written alone."""
        updated = pattern_store.update_thresholds(auto_collect_enabled=False)

        assert updated.auto_collect_enabled is False
        assert updated.minimum_relevance_score == 60

    def test_unknown_threshold_field(self, pattern_store):
        """Test unknown fields are refused."""
        with pytest.raises(ConfigInvariantViolation, match="unknown threshold field"):
            pattern_store.update_thresholds(maximum=5)

    def test_version_not_writable(self, pattern_store):
        """Test a client-supplied version is ignored."""
        updated = pattern_store.update_thresholds(version=99, priority_threshold=90)

        assert updated.version == 2
