"""Discovery pattern and relevance threshold store.

Holds the configured discovery patterns and the single RelevanceSettings
record. Both are versioned: every accepted write increments the version.
Writes are validated as a whole before they replace the stored record, so
a rejected write leaves the prior record in place.
"""

import threading
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from scout.config import RelevanceSettings
from scout.core.config_loader import load_seed_patterns
from scout.core.exceptions import (
    ConfigInvariantViolation,
    ConfigValidationError,
    RecordNotFoundError,
)
from scout.core.logging import get_logger
from scout.models.base import utcnow
from scout.models.pattern import DiscoveryPattern

logger = get_logger(__name__)

# Fields managed by the store, never taken from a client write
_MANAGED_PATTERN_FIELDS = {"id", "created_at", "version", "total_matches", "last_matched_at"}


def _first_error(exc: ValidationError) -> tuple[str, str]:
    """Extract (field, message) from the first pydantic error."""
    errors = exc.errors()
    if not errors:
        return "record", str(exc)
    loc = ".".join(str(part) for part in errors[0].get("loc", ())) or "record"
    return loc, errors[0].get("msg", str(exc))


class PatternStore:
    """Thread-safe store for discovery patterns and thresholds.

    Patterns keep insertion order; list_patterns returns them in that order,
    which is also the tie-break order when several patterns score equally.
    """

    def __init__(
        self,
        patterns: list[DiscoveryPattern] | None = None,
        thresholds: RelevanceSettings | None = None,
    ):
        """Initialize pattern store.

        Args:
            patterns: Initial patterns
            thresholds: Initial threshold record (defaults.yaml if not provided)
        """
        self._lock = threading.Lock()
        self._patterns: dict[str, DiscoveryPattern] = {}
        self._thresholds = thresholds or RelevanceSettings.from_defaults()
        for pattern in patterns or []:
            self._patterns[pattern.id] = pattern.model_copy(deep=True)

    @classmethod
    def with_seed_patterns(cls, thresholds: RelevanceSettings | None = None) -> "PatternStore":
        """Create a store seeded with the default patterns from defaults.yaml.

        Raises:
            ConfigValidationError: If a seed pattern is invalid
        """
        patterns = []
        for raw in load_seed_patterns():
            try:
                patterns.append(DiscoveryPattern.model_validate(raw))
            except ValidationError as e:
                field, reason = _first_error(e)
                raise ConfigValidationError(
                    field=field,
                    reason=reason,
                    config_path=f"discovery.seed_patterns[{raw.get('id', '?')}]",
                ) from e
        logger.info("Seed patterns loaded", count=len(patterns))
        return cls(patterns=patterns, thresholds=thresholds)

    # =========================================================================
    # Patterns
    # =========================================================================

    def add(self, pattern: DiscoveryPattern) -> DiscoveryPattern:
        """Add a new pattern.

        Raises:
            ConfigValidationError: If a pattern with the same ID exists
        """
        with self._lock:
            if pattern.id in self._patterns:
                raise ConfigValidationError(
                    field="id", value=pattern.id, reason="pattern already exists"
                )
            stored = pattern.model_copy(deep=True)
            self._patterns[stored.id] = stored

        logger.info("Pattern added", pattern_id=stored.id, name=stored.name)
        return stored.model_copy(deep=True)

    def get(self, pattern_id: str) -> DiscoveryPattern:
        """Get a pattern by ID.

        Raises:
            RecordNotFoundError: If no such pattern exists
        """
        with self._lock:
            return self._require(pattern_id).model_copy(deep=True)

    def list_patterns(self, active_only: bool = False) -> list[DiscoveryPattern]:
        """List patterns in insertion order."""
        with self._lock:
            return [
                p.model_copy(deep=True)
                for p in self._patterns.values()
                if p.is_active or not active_only
            ]

    def replace(self, pattern_id: str, values: dict[str, Any]) -> DiscoveryPattern:
        """Replace a pattern's configurable fields.

        Fields not given fall back to model defaults.

        Raises:
            RecordNotFoundError: If no such pattern exists
            ConfigValidationError: If the new record is invalid
        """
        with self._lock:
            current = self._require(pattern_id)
            clean = {k: v for k, v in values.items() if k not in _MANAGED_PATTERN_FIELDS}
            updated = self._validated(current, clean)
            self._patterns[pattern_id] = updated

        logger.info("Pattern replaced", pattern_id=pattern_id, version=updated.version)
        return updated.model_copy(deep=True)

    def update(self, pattern_id: str, changes: dict[str, Any]) -> DiscoveryPattern:
        """Update individual fields of a pattern.

        Raises:
            RecordNotFoundError: If no such pattern exists
            ConfigValidationError: If a field is unknown or the result is invalid
        """
        unknown = set(changes) - set(DiscoveryPattern.model_fields)
        if unknown:
            raise ConfigValidationError(
                field=sorted(unknown)[0], reason="unknown pattern field"
            )
        managed = set(changes) & _MANAGED_PATTERN_FIELDS
        if managed:
            raise ConfigValidationError(
                field=sorted(managed)[0], reason="field is managed by the store"
            )

        with self._lock:
            current = self._require(pattern_id)
            values = current.model_dump(exclude=_MANAGED_PATTERN_FIELDS)
            values.update(changes)
            updated = self._validated(current, values)
            self._patterns[pattern_id] = updated

        logger.info(
            "Pattern updated",
            pattern_id=pattern_id,
            fields=sorted(changes),
            version=updated.version,
        )
        return updated.model_copy(deep=True)

    def deactivate(self, pattern_id: str) -> DiscoveryPattern:
        """Soft-delete a pattern."""
        return self.update(pattern_id, {"is_active": False})

    def record_match(self, pattern_id: str, matched_at: datetime | None = None) -> None:
        """Increment a pattern's match counter.

        Unknown IDs (e.g. the built-in default pattern) are ignored.
        """
        with self._lock:
            pattern = self._patterns.get(pattern_id)
            if pattern is None:
                return
            pattern.total_matches += 1
            pattern.last_matched_at = matched_at or utcnow()

    # =========================================================================
    # Thresholds
    # =========================================================================

    def thresholds(self) -> RelevanceSettings:
        """Get the current threshold record."""
        with self._lock:
            return self._thresholds.model_copy()

    def set_thresholds(
        self,
        minimum_relevance_score: float,
        auto_collect_threshold: float,
        priority_threshold: float,
    ) -> RelevanceSettings:
        """Replace the three thresholds in one write.

        Raises:
            ConfigInvariantViolation: If the ordering invariant would break
        """
        return self.update_thresholds(
            minimum_relevance_score=minimum_relevance_score,
            auto_collect_threshold=auto_collect_threshold,
            priority_threshold=priority_threshold,
        )

    def update_thresholds(self, **changes: Any) -> RelevanceSettings:
        """Update threshold fields and switches.

        Args:
            **changes: RelevanceSettings fields to change

        Returns:
            New threshold record

        Raises:
            ConfigInvariantViolation: If the write is invalid; prior values are kept
        """
        changes.pop("version", None)
        unknown = set(changes) - set(RelevanceSettings.model_fields)
        if unknown:
            raise ConfigInvariantViolation(
                field=sorted(unknown)[0], reason="unknown threshold field"
            )

        with self._lock:
            current = self._thresholds
            values = {**current.model_dump(), **changes, "version": current.version + 1}
            try:
                updated = RelevanceSettings.model_validate(values)
            except ValidationError as e:
                field, reason = _first_error(e)
                logger.warning(
                    "Threshold write rejected",
                    field=field,
                    reason=reason,
                    version=current.version,
                )
                raise ConfigInvariantViolation(
                    field=field, reason=reason, config_path="relevance"
                ) from e
            self._thresholds = updated

        logger.info(
            "Thresholds updated",
            minimum=updated.minimum_relevance_score,
            auto_collect=updated.auto_collect_threshold,
            priority=updated.priority_threshold,
            version=updated.version,
        )
        return updated.model_copy()

    # =========================================================================
    # Internal helpers (caller holds the lock)
    # =========================================================================

    def _require(self, pattern_id: str) -> DiscoveryPattern:
        pattern = self._patterns.get(pattern_id)
        if pattern is None:
            raise RecordNotFoundError("DiscoveryPattern", pattern_id)
        return pattern

    def _validated(self, current: DiscoveryPattern, values: dict[str, Any]) -> DiscoveryPattern:
        record = {
            **values,
            "id": current.id,
            "created_at": current.created_at,
            "total_matches": current.total_matches,
            "last_matched_at": current.last_matched_at,
            "version": current.version + 1,
        }
        try:
            return DiscoveryPattern.model_validate(record)
        except ValidationError as e:
            field, reason = _first_error(e)
            raise ConfigValidationError(
                field=field, reason=reason, config_path=f"patterns.{current.id}"
            ) from e


__all__ = ["PatternStore"]
