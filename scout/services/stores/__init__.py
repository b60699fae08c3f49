"""In-memory stores for patterns, thresholds, scoring models and jobs."""

from scout.services.stores.job_store import JobStore
from scout.services.stores.model_registry import ModelRegistry
from scout.services.stores.pattern_store import PatternStore

__all__ = ["JobStore", "ModelRegistry", "PatternStore"]
