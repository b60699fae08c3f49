"""Configuration models."""

from scout.config.discovery import MatchHistoryConfig, ScannerConfig, WebhookConfig
from scout.config.enrichment import ProgressSteps, WorkerPoolConfig
from scout.config.relevance import BlendConfig, RelevanceSettings, ScoringConfig, ScoringWeights

__all__ = [
    # Discovery
    "ScannerConfig",
    "WebhookConfig",
    "MatchHistoryConfig",
    # Enrichment
    "ProgressSteps",
    "WorkerPoolConfig",
    # Relevance
    "ScoringWeights",
    "BlendConfig",
    "ScoringConfig",
    "RelevanceSettings",
]
