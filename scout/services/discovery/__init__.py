"""Candidate discovery services.

This package turns candidate sources into scored, admitted jobs:
1. Event sources (scanner, webhook) produce CandidateEvents
2. Scorer computes a RelevanceVerdict against the discovery patterns
3. Admission controller creates at most one active job per URL
4. Pipeline facade ties the steps to the stores and the worker pool

Admission, pipeline and sources are imported from their modules directly.
"""

from scout.services.discovery.base import (
    AdmissionOutcome,
    CandidateEvent,
    CandidateMetadata,
    EventSource,
    RecommendedPriority,
    RelevanceVerdict,
    detect_source_type,
    normalize_source_url,
)
from scout.services.discovery.predictor import LogisticPredictor, RelevancePredictor
from scout.services.discovery.scorer import RelevanceScorer, RuleFeatures

__all__ = [
    # Base DTOs
    "AdmissionOutcome",
    "CandidateEvent",
    "CandidateMetadata",
    "EventSource",
    "RecommendedPriority",
    "RelevanceVerdict",
    "detect_source_type",
    "normalize_source_url",
    # Predictors
    "LogisticPredictor",
    "RelevancePredictor",
    # Scorer
    "RelevanceScorer",
    "RuleFeatures",
]
