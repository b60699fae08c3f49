"""Enrichment services.

Admitted collection jobs are analyzed by a pool of asyncio workers:
1. Priority queue orders jobs by lane (high before normal)
2. Analyzer produces raw insights for a source
3. Worker pool drives each job to a terminal status
"""

from scout.services.enrichment.analyzer import (
    AnalysisResult,
    BaseAnalyzer,
    LLMAnalyzer,
    MetadataAnalyzer,
)
from scout.services.enrichment.priority_queue import TwoLaneQueue
from scout.services.enrichment.worker_pool import EnrichmentWorkerPool, clean_insights

__all__ = [
    "AnalysisResult",
    "BaseAnalyzer",
    "LLMAnalyzer",
    "MetadataAnalyzer",
    "TwoLaneQueue",
    "EnrichmentWorkerPool",
    "clean_insights",
]
