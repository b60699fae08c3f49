"""Record models.

Models are plain pydantic records kept by the in-memory stores:
- DiscoveryPattern: what a relevant repository looks like
- ScoringModel: registered relevance model metadata
- CollectionJob: one unit of enrichment work
- MatchRecord: recent scored candidates
"""

from scout.models.base import RecordModel, new_id, utcnow
from scout.models.job import CollectionJob, EventOrigin, JobPriority, JobStatus, SourceType
from scout.models.match import MatchDecision, MatchRecord
from scout.models.pattern import DiscoveryPattern, PatternPriority, default_pattern
from scout.models.scoring_model import DEFAULT_MODEL_ROLE, ModelStatus, ModelType, ScoringModel

__all__ = [
    "RecordModel",
    "new_id",
    "utcnow",
    # Jobs
    "CollectionJob",
    "EventOrigin",
    "JobPriority",
    "JobStatus",
    "SourceType",
    # Matches
    "MatchDecision",
    "MatchRecord",
    # Patterns
    "DiscoveryPattern",
    "PatternPriority",
    "default_pattern",
    # Scoring models
    "DEFAULT_MODEL_ROLE",
    "ModelStatus",
    "ModelType",
    "ScoringModel",
]
