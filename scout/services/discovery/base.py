"""Base interfaces and DTOs for candidate discovery.

This module defines the data structures shared by the event sources,
the relevance scorer and the admission controller, plus the URL
normalization that makes the dedup key stable across sources.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scout.config.validators import normalize_string_list
from scout.models.base import utcnow
from scout.models.job import EventOrigin, JobPriority, SourceType

# Hosts whose path is case-insensitive and may carry a .git suffix
_CASE_INSENSITIVE_HOSTS = {"github.com"}

# Path fragments that mark documentation sites
_DOC_MARKERS = ("docs", "documentation", "readthedocs", "wiki", "guide", "manual")


def normalize_source_url(url: str) -> str:
    """Normalize a source URL into its dedup key.

    Drops the scheme, lowercases the host, drops a leading "www.", drops the
    fragment and strips trailing slashes. For GitHub the path is lowercased
    and a ".git" suffix removed, so clone URLs and page URLs collapse.

    Args:
        url: Raw URL (with or without scheme)

    Returns:
        Normalized URL, e.g. "github.com/apache/spark"

    Raises:
        ValueError: If the URL has no host
    """
    raw = url.strip()
    if not raw:
        raise ValueError("URL is empty")
    if "://" not in raw:
        raw = f"//{raw}"

    parts = urlsplit(raw)
    host = (parts.hostname or "").lower()
    if not host:
        raise ValueError(f"URL has no host: {url!r}")
    if host.startswith("www."):
        host = host[4:]
    if parts.port:
        host = f"{host}:{parts.port}"

    path = parts.path.rstrip("/")
    if host in _CASE_INSENSITIVE_HOSTS:
        path = path.lower()
        if path.endswith(".git"):
            path = path[: -len(".git")]
        path = path.rstrip("/")

    normalized = f"{host}{path}"
    if parts.query:
        normalized = f"{normalized}?{parts.query}"
    return normalized


def detect_source_type(source_url: str) -> SourceType:
    """Classify a normalized URL.

    Args:
        source_url: Normalized URL

    Returns:
        GITHUB for github.com, DOCUMENTATION for doc-looking URLs, else WEBSITE
    """
    lowered = source_url.lower()
    if lowered.startswith("github.com"):
        return SourceType.GITHUB
    if any(marker in lowered for marker in _DOC_MARKERS):
        return SourceType.DOCUMENTATION
    return SourceType.WEBSITE


class CandidateMetadata(BaseModel):
    """Metadata observed for a candidate source.

    Attributes:
        full_name: "owner/name" for repositories
        description: Free-text description
        language: Primary language
        star_count: Stars at observation time
        age_days: Repository age in days (None if unknown)
        topics: Repository topics
    """

    model_config = ConfigDict(frozen=True)

    full_name: str | None = None
    description: str | None = None
    language: str | None = None
    star_count: int = Field(default=0, ge=0)
    age_days: int | None = Field(default=None, ge=0)
    topics: list[str] = Field(default_factory=list)

    @field_validator("topics", mode="before")
    @classmethod
    def lowercase_topics(cls, v: Any) -> list[str]:
        """Normalize topics to lowercase."""
        return normalize_string_list(v)

    @property
    def owner(self) -> str | None:
        """Owner part of full_name."""
        if self.full_name and "/" in self.full_name:
            return self.full_name.split("/", 1)[0]
        return None

    @property
    def repo_name(self) -> str | None:
        """Name part of full_name."""
        if self.full_name and "/" in self.full_name:
            return self.full_name.split("/", 1)[1]
        return self.full_name

    def searchable_text(self) -> str:
        """Lowercased text the keyword features look at."""
        parts = [self.full_name or "", self.description or "", " ".join(self.topics)]
        return " ".join(p for p in parts if p).lower()


class CandidateEvent(BaseModel):
    """A candidate source observed by one of the event sources.

    The source URL is normalized on construction.

    Attributes:
        source_url: Normalized URL
        origin: Adapter that produced the event
        metadata: Observed metadata
        observed_at: Observation time
        pattern_id: Pattern that produced the candidate (scanner only)
    """

    model_config = ConfigDict(frozen=True)

    source_url: str
    origin: EventOrigin
    metadata: CandidateMetadata = Field(default_factory=CandidateMetadata)
    observed_at: datetime = Field(default_factory=utcnow)
    pattern_id: str | None = None

    @field_validator("source_url", mode="before")
    @classmethod
    def normalize_url(cls, v: Any) -> str:
        """Normalize the URL into its dedup key."""
        if not isinstance(v, str):
            raise ValueError("source_url must be a string")
        return normalize_source_url(v)


class RecommendedPriority(str, Enum):
    """Priority a verdict recommends to admission."""

    HIGH = "high"
    NORMAL = "normal"
    SKIP = "skip"


class RelevanceVerdict(BaseModel):
    """Result of scoring one candidate.

    Attributes:
        score: Final score (0-100, full precision)
        rule_score: Rule-based score before the model blend
        matched_criteria: Criteria that contributed, in evaluation order
        model_confidence: Model confidence (0-1), None if not consulted
        recommended_priority: "high", "normal" or "skip"
        pattern_id: Pattern the verdict was computed against (None for default)
        vetoed: Whether an exclusion rule disqualified the candidate
    """

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=100.0)
    rule_score: float = Field(default=0.0, ge=0.0, le=100.0)
    matched_criteria: list[str] = Field(default_factory=list)
    model_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    recommended_priority: RecommendedPriority = RecommendedPriority.SKIP
    pattern_id: str | None = None
    vetoed: bool = False

    @property
    def display_score(self) -> int:
        """Score rounded for display."""
        return int(round(self.score))


class AdmissionOutcome(str, Enum):
    """Result of an admission decision."""

    REJECTED = "rejected"
    ADMITTED = "admitted"
    DUPLICATE_SKIPPED = "duplicate_skipped"


def job_priority_for(
    score: float, auto_collect_threshold: float, priority_threshold: float
) -> JobPriority:
    """Map an admitted score to a job priority.

    Args:
        score: Verdict score
        auto_collect_threshold: Auto-collect threshold
        priority_threshold: Priority threshold

    Returns:
        HIGH, NORMAL or REVIEW
    """
    if score >= priority_threshold:
        return JobPriority.HIGH
    if score >= auto_collect_threshold:
        return JobPriority.NORMAL
    return JobPriority.REVIEW


# Callback an event source uses to hand candidates to the pipeline
EventSink = Callable[[CandidateEvent], Awaitable[Any]]


class EventSource(ABC):
    """Abstract base class for candidate event sources.

    Each source (pattern scanner, webhook receiver) turns its raw input into
    CandidateEvents and hands them to a sink, normally
    DiscoveryPipeline.submit.
    """

    origin: EventOrigin

    def __init__(self, sink: EventSink):
        """Initialize event source.

        Args:
            sink: Async callable receiving each CandidateEvent
        """
        self.sink = sink

    @abstractmethod
    async def start(self) -> None:
        """Start producing events."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop producing events."""
        pass


__all__ = [
    "AdmissionOutcome",
    "CandidateEvent",
    "CandidateMetadata",
    "EventSink",
    "EventSource",
    "RecommendedPriority",
    "RelevanceVerdict",
    "detect_source_type",
    "job_priority_for",
    "normalize_source_url",
]
