"""Discovery pattern record.

A pattern describes what a relevant repository looks like: keywords to look
for, keywords that veto a candidate, language and popularity filters, and
name/author/description patterns carried over from the discovery UI.
"""

import enum
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from scout.config.validators import normalize_string_list
from scout.core.config_loader import load_section
from scout.models.base import RecordModel


class PatternPriority(str, enum.Enum):
    """Operator-facing importance of a pattern (informational)."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DiscoveryPattern(RecordModel):
    """Configured discovery pattern.

    Attributes:
        name: Display name
        description: Free-text description
        priority: Informational importance
        keywords: Include keywords (lowercased)
        exclude_keywords: Keywords that veto a candidate (lowercased)
        language_filters: Allowed languages; empty allows any
        min_stars: Minimum star count for star credit
        max_age_days: Maximum repository age; None for unlimited
        author_patterns: Glob patterns for the repository owner
        repo_name_patterns: Glob patterns for the repository name
        description_patterns: Phrases looked for in the description
        relevance_threshold: Score at which a candidate counts as a pattern match
        auto_collect: Whether admitted jobs from this pattern may be auto-dispatched
        weight: Multiplier applied to the rule score (0-1)
        is_active: Soft-delete flag
        total_matches: Number of candidates that matched
        last_matched_at: Time of the most recent match
        version: Incremented by the store on every write
    """

    name: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=2000)
    priority: PatternPriority = Field(default=PatternPriority.MEDIUM)
    keywords: list[str] = Field(default_factory=list)
    exclude_keywords: list[str] = Field(default_factory=list)
    language_filters: list[str] = Field(default_factory=list)
    min_stars: int = Field(default=0, ge=0)
    max_age_days: int | None = Field(default=None, ge=0)
    author_patterns: list[str] = Field(default_factory=list)
    repo_name_patterns: list[str] = Field(default_factory=list)
    description_patterns: list[str] = Field(default_factory=list)
    relevance_threshold: float = Field(default=75, ge=0, le=100)
    auto_collect: bool = Field(default=True)
    weight: float = Field(default=1.0, ge=0, le=1)
    is_active: bool = Field(default=True)
    total_matches: int = Field(default=0, ge=0)
    last_matched_at: datetime | None = None
    version: int = Field(default=1, ge=1)

    @field_validator(
        "keywords",
        "exclude_keywords",
        "author_patterns",
        "repo_name_patterns",
        "description_patterns",
        mode="before",
    )
    @classmethod
    def lowercase_terms(cls, v: Any) -> list[str]:
        """Normalize match terms to lowercase."""
        return normalize_string_list(v)

    @field_validator("language_filters", mode="before")
    @classmethod
    def strip_languages(cls, v: Any) -> list[str]:
        """Keep language display names, dropping blanks."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [s.strip() for s in v if isinstance(s, str) and s.strip()]

    def allows_language(self, language: str | None) -> bool:
        """Check the language allow-list (case-insensitive).

        Args:
            language: Candidate language, may be None

        Returns:
            True if the list is empty or contains the language
        """
        if not self.language_filters:
            return True
        if not language:
            return False
        return language.lower() in {lang.lower() for lang in self.language_filters}


def default_pattern() -> DiscoveryPattern:
    """Build the built-in fallback pattern from defaults.yaml.

    Used whenever a candidate cannot be matched to a configured pattern.

    Returns:
        Permissive, low-weight DiscoveryPattern
    """
    raw = load_section("discovery").get("default_pattern") or {}
    values = {
        "id": "default",
        "name": "Built-in fallback",
        "auto_collect": False,
        "relevance_threshold": 0,
        "weight": 0.5,
    }
    values.update(raw if isinstance(raw, dict) else {})
    return DiscoveryPattern.model_validate(values)


__all__ = ["DiscoveryPattern", "PatternPriority", "default_pattern"]
