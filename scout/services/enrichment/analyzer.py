"""Source analysis step.

An analyzer turns a source URL and its candidate metadata into a list of
raw insights. The worker pool wraps each call in a deadline; analyzers do
not handle timeouts themselves.

Two implementations:
- MetadataAnalyzer: deterministic insights from the metadata (default)
- LLMAnalyzer: asks an LLM through LiteLLM and keeps one insight per bullet
"""

import re
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from scout.core.exceptions import EnrichmentError
from scout.core.logging import get_logger
from scout.infrastructure.llm import LLMClient, LLMConfig
from scout.models.job import SourceType
from scout.services.discovery.base import detect_source_type

logger = get_logger(__name__)

# Leading bullet markers: "-", "*", "•" or "1." / "1)"
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")

ANALYSIS_PROMPT = """Analyze this {source_type} source: {source_url}

Name: {full_name}
Description: {description}
Language: {language}
Stars: {star_count}
Topics: {topics}

List the insights that would be valuable for Apache Spark developers:
key technologies covered, practical value, maturity and notable features.
Answer with one insight per line, each line starting with "- "."""


class AnalysisResult(BaseModel):
    """Output of one analysis step.

    Attributes:
        insights: Raw insights, cleaned up by the worker pool
        summary: Optional one-line summary
        source_type: Detected kind of source
    """

    insights: list[str] = Field(default_factory=list)
    summary: str | None = None
    source_type: SourceType = SourceType.WEBSITE


class BaseAnalyzer(ABC):
    """Abstract base class for source analyzers."""

    @abstractmethod
    async def analyze(self, source_url: str, metadata: dict[str, Any]) -> AnalysisResult:
        """Analyze a source.

        Args:
            source_url: Normalized source URL
            metadata: Candidate metadata captured at admission

        Returns:
            AnalysisResult with raw insights

        Raises:
            Exception: Any failure; the worker pool records it on the job
        """
        pass


class MetadataAnalyzer(BaseAnalyzer):
    """Derives insights from the candidate metadata alone."""

    async def analyze(self, source_url: str, metadata: dict[str, Any]) -> AnalysisResult:
        source_type = detect_source_type(source_url)
        insights: list[str] = []

        if source_type == SourceType.GITHUB:
            insights.append(f"GitHub repository {metadata.get('full_name') or source_url}")
        elif source_type == SourceType.DOCUMENTATION:
            insights.append("Documentation source")

        description = (metadata.get("description") or "").strip()
        if description:
            insights.append(description)

        language = metadata.get("language")
        if language:
            insights.append(f"Primary language: {language}")

        stars = int(metadata.get("star_count") or 0)
        if stars >= 1000:
            insights.append(f"Widely adopted ({stars:,} stars)")
        elif stars >= 100:
            insights.append(f"Established project ({stars:,} stars)")

        age_days = metadata.get("age_days")
        if age_days is not None and age_days <= 90:
            insights.append(f"Recently created ({age_days} days old)")

        topics = metadata.get("topics") or []
        if topics:
            insights.append(f"Topics: {', '.join(topics)}")

        return AnalysisResult(
            insights=insights,
            summary=description or None,
            source_type=source_type,
        )


class LLMAnalyzer(BaseAnalyzer):
    """Summarizes a source with an LLM.

    Attributes:
        llm_client: LiteLLM-backed client
        config: Model and token settings
    """

    def __init__(self, llm_client: LLMClient, config: LLMConfig):
        """Initialize analyzer.

        Args:
            llm_client: LLM client
            config: LLM configuration
        """
        self.llm_client = llm_client
        self.config = config

    async def analyze(self, source_url: str, metadata: dict[str, Any]) -> AnalysisResult:
        """Ask the LLM for insights about the source.

        Raises:
            LLMError: If the completion fails
            EnrichmentError: If the answer holds no bullet lines
        """
        source_type = detect_source_type(source_url)
        prompt = ANALYSIS_PROMPT.format(
            source_type=source_type.value,
            source_url=source_url,
            full_name=metadata.get("full_name") or "unknown",
            description=metadata.get("description") or "No description provided",
            language=metadata.get("language") or "unknown",
            star_count=metadata.get("star_count", 0),
            topics=", ".join(metadata.get("topics") or []) or "none",
        )
        response = await self.llm_client.complete(
            config=self.config,
            messages=[{"role": "user", "content": prompt}],
        )
        insights = parse_bullets(response.content)
        if not insights:
            raise EnrichmentError("LLM returned no insights", source_url=source_url)

        logger.debug(
            "LLM analysis complete",
            source_url=source_url,
            model=response.model,
            insights=len(insights),
        )
        return AnalysisResult(insights=insights, source_type=source_type)


def parse_bullets(text: str) -> list[str]:
    """Extract bullet lines from LLM output.

    Lines without a bullet marker are ignored.

    Args:
        text: Raw completion text

    Returns:
        Bullet contents with markers stripped
    """
    insights = []
    for line in text.splitlines():
        match = _BULLET_RE.match(line)
        if match:
            content = line[match.end() :].strip()
            if content:
                insights.append(content)
    return insights


__all__ = [
    "AnalysisResult",
    "BaseAnalyzer",
    "LLMAnalyzer",
    "MetadataAnalyzer",
    "parse_bullets",
]
