"""Pattern scanner event source.

Searches GitHub for repositories matching each active discovery pattern
and submits every result as a CandidateEvent tagged with the pattern.

One scan cycle visits the active patterns in store order. A failing
pattern is logged and skipped; a rate limit ends the cycle early because
every further request would fail the same way.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from scout.config import ScannerConfig
from scout.core.exceptions import ExternalAPIError, RateLimitError
from scout.core.logging import get_logger
from scout.infrastructure.github import GitHubClient
from scout.models.base import utcnow
from scout.models.job import EventOrigin
from scout.models.pattern import DiscoveryPattern
from scout.services.discovery.base import (
    AdmissionOutcome,
    CandidateEvent,
    CandidateMetadata,
    EventSink,
    EventSource,
)
from scout.services.stores.pattern_store import PatternStore

logger = get_logger(__name__)

# Keep search queries short; GitHub rejects overly long queries
MAX_QUERY_KEYWORDS = 5


class ScanResult(BaseModel):
    """Result of one scan cycle.

    Attributes:
        started_at: Cycle start time
        completed_at: Cycle end time
        patterns_scanned: Patterns searched successfully
        candidates: Events submitted
        admitted: Events admitted
        rejected: Events rejected
        duplicates: Events skipped as duplicates
        invalid: Repositories that could not be turned into events
        errors: Error messages per failed pattern
        rate_limited: Whether the cycle ended on a rate limit
    """

    started_at: datetime
    completed_at: datetime | None = None
    patterns_scanned: int = 0
    candidates: int = 0
    admitted: int = 0
    rejected: int = 0
    duplicates: int = 0
    invalid: int = 0
    errors: list[str] = Field(default_factory=list)
    rate_limited: bool = False


def build_search_query(pattern: DiscoveryPattern, now: datetime) -> str:
    """Build a GitHub repository search query for a pattern.

    Args:
        pattern: Discovery pattern
        now: Reference time for the created:>= qualifier

    Returns:
        Query string, e.g. 'spark OR pyspark language:Scala stars:>=10 created:>=2023-01-01'
    """
    terms = [f'"{kw}"' if " " in kw else kw for kw in pattern.keywords[:MAX_QUERY_KEYWORDS]]
    parts = [" OR ".join(terms)] if terms else []
    parts.extend(f"language:{lang}" for lang in pattern.language_filters)
    if pattern.min_stars > 0:
        parts.append(f"stars:>={pattern.min_stars}")
    if pattern.max_age_days is not None:
        since = (now - timedelta(days=pattern.max_age_days)).date().isoformat()
        parts.append(f"created:>={since}")
    return " ".join(parts)


def repository_to_event(
    repo: dict[str, Any], pattern_id: str | None, now: datetime
) -> CandidateEvent:
    """Convert a GitHub repository object into a candidate event.

    Args:
        repo: Repository object from the search API
        pattern_id: Pattern that found the repository
        now: Observation time (age is computed against it)

    Returns:
        CandidateEvent

    Raises:
        ValidationError: If the repository object is malformed
        ValueError: If a field cannot be parsed
    """
    age_days = None
    created_at = repo.get("created_at")
    if created_at:
        created = datetime.fromisoformat(str(created_at).replace("Z", "+00:00"))
        age_days = max(0, (now - created).days)

    return CandidateEvent(
        source_url=repo.get("html_url") or "",
        origin=EventOrigin.SCAN,
        observed_at=now,
        pattern_id=pattern_id,
        metadata=CandidateMetadata(
            full_name=repo.get("full_name"),
            description=repo.get("description"),
            language=repo.get("language"),
            star_count=repo.get("stargazers_count") or 0,
            age_days=age_days,
            topics=repo.get("topics") or [],
        ),
    )


class PatternScanner(EventSource):
    """GitHub pattern scanner.

    The scan timer lives in scout.workers.scheduler; this class runs one
    cycle per scan_once() call.

    Attributes:
        github: GitHub search client
        pattern_store: Source of active patterns
        config: Scanner configuration
        on_cycle_complete: Called after each cycle (e.g. to backfill deferred jobs)
    """

    origin = EventOrigin.SCAN

    def __init__(
        self,
        sink: EventSink,
        github: GitHubClient,
        pattern_store: PatternStore,
        config: ScannerConfig | None = None,
        on_cycle_complete: Callable[[], Any] | None = None,
    ):
        """Initialize scanner.

        Args:
            sink: Async callable receiving each CandidateEvent
            github: GitHub search client
            pattern_store: Pattern store
            config: Scanner configuration (uses defaults if not provided)
            on_cycle_complete: Hook called after every cycle
        """
        super().__init__(sink)
        self.github = github
        self.pattern_store = pattern_store
        self.config = config or ScannerConfig()
        self.on_cycle_complete = on_cycle_complete
        self._stopped = False

    async def start(self) -> None:
        self._stopped = False
        logger.info(
            "Pattern scanner ready",
            interval_minutes=self.config.interval_minutes,
            max_results_per_pattern=self.config.max_results_per_pattern,
        )

    async def stop(self) -> None:
        """Stop after the pattern being scanned."""
        self._stopped = True
        logger.info("Pattern scanner stopped")

    async def scan_once(self, now: datetime | None = None) -> ScanResult:
        """Run one scan cycle over the active patterns.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            ScanResult with per-cycle counts
        """
        now = now or utcnow()
        result = ScanResult(started_at=now)
        patterns = self.pattern_store.list_patterns(active_only=True)

        logger.info("Scan cycle started", patterns=len(patterns))

        for pattern in patterns:
            if self._stopped:
                break

            query = build_search_query(pattern, now)
            try:
                repos = await self.github.search_repositories(
                    query, limit=self.config.max_results_per_pattern
                )
            except RateLimitError as e:
                logger.warning("Scan cycle rate limited", pattern_id=pattern.id, **e.context)
                result.errors.append(f"{pattern.id}: {e}")
                result.rate_limited = True
                break
            except ExternalAPIError as e:
                logger.warning("Pattern scan failed", pattern_id=pattern.id, error=str(e))
                result.errors.append(f"{pattern.id}: {e}")
                continue

            result.patterns_scanned += 1
            for repo in repos:
                await self._submit(repo, pattern.id, now, result)

        result.completed_at = utcnow()
        logger.info(
            "Scan cycle complete",
            patterns_scanned=result.patterns_scanned,
            candidates=result.candidates,
            admitted=result.admitted,
            errors=len(result.errors),
            rate_limited=result.rate_limited,
        )

        if self.on_cycle_complete is not None:
            self.on_cycle_complete()
        return result

    async def _submit(
        self, repo: dict[str, Any], pattern_id: str, now: datetime, result: ScanResult
    ) -> None:
        try:
            event = repository_to_event(repo, pattern_id, now)
        except (ValidationError, ValueError) as e:
            result.invalid += 1
            logger.debug("Malformed repository skipped", repo=repo.get("full_name"), error=str(e))
            return

        result.candidates += 1
        admission = await self.sink(event)
        if admission is None:
            return
        if admission.outcome == AdmissionOutcome.ADMITTED:
            result.admitted += 1
        elif admission.outcome == AdmissionOutcome.REJECTED:
            result.rejected += 1
        else:
            result.duplicates += 1


__all__ = [
    "PatternScanner",
    "ScanResult",
    "build_search_query",
    "repository_to_event",
]
