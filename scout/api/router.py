"""FastAPI router for the discovery pipeline.

Exposes the webhook receiver, job operations, relevance preview, threshold
and pattern configuration, the match feed and pipeline statistics. The
router is a thin shell over DiscoveryPipeline and WebhookReceiver.
"""

# FastAPI needs runtime annotations for Depends()/Query(); do not add
# `from __future__ import annotations` here.

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from scout.config import RelevanceSettings
from scout.core.exceptions import (
    ConfigInvariantViolation,
    ConfigValidationError,
    DuplicateJobError,
    EventValidationError,
    RecordNotFoundError,
    RetryLimitExceededError,
    ScoutError,
    WebhookSignatureError,
)
from scout.core.logging import get_logger
from scout.core.state_machine import InvalidTransitionError
from scout.models.job import CollectionJob, EventOrigin, JobPriority, JobStatus
from scout.models.match import MatchRecord
from scout.models.pattern import DiscoveryPattern
from scout.services.discovery.base import CandidateMetadata, RelevanceVerdict
from scout.services.discovery.pipeline import DiscoveryPipeline
from scout.services.discovery.sources.webhook import WebhookReceiver, WebhookResult

logger = get_logger(__name__)

# Most specific first
_STATUS_BY_ERROR: list[tuple[type[ScoutError], int]] = [
    (RecordNotFoundError, status.HTTP_404_NOT_FOUND),
    (WebhookSignatureError, status.HTTP_401_UNAUTHORIZED),
    (EventValidationError, status.HTTP_400_BAD_REQUEST),
    (ConfigInvariantViolation, status.HTTP_409_CONFLICT),
    (ConfigValidationError, 422),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (RetryLimitExceededError, status.HTTP_409_CONFLICT),
    (DuplicateJobError, status.HTTP_409_CONFLICT),
]


def to_http_error(error: ScoutError) -> HTTPException:
    """Map a domain error to an HTTP error response."""
    code = next(
        (code for exc_type, code in _STATUS_BY_ERROR if isinstance(error, exc_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return HTTPException(status_code=code, detail=error.to_dict())


class EvaluateRequest(BaseModel):
    """Relevance preview request."""

    url: str = Field(..., min_length=1)
    metadata: CandidateMetadata = Field(default_factory=CandidateMetadata)
    pattern_id: str | None = None


class EvaluateResponse(BaseModel):
    """Relevance preview response."""

    verdict: RelevanceVerdict
    display_score: int


class ThresholdsWrite(BaseModel):
    """Threshold write; the three thresholds are written together."""

    minimum_relevance_score: float
    auto_collect_threshold: float
    priority_threshold: float
    auto_collect_enabled: bool | None = None
    use_model_scoring: bool | None = None


def create_router(
    *,
    get_pipeline: Any,
    get_webhook_receiver: Any,
) -> APIRouter:
    """Create the API router.

    Args:
        get_pipeline: Dependency callable returning the DiscoveryPipeline
        get_webhook_receiver: Dependency callable returning the WebhookReceiver

    Returns:
        Configured APIRouter ready to be mounted on a FastAPI app.
    """
    router = APIRouter(prefix="/api/v1")

    Pipeline = Annotated[DiscoveryPipeline, Depends(get_pipeline)]
    Receiver = Annotated[WebhookReceiver, Depends(get_webhook_receiver)]

    # ============================================
    # Webhooks
    # ============================================

    @router.post(
        "/webhooks/github",
        response_model=WebhookResult,
        status_code=status.HTTP_202_ACCEPTED,
        tags=["webhooks"],
    )
    async def receive_webhook(
        request: Request,
        receiver: Receiver,
        x_github_event: Annotated[str | None, Header()] = None,
        x_hub_signature_256: Annotated[str | None, Header()] = None,
    ) -> WebhookResult:
        """Receive a repository webhook delivery."""
        body = await request.body()
        try:
            return await receiver.handle(
                body, signature=x_hub_signature_256, event_header=x_github_event
            )
        except (WebhookSignatureError, EventValidationError) as e:
            logger.warning("Webhook delivery rejected", **e.to_dict())
            raise to_http_error(e) from e

    # ============================================
    # Jobs
    # ============================================

    @router.get("/jobs", response_model=list[CollectionJob], tags=["jobs"])
    async def list_jobs(
        pipeline: Pipeline,
        job_status: Annotated[JobStatus | None, Query(alias="status")] = None,
        priority: Annotated[JobPriority | None, Query()] = None,
        origin: Annotated[EventOrigin | None, Query()] = None,
    ) -> list[CollectionJob]:
        """List collection jobs, oldest first."""
        return pipeline.list_jobs(status=job_status, priority=priority, origin=origin)

    @router.get("/jobs/{job_id}", response_model=CollectionJob, tags=["jobs"])
    async def get_job(job_id: str, pipeline: Pipeline) -> CollectionJob:
        """Get one collection job."""
        try:
            return pipeline.get_job(job_id)
        except ScoutError as e:
            raise to_http_error(e) from e

    @router.post("/jobs/{job_id}/retry", response_model=CollectionJob, tags=["jobs"])
    async def retry_job(job_id: str, pipeline: Pipeline) -> CollectionJob:
        """Retry a failed job."""
        try:
            return pipeline.retry(job_id)
        except ScoutError as e:
            raise to_http_error(e) from e

    @router.post("/jobs/{job_id}/promote", response_model=CollectionJob, tags=["jobs"])
    async def promote_job(job_id: str, pipeline: Pipeline) -> CollectionJob:
        """Promote a review job to auto-dispatch."""
        try:
            return pipeline.promote(job_id)
        except ScoutError as e:
            raise to_http_error(e) from e

    # ============================================
    # Relevance
    # ============================================

    @router.post("/evaluate", response_model=EvaluateResponse, tags=["relevance"])
    async def evaluate(request: EvaluateRequest, pipeline: Pipeline) -> EvaluateResponse:
        """Score a URL without creating a job."""
        try:
            verdict = await pipeline.evaluate(
                request.url, metadata=request.metadata, pattern_id=request.pattern_id
            )
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail={"message": str(e)}
            ) from e
        return EvaluateResponse(verdict=verdict, display_score=verdict.display_score)

    @router.get("/thresholds", response_model=RelevanceSettings, tags=["relevance"])
    async def get_thresholds(pipeline: Pipeline) -> RelevanceSettings:
        """Current relevance thresholds."""
        return pipeline.pattern_store.thresholds()

    @router.put("/thresholds", response_model=RelevanceSettings, tags=["relevance"])
    async def put_thresholds(write: ThresholdsWrite, pipeline: Pipeline) -> RelevanceSettings:
        """Write the relevance thresholds (409 if their order would break)."""
        try:
            return pipeline.pattern_store.update_thresholds(**write.model_dump(exclude_none=True))
        except ScoutError as e:
            raise to_http_error(e) from e

    # ============================================
    # Patterns
    # ============================================

    @router.get("/patterns", response_model=list[DiscoveryPattern], tags=["patterns"])
    async def list_patterns(
        pipeline: Pipeline,
        active_only: Annotated[bool, Query()] = False,
    ) -> list[DiscoveryPattern]:
        """List discovery patterns."""
        return pipeline.pattern_store.list_patterns(active_only=active_only)

    @router.put("/patterns/{pattern_id}", response_model=DiscoveryPattern, tags=["patterns"])
    async def replace_pattern(
        pattern_id: str,
        values: Annotated[dict[str, Any], Body()],
        pipeline: Pipeline,
    ) -> DiscoveryPattern:
        """Replace a pattern's configurable fields."""
        try:
            return pipeline.pattern_store.replace(pattern_id, values)
        except ScoutError as e:
            raise to_http_error(e) from e

    @router.patch("/patterns/{pattern_id}", response_model=DiscoveryPattern, tags=["patterns"])
    async def update_pattern(
        pattern_id: str,
        changes: Annotated[dict[str, Any], Body()],
        pipeline: Pipeline,
    ) -> DiscoveryPattern:
        """Update individual pattern fields."""
        try:
            return pipeline.pattern_store.update(pattern_id, changes)
        except ScoutError as e:
            raise to_http_error(e) from e

    # ============================================
    # Feed / stats
    # ============================================

    @router.get("/matches", response_model=list[MatchRecord], tags=["relevance"])
    async def recent_matches(
        pipeline: Pipeline,
        limit: Annotated[int, Query(ge=1, le=1000)] = 50,
    ) -> list[MatchRecord]:
        """Recent scored candidates, newest first."""
        return pipeline.recent_matches(limit=limit)

    @router.get("/stats", tags=["stats"])
    async def stats(pipeline: Pipeline) -> dict[str, Any]:
        """Job counts by status and priority, queue depth."""
        return pipeline.stats()

    return router


__all__ = ["create_router", "to_http_error"]
