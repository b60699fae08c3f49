"""Webhook event source.

Receives push notifications about repositories, verifies their signature,
filters them by event type and turns accepted deliveries into
CandidateEvents for the pipeline.

Payload (JSON):
    {"repositoryFullName": "apache/spark", "url": "https://github.com/apache/spark",
     "description": "...", "language": "Scala", "starCount": 38000,
     "eventType": "push", "createdAt": "2014-02-25T08:00:08Z", "topics": ["spark"]}
"""

import hashlib
import hmac
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from scout.config import WebhookConfig
from scout.core.exceptions import EventValidationError, WebhookSignatureError
from scout.core.logging import get_logger
from scout.models.base import utcnow
from scout.models.job import EventOrigin
from scout.services.discovery.admission import AdmissionResult
from scout.services.discovery.base import (
    CandidateEvent,
    CandidateMetadata,
    EventSink,
    EventSource,
)

logger = get_logger(__name__)

SIGNATURE_PREFIX = "sha256="
PING_EVENT = "ping"


class WebhookPayload(BaseModel):
    """Inbound webhook payload."""

    model_config = ConfigDict(populate_by_name=True)

    repository_full_name: str = Field(..., alias="repositoryFullName", min_length=1)
    url: str = Field(..., min_length=1)
    description: str | None = None
    language: str | None = None
    star_count: int = Field(default=0, alias="starCount", ge=0)
    event_type: str = Field(..., alias="eventType", min_length=1)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    topics: list[str] = Field(default_factory=list)

    @field_validator("event_type")
    @classmethod
    def lowercase_event_type(cls, v: str) -> str:
        return v.strip().lower()


class WebhookResult(BaseModel):
    """Outcome of one webhook delivery.

    Attributes:
        accepted: Whether the delivery became a candidate
        event_type: Delivery event type
        reason: Why the delivery was ignored
        admission: Admission result for accepted deliveries
    """

    accepted: bool
    event_type: str
    reason: str | None = None
    admission: AdmissionResult | None = None


def compute_signature(secret: str, body: bytes) -> str:
    """HMAC-SHA256 signature header value for a body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


class WebhookReceiver(EventSource):
    """Webhook event source.

    Passive: deliveries arrive through handle(), called by the API route.

    Attributes:
        config: Webhook configuration
    """

    origin = EventOrigin.WEBHOOK

    def __init__(self, sink: EventSink, config: WebhookConfig | None = None):
        """Initialize receiver.

        Args:
            sink: Async callable receiving each CandidateEvent
            config: Webhook configuration (uses defaults if not provided)
        """
        super().__init__(sink)
        self.config = config or WebhookConfig.from_defaults()

    async def start(self) -> None:
        logger.info(
            "Webhook receiver ready",
            accepted_events=self.config.accepted_events,
            signed=bool(self.config.secret),
        )

    async def stop(self) -> None:
        logger.info("Webhook receiver stopped")

    def verify_signature(self, body: bytes, signature: str | None) -> None:
        """Check the delivery signature when a secret is configured.

        Args:
            body: Raw request body
            signature: Signature header value ("sha256=<hex>")

        Raises:
            WebhookSignatureError: If the signature is missing or wrong
        """
        if not self.config.secret:
            return
        if not signature:
            raise WebhookSignatureError("Missing webhook signature")
        expected = compute_signature(self.config.secret, body)
        if not hmac.compare_digest(expected, signature.strip()):
            raise WebhookSignatureError("Webhook signature mismatch")

    def parse(self, body: bytes) -> WebhookPayload:
        """Parse and validate a delivery body.

        Raises:
            EventValidationError: If the body is not a valid payload
        """
        try:
            return WebhookPayload.model_validate_json(body)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
                for err in e.errors()
            ]
            raise EventValidationError(
                "Invalid webhook payload", origin=self.origin.value, errors=errors
            ) from e

    def to_event(self, payload: WebhookPayload, now: datetime | None = None) -> CandidateEvent:
        """Convert a payload into a candidate event.

        Age is computed here from createdAt so scoring never reads the clock.

        Raises:
            EventValidationError: If the URL cannot be normalized
        """
        observed_at = now or utcnow()
        age_days = None
        if payload.created_at is not None:
            created = payload.created_at
            if created.tzinfo is None:
                created = created.replace(tzinfo=observed_at.tzinfo)
            age_days = max(0, (observed_at - created).days)

        try:
            return CandidateEvent(
                source_url=payload.url,
                origin=self.origin,
                observed_at=observed_at,
                metadata=CandidateMetadata(
                    full_name=payload.repository_full_name,
                    description=payload.description,
                    language=payload.language,
                    star_count=payload.star_count,
                    age_days=age_days,
                    topics=payload.topics,
                ),
            )
        except ValidationError as e:
            raise EventValidationError(
                "Invalid webhook URL", origin=self.origin.value, errors=[str(e)]
            ) from e

    async def handle(
        self,
        body: bytes,
        signature: str | None = None,
        event_header: str | None = None,
    ) -> WebhookResult:
        """Process one delivery.

        Args:
            body: Raw request body
            signature: X-Hub-Signature-256 header value
            event_header: X-GitHub-Event header value

        Returns:
            WebhookResult

        Raises:
            WebhookSignatureError: If signature verification fails
            EventValidationError: If the payload is invalid
        """
        self.verify_signature(body, signature)

        header_type = (event_header or "").strip().lower()
        if header_type == PING_EVENT:
            logger.info("Webhook ping received")
            return WebhookResult(accepted=False, event_type=PING_EVENT, reason="ping")

        payload = self.parse(body)
        event_type = header_type or payload.event_type
        if event_type not in self.config.accepted_events:
            logger.info("Webhook event ignored", event_type=event_type)
            return WebhookResult(
                accepted=False, event_type=event_type, reason="event type not accepted"
            )

        event = self.to_event(payload)
        admission = await self.sink(event)
        logger.info(
            "Webhook event accepted",
            event_type=event_type,
            source_url=event.source_url,
            outcome=admission.outcome.value if admission else None,
        )
        return WebhookResult(accepted=True, event_type=event_type, admission=admission)


__all__ = ["WebhookPayload", "WebhookReceiver", "WebhookResult", "compute_signature"]
