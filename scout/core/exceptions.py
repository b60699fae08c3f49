"""Exception hierarchy for SourceScout.

Every error raised by the application derives from ScoutError and carries
a `context` dict. Log it with `logger.error("...", **e.to_dict())`; the
HTTP layer returns the same dict as the error detail.

Hierarchy:
    ScoutError
    ├── RecordNotFoundError
    ├── ConfigError
    │   └── ConfigValidationError
    │       └── ConfigInvariantViolation
    ├── ServiceError
    │   ├── ExternalAPIError
    │   └── RateLimitError
    ├── DiscoveryError
    │   ├── EventValidationError
    │   ├── WebhookSignatureError
    │   └── ScoringUnavailableError
    ├── EnrichmentError
    │   └── EnrichmentTimeoutError
    └── JobError
        ├── DuplicateJobError
        └── RetryLimitExceededError
"""

from typing import Any


def _merge(context: dict[str, Any] | None, **fields: Any) -> dict[str, Any]:
    """Copy context and add every field that is not None."""
    merged = dict(context or {})
    merged.update({key: value for key, value in fields.items() if value is not None})
    return merged


class ScoutError(Exception):
    """Root of the hierarchy.

    Attributes:
        context: Structured details for logs and API responses

    Example:
        >>> err = ScoutError("claim failed", context={"job_id": "9f1c"})
        >>> err.to_dict()["context"]
        {'job_id': '9f1c'}
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = dict(context or {})

    def with_context(self, **kwargs: Any) -> "ScoutError":
        """Add keys to the context and return self."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "message": str(self),
            "context": self.context,
        }


class RecordNotFoundError(ScoutError):
    """A job, pattern or model id is not in its store."""

    def __init__(
        self,
        model: str,
        record_id: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.model = model
        self.record_id = record_id
        super().__init__(
            f"{model} with id={record_id} not found",
            context=_merge(context, model=model, record_id=record_id),
        )


# --------------------------------------------
# Configuration
# --------------------------------------------


class ConfigError(ScoutError):
    """defaults.yaml or a runtime configuration write is unusable."""

    def __init__(
        self,
        message: str,
        config_path: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context=_merge(context, config_path=config_path or None))


class ConfigValidationError(ConfigError):
    """A configuration value was refused.

    Either pass a plain message, or name the offending `field` with a
    `reason` and get a uniform message built from them.

    Attributes:
        field: Rejected field, if named
        value: Rejected value, if given
        reason: Why it was rejected
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
        reason: str | None = None,
        config_path: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.field = field
        self.value = value
        self.reason = reason

        if field and reason:
            message = f"Config validation failed for '{field}': {reason}"
            context = _merge(
                context,
                field=field,
                reason=reason,
                value=str(value) if value is not None else None,
            )
        super().__init__(
            message or "Configuration validation failed",
            config_path=config_path,
            context=context,
        )


class ConfigInvariantViolation(ConfigValidationError):
    """A write would break a cross-field rule; the previous values stay."""


# --------------------------------------------
# External services
# --------------------------------------------


class ServiceError(ScoutError):
    """A dependency outside the process failed."""

    def __init__(
        self,
        message: str,
        service_name: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context=_merge(context, service_name=service_name))


class ExternalAPIError(ServiceError):
    """An HTTP API answered with an error or could not be reached.

    Attributes:
        service: API name (github, llm, ...)
        status_code: HTTP status, None for transport failures
        endpoint: Path that was requested
    """

    # Bodies can be whole HTML error pages
    MAX_BODY_CHARS = 500

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
        endpoint: str | None = None,
        response_body: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(
            f"{service} API error: {message}",
            service_name=service,
            context=_merge(
                context,
                service=service,
                status_code=status_code,
                endpoint=endpoint or None,
                response_body=response_body[: self.MAX_BODY_CHARS] if response_body else None,
            ),
        )


class RateLimitError(ServiceError):
    """An API refused the request for quota reasons.

    Attributes:
        service: API name
        retry_after: Seconds the API asked us to wait, if it said
    """

    def __init__(
        self,
        service: str,
        retry_after: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.service = service
        self.retry_after = retry_after
        suffix = f" (retry after {retry_after}s)" if retry_after else ""
        super().__init__(
            f"Rate limit exceeded for {service}{suffix}",
            service_name=service,
            context=_merge(context, service=service, retry_after=retry_after),
        )


# --------------------------------------------
# Discovery
# --------------------------------------------


class DiscoveryError(ScoutError):
    """Candidate intake or scoring failed."""


class EventValidationError(DiscoveryError):
    """An inbound event could not be turned into a candidate.

    These are rejected before scoring and never retried.

    Attributes:
        origin: Adapter that received it (scan, webhook)
        errors: Field-level messages
    """

    def __init__(
        self,
        message: str,
        origin: str,
        errors: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.origin = origin
        self.errors = list(errors or [])
        super().__init__(
            message,
            context=_merge(context, origin=origin, errors=self.errors[:10] or None),
        )


class WebhookSignatureError(DiscoveryError):
    """Webhook delivery signature is missing or wrong."""


class ScoringUnavailableError(DiscoveryError):
    """The active scoring model cannot predict; the scorer falls back to rules."""

    def __init__(
        self,
        message: str,
        model_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.model_id = model_id
        super().__init__(message, context=_merge(context, model_id=model_id or None))


# --------------------------------------------
# Enrichment
# --------------------------------------------


class EnrichmentError(ScoutError):
    """Analyzing a source failed; the job is marked failed with this message."""

    def __init__(
        self,
        message: str,
        job_id: str | None = None,
        source_url: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.job_id = job_id
        self.source_url = source_url
        super().__init__(
            message,
            context=_merge(context, job_id=job_id or None, source_url=source_url or None),
        )


class EnrichmentTimeoutError(EnrichmentError):
    """Analysis ran past the pool's deadline."""

    def __init__(
        self,
        timeout_seconds: float,
        job_id: str | None = None,
        source_url: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Analysis exceeded {timeout_seconds}s deadline",
            job_id=job_id,
            source_url=source_url,
            context=_merge(context, timeout_seconds=timeout_seconds),
        )


# --------------------------------------------
# Jobs
# --------------------------------------------


class JobError(ScoutError):
    """A job lifecycle operation was refused."""

    def __init__(
        self,
        message: str,
        job_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.job_id = job_id
        super().__init__(message, context=_merge(context, job_id=job_id or None))


class DuplicateJobError(JobError):
    """Another active job already holds the source URL.

    Attributes:
        source_url: Normalized URL
        existing_job_id: Job holding it
    """

    def __init__(
        self,
        source_url: str,
        existing_job_id: str,
        job_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.source_url = source_url
        self.existing_job_id = existing_job_id
        super().__init__(
            f"Active job {existing_job_id} already exists for {source_url}",
            job_id=job_id,
            context=_merge(context, source_url=source_url, existing_job_id=existing_job_id),
        )


class RetryLimitExceededError(JobError):
    """A failed job has no retries left."""

    def __init__(
        self,
        job_id: str,
        retry_count: int,
        max_retries: int,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.retry_count = retry_count
        self.max_retries = max_retries
        super().__init__(
            f"Job {job_id} already retried {retry_count} time(s) (max {max_retries})",
            job_id=job_id,
            context=_merge(context, retry_count=retry_count, max_retries=max_retries),
        )
