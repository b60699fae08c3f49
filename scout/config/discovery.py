"""Discovery source configuration models.

Defines settings for the two event source adapters.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from scout.config.validators import normalize_string_list
from scout.core.config_loader import load_section


class ScannerConfig(BaseModel):
    """Pattern scanner configuration.

    Attributes:
        enabled: Whether the periodic scan runs
        interval_minutes: Minutes between scans
        max_results_per_pattern: Repositories fetched per pattern per scan
        request_timeout: HTTP request timeout in seconds
    """

    enabled: bool = Field(default=True)
    interval_minutes: int = Field(default=60, ge=1, le=1440)
    max_results_per_pattern: int = Field(default=100, ge=1, le=100)
    request_timeout: float = Field(default=15.0, ge=1.0, le=60.0)


class WebhookConfig(BaseModel):
    """Webhook receiver configuration.

    Attributes:
        secret: Shared secret for HMAC-SHA256 signatures (empty disables checks)
        accepted_events: Event types turned into candidates; others are ignored
    """

    secret: str = Field(default="", repr=False)
    accepted_events: list[str] = Field(
        default_factory=lambda: ["push", "repository", "release", "star"]
    )

    @field_validator("accepted_events", mode="before")
    @classmethod
    def lowercase_events(cls, v: list[str]) -> list[str]:
        """Normalize event names to lowercase."""
        return normalize_string_list(v)

    @classmethod
    def from_defaults(cls, **overrides: Any) -> "WebhookConfig":
        """Build from the discovery section of defaults.yaml."""
        discovery = load_section("discovery")
        values: dict[str, Any] = {}
        if "accepted_webhook_events" in discovery:
            values["accepted_events"] = discovery["accepted_webhook_events"]
        return cls.model_validate({**values, **overrides})


class MatchHistoryConfig(BaseModel):
    """Recent match feed configuration.

    Attributes:
        size: Number of match records kept (newest first)
    """

    size: int = Field(default=100, ge=1, le=10000)

    @classmethod
    def from_defaults(cls) -> "MatchHistoryConfig":
        """Build from the discovery section of defaults.yaml."""
        return cls(size=load_section("discovery").get("match_history_size", 100))


__all__ = ["ScannerConfig", "WebhookConfig", "MatchHistoryConfig"]
