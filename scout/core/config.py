"""Process settings for SourceScout.

Values that differ per deployment (environment, credentials, pool size,
scan cadence) are read from the environment or a .env file. Tunables that
are part of the scoring model (feature weights, seed patterns, default
thresholds) live in config/defaults.yaml; see scout.core.config_loader.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Process settings.

    Field names map to upper-case environment variables
    (WORKER_COUNT, GITHUB_TOKEN, ...).

    Example:
        >>> Config(worker_count=8).worker_count
        8
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================
    # Application
    # ============================================
    app_name: str = Field(default="SourceScout", description="Name used in logs and /health")
    app_env: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Root log level"
    )

    # ============================================
    # GitHub
    # ============================================
    github_api_url: str = Field(
        default="https://api.github.com", description="GitHub REST API base URL"
    )
    github_token: str = Field(default="", description="Token for search requests")
    github_webhook_secret: str = Field(
        default="", description="HMAC secret for webhook deliveries (empty: unsigned)"
    )

    # ============================================
    # Discovery
    # ============================================
    scanner_enabled: bool = Field(default=True, description="Run the periodic pattern scan")
    scan_interval_minutes: int = Field(
        default=60, description="Minutes between scan cycles", ge=1, le=1440
    )
    max_results_per_pattern: int = Field(
        default=100, description="Repositories fetched per pattern per cycle", ge=1, le=100
    )
    seed_default_patterns: bool = Field(
        default=True, description="Load the seed patterns from defaults.yaml at startup"
    )

    # ============================================
    # Enrichment
    # ============================================
    worker_count: int = Field(default=4, description="Concurrent enrichment workers", ge=1, le=32)
    max_queue_depth: int = Field(
        default=100, description="Queue depth at which normal jobs are held back", ge=1
    )
    job_timeout_seconds: float = Field(
        default=120.0, description="Deadline for one analysis step", gt=0, le=3600
    )
    analyzer_backend: Literal["metadata", "llm"] = Field(
        default="metadata", description="Analyzer used by the workers"
    )

    # ============================================
    # LLM (LiteLLM model names: provider/model)
    # ============================================
    anthropic_api_key: str = Field(default="", description="Anthropic API key")
    openai_api_key: str = Field(default="", description="OpenAI API key")
    llm_model_light: str = Field(
        default="anthropic/claude-3-5-haiku-20241022",
        description="Model used by the LLM analyzer",
    )
    llm_model_light_max_tokens: int = Field(
        default=500, description="Completion budget per analysis", ge=100, le=2000
    )

    # ============================================
    # CORS
    # ============================================
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins",
    )
    cors_allow_credentials: bool = Field(default=True, description="Allow CORS credentials")

    @field_validator("github_api_url", mode="before")
    @classmethod
    def strip_api_url(cls, v: str) -> str:
        """Require http(s) and drop the trailing slash.

        Raises:
            ValueError: If the URL is not http(s)
        """
        if isinstance(v, str):
            if not v.startswith(("http://", "https://")):
                raise ValueError("github_api_url must be an http(s) URL")
            return v.rstrip("/")
        return v

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


_config: Config | None = None


def get_config() -> Config:
    """Return the process-wide Config, created on first use.

    Modules import this rather than the DI container so that logging and
    the container itself can read settings without an import cycle.
    """
    global _config
    if _config is None:
        _config = Config()
    return _config
