"""LiteLLM-backed completion client.

Used by the LLM analyzer to turn repository metadata into insight bullets.
Models are addressed as "provider/model" (anthropic/claude-3-5-haiku-20241022,
openai/gpt-4o-mini); provider keys come from process settings.
"""

from dataclasses import dataclass
from typing import Any

import litellm
from litellm import acompletion

from scout.core.config import get_config
from scout.core.exceptions import ServiceError
from scout.core.logging import get_logger

logger = get_logger(__name__)

# Unsupported params (e.g. temperature on some models) are dropped, not fatal
litellm.drop_params = True


class LLMError(ServiceError):
    """A completion request failed."""

    def __init__(self, message: str, model: str | None = None) -> None:
        super().__init__(message, service_name="llm", context={"model": model} if model else None)


@dataclass
class LLMConfig:
    """Per-call completion settings."""

    model: str
    max_tokens: int = 500
    temperature: float = 0.3
    timeout: int = 60


@dataclass
class LLMResponse:
    """Completion text plus the model that produced it and token counts."""

    content: str
    model: str
    usage: dict[str, int]


def _usage(raw: Any) -> dict[str, int]:
    if not raw:
        return {}
    return {
        "prompt_tokens": raw.prompt_tokens or 0,
        "completion_tokens": raw.completion_tokens or 0,
        "total_tokens": raw.total_tokens or 0,
    }


class LLMClient:
    """Thin async wrapper over litellm.acompletion."""

    def __init__(self) -> None:
        settings = get_config()
        if settings.anthropic_api_key:
            litellm.api_key = settings.anthropic_api_key
        if settings.openai_api_key:
            litellm.openai_key = settings.openai_api_key

    async def complete(
        self,
        config: LLMConfig,
        messages: list[dict[str, str]],
        **kwargs: Any,
    ) -> LLMResponse:
        """Run one chat completion.

        Args:
            config: Model and sampling settings
            messages: Chat messages ({"role": ..., "content": ...})
            **kwargs: Extra litellm parameters

        Returns:
            LLMResponse; content is "" when the model returned nothing

        Raises:
            LLMError: On any provider or transport failure
        """
        logger.debug("LLM request", model=config.model, messages=len(messages))
        try:
            response = await acompletion(
                model=config.model,
                messages=messages,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                timeout=config.timeout,
                **kwargs,
            )
        except Exception as e:
            logger.error("LLM request failed", model=config.model, error=str(e))
            raise LLMError(f"LLM request failed: {e}", model=config.model) from e

        result = LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model or config.model,
            usage=_usage(response.usage),
        )
        logger.debug("LLM response", model=result.model, chars=len(result.content), **result.usage)
        return result


__all__ = ["LLMClient", "LLMConfig", "LLMError", "LLMResponse"]
