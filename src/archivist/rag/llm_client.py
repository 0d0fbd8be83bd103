"""LiteLLM client wrapper with retry, timeout, and API key validation.

All embedding and completion calls route through this module.
LiteLLM's built-in retry is used (num_retries, exponential backoff).
Every call carries a timeout; an expired call raises UpstreamTimeoutError,
any other provider failure raises UpstreamServiceError with the cause chained.
"""

from __future__ import annotations

import os

import litellm

from archivist.errors import UpstreamServiceError, UpstreamTimeoutError
from archivist.log import get_logger

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

logger = get_logger(__name__)


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "huggingface": "HUGGINGFACE_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    """Return the provider prefix of a 'provider/model' string ('openai' if absent)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider)

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 256,
    temperature: float = 0.2,
    timeout: float = 60.0,
    num_retries: int = 3,
) -> str:
    """Call litellm.completion() with retry/backoff. Returns content string.

    Raises:
        UpstreamTimeoutError: If the call exceeds *timeout* seconds.
        UpstreamServiceError: On any other provider failure after retries.
    """
    logger.debug("completion: model=%s messages=%d", model, len(messages))
    try:
        response = litellm.completion(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=timeout,
            num_retries=num_retries,
        )
        return response.choices[0].message.content or ""
    except litellm.Timeout as exc:
        raise UpstreamTimeoutError(
            "synthesis", f"'{model}' did not answer within {timeout:g}s"
        ) from exc
    except Exception as exc:
        raise UpstreamServiceError("synthesis", f"'{model}' failed: {exc}") from exc


def embed(
    model: str,
    text: str,
    timeout: float = 30.0,
    num_retries: int = 3,
) -> list[float]:
    """Call litellm.embedding() with retry/backoff. Returns embedding vector.

    Raises:
        UpstreamTimeoutError: If the call exceeds *timeout* seconds.
        UpstreamServiceError: On any other provider failure after retries.
    """
    try:
        response = litellm.embedding(
            model=model,
            input=[text],
            timeout=timeout,
            num_retries=num_retries,
        )
        return list(response.data[0]["embedding"])
    except litellm.Timeout as exc:
        raise UpstreamTimeoutError(
            "embedding", f"'{model}' did not answer within {timeout:g}s"
        ) from exc
    except Exception as exc:
        raise UpstreamServiceError("embedding", f"'{model}' failed: {exc}") from exc
