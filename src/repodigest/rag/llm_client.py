"""LiteLLM client wrapper with retry, timeout, and API key validation.

All summary + embedding calls route through this module.
LiteLLM's built-in retry is used (num_retries, exponential backoff).
API key presence is validated by the CLI before any pipeline run begins.
"""

from __future__ import annotations

import os

import litellm

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

_DEFAULT_TIMEOUT = 60.0


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "google": "GOOGLE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider)

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


async def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 512,
    temperature: float = 0.0,
    num_retries: int = 3,
    timeout: float = _DEFAULT_TIMEOUT,
) -> str:
    """Call litellm.acompletion() with retry/backoff. Returns content string.

    Raises:
        Exception: Whatever litellm raises after retries are exhausted.
    """
    response = await litellm.acompletion(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        num_retries=num_retries,
        timeout=timeout,
    )
    return response.choices[0].message.content or ""


async def embed(
    model: str,
    text: str,
    num_retries: int = 3,
    timeout: float = _DEFAULT_TIMEOUT,
) -> list[float]:
    """Call litellm.aembedding() with retry/backoff. Returns embedding vector."""
    response = await litellm.aembedding(
        model=model,
        input=[text],
        num_retries=num_retries,
        timeout=timeout,
    )
    return list(response.data[0]["embedding"])
