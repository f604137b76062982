"""LiteLLM client wrapper: the embedding and quick-completion capabilities.

Every embedding and completion the core needs routes through this module.
LiteLLM's built-in retry is used (num_retries, exponential backoff) and every
call carries a timeout so a hung provider cannot stall a chat turn forever.
Provider failures surface as :class:`mnemo.errors.ProviderError`.
"""

from __future__ import annotations

import logging
import os
from typing import Protocol

import litellm

from mnemo.config import CompletionCfg, EmbeddingCfg
from mnemo.errors import ProviderError

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

log = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    """Return the provider prefix of a 'provider/model' string ('openai' if none)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")

    if env_var is None:
        return  # No key required (e.g. ollama)

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 300,
    temperature: float = 0.0,
    num_retries: int = 3,
    timeout: float | None = None,
) -> str:
    """Call litellm.completion() with retry/backoff. Returns content string.

    Raises:
        ProviderError: On persistent API failure after retries.
    """
    try:
        response = litellm.completion(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            num_retries=num_retries,
            timeout=timeout,
        )
    except Exception as exc:
        raise ProviderError(f"Completion with '{model}' failed: {exc}") from exc
    return response.choices[0].message.content or ""


def embed(
    model: str,
    text: str,
    dimensions: int | None = None,
    num_retries: int = 3,
    timeout: float | None = None,
) -> list[float]:
    """Call litellm.embedding() with retry/backoff. Returns embedding vector.

    Raises:
        ProviderError: On persistent API failure, or an empty response.
    """
    kwargs: dict = {"model": model, "input": [text], "num_retries": num_retries}
    if dimensions is not None:
        kwargs["dimensions"] = dimensions
    if timeout is not None:
        kwargs["timeout"] = timeout
    try:
        response = litellm.embedding(**kwargs)
        vector = response.data[0]["embedding"]
    except Exception as exc:
        raise ProviderError(f"Embedding with '{model}' failed: {exc}") from exc
    if not vector:
        raise ProviderError(f"Embedding with '{model}' returned an empty vector.")
    return list(vector)


class LanguageModel(Protocol):
    """What the core needs from a language-model provider."""

    def embed(self, text: str) -> list[float]: ...

    def quick_complete(self, system_prompt: str, user_prompt: str) -> str: ...


class LLMClient:
    """The two capabilities the core consumes, bound to configured models.

    ``embed(text)`` and ``quick_complete(system_prompt, user_prompt)`` are the
    only entry points; both raise :class:`ProviderError` on failure.
    """

    def __init__(
        self,
        embedding: EmbeddingCfg | None = None,
        completion: CompletionCfg | None = None,
        num_retries: int = 3,
    ) -> None:
        self.embedding = embedding or EmbeddingCfg()
        self.completion = completion or CompletionCfg()
        self.num_retries = num_retries

    def validate(self) -> None:
        """Raise EnvironmentError unless both models have their API keys set."""
        validate_api_key(self.embedding.model)
        validate_api_key(self.completion.model)

    def embed(self, text: str) -> list[float]:
        log.debug("Embedding %d chars with %s", len(text), self.embedding.model)
        return embed(
            self.embedding.model,
            text,
            dimensions=self.embedding.dimensions,
            num_retries=self.num_retries,
            timeout=self.embedding.timeout,
        )

    def quick_complete(self, system_prompt: str, user_prompt: str) -> str:
        log.debug("Quick completion with %s", self.completion.model)
        return complete(
            self.completion.model,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=self.completion.max_tokens,
            num_retries=self.num_retries,
            timeout=self.completion.timeout,
        ).strip()
