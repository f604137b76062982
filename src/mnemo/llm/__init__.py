"""Language-model capabilities consumed by the core (embedding, quick completion)."""

from mnemo.llm.client import LanguageModel, LLMClient, complete, embed, validate_api_key

__all__ = ["LanguageModel", "LLMClient", "complete", "embed", "validate_api_key"]
