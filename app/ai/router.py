"""Routing utilities for provider/model selection."""

from __future__ import annotations

from enum import Enum

from app.ai.providers.base import AIModel, Provider
from app.ai.providers.openai_chat import OpenAIProvider
from app.ai.providers.openrouter import OpenRouterProvider
from app.config import Settings


class ProviderMode(str, Enum):
  """Supported provider modes."""

  OPENROUTER = "openrouter"
  OPENAI = "openai"


def get_provider_for_mode(mode: str | ProviderMode, *, api_key: str | None = None, base_url: str | None = None) -> Provider:
  """Return a provider instance for the given mode."""
  key = mode.value if isinstance(mode, ProviderMode) else mode
  if key == ProviderMode.OPENROUTER.value:
    return OpenRouterProvider(api_key=api_key, base_url=base_url)
  if key == ProviderMode.OPENAI.value:
    return OpenAIProvider(api_key=api_key, base_url=base_url)
  raise ValueError(f"Unsupported provider mode '{mode}'.")


def get_model_for_settings(settings: Settings) -> AIModel:
  """Return the generation backend configured for this process."""
  provider = get_provider_for_mode(settings.ai_provider, api_key=settings.ai_api_key, base_url=settings.ai_base_url)
  return provider.get_model(settings.ai_model)
