"""OpenRouter provider implementation using openai SDK."""

from __future__ import annotations

import os
from typing import Final

from app.ai.providers.base import AIModel, Provider
from app.ai.providers.openai_chat import ChatCompletionsModel

OPENROUTER_BASE_URL: Final[str] = "https://openrouter.ai/api/v1"


class OpenRouterProvider(Provider):
  """OpenRouter provider."""

  _DEFAULT_MODEL: Final[str] = "openai/gpt-4o-mini"

  def __init__(self, api_key: str | None = None, base_url: str | None = None) -> None:
    self.name: str = "openrouter"
    self._api_key = api_key or os.getenv("OPENROUTER_API_KEY")
    self._base_url = base_url or OPENROUTER_BASE_URL

  def get_model(self, model: str | None = None) -> AIModel:
    """Return an OpenRouter model client."""
    if not self._api_key:
      raise ValueError("OPENROUTER_API_KEY environment variable is required")

    # OpenRouter uses the OpenAI-compatible API; we add optional attribution headers.
    default_headers: dict[str, str] = {}
    referer = os.getenv("OPENROUTER_HTTP_REFERER")
    if referer:
      default_headers["HTTP-Referer"] = referer
    title = os.getenv("OPENROUTER_TITLE")
    if title:
      default_headers["X-Title"] = title

    return ChatCompletionsModel(model or self._DEFAULT_MODEL, api_key=self._api_key, base_url=self._base_url, default_headers=default_headers, provider_name=self.name)
