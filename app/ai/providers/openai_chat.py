"""Chat-completions model client using the openai SDK."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any, Final

from openai import AsyncOpenAI, OpenAIError

from app.ai.providers.base import AIModel, Provider, SimpleModelResponse
from app.core.cancellation import CancellationToken
from app.jobs.errors import UpstreamError

logger = logging.getLogger(__name__)


def _messages(prompt: str, system: str | None) -> list[dict[str, str]]:
  messages: list[dict[str, str]] = []
  if system:
    messages.append({"role": "system", "content": system})
  messages.append({"role": "user", "content": prompt})
  return messages


class ChatCompletionsModel(AIModel):
  """Model client for any OpenAI-compatible chat completions endpoint."""

  def __init__(self, name: str, *, api_key: str, base_url: str | None = None, default_headers: dict[str, str] | None = None, temperature: float = 0.7, provider_name: str = "openai") -> None:
    if not api_key:
      raise ValueError(f"An API key is required for the {provider_name} provider.")
    self.name: str = name
    self._provider_name = provider_name
    self._temperature = temperature
    self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, default_headers=default_headers or None)

  def _upstream_error(self, exc: OpenAIError) -> UpstreamError:
    return UpstreamError(f"{self._provider_name} request failed: {exc}", details={"provider": self._provider_name, "model": self.name, "errorType": type(exc).__name__})

  async def generate(self, prompt: str, *, system: str | None = None, cancel_token: CancellationToken | None = None) -> SimpleModelResponse:
    """Generate a complete response, checking the token before and after the call."""
    if cancel_token is not None:
      await cancel_token.check()
    try:
      response = await self._client.chat.completions.create(model=self.name, messages=_messages(prompt, system), temperature=self._temperature)
    except OpenAIError as exc:
      raise self._upstream_error(exc) from exc
    if cancel_token is not None:
      await cancel_token.check()

    content = (response.choices[0].message.content or "") if response.choices else ""
    usage: dict[str, int] | None = None
    if response.usage:
      usage = {"prompt_tokens": response.usage.prompt_tokens, "completion_tokens": response.usage.completion_tokens, "total_tokens": response.usage.total_tokens}
    logger.debug("%s response from %s (%d chars)", self._provider_name, self.name, len(content))
    return SimpleModelResponse(content=content, usage=usage)

  async def stream(self, prompt: str, *, system: str | None = None, cancel_token: CancellationToken | None = None) -> AsyncIterator[str]:
    """Yield content deltas; closing the generator or a tripped token closes the upstream stream."""
    if cancel_token is not None:
      await cancel_token.check()
    try:
      upstream: Any = await self._client.chat.completions.create(model=self.name, messages=_messages(prompt, system), temperature=self._temperature, stream=True)
    except OpenAIError as exc:
      raise self._upstream_error(exc) from exc

    try:
      async for chunk in upstream:
        if cancel_token is not None:
          await cancel_token.check()
        if not chunk.choices:
          continue
        delta = chunk.choices[0].delta.content
        if delta:
          yield delta
    except OpenAIError as exc:
      raise self._upstream_error(exc) from exc
    finally:
      # Release the HTTP connection whether we finished, failed or were cancelled.
      await upstream.close()


class OpenAIProvider(Provider):
  """OpenAI provider."""

  _DEFAULT_MODEL: Final[str] = "gpt-4o-mini"

  def __init__(self, api_key: str | None = None, base_url: str | None = None) -> None:
    self.name: str = "openai"
    self._api_key = api_key
    self._base_url = base_url

  def get_model(self, model: str | None = None) -> AIModel:
    """Return an OpenAI model client."""
    return ChatCompletionsModel(model or self._DEFAULT_MODEL, api_key=self._api_key or "", base_url=self._base_url, provider_name=self.name)
