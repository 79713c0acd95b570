"""Base interfaces for AI providers and models."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol

from app.core.cancellation import CancellationToken

_JSON_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ModelResponse(Protocol):
  """Response contract for model outputs."""

  content: str
  usage: dict[str, int] | None


@dataclass
class SimpleModelResponse:
  """Minimal model response structure."""

  content: str
  usage: dict[str, int] | None = None


class AIModel(ABC):
  """Abstract base class for generation backends."""

  name: str

  @abstractmethod
  async def generate(self, prompt: str, *, system: str | None = None, cancel_token: CancellationToken | None = None) -> ModelResponse:
    """Generate a complete response for the given prompt."""

  @abstractmethod
  def stream(self, prompt: str, *, system: str | None = None, cancel_token: CancellationToken | None = None) -> AsyncIterator[str]:
    """Yield text deltas in backend order; stop consuming once `cancel_token` trips."""

  @staticmethod
  def strip_json_fences(text: str) -> str:
    """Remove a surrounding markdown code fence from a JSON answer."""
    stripped = text.strip()
    match = _JSON_FENCE_RE.match(stripped)
    return match.group(1) if match else stripped


class Provider(ABC):
  """Abstract base class for AI providers."""

  name: str

  @abstractmethod
  def get_model(self, model: str | None = None) -> AIModel:
    """Return the model client for the provider."""
