"""Cooperative cancellation shared by workers, the generation backend and streams."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

CancellationProbe = Callable[[], Awaitable[bool]]


class CancellationRequested(Exception):
  """Raised at a suspension point once the caller has asked the work to stop."""


class CancellationToken:
  """Cancellation signal checked between units of work.

  A token is either flipped locally with `cancel()` or backed by a probe, an
  async callable that reports whether the outside world asked to stop (a job
  row marked cancelled, an HTTP client that went away). Once a probe reports
  cancellation the token stays cancelled.

  `min_interval` throttles the probe for hot loops such as per-token stream
  consumption; between probes the last answer is reused.
  """

  def __init__(self, probe: CancellationProbe | None = None, *, error_type: type[CancellationRequested] = CancellationRequested, reason: str = "Operation cancelled.", min_interval: float = 0.0) -> None:
    self._probe = probe
    self._error_type = error_type
    self._reason = reason
    self._min_interval = min_interval
    self._last_probe: float | None = None
    self._cancelled = False

  @property
  def cancelled(self) -> bool:
    return self._cancelled

  def cancel(self) -> None:
    self._cancelled = True

  async def is_cancelled(self, *, force: bool = False) -> bool:
    """Return True when cancellation was requested, consulting the probe if due.

    `force` probes regardless of `min_interval`; use it right before a step
    that cannot be undone.
    """
    if self._cancelled or self._probe is None:
      return self._cancelled
    now = time.monotonic()
    if not force and self._last_probe is not None and now - self._last_probe < self._min_interval:
      return False
    self._last_probe = now
    if await self._probe():
      self._cancelled = True
    return self._cancelled

  async def check(self, *, force: bool = False) -> None:
    """Raise the token's cancellation error when cancellation was requested."""
    if await self.is_cancelled(force=force):
      raise self._error_type(self._reason)

  def raise_cancelled(self) -> None:
    """Mark the token cancelled and raise its error."""
    self._cancelled = True
    raise self._error_type(self._reason)
