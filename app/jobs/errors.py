"""Error taxonomy shared by the job queue, workers and streaming generator."""

from __future__ import annotations

from typing import Any


class InkwellError(Exception):
  """Base class for errors that carry a stable code and a structured payload."""

  code = "INTERNAL_ERROR"
  status_code = 500

  def __init__(self, message: str, *, code: str | None = None, details: dict[str, Any] | None = None) -> None:
    super().__init__(message)
    self.message = message
    if code is not None:
      self.code = code
    self.details = dict(details or {})

  @property
  def kind(self) -> str:
    return type(self).__name__

  def to_payload(self) -> dict[str, Any]:
    """Return the structured error stored on failed jobs."""
    return {"message": self.message, "code": self.code, "details": {"kind": self.kind, **self.details}}


class ValidationError(InkwellError):
  """Malformed input, rejected before any mutation."""

  code = "VALIDATION_ERROR"
  status_code = 400


class AuthError(InkwellError):
  """Missing session or entity ownership mismatch."""

  code = "FORBIDDEN"
  status_code = 403


class NotFoundError(InkwellError):
  """Job or referenced domain entity is absent."""

  code = "NOT_FOUND"
  status_code = 404


class UpstreamError(InkwellError):
  """Generation backend failure."""

  code = "UPSTREAM_ERROR"
  status_code = 502


class PersistenceError(InkwellError):
  """Store read or write failure."""

  code = "PERSISTENCE_ERROR"
  status_code = 500


class UnsupportedOperation(InkwellError):
  """Unknown job type or illegal state transition."""

  code = "UNSUPPORTED_OPERATION"
  status_code = 400


def error_from_exception(exc: BaseException, *, code: str) -> dict[str, Any]:
  """Build a job error payload for an exception raised inside a worker."""
  if isinstance(exc, InkwellError):
    payload = exc.to_payload()
    # Keep the taxonomy code visible while the job carries the worker's failure code.
    payload["details"]["errorCode"] = exc.code
    payload["code"] = code
    return payload

  message = str(exc) or type(exc).__name__
  return {"message": message, "code": code, "details": {"kind": type(exc).__name__}}
