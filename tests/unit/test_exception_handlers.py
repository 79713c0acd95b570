"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

from app.core.exceptions import _coerce_json_safe, _error_payload, _sanitize_validation_errors


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Ensure validation errors stay JSON-serializable and redact raw request payloads."""
  errors = [
    {
      "type": "value_error",
      "loc": ("body", "input"),
      "msg": "Value error, Provide an industry or at least one keyword.",
      "input": {"keywords": ["  "], "secretNote": "do not echo"},
      "ctx": {"error": ValueError("Provide an industry or at least one keyword."), "input": {"keywords": ["  "]}},
    }
  ]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["loc"] == ["body", "input"]
  assert sanitized[0]["ctx"]["error"] == "ValueError: Provide an industry or at least one keyword."
  assert "input" not in sanitized[0]["ctx"]


def test_error_payload_only_includes_known_fields() -> None:
  assert _error_payload("Job not found.") == {"detail": "Job not found."}
  assert _error_payload("Job not found.", code="JOB_NOT_FOUND", request_id="abc123") == {"detail": "Job not found.", "code": "JOB_NOT_FOUND", "requestId": "abc123"}


def test_coerce_json_safe_handles_nested_containers() -> None:
  assert _coerce_json_safe({"ids": {"a"}, 1: (RuntimeError(),)}) == {"ids": ["a"], "1": ["RuntimeError"]}
