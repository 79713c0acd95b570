"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the Inkwell service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  task_secret: str | None
  jobs_batch_size: int
  jobs_stale_after_seconds: int | None
  ai_provider: str
  ai_model: str | None
  ai_base_url: str | None
  ai_api_key: str | None
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


_SUPPORTED_AI_PROVIDERS = {"openrouter", "openai"}


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("INKWELL_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("INKWELL_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("INKWELL_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _resolve_ai_api_key(provider: str) -> str | None:
  """Pick the API key that matches the configured generation provider."""
  explicit = _optional_str(os.getenv("INKWELL_AI_API_KEY"))
  if explicit:
    return explicit

  if provider == "openai":
    return _optional_str(os.getenv("OPENAI_API_KEY"))

  return _optional_str(os.getenv("OPENROUTER_API_KEY"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("INKWELL_ENV", "development").lower()

  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("INKWELL_DEBUG"))

  log_max_bytes = int(os.getenv("INKWELL_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("INKWELL_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("INKWELL_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("INKWELL_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("INKWELL_LOG_HTTP_4XX"))

  pg_connect_timeout = int(os.getenv("INKWELL_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("INKWELL_PG_CONNECT_TIMEOUT must be a positive integer.")

  # Dispatcher batches stay small so one trigger cannot monopolize the generation backend.
  jobs_batch_size = int(os.getenv("INKWELL_JOBS_BATCH_SIZE", "5"))
  if jobs_batch_size <= 0 or jobs_batch_size > 50:
    raise ValueError("INKWELL_JOBS_BATCH_SIZE must be between 1 and 50.")

  jobs_stale_after_seconds = _parse_optional_int(os.getenv("INKWELL_JOBS_STALE_AFTER_SECONDS"))

  ai_provider = (os.getenv("INKWELL_AI_PROVIDER") or "openrouter").strip().lower()
  if ai_provider not in _SUPPORTED_AI_PROVIDERS:
    raise ValueError(f"INKWELL_AI_PROVIDER must be one of: {', '.join(sorted(_SUPPORTED_AI_PROVIDERS))}.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("INKWELL_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    pg_dsn=os.getenv("INKWELL_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=pg_connect_timeout,
    task_secret=_optional_str(os.getenv("INKWELL_TASK_SECRET")),
    jobs_batch_size=jobs_batch_size,
    jobs_stale_after_seconds=jobs_stale_after_seconds,
    ai_provider=ai_provider,
    ai_model=_optional_str(os.getenv("INKWELL_AI_MODEL")),
    ai_base_url=_optional_str(os.getenv("INKWELL_AI_BASE_URL")),
    ai_api_key=_resolve_ai_api_key(ai_provider),
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so migrations and offline scripts don't require unrelated env vars.
  debug = _parse_bool(os.getenv("INKWELL_DEBUG"))
  pg_connect_timeout = int(os.getenv("INKWELL_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("INKWELL_PG_CONNECT_TIMEOUT must be a positive integer.")

  pg_dsn = os.getenv("INKWELL_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _parse_optional_int(raw: str | None) -> int | None:
  if raw is None or raw.strip() == "":
    return None

  value = int(raw)

  if value <= 0:
    raise ValueError("Optional timeout seconds must be positive when provided.")

  return value
