import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from app.core.database import get_db_engine
from app.core.firebase import initialize_firebase
from app.core.logging import _initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Ensure logging is correctly set up after uvicorn starts."""
  from app.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  _initialize_logging(settings)
  logger.info("Startup complete - logging verified. environment=%s provider=%s", settings.environment, settings.ai_provider)
  # Log the configured DSN without credentials for troubleshooting.
  logger.info("Database DSN=%s", _redact_dsn(settings.pg_dsn))
  if not settings.task_secret:
    logger.warning("INKWELL_TASK_SECRET is not set; task endpoints accept authenticated users only.")

  # Initialize Firebase before handling requests.
  initialize_firebase()

  yield

  # Release pooled connections so restarts do not leak sockets.
  engine = get_db_engine()
  if engine is not None:
    await engine.dispose()
    logger.info("Database engine disposed.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
