from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from app.core.firebase import verify_id_token

# Task endpoints accept a shared secret in the same header, so bearer auth must not fail eagerly.
security_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
  """Authenticated caller resolved from a verified Firebase ID token."""

  uid: str
  email: str | None = None
  claims: dict[str, Any] = field(default_factory=dict)


async def get_optional_user(token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)]) -> CurrentUser | None:
  """Resolve the caller when a valid bearer token is present, otherwise return None."""
  if token is None or not token.credentials:
    return None

  decoded_claims = await run_in_threadpool(verify_id_token, token.credentials)
  if not decoded_claims:
    return None

  firebase_uid = decoded_claims.get("uid")
  if not firebase_uid:
    return None

  email = decoded_claims.get("email")
  return CurrentUser(uid=str(firebase_uid), email=str(email) if email else None, claims=dict(decoded_claims))


async def get_current_user(current_user: Annotated[CurrentUser | None, Depends(get_optional_user)]) -> CurrentUser:
  """Require an authenticated caller."""
  if current_user is None:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials", headers={"WWW-Authenticate": "Bearer"})

  return current_user
