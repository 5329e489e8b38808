from __future__ import annotations

import logging
import secrets
from typing import Annotated, Any

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from pushrelay.config import Settings, get_settings
from pushrelay.core.firebase import verify_id_token

logger = logging.getLogger(__name__)

security_scheme = HTTPBearer(auto_error=False)


async def get_current_claims(token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)]) -> dict[str, Any]:
  """Verify the Firebase ID token on a callable request and return its claims."""
  if token is None or not token.credentials:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="The function must be called while authenticated.", headers={"WWW-Authenticate": "Bearer"})

  decoded_claims = await run_in_threadpool(verify_id_token, token.credentials)
  if not decoded_claims or not decoded_claims.get("uid"):
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials", headers={"WWW-Authenticate": "Bearer"})

  return decoded_claims


async def require_event_secret(
  settings: Annotated[Settings, Depends(get_settings)], authorization: str | None = Header(default=None), x_pushrelay_event_secret: str | None = Header(default=None)
) -> None:
  """Authenticate trigger deliveries with a shared secret."""
  # Secure-by-default: event endpoints dispatch real pushes.
  if not settings.event_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Event authentication is not configured.")

  shared_secret_valid = secrets.compare_digest(x_pushrelay_event_secret or "", settings.event_secret)
  bearer_valid = secrets.compare_digest(authorization or "", f"Bearer {settings.event_secret}")
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Rejected event delivery with an invalid secret")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid event secret.")
