"""Authenticated callable endpoint for sending to an explicit token list."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status

from pushrelay.api.deps import get_notification_components
from pushrelay.core.security import get_current_claims
from pushrelay.notifications.contracts import DispatchStatus, PushValidationError
from pushrelay.notifications.factory import NotificationComponents
from pushrelay.notifications.schemas import CallablePushRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/send", status_code=status.HTTP_200_OK)
async def send_push_notification(
  payload: CallablePushRequest, claims: Annotated[dict[str, Any], Depends(get_current_claims)], components: Annotated[NotificationComponents, Depends(get_notification_components)]
) -> dict[str, Any]:
  """Send one notification to the given device tokens and return per-token results."""
  engine = components.engine
  # Oversized batches are the caller's to split; reject before touching the provider.
  if len(payload.tokens) > engine.max_tokens_per_call:
    raise PushValidationError(f"At most {engine.max_tokens_per_call} device tokens may be sent per call.")

  result = await engine.dispatch(payload.tokens, payload.to_payload())
  logger.info("Callable push from uid=%s: %d successful, %d failed", claims.get("uid"), result.success_count, result.failure_count)

  if result.status is DispatchStatus.ERROR:
    raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Push delivery provider failed.")

  return result.to_dict()
