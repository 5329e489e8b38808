"""Internal endpoints receiving document-created trigger deliveries."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from pushrelay.api.deps import get_notification_components
from pushrelay.core.security import require_event_secret
from pushrelay.notifications.factory import NotificationComponents
from pushrelay.notifications.schemas import DocumentCreatedEvent

router = APIRouter(prefix="/events", dependencies=[Depends(require_event_secret)])


@router.post("/push-notifications", status_code=status.HTTP_200_OK)
async def push_notification_created(event: DocumentCreatedEvent, components: Annotated[NotificationComponents, Depends(get_notification_components)]) -> dict[str, Any]:
  """Dispatch a newly created push request; the outcome is written to the document."""
  outcome = await components.push_request_handler.handle(event)
  return outcome.to_dict()


@router.post("/notifications", status_code=status.HTTP_200_OK)
async def user_notification_created(event: DocumentCreatedEvent, components: Annotated[NotificationComponents, Depends(get_notification_components)]) -> dict[str, Any]:
  """Deliver a newly created per-user notification to the user's devices."""
  outcome = await components.user_notification_handler.handle(event)
  return outcome.to_dict()
