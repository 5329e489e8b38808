"""Document-created handlers that feed the dispatch engine.

Handlers are the trigger-facing edge of the service. They validate the
created document, dispatch it, and report an outcome. They never raise:
the platform re-delivers failed trigger invocations, and a raising handler
would turn one bad document into a retry storm.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from pushrelay.notifications.contracts import NO_DEVICE_TOKENS_MESSAGE, DispatchResult, DispatchStatus, Payload, PlatformOptions, StatusRecorder, TokenStore
from pushrelay.notifications.dispatch import DispatchEngine
from pushrelay.notifications.schemas import DocumentCreatedEvent, PushRequestDocument, UserNotificationDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandlerOutcome:
  """What a trigger invocation did with one created document."""

  success: bool
  document_id: str
  status: str | None = None
  success_count: int = 0
  failure_count: int = 0
  error: str | None = None
  skipped: bool = False

  @classmethod
  def from_dispatch(cls, document_id: str, result: DispatchResult) -> HandlerOutcome:
    return cls(success=result.success, document_id=document_id, status=result.status.value, success_count=result.success_count, failure_count=result.failure_count, error=result.error_message)

  def to_dict(self) -> dict[str, Any]:
    return {"success": self.success, "documentId": self.document_id, "status": self.status, "successCount": self.success_count, "failureCount": self.failure_count, "error": self.error, "skipped": self.skipped}


class DocumentCreatedHandler(Protocol):
  async def handle(self, event: DocumentCreatedEvent) -> HandlerOutcome:
    """Process one created document without raising."""


def _first_validation_message(exc: ValidationError) -> str:
  errors = exc.errors()
  if not errors:
    return "invalid document"
  first = errors[0]
  location = ".".join(str(part) for part in first.get("loc", ()))
  return f"{location}: {first.get('msg', 'invalid value')}" if location else str(first.get("msg", "invalid value"))


class PushRequestCreatedHandler:
  """Dispatch a `push_notifications/{id}` document to its listed tokens."""

  def __init__(self, *, engine: DispatchEngine, status_recorder: StatusRecorder, platform_options: PlatformOptions | None = None) -> None:
    self._engine = engine
    self._status_recorder = status_recorder
    self._platform_options = platform_options

  async def handle(self, event: DocumentCreatedEvent) -> HandlerOutcome:
    request_id = event.document_id
    logger.info("Processing push notification %s", request_id)

    try:
      try:
        document = PushRequestDocument.model_validate(event.data)
      except ValidationError as exc:
        # Missing tokens take precedence so the request reads the same as an empty batch.
        message = NO_DEVICE_TOKENS_MESSAGE if not event.data.get("tokens") else f"invalid push notification: {_first_validation_message(exc)}"
        logger.warning("Push notification %s rejected: %s", request_id, message)
        await self._status_recorder.record_status(request_id, DispatchStatus.ERROR, error_message=message)
        return HandlerOutcome(success=False, document_id=request_id, status=DispatchStatus.ERROR.value, error=message)

      result = await self._engine.dispatch(document.tokens, document.to_payload(), request_id=request_id, platform_options=self._platform_options)
      return HandlerOutcome.from_dispatch(request_id, result)

    except Exception as exc:  # noqa: BLE001
      logger.error("Unhandled error processing push notification %s: %s", request_id, exc, exc_info=True)
      await self._status_recorder.record_status(request_id, DispatchStatus.ERROR, error_message=str(exc) or type(exc).__name__)
      return HandlerOutcome(success=False, document_id=request_id, status=DispatchStatus.ERROR.value, error=str(exc) or type(exc).__name__)


class UserNotificationCreatedHandler:
  """Deliver a `notifications/{id}` document to every device of its user."""

  def __init__(self, *, engine: DispatchEngine, token_store: TokenStore) -> None:
    self._engine = engine
    self._token_store = token_store

  async def handle(self, event: DocumentCreatedEvent) -> HandlerOutcome:
    notification_id = event.document_id

    if not event.data.get("userId"):
      logger.error("No userId found in notification %s", notification_id)
      return HandlerOutcome(success=False, document_id=notification_id, error="missing userId", skipped=True)

    try:
      document = UserNotificationDocument.model_validate(event.data)
    except ValidationError as exc:
      message = _first_validation_message(exc)
      logger.error("Notification %s rejected: %s", notification_id, message)
      return HandlerOutcome(success=False, document_id=notification_id, error=message, skipped=True)

    try:
      tokens = await run_in_threadpool(self._token_store.get_user_tokens, document.user_id)
      if tokens is None:
        logger.error("User document not found for notification %s", notification_id)
        return HandlerOutcome(success=False, document_id=notification_id, error="user not found", skipped=True)

      if not tokens:
        logger.info("No device tokens found for the user of notification %s", notification_id)
        return HandlerOutcome(success=True, document_id=notification_id, skipped=True)

      data = {"notificationId": notification_id, "type": document.type, **document.metadata}
      result = await self._engine.dispatch(tokens, Payload(title=document.title, body=document.body, data=data))
      return HandlerOutcome.from_dispatch(notification_id, result)

    except Exception as exc:  # noqa: BLE001
      logger.error("Error sending notification %s: %s", notification_id, exc, exc_info=True)
      return HandlerOutcome(success=False, document_id=notification_id, error=str(exc) or type(exc).__name__)
