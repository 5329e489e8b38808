"""Best-effort persistence of dispatch outcomes onto request documents."""

from __future__ import annotations

import logging
from typing import Any

from google.cloud import firestore
from starlette.concurrency import run_in_threadpool

from pushrelay.notifications.contracts import DispatchStatus, ErrorDetail, StatusRecorder, StatusWriteError, StatusWriteResult

logger = logging.getLogger(__name__)

DEFAULT_PUSH_REQUESTS_COLLECTION = "push_notifications"

_COUNTED_STATUSES = {DispatchStatus.DELIVERED, DispatchStatus.FAILED}


def build_status_update(
  status: DispatchStatus, error_message: str | None = None, success_count: int | None = None, failure_count: int | None = None, error_details: list[ErrorDetail] | None = None
) -> dict[str, Any]:
  """Build the partial document update for a status change.

  Only the returned keys are written, so detail fields recorded earlier are
  preserved when the caller omits them.
  """
  update: dict[str, Any] = {"status": status.value, "updatedAt": firestore.SERVER_TIMESTAMP}

  # Counts describe an attempted delivery; batch-level errors leave them unset.
  if status in _COUNTED_STATUSES:
    update["successCount"] = success_count or 0
    update["failureCount"] = failure_count or 0
    update["sentAt"] = firestore.SERVER_TIMESTAMP

  if error_message:
    update["error"] = error_message

  if error_details:
    update["errorDetails"] = [detail.to_dict() for detail in error_details]

  return update


class FirestoreStatusRecorder(StatusRecorder):
  """Write status fields onto `push_notifications/{id}` documents."""

  def __init__(self, *, client: firestore.Client, collection: str = DEFAULT_PUSH_REQUESTS_COLLECTION) -> None:
    self._client = client
    self._collection = collection

  async def record_status(
    self, request_id: str, status: DispatchStatus, error_message: str | None = None, success_count: int | None = None, failure_count: int | None = None, error_details: list[ErrorDetail] | None = None
  ) -> StatusWriteResult:
    """Update the request document; failures are logged and reported, never raised."""
    update = build_status_update(status, error_message=error_message, success_count=success_count, failure_count=failure_count, error_details=error_details)

    try:
      await run_in_threadpool(self._write, request_id, update)
    except StatusWriteError as exc:
      logger.error("Push notification status update failed request_id=%s status=%s error=%s", request_id, status.value, exc)
      return StatusWriteResult(success=False, error=str(exc))

    return StatusWriteResult(success=True)

  def _write(self, request_id: str, update: dict[str, Any]) -> None:
    try:
      self._client.collection(self._collection).document(request_id).update(update)
    except Exception as exc:  # noqa: BLE001
      raise StatusWriteError(str(exc)) from exc


class NullStatusRecorder(StatusRecorder):
  """Recorder used when Firestore is not configured; drops every update."""

  async def record_status(
    self, request_id: str, status: DispatchStatus, error_message: str | None = None, success_count: int | None = None, failure_count: int | None = None, error_details: list[ErrorDetail] | None = None
  ) -> StatusWriteResult:
    logger.debug("Firestore unavailable; dropping status update request_id=%s status=%s", request_id, status.value)
    return StatusWriteResult(success=True)
