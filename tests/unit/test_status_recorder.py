from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from google.cloud import firestore

from pushrelay.notifications.contracts import DispatchStatus, ErrorDetail
from pushrelay.notifications.status_recorder import FirestoreStatusRecorder, build_status_update


def test_delivered_update_sets_counts_and_sent_at():
  update = build_status_update(DispatchStatus.DELIVERED, success_count=2, failure_count=1, error_details=[ErrorDetail(code="quota-exceeded", message="slow down", token_ref="abcdefghij...")])

  assert update["status"] == "delivered"
  assert update["updatedAt"] is firestore.SERVER_TIMESTAMP
  assert update["sentAt"] is firestore.SERVER_TIMESTAMP
  assert update["successCount"] == 2
  assert update["failureCount"] == 1
  assert update["errorDetails"] == [{"token": "abcdefghij...", "code": "quota-exceeded", "message": "slow down"}]
  assert "error" not in update


def test_failed_update_defaults_missing_counts_to_zero():
  update = build_status_update(DispatchStatus.FAILED)

  assert update["successCount"] == 0
  assert update["failureCount"] == 0


def test_error_update_leaves_counts_and_details_untouched():
  update = build_status_update(DispatchStatus.ERROR, error_message="no device tokens provided", success_count=0, failure_count=3)

  assert update["status"] == "error"
  assert update["error"] == "no device tokens provided"
  for untouched in ("successCount", "failureCount", "sentAt", "errorDetails"):
    assert untouched not in update


@pytest.mark.anyio
async def test_record_status_updates_request_document():
  client = MagicMock()
  recorder = FirestoreStatusRecorder(client=client, collection="push_notifications")

  result = await recorder.record_status("req-1", DispatchStatus.FAILED, success_count=0, failure_count=2)

  assert result.success is True
  client.collection.assert_called_once_with("push_notifications")
  client.collection.return_value.document.assert_called_once_with("req-1")
  written = client.collection.return_value.document.return_value.update.call_args.args[0]
  assert written["status"] == "failed"
  assert written["failureCount"] == 2


@pytest.mark.anyio
async def test_record_status_reports_write_failure_without_raising():
  client = MagicMock()
  client.collection.return_value.document.return_value.update.side_effect = RuntimeError("document missing")
  recorder = FirestoreStatusRecorder(client=client)

  result = await recorder.record_status("req-2", DispatchStatus.ERROR, error_message="boom")

  assert result.success is False
  assert "document missing" in result.error
