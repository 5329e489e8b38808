from __future__ import annotations

from types import SimpleNamespace

import pytest
from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from pushrelay.notifications.contracts import DeliveryProviderError, MulticastRequest, Payload, PlatformOptions
from pushrelay.notifications.fcm_provider import FcmDeliveryProvider, NullDeliveryProvider, build_multicast_message, error_code_for

PAYLOAD = Payload(title="title", body="body", data={"url": "/requests/1"})


def _request(tokens=("tok-a", "tok-b"), platform_options=None) -> MulticastRequest:
  return MulticastRequest(tokens=tuple(tokens), payload=PAYLOAD, platform_options=platform_options)


@pytest.mark.parametrize(
  ("exc", "code"),
  [
    (messaging.UnregisteredError("Requested entity was not found."), "registration-token-not-registered"),
    (firebase_exceptions.InvalidArgumentError("The registration token is not a valid FCM registration token"), "invalid-registration-token"),
    (firebase_exceptions.InvalidArgumentError("Message payload too large"), "invalid-argument"),
    (messaging.SenderIdMismatchError("sender mismatch"), "mismatched-credential"),
    (messaging.QuotaExceededError("quota"), "quota-exceeded"),
    (messaging.ThirdPartyAuthError("apns auth"), "third-party-auth-error"),
    (firebase_exceptions.UnavailableError("try later"), "server-unavailable"),
    (firebase_exceptions.InternalError("oops"), "internal-error"),
    (firebase_exceptions.PermissionDeniedError("denied"), "permission-denied"),
    (RuntimeError("no code"), "unknown"),
  ],
)
def test_error_code_for(exc, code):
  assert error_code_for(exc) == code


def test_build_message_without_platform_options():
  message = build_multicast_message(_request())

  assert message.tokens == ["tok-a", "tok-b"]
  assert message.notification.title == "title"
  assert message.notification.body == "body"
  assert message.data == {"url": "/requests/1"}
  assert message.android is None
  assert message.apns is None


def test_build_message_with_platform_options():
  message = build_multicast_message(_request(platform_options=PlatformOptions(android_icon="ic_stat_blooddrop", android_color="#E53935")))

  assert message.android.priority == "high"
  assert message.android.notification.icon == "ic_stat_blooddrop"
  assert message.android.notification.color == "#E53935"
  assert message.android.notification.priority == "max"
  assert message.apns.payload.aps.sound == "default"
  assert message.apns.payload.aps.badge == 1
  assert message.apns.payload.aps.content_available is True


def test_send_multicast_translates_responses(monkeypatch):
  captured = {}

  def _send_each_for_multicast(message, dry_run=False, app=None):
    captured["message"] = message
    responses = [SimpleNamespace(success=True, message_id="m-1", exception=None), SimpleNamespace(success=False, message_id=None, exception=messaging.UnregisteredError("gone"))]
    return SimpleNamespace(success_count=1, failure_count=1, responses=responses)

  monkeypatch.setattr("pushrelay.notifications.fcm_provider.messaging.send_each_for_multicast", _send_each_for_multicast)

  response = FcmDeliveryProvider().send_multicast(_request())

  assert captured["message"].tokens == ["tok-a", "tok-b"]
  assert response.success_count == 1
  assert response.failure_count == 1
  assert response.responses[0].message_id == "m-1"
  assert response.responses[1].error.code == "registration-token-not-registered"
  assert response.responses[1].error.message == "gone"


def test_send_multicast_wraps_batch_errors(monkeypatch):
  def _raise(message, dry_run=False, app=None):
    raise firebase_exceptions.UnauthenticatedError("invalid credentials")

  monkeypatch.setattr("pushrelay.notifications.fcm_provider.messaging.send_each_for_multicast", _raise)

  with pytest.raises(DeliveryProviderError) as excinfo:
    FcmDeliveryProvider().send_multicast(_request())

  assert excinfo.value.code == "unauthenticated"


def test_null_provider_rejects_every_batch():
  with pytest.raises(DeliveryProviderError) as excinfo:
    NullDeliveryProvider().send_multicast(_request())

  assert excinfo.value.code == "delivery-disabled"
