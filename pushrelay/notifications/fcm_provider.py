"""Firebase Cloud Messaging implementation of the delivery provider."""

from __future__ import annotations

import logging

from firebase_admin import App, messaging
from firebase_admin import exceptions as firebase_exceptions

from pushrelay.notifications.contracts import (
  INVALID_REGISTRATION_TOKEN,
  REGISTRATION_TOKEN_NOT_REGISTERED,
  DeliveryError,
  DeliveryOutcome,
  DeliveryProvider,
  DeliveryProviderError,
  MulticastRequest,
  MulticastResponse,
  PlatformOptions,
)

logger = logging.getLogger(__name__)


class FcmDeliveryProvider(DeliveryProvider):
  """`firebase_admin.messaging` backed multicast sender."""

  def __init__(self, *, app: App | None = None, dry_run: bool = False) -> None:
    self._app = app
    self._dry_run = dry_run

  def send_multicast(self, request: MulticastRequest) -> MulticastResponse:
    """Send one multicast message and translate SDK results into outcomes."""
    message = build_multicast_message(request)

    try:
      batch = messaging.send_each_for_multicast(message, dry_run=self._dry_run, app=self._app)
    except firebase_exceptions.FirebaseError as exc:
      raise DeliveryProviderError(str(exc), code=error_code_for(exc)) from exc
    except ValueError as exc:
      # The SDK validates message shape locally before any network round trip.
      raise DeliveryProviderError(str(exc), code="invalid-argument") from exc

    outcomes = tuple(_outcome_from_send_response(response) for response in batch.responses)
    logger.debug("FCM multicast finished success=%d failure=%d", batch.success_count, batch.failure_count)
    return MulticastResponse(success_count=batch.success_count, failure_count=batch.failure_count, responses=outcomes)


class NullDeliveryProvider(DeliveryProvider):
  """Provider used when push delivery is disabled; every batch fails."""

  def send_multicast(self, request: MulticastRequest) -> MulticastResponse:
    logger.debug("Push delivery disabled; rejecting batch of %d tokens", len(request.tokens))
    raise DeliveryProviderError("Push delivery is disabled.", code="delivery-disabled")


def build_multicast_message(request: MulticastRequest) -> messaging.MulticastMessage:
  """Map a provider-neutral request onto the FCM message model."""
  payload = request.payload
  android = None
  apns = None
  if request.platform_options is not None:
    android, apns = _platform_configs(request.platform_options)

  return messaging.MulticastMessage(
    tokens=list(request.tokens),
    notification=messaging.Notification(title=payload.title, body=payload.body),
    data=dict(payload.data),
    android=android,
    apns=apns,
  )


def _platform_configs(options: PlatformOptions) -> tuple[messaging.AndroidConfig, messaging.APNSConfig]:
  android = messaging.AndroidConfig(
    priority=options.android_priority,
    notification=messaging.AndroidNotification(icon=options.android_icon, color=options.android_color, priority=options.android_notification_priority, default_vibrate_timings=True, default_sound=True),
  )
  apns = messaging.APNSConfig(payload=messaging.APNSPayload(aps=messaging.Aps(sound=options.apns_sound, badge=options.apns_badge, content_available=options.apns_content_available)))
  return android, apns


def _outcome_from_send_response(response: messaging.SendResponse) -> DeliveryOutcome:
  if response.success:
    return DeliveryOutcome(success=True, message_id=response.message_id)

  exc = response.exception
  if exc is None:
    return DeliveryOutcome(success=False, error=DeliveryError(code="unknown", message="Delivery failed without provider detail"))

  return DeliveryOutcome(success=False, error=DeliveryError(code=error_code_for(exc), message=str(exc)))


def error_code_for(exc: BaseException) -> str:
  """Translate a firebase-admin exception into a provider-neutral error code."""
  if isinstance(exc, messaging.UnregisteredError):
    return REGISTRATION_TOKEN_NOT_REGISTERED

  if isinstance(exc, messaging.SenderIdMismatchError):
    return "mismatched-credential"

  if isinstance(exc, messaging.QuotaExceededError):
    return "quota-exceeded"

  if isinstance(exc, messaging.ThirdPartyAuthError):
    return "third-party-auth-error"

  if isinstance(exc, firebase_exceptions.InvalidArgumentError):
    # FCM reports malformed tokens as a generic INVALID_ARGUMENT.
    if "registration token" in str(exc).lower():
      return INVALID_REGISTRATION_TOKEN
    return "invalid-argument"

  if isinstance(exc, firebase_exceptions.UnavailableError):
    return "server-unavailable"

  if isinstance(exc, firebase_exceptions.InternalError):
    return "internal-error"

  raw_code = getattr(exc, "code", None)
  if isinstance(raw_code, str) and raw_code:
    return raw_code.strip().lower().replace("_", "-")

  return "unknown"
