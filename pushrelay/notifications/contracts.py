"""Contracts for push delivery, token storage, and dispatch bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

# Provider codes meaning the token will never accept delivery again.
INVALID_REGISTRATION_TOKEN = "invalid-registration-token"
REGISTRATION_TOKEN_NOT_REGISTERED = "registration-token-not-registered"
PERMANENTLY_INVALID_TOKEN_CODES = frozenset({INVALID_REGISTRATION_TOKEN, REGISTRATION_TOKEN_NOT_REGISTERED})

NO_DEVICE_TOKENS_MESSAGE = "no device tokens provided"
BATCH_ERROR_SCOPE = "All tokens"

_TOKEN_REF_CHARS = 10


class DispatchStatus(str, Enum):
  """Lifecycle states of a notification request document."""

  PENDING = "pending"
  DELIVERED = "delivered"
  FAILED = "failed"
  ERROR = "error"


def redact_token(token: str) -> str:
  """Return a short token reference that is safe to log and persist."""
  return f"{token[:_TOKEN_REF_CHARS]}..."


def normalize_error_code(code: str | None) -> str:
  """Strip the legacy `messaging/` namespace so codes compare consistently."""
  if not code:
    return "unknown"
  normalized = code.strip().lower()
  if normalized.startswith("messaging/"):
    normalized = normalized[len("messaging/") :]
  return normalized or "unknown"


def is_permanently_invalid(code: str | None) -> bool:
  return normalize_error_code(code) in PERMANENTLY_INVALID_TOKEN_CODES


@dataclass(frozen=True)
class Payload:
  """Represents the user-visible part of a push message."""

  title: str
  body: str
  data: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PlatformOptions:
  """Android and APNs delivery hints attached to a multicast message."""

  android_priority: str = "high"
  android_notification_priority: str = "max"
  android_icon: str | None = None
  android_color: str | None = None
  apns_sound: str = "default"
  apns_badge: int = 1
  apns_content_available: bool = True


@dataclass(frozen=True)
class MulticastRequest:
  """A single provider call addressing many device tokens."""

  tokens: tuple[str, ...]
  payload: Payload
  platform_options: PlatformOptions | None = None


@dataclass(frozen=True)
class DeliveryError:
  code: str
  message: str


@dataclass(frozen=True)
class DeliveryOutcome:
  """Per-token delivery result, positionally aligned with the request tokens."""

  success: bool
  message_id: str | None = None
  error: DeliveryError | None = None


@dataclass(frozen=True)
class MulticastResponse:
  success_count: int
  failure_count: int
  responses: tuple[DeliveryOutcome, ...]


@dataclass(frozen=True)
class ErrorDetail:
  """Failure descriptor persisted on the request document."""

  code: str
  message: str
  token_ref: str | None = None
  batch: str | None = None

  def to_dict(self) -> dict[str, str]:
    detail: dict[str, str] = {}
    # Batch-level descriptors replace the token reference entirely.
    if self.batch is not None:
      detail["batch"] = self.batch
    else:
      detail["token"] = self.token_ref or ""
    detail["code"] = self.code
    detail["message"] = self.message
    return detail


@dataclass(frozen=True)
class TokenResult:
  token_ref: str
  success: bool
  message_id: str | None = None
  error: DeliveryError | None = None

  def to_dict(self) -> dict[str, Any]:
    return {
      "token": self.token_ref,
      "success": self.success,
      "messageId": self.message_id,
      "error": {"code": self.error.code, "message": self.error.message} if self.error else None,
    }


@dataclass(frozen=True)
class ReconcileResult:
  token_ref: str
  users_updated: int


@dataclass(frozen=True)
class StatusWriteResult:
  success: bool
  error: str | None = None


@dataclass(frozen=True)
class DispatchResult:
  """Aggregate outcome of one dispatch cycle."""

  status: DispatchStatus
  attempted: int
  success_count: int
  failure_count: int
  results: tuple[TokenResult, ...] = ()
  error_details: tuple[ErrorDetail, ...] = ()
  error_message: str | None = None
  users_updated: int = 0

  @property
  def success(self) -> bool:
    return self.status is DispatchStatus.DELIVERED

  def to_dict(self) -> dict[str, Any]:
    """Return the camelCase shape exposed to callable clients."""
    return {
      "success": self.success,
      "status": self.status.value,
      "successCount": self.success_count,
      "failureCount": self.failure_count,
      "results": [result.to_dict() for result in self.results],
      "errorDetails": [detail.to_dict() for detail in self.error_details],
      "error": self.error_message,
    }


class NotificationError(Exception):
  """Base class for all push dispatch failures."""


class PushValidationError(NotificationError):
  """Raised when a callable request cannot be dispatched as submitted."""


class DeliveryProviderError(NotificationError):
  """Raised when the provider call fails for the whole batch."""

  def __init__(self, message: str, *, code: str = "unknown") -> None:
    super().__init__(message)
    self.code = code


class ReconciliationError(NotificationError):
  """Raised when invalid-token cleanup cannot be applied atomically."""


class StatusWriteError(NotificationError):
  """Raised when the request document cannot be updated."""


class DeliveryProvider(Protocol):
  """Delivery contract for multicast push messages."""

  def send_multicast(self, request: MulticastRequest) -> MulticastResponse:
    """Send one message to every token synchronously and return per-token outcomes."""


class TokenStore(Protocol):
  """Storage contract for per-user device token sets."""

  def find_users_with_token(self, token: str) -> list[str]:
    """Return the ids of every user whose token set contains `token`."""

  def remove_token_from_users(self, user_ids: list[str], token: str) -> None:
    """Remove `token` from every listed user in one atomic write."""

  def get_user_tokens(self, user_id: str) -> list[str] | None:
    """Return a user's tokens, or None when the user does not exist."""


class StatusRecorder(Protocol):
  """Sink for the final outcome of a notification request."""

  async def record_status(
    self, request_id: str, status: DispatchStatus, error_message: str | None = None, success_count: int | None = None, failure_count: int | None = None, error_details: list[ErrorDetail] | None = None
  ) -> StatusWriteResult:
    """Persist status fields with merge semantics; never raises."""
