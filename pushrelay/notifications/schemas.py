"""Boundary validation for push request payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from pushrelay.notifications.contracts import Payload


def coerce_string_map(value: Any) -> dict[str, str]:
  """Coerce a loosely typed mapping into string keys and string values."""
  if value is None:
    return {}

  if not isinstance(value, dict):
    raise PydanticCustomError("push_data_type", "data must be an object of string values.")

  coerced: dict[str, str] = {}
  for key, item in value.items():
    # FCM data payloads only carry flat string values.
    if isinstance(item, dict | list | tuple | set) or item is None:
      raise PydanticCustomError("push_data_value", "data value for '{key}' must be a scalar.", {"key": str(key)})
    if isinstance(item, bool):
      coerced[str(key)] = "true" if item else "false"
    else:
      coerced[str(key)] = str(item)
  return coerced


def _normalize_tokens(value: Any) -> list[str]:
  if value is None:
    return []

  if not isinstance(value, list | tuple):
    raise PydanticCustomError("push_tokens_type", "tokens must be an array of strings.")

  tokens: list[str] = []
  for item in value:
    if not isinstance(item, str) or not item.strip():
      raise PydanticCustomError("push_token_value", "each token must be a non-empty string.")
    tokens.append(item.strip())
  return tokens


class NotificationContent(BaseModel):
  """Title and body shown by the device."""

  title: str = Field(min_length=1, max_length=1024)
  body: str = Field(min_length=1, max_length=4096)
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class PushRequestDocument(BaseModel):
  """Shape of a `push_notifications/{id}` document at creation time."""

  tokens: list[str] = Field(default_factory=list)
  notification: NotificationContent
  data: dict[str, str] = Field(default_factory=dict)
  model_config = ConfigDict(extra="ignore")

  @field_validator("tokens", mode="before")
  @classmethod
  def validate_tokens(cls, value: Any) -> list[str]:
    return _normalize_tokens(value)

  @field_validator("data", mode="before")
  @classmethod
  def validate_data(cls, value: Any) -> dict[str, str]:
    return coerce_string_map(value)

  def to_payload(self) -> Payload:
    return Payload(title=self.notification.title, body=self.notification.body, data=dict(self.data))


class CallablePushRequest(PushRequestDocument):
  """Body of the authenticated send endpoint; at least one token is required."""

  tokens: list[str] = Field(min_length=1)


class UserNotificationDocument(BaseModel):
  """Shape of a `notifications/{id}` document addressed to a single user."""

  user_id: str = Field(alias="userId", min_length=1)
  title: str = Field(min_length=1)
  body: str = Field(min_length=1)
  type: str = "general"
  metadata: dict[str, str] = Field(default_factory=dict)
  model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)

  @field_validator("type", mode="before")
  @classmethod
  def default_type(cls, value: Any) -> str:
    return str(value) if value else "general"

  @field_validator("metadata", mode="before")
  @classmethod
  def validate_metadata(cls, value: Any) -> dict[str, str]:
    return coerce_string_map(value)


class DocumentCreatedEvent(BaseModel):
  """Transport-neutral document-creation event delivered to trigger handlers."""

  document_id: str = Field(alias="documentId", min_length=1, max_length=1500)
  data: dict[str, Any] = Field(default_factory=dict)
  model_config = ConfigDict(extra="ignore", populate_by_name=True)
