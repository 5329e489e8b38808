"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from pushrelay.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

# FCM rejects multicast messages addressed to more tokens than this.
FCM_MULTICAST_TOKEN_LIMIT = 500


@dataclass(frozen=True)
class Settings:
  """Typed settings for the pushrelay service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  push_enabled: bool
  provider_timeout_seconds: float
  max_tokens_per_call: int
  reconcile_max_attempts: int
  users_collection: str
  device_tokens_field: str
  push_requests_collection: str
  android_icon: str
  android_color: str
  event_secret: str | None


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:3000",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("PUSHRELAY_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("PUSHRELAY_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("PUSHRELAY_ENV", "development").lower()
  debug = _parse_bool(os.getenv("PUSHRELAY_DEBUG"))

  log_max_bytes = int(os.getenv("PUSHRELAY_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("PUSHRELAY_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("PUSHRELAY_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("PUSHRELAY_LOG_BACKUP_COUNT must be zero or a positive integer.")

  firebase_project_id = _optional_str(os.getenv("FIREBASE_PROJECT_ID"))
  push_enabled = _parse_bool(os.getenv("PUSHRELAY_PUSH_ENABLED"))

  # Delivery needs an initialized Firebase app; refuse to start half-configured.
  if push_enabled and not firebase_project_id:
    raise ValueError("FIREBASE_PROJECT_ID must be set when push delivery is enabled.")

  provider_timeout_seconds = float(os.getenv("PUSHRELAY_PROVIDER_TIMEOUT_SECONDS", "10"))
  if provider_timeout_seconds <= 0:
    raise ValueError("PUSHRELAY_PROVIDER_TIMEOUT_SECONDS must be positive.")

  max_tokens_per_call = int(os.getenv("PUSHRELAY_MAX_TOKENS_PER_CALL", str(FCM_MULTICAST_TOKEN_LIMIT)))
  if not 1 <= max_tokens_per_call <= FCM_MULTICAST_TOKEN_LIMIT:
    raise ValueError(f"PUSHRELAY_MAX_TOKENS_PER_CALL must be between 1 and {FCM_MULTICAST_TOKEN_LIMIT}.")

  reconcile_max_attempts = int(os.getenv("PUSHRELAY_RECONCILE_MAX_ATTEMPTS", "3"))
  if reconcile_max_attempts < 1:
    raise ValueError("PUSHRELAY_RECONCILE_MAX_ATTEMPTS must be at least 1.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("PUSHRELAY_ALLOWED_ORIGINS")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("PUSHRELAY_LOG_HTTP_4XX")),
    firebase_project_id=firebase_project_id,
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
    push_enabled=push_enabled,
    provider_timeout_seconds=provider_timeout_seconds,
    max_tokens_per_call=max_tokens_per_call,
    reconcile_max_attempts=reconcile_max_attempts,
    users_collection=os.getenv("PUSHRELAY_USERS_COLLECTION", "users").strip(),
    device_tokens_field=os.getenv("PUSHRELAY_DEVICE_TOKENS_FIELD", "deviceTokens").strip(),
    push_requests_collection=os.getenv("PUSHRELAY_PUSH_REQUESTS_COLLECTION", "push_notifications").strip(),
    android_icon=os.getenv("PUSHRELAY_ANDROID_ICON", "ic_stat_blooddrop").strip(),
    android_color=os.getenv("PUSHRELAY_ANDROID_COLOR", "#E53935").strip(),
    event_secret=_optional_str(os.getenv("PUSHRELAY_EVENT_SECRET")),
  )
