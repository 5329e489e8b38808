from __future__ import annotations

import pytest

from pushrelay.config import FCM_MULTICAST_TOKEN_LIMIT, get_settings

_ENV_KEYS = (
  "PUSHRELAY_ENV",
  "PUSHRELAY_DEBUG",
  "PUSHRELAY_ALLOWED_ORIGINS",
  "PUSHRELAY_PUSH_ENABLED",
  "FIREBASE_PROJECT_ID",
  "PUSHRELAY_PROVIDER_TIMEOUT_SECONDS",
  "PUSHRELAY_MAX_TOKENS_PER_CALL",
  "PUSHRELAY_RECONCILE_MAX_ATTEMPTS",
  "PUSHRELAY_EVENT_SECRET",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
  for key in _ENV_KEYS:
    monkeypatch.delenv(key, raising=False)
  get_settings.cache_clear()
  yield
  get_settings.cache_clear()


def test_defaults():
  settings = get_settings()

  assert settings.environment == "development"
  assert settings.push_enabled is False
  assert settings.provider_timeout_seconds == 10.0
  assert settings.max_tokens_per_call == FCM_MULTICAST_TOKEN_LIMIT
  assert settings.reconcile_max_attempts == 3
  assert settings.users_collection == "users"
  assert settings.device_tokens_field == "deviceTokens"
  assert settings.push_requests_collection == "push_notifications"
  assert settings.event_secret is None


def test_overrides(monkeypatch):
  monkeypatch.setenv("PUSHRELAY_PUSH_ENABLED", "true")
  monkeypatch.setenv("FIREBASE_PROJECT_ID", "blood-link")
  monkeypatch.setenv("PUSHRELAY_PROVIDER_TIMEOUT_SECONDS", "2.5")
  monkeypatch.setenv("PUSHRELAY_ALLOWED_ORIGINS", "https://a.example, https://b.example")
  monkeypatch.setenv("PUSHRELAY_EVENT_SECRET", "  ")

  settings = get_settings()

  assert settings.push_enabled is True
  assert settings.firebase_project_id == "blood-link"
  assert settings.provider_timeout_seconds == 2.5
  assert settings.allowed_origins == ("https://a.example", "https://b.example")
  assert settings.event_secret is None


@pytest.mark.parametrize(
  ("key", "value"),
  [
    ("PUSHRELAY_PROVIDER_TIMEOUT_SECONDS", "0"),
    ("PUSHRELAY_MAX_TOKENS_PER_CALL", "501"),
    ("PUSHRELAY_MAX_TOKENS_PER_CALL", "0"),
    ("PUSHRELAY_RECONCILE_MAX_ATTEMPTS", "0"),
    ("PUSHRELAY_ALLOWED_ORIGINS", "*"),
  ],
)
def test_invalid_values_are_rejected(monkeypatch, key, value):
  monkeypatch.setenv(key, value)

  with pytest.raises(ValueError):
    get_settings()


def test_push_enabled_requires_project_id(monkeypatch):
  monkeypatch.setenv("PUSHRELAY_PUSH_ENABLED", "1")

  with pytest.raises(ValueError, match="FIREBASE_PROJECT_ID"):
    get_settings()
