from __future__ import annotations

from dataclasses import replace
from unittest.mock import MagicMock

from pushrelay.config import get_settings
from pushrelay.notifications.factory import build_notification_components, build_platform_options
from pushrelay.notifications.fcm_provider import FcmDeliveryProvider, NullDeliveryProvider
from pushrelay.notifications.status_recorder import FirestoreStatusRecorder, NullStatusRecorder
from pushrelay.notifications.token_store import FirestoreTokenStore, NullTokenStore


def test_defaults_to_null_components_without_firebase():
  components = build_notification_components(replace(get_settings(), push_enabled=False))

  assert isinstance(components.engine._provider, NullDeliveryProvider)
  assert isinstance(components.token_store, NullTokenStore)
  assert isinstance(components.status_recorder, NullStatusRecorder)


def test_uses_fcm_and_firestore_when_configured():
  settings = replace(get_settings(), push_enabled=True, firebase_project_id="blood-link", users_collection="members", max_tokens_per_call=100)

  components = build_notification_components(settings, app=MagicMock(), firestore_client=MagicMock())

  assert isinstance(components.engine._provider, FcmDeliveryProvider)
  assert isinstance(components.token_store, FirestoreTokenStore)
  assert isinstance(components.status_recorder, FirestoreStatusRecorder)
  assert components.engine.max_tokens_per_call == 100
  # Engine and per-user handler share one store so cleanup lands where tokens are read.
  assert components.reconciler._token_store is components.token_store


def test_platform_options_follow_settings():
  options = build_platform_options(replace(get_settings(), android_icon="ic_custom", android_color=""))

  assert options.android_icon == "ic_custom"
  assert options.android_color is None
  assert options.android_priority == "high"
