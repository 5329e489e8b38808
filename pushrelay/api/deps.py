"""Shared FastAPI dependencies for the dispatch components."""

from __future__ import annotations

from functools import lru_cache

from pushrelay.config import get_settings
from pushrelay.core.firebase import get_firestore_client, initialize_firebase
from pushrelay.notifications.factory import NotificationComponents, build_notification_components


@lru_cache(maxsize=1)
def get_notification_components() -> NotificationComponents:
  """Build the dispatch components once per process."""
  settings = get_settings()
  app = initialize_firebase(settings)
  firestore_client = get_firestore_client(app) if app is not None else None
  return build_notification_components(settings, app=app, firestore_client=firestore_client)
