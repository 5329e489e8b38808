"""Factory helpers for the push dispatch components."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from firebase_admin import App
from google.cloud.firestore import Client as FirestoreClient

from pushrelay.config import Settings
from pushrelay.notifications.contracts import DeliveryProvider, PlatformOptions, StatusRecorder, TokenStore
from pushrelay.notifications.dispatch import DispatchEngine
from pushrelay.notifications.fcm_provider import FcmDeliveryProvider, NullDeliveryProvider
from pushrelay.notifications.handlers import PushRequestCreatedHandler, UserNotificationCreatedHandler
from pushrelay.notifications.reconciler import TokenReconciler
from pushrelay.notifications.status_recorder import FirestoreStatusRecorder, NullStatusRecorder
from pushrelay.notifications.token_store import FirestoreTokenStore, NullTokenStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationComponents:
  """Wired dispatch components sharing one provider and one store."""

  engine: DispatchEngine
  reconciler: TokenReconciler
  token_store: TokenStore
  status_recorder: StatusRecorder
  push_request_handler: PushRequestCreatedHandler
  user_notification_handler: UserNotificationCreatedHandler


def build_platform_options(settings: Settings) -> PlatformOptions:
  return PlatformOptions(android_icon=settings.android_icon or None, android_color=settings.android_color or None)


def build_notification_components(settings: Settings, *, app: App | None = None, firestore_client: FirestoreClient | None = None, provider: DeliveryProvider | None = None) -> NotificationComponents:
  """Construct the dispatch components based on environment configuration."""
  # Delivery stays disabled by default to avoid accidental pushes in dev/test.
  if provider is None:
    provider = FcmDeliveryProvider(app=app) if settings.push_enabled and app is not None else NullDeliveryProvider()

  # Persist cleanup and status only when Firestore is reachable.
  if firestore_client is not None:
    token_store: TokenStore = FirestoreTokenStore(client=firestore_client, users_collection=settings.users_collection, tokens_field=settings.device_tokens_field)
    status_recorder: StatusRecorder = FirestoreStatusRecorder(client=firestore_client, collection=settings.push_requests_collection)
  else:
    logger.warning("Firestore client unavailable; token cleanup and status recording are disabled.")
    token_store = NullTokenStore()
    status_recorder = NullStatusRecorder()

  reconciler = TokenReconciler(token_store=token_store, max_attempts=settings.reconcile_max_attempts)
  engine = DispatchEngine(provider=provider, reconciler=reconciler, status_recorder=status_recorder, timeout_seconds=settings.provider_timeout_seconds, max_tokens_per_call=settings.max_tokens_per_call)
  return NotificationComponents(
    engine=engine,
    reconciler=reconciler,
    token_store=token_store,
    status_recorder=status_recorder,
    push_request_handler=PushRequestCreatedHandler(engine=engine, status_recorder=status_recorder, platform_options=build_platform_options(settings)),
    user_notification_handler=UserNotificationCreatedHandler(engine=engine, token_store=token_store),
  )
