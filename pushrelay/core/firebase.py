import logging
from typing import Any

import firebase_admin
from firebase_admin import App, auth, credentials, firestore
from google.cloud.firestore import Client as FirestoreClient

from pushrelay.config import Settings, get_settings

logger = logging.getLogger(__name__)


def initialize_firebase(settings: Settings | None = None) -> App | None:
  """Initializes the Firebase Admin SDK and returns the default app."""
  if firebase_admin._apps:
    return firebase_admin.get_app()

  settings = settings or get_settings()
  if not settings.firebase_project_id:
    logger.warning("Firebase Project ID not set. Firebase Admin SDK not initialized.")
    return None

  try:
    if settings.firebase_service_account_json_path:
      cred = credentials.Certificate(settings.firebase_service_account_json_path)
      app = firebase_admin.initialize_app(cred, {"projectId": settings.firebase_project_id})
    else:
      # Use default credentials (e.g. Google Application Default Credentials)
      app = firebase_admin.initialize_app(options={"projectId": settings.firebase_project_id})
    logger.info("Firebase Admin SDK initialized successfully.")
    return app
  except Exception as e:  # noqa: BLE001
    logger.error("Failed to initialize Firebase Admin SDK: %s", e)
    return None


def get_firestore_client(app: App | None = None) -> FirestoreClient | None:
  """Returns a Firestore client instance. Lazily initializes if needed."""
  if app is None:
    app = initialize_firebase()
  if app is None:
    return None

  try:
    return firestore.client(app)
  except Exception as e:  # noqa: BLE001
    logger.error("Failed to get Firestore client: %s", e)
    return None


def verify_id_token(id_token: str) -> dict[str, Any] | None:
  """Verifies a Firebase ID token. Lazily initializes if needed."""
  if initialize_firebase() is None:
    return None

  try:
    return auth.verify_id_token(id_token)
  except Exception as e:  # noqa: BLE001
    logger.error("Token verification failed: %s", type(e).__name__)
    return None
