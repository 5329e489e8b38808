"""Firestore persistence for per-user device token sets."""

from __future__ import annotations

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from pushrelay.notifications.contracts import TokenStore

DEFAULT_USERS_COLLECTION = "users"
DEFAULT_DEVICE_TOKENS_FIELD = "deviceTokens"
LAST_TOKEN_UPDATE_FIELD = "lastTokenUpdate"


class FirestoreTokenStore(TokenStore):
  """Read and prune the `deviceTokens` array on user documents."""

  def __init__(self, *, client: firestore.Client, users_collection: str = DEFAULT_USERS_COLLECTION, tokens_field: str = DEFAULT_DEVICE_TOKENS_FIELD) -> None:
    self._client = client
    self._users_collection = users_collection
    self._tokens_field = tokens_field

  def find_users_with_token(self, token: str) -> list[str]:
    """Return the ids of every user document whose token array contains `token`."""
    query = self._client.collection(self._users_collection).where(filter=FieldFilter(self._tokens_field, "array_contains", token))
    return [snapshot.id for snapshot in query.stream()]

  def remove_token_from_users(self, user_ids: list[str], token: str) -> None:
    """Remove `token` from every listed user in one batch; commit is all-or-nothing."""
    if not user_ids:
      return

    batch = self._client.batch()
    users = self._client.collection(self._users_collection)
    for user_id in user_ids:
      # ArrayRemove is a no-op for documents that no longer hold the token.
      batch.update(users.document(user_id), {self._tokens_field: firestore.ArrayRemove([token]), LAST_TOKEN_UPDATE_FIELD: firestore.SERVER_TIMESTAMP})
    batch.commit()

  def get_user_tokens(self, user_id: str) -> list[str] | None:
    snapshot = self._client.collection(self._users_collection).document(user_id).get()
    if not snapshot.exists:
      return None

    raw_tokens = (snapshot.to_dict() or {}).get(self._tokens_field) or []
    return [token for token in raw_tokens if isinstance(token, str) and token]


class NullTokenStore(TokenStore):
  """Token store used when Firestore is not configured; holds no users."""

  def find_users_with_token(self, token: str) -> list[str]:
    return []

  def remove_token_from_users(self, user_ids: list[str], token: str) -> None:
    return None

  def get_user_tokens(self, user_id: str) -> list[str] | None:
    return None
