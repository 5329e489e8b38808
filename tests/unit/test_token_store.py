from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

from google.cloud import firestore

from pushrelay.notifications.token_store import FirestoreTokenStore, NullTokenStore


def test_find_users_queries_array_contains():
  client = MagicMock()
  query = client.collection.return_value.where.return_value
  query.stream.return_value = [SimpleNamespace(id="u1"), SimpleNamespace(id="u2")]
  store = FirestoreTokenStore(client=client)

  assert store.find_users_with_token("tok-1") == ["u1", "u2"]

  client.collection.assert_called_once_with("users")
  field_filter = client.collection.return_value.where.call_args.kwargs["filter"]
  assert field_filter.field_path == "deviceTokens"
  assert field_filter.op_string == "array_contains"
  assert field_filter.value == "tok-1"


def test_remove_token_uses_one_batch_for_all_users():
  client = MagicMock()
  batch = client.batch.return_value
  store = FirestoreTokenStore(client=client, users_collection="members", tokens_field="fcmTokens")

  store.remove_token_from_users(["u1", "u2"], "tok-1")

  client.batch.assert_called_once_with()
  assert batch.update.call_count == 2
  for call in batch.update.call_args_list:
    fields = call.args[1]
    assert fields["fcmTokens"] == firestore.ArrayRemove(["tok-1"])
    assert fields["lastTokenUpdate"] is firestore.SERVER_TIMESTAMP
  batch.commit.assert_called_once_with()
  client.collection.assert_called_with("members")


def test_remove_token_with_no_users_writes_nothing():
  client = MagicMock()

  FirestoreTokenStore(client=client).remove_token_from_users([], "tok-1")

  client.batch.assert_not_called()


def test_get_user_tokens():
  client = MagicMock()
  snapshot = client.collection.return_value.document.return_value.get.return_value
  snapshot.exists = True
  snapshot.to_dict.return_value = {"deviceTokens": ["tok-1", "", 7, "tok-2"]}

  assert FirestoreTokenStore(client=client).get_user_tokens("u1") == ["tok-1", "tok-2"]


def test_get_user_tokens_for_missing_user():
  client = MagicMock()
  client.collection.return_value.document.return_value.get.return_value.exists = False

  assert FirestoreTokenStore(client=client).get_user_tokens("ghost") is None


def test_null_token_store_holds_nobody():
  store = NullTokenStore()

  assert store.find_users_with_token("tok") == []
  assert store.get_user_tokens("u1") is None
  store.remove_token_from_users(["u1"], "tok")
