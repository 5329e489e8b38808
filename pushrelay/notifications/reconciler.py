"""Removal of permanently invalid device tokens from user records."""

from __future__ import annotations

import asyncio
import logging
import random

from google.api_core import exceptions as google_exceptions
from starlette.concurrency import run_in_threadpool

from pushrelay.notifications.contracts import ReconcileResult, ReconciliationError, TokenStore, redact_token

logger = logging.getLogger(__name__)

_TRANSIENT_STORE_ERRORS = (
  google_exceptions.ServiceUnavailable,
  google_exceptions.DeadlineExceeded,
  google_exceptions.Aborted,
  google_exceptions.InternalServerError,
  google_exceptions.TooManyRequests,
  ConnectionError,
  TimeoutError,
)


def is_transient_store_error(exc: BaseException) -> bool:
  return isinstance(exc, _TRANSIENT_STORE_ERRORS)


class TokenReconciler:
  """Purge one invalid token from every user that references it."""

  def __init__(self, *, token_store: TokenStore, max_attempts: int = 3, initial_backoff_ms: int = 100, max_backoff_ms: int = 2000) -> None:
    if max_attempts < 1:
      raise ValueError("max_attempts must be at least 1")
    self._token_store = token_store
    self._max_attempts = max_attempts
    self._initial_backoff_ms = initial_backoff_ms
    self._max_backoff_ms = max_backoff_ms

  async def reconcile(self, invalid_token: str) -> ReconcileResult:
    """Remove `invalid_token` from all matching users in one atomic batch.

    Returns the number of users updated. Zero matches is a normal outcome:
    the token was already removed or never stored. Transient store failures
    retry the whole batch, so a commit is applied to every matched user or
    to none of them.
    """
    token_ref = redact_token(invalid_token)

    try:
      user_ids = await self._with_retry("find_users_with_token", token_ref, self._token_store.find_users_with_token, invalid_token)
    except Exception as exc:  # noqa: BLE001
      raise ReconciliationError(f"Token lookup failed for {token_ref}: {exc}") from exc

    if not user_ids:
      logger.info("Invalid token %s not found in any user record", token_ref)
      return ReconcileResult(token_ref=token_ref, users_updated=0)

    try:
      await self._with_retry("remove_token_from_users", token_ref, self._token_store.remove_token_from_users, list(user_ids), invalid_token)
    except Exception as exc:  # noqa: BLE001
      raise ReconciliationError(f"Token removal failed for {token_ref} across {len(user_ids)} users: {exc}") from exc

    logger.info("Removed invalid token %s from %d users", token_ref, len(user_ids))
    return ReconcileResult(token_ref=token_ref, users_updated=len(user_ids))

  async def _with_retry(self, operation_name: str, token_ref: str, func, *args):
    attempt = 0
    while True:
      attempt += 1
      try:
        return await run_in_threadpool(func, *args)
      except Exception as exc:
        retryable = is_transient_store_error(exc)
        logger.warning("Token store operation failed operation=%s token=%s attempt=%d/%d retryable=%s error=%s", operation_name, token_ref, attempt, self._max_attempts, retryable, exc)
        if not retryable or attempt >= self._max_attempts:
          raise

        backoff_ms = min(self._initial_backoff_ms * (2 ** (attempt - 1)), self._max_backoff_ms)
        # Jitter keeps concurrent reconciliations from retrying in lockstep.
        backoff_ms += random.uniform(-backoff_ms * 0.25, backoff_ms * 0.25)
        await asyncio.sleep(backoff_ms / 1000.0)
