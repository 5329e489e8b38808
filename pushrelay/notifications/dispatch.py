"""Multicast dispatch with outcome classification and invalid-token cleanup."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import replace

from pushrelay.notifications.contracts import (
  BATCH_ERROR_SCOPE,
  NO_DEVICE_TOKENS_MESSAGE,
  DeliveryProvider,
  DeliveryProviderError,
  DispatchResult,
  DispatchStatus,
  ErrorDetail,
  MulticastRequest,
  MulticastResponse,
  Payload,
  PlatformOptions,
  StatusRecorder,
  TokenResult,
  is_permanently_invalid,
  normalize_error_code,
  redact_token,
)
from pushrelay.notifications.reconciler import TokenReconciler

logger = logging.getLogger(__name__)


class DispatchEngine:
  """Send one payload to a batch of tokens and settle the consequences.

  The engine calls the provider exactly once per dispatch, records the final
  status when a request id is given, and awaits cleanup of every token the
  provider reported as permanently invalid before returning.
  """

  def __init__(self, *, provider: DeliveryProvider, reconciler: TokenReconciler, status_recorder: StatusRecorder | None = None, timeout_seconds: float = 10.0, max_tokens_per_call: int = 500) -> None:
    self._provider = provider
    self._reconciler = reconciler
    self._status_recorder = status_recorder
    self._timeout_seconds = timeout_seconds
    self._max_tokens_per_call = max_tokens_per_call

  @property
  def max_tokens_per_call(self) -> int:
    return self._max_tokens_per_call

  async def dispatch(self, tokens: Sequence[str], payload: Payload, *, request_id: str | None = None, platform_options: PlatformOptions | None = None) -> DispatchResult:
    """Deliver `payload` to `tokens` and return the classified outcome."""
    tokens = tuple(tokens)

    if not tokens:
      logger.info("Push notification %s has no device tokens", request_id or "<callable>")
      result = DispatchResult(status=DispatchStatus.ERROR, attempted=0, success_count=0, failure_count=0, error_message=NO_DEVICE_TOKENS_MESSAGE)
      await self._record(request_id, result)
      return result

    if len(tokens) > self._max_tokens_per_call:
      message = f"too many device tokens: {len(tokens)} exceeds the per-call limit of {self._max_tokens_per_call}"
      logger.warning("Push notification %s rejected: %s", request_id or "<callable>", message)
      result = DispatchResult(status=DispatchStatus.ERROR, attempted=0, success_count=0, failure_count=0, error_message=message)
      await self._record(request_id, result)
      return result

    request = MulticastRequest(tokens=tokens, payload=payload, platform_options=platform_options)
    try:
      response = await self._send(request)
    except Exception as exc:  # noqa: BLE001
      result = self._batch_failure(tokens, exc)
      logger.error("Push batch failed request_id=%s tokens=%d code=%s error=%s", request_id, len(tokens), result.error_details[0].code, exc)
      await self._record(request_id, result)
      return result

    result, invalid_tokens = self._classify(tokens, response)
    logger.info("Push notification %s processed with status %s: %d successful, %d failed", request_id or "<callable>", result.status.value, result.success_count, result.failure_count)

    # Cleanup outcomes never change the recorded delivery status.
    _, *reconciled = await asyncio.gather(self._record(request_id, result), *(self._reconcile_quietly(token) for token in invalid_tokens))
    users_updated = sum(reconciled)
    if users_updated:
      result = replace(result, users_updated=users_updated)
    return result

  async def _send(self, request: MulticastRequest) -> MulticastResponse:
    try:
      # asyncio.to_thread abandons the worker on timeout; the SDK call cannot be interrupted.
      response = await asyncio.wait_for(asyncio.to_thread(self._provider.send_multicast, request), timeout=self._timeout_seconds)
    except asyncio.TimeoutError as exc:
      raise DeliveryProviderError(f"Provider call timed out after {self._timeout_seconds:g}s", code="deadline-exceeded") from exc

    if len(response.responses) != len(request.tokens):
      raise DeliveryProviderError(f"Provider returned {len(response.responses)} outcomes for {len(request.tokens)} tokens", code="invalid-provider-response")
    return response

  def _classify(self, tokens: tuple[str, ...], response: MulticastResponse) -> tuple[DispatchResult, list[str]]:
    results: list[TokenResult] = []
    error_details: list[ErrorDetail] = []
    invalid_tokens: dict[str, None] = {}
    success_count = 0

    for token, outcome in zip(tokens, response.responses):
      token_ref = redact_token(token)
      if outcome.success:
        success_count += 1
        results.append(TokenResult(token_ref=token_ref, success=True, message_id=outcome.message_id))
        continue

      code = normalize_error_code(outcome.error.code if outcome.error else None)
      message = outcome.error.message if outcome.error else "Delivery failed without provider detail"
      logger.warning("Error sending to token %s: %s", token_ref, code)
      results.append(TokenResult(token_ref=token_ref, success=False, error=outcome.error))
      error_details.append(ErrorDetail(code=code, message=message, token_ref=token_ref))

      if is_permanently_invalid(code):
        invalid_tokens[token] = None

    failure_count = len(tokens) - success_count
    status = DispatchStatus.DELIVERED if success_count > 0 else DispatchStatus.FAILED
    result = DispatchResult(status=status, attempted=len(tokens), success_count=success_count, failure_count=failure_count, results=tuple(results), error_details=tuple(error_details))
    return result, list(invalid_tokens)

  @staticmethod
  def _batch_failure(tokens: tuple[str, ...], exc: Exception) -> DispatchResult:
    raw_code = getattr(exc, "code", None)
    code = normalize_error_code(raw_code if isinstance(raw_code, str) else None)
    message = str(exc) or type(exc).__name__
    detail = ErrorDetail(code=code, message=message, batch=BATCH_ERROR_SCOPE)
    return DispatchResult(status=DispatchStatus.ERROR, attempted=len(tokens), success_count=0, failure_count=len(tokens), error_details=(detail,), error_message=message)

  async def _record(self, request_id: str | None, result: DispatchResult) -> None:
    if request_id is None or self._status_recorder is None:
      return

    # Batch-level errors keep counts on the result but the recorder only
    # persists counts for delivered/failed requests.
    try:
      write = await self._status_recorder.record_status(
        request_id, result.status, error_message=result.error_message, success_count=result.success_count, failure_count=result.failure_count, error_details=list(result.error_details)
      )
    except Exception as exc:  # noqa: BLE001
      logger.error("Status recorder raised for push notification %s: %s", request_id, exc)
      return

    if not write.success:
      logger.warning("Status for push notification %s was not recorded: %s", request_id, write.error)

  async def _reconcile_quietly(self, token: str) -> int:
    try:
      outcome = await self._reconciler.reconcile(token)
    except Exception as exc:  # noqa: BLE001
      logger.error("Invalid token cleanup failed token=%s error=%s", redact_token(token), exc)
      return 0
    return outcome.users_updated
