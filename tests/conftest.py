"""Test configuration for importing the application package."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402

from pushrelay.notifications.dispatch import DispatchEngine  # noqa: E402
from pushrelay.notifications.reconciler import TokenReconciler  # noqa: E402
from tests.stubs import FakeDeliveryProvider, InMemoryTokenStore, RecordingStatusRecorder  # noqa: E402


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def token_store():
  return InMemoryTokenStore()


@pytest.fixture
def status_recorder():
  return RecordingStatusRecorder()


@pytest.fixture
def provider():
  return FakeDeliveryProvider()


@pytest.fixture
def reconciler(token_store):
  return TokenReconciler(token_store=token_store, initial_backoff_ms=1, max_backoff_ms=2)


@pytest.fixture
def engine(provider, reconciler, status_recorder):
  return DispatchEngine(provider=provider, reconciler=reconciler, status_recorder=status_recorder, timeout_seconds=2.0)
