import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pushrelay.config import get_settings
from pushrelay.core.firebase import initialize_firebase
from pushrelay.core.logging import initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and Firebase before serving requests."""
  settings = get_settings()
  logger = logging.getLogger("pushrelay.core.lifespan")

  try:
    initialize_logging(settings)
    logger.info("Startup complete - logging verified. environment=%s push_enabled=%s", settings.environment, settings.push_enabled)
  except Exception:  # noqa: BLE001
    # Keep serving with the default handlers if the log directory is unwritable.
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  if initialize_firebase(settings) is None:
    logger.warning("Firebase unavailable; push requests will be recorded as errors.")

  yield
