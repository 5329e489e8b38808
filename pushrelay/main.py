from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from pushrelay.api.routes import events, push
from pushrelay.config import get_settings
from pushrelay.core.exceptions import global_exception_handler, http_exception_handler, push_validation_exception_handler, request_validation_exception_handler
from pushrelay.core.lifespan import lifespan
from pushrelay.core.middleware import RequestLoggingMiddleware
from pushrelay.notifications.contracts import PushValidationError

settings = get_settings()

app = FastAPI(title="pushrelay", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_middleware(CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["POST", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length", "x-request-id"])

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(PushValidationError, push_validation_exception_handler)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(push.router, prefix="/v1/push", tags=["push"])
app.include_router(events.router, prefix="/internal", tags=["events"])


if __name__ == "__main__":
  import uvicorn

  uvicorn.run("pushrelay.main:app", host="0.0.0.0", port=8080, reload=settings.debug)
