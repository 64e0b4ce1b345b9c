"""FastAPI application entry point for the URL shortener service.

This module configures and initializes the FastAPI application with middleware,
lifecycle management, error handling and route registration.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Create      │
    │ FastAPI app │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ CORS +      │
    │ error       │
    │ handlers    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Include     │
    │ routes      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ stores +    │
    │ services    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ drain       │
    │ analytics,  │
    │ close redis │
    └─────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn shortener.main:app --host 0.0.0.0 --port 8000 --reload

**Step 2 — Run without Redis**::
    STORE_BACKEND=memory uvicorn shortener.main:app --reload

**Step 3 — Make API calls**::
    curl -X POST http://localhost:8000/api/shorten \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com", "userId": "u1"}'

    curl -i http://localhost:8000/<shortId>
    curl http://localhost:8000/api/analytics/<shortId>

Key Behaviours
===============
- Every response carries permissive CORS headers; any OPTIONS request is
  answered by the middleware without reaching a route.
- Service errors render as ``{"error": ..., "kind": ...}`` with the status
  the error class declares. Body validation failures are 400s.
- Pending analytics recordings are drained before shutdown.
- Prometheus metrics are exposed at /api/metrics and the OpenAPI docs at
  /api/docs. Every path outside /api/ belongs to the redirect route.
"""

__all__ = ["app"]

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_fastapi_instrumentator import Instrumentator

from shortener.account_routes import router as account_router
from shortener.config import get_settings
from shortener.dependencies import _service_manager
from shortener.enums import ErrorKind
from shortener.errors import ShortenerError
from shortener.routes import redirect_router, router

settings = get_settings()
logger = logging.getLogger("shortener")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await _service_manager.initialize()
    yield
    # Shutdown
    await _service_manager.cleanup()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="URL shortener with per-link click analytics on a key-value store",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url=None,
    openapi_url="/api/openapi.json",
)


@app.middleware("http")
async def cors_middleware(request: Request, call_next) -> Response:
    if request.method == "OPTIONS":
        return Response(status_code=200, headers={**CORS_HEADERS, "Access-Control-Max-Age": "86400"})
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(ShortenerError)
async def shortener_error_handler(request: Request, exc: ShortenerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message, "kind": ErrorKind.INVALID_INPUT.value})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "kind": ErrorKind.UNEXPECTED.value},
        headers=CORS_HEADERS,
    )


Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app, endpoint="/api/metrics")

app.include_router(router)
app.include_router(account_router)
# Catch-all redirect last; every other route lives under /api.
app.include_router(redirect_router)
