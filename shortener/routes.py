"""FastAPI route definitions for the link, analytics and redirect API.

API Endpoint Overview
=====================
::
    GET    /api/health
        └─ HealthResponse (200)

    GET    /api/debug
        └─ echo of edge headers (200)

    POST   /api/shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (201) or 400 / 503

    GET    /api/analytics/:short_id
        └─ AnalyticsRecord (200) or 404

    POST   /api/reset-analytics/:short_id
        └─ MessageResponse (200)

    GET    /api/links?userId=
        └─ LinksResponse (200) or 400

    DELETE /api/links/:short_id?userId=
        └─ MessageResponse (200) or 403 / 404

    GET    /
        └─ plain-text banner

    GET    /:short_id (any path outside /api/)
        └─ 302 Redirect or 404 "Not Found"

Key Behaviours
===============
- Services raise ``ShortenerError`` subclasses; the handler registered in
  ``shortener.main`` turns them into ``{"error", "kind"}`` responses.
- The redirect is returned as soon as the lookup succeeds. Analytics are
  recorded by a background task owned by the redirect engine.
- The catch-all redirect route is declared last so every ``/api/...`` route
  wins over it.
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from shortener.analytics import AnalyticsAggregator
from shortener.dependencies import (
    RequestContext,
    ServiceManager,
    get_analytics,
    get_redirect_engine,
    get_registry,
    get_request_context,
    get_service_manager,
)
from shortener.enums import HealthStatus
from shortener.errors import InvalidInput, NotFound
from shortener.redirect import RedirectEngine
from shortener.registry import LinkRegistry
from shortener.schemas import (
    AnalyticsRecord,
    HealthResponse,
    LinksResponse,
    MessageResponse,
    ShortenRequest,
    ShortenResponse,
    utcnow,
)

__all__ = ["router", "redirect_router"]

router = APIRouter()
redirect_router = APIRouter()


@router.get("/api/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    ctx: RequestContext = Depends(get_request_context),
    manager: ServiceManager = Depends(get_service_manager),
) -> HealthResponse:
    store_status = HealthStatus.HEALTHY
    try:
        if not await manager.links_store.ping():
            store_status = HealthStatus.UNHEALTHY
    except Exception as e:
        ctx.logger.error(f"Store health check failed: {e}")
        store_status = HealthStatus.UNHEALTHY

    ctx.logger.info(f"Health check completed: {store_status.value}")
    return HealthResponse(status=store_status, store=store_status)


@router.get("/api/debug", tags=["health"])
async def debug_info(request: Request, ctx: RequestContext = Depends(get_request_context)) -> dict:
    return {
        "message": "Debug Info",
        "timestamp": utcnow().isoformat(),
        "requestId": ctx.request_id,
        "headers": {
            ctx.settings.GEO_COUNTRY_HEADER: ctx.country,
            "User-Agent": ctx.user_agent,
            "Referer": ctx.referer,
            "X-Client-IP": ctx.client_ip,
        },
        "url": str(request.url),
        "method": request.method,
    }


@router.post("/api/shorten", response_model=ShortenResponse, status_code=201, tags=["links"])
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    registry: LinkRegistry = Depends(get_registry),
) -> ShortenResponse:
    ctx.logger.info(
        f"URL shortening requested: {payload.url}",
        extra={"operation": "create_short_url", "custom_code": payload.custom_code},
    )
    created = await registry.create(
        payload.url,
        custom_code=payload.custom_code,
        owner_id=payload.user_id,
        base_url=ctx.short_url_base,
    )
    ctx.logger.info(
        f"URL shortened successfully: {created.short_id}",
        extra={"operation": "create_short_url", "duration_ms": ctx.get_duration()},
    )
    return created


@router.get("/api/analytics/{short_id}", response_model=AnalyticsRecord, tags=["analytics"])
async def get_analytics_record(
    short_id: str,
    ctx: RequestContext = Depends(get_request_context),
    analytics: AnalyticsAggregator = Depends(get_analytics),
) -> AnalyticsRecord:
    record = await analytics.get(short_id)
    if record is None:
        ctx.logger.warning(f"Analytics not found for: {short_id}")
        raise NotFound("URL not found")
    return record


@router.post("/api/reset-analytics/{short_id}", response_model=MessageResponse, tags=["analytics"])
async def reset_analytics(
    short_id: str,
    analytics: AnalyticsAggregator = Depends(get_analytics),
) -> MessageResponse:
    await analytics.reset(short_id)
    return MessageResponse(message="Analytics reset successfully")


@router.get("/api/links", response_model=LinksResponse, tags=["links"])
async def list_links(
    user_id: str | None = Query(None, alias="userId"),
    registry: LinkRegistry = Depends(get_registry),
) -> LinksResponse:
    if not user_id:
        raise InvalidInput("User ID is required")
    return LinksResponse(links=await registry.list_for_owner(user_id))


@router.delete("/api/links/{short_id}", response_model=MessageResponse, tags=["links"])
async def delete_link(
    short_id: str,
    user_id: str | None = Query(None, alias="userId"),
    ctx: RequestContext = Depends(get_request_context),
    registry: LinkRegistry = Depends(get_registry),
) -> MessageResponse:
    await registry.delete(short_id, requester_id=user_id)
    ctx.logger.info(f"Link deleted: {short_id}", extra={"operation": "delete_link"})
    return MessageResponse(message="Link deleted successfully")


@redirect_router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root() -> str:
    return "URL Shortener API"


@redirect_router.get("/{short_id:path}", tags=["redirect"])
async def redirect_to_url(
    short_id: str,
    ctx: RequestContext = Depends(get_request_context),
    engine: RedirectEngine = Depends(get_redirect_engine),
):
    target = await engine.resolve(short_id, ctx.click_context())
    if target is None:
        ctx.logger.warning(
            f"Redirect failed - short code not found: {short_id}",
            extra={"operation": "redirect", "error": "not_found"},
        )
        return PlainTextResponse("Not Found", status_code=404)

    ctx.logger.info(
        f"Redirect successful: {short_id} -> {target.original_url}",
        extra={"operation": "redirect", "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=target.original_url, status_code=target.status_code)
