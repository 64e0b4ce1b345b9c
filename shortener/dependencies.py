"""Dependency injection with a singleton service manager.

The service manager builds the key-value stores and the core services once
at startup; FastAPI dependencies hand them to the routes together with a
lightweight per-request context used for logging.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request

from shortener.accounts import AccountDirectory
from shortener.analytics import AnalyticsAggregator
from shortener.codes import CodeGenerator
from shortener.config import Settings, get_settings
from shortener.enums import StoreBackend
from shortener.links import LinkRecords, OwnershipIndex
from shortener.mailer import EmailSender, HttpEmailSender, LoggingEmailSender
from shortener.redirect import RedirectEngine
from shortener.redis import close_redis, get_redis
from shortener.registry import LinkRegistry
from shortener.schemas import ClickContext
from shortener.store import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources.

    This class manages shared resources that don't need to be created per request,
    significantly reducing per-request overhead and improving performance.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, settings: Settings | None = None, mailer: EmailSender | None = None) -> None:
        """Initialize shared resources once at startup."""
        if self._initialized:
            return
        self.settings = settings or get_settings()
        self.logger = self._setup_logger()

        self.links_store = await self._setup_store(self.settings.LINKS_NAMESPACE)
        self.analytics_store = await self._setup_store(self.settings.ANALYTICS_NAMESPACE)
        self.users_store = await self._setup_store(self.settings.USERS_NAMESPACE)

        links = LinkRecords(self.links_store)
        self.analytics = AnalyticsAggregator(
            self.analytics_store,
            links,
            history_limit=self.settings.CLICK_HISTORY_LIMIT,
            user_agent_limit=self.settings.USER_AGENT_MAX_LENGTH,
        )
        self.registry = LinkRegistry(
            links,
            OwnershipIndex(self.links_store),
            self.analytics,
            CodeGenerator(self.settings.SHORT_CODE_LENGTH),
            base_url=self.settings.BASE_URL or "",
            max_attempts=self.settings.SHORT_CODE_MAX_ATTEMPTS,
            id_length=self.settings.LINK_ID_LENGTH,
        )
        self.redirects = RedirectEngine(self.registry, self.analytics)
        self.accounts = AccountDirectory(
            self.users_store,
            mailer or self._setup_mailer(),
            frontend_url=self.settings.FRONTEND_URL,
            verify_ttl=self.settings.VERIFY_TOKEN_TTL_SECONDS,
            reset_ttl=self.settings.RESET_TOKEN_TTL_SECONDS,
        )
        self._initialized = True
        self.logger.info(f"Service manager initialized with {self.settings.STORE_BACKEND} store ({self.settings.APP_ENV})")

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shortener")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL)
        return logger

    async def _setup_store(self, namespace: str) -> KeyValueStore:
        """Build the store for one logical namespace."""
        if self.settings.STORE_BACKEND is StoreBackend.MEMORY:
            return InMemoryKeyValueStore()
        client = await get_redis(self.settings.REDIS_URL)
        return RedisKeyValueStore(client, namespace)

    def _setup_mailer(self) -> EmailSender:
        if not self.settings.EMAIL_API_KEY:
            return LoggingEmailSender()
        return HttpEmailSender(
            self.settings.EMAIL_API_URL,
            self.settings.EMAIL_API_KEY,
            self.settings.EMAIL_FROM,
            timeout=self.settings.EMAIL_TIMEOUT_SECONDS,
        )

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if not self._initialized:
            return
        await self.redirects.drain()
        if self.settings.STORE_BACKEND is StoreBackend.REDIS:
            await close_redis()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request tracking data and access to shared resources.

    Attributes:
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        trace_id: Correlation ID for distributed tracing
        user_agent: Client user agent string
        client_ip: Client IP address
        referer: Referer header, if any
        country: Visitor country from the edge geo header
        base_url: Origin the request was addressed to
        start_time: Request start timestamp
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    referer: Optional[str] = None
    country: Optional[str] = None
    base_url: str = ""
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def short_url_base(self) -> str:
        return self.settings.BASE_URL or self.base_url

    def click_context(self) -> ClickContext:
        return ClickContext(
            country=self.country or "Unknown",
            user_agent=self.user_agent or "",
            referer=self.referer,
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    """Get the singleton service manager, initializing it on first use."""
    if not _service_manager.initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    """Extract client details from the request.

    Args:
        request: FastAPI Request object for extracting client info
        manager: Singleton service manager with shared resources

    Returns:
        RequestContext: Context for the request
    """
    headers = request.headers
    return RequestContext(
        service_manager=manager,
        trace_id=headers.get("x-trace-id"),
        user_agent=headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
        referer=headers.get("referer"),
        country=headers.get(manager.settings.GEO_COUNTRY_HEADER),
        base_url=str(request.base_url).rstrip("/"),
    )


def get_registry(manager: ServiceManager = Depends(get_service_manager)) -> LinkRegistry:
    return manager.registry


def get_analytics(manager: ServiceManager = Depends(get_service_manager)) -> AnalyticsAggregator:
    return manager.analytics


def get_redirect_engine(manager: ServiceManager = Depends(get_service_manager)) -> RedirectEngine:
    return manager.redirects


def get_accounts(manager: ServiceManager = Depends(get_service_manager)) -> AccountDirectory:
    return manager.accounts
