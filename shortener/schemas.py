"""Pydantic schemas for persisted records and request/response validation.

Every model serializes with camelCase keys (``shortId``, ``clickHistory``),
which is both the wire format of the HTTP API and the JSON stored in the
key-value store. Python code uses the snake_case attribute names.

Schema Hierarchy
=================
::
    Persisted
    ├─ LinkRecord        urldata:{code}
    ├─ AnalyticsRecord   analytics namespace, keyed by code
    │   └─ ClickEvent    one entry of clickHistory
    └─ User              users namespace, keyed by user id

    Input
    ├─ ShortenRequest    url, customCode?, userId?
    ├─ ClickContext      country, user agent, referer of one redirect
    └─ Register/Login/Verify/Change*/Reset* requests

    Output
    ├─ ShortenResponse   shortUrl, shortId
    ├─ LinksResponse     links: LinkRecord[]
    ├─ MessageResponse / UserResponse / ErrorResponse
    └─ HealthResponse

Key Behaviours
===============
- Request fields are optional at the schema level; the services raise
  ``InvalidInput`` for missing values so the API answers 400 ``{error}``.
- ``AnalyticsRecord.zero()`` is the single constructor of the empty state
  used by initialize, reset and the read-modify-write fallback.
- ``User`` carries the password hash and is never returned by the API;
  ``PublicUser`` is.
"""

import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shortener.enums import HealthStatus

__all__ = [
    "ANONYMOUS_OWNER",
    "CamelModel",
    "ClickContext",
    "ClickEvent",
    "AnalyticsRecord",
    "LinkRecord",
    "ShortenRequest",
    "ShortenResponse",
    "LinksResponse",
    "MessageResponse",
    "ErrorResponse",
    "HealthResponse",
    "User",
    "PublicUser",
    "UserResponse",
    "RegisterRequest",
    "LoginRequest",
    "VerifyRequest",
    "ChangeUsernameRequest",
    "ChangeEmailRequest",
    "ChangePasswordRequest",
    "PasswordResetRequest",
    "ResetPasswordRequest",
]

ANONYMOUS_OWNER = "anonymous"


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# ----------------------------------------------------------------------------
# Analytics
# ----------------------------------------------------------------------------


class ClickContext(CamelModel):
    """Visitor details captured from one redirect request."""

    country: str = "Unknown"
    user_agent: str = ""
    referer: str | None = None


class ClickEvent(CamelModel):
    timestamp: datetime.datetime
    country: str
    device: str
    referrer: str
    user_agent: str


class AnalyticsRecord(CamelModel):
    created: datetime.datetime
    clicks: int = 0
    countries: dict[str, int] = Field(default_factory=dict)
    devices: dict[str, int] = Field(default_factory=dict)
    referrers: dict[str, int] = Field(default_factory=dict)
    click_history: list[ClickEvent] = Field(default_factory=list)

    @classmethod
    def zero(cls, created: datetime.datetime | None = None) -> "AnalyticsRecord":
        return cls(created=created or utcnow())


# ----------------------------------------------------------------------------
# Links
# ----------------------------------------------------------------------------


class LinkRecord(CamelModel):
    id: str
    short_id: str
    original_url: str
    short_url: str
    user_id: str = ANONYMOUS_OWNER
    clicks: int = 0
    created_at: datetime.datetime

    @property
    def is_anonymous(self) -> bool:
        return not self.user_id or self.user_id == ANONYMOUS_OWNER


class ShortenRequest(CamelModel):
    url: str | None = None
    custom_code: str | None = None
    user_id: str | None = None


class ShortenResponse(CamelModel):
    short_url: str
    short_id: str


class LinksResponse(CamelModel):
    links: list[LinkRecord]


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    kind: str


class HealthResponse(BaseModel):
    status: HealthStatus
    store: HealthStatus


# ----------------------------------------------------------------------------
# Accounts
# ----------------------------------------------------------------------------


class PublicUser(CamelModel):
    id: str
    username: str
    email: str
    created_at: datetime.datetime


class User(PublicUser):
    password_hash: str

    def public(self) -> PublicUser:
        return PublicUser(id=self.id, username=self.username, email=self.email, created_at=self.created_at)


class UserResponse(BaseModel):
    message: str
    user: PublicUser


class RegisterRequest(CamelModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None


class VerifyRequest(CamelModel):
    token: str | None = None


class ChangeUsernameRequest(CamelModel):
    user_id: str | None = None
    new_username: str | None = None


class ChangeEmailRequest(CamelModel):
    user_id: str | None = None
    new_email: str | None = None


class ChangePasswordRequest(CamelModel):
    user_id: str | None = None
    old_password: str | None = None
    new_password: str | None = None


class PasswordResetRequest(CamelModel):
    email: str | None = None


class ResetPasswordRequest(CamelModel):
    token: str | None = None
    new_password: str | None = None
