"""Shared enums for the URL shortener application.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = [
    "HealthStatus",
    "RequestStatus",
    "DeviceClass",
    "ErrorKind",
    "RedirectState",
    "StoreBackend",
]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    ERROR = "error"


class DeviceClass(StrEnum):
    """Device categories derived from the visitor's user agent."""

    MOBILE = "Mobile"
    TABLET = "Tablet"
    DESKTOP = "Desktop"
    UNKNOWN = "Unknown"


class ErrorKind(StrEnum):
    """Machine-readable error kinds returned alongside every error message."""

    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    UNAVAILABLE = "unavailable"
    UNEXPECTED = "unexpected"


class RedirectState(StrEnum):
    """States walked by the redirect engine for a single request."""

    LOOKUP = "lookup"
    NOT_FOUND = "not_found"
    RECORD_ANALYTICS = "record_analytics"
    REDIRECT = "redirect"


class StoreBackend(StrEnum):
    """Key-value store implementations selectable through settings."""

    REDIS = "redis"
    MEMORY = "memory"
