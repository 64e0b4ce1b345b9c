"""Error taxonomy shared by the core services and the HTTP layer.

Every error carries a stable ``kind`` (see :class:`shortener.enums.ErrorKind`)
and the HTTP status the API answers with. Routes never build error payloads
by hand; the exception handler in ``shortener.main`` renders
``{"error": message, "kind": kind}`` from these attributes.
"""

from shortener.enums import ErrorKind

__all__ = [
    "ShortenerError",
    "InvalidInput",
    "NotFound",
    "Conflict",
    "CodeConflict",
    "Unauthorized",
    "AuthenticationFailed",
    "NotVerified",
    "Unavailable",
    "Unexpected",
    "ExhaustedRetries",
]


class ShortenerError(Exception):
    kind: ErrorKind = ErrorKind.UNEXPECTED
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, str]:
        return {"error": self.message, "kind": self.kind.value}


class InvalidInput(ShortenerError):
    kind = ErrorKind.INVALID_INPUT
    status_code = 400


class NotFound(ShortenerError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class Conflict(ShortenerError):
    kind = ErrorKind.CONFLICT
    status_code = 409


class CodeConflict(Conflict):
    """Raised when a custom short code is already mapped."""

    status_code = 400


class Unauthorized(ShortenerError):
    kind = ErrorKind.UNAUTHORIZED
    status_code = 403


class AuthenticationFailed(Unauthorized):
    status_code = 401


class NotVerified(Unauthorized):
    status_code = 403


class Unavailable(ShortenerError):
    """The backing key-value store could not be reached."""

    kind = ErrorKind.UNAVAILABLE
    status_code = 503


class Unexpected(ShortenerError):
    kind = ErrorKind.UNEXPECTED
    status_code = 500


class ExhaustedRetries(Unexpected):
    """No unused short code was found within the retry ceiling."""
