"""
Error kinds and their translation to HTTP responses.

Handlers raise PaperScopeError with a kind and a public message. Anything
internal (SQL text, upstream responses) goes into `detail`, which is only
ever logged.
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import DBAPIError


class ErrorKind(str, Enum):
    """Stable error categories exposed to clients"""
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"


HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNAVAILABLE: 503,
    ErrorKind.INTERNAL: 500,
}

DEFAULT_MESSAGES = {
    ErrorKind.VALIDATION: "Invalid request",
    ErrorKind.UNAUTHORIZED: "Authentication required",
    ErrorKind.FORBIDDEN: "Not allowed",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.CONFLICT: "Conflicting request",
    ErrorKind.UNAVAILABLE: "Service unavailable",
    ErrorKind.INTERNAL: "Internal server error",
}

# MySQL server error codes
ER_SIGNAL_EXCEPTION = 1644  # SIGNAL SQLSTATE '45000' raised by triggers and procedures
ER_DUP_ENTRY = 1062
ER_ROW_IS_REFERENCED = 1451
ER_NO_REFERENCED_ROW = 1452
ER_LOCK_WAIT_TIMEOUT = 1205
ER_LOCK_DEADLOCK = 1213

# Trigger messages that report an existing row rather than invalid input
DUPLICATE_SIGNAL_MARKERS = ("duplicate", "already exists")


class PaperScopeError(Exception):
    """Application error carrying an ErrorKind"""

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        detail: Optional[str] = None,
        **extra: Any
    ):
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        self.detail = detail
        self.extra = extra
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_body(self) -> Dict[str, Any]:
        body = {"status": "error", "kind": self.kind.value, "error": self.message}
        body.update(self.extra)
        return body


def mysql_error_info(exc: DBAPIError) -> Tuple[Optional[int], str]:
    """Return (error code, server message) from a wrapped driver error"""
    args = getattr(exc.orig, "args", ()) or ()
    code = args[0] if args and isinstance(args[0], int) else None
    message = str(args[1]) if len(args) > 1 else str(exc.orig)
    return code, message


def from_db_error(exc: DBAPIError) -> PaperScopeError:
    """Classify a database error by MySQL error code"""
    code, message = mysql_error_info(exc)

    if code == ER_SIGNAL_EXCEPTION:
        # Trigger and procedure messages are written for end users
        lowered = message.lower()
        if any(marker in lowered for marker in DUPLICATE_SIGNAL_MARKERS):
            return PaperScopeError(ErrorKind.CONFLICT, message, detail=str(exc))
        return PaperScopeError(ErrorKind.VALIDATION, message, detail=str(exc))
    if code == ER_DUP_ENTRY:
        return PaperScopeError(ErrorKind.CONFLICT, "Record already exists", detail=message)
    if code in (ER_ROW_IS_REFERENCED, ER_NO_REFERENCED_ROW):
        return PaperScopeError(ErrorKind.VALIDATION, "Referenced record does not exist", detail=message)
    if code in (ER_LOCK_WAIT_TIMEOUT, ER_LOCK_DEADLOCK):
        return PaperScopeError(ErrorKind.CONFLICT, "Concurrent update, please retry", detail=message)

    return PaperScopeError(ErrorKind.INTERNAL, detail=str(exc))


def not_found(what: str, identifier: str) -> PaperScopeError:
    return PaperScopeError(ErrorKind.NOT_FOUND, f"{what} not found: {identifier}")
