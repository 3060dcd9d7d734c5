# secureweb/exceptions.py

"""
Custom exception classes for the SecureWeb service.

Two families live here:

- `ServiceError` and its subclasses represent HTTP-level failures
  (missing credentials, forbidden access, unknown records). They are caught by
  FastAPI's global exception handler and rendered as `{"error": detail}`.
- `TraversalError` is raised by the path guard. It carries no HTTP status:
  callers of `resolve_safe` catch it and decide which response to send.

Messages never include a filesystem path.
"""

from enum import Enum


class ServiceError(Exception):
    """
    Exception raised for request-level errors.

    Args:
        detail (str): Human-readable, non-revealing description of the error.
        status_code (int): HTTP status code to be returned to the client.

    Example:
        raise ServiceError("Service unavailable", status_code=503)
    """
    def __init__(self, detail: str, status_code: int = 500):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class AuthenticationRequired(ServiceError):
    def __init__(self, detail: str = "Invalid token"):
        super().__init__(detail, status_code=401)


class Forbidden(ServiceError):
    def __init__(self, detail: str = "forbidden"):
        super().__init__(detail, status_code=403)


class NotFound(ServiceError):
    def __init__(self, detail: str = "Not found"):
        super().__init__(detail, status_code=404)


class TraversalErrorKind(str, Enum):
    MISSING_INPUT = "missing_input"
    INVALID_ENCODING = "invalid_encoding"
    OUTSIDE_BASE = "outside_base"


class TraversalError(Exception):
    """
    Raised when a user-supplied file reference cannot be resolved safely.

    Attributes:
        kind (TraversalErrorKind): Which rejection rule fired.
    """
    def __init__(self, kind: TraversalErrorKind):
        self.kind = kind
        super().__init__(kind.value)
