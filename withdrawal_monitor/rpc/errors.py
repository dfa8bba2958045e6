"""
Error taxonomy for ledger RPC calls.

Transport adapters translate library exceptions into an ``ErrorKind`` at the
boundary, so retry decisions never depend on error message text.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds a ledger call can produce."""

    TIMEOUT = "timeout"
    CONNECTION = "connection"
    RATE_LIMITED = "rate_limited"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"
    INVALID_ARGUMENT = "invalid_argument"
    EXECUTION_REVERTED = "execution_reverted"

    @property
    def retryable(self) -> bool:
        return self not in _NON_RETRYABLE


_NON_RETRYABLE = frozenset({ErrorKind.INVALID_ARGUMENT, ErrorKind.EXECUTION_REVERTED})


class RpcError(Exception):
    """Base exception for ledger RPC failures."""

    def __init__(self, kind: ErrorKind, message: str, endpoint: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.endpoint = endpoint

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class TransportError(RpcError):
    """Timeout, connection failure, rate limiting or an unusable response."""

    pass


class ApplicationError(RpcError):
    """The endpoint answered, but rejected the call itself."""

    pass


class EndpointsExhaustedError(RpcError):
    """Raised when every endpoint has used up its attempt budget."""

    def __init__(
        self,
        description: str,
        endpoints_tried: int,
        attempts: int,
        last_error: Optional[BaseException],
    ):
        last = str(last_error) if last_error is not None else "unknown error"
        super().__init__(
            classify_error(last_error) if last_error is not None else ErrorKind.UNKNOWN,
            f"{description} failed after trying all {endpoints_tried} endpoint(s) "
            f"({attempts} attempt(s)): {last}",
        )
        self.description = description
        self.endpoints_tried = endpoints_tried
        self.attempts = attempts
        self.last_error = last_error


def classify_error(error: BaseException) -> ErrorKind:
    """Map any exception raised by a ledger operation to its ErrorKind.

    Errors that did not pass through a transport adapter are UNKNOWN and
    therefore retried.
    """
    if isinstance(error, RpcError):
        return error.kind
    return ErrorKind.UNKNOWN


def make_error(kind: ErrorKind, message: str, endpoint: Optional[str] = None) -> RpcError:
    """Build the TransportError/ApplicationError matching ``kind``."""
    cls = TransportError if kind.retryable else ApplicationError
    return cls(kind, message, endpoint)
