"""Error hierarchy for the vendor proxy.

Every failure raised inside the proxy carries an ``ErrorCategory`` so the
layers that convert errors into envelopes or outcomes can log them
uniformly. Nothing in this module is ever sent to the caller as a raw
exception: the orchestrator client turns ``TransportError`` into a failed
envelope and the protocol front turns ``VendorExecutionError`` into an
error outcome.
"""

from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categories of proxy errors."""

    CONNECTION = auto()  # Resource unreachable or auth failure on connect
    UNSUPPORTED_OPERATION = auto()  # Unknown instruction type/operation/kind
    MISSING_CONNECTION = auto()  # Database instruction without identity
    TIMEOUT = auto()  # Bounded wait exceeded
    VENDOR_EXECUTION = auto()  # Driver or automation call failed
    TRANSPORT = auto()  # Orchestrator unreachable or non-2xx


class ProxyException(Exception):
    """Base exception for proxy errors with categorization."""

    def __init__(self, category: ErrorCategory, message: str):
        super().__init__(message)
        self.category = category
        self.message = message


class TransportError(ProxyException):
    """The remote orchestrator could not be reached or answered non-2xx."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(ErrorCategory.TRANSPORT, message)
        self.status_code = status_code


class VendorExecutionError(ProxyException):
    """A vendor instruction could not be executed.

    This is the base of every dispatcher failure, so callers that only
    care about "the instruction failed" can catch this one class.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.VENDOR_EXECUTION,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(category, message)
        self.original_error = original_error


class ResourceConnectionError(VendorExecutionError):
    """Connecting to a local resource failed."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message, ErrorCategory.CONNECTION, original_error)


class UnsupportedOperationError(VendorExecutionError):
    """An instruction type or operation has no registered handler."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.UNSUPPORTED_OPERATION)


class UnsupportedKindError(UnsupportedOperationError):
    """A browser kind outside the supported set was requested."""

    def __init__(self, kind: str, supported: tuple[str, ...]):
        super().__init__(
            f"Unsupported browser type: {kind} (supported: {', '.join(supported)})"
        )
        self.kind = kind


class MissingConnectionError(VendorExecutionError):
    """A database instruction arrived without a connection identity."""

    def __init__(self, message: str = "Database connection string is required"):
        super().__init__(message, ErrorCategory.MISSING_CONNECTION)


class OperationTimeoutError(VendorExecutionError):
    """An operation exceeded its bounded wait."""

    def __init__(
        self,
        message: str,
        timeout: float,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message, ErrorCategory.TIMEOUT, original_error)
        self.timeout = timeout
