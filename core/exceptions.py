"""
Custom exceptions for the gomafia sync pipeline with structured error context.

Every exception carries a context dictionary so that log records and stored
run errors can say which phase, page or record was involved.

Exception Hierarchy:
    SyncException (base)
    ├── ImportInProgressError        (conflict, never retried)
    ├── ImportCancelledError
    ├── ValidationError
    ├── TransportError
    │   ├── NetworkError             (retryable)
    │   ├── RateLimitError           (retryable)
    │   └── ResourceNotFoundError    (non-retryable)
    ├── ParseError                   (non-retryable)
    ├── PersistenceError
    │   └── DatabaseError
    ├── CheckpointError
    ├── VerificationError
    │   └── SourceUnavailableError
    ├── AlertDeliveryError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime


class SyncException(Exception):
    """
    Base exception for all sync-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (phase, page, record id, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(SyncException):
    """
    Mixin for errors that the retry policy may attempt again.

    Use this for transient errors like:
    - Network timeouts and refused connections
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[float] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after
        if retry_after is not None:
            self.context["retry_after"] = retry_after


class NonRetryableError(SyncException):
    """
    Mixin for errors that must NOT be retried.

    Use this for permanent errors like:
    - Malformed HTML (parse errors)
    - Resource not found (HTTP 404)
    """
    pass


# ============================================================================
# Run-level Errors
# ============================================================================

class ImportInProgressError(NonRetryableError):
    """
    Raised when another holder already owns the import lock.

    Surfaced to callers as a conflict, not as a failure.
    """
    pass


class ImportCancelledError(SyncException):
    """
    Raised at a batch boundary after a cancellation request was observed.

    Context should include:
        - phase: Phase that observed the request
        - batch_index: Next batch that will not be processed
    """
    pass


class CheckpointError(SyncException):
    """
    Raised when the import checkpoint cannot be read or written.

    Context should include:
        - phase: Phase owning the checkpoint
        - operation: read, write or clear
    """
    pass


# ============================================================================
# Validation / Parsing Errors
# ============================================================================

class ValidationError(SyncException):
    """
    Raised when a candidate record fails structural or domain checks.

    Context should include:
        - kind: Candidate kind (club, player, ...)
        - gomafia_id: External identifier of the record
        - rule: The rule that was violated
    """
    pass


class ParseError(NonRetryableError):
    """
    Raised by parsers and normalizers on malformed input.

    Context should include:
        - parser: Parser function name
        - value: Offending value (truncated)
    """
    pass


# ============================================================================
# Transport Errors
# ============================================================================

class TransportError(SyncException):
    """Base exception for failures talking to the remote source."""
    pass


class NetworkError(RetryableError, TransportError):
    """Network-related errors that should be retried."""
    pass


class RateLimitError(RetryableError, TransportError):
    """Rate limiting errors (HTTP 429) that should be retried with backoff."""
    pass


class ResourceNotFoundError(NonRetryableError, TransportError):
    """Resource not found errors (HTTP 404) that should not be retried."""
    pass


# ============================================================================
# Persistence Errors
# ============================================================================

class PersistenceError(SyncException):
    """Base exception for local store failures."""
    pass


class DatabaseError(PersistenceError):
    """
    Exception raised when database operations fail.

    Context should include:
        - operation: Type of database operation (INSERT, SELECT, ...)
        - table_name: Name of the table
    """
    pass


# ============================================================================
# Verification / Alerting Errors
# ============================================================================

class VerificationError(SyncException):
    """Base exception for data verification failures."""
    pass


class SourceUnavailableError(VerificationError):
    """Raised when the remote source cannot be reached at all."""
    pass


class AlertDeliveryError(SyncException):
    """Raised by alert sinks when an alert could not be delivered."""
    pass
