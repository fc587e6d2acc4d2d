"""
Core utilities and configuration for the gomafia sync service.

Modules:
    config: Application configuration and environment variable management
    database: Database engine and session management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import NetworkError, ParseError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "async_session_maker",
    "setup_logging",
    # Exceptions
    "SyncException",
    "ImportInProgressError",
    "ImportCancelledError",
    "CheckpointError",
    "ValidationError",
    "ParseError",
    "TransportError",
    "NetworkError",
    "RateLimitError",
    "ResourceNotFoundError",
    "PersistenceError",
    "DatabaseError",
    "VerificationError",
    "SourceUnavailableError",
    "AlertDeliveryError",
    "RetryableError",
    "NonRetryableError",
]
