"""Microsoft Graph API modules.

This package provides the HTTP layer used to collect Intune discovered-app
inventory.

Classes:
    GraphClient: HTTP client with OData pagination and typed errors
    TokenManager: OAuth2 client-credentials token management
    RetrySequence: Per-app attempt state machine

Functions:
    next_delay: Backoff policy (server hint wins, else 2^attempt)

Exceptions:
    InventoryError: Base exception for all inventory errors
    ConfigurationError: Missing or invalid configuration
    AuthenticationError: Authentication failures (fatal for a run)
    APIError: API request failures, carrying retry_after
    NetworkError: Network connectivity issues
    RecordFormatError: Unparseable row in the flat record file
"""
from .auth import CachedToken, TokenManager
from .client import (
    APP_DEVICES_PAGINATION,
    DETECTED_APPS_PAGINATION,
    GraphClient,
    PaginationConfig,
    parse_retry_after,
)
from .exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    ConnectionError,
    InvalidCredentialsError,
    InventoryError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RecordFormatError,
    ServerError,
    TimeoutError,
    TokenExpiredError,
    TokenFetchError,
    ValidationError,
)
from .resilience import RetrySequence, RetryState, next_delay

__all__ = [
    # Auth
    "CachedToken",
    "TokenManager",
    # Client
    "GraphClient",
    "PaginationConfig",
    "DETECTED_APPS_PAGINATION",
    "APP_DEVICES_PAGINATION",
    "parse_retry_after",
    # Exceptions - Base
    "InventoryError",
    "ConfigurationError",
    # Exceptions - Auth
    "AuthenticationError",
    "TokenFetchError",
    "TokenExpiredError",
    "InvalidCredentialsError",
    # Exceptions - API
    "APIError",
    "RateLimitError",
    "NotFoundError",
    "ValidationError",
    "ServerError",
    # Exceptions - Network
    "NetworkError",
    "ConnectionError",
    "TimeoutError",
    # Exceptions - Flat file
    "RecordFormatError",
    # Resilience
    "RetrySequence",
    "RetryState",
    "next_delay",
]
