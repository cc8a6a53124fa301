#!/usr/bin/env python3
"""HTTP Client for Microsoft Graph (Intune device management).

This module provides the HTTP layer for Graph API communication:

    - OAuth2 authentication via TokenManager
    - One transparent token refresh on 401 responses
    - OData pagination (follows '@odata.nextLink' until exhausted)
    - Retry-After extraction on 429/503 responses
    - Connection pooling via shared aiohttp session
    - Typed exceptions for every failure

Design Philosophy:
    This client knows HOW to talk to Graph, but not WHAT to fetch. It does
    not retry failed calls either: a listing that fails surfaces the typed
    error unmodified. Retrying is the collector's decision, made per app.

Usage:
    async with GraphClient(token_manager) as client:
        data = await client.get("/deviceManagement/detectedApps", params={"$top": 10})

        async for page in client.paginate("/deviceManagement/detectedApps"):
            for item in page:
                process(item)

        all_items = await client.fetch_all("/deviceManagement/detectedApps")
"""
import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import aiohttp

from .auth import TokenManager
from .exceptions import (
    APIError,
    ConfigurationError,
    ConnectionError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TimeoutError,
    TokenExpiredError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

# ============================================
# Configuration
# ============================================

@dataclass
class PaginationConfig:
    """Configuration for paginated Graph requests.

    Attributes:
        page_size: Requested items per page ($top); Graph may return fewer
        delay_between_pages: Seconds to wait between page requests
        max_pages: Safety limit to prevent infinite loops (None = no limit)
    """
    page_size: int = 100
    delay_between_pages: float = 0.0
    max_pages: Optional[int] = None


DETECTED_APPS_PAGINATION = PaginationConfig(
    page_size=500,
    delay_between_pages=0.0,
)

APP_DEVICES_PAGINATION = PaginationConfig(
    page_size=100,
    delay_between_pages=0.0,
)


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Parse a Retry-After header into whole seconds.

    Only the delta-seconds form is honoured; HTTP dates, zero, negatives and
    garbage yield None so the caller falls back to exponential backoff.
    """
    if value is None:
        return None
    value = value.strip()
    if not value.isdigit():
        return None
    seconds = int(value)
    return seconds if seconds > 0 else None


# ============================================
# The Client
# ============================================

class GraphClient:
    """Async HTTP client for Microsoft Graph.

    Must be used as an async context manager so the aiohttp session is
    closed:

        async with GraphClient(token_manager) as client:
            data = await client.get("/deviceManagement/detectedApps")

    Attributes:
        token_manager: TokenManager instance for OAuth2 authentication
        base_url: Graph root, e.g. "https://graph.microsoft.com/v1.0"
    """

    def __init__(
        self,
        token_manager: TokenManager,
        base_url: Optional[str] = None,
        request_timeout: float = 60.0,
    ):
        """Initialize the GraphClient.

        Args:
            token_manager: TokenManager instance for authentication
            base_url: API base URL. Falls back to GRAPH_BASE_URL, then the v1.0 root.
            request_timeout: Total seconds allowed per request

        Raises:
            ConfigurationError: If the resolved base URL is empty.
        """
        self.token_manager = token_manager
        self.base_url = (
            base_url or os.getenv("GRAPH_BASE_URL") or DEFAULT_GRAPH_BASE_URL
        ).rstrip("/")
        self.request_timeout = request_timeout

        if not self.base_url.startswith("http"):
            raise ConfigurationError(
                f"Graph base URL must be an absolute http(s) URL, got {self.base_url!r}",
                missing_keys=["GRAPH_BASE_URL"],
            )

        self._session: Optional[aiohttp.ClientSession] = None

    # ----------------------------------------
    # Context Manager Protocol
    # ----------------------------------------

    async def __aenter__(self) -> "GraphClient":
        """Enter async context: create the HTTP session."""
        self._session = aiohttp.ClientSession(
            # Collection is sequential; a single connection is enough
            connector=aiohttp.TCPConnector(limit=1),
            timeout=aiohttp.ClientTimeout(
                total=self.request_timeout,
                connect=10,
            ),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context: close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    # ----------------------------------------
    # Low-Level Request Methods
    # ----------------------------------------

    async def _get_auth_headers(self) -> dict[str, str]:
        """Get authorization headers with current token."""
        token = await self.token_manager.get_token()
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    def _build_url(self, endpoint: str) -> str:
        # nextLink values are already absolute
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}{endpoint}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> dict[str, Any]:
        """Make a single HTTP request (no retry logic).

        Args:
            method: HTTP method
            endpoint: Path relative to base_url, or an absolute nextLink URL
            params: Query parameters

        Returns:
            Parsed JSON response as dict

        Raises:
            APIError: If response status is not 2xx
            RuntimeError: If called outside of async context manager
            ConnectionError: If connection to server fails
            TimeoutError: If request times out
        """
        if not self._session:
            raise RuntimeError(
                "GraphClient must be used as async context manager: "
                "async with GraphClient(...) as client:"
            )

        url = self._build_url(endpoint)

        try:
            headers = await self._get_auth_headers()

            async with self._session.request(
                method=method,
                url=url,
                headers=headers,
                params=params,
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise self._create_api_error(
                        status=response.status,
                        method=method,
                        endpoint=endpoint,
                        response_body=error_text,
                        retry_after=parse_retry_after(response.headers.get("Retry-After")),
                    )

                try:
                    return await response.json()
                except ValueError as e:
                    # Truncated or non-JSON body on a 2xx; retryable like a 5xx
                    raise APIError(
                        f"Malformed JSON in response to {method} {endpoint}",
                        status_code=response.status,
                        endpoint=endpoint,
                        method=method,
                        recoverable=True,
                        cause=e,
                    )

        except aiohttp.ClientConnectionError as e:
            raise ConnectionError(
                f"Failed to connect to {self.base_url}",
                host=self.base_url,
                cause=e,
            )

        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Request to {endpoint} timed out",
                timeout_seconds=self.request_timeout,
                cause=e,
            )

        except aiohttp.ClientError as e:
            raise NetworkError(
                f"Network error during {method} {endpoint}: {e}",
                cause=e,
            )

    def _create_api_error(
        self,
        status: int,
        method: str,
        endpoint: str,
        response_body: str,
        retry_after: Optional[int] = None,
    ) -> APIError:
        """Create appropriate APIError subclass based on status code."""
        if status == 401:
            return TokenExpiredError(
                "Graph access token expired or invalid",
                details={"endpoint": endpoint},
            )

        if status == 404:
            return NotFoundError(
                resource_type="Resource",
                resource_id=endpoint,
                endpoint=endpoint,
                response_body=response_body,
            )

        if status == 429:
            return RateLimitError(
                f"Rate limit exceeded for {endpoint}",
                retry_after=retry_after,
                endpoint=endpoint,
                response_body=response_body,
            )

        if status == 400 or status == 422:
            return ValidationError(
                f"Validation failed for {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                response_body=response_body,
            )

        if status >= 500:
            return ServerError(
                f"Server error ({status}) for {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                response_body=response_body,
                retry_after=retry_after,
            )

        return APIError(
            f"{method} {endpoint} failed",
            status_code=status,
            endpoint=endpoint,
            method=method,
            response_body=response_body,
            retry_after=retry_after,
        )

    # ----------------------------------------
    # High-Level Request Methods
    # ----------------------------------------

    async def get(
        self,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> dict[str, Any]:
        """Make a GET request, refreshing the token once on 401.

        Args:
            endpoint: API endpoint path or absolute URL
            params: Query parameters

        Returns:
            Parsed JSON response

        Raises:
            TokenExpiredError: If the refreshed token is rejected as well
        """
        try:
            return await self._request("GET", endpoint, params=params)
        except TokenExpiredError:
            logger.warning("Graph token rejected, refreshing and retrying once")
            self.token_manager.invalidate()
            return await self._request("GET", endpoint, params=params)

    # ----------------------------------------
    # Pagination Methods (OData nextLink)
    # ----------------------------------------

    async def paginate(
        self,
        endpoint: str,
        config: Optional[PaginationConfig] = None,
        params: Optional[dict] = None,
    ) -> AsyncIterator[list[dict]]:
        """Iterate through OData-paginated responses.

        Yields one page at a time. The first request carries the caller's
        params plus $top; every following request is the server-issued
        '@odata.nextLink', which already encodes the query.

        Args:
            endpoint: API endpoint path
            config: Pagination configuration (page size, delay, etc.)
            params: Additional query parameters (e.g., $select, $filter)

        Yields:
            List of items from each page
        """
        config = config or PaginationConfig()
        params = dict(params or {})
        params.setdefault("$top", config.page_size)

        pages_fetched = 0
        total_items = 0
        next_url: Optional[str] = None

        while True:
            if next_url:
                data = await self.get(next_url)
            else:
                data = await self.get(endpoint, params=params)

            if not isinstance(data, dict) or not isinstance(data.get("value", []), list):
                raise APIError(
                    f"Unexpected page shape from {endpoint}: {type(data).__name__}",
                    status_code=200,
                    endpoint=endpoint,
                    recoverable=True,
                )

            items = data.get("value", [])
            if items:
                yield items
                total_items += len(items)

            pages_fetched += 1
            logger.debug(f"Fetched page {pages_fetched} of {endpoint} ({total_items:,} items so far)")

            next_url = data.get("@odata.nextLink")
            if not next_url:
                break

            if config.max_pages and pages_fetched >= config.max_pages:
                logger.info(f"Reached max_pages limit ({config.max_pages})")
                break

            if config.delay_between_pages > 0:
                await asyncio.sleep(config.delay_between_pages)

        logger.debug(
            f"Pagination complete for {endpoint}: {total_items:,} items in {pages_fetched} pages"
        )

    async def fetch_all(
        self,
        endpoint: str,
        config: Optional[PaginationConfig] = None,
        params: Optional[dict] = None,
    ) -> list[dict]:
        """Fetch all items from a paginated endpoint into one list."""
        all_items = []
        async for page in self.paginate(endpoint, config, params):
            all_items.extend(page)
        return all_items
