#!/usr/bin/env python3
"""Unit tests for the Graph HTTP client.

Tests cover:
    - Retry-After parsing
    - HTTP status to typed exception mapping
    - OData pagination via @odata.nextLink
    - Single token refresh on 401
"""
import json
import sys
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.appinv.api.client import (
    DEFAULT_GRAPH_BASE_URL,
    GraphClient,
    PaginationConfig,
    parse_retry_after,
)
from src.appinv.api.exceptions import (
    APIError,
    ConfigurationError,
    ConnectionError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TokenExpiredError,
    ValidationError,
)


@pytest.fixture
def token_manager():
    manager = MagicMock()
    manager.get_token = AsyncMock(return_value="test_token")
    return manager


@pytest.fixture
def client(token_manager, monkeypatch):
    monkeypatch.delenv("GRAPH_BASE_URL", raising=False)
    return GraphClient(token_manager)


def mock_response(status: int, json_body: dict | None = None, text: str = "", headers: dict | None = None):
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.json = AsyncMock(return_value=json_body or {})
    response.text = AsyncMock(return_value=text)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


# ============================================
# Retry-After Parsing
# ============================================

class TestParseRetryAfter:
    """Test Retry-After header parsing."""

    def test_delta_seconds(self):
        assert parse_retry_after("5") == 5
        assert parse_retry_after(" 30 ") == 30

    @pytest.mark.parametrize("value", [None, "", "0", "-2", "1.5", "soon",
                                       "Wed, 21 Oct 2015 07:28:00 GMT"])
    def test_unusable_values(self, value):
        assert parse_retry_after(value) is None


# ============================================
# Construction
# ============================================

class TestGraphClientInit:

    def test_default_base_url(self, client):
        assert client.base_url == DEFAULT_GRAPH_BASE_URL

    def test_base_url_from_env(self, token_manager, monkeypatch):
        monkeypatch.setenv("GRAPH_BASE_URL", "https://graph.microsoft.com/beta/")
        client = GraphClient(token_manager)
        assert client.base_url == "https://graph.microsoft.com/beta"

    def test_relative_base_url_rejected(self, token_manager):
        with pytest.raises(ConfigurationError):
            GraphClient(token_manager, base_url="graph.microsoft.com")

    def test_build_url_keeps_absolute_links(self, client):
        link = "https://graph.microsoft.com/v1.0/deviceManagement/detectedApps?$skiptoken=abc"
        assert client._build_url(link) == link
        assert client._build_url("/deviceManagement/detectedApps") == (
            f"{DEFAULT_GRAPH_BASE_URL}/deviceManagement/detectedApps"
        )

    @pytest.mark.asyncio
    async def test_request_outside_context_raises(self, client):
        with pytest.raises(RuntimeError):
            await client._request("GET", "/deviceManagement/detectedApps")


# ============================================
# Error Mapping
# ============================================

class TestErrorMapping:
    """Test _create_api_error status mapping."""

    def test_401_is_token_expired(self, client):
        error = client._create_api_error(401, "GET", "/x", "")
        assert isinstance(error, TokenExpiredError)

    def test_404_is_not_found(self, client):
        error = client._create_api_error(404, "GET", "/x", "missing")
        assert isinstance(error, NotFoundError)

    def test_429_carries_retry_after(self, client):
        error = client._create_api_error(429, "GET", "/x", "", retry_after=12)
        assert isinstance(error, RateLimitError)
        assert error.retry_after == 12
        assert error.recoverable

    def test_400_is_validation(self, client):
        error = client._create_api_error(400, "GET", "/x", "bad $select")
        assert isinstance(error, ValidationError)

    def test_503_is_server_error_with_hint(self, client):
        error = client._create_api_error(503, "GET", "/x", "", retry_after=3)
        assert isinstance(error, ServerError)
        assert error.status_code == 503
        assert error.retry_after == 3

    def test_other_status_is_api_error(self, client):
        error = client._create_api_error(403, "GET", "/x", "forbidden")
        assert type(error) is APIError
        assert error.retry_after is None


# ============================================
# Low-Level Request
# ============================================

class TestRequest:

    @pytest.mark.asyncio
    async def test_success_returns_json(self, client):
        client._session = MagicMock()
        client._session.request = MagicMock(
            return_value=mock_response(200, {"value": [{"id": "1"}]})
        )

        data = await client._request("GET", "/deviceManagement/detectedApps")

        assert data == {"value": [{"id": "1"}]}
        kwargs = client._session.request.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer test_token"

    @pytest.mark.asyncio
    async def test_throttle_reads_retry_after_header(self, client):
        client._session = MagicMock()
        client._session.request = MagicMock(
            return_value=mock_response(429, text="slow down", headers={"Retry-After": "7"})
        )

        with pytest.raises(RateLimitError) as exc:
            await client._request("GET", "/deviceManagement/detectedApps")

        assert exc.value.retry_after == 7

    @pytest.mark.asyncio
    async def test_connection_failure_is_wrapped(self, client):
        client._session = MagicMock()
        client._session.request = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(ConnectionError) as exc:
            await client._request("GET", "/deviceManagement/detectedApps")

        assert exc.value.recoverable

    @pytest.mark.asyncio
    async def test_malformed_json_body_is_api_error(self, client):
        response = mock_response(200)
        response.json = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "{\"val", 5))
        client._session = MagicMock()
        client._session.request = MagicMock(return_value=response)

        with pytest.raises(APIError) as exc:
            await client._request("GET", "/deviceManagement/detectedApps")

        assert exc.value.status_code == 200
        assert exc.value.recoverable
        assert isinstance(exc.value.cause, json.JSONDecodeError)


# ============================================
# Token Refresh
# ============================================

class TestGet:

    @pytest.mark.asyncio
    async def test_401_refreshes_token_once(self, client, token_manager):
        client._request = AsyncMock(side_effect=[TokenExpiredError(), {"value": []}])

        data = await client.get("/deviceManagement/detectedApps")

        assert data == {"value": []}
        token_manager.invalidate.assert_called_once()
        assert client._request.call_count == 2

    @pytest.mark.asyncio
    async def test_second_401_propagates(self, client, token_manager):
        client._request = AsyncMock(side_effect=[TokenExpiredError(), TokenExpiredError()])

        with pytest.raises(TokenExpiredError):
            await client.get("/deviceManagement/detectedApps")

        assert client._request.call_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, client):
        client._request = AsyncMock(side_effect=ServerError(status_code=503))

        with pytest.raises(ServerError):
            await client.get("/deviceManagement/detectedApps")

        assert client._request.call_count == 1


# ============================================
# Pagination
# ============================================

class TestPagination:
    """Test OData nextLink pagination."""

    @pytest.mark.asyncio
    async def test_follows_next_link_until_absent(self, client):
        next_1 = "https://graph.microsoft.com/v1.0/deviceManagement/detectedApps?$skiptoken=p2"
        next_2 = "https://graph.microsoft.com/v1.0/deviceManagement/detectedApps?$skiptoken=p3"
        client.get = AsyncMock(side_effect=[
            {"value": [{"id": "a"}, {"id": "b"}], "@odata.nextLink": next_1},
            {"value": [{"id": "c"}], "@odata.nextLink": next_2},
            {"value": [{"id": "d"}]},
        ])

        items = await client.fetch_all(
            "/deviceManagement/detectedApps",
            config=PaginationConfig(page_size=2),
            params={"$select": "id"},
        )

        assert [i["id"] for i in items] == ["a", "b", "c", "d"]
        calls = client.get.call_args_list
        assert calls[0].args[0] == "/deviceManagement/detectedApps"
        assert calls[0].kwargs["params"] == {"$select": "id", "$top": 2}
        assert calls[1].args[0] == next_1
        assert calls[2].args[0] == next_2

    @pytest.mark.asyncio
    async def test_single_page(self, client):
        client.get = AsyncMock(return_value={"value": [{"id": "only"}]})

        items = await client.fetch_all("/deviceManagement/detectedApps")

        assert items == [{"id": "only"}]
        assert client.get.call_count == 1

    @pytest.mark.asyncio
    async def test_empty_collection(self, client):
        client.get = AsyncMock(return_value={"value": []})

        pages = [page async for page in client.paginate("/deviceManagement/detectedApps")]

        assert pages == []

    @pytest.mark.asyncio
    async def test_max_pages_stops_early(self, client):
        client.get = AsyncMock(return_value={
            "value": [{"id": "x"}],
            "@odata.nextLink": "https://graph.microsoft.com/v1.0/next",
        })

        items = await client.fetch_all("/x", config=PaginationConfig(max_pages=3))

        assert len(items) == 3
        assert client.get.call_count == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page", [[{"id": "a"}], {"value": "oops"}, None])
    async def test_unexpected_page_shape_is_api_error(self, client, page):
        client.get = AsyncMock(return_value=page)

        with pytest.raises(APIError):
            await client.fetch_all("/deviceManagement/detectedApps")

    @pytest.mark.asyncio
    async def test_page_error_propagates(self, client):
        client.get = AsyncMock(side_effect=[
            {"value": [{"id": "a"}], "@odata.nextLink": "https://graph.microsoft.com/v1.0/next"},
            RateLimitError(retry_after=4),
        ])

        with pytest.raises(RateLimitError):
            await client.fetch_all("/deviceManagement/detectedApps")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
