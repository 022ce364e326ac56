"""Tests for HttpxTransport.

Tests cover:
1. Request shape (endpoint, form content type, body)
2. JSON and XML payload decoding
3. Mapping of non-2xx responses to TransportFailure
4. Connection-level failures
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from overpass_client.resilience.models import TransportFailure
from overpass_client.transport import (
    FORM_CONTENT_TYPE,
    HttpxTransport,
    Transport,
    request_timeout_for,
)
from tests.unit.fakes import SAMPLE_RESPONSE, make_mock_response

ENDPOINT = "https://overpass.example.org/api/interpreter"
BODY = "data=%5Bout%3Ajson%5D%3Bnode(1)%3B%20out%3B"


def patched_client(mock_client_class, *, response=None, side_effect=None):
    mock_client = AsyncMock()
    mock_client.post = AsyncMock(return_value=response, side_effect=side_effect)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    mock_client_class.return_value = mock_client
    return mock_client


class TestHttpxTransport:
    def test_satisfies_protocol(self):
        assert isinstance(HttpxTransport(ENDPOINT), Transport)

    def test_rejects_unknown_format(self):
        with pytest.raises(ValueError):
            HttpxTransport(ENDPOINT, format="csv")

    @pytest.mark.asyncio
    async def test_posts_form_body(self):
        response = make_mock_response(json_data=SAMPLE_RESPONSE)
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = patched_client(mock_client_class, response=response)

            result = await HttpxTransport(ENDPOINT).send(BODY)

        assert result == SAMPLE_RESPONSE
        call = mock_client.post.call_args
        assert call.args[0] == ENDPOINT
        assert call.kwargs["content"] == BODY
        assert call.kwargs["headers"]["Content-Type"] == FORM_CONTENT_TYPE

    @pytest.mark.asyncio
    async def test_request_timeout_passed_to_client(self):
        response = make_mock_response(json_data=SAMPLE_RESPONSE)
        with patch("httpx.AsyncClient") as mock_client_class:
            patched_client(mock_client_class, response=response)

            await HttpxTransport(ENDPOINT, request_timeout=90.0).send(BODY)

        assert mock_client_class.call_args.kwargs["timeout"] == 90.0

    @pytest.mark.parametrize("query_timeout,expected", [(60, 75.0), (25, 40.0), (0, 195.0)])
    def test_request_timeout_covers_query_timeout(self, query_timeout, expected):
        assert request_timeout_for(query_timeout) == expected

    @pytest.mark.asyncio
    async def test_xml_returns_text(self):
        response = make_mock_response(text="<osm></osm>")
        with patch("httpx.AsyncClient") as mock_client_class:
            patched_client(mock_client_class, response=response)

            result = await HttpxTransport(ENDPOINT, format="xml").send(BODY)

        assert result == "<osm></osm>"
        response.json.assert_not_called()

    @pytest.mark.asyncio
    async def test_error_status_raises_failure(self):
        response = make_mock_response(
            status_code=429,
            reason_phrase="Too Many Requests",
            headers={"Retry-After": "2"},
            text="slow down",
        )
        with patch("httpx.AsyncClient") as mock_client_class:
            patched_client(mock_client_class, response=response)

            with pytest.raises(TransportFailure) as exc_info:
                await HttpxTransport(ENDPOINT).send(BODY)

        failure = exc_info.value
        assert failure.status_code == 429
        assert failure.status_text == "Too Many Requests"
        assert failure.headers == {"retry-after": "2"}
        assert failure.body == "slow down"
        assert failure.has_response

    @pytest.mark.asyncio
    async def test_invalid_json_raises_failure(self):
        response = make_mock_response(text="<html>", raise_json=True)
        with patch("httpx.AsyncClient") as mock_client_class:
            patched_client(mock_client_class, response=response)

            with pytest.raises(TransportFailure) as exc_info:
                await HttpxTransport(ENDPOINT).send(BODY)

        assert exc_info.value.status_code == 200
        assert exc_info.value.status_text == "Invalid JSON response"

    @pytest.mark.asyncio
    async def test_connection_error_has_no_status(self):
        error = httpx.ConnectError("connection refused")
        with patch("httpx.AsyncClient") as mock_client_class:
            patched_client(mock_client_class, side_effect=error)

            with pytest.raises(TransportFailure) as exc_info:
                await HttpxTransport(ENDPOINT).send(BODY)

        assert exc_info.value.status_code is None
        assert not exc_info.value.has_response
        assert exc_info.value.original_error is error

    @pytest.mark.asyncio
    async def test_with_mock_transport(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = request.content.decode()
            return httpx.Response(503, text="busy")

        transport = HttpxTransport(ENDPOINT, http_transport=httpx.MockTransport(handler))
        with pytest.raises(TransportFailure) as exc_info:
            await transport.send(BODY)

        assert exc_info.value.status_code == 503
        assert exc_info.value.status_text == "Service Unavailable"
        assert seen == {"content_type": FORM_CONTENT_TYPE, "body": BODY}
