"""
Tests for HttpxOAuthTransport.
"""

import httpx
import pytest

from negotiator.core.exceptions import TransportError
from negotiator.infrastructure.http_transport import HttpxOAuthTransport
from tests.conftest import PROFILE_URL, TOKEN_URL


@pytest.fixture
def transport():
    return HttpxOAuthTransport(timeout=5.0)


class TestPostForm:
    """Tests for the token request."""

    @pytest.mark.asyncio
    async def test_posts_form_and_parses_json(self, transport, respx_mock):
        route = respx_mock.post(TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "tok1"})
        )

        result = await transport.post_form(TOKEN_URL, {"code": "abc123", "state": "s"})

        assert result == {"access_token": "tok1"}
        request = route.calls.last.request
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert request.headers["accept"] == "application/json"
        assert request.content == b"code=abc123&state=s"

    @pytest.mark.asyncio
    async def test_error_status_raises(self, transport, respx_mock):
        respx_mock.post(TOKEN_URL).mock(
            return_value=httpx.Response(401, json={"error": "invalid_client"})
        )

        with pytest.raises(TransportError) as exc_info:
            await transport.post_form(TOKEN_URL, {"code": "abc123"})

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_network_error_raises(self, transport, respx_mock):
        respx_mock.post(TOKEN_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(TransportError, match="Network error") as exc_info:
            await transport.post_form(TOKEN_URL, {"code": "abc123"})

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_empty_body_returns_none(self, transport, respx_mock):
        respx_mock.post(TOKEN_URL).mock(return_value=httpx.Response(200, content=b""))

        assert await transport.post_form(TOKEN_URL, {"code": "abc123"}) is None

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, transport, respx_mock):
        respx_mock.post(TOKEN_URL).mock(
            return_value=httpx.Response(200, content=b"<html>oops</html>")
        )

        with pytest.raises(TransportError, match="invalid JSON"):
            await transport.post_form(TOKEN_URL, {"code": "abc123"})


class TestGetJson:
    """Tests for the profile request."""

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self, transport, respx_mock):
        route = respx_mock.get(PROFILE_URL).mock(
            return_value=httpx.Response(200, json={"id": 42})
        )

        result = await transport.get_json(PROFILE_URL, "tok1")

        assert result == {"id": 42}
        assert route.calls.last.request.headers["authorization"] == "Bearer tok1"

    @pytest.mark.asyncio
    async def test_not_found_raises(self, transport, respx_mock):
        respx_mock.get(PROFILE_URL).mock(return_value=httpx.Response(404))

        with pytest.raises(TransportError) as exc_info:
            await transport.get_json(PROFILE_URL, "tok1")

        assert exc_info.value.status_code == 404
