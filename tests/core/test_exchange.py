"""
Tests for the token and profile requests.
"""

import pytest

from negotiator.core.domain import NegotiationConfig, NegotiationState
from negotiator.core.exceptions import (
    ProfileFetchFailedError,
    TokenNotReceivedError,
    TransportError,
    UnexpectedResponseError,
)
from negotiator.core.exchange import fetch_profile, request_token
from tests.conftest import PROFILE_URL, TOKEN_URL, make_params


@pytest.fixture
def state(context):
    return NegotiationState.begin(NegotiationConfig.from_params(make_params(), context))


class TestRequestToken:
    """Tests for request_token."""

    @pytest.mark.asyncio
    async def test_returns_access_token(self, transport, state):
        token = await request_token(transport, state, "abc123")

        assert token == "tok1"
        url, payload = transport.post_form.await_args.args
        assert url == TOKEN_URL
        assert payload["code"] == "abc123"
        assert payload["state"] == state.confirmation_state
        assert payload["client_secret"] == "s3cr3t"

    @pytest.mark.asyncio
    async def test_numeric_token_returned_as_string(self, transport, state):
        transport.post_form.return_value = {"access_token": 12345}

        assert await request_token(transport, state, "abc123") == "12345"

    @pytest.mark.parametrize("response", [{"access_token": ""}, {"error": "invalid_grant"}])
    @pytest.mark.asyncio
    async def test_missing_token(self, transport, state, response):
        transport.post_form.return_value = response

        with pytest.raises(TokenNotReceivedError, match="Access token not received"):
            await request_token(transport, state, "abc123")

    @pytest.mark.asyncio
    async def test_transport_error_is_upstream_unexpected_response(self, transport, state):
        transport.post_form.side_effect = TransportError("failed: 401", status_code=401)

        with pytest.raises(UnexpectedResponseError) as exc_info:
            await request_token(transport, state, "abc123")

        assert exc_info.value.upstream is True
        assert isinstance(exc_info.value.__cause__, TransportError)


class TestFetchProfile:
    """Tests for fetch_profile."""

    @pytest.mark.asyncio
    async def test_returns_profile(self, transport, state):
        profile = await fetch_profile(transport, state, "tok1")

        assert profile["id"] == 42
        transport.get_json.assert_awaited_once_with(PROFILE_URL, "tok1")

    @pytest.mark.parametrize("response", [None, {}, ["not", "an", "object"]])
    @pytest.mark.asyncio
    async def test_unusable_profile(self, transport, state, response):
        transport.get_json.return_value = response

        with pytest.raises(ProfileFetchFailedError):
            await fetch_profile(transport, state, "tok1")

    @pytest.mark.asyncio
    async def test_transport_error(self, transport, state):
        transport.get_json.side_effect = TransportError("failed: 404", status_code=404)

        with pytest.raises(ProfileFetchFailedError, match="Failed to get user profile"):
            await fetch_profile(transport, state, "tok1")
