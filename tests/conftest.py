"""
Shared test configuration and fixtures.
"""

import os
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

# Configure the app before importing it
with patch.dict(
    os.environ,
    {
        "SESSION_SECRET_KEY": "test-secret",
        "BASE_URL": "http://testserver",
    },
):
    from negotiator.main import app  # noqa: F401

from negotiator.core.domain import NegotiationParams, RequestContext, Scope
from negotiator.infrastructure.negotiation_store import InMemoryNegotiationStore


OAUTH_ENDPOINT = "https://canvas.example.edu/login/oauth2"
API_ENDPOINT = "https://canvas.example.edu/api/v1"
TOKEN_URL = f"{OAUTH_ENDPOINT}/token"
PROFILE_URL = f"{API_ENDPOINT}/users/self/profile"


def query_params(url: str) -> dict[str, str]:
    """Single-valued query parameters of a URL."""
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


@pytest.fixture
def store():
    """Fresh in-memory negotiation store."""
    return InMemoryNegotiationStore()


@pytest.fixture
def transport():
    """OAuthTransport double answering with a token and a profile."""
    mock = MagicMock()
    mock.post_form = AsyncMock(return_value={"access_token": "tok1"})
    mock.get_json = AsyncMock(
        return_value={"id": 42, "name": "Ada Lovelace", "primary_email": "ada@example.edu"}
    )
    return mock


@pytest.fixture
def context():
    """A request to the negotiation page without callback parameters."""
    return RequestContext(
        path="/courses/roster",
        absolute_uri="https://lti.example.edu/courses/roster",
    )


def make_params(scope: Scope = Scope.API, **overrides) -> NegotiationParams:
    values = {
        "oauth_endpoint": OAUTH_ENDPOINT,
        "client_id": "10000000000001",
        "client_secret": "s3cr3t",
        "scope": scope,
    }
    values.update(overrides)
    return NegotiationParams(**values)


@pytest.fixture
def api_params():
    return make_params(Scope.API)


@pytest.fixture
def identity_params():
    return make_params(Scope.IDENTITY)
