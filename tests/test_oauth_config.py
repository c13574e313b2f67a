"""
Tests for negotiator settings.
"""

import os
from unittest.mock import patch

import pytest

from negotiator.core.domain import Scope
from negotiator.oauth.config import NegotiatorSettings, get_negotiator_settings


class TestNegotiatorSettings:
    """Tests for NegotiatorSettings."""

    def test_from_env_loads_variables(self):
        """Test loading settings from environment variables."""
        env = {
            "OAUTH_ENDPOINT": "https://canvas.example.edu/login/oauth2",
            "OAUTH_CLIENT_ID": "10000000000001",
            "OAUTH_CLIENT_SECRET": "s3cr3t",
            "OAUTH_API_ENDPOINT": "https://canvas.example.edu/api/v1",
            "OAUTH_LANDING_PAGE": "/done",
            "OAUTH_REDIRECT_URI": "https://lti.example.edu/oauth/api",
            "OAUTH_PURPOSE": "Roster sync",
            "BASE_URL": "https://lti.example.edu",
            "NEGOTIATOR_HTTP_TIMEOUT": "2.5",
            "NEGOTIATION_MAX_AGE": "300",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = NegotiatorSettings.from_env()

        assert settings.oauth_endpoint == "https://canvas.example.edu/login/oauth2"
        assert settings.client_id == "10000000000001"
        assert settings.client_secret == "s3cr3t"
        assert settings.api_endpoint == "https://canvas.example.edu/api/v1"
        assert settings.landing_page == "/done"
        assert settings.redirect_uri == "https://lti.example.edu/oauth/api"
        assert settings.purpose == "Roster sync"
        assert settings.base_url == "https://lti.example.edu"
        assert settings.http_timeout == 2.5
        assert settings.max_age == 300.0
        assert settings.is_configured() is True

    def test_from_env_handles_missing(self):
        """Test loading settings with missing variables."""
        with patch.dict(os.environ, {}, clear=True):
            settings = NegotiatorSettings.from_env()

        assert settings.oauth_endpoint is None
        assert settings.client_secret is None
        assert settings.http_timeout == 10.0
        assert settings.max_age == 900.0
        assert settings.is_configured() is False

    @pytest.mark.parametrize("scope", list(Scope))
    def test_to_params(self, scope):
        settings = NegotiatorSettings(
            oauth_endpoint="https://canvas.example.edu/login/oauth2",
            client_id="10000000000001",
            client_secret="s3cr3t",
            purpose="Roster sync",
        )

        params = settings.to_params(scope)

        assert params.scope is scope
        assert params.oauth_endpoint == "https://canvas.example.edu/login/oauth2"
        assert params.client_secret == "s3cr3t"
        assert params.purpose == "Roster sync"
        assert params.landing_page is None

    def test_get_negotiator_settings_is_cached(self):
        get_negotiator_settings.cache_clear()
        try:
            with patch.dict(os.environ, {"OAUTH_CLIENT_ID": "first"}, clear=True):
                first = get_negotiator_settings()
            with patch.dict(os.environ, {"OAUTH_CLIENT_ID": "second"}, clear=True):
                second = get_negotiator_settings()

            assert first is second
            assert second.client_id == "first"
        finally:
            get_negotiator_settings.cache_clear()
