"""
Negotiator configuration.

Loaded from environment variables. Supplies the construction parameters
for negotiations started by the HTTP layer.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from negotiator.core.domain import NegotiationParams, Scope
from negotiator.core.negotiator import DEFAULT_MAX_AGE
from negotiator.infrastructure.http_transport import DEFAULT_TIMEOUT


logger = logging.getLogger(__name__)


@dataclass
class NegotiatorSettings:
    """
    Negotiator settings.

    Only the OAuth endpoint, client ID and client secret are required, and
    they are validated when a negotiation starts (not at startup), so a
    misconfigured deployment surfaces as a diagnosable negotiation error.
    """

    oauth_endpoint: str | None
    client_id: str | None
    client_secret: str | None
    api_endpoint: str | None = None
    landing_page: str | None = None
    redirect_uri: str | None = None
    purpose: str | None = None
    base_url: str | None = None
    http_timeout: float = DEFAULT_TIMEOUT
    max_age: float = DEFAULT_MAX_AGE.total_seconds()

    @classmethod
    def from_env(cls) -> "NegotiatorSettings":
        """Load settings from environment variables."""
        return cls(
            oauth_endpoint=os.getenv("OAUTH_ENDPOINT"),
            client_id=os.getenv("OAUTH_CLIENT_ID"),
            client_secret=os.getenv("OAUTH_CLIENT_SECRET"),
            api_endpoint=os.getenv("OAUTH_API_ENDPOINT"),
            landing_page=os.getenv("OAUTH_LANDING_PAGE"),
            redirect_uri=os.getenv("OAUTH_REDIRECT_URI"),
            purpose=os.getenv("OAUTH_PURPOSE"),
            base_url=os.getenv("BASE_URL"),
            http_timeout=float(os.getenv("NEGOTIATOR_HTTP_TIMEOUT", DEFAULT_TIMEOUT)),
            max_age=float(
                os.getenv("NEGOTIATION_MAX_AGE", DEFAULT_MAX_AGE.total_seconds())
            ),
        )

    def is_configured(self) -> bool:
        """Check if the required OAuth settings are present."""
        return bool(self.oauth_endpoint and self.client_id and self.client_secret)

    def to_params(self, scope: Scope) -> NegotiationParams:
        """Construction parameters for a negotiation of the given scope."""
        return NegotiationParams(
            oauth_endpoint=self.oauth_endpoint,
            client_id=self.client_id,
            client_secret=self.client_secret,
            landing_page=self.landing_page,
            purpose=self.purpose,
            api_endpoint=self.api_endpoint,
            scope=scope,
            redirect_uri=self.redirect_uri,
        )


@lru_cache()
def get_negotiator_settings() -> NegotiatorSettings:
    """Get negotiator settings singleton."""
    settings = NegotiatorSettings.from_env()
    if not settings.is_configured():
        logger.warning("OAuth negotiation not configured (missing endpoint or credentials)")
    return settings
