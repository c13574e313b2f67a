"""
Server-to-server calls made while continuing a negotiation.

- request_token: exchange an authorization code for an access token
- fetch_profile: fetch the token owner's profile (API scope only)
"""

import logging
from typing import Any

from negotiator.core.domain import NegotiationState
from negotiator.core.exceptions import (
    ProfileFetchFailedError,
    TokenNotReceivedError,
    TransportError,
    UnexpectedResponseError,
)
from negotiator.core.ports import OAuthTransport


logger = logging.getLogger(__name__)


async def request_token(
    transport: OAuthTransport, state: NegotiationState, code: str
) -> str:
    """
    Request an access token from the OAuth server.

    Args:
        transport: Outbound HTTP transport
        state: Negotiation in progress (supplies endpoint, credentials and
            the confirmation state token)
        code: Authorization code provided by the OAuth server

    Returns:
        The access token

    Raises:
        UnexpectedResponseError: If the server could not be reached, answered
            with an error status, or answered with something other than a
            JSON object
        TokenNotReceivedError: If the response carries no access token
    """
    config = state.config
    payload = {
        "client_id": config.client_id,
        "redirect_uri": config.redirect_uri,
        "state": state.confirmation_state,
        "client_secret": config.client_secret,
        "code": code,
    }

    try:
        response = await transport.post_form(config.token_url, payload)
    except TransportError as e:
        logger.error(
            f"Token request failed: {e}",
            extra={"token_url": config.token_url, "status_code": e.status_code},
        )
        raise UnexpectedResponseError(
            f"Unexpected OAuth response: {e}", upstream=True
        ) from e

    if not response or not isinstance(response, dict):
        raise UnexpectedResponseError("Unexpected OAuth response", upstream=True)

    access_token = response.get("access_token")
    if not access_token:
        raise TokenNotReceivedError("Access token not received")

    return str(access_token)


async def fetch_profile(
    transport: OAuthTransport, state: NegotiationState, access_token: str
) -> dict[str, Any]:
    """
    Fetch the user profile matching an API access token.

    Raises:
        ProfileFetchFailedError: If no usable profile is returned
    """
    url = state.config.profile_url

    try:
        profile = await transport.get_json(url, access_token)
    except TransportError as e:
        logger.error(
            f"Profile request failed: {e}",
            extra={"profile_url": url, "status_code": e.status_code},
        )
        raise ProfileFetchFailedError(f"Failed to get user profile: {e}") from e

    if not profile or not isinstance(profile, dict):
        raise ProfileFetchFailedError("Failed to get user profile")

    return profile
