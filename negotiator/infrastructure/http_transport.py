"""
httpx implementation of the OAuthTransport port.

Performs the server-to-server calls of a negotiation: the token request to
the OAuth server and the profile request to the API server.
"""

import logging
from typing import Any

import httpx

from negotiator.core.exceptions import TransportError


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class HttpxOAuthTransport:
    """
    OAuthTransport backed by httpx.AsyncClient.

    A new client is opened per call; negotiations make at most two calls.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self._timeout = timeout

    async def post_form(self, url: str, data: dict[str, str]) -> Any:
        """POST a form-encoded body and return the parsed JSON response."""
        return await self._request(
            "POST", url, data=data, headers={"Accept": "application/json"}
        )

    async def get_json(self, url: str, access_token: str) -> Any:
        """GET a resource with a bearer token and return the parsed JSON response."""
        return await self._request(
            "GET",
            url,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            try:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(
                    f"OAuth server error: {e.response.status_code}",
                    extra={"url": url, "status_code": e.response.status_code},
                )
                raise TransportError(
                    f"{method} {url} failed: {e.response.status_code}",
                    status_code=e.response.status_code,
                ) from e
            except httpx.RequestError as e:
                logger.error(f"Network error calling OAuth server: {e}", extra={"url": url})
                raise TransportError(f"Network error: {e}") from e

        if not response.content.strip():
            return None

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"{method} {url} returned invalid JSON",
                status_code=response.status_code,
            ) from e
