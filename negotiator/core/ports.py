"""
Port definitions (interfaces) for the core domain.

Ports define the contracts between the negotiator and external systems.
Infrastructure adapters implement these ports.
"""

from typing import Any, Protocol

from negotiator.core.domain import NegotiationState


class NegotiationStore(Protocol):
    """
    Port (interface) for per-session negotiation persistence.

    Implemented by InMemoryNegotiationStore and FirestoreNegotiationStore.
    Must be durable across requests for the same visitor and isolated
    between visitors. Each session holds at most one negotiation.
    """

    async def get(self, session_id: str) -> NegotiationState | None:
        """
        Load the negotiation for a session.

        Args:
            session_id: Per-visitor negotiation identifier

        Returns:
            Stored NegotiationState, or None if no negotiation is in progress
        """
        ...

    async def put(self, session_id: str, state: NegotiationState) -> None:
        """
        Store (replace) the negotiation for a session.

        Args:
            session_id: Per-visitor negotiation identifier
            state: Negotiation state to persist
        """
        ...

    async def clear(self, session_id: str) -> None:
        """
        Erase the negotiation for a session. No-op if none is stored.

        Args:
            session_id: Per-visitor negotiation identifier
        """
        ...


class OAuthTransport(Protocol):
    """
    Port (interface) for the outbound calls to the OAuth and API servers.

    Implemented by HttpxOAuthTransport. Timeouts are the adapter's concern.
    """

    async def post_form(self, url: str, data: dict[str, str]) -> Any:
        """
        POST a form-encoded body and parse the JSON response.

        Returns:
            Parsed JSON, or None if the response body was empty

        Raises:
            TransportError: On network failure, non-2xx status or invalid JSON
        """
        ...

    async def get_json(self, url: str, access_token: str) -> Any:
        """
        GET a resource with a bearer token and parse the JSON response.

        Returns:
            Parsed JSON, or None if the response body was empty

        Raises:
            TransportError: On network failure, non-2xx status or invalid JSON
        """
        ...
