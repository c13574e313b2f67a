"""
FastAPI dependencies for the negotiation endpoints.

Provides dependency injection for the negotiator, the per-visitor
negotiation id and the request context.
"""

import logging
import secrets
from datetime import timedelta
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from negotiator.core.domain import RequestContext, Scope
from negotiator.core.exceptions import SessionUnavailableError
from negotiator.core.negotiator import Negotiator
from negotiator.core.ports import NegotiationStore, OAuthTransport
from negotiator.infrastructure.http_transport import HttpxOAuthTransport
from negotiator.infrastructure.negotiation_store import get_negotiation_store
from negotiator.oauth.config import NegotiatorSettings, get_negotiator_settings


logger = logging.getLogger(__name__)

# Session key holding the visitor's negotiation id
NEGOTIATION_ID_KEY = "negotiation_id"


def get_store() -> NegotiationStore:
    """Provide NegotiationStore dependency."""
    return get_negotiation_store()


def get_transport(
    settings: Annotated[NegotiatorSettings, Depends(get_negotiator_settings)],
) -> OAuthTransport:
    """Provide OAuthTransport dependency."""
    return HttpxOAuthTransport(timeout=settings.http_timeout)


def get_negotiator(
    store: Annotated[NegotiationStore, Depends(get_store)],
    transport: Annotated[OAuthTransport, Depends(get_transport)],
    settings: Annotated[NegotiatorSettings, Depends(get_negotiator_settings)],
) -> Negotiator:
    """Provide Negotiator dependency."""
    return Negotiator(store, transport, max_age=timedelta(seconds=settings.max_age))


def get_session_id(request: Request) -> str:
    """
    Get (or create) the visitor's negotiation id from the session.

    Raises:
        SessionUnavailableError: If no session middleware is installed
    """
    if "session" not in request.scope:
        raise SessionUnavailableError(
            "Cannot negotiate for OAuth authentication without sessions"
        )

    session_id = request.session.get(NEGOTIATION_ID_KEY)
    if not session_id:
        session_id = secrets.token_urlsafe(32)
        request.session[NEGOTIATION_ID_KEY] = session_id
        logger.debug("Created negotiation id for new session")
    return str(session_id)


def get_request_context(
    request: Request,
    settings: Annotated[NegotiatorSettings, Depends(get_negotiator_settings)],
) -> RequestContext:
    """
    Describe the current request to the negotiator.

    The absolute URI (the default redirect URI) is built from BASE_URL when
    set, so it stays correct behind a TLS-terminating proxy.
    """
    path = request.url.path
    if settings.base_url:
        absolute_uri = f"{settings.base_url.rstrip('/')}{path}"
    else:
        absolute_uri = str(request.url.replace(query="", fragment=""))

    params = request.query_params
    return RequestContext(
        path=path,
        absolute_uri=absolute_uri,
        state=params.get("state"),
        code=params.get("code"),
        error=params.get("error"),
    )


async def validate_scope(scope: str) -> Scope:
    """
    Validate the scope path parameter.

    Raises:
        HTTPException: 404 if the scope is unknown
    """
    try:
        return Scope(scope)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown scope: {scope}. Supported: {[s.value for s in Scope]}",
        )


# Type aliases for cleaner dependency injection
ValidScope = Annotated[Scope, Depends(validate_scope)]
SessionId = Annotated[str, Depends(get_session_id)]
Context = Annotated[RequestContext, Depends(get_request_context)]
Settings = Annotated[NegotiatorSettings, Depends(get_negotiator_settings)]
NegotiatorDep = Annotated[Negotiator, Depends(get_negotiator)]
