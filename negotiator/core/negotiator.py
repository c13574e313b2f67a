"""
OAuth2 authorization-code negotiation.

The Negotiator is invoked once per incoming HTTP request. Depending on the
negotiation stored for the visitor's session it either starts a new
negotiation, continues one (the OAuth server's callback), or reports on a
finished one. Every path except reporting ends in a redirect: each request
performs at most one step of the negotiation.

    (none) --start--> CODE_REQUESTED --callback--> CODE_PROVIDED
        --> TOKEN_REQUESTED --> TOKEN_PROVIDED --> COMPLETE
                                               \\-> FAILED
"""

import hmac
import logging
from datetime import UTC, datetime, timedelta
from typing import Awaitable, Callable

from authlib.common.urls import add_params_to_uri

from negotiator.core.domain import (
    NegotiationConfig,
    NegotiationParams,
    NegotiationReport,
    NegotiationState,
    Phase,
    RedirectTo,
    RequestContext,
    Scope,
)
from negotiator.core.exceptions import (
    NegotiationError,
    StateMismatchError,
    UnexpectedResponseError,
)
from negotiator.core.exchange import fetch_profile, request_token
from negotiator.core.ports import NegotiationStore, OAuthTransport


logger = logging.getLogger(__name__)

NegotiationResult = RedirectTo | NegotiationReport

_Handler = Callable[[str, NegotiationState, RequestContext], Awaitable[NegotiationResult]]

# Unfinished negotiations older than this are replaced by a fresh start
DEFAULT_MAX_AGE = timedelta(minutes=15)


class Negotiator:
    """
    Drives OAuth negotiations across requests.

    The store is the only state that survives between requests; the
    negotiator itself is stateless and may be shared.
    """

    def __init__(
        self,
        store: NegotiationStore,
        transport: OAuthTransport,
        max_age: timedelta = DEFAULT_MAX_AGE,
    ):
        self._store = store
        self._transport = transport
        self._max_age = max_age
        self._handlers: dict[Phase, _Handler] = {
            Phase.CODE_REQUESTED: self._continue,
            Phase.COMPLETE: self._report,
            Phase.FAILED: self._report,
        }

    async def negotiate(
        self,
        session_id: str,
        context: RequestContext,
        params: NegotiationParams,
    ) -> NegotiationResult:
        """
        Perform the next negotiation step for a session.

        Args:
            session_id: Per-visitor negotiation identifier
            context: The current request
            params: Construction parameters (only used to start a negotiation)

        Returns:
            RedirectTo if the caller must redirect and stop processing the
            request, otherwise the NegotiationReport

        Raises:
            NegotiationError: On incomplete configuration, a forged or
                malformed callback, or an unusable OAuth/API server response
        """
        state = await self._store.get(session_id)
        if state is not None and self._is_abandoned(state):
            logger.info(
                "Restarting abandoned OAuth negotiation",
                extra={"phase": state.phase.value},
            )
            state = None

        if state is None:
            return await self._start(session_id, context, params)

        handler = self._handlers.get(state.phase, self._not_ready)
        return await handler(session_id, state, context)

    def _is_abandoned(self, state: NegotiationState) -> bool:
        """An unfinished negotiation the visitor never came back to."""
        if state.phase.is_terminal:
            return False
        return datetime.now(UTC) - state.updated_at > self._max_age

    async def _start(
        self, session_id: str, context: RequestContext, params: NegotiationParams
    ) -> RedirectTo:
        """Validate configuration, persist it and request an authorization code."""
        config = NegotiationConfig.from_params(params, context)
        state = NegotiationState.begin(config)
        # Persisted before redirecting: the callback is validated against it
        await self._store.put(session_id, state)

        logger.info(
            "Starting OAuth negotiation",
            extra={
                "scope": config.scope.value,
                "oauth_endpoint": config.oauth_endpoint,
                "client_id": config.client_id,
            },
        )

        return RedirectTo(self._authorization_url(state))

    def _authorization_url(self, state: NegotiationState) -> str:
        config = state.config
        params = [
            ("client_id", config.client_id),
            ("response_type", config.response_type),
            ("redirect_uri", config.redirect_uri),
            ("state", state.expected_state),
        ]
        if config.scope.authorization_scope is not None:
            params.append(("scopes", config.scope.authorization_scope))
        params.append(("purpose", config.purpose))
        return str(add_params_to_uri(config.authorization_url, params))

    async def _continue(
        self, session_id: str, state: NegotiationState, context: RequestContext
    ) -> RedirectTo:
        """Handle the OAuth server's response to the authorization request."""
        expected = state.expected_state or ""
        received = context.state or ""
        if not received or not hmac.compare_digest(received.encode(), expected.encode()):
            logger.warning(
                "OAuth callback state mismatch",
                extra={"scope": state.config.scope.value, "phase": state.phase.value},
            )
            raise StateMismatchError(
                f"State mismatch (received '{received}') for "
                f"{state.config.scope.value} negotiation"
            )

        has_code = bool(context.code)
        has_error = bool(context.error)
        if has_code == has_error:
            raise UnexpectedResponseError("Unexpected OAuth response")

        if has_error:
            return await self._fail(session_id, state, str(context.error))

        return await self._acquire_token(session_id, state, str(context.code))

    async def _acquire_token(
        self, session_id: str, state: NegotiationState, code: str
    ) -> RedirectTo:
        """Exchange the code for a token (and profile) and complete the negotiation."""
        state.advance(Phase.CODE_PROVIDED)
        await self._store.put(session_id, state)

        # The code is spent from here on; any failure ends the negotiation
        state.advance(Phase.TOKEN_REQUESTED)
        await self._store.put(session_id, state)

        try:
            state.token = await request_token(self._transport, state, code)
            state.advance(Phase.TOKEN_PROVIDED)
            await self._store.put(session_id, state)
            logger.info(
                "Access token received",
                extra={"scope": state.config.scope.value},
            )

            if state.config.scope is Scope.API:
                state.user = await fetch_profile(self._transport, state, state.token)
                logger.info("User profile received for API token")
        except NegotiationError as e:
            await self._commit_failure(session_id, state, e.error_code)
            raise

        state.error = None
        state.advance(Phase.COMPLETE)
        await self._store.put(session_id, state)

        logger.info(
            "OAuth negotiation complete",
            extra={"scope": state.config.scope.value},
        )
        return RedirectTo(state.config.landing_page)

    async def _fail(
        self, session_id: str, state: NegotiationState, error: str
    ) -> RedirectTo:
        """Record an error reported by the OAuth server and return to the landing page."""
        await self._commit_failure(session_id, state, error)
        return RedirectTo(
            str(add_params_to_uri(state.config.landing_page, [("error", error)]))
        )

    async def _commit_failure(
        self, session_id: str, state: NegotiationState, error: str
    ) -> None:
        # A failed negotiation reports neither kind of token
        state.token = None
        state.user = None
        state.error = error
        state.advance(Phase.FAILED)
        await self._store.put(session_id, state)

        logger.warning(
            f"OAuth negotiation failed: {error}",
            extra={"scope": state.config.scope.value, "error": error},
        )

    async def _report(
        self, session_id: str, state: NegotiationState, context: RequestContext
    ) -> NegotiationReport:
        """Report a finished negotiation and forget it."""
        report = NegotiationReport.from_state(state)
        await self._store.clear(session_id)

        logger.info(
            "OAuth negotiation reported",
            extra={
                "phase": state.phase.value,
                "has_token": bool(report.token),
                "has_user": report.user is not None,
            },
        )
        return report

    async def _not_ready(
        self, session_id: str, state: NegotiationState, context: RequestContext
    ) -> NegotiationReport:
        logger.debug(
            "OAuth negotiation in progress",
            extra={"phase": state.phase.value},
        )
        return NegotiationReport.not_ready()
