"""
Core domain models for the OAuth negotiation.

These models represent the negotiation itself and are independent of
any web framework, HTTP client or storage backend.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from enum import Enum
from typing import Any

from authlib.common.security import generate_token
from pydantic import BaseModel, ConfigDict, Field

from negotiator.core.exceptions import (
    MissingClientIdError,
    MissingClientSecretError,
    MissingOAuthEndpointError,
)


# Path segments used to derive the API endpoint from the OAuth endpoint
# (e.g. https://canvas.example.edu/login/oauth2 -> https://canvas.example.edu/api/v1)
OAUTH_PATH_SEGMENT = "/login/oauth2"
API_PATH_SEGMENT = "/api/v1"

DEFAULT_RESPONSE_TYPE = "code"

# Length of generated anti-forgery tokens
STATE_TOKEN_LENGTH = 32


class Scope(str, Enum):
    """What the negotiated token is for."""

    IDENTITY = "identity"
    API = "api"

    @property
    def authorization_scope(self) -> str | None:
        """
        Value of the scope parameter sent with the authorization request.

        API access is the server's implicit default, so no parameter is sent.
        """
        if self is Scope.IDENTITY:
            return "/auth/userinfo/"
        return None


DEFAULT_SCOPE = Scope.API


class Phase(str, Enum):
    """Negotiation phases, in the only order they may be traversed."""

    CODE_REQUESTED = "code_requested"
    CODE_PROVIDED = "code_provided"
    TOKEN_REQUESTED = "token_requested"
    TOKEN_PROVIDED = "token_provided"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.COMPLETE, Phase.FAILED)

    @property
    def rank(self) -> int:
        # COMPLETE and FAILED share the last rank: neither follows the other
        return min(_PHASE_ORDER.index(self), _PHASE_ORDER.index(Phase.COMPLETE))


_PHASE_ORDER = list(Phase)

# The phase whose token a phase expects to receive back
_EXPECTED_TOKEN = {
    Phase.CODE_REQUESTED: Phase.CODE_PROVIDED,
    Phase.TOKEN_REQUESTED: Phase.TOKEN_PROVIDED,
}


class NotReady(Enum):
    """Sentinel type returned by report accessors while negotiation is ongoing."""

    NOT_READY = "not_ready"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_READY"


NOT_READY = NotReady.NOT_READY


@dataclass
class NegotiationParams:
    """
    Raw construction parameters for a negotiation.

    Only consulted when a negotiation starts fresh; a negotiation already in
    progress keeps the configuration it was started with.
    """

    oauth_endpoint: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    landing_page: str | None = None
    purpose: str | None = None
    api_endpoint: str | None = None
    scope: Scope = DEFAULT_SCOPE
    response_type: str = DEFAULT_RESPONSE_TYPE
    redirect_uri: str | None = None


@dataclass
class RequestContext:
    """What the negotiator needs to know about the current HTTP request."""

    path: str
    absolute_uri: str
    state: str | None = None
    code: str | None = None
    error: str | None = None


class NegotiationConfig(BaseModel):
    """
    Validated negotiation configuration.

    Persisted with the negotiation state so that later requests do not
    depend on the caller passing the same arguments again.
    """

    oauth_endpoint: str = Field(description="OAuth endpoint, e.g. https://host/login/oauth2")
    api_endpoint: str = Field(description="API endpoint, e.g. https://host/api/v1")
    client_id: str = Field(description="OAuth client ID")
    client_secret: str = Field(description="Secret shared with the OAuth server")
    landing_page: str = Field(description="Where to send the browser once negotiation ends")
    redirect_uri: str = Field(description="Where the OAuth server sends its response")
    scope: Scope = Field(default=DEFAULT_SCOPE, description="Requested token scope")
    purpose: str = Field(description="Human-readable purpose shown by the OAuth server")
    response_type: str = Field(default=DEFAULT_RESPONSE_TYPE)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_params(
        cls, params: NegotiationParams, context: RequestContext
    ) -> "NegotiationConfig":
        """
        Validate construction parameters and fill in defaults.

        Args:
            params: Raw construction parameters
            context: Current request (supplies landing page, purpose and
                redirect URI defaults)

        Returns:
            Validated configuration

        Raises:
            MissingOAuthEndpointError: If the OAuth endpoint is empty
            MissingClientIdError: If the client ID is empty
            MissingClientSecretError: If the client secret is empty
        """
        if not params.oauth_endpoint:
            raise MissingOAuthEndpointError("Missing OAuth endpoint URI.")
        if not params.client_id:
            raise MissingClientIdError("Missing client ID.")
        if not params.client_secret:
            raise MissingClientSecretError("Missing client secret.")

        oauth_endpoint = params.oauth_endpoint.rstrip("/")
        if params.api_endpoint:
            api_endpoint = params.api_endpoint.rstrip("/")
        else:
            api_endpoint = oauth_endpoint.replace(OAUTH_PATH_SEGMENT, API_PATH_SEGMENT)

        return cls(
            oauth_endpoint=oauth_endpoint,
            api_endpoint=api_endpoint,
            client_id=params.client_id,
            client_secret=params.client_secret,
            landing_page=params.landing_page or context.path,
            redirect_uri=params.redirect_uri or context.absolute_uri,
            scope=params.scope,
            purpose=params.purpose or context.path,
            response_type=params.response_type or DEFAULT_RESPONSE_TYPE,
        )

    @property
    def authorization_url(self) -> str:
        return f"{self.oauth_endpoint}/auth"

    @property
    def token_url(self) -> str:
        return f"{self.oauth_endpoint}/token"

    @property
    def profile_url(self) -> str:
        return f"{self.api_endpoint}/users/self/profile"


class NegotiationState(BaseModel):
    """
    Per-session negotiation record.

    The only state that survives between requests. Created when a
    negotiation starts, advanced by each callback, and cleared once the
    terminal report has been read.
    """

    phase: Phase = Field(default=Phase.CODE_REQUESTED)
    state_tokens: dict[Phase, str] = Field(
        description="Generated anti-forgery token per phase"
    )
    config: NegotiationConfig
    token: str | None = Field(default=None, description="Negotiated access token")
    user: dict[str, Any] | None = Field(
        default=None, description="User profile (API scope only)"
    )
    error: str | None = Field(default=None, description="Why the negotiation failed")
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def begin(cls, config: NegotiationConfig) -> "NegotiationState":
        """Start a negotiation with freshly generated anti-forgery tokens."""
        tokens = {
            phase: generate_token(STATE_TOKEN_LENGTH)
            for phase in Phase
            if not phase.is_terminal
        }
        return cls(phase=Phase.CODE_REQUESTED, state_tokens=tokens, config=config)

    @property
    def expected_state(self) -> str | None:
        """State token the current phase expects back, if it expects one."""
        expected_phase = _EXPECTED_TOKEN.get(self.phase)
        if expected_phase is None:
            return None
        return self.state_tokens.get(expected_phase)

    @property
    def confirmation_state(self) -> str:
        """State token sent to the token endpoint to confirm the exchange."""
        return self.state_tokens[Phase.TOKEN_PROVIDED]

    def advance(self, phase: Phase) -> None:
        """
        Move to a later phase.

        Raises:
            ValueError: If ``phase`` does not come after the current phase
        """
        if self.phase.is_terminal or phase.rank <= self.phase.rank:
            raise ValueError(f"Cannot move from {self.phase.value} to {phase.value}")
        self.phase = phase
        self.updated_at = datetime.now(UTC)


@dataclass(frozen=True)
class RedirectTo:
    """Answer the current request with a redirect and stop processing it."""

    url: str


@dataclass(frozen=True)
class NegotiationReport:
    """
    Read-only outcome of a finished negotiation.

    All accessors return NOT_READY (and the predicates False) while the
    negotiation is still in progress.
    """

    ready: bool = False
    token: str | None = None
    user: dict[str, Any] | None = None
    error: str | None = None

    @classmethod
    def not_ready(cls) -> "NegotiationReport":
        return cls()

    @classmethod
    def from_state(cls, state: NegotiationState) -> "NegotiationReport":
        if not state.phase.is_terminal:
            return cls.not_ready()
        return cls(ready=True, token=state.token, user=state.user, error=state.error)

    def is_ready(self) -> bool:
        return self.ready

    def is_identity_token(self) -> bool:
        return self.ready and bool(self.token) and self.user is None

    def is_api_token(self) -> bool:
        return self.ready and bool(self.token) and self.user is not None

    def get_token(self) -> str | None | NotReady:
        return self.token if self.ready else NOT_READY

    def get_user(self) -> dict[str, Any] | None | NotReady:
        return self.user if self.ready else NOT_READY

    def get_error(self) -> str | None | NotReady:
        return self.error if self.ready else NOT_READY
