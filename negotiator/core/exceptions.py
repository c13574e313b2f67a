"""
Domain exceptions for the OAuth negotiation.

These exceptions represent configuration or protocol violations and are
caught by the centralized exception handler in main.py. Errors reported by
the authorization server itself (e.g. "access_denied") are NOT exceptions:
they end the negotiation in the FAILED phase.
"""


class NegotiationError(Exception):
    """
    Base exception for negotiation failures.

    Every subclass carries a stable snake_case ``error_code`` (stored as the
    negotiation error when a failure is committed) and the numeric ``code``
    of the original negotiator taxonomy.
    """

    error_code = "negotiation_error"
    code = 0


class MissingConfigurationError(NegotiationError):
    """Raised when a fresh negotiation is started with incomplete configuration."""

    pass


class MissingOAuthEndpointError(MissingConfigurationError):
    """OAuth endpoint URI is empty or not provided."""

    error_code = "missing_oauth_endpoint"
    code = 1


class MissingClientIdError(MissingConfigurationError):
    """Client ID is empty or not provided."""

    error_code = "missing_client_id"
    code = 2


class MissingClientSecretError(MissingConfigurationError):
    """Client secret is empty or not provided."""

    error_code = "missing_client_secret"
    code = 3


class StateMismatchError(NegotiationError):
    """
    Raised when a callback's state token does not match the stored value.

    Signals a forged, stale or duplicated callback. The stored negotiation
    is left untouched.
    """

    error_code = "state_mismatch"
    code = 4


class UnexpectedResponseError(NegotiationError):
    """
    Raised on a response that is neither a success nor a reported error.

    ``upstream`` is True when the token endpoint answered unusably (or not at
    all), False when the browser callback carried neither a code nor an error.
    """

    error_code = "unexpected_response"
    code = 5

    def __init__(self, message: str, upstream: bool = False):
        super().__init__(message)
        self.upstream = upstream


class TokenNotReceivedError(NegotiationError):
    """Token endpoint responded, but without an access token."""

    error_code = "token_not_received"
    code = 6


class ProfileFetchFailedError(NegotiationError):
    """
    Raised when no user profile can be acquired for an API token.

    Usually means the authorization server does not speak the expected API.
    """

    error_code = "profile_fetch_failed"
    code = 7


class SessionUnavailableError(NegotiationError):
    """Raised when the request has no session to persist the negotiation in."""

    error_code = "session_unavailable"
    code = 9


class TransportError(Exception):
    """
    Raised by OAuthTransport adapters on network failure or non-2xx status.

    Translated into negotiation errors by the exchange calls; never reaches
    the HTTP layer directly.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
