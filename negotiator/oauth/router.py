"""
OAuth negotiation API endpoints.

- GET /oauth/{scope} - Start, continue or report on a negotiation

The same URL serves as the default redirect URI (the OAuth server's
callback) and the default landing page (where the report is read), so a
browser only ever needs to be sent to it once.
"""

from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from negotiator.core.domain import NegotiationReport, RedirectTo
from negotiator.oauth.dependencies import (
    Context,
    NegotiatorDep,
    SessionId,
    Settings,
    ValidScope,
)


router = APIRouter(prefix="/oauth", tags=["oauth"])


class NegotiationReportResponse(BaseModel):
    """Response for a finished (or not yet finished) negotiation."""

    ready: bool = Field(description="Whether the negotiation has finished")
    identity_token: bool = Field(default=False)
    api_token: bool = Field(default=False)
    token: str | None = Field(default=None, description="Negotiated access token")
    user: dict[str, Any] | None = Field(default=None, description="User profile")
    error: str | None = Field(default=None, description="Why the negotiation failed")

    @classmethod
    def from_report(cls, report: NegotiationReport) -> "NegotiationReportResponse":
        if not report.is_ready():
            return cls(ready=False)
        return cls(
            ready=True,
            identity_token=report.is_identity_token(),
            api_token=report.is_api_token(),
            token=report.token,
            user=report.user,
            error=report.error,
        )


@router.get("/{scope}", response_model=None)
async def negotiate(
    scope: ValidScope,
    session_id: SessionId,
    context: Context,
    settings: Settings,
    negotiator: NegotiatorDep,
) -> RedirectResponse | NegotiationReportResponse:
    """
    Perform the next step of the visitor's OAuth negotiation.

    Args:
        scope: Token scope to request if a negotiation starts (identity, api)
        session_id: Visitor's negotiation id
        context: Current request (query carries state/code/error on callback)
        settings: Negotiator settings
        negotiator: Negotiation state machine

    Returns:
        Redirect to the OAuth server or landing page, or the negotiation report

    Raises:
        NegotiationError: Handled centrally in main.py
    """
    result = await negotiator.negotiate(session_id, context, settings.to_params(scope))

    if isinstance(result, RedirectTo):
        return RedirectResponse(url=result.url, status_code=status.HTTP_302_FOUND)

    return NegotiationReportResponse.from_report(result)
