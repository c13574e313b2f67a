"""
FastAPI application negotiating OAuth2 tokens.

This module wires dependencies and configures the application.
Negotiation logic is in negotiator/core, adapters in negotiator/infrastructure.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

# Configure logging FIRST, before other local imports
from negotiator.logging_config import setup_global_logging

setup_global_logging()

# Now import other modules (they will use the configured logging)
from fastapi import FastAPI, Request, status  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from starlette.middleware.sessions import SessionMiddleware  # noqa: E402

from negotiator.core.exceptions import (  # noqa: E402
    NegotiationError,
    ProfileFetchFailedError,
    StateMismatchError,
    TokenNotReceivedError,
    UnexpectedResponseError,
)
from negotiator.infrastructure.firestore import close_firestore_client  # noqa: E402
from negotiator.oauth import router as oauth_router  # noqa: E402

logger = logging.getLogger(__name__)


# ============================================================================
# Application Lifecycle
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Dependencies are lazy-loaded; shutdown closes the Firestore client if
    one was opened.
    """
    logger.info("Application starting up...")
    yield
    logger.info("Shutting down application...")
    try:
        close_firestore_client()
    except Exception as e:
        logger.warning(f"Error closing Firestore client during shutdown: {e}")


app = FastAPI(
    title="OAuth Negotiator",
    description="Negotiates OAuth2 identity and API tokens with an authorization server",
    version="1.0.0",
    lifespan=lifespan,
)

# Session middleware carries the visitor's negotiation id
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY")
if not SESSION_SECRET_KEY:
    raise ValueError("SESSION_SECRET_KEY is not set in the environment.")
app.add_middleware(
    SessionMiddleware,
    secret_key=SESSION_SECRET_KEY,
    https_only=os.getenv("SESSION_HTTPS_ONLY", "false").lower() == "true",
)


# ============================================================================
# Centralized Exception Handlers
# ============================================================================


def negotiation_error_status(exc: NegotiationError) -> int:
    """Map a negotiation error to the HTTP status returned to the browser."""
    if isinstance(exc, StateMismatchError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, UnexpectedResponseError):
        if exc.upstream:
            return status.HTTP_502_BAD_GATEWAY
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, (TokenNotReceivedError, ProfileFetchFailedError)):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(NegotiationError)
async def negotiation_error_handler(request: Request, exc: NegotiationError):
    """
    Handle negotiation errors.

    Configuration problems are server errors; forged or malformed callbacks
    are client errors; unusable OAuth/API server answers are gateway errors.
    """
    status_code = negotiation_error_status(exc)
    if status_code >= 500:
        logger.error(
            f"Negotiation error: {exc}",
            extra={"error": exc.error_code, "path": request.url.path},
        )
    else:
        logger.warning(
            f"Rejected negotiation request: {exc}",
            extra={"error": exc.error_code, "path": request.url.path},
        )

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "error": exc.error_code,
            "message": str(exc),
        },
    )


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "oauth-negotiator",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/health")
async def health():
    """Health check endpoint for Cloud Run."""
    return {"status": "healthy"}


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(oauth_router.router)


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
