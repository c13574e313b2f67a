"""
Negotiation store implementations and selection.

Includes an in-memory implementation for testing and development.
Firestore implementation is available when configured.
"""

import logging
import os

from negotiator.core.domain import NegotiationState
from negotiator.core.ports import NegotiationStore


logger = logging.getLogger(__name__)


def _is_firestore_configured() -> bool:
    """Check if Firestore is configured via environment."""
    project_id = os.getenv("GCP_PROJECT_ID") or os.getenv("GOOGLE_CLOUD_PROJECT")
    encryption_key = os.getenv("TOKEN_ENCRYPTION_KEY")
    return project_id is not None and encryption_key is not None


class InMemoryNegotiationStore(NegotiationStore):
    """
    In-memory implementation of NegotiationStore.

    Useful for testing and single-process development.
    Data is lost when the application restarts.
    """

    def __init__(self):
        self._negotiations: dict[str, NegotiationState] = {}

    async def get(self, session_id: str) -> NegotiationState | None:
        state = self._negotiations.get(session_id)
        if state is None:
            return None
        # Callers mutate the state they get; only put() may change the store
        return state.model_copy(deep=True)

    async def put(self, session_id: str, state: NegotiationState) -> None:
        self._negotiations[session_id] = state.model_copy(deep=True)
        logger.debug(f"Stored negotiation in phase {state.phase.value}")

    async def clear(self, session_id: str) -> None:
        if self._negotiations.pop(session_id, None) is not None:
            logger.debug("Cleared negotiation")

    def __len__(self) -> int:
        return len(self._negotiations)


# Singleton instance for dependency injection
_store: NegotiationStore | None = None


def get_negotiation_store() -> NegotiationStore:
    """
    Get the negotiation store singleton.

    Returns FirestoreNegotiationStore if Firestore is configured
    (GCP_PROJECT_ID and TOKEN_ENCRYPTION_KEY set).
    Falls back to InMemoryNegotiationStore for testing/development.

    Can be overridden via set_negotiation_store for testing.
    """
    global _store
    if _store is None:
        if _is_firestore_configured():
            try:
                from negotiator.infrastructure.firestore import get_firestore_client
                from negotiator.infrastructure.firestore_store import (
                    FirestoreNegotiationStore,
                )

                _store = FirestoreNegotiationStore(get_firestore_client())
                logger.info("Using Firestore negotiation store")
            except Exception as e:
                logger.warning(
                    f"Failed to initialize Firestore, falling back to in-memory: {e}"
                )
                _store = InMemoryNegotiationStore()
        else:
            logger.info("Using in-memory negotiation store")
            _store = InMemoryNegotiationStore()
    return _store


def set_negotiation_store(store: NegotiationStore) -> None:
    """Set the negotiation store implementation."""
    global _store
    _store = store


def reset_negotiation_store() -> None:
    """
    Reset the negotiation store singleton.

    Useful for testing to ensure clean state between tests.
    """
    global _store
    _store = None
