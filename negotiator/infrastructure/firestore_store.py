"""
Firestore implementation of NegotiationStore.

Stores one negotiation document per session with encrypted secrets.
This is a driven adapter that implements the NegotiationStore interface.
"""

import logging
from typing import Any

from google.cloud.firestore_v1 import AsyncClient

from negotiator.core.domain import NegotiationState
from negotiator.infrastructure.encryption import decrypt_secret, encrypt_secret

logger = logging.getLogger(__name__)


class FirestoreNegotiationStore:
    """
    Firestore implementation of NegotiationStore.

    Data model:
    - Collection: negotiations
      - Document ID: {session_id}
      - Fields: phase, state_tokens, config (client_secret encrypted),
                token (encrypted), user, error, started_at, updated_at
    """

    COLLECTION = "negotiations"

    def __init__(self, db: AsyncClient):
        """
        Initialize Firestore store.

        Args:
            db: Firestore async client instance
        """
        self._db = db
        self._negotiations = db.collection(self.COLLECTION)

    async def get(self, session_id: str) -> NegotiationState | None:
        doc = await self._negotiations.document(session_id).get()

        if not doc.exists:
            return None

        data = doc.to_dict()
        if data is None:
            return None

        return self._from_document(data)

    async def put(self, session_id: str, state: NegotiationState) -> None:
        await self._negotiations.document(session_id).set(self._to_document(state))
        logger.debug(f"Stored negotiation in phase {state.phase.value}")

    async def clear(self, session_id: str) -> None:
        await self._negotiations.document(session_id).delete()
        logger.debug("Cleared negotiation")

    @staticmethod
    def _to_document(state: NegotiationState) -> dict[str, Any]:
        """Serialize a negotiation, encrypting the client secret and token."""
        data = state.model_dump(mode="json")
        data["config"]["client_secret"] = encrypt_secret(state.config.client_secret)
        data["token"] = encrypt_secret(state.token)
        # Timestamps stay native; a TTL policy on updated_at expires abandoned documents
        data["started_at"] = state.started_at
        data["updated_at"] = state.updated_at
        return data

    @staticmethod
    def _from_document(data: dict[str, Any]) -> NegotiationState:
        """Deserialize a negotiation document, decrypting its secrets."""
        config = dict(data["config"])
        config["client_secret"] = decrypt_secret(config.get("client_secret"))
        return NegotiationState.model_validate(
            {
                **data,
                "config": config,
                "token": decrypt_secret(data.get("token")),
            }
        )
