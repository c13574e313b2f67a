"""
Firestore client configuration and initialization.

Provides the async Firestore client used by FirestoreNegotiationStore:
- Auto-detects emulator via FIRESTORE_EMULATOR_HOST
- Uses Application Default Credentials in production
"""

import logging
import os
from typing import Optional

from google.cloud.firestore_v1 import AsyncClient

logger = logging.getLogger(__name__)

# Singleton client instance
_firestore_client: Optional[AsyncClient] = None


def _project_id() -> Optional[str]:
    return os.getenv("GCP_PROJECT_ID") or os.getenv("GOOGLE_CLOUD_PROJECT")


def get_firestore_client() -> AsyncClient:
    """
    Get the Firestore async client singleton.

    Raises:
        ValueError: If neither GCP_PROJECT_ID nor GOOGLE_CLOUD_PROJECT is set
    """
    global _firestore_client

    if _firestore_client is not None:
        return _firestore_client

    project_id = _project_id()
    if not project_id:
        raise ValueError(
            "GCP_PROJECT_ID or GOOGLE_CLOUD_PROJECT must be set for Firestore"
        )

    # The client picks up FIRESTORE_EMULATOR_HOST by itself
    _firestore_client = AsyncClient(project=project_id)

    emulator_host = os.getenv("FIRESTORE_EMULATOR_HOST")
    if emulator_host:
        logger.info(f"Using Firestore emulator at {emulator_host}")
    else:
        logger.info(f"Firestore client initialized for project: {project_id}")

    return _firestore_client


def close_firestore_client() -> None:
    """
    Close the Firestore client connection, if one was opened.

    Called during application shutdown.
    """
    global _firestore_client

    if _firestore_client is not None:
        _firestore_client.close()
        _firestore_client = None
        logger.info("Firestore client closed")
