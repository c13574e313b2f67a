"""
Secret encryption for negotiation storage.

Uses Fernet symmetric encryption from the cryptography library.
Client secrets and access tokens are encrypted before they are written to
Firestore and decrypted when a negotiation is loaded.
"""

import logging
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

ENCRYPTION_KEY_ENV = "TOKEN_ENCRYPTION_KEY"

# Singleton Fernet instance
_fernet: Optional[Fernet] = None


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""

    pass


def _get_fernet() -> Fernet:
    """
    Get or create the Fernet instance from TOKEN_ENCRYPTION_KEY.

    The key is a 32-byte URL-safe base64-encoded string
    (see generate_encryption_key).

    Raises:
        ValueError: If TOKEN_ENCRYPTION_KEY is not set or invalid
    """
    global _fernet

    if _fernet is not None:
        return _fernet

    key = os.getenv(ENCRYPTION_KEY_ENV)
    if not key:
        raise ValueError(
            f"{ENCRYPTION_KEY_ENV} environment variable must be set to store negotiations"
        )

    try:
        _fernet = Fernet(key.encode())
    except Exception as e:
        raise ValueError(f"Invalid {ENCRYPTION_KEY_ENV}: {e}")

    logger.info("Negotiation secret encryption initialized")
    return _fernet


def encrypt_secret(plaintext: Optional[str]) -> Optional[str]:
    """
    Encrypt a secret value; None passes through.

    Raises:
        ValueError: If encryption is not configured
        EncryptionError: If encryption fails
    """
    if plaintext is None:
        return None

    fernet = _get_fernet()
    try:
        return fernet.encrypt(plaintext.encode()).decode()
    except Exception as e:
        logger.error(f"Failed to encrypt secret: {e}")
        raise EncryptionError(f"Encryption failed: {e}")


def decrypt_secret(ciphertext: Optional[str]) -> Optional[str]:
    """
    Decrypt a value produced by encrypt_secret; None passes through.

    Raises:
        ValueError: If encryption is not configured
        EncryptionError: If the value was encrypted with another key or is corrupted
    """
    if ciphertext is None:
        return None

    fernet = _get_fernet()
    try:
        return fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        logger.error("Failed to decrypt secret: invalid token or key")
        raise EncryptionError("Decryption failed: invalid token or key mismatch")


def generate_encryption_key() -> str:
    """Generate a new key suitable for TOKEN_ENCRYPTION_KEY."""
    return Fernet.generate_key().decode()


def reset_encryption() -> None:
    """
    Reset the encryption singleton.

    Useful for testing to ensure clean state between tests.
    """
    global _fernet
    _fernet = None
