"""Symmetric encryption for tenant secrets stored in the database."""

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from pagebuilder.core.config import settings
from pagebuilder.core.errors import PageBuilderError


def _fernet() -> Fernet:
    """Fernet from CREDENTIAL_ENCRYPTION_KEY, else derived from JWT_SECRET."""
    if settings.credential_encryption_key:
        return Fernet(settings.credential_encryption_key.encode())
    if settings.jwt_secret:
        digest = hashlib.sha256(settings.jwt_secret.encode()).digest()
        return Fernet(base64.urlsafe_b64encode(digest))
    raise PageBuilderError("Credential encryption is not configured")


def encrypt_secret(value: str) -> str:
    return _fernet().encrypt(value.encode()).decode()


def decrypt_secret(encrypted_value: str) -> str | None:
    """Plain value, or None when the ciphertext was made with another key."""
    try:
        return _fernet().decrypt(encrypted_value.encode()).decode()
    except InvalidToken:
        return None
