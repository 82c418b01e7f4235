# Overview: At-rest encoding of credential secrets.

"""
Secret Codec

Secrets are encrypted with Fernet (AES-128-CBC + HMAC-SHA256) before they
are written and decrypted when read. Tampered, truncated or foreign values
fail authentication and come back as DecodeFailure instead of raising, so a
single corrupt row never aborts a listing.

KEYS:
- Supplied by the deployment (VAULT_ENCRYPTION_KEYS), never hard-coded
- The first key encrypts; every configured key is tried on decrypt, which
  lets operators roll a new key in front of the old one
- The empty string is stored as the empty string (no token)
"""

from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

from ..outcomes import DecodeFailure

logger = logging.getLogger(__name__)


class SecretCodecError(Exception):
    """Raised when the codec cannot be built from its configuration."""
    pass


def generate_key() -> str:
    """Fresh Fernet key (urlsafe base64, 32 bytes of entropy)."""
    return Fernet.generate_key().decode("ascii")


class SecretCodec:
    def __init__(self, keys: list[str] | tuple[str, ...]):
        if not keys:
            raise SecretCodecError("At least one encryption key is required")
        try:
            self._fernet = MultiFernet([Fernet(key) for key in keys])
        except (ValueError, TypeError) as exc:
            raise SecretCodecError(f"Invalid encryption key: {exc}") from exc

    @classmethod
    def from_config(cls, config) -> "SecretCodec":
        """
        Build the codec from a Flask config mapping.

        Without VAULT_ENCRYPTION_KEYS a throwaway key is generated: fine for
        local development, fatal for real data (nothing stored with it can be
        read after a restart).
        """
        keys = list(config.get("VAULT_ENCRYPTION_KEYS") or [])
        if not keys:
            logger.warning(
                "No VAULT_ENCRYPTION_KEYS configured, generating temporary key (NOT for production!)"
            )
            keys = [generate_key()]
        return cls(keys)

    def encode(self, plain: str) -> str:
        if not plain:
            return ""
        return self._fernet.encrypt(plain.encode("utf-8")).decode("ascii")

    def decode(self, stored: str | None) -> str | DecodeFailure:
        if not stored:
            return ""
        try:
            token = stored.encode("ascii")
        except UnicodeEncodeError:
            logger.warning("Stored secret is not a valid token")
            return DecodeFailure("Stored value is not a valid token")
        try:
            return self._fernet.decrypt(token).decode("utf-8")
        except InvalidToken:
            logger.warning("Stored secret failed authentication or was encrypted with an unknown key")
            return DecodeFailure("Invalid or unauthenticated token")
        except UnicodeDecodeError:
            logger.warning("Decrypted secret is not valid UTF-8")
            return DecodeFailure("Decrypted value is not valid text")


def get_codec() -> SecretCodec:
    """Codec of the current Flask application (built in create_app)."""
    from flask import current_app

    return current_app.extensions["secret_codec"]
