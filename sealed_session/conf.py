"""
Session Configuration — Secrets loading and validated settings.

Reads settings from environment variables:
    SESSION_COOKIE_NAME = <cookie name>
    SESSION_SECRETS = <comma-separated signing secrets, newest first>
    SESSION_ENCRYPTION_KEY = <base64-encoded 16, 24 or 32-byte key>
    SESSION_KV_URL = memory://<name> | redis://host:port/db
    SESSION_MAX_AGE = <seconds>
    SESSION_COOKIE_SECURE = true|false

Security Note:
    Never log secrets or key material. Only log cookie names and counts.
"""
import os
import base64
import binascii
import logging
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from .cookies import Cookie, CookieOptions, SamesiteOptions
from .crypto import KEY_LENGTH, derive_key, generate_key
from .encrypted import EncryptedCookie

logger = logging.getLogger("sealed_session")

DEFAULT_COOKIE_NAME = "__session"
DEFAULT_KV_URL = "memory://default"
DEFAULT_ID_ATTEMPTS = 1000

_TRUE_VALUES = ("1", "true", "yes", "on")


def default_kv_url() -> str:
    """Return the KV store URL used when none is given explicitly."""
    return os.environ.get("SESSION_KV_URL", DEFAULT_KV_URL)


def load_secrets() -> list[str]:
    """Load signing secrets from SESSION_SECRETS.

    Returns:
        Secrets in order, newest first. Empty if the variable is unset.
    """
    raw = os.environ.get("SESSION_SECRETS", "")
    secrets = [s.strip() for s in raw.split(",") if s.strip()]
    logger.debug("Loaded %d cookie signing secret(s)", len(secrets))
    return secrets


def load_encryption_key() -> Optional[bytes]:
    """Load the cookie encryption key from SESSION_ENCRYPTION_KEY.

    Returns:
        Raw key bytes, or None if the variable is unset.

    Raises:
        ValueError: If the value is not valid base64.
    """
    raw = os.environ.get("SESSION_ENCRYPTION_KEY")
    if not raw:
        return None
    try:
        return base64.b64decode(raw, validate=True)
    except binascii.Error as err:
        raise ValueError(
            "SESSION_ENCRYPTION_KEY must be base64-encoded"
        ) from err


def generate_encryption_key() -> str:
    """Generate a random 32-byte key and return it as base64 string.

    This is a utility for operators to generate new keys.

    Returns:
        Base64-encoded 32-byte key string.
    """
    return base64.b64encode(generate_key(KEY_LENGTH)).decode("ascii")


class SessionConfig(BaseModel):
    """Validated session configuration."""

    cookie_name: str = Field(default=DEFAULT_COOKIE_NAME, min_length=1)
    secrets: list[str] = Field(default_factory=list)
    encryption_key: Optional[bytes] = None
    kv_url: str = Field(default=DEFAULT_KV_URL)
    max_age: Optional[int] = Field(default=None, ge=0)
    secure: bool = False
    httponly: bool = True
    samesite: SamesiteOptions = "lax"
    domain: Optional[str] = None
    path: str = "/"
    id_attempts: Optional[int] = Field(default=DEFAULT_ID_ATTEMPTS, ge=1)

    @field_validator("encryption_key")
    @classmethod
    def validate_key_length(cls, v: Optional[bytes]) -> Optional[bytes]:
        """AES-GCM accepts 16, 24 or 32-byte keys."""
        if v is not None and len(v) not in (16, 24, 32):
            raise ValueError(
                f"encryption_key must be 16, 24 or 32 bytes, got {len(v)}"
            )
        return v

    @field_validator("kv_url")
    @classmethod
    def validate_kv_url(cls, v: str) -> str:
        """Validate the KV backend scheme is supported."""
        if not v.startswith(("memory://", "redis://", "rediss://", "unix://")):
            raise ValueError(f"Unsupported KV backend: {v}")
        return v

    def cookie_options(self) -> CookieOptions:
        return CookieOptions(
            domain=self.domain,
            path=self.path,
            max_age=self.max_age,
            httponly=self.httponly,
            secure=self.secure,
            samesite=self.samesite,
        )

    def build_cookie(self) -> Union[Cookie, EncryptedCookie]:
        """Build the session cookie described by this configuration.

        Returns an EncryptedCookie when an encryption key is configured,
        a signed Cookie otherwise.
        """
        if self.encryption_key is not None:
            return EncryptedCookie(
                self.cookie_name,
                derive_key(self.encryption_key),
                self.cookie_options(),
                secrets=self.secrets,
            )
        return Cookie(
            self.cookie_name, self.cookie_options(), secrets=self.secrets
        )

    def build_storage(self):
        """Build a KV session storage from this configuration.

        Session ids travel in ``build_cookie()``; data is kept in the engine
        at ``kv_url`` and id allocation gives up after ``id_attempts``.
        """
        # storage imports this module for its defaults
        from .storage.kv import create_kv_session_storage

        return create_kv_session_storage(
            self.build_cookie(), self.kv_url, max_attempts=self.id_attempts
        )

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Create SessionConfig by loading values from environment.

        Returns:
            Populated SessionConfig instance.
        """
        max_age = os.environ.get("SESSION_MAX_AGE")
        secure = os.environ.get("SESSION_COOKIE_SECURE", "false")
        return cls(
            cookie_name=os.environ.get("SESSION_COOKIE_NAME", DEFAULT_COOKIE_NAME),
            secrets=load_secrets(),
            encryption_key=load_encryption_key(),
            kv_url=default_kv_url(),
            max_age=int(max_age) if max_age else None,
            secure=secure.lower() in _TRUE_VALUES,
        )
