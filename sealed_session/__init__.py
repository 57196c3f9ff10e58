"""Sealed Session — signed and encrypted cookies with pluggable session storage.

Security Note (Threat Model):
    Cookie values are confidential only when an ``EncryptedCookie`` is used;
    a signed ``Cookie`` is tamper-evident but readable by the client.
    Decrypted values exist in process memory during the request.
"""

from .version import __version__
from .exceptions import (
    SessionError,
    KeyImportError,
    AuthenticationError,
    MalformedPayloadError,
    ExhaustedRetriesError,
    CookieTooLargeError,
)
from .crypto import Envelope, SymmetricKey, derive_key, encrypt, decrypt, generate_key
from .signer import sign, unsign
from .cookies import Cookie, CookieOptions, create_cookie, is_cookie
from .encrypted import EncryptedCookie, create_encrypted_cookie
from .conf import SessionConfig, generate_encryption_key
from .data import SessionData
from .storage import (
    SessionIdStorage,
    SessionStorage,
    create_session_storage,
    create_cookie_session_storage,
    create_kv_session_storage,
    create_memory_session_storage,
)
from .middleware import session_middleware, get_session

__all__ = [
    "__version__",
    "SessionError",
    "KeyImportError",
    "AuthenticationError",
    "MalformedPayloadError",
    "ExhaustedRetriesError",
    "CookieTooLargeError",
    "Envelope",
    "SymmetricKey",
    "derive_key",
    "encrypt",
    "decrypt",
    "generate_key",
    "sign",
    "unsign",
    "Cookie",
    "CookieOptions",
    "create_cookie",
    "is_cookie",
    "EncryptedCookie",
    "create_encrypted_cookie",
    "SessionConfig",
    "generate_encryption_key",
    "SessionData",
    "SessionIdStorage",
    "SessionStorage",
    "create_session_storage",
    "create_cookie_session_storage",
    "create_kv_session_storage",
    "create_memory_session_storage",
    "session_middleware",
    "get_session",
]
