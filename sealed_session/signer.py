"""
Cookie signer — HMAC-SHA256 over an opaque string.

Token format:
    <value>.<base64(HMAC-SHA256(secret, value)) without '=' padding>

Signing and verification build separate HMAC contexts from the same
secret; a verify context is only ever finished with ``verify()``, which
compares in constant time.
"""
import base64
import binascii
from typing import Literal, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

Secret = Union[str, bytes]


def _create_key(secret: Secret) -> hmac.HMAC:
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return hmac.HMAC(secret, hashes.SHA256())


def _decode_hash(value: str) -> bytes:
    padding = "=" * ((4 - len(value) % 4) % 4)
    return base64.b64decode((value + padding).encode("ascii"), validate=True)


def sign(value: str, secret: Secret) -> str:
    """Append an HMAC-SHA256 signature of ``value`` to ``value``."""
    key = _create_key(secret)
    key.update(value.encode("utf-8"))
    signature = base64.b64encode(key.finalize()).decode("ascii").rstrip("=")
    return f"{value}.{signature}"


def unsign(token: str, secret: Secret) -> Union[str, Literal[False]]:
    """Return the signed value, or ``False`` if the token does not verify.

    Malformed tokens (no separator, empty value or hash, bad base64) are
    reported as ``False`` too.
    """
    value, sep, hash_ = token.rpartition(".")
    if not sep or not value or not hash_:
        return False
    try:
        signature = _decode_hash(hash_)
    except (binascii.Error, UnicodeEncodeError):
        return False
    key = _create_key(secret)
    key.update(value.encode("utf-8"))
    try:
        key.verify(signature)
    except InvalidSignature:
        return False
    return value
