"""
Cookie Crypto Core — Key import and AES-GCM envelope encryption.

Every encryption produces an envelope:
    {"result": base64(ciphertext + GCM tag), "iv": base64(nonce 12B)}

Security Note:
    Never log plaintext, ciphertext or key material.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Union
from collections.abc import Mapping

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import AuthenticationError, KeyImportError, MalformedPayloadError

logger = logging.getLogger("sealed_session")

NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # AES-256


class SymmetricKey:
    """AES-GCM key usable for both encrypt and decrypt.

    Wraps the primitive so that raw key bytes are never exposed again
    after import. Instances are immutable.
    """

    __slots__ = ("_cipher", "_bits")

    def __init__(self, cipher: AESGCM, bits: int) -> None:
        object.__setattr__(self, "_cipher", cipher)
        object.__setattr__(self, "_bits", bits)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("SymmetricKey is immutable")

    @property
    def bits(self) -> int:
        return self._bits

    def __repr__(self) -> str:
        return f"<SymmetricKey AES-GCM-{self._bits}>"


@dataclass(frozen=True)
class Envelope:
    """Result of one authenticated encryption."""

    result: str
    iv: str

    def to_dict(self) -> dict[str, str]:
        return {"result": self.result, "iv": self.iv}

    @classmethod
    def from_mapping(cls, value: Any) -> "Envelope":
        """Build an Envelope from a decoded cookie payload.

        Raises:
            MalformedPayloadError: If value is not ``{result: str, iv: str}``.
        """
        if not isinstance(value, Mapping):
            raise MalformedPayloadError("Envelope must be a mapping")
        result = value.get("result")
        iv = value.get("iv")
        if not isinstance(result, str) or not isinstance(iv, str):
            raise MalformedPayloadError(
                "Envelope requires string 'result' and 'iv' fields"
            )
        return cls(result=result, iv=iv)


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as err:
        raise MalformedPayloadError(f"Invalid base64 payload: {err}") from err


# ---------------------------------------------------------------------------
# Key import
# ---------------------------------------------------------------------------

def derive_key(secret: Union[bytes, str]) -> SymmetricKey:
    """Import raw bytes as an AES-GCM key.

    The secret is used as-is: 16, 24 or 32 bytes give AES-128/192/256.
    Length is not pre-validated; the primitive decides.

    Args:
        secret: Raw key bytes, or a string encoded as UTF-8.

    Returns:
        SymmetricKey usable for ``encrypt`` and ``decrypt``.

    Raises:
        KeyImportError: If the primitive rejects the key material.
    """
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    try:
        cipher = AESGCM(secret)
    except (ValueError, TypeError) as err:
        raise KeyImportError(f"Cannot import AES-GCM key: {err}") from err
    return SymmetricKey(cipher, len(secret) * 8)


def generate_key(size: int = KEY_LENGTH) -> bytes:
    """Return ``size`` random bytes suitable for ``derive_key``."""
    return os.urandom(size)


# ---------------------------------------------------------------------------
# Envelope encryption
# ---------------------------------------------------------------------------

def encrypt(plaintext: str, key: SymmetricKey) -> Envelope:
    """Encrypt a string under a fresh random nonce.

    Args:
        plaintext: Text to encrypt (UTF-8 encoded before encryption).
        key: Key obtained from ``derive_key``.

    Returns:
        Envelope with base64 ciphertext+tag and base64 nonce.
    """
    nonce = os.urandom(NONCE_SIZE)
    ct = key._cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
    return Envelope(result=_b64encode(ct), iv=_b64encode(nonce))


def decrypt(envelope: Envelope, key: SymmetricKey) -> str:
    """Verify and decrypt an envelope.

    Args:
        envelope: Envelope produced by ``encrypt``.
        key: The key used for encryption.

    Returns:
        Decrypted text.

    Raises:
        AuthenticationError: Tag mismatch (tampering, wrong key or nonce).
        MalformedPayloadError: Undecodable base64 or unusable nonce.
    """
    ct = _b64decode(envelope.result)
    nonce = _b64decode(envelope.iv)
    try:
        plaintext = key._cipher.decrypt(nonce, ct, None)
    except InvalidTag as err:
        raise AuthenticationError("Envelope failed authentication") from err
    except ValueError as err:
        # nonce length outside what AES-GCM accepts
        raise MalformedPayloadError(f"Unusable envelope: {err}") from err
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as err:
        raise MalformedPayloadError("Decrypted payload is not UTF-8") from err
