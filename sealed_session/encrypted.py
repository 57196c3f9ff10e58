"""
Encrypted cookies.

An ``EncryptedCookie`` keeps the interface of ``Cookie`` but makes the
payload confidential:

    value -> JSON -> AES-GCM envelope {result, iv} -> Cookie.serialize

On parse, an absent cookie, a bad signature or a payload that is not an
envelope all yield ``None``. An envelope that fails authentication raises
``AuthenticationError``: it was produced by someone holding the signing
secret but not the encryption key, which callers should hear about.
"""
import logging
from datetime import datetime
from typing import Any, Optional
from collections.abc import Iterable, Mapping

import orjson

from .cookies import Cookie, CookieOverrides
from .crypto import Envelope, SymmetricKey, decrypt, encrypt
from .exceptions import MalformedPayloadError
from .signer import Secret

logger = logging.getLogger("sealed_session")


class EncryptedCookie:
    """A cookie whose value is encrypted before being (optionally) signed.

    Args:
        name: Cookie name.
        key: Key from ``crypto.derive_key``; held by the caller.
        options: Default cookie attributes.
        secrets: Signing secrets for the outer cookie.
    """

    def __init__(
        self,
        name: str,
        key: SymmetricKey,
        options: CookieOverrides = None,
        *,
        secrets: Iterable[Secret] = (),
    ) -> None:
        self._cookie = Cookie(name, options, secrets=secrets)
        self._key = key

    def __repr__(self) -> str:
        return f"<EncryptedCookie name={self.name!r} signed={self.is_signed}>"

    @property
    def name(self) -> str:
        return self._cookie.name

    @property
    def is_signed(self) -> bool:
        return self._cookie.is_signed

    @property
    def expires(self) -> Optional[datetime]:
        return self._cookie.expires

    async def serialize(self, value: Any, options: CookieOverrides = None) -> str:
        """Encrypt ``value`` and serialize it into a Set-Cookie header value."""
        envelope = encrypt(orjson.dumps(value).decode("utf-8"), self._key)
        return await self._cookie.serialize(envelope.to_dict(), options)

    async def parse(
        self, header: Optional[str], options: Optional[Mapping[str, Any]] = None
    ) -> Any:
        """Return the decrypted value, or ``None`` if there is none.

        Raises:
            AuthenticationError: The envelope did not authenticate.
        """
        payload = await self._cookie.parse(header, options)
        if not payload:
            return None
        try:
            envelope = Envelope.from_mapping(payload)
        except MalformedPayloadError as err:
            logger.debug("Cookie %s: %s", self.name, err)
            return None
        try:
            plaintext = decrypt(envelope, self._key)
        except MalformedPayloadError as err:
            logger.debug("Cookie %s: %s", self.name, err)
            return None
        try:
            return orjson.loads(plaintext)
        except orjson.JSONDecodeError:
            return plaintext


def create_encrypted_cookie(
    name: str,
    key: SymmetricKey,
    options: CookieOverrides = None,
    *,
    secrets: Iterable[Secret] = (),
) -> EncryptedCookie:
    """Create a new ``EncryptedCookie``."""
    return EncryptedCookie(name, key, options, secrets=secrets)
