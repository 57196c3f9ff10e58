"""
Signed cookies.

A ``Cookie`` turns any JSON-serializable value into a ``Set-Cookie`` header
value and back:

    value -> JSON -> base64 -> sign with secrets[0] -> URL-encode -> name=<payload>; attrs

Parsing accepts either a ``Cookie`` request header or a ``Set-Cookie``
string. Every configured secret is tried in turn, so secrets can be rotated
by prepending a new one.
"""
import base64
import binascii
import logging
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from http.cookies import Morsel
from typing import Any, Literal, Optional, Protocol, Union, runtime_checkable
from collections.abc import Callable, Iterable, Mapping
from urllib.parse import quote, unquote

import orjson
from pydantic import BaseModel, Field

from .signer import Secret, sign, unsign

logger = logging.getLogger("sealed_session")

SamesiteOptions = Literal["lax", "strict", "none"]

# characters encodeURIComponent leaves alone beyond quote()'s defaults
_URI_SAFE = "!~*'()"


class CookieOptions(BaseModel):
    """Attributes written after ``name=value`` in the Set-Cookie header."""

    domain: Optional[str] = Field(
        default=None,
        description="Domain for which the cookie is valid.",
    )
    path: Optional[str] = Field(
        default="/",
        description="Path for which the cookie is valid.",
    )
    expires: Optional[datetime] = Field(
        default=None,
        description="Absolute expiration date of the cookie.",
    )
    max_age: Optional[int] = Field(
        default=None,
        description="Lifetime of the cookie in seconds. Takes precedence over expires.",
    )
    httponly: bool = Field(
        default=False,
        description="Whether the cookie should be inaccessible to JavaScript.",
    )
    secure: bool = Field(
        default=False,
        description="Whether the cookie should only be sent over HTTPS.",
    )
    samesite: Optional[SamesiteOptions] = Field(
        default="lax",
        description="SameSite attribute. Can be 'lax', 'strict' or 'none'.",
    )
    partitioned: bool = Field(
        default=False,
        description="Whether the cookie uses partitioned storage (CHIPS).",
    )

    def merge(
        self, overrides: Union["CookieOptions", Mapping[str, Any], None]
    ) -> "CookieOptions":
        """Return a copy with ``overrides`` applied on top."""
        if not overrides:
            return self
        if isinstance(overrides, CookieOptions):
            overrides = overrides.model_dump(exclude_unset=True)
        return CookieOptions.model_validate(
            {**self.model_dump(), **dict(overrides)}
        )


CookieOverrides = Union[CookieOptions, Mapping[str, Any], None]


@runtime_checkable
class CookieLike(Protocol):
    """Interface shared by plain, signed and encrypted cookies."""

    @property
    def name(self) -> str: ...

    @property
    def is_signed(self) -> bool: ...

    @property
    def expires(self) -> Optional[datetime]: ...

    async def serialize(self, value: Any, options: CookieOverrides = None) -> str: ...

    async def parse(
        self, header: Optional[str], options: Optional[Mapping[str, Any]] = None
    ) -> Any: ...


def is_cookie(obj: Any) -> bool:
    """Whether ``obj`` implements the cookie interface."""
    return isinstance(obj, CookieLike)


# ---------------------------------------------------------------------------
# Header helpers
# ---------------------------------------------------------------------------

def parse_cookie_header(
    header: str, decode: Callable[[str], str] = unquote
) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    The first occurrence of a name wins. Returns an empty dict for empty
    headers.
    """
    cookies: dict[str, str] = {}
    if not header:
        return cookies
    for pair in header.split(";"):
        key, sep, value = pair.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in cookies:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        try:
            cookies[key] = decode(value)
        except ValueError:
            cookies[key] = value
    return cookies


def format_cookie_header(name: str, value: str, options: CookieOptions) -> str:
    """Format a ``Set-Cookie`` header value (without the header name)."""
    morsel: Morsel = Morsel()
    morsel.set(name, value, quote(value, safe=_URI_SAFE))
    if options.domain:
        morsel["domain"] = options.domain
    if options.path:
        morsel["path"] = options.path
    if options.expires is not None:
        morsel["expires"] = format_datetime(
            options.expires.astimezone(timezone.utc), usegmt=True
        )
    if options.max_age is not None:
        morsel["max-age"] = str(int(options.max_age))
    if options.httponly:
        morsel["httponly"] = True
    if options.secure:
        morsel["secure"] = True
    if options.samesite:
        morsel["samesite"] = options.samesite.capitalize()
    header = morsel.OutputString()
    if options.partitioned:
        header += "; Partitioned"
    return header


# ---------------------------------------------------------------------------
# Payload encoding
# ---------------------------------------------------------------------------

def encode_data(value: Any) -> str:
    return base64.b64encode(orjson.dumps(value)).decode("ascii")


def decode_data(value: str) -> Any:
    """Decode a cookie payload; an undecodable payload yields ``{}``."""
    try:
        return orjson.loads(base64.b64decode(value.encode("ascii"), validate=True))
    except (binascii.Error, UnicodeEncodeError, orjson.JSONDecodeError):
        return {}


class Cookie:
    """An HTTP cookie, signed when ``secrets`` are given.

    Args:
        name: Cookie name.
        options: Default attributes for every serialization.
        secrets: Signing secrets. The first one signs; all of them verify.
    """

    def __init__(
        self,
        name: str,
        options: CookieOverrides = None,
        *,
        secrets: Iterable[Secret] = (),
    ) -> None:
        self._name = name
        self._options = CookieOptions().merge(options)
        self._secrets: tuple[Secret, ...] = tuple(secrets)

    def __repr__(self) -> str:
        return f"<Cookie name={self._name!r} signed={self.is_signed}>"

    @property
    def name(self) -> str:
        return self._name

    @property
    def options(self) -> CookieOptions:
        return self._options

    @property
    def is_signed(self) -> bool:
        return bool(self._secrets)

    @property
    def expires(self) -> Optional[datetime]:
        """Expiration date derived from ``max_age`` or ``expires``."""
        if self._options.max_age is not None:
            return datetime.now(timezone.utc) + timedelta(
                seconds=self._options.max_age
            )
        return self._options.expires

    def _encode_value(self, value: Any) -> str:
        encoded = encode_data(value)
        if self._secrets:
            encoded = sign(encoded, self._secrets[0])
        return encoded

    def _decode_value(self, value: str) -> Any:
        if not self._secrets:
            return decode_data(value)
        for secret in self._secrets:
            unsigned = unsign(value, secret)
            if unsigned is not False:
                return decode_data(unsigned)
        logger.debug("Cookie %s: signature did not verify", self._name)
        return None

    async def serialize(self, value: Any, options: CookieOverrides = None) -> str:
        """Serialize ``value`` into a Set-Cookie header value."""
        encoded = "" if value == "" else self._encode_value(value)
        return format_cookie_header(self._name, encoded, self._options.merge(options))

    async def parse(
        self, header: Optional[str], options: Optional[Mapping[str, Any]] = None
    ) -> Any:
        """Parse a Cookie header and return the value of this cookie.

        Returns ``None`` when the header is empty, lacks this cookie or the
        signature does not verify.
        """
        if not header:
            return None
        decode = (options or {}).get("decode", unquote)
        cookies = parse_cookie_header(header, decode)
        if self._name not in cookies:
            return None
        value = cookies[self._name]
        if value == "":
            return ""
        return self._decode_value(value)


def create_cookie(
    name: str,
    options: CookieOverrides = None,
    *,
    secrets: Iterable[Secret] = (),
) -> Cookie:
    """Create a new ``Cookie``."""
    return Cookie(name, options, secrets=secrets)
