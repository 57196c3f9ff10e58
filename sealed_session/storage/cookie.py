import logging
from typing import Any, Optional, Union
from collections.abc import Mapping

from ..cookies import CookieLike, CookieOverrides
from ..data import SessionData
from ..exceptions import CookieTooLargeError
from .base import BaseSessionStorage, destroy_options, ensure_cookie

logger = logging.getLogger("sealed_session")

# browsers reject cookies larger than this
MAX_COOKIE_SIZE = 4096


class CookieSessionStorage(BaseSessionStorage):
    """Session storage keeping all session data inside the cookie.

    No server-side state is needed, but data is limited to what fits in a
    single cookie. Use an encrypted cookie when the data is confidential.
    """

    async def get_session(
        self,
        cookie_header: Optional[str],
        options: Optional[Mapping[str, Any]] = None,
    ) -> SessionData:
        data = await self.cookie.parse(cookie_header, options) if cookie_header else None
        if not isinstance(data, Mapping):
            return SessionData()
        return SessionData(data)

    async def commit_session(
        self, session: SessionData, options: CookieOverrides = None
    ) -> str:
        serialized = await self.cookie.serialize(dict(session.data), options)
        if len(serialized) > MAX_COOKIE_SIZE:
            logger.error(
                "Cookie %s too large: %d characters", self.cookie.name, len(serialized)
            )
            raise CookieTooLargeError(len(serialized))
        session.is_changed = False
        return serialized

    async def destroy_session(
        self, session: SessionData, options: CookieOverrides = None
    ) -> str:
        return await self.cookie.serialize("", destroy_options(options))


def create_cookie_session_storage(
    cookie: Union[CookieLike, Mapping[str, Any], None] = None,
) -> CookieSessionStorage:
    """Create a SessionStorage that stores all session data in the cookie."""
    return CookieSessionStorage(ensure_cookie(cookie))
