"""Sealed Session exceptions.

Every error raised on purpose by this package derives from ``SessionError``,
so callers can map the whole family to a single HTTP response if they want.
Storage I/O errors (Redis connection failures and the like) are *not*
wrapped and reach the caller unmodified.
"""


class SessionError(Exception):
    """Base class for sealed_session errors."""


class KeyImportError(SessionError, ValueError):
    """Key material cannot be used as an AES-GCM key."""


class AuthenticationError(SessionError):
    """Ciphertext or signature did not verify.

    Raised on tampering, a wrong key or a corrupted transport. Never
    confused with "cookie absent", which is reported as ``None``.
    """


class MalformedPayloadError(SessionError, ValueError):
    """Structurally invalid payload (bad base64, missing envelope fields)."""


class ExhaustedRetriesError(SessionError, RuntimeError):
    """No free session id was found within the allowed attempts."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a unique session id after {attempts} attempts"
        )


class CookieTooLargeError(SessionError, ValueError):
    """Serialized cookie exceeds what browsers accept."""

    def __init__(self, length: int) -> None:
        self.length = length
        super().__init__(
            f"Cookie length will exceed browser maximum. Length: {length}"
        )
