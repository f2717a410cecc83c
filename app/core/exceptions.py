import enum
from typing import Optional

class StreamError(Exception):
    """Base class for every error raised by the stream pipeline."""

class SelectionValidationError(StreamError):
    """A playback selection is missing a required field or has a bad value."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    def as_detail(self) -> dict:
        return {"field": self.field, "message": self.message}

class AuthErrorKind(str, enum.Enum):
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"

class AuthError(StreamError):
    """
    A token failed verification.
    The kind is for logs only; clients always see one opaque outcome.
    """

    def __init__(self, kind: AuthErrorKind, reason: Optional[str] = None):
        super().__init__(reason or kind.value)
        self.kind = kind

class InvalidToken(StreamError):
    pass

class OriginUnavailable(StreamError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

class PlaybackStalled(StreamError):
    """The media source cannot make progress until it gets a fresh URL."""
