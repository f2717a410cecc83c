import time
from typing import Callable, Iterable, Optional

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
from jose.utils import base64url_decode, base64url_encode
from pydantic import ValidationError

from app.core.exceptions import AuthError, AuthErrorKind
from app.modules.tokens.schemas import Grant, StreamSelection

DEFAULT_LIFETIME_SECONDS = 6 * 60 * 60

def _is_canonical_segment(segment: str) -> bool:
    """
    True when the segment is the exact base64url text of its own bytes.
    Non-alphabet characters and non-zero trailing bits are rejected, so two
    different strings never decode to the same token.
    """
    try:
        raw = base64url_decode(segment.encode("ascii"))
    except (ValueError, UnicodeEncodeError):
        return False
    return base64url_encode(raw).decode("ascii") == segment

class TokenCodec:
    """
    Signs and verifies stream grants.
    This is the only place the shared secret is used. Grants are HS256 JWTs
    whose claims stay readable by the origin store (PyJWT compatible).
    """

    def __init__(
        self,
        secret: str,
        lifetime_seconds: int = DEFAULT_LIFETIME_SECONDS,
        algorithm: str = "HS256",
        previous_secrets: Optional[Iterable[str]] = None,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("A signing secret is required")
        if lifetime_seconds <= 0:
            raise ValueError("Token lifetime must be positive")
        self._secret = secret
        self._verify_keys = [secret] + [s for s in (previous_secrets or []) if s]
        self.lifetime_seconds = lifetime_seconds
        self.algorithm = algorithm
        self._clock = clock

    def now(self) -> int:
        return int(self._clock())

    def encode(self, selection: StreamSelection, issued_at: Optional[int] = None) -> str:
        if issued_at is None:
            issued_at = self.now()
        expires_at = issued_at + self.lifetime_seconds
        claims = {
            "id": selection.content_id,
            "mediaType": selection.media_kind.value,
            "qualityIndex": selection.quality_index,
            "timestamp": issued_at,
            "expiry": expires_at,
            "iat": issued_at,
            "exp": expires_at,
        }
        if selection.season_number is not None:
            claims["seasonNumber"] = selection.season_number
        if selection.episode_number is not None:
            claims["episodeNumber"] = selection.episode_number
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Grant:
        if not isinstance(token, str):
            raise AuthError(AuthErrorKind.MALFORMED, "token is not a string")
        segments = token.split(".")
        if len(segments) != 3 or not all(_is_canonical_segment(s) for s in segments):
            raise AuthError(AuthErrorKind.MALFORMED, "token is not a compact JWS")
        try:
            jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError as e:
            raise AuthError(AuthErrorKind.MALFORMED, str(e))

        payload = self._verify(token)

        try:
            grant = Grant(
                content_id=payload["id"],
                media_kind=payload["mediaType"],
                quality_index=payload.get("qualityIndex", 0),
                season_number=payload.get("seasonNumber"),
                episode_number=payload.get("episodeNumber"),
                issued_at=payload["timestamp"],
                expires_at=payload["expiry"],
            )
        except (KeyError, TypeError, ValidationError) as e:
            raise AuthError(AuthErrorKind.MALFORMED, f"claims do not form a grant: {e}")

        if grant.expires_at < self.now():
            raise AuthError(AuthErrorKind.EXPIRED, "grant expired")
        return grant

    def _verify(self, token: str) -> dict:
        for key in self._verify_keys:
            try:
                return jwt.decode(token, key, algorithms=[self.algorithm])
            except ExpiredSignatureError:
                raise AuthError(AuthErrorKind.EXPIRED, "signature expired")
            except JWTClaimsError as e:
                raise AuthError(AuthErrorKind.MALFORMED, str(e))
            except JWTError:
                # Signature did not match this key; try the rollover key
                continue
        raise AuthError(AuthErrorKind.BAD_SIGNATURE, "signature verification failed")
