import logging

from app.core.exceptions import SelectionValidationError
from app.modules.tokens import schemas
from app.modules.tokens.codec import TokenCodec

logger = logging.getLogger(__name__)

class TokenIssuer:
    """
    Turns a playback/download intent into a signed grant.
    No catalog lookup happens here: an unknown content id still gets a grant,
    the origin store rejects it later.
    """

    def __init__(self, codec: TokenCodec):
        self.codec = codec

    def build_selection(self, request: schemas.TokenRequest) -> schemas.StreamSelection:
        if request.content_id is None or str(request.content_id).strip() == "":
            raise SelectionValidationError("contentId", "is required")
        if not request.media_kind:
            raise SelectionValidationError("mediaKind", "is required")
        try:
            media_kind = schemas.MediaKind(request.media_kind)
        except ValueError:
            allowed = "movie (single-item), show (episodic)"
            raise SelectionValidationError("mediaKind", f"must be one of {allowed}")

        quality_index = request.quality_index or 0
        if quality_index < 0:
            raise SelectionValidationError("qualityIndex", "must be zero or greater")

        return schemas.StreamSelection(
            content_id=str(request.content_id),
            media_kind=media_kind,
            quality_index=quality_index,
            season_number=request.season_number,
            episode_number=request.episode_number,
        )

    def issue(self, request: schemas.TokenRequest) -> schemas.IssuedToken:
        selection = self.build_selection(request)
        issued_at = self.codec.now()
        token = self.codec.encode(selection, issued_at=issued_at)
        expires_at = issued_at + self.codec.lifetime_seconds
        logger.info(
            f"[Issuer] Grant for {selection.media_kind.value} {selection.content_id} "
            f"q={selection.quality_index} s={selection.season_number} e={selection.episode_number}"
        )
        return schemas.IssuedToken(token=token, expires_at=expires_at)
