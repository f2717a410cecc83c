import enum
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.core.exceptions import SelectionValidationError

class MediaKind(str, enum.Enum):
    MOVIE = "movie"  # single item
    SHOW = "show"  # episodic

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return _MEDIA_KIND_ALIASES.get(value.strip().lower())
        return None

_MEDIA_KIND_ALIASES = {
    "movie": MediaKind.MOVIE,
    "single-item": MediaKind.MOVIE,
    "show": MediaKind.SHOW,
    "tv": MediaKind.SHOW,
    "episodic": MediaKind.SHOW,
}

class QualityOption(BaseModel):
    """One rendition of a content item (or of a single episode)."""
    type: str = "Unknown"
    fileid: str = Field("", validation_alias=AliasChoices("fileid", "fileID"))
    size: str = "Unknown"
    audio: str = "Unknown"
    subtitle: str = ""
    video_codec: str = ""
    file_type: str = ""

class StreamSelection(BaseModel):
    model_config = ConfigDict(frozen=True)

    content_id: str
    media_kind: MediaKind
    quality_index: int = Field(0, ge=0)
    season_number: Optional[int] = None
    episode_number: Optional[int] = None

    @classmethod
    def from_qualities(
        cls,
        content_id: Union[str, int],
        qualities: List[QualityOption],
        quality_index: int = 0,
        season_number: Optional[int] = None,
        episode_number: Optional[int] = None,
    ) -> "StreamSelection":
        """
        Build a selection from a rendition list, checking the index points
        at an existing rendition.
        """
        if not 0 <= quality_index < len(qualities):
            raise SelectionValidationError(
                "qualityIndex", f"must be between 0 and {len(qualities) - 1}"
            )
        return cls(
            content_id=str(content_id),
            media_kind=MediaKind.SHOW if episode_number else MediaKind.MOVIE,
            quality_index=quality_index,
            season_number=season_number,
            episode_number=episode_number,
        )

    def to_request_body(self) -> dict:
        body = {
            "contentId": self.content_id,
            "mediaKind": self.media_kind.value,
            "qualityIndex": self.quality_index,
        }
        if self.season_number is not None:
            body["seasonNumber"] = self.season_number
        if self.episode_number is not None:
            body["episodeNumber"] = self.episode_number
        return body

class Grant(StreamSelection):
    """A signed selection. Never mutated; renewal produces a new one."""
    issued_at: int
    expires_at: int

    def selection(self) -> StreamSelection:
        return StreamSelection(**self.model_dump(exclude={"issued_at", "expires_at"}))

class TokenRequest(BaseModel):
    # Everything optional so missing fields surface as a 400 from the issuer
    content_id: Optional[Union[str, int]] = Field(
        None, validation_alias=AliasChoices("contentId", "id", "content_id")
    )
    media_kind: Optional[str] = Field(
        None, validation_alias=AliasChoices("mediaKind", "mediaType", "media_kind")
    )
    quality_index: Optional[int] = Field(
        None, validation_alias=AliasChoices("qualityIndex", "quality_index")
    )
    season_number: Optional[int] = Field(
        None, validation_alias=AliasChoices("seasonNumber", "season_number")
    )
    episode_number: Optional[int] = Field(
        None, validation_alias=AliasChoices("episodeNumber", "episode_number")
    )

class IssuedToken(BaseModel):
    token: str
    expires_at: int
