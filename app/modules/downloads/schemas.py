from typing import Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

class DownloadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stream_url: Optional[str] = Field(None, alias="streamUrl")
    title: str = ""
    quality: str = "Unknown"
    size: str = "Unknown"
    content_id: Optional[Union[str, int]] = Field(
        None, validation_alias=AliasChoices("contentId", "content_id")
    )
    media_type: str = Field("movie", validation_alias=AliasChoices("mediaType", "media_type"))
    quality_index: int = Field(0, validation_alias=AliasChoices("qualityIndex", "quality_index"))
    season_number: Optional[int] = Field(
        None, validation_alias=AliasChoices("seasonNumber", "season_number")
    )
    episode_number: Optional[int] = Field(
        None, validation_alias=AliasChoices("episodeNumber", "episode_number")
    )

class DownloadLinks(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    direct_link: str = Field(..., alias="directLink")
    telegram_link: str = Field(..., alias="telegramLink")
