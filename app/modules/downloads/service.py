import logging
from typing import Optional
from urllib.parse import quote

import httpx

from app.core.exceptions import SelectionValidationError
from app.modules.downloads import schemas

logger = logging.getLogger(__name__)

def build_telegram_link(bot_name: str, request: schemas.DownloadRequest) -> str:
    """
    Deep link asking the bot for the same file the grant points at.
    Parameters are packed as id_kind_quality_season_episode.
    """
    kind_code = "s" if request.media_type == "show" else "m"
    compact = (
        f"{request.content_id}_{kind_code}_{request.quality_index}"
        f"_{request.season_number or 0}_{request.episode_number or 0}"
    )
    text = quote(f"{request.title} {request.quality}", safe="")
    return f"https://t.me/{bot_name}?start=file_{compact}&text={text}"

async def shorten_url(
    client: httpx.AsyncClient,
    url: str,
    api_url: Optional[str],
    api_key: Optional[str],
) -> str:
    if not api_url or not api_key:
        return url

    try:
        response = await client.get(api_url, params={"api": api_key, "url": url})
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"[Downloads] Shortener failed, using direct URL: {e!r}")
        return url

    if isinstance(data, dict) and data.get("shortenedUrl"):
        return data["shortenedUrl"]
    return url

async def build_download_links(
    client: httpx.AsyncClient,
    request: schemas.DownloadRequest,
    bot_name: str,
    shortener_url: Optional[str] = None,
    shortener_key: Optional[str] = None,
) -> schemas.DownloadLinks:
    if not request.stream_url:
        raise SelectionValidationError("streamUrl", "is required")
    if request.content_id is None or str(request.content_id) == "":
        raise SelectionValidationError("contentId", "is required")

    direct_link = await shorten_url(client, request.stream_url, shortener_url, shortener_key)
    return schemas.DownloadLinks(
        direct_link=direct_link,
        telegram_link=build_telegram_link(bot_name, request),
    )
