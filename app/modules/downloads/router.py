from typing import Any

import httpx
from fastapi import APIRouter, Depends, HTTPException, status

from app.core import deps
from app.core.config import Settings
from app.core.exceptions import SelectionValidationError
from app.modules.downloads import schemas, service

router = APIRouter()

@router.post("", response_model=schemas.DownloadLinks)
async def create_download_links(
    request: schemas.DownloadRequest,
    client: httpx.AsyncClient = Depends(deps.get_http_client),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    """
    Direct and Telegram download links for a stream URL the client already holds.
    """
    try:
        return await service.build_download_links(
            client,
            request,
            bot_name=settings.TELEGRAM_BOT_NAME,
            shortener_url=settings.SHORTENER_API_URL,
            shortener_key=settings.SHORTENER_API_KEY,
        )
    except SelectionValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.as_detail())
