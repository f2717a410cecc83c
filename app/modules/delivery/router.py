import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from app.core import deps
from app.core.exceptions import InvalidToken, OriginUnavailable
from app.modules.delivery.gateway import OriginStream, StreamingGateway

router = APIRouter()

class RelayResponse(StreamingResponse):
    """StreamingResponse that always releases its origin response, however the send ends."""

    def __init__(self, upstream: OriginStream):
        super().__init__(
            upstream.body(),
            status_code=upstream.status_code,
            headers=upstream.headers,
        )
        self.upstream = upstream

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            # Covers client disconnects and failed sends, where background tasks never run
            await asyncio.shield(self.upstream.aclose())

@router.get("")
async def stream_media(
    token: Optional[str] = Query(None),
    range_header: Optional[str] = Header(None, alias="range"),
    gateway: StreamingGateway = Depends(deps.get_gateway),
):
    """
    Redeem a grant and relay the requested byte range from the origin store.
    Status (200/206) and origin headers are passed through untouched.
    """
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing or invalid token")

    try:
        upstream = await gateway.open(token, range_header)
    except InvalidToken:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    except OriginUnavailable:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch video stream data")

    return RelayResponse(upstream)
