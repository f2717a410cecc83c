import httpx
from fastapi import Depends, Request

from app.core.config import Settings
from app.modules.delivery.gateway import StreamingGateway
from app.modules.tokens.codec import TokenCodec
from app.modules.tokens.service import TokenIssuer

# Everything here is built once in create_app() and parked on app.state,
# so the signing secret is injected rather than read from a module global.

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_codec(request: Request) -> TokenCodec:
    return request.app.state.codec

def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client

def get_issuer(codec: TokenCodec = Depends(get_codec)) -> TokenIssuer:
    return TokenIssuer(codec)

def get_gateway(
    codec: TokenCodec = Depends(get_codec),
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> StreamingGateway:
    return StreamingGateway(
        codec,
        client,
        origin_url=settings.BACKEND_URL,
        chunk_size=settings.ORIGIN_CHUNK_SIZE,
    )
