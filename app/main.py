import logging
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import Settings, get_settings
from app.core.middleware import RateLimitMiddleware
from app.modules.delivery.router import router as delivery_router
from app.modules.downloads.router import router as downloads_router
from app.modules.tokens.codec import TokenCodec
from app.modules.tokens.router import router as tokens_router

def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    codec: Optional[TokenCodec] = None,
) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json"
    )

    app.state.settings = settings
    app.state.codec = codec or TokenCodec(
        settings.SITE_SECRET,
        lifetime_seconds=settings.STREAM_TOKEN_LIFETIME_SECONDS,
        algorithm=settings.ALGORITHM,
        previous_secrets=settings.previous_secrets,
    )
    app.state.http_client = None

    @app.on_event("startup")
    async def startup_event():
        # One pooled client per process for origin relays and the shortener
        app.state.http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.ORIGIN_TIMEOUT),
            follow_redirects=True,
            transport=transport,
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.http_client is not None:
            await app.state.http_client.aclose()

    @app.get("/")
    def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME}", "docs": "/docs"}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Accept-Ranges", "Content-Length"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        limit_per_minute=settings.RATE_LIMIT_PER_MINUTE,
        token_limit_per_minute=settings.TOKEN_RATE_LIMIT_PER_MINUTE,
    )

    app.include_router(tokens_router, prefix=f"{settings.API_V1_STR}/stream", tags=["tokens"])
    app.include_router(delivery_router, prefix=f"{settings.API_V1_STR}/stream", tags=["stream"])
    app.include_router(downloads_router, prefix=f"{settings.API_V1_STR}/download", tags=["downloads"])

    return app
