import os

os.environ.setdefault("SITE_SECRET", "test-site-secret")

import re
import time
from typing import List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app
from app.modules.tokens.codec import TokenCodec

SECRET = "test-site-secret"
LIFETIME = 6 * 60 * 60
ORIGIN_URL = "http://origin.test"
MEDIA = bytes(range(256)) * 64

class FakeClock:
    def __init__(self, now: Optional[int] = None):
        # Starts at real time: jose checks "exp" against the wall clock too
        self.now = int(time.time()) if now is None else now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: int):
        self.now += seconds

class ChunkedBody(httpx.AsyncByteStream):
    """Origin body delivered in small chunks; records whether it was closed."""

    def __init__(self, data: bytes, chunk_size: int = 1024):
        self.data = data
        self.chunk_size = chunk_size
        self.closed = False

    async def __aiter__(self):
        for start in range(0, len(self.data), self.chunk_size):
            yield self.data[start:start + self.chunk_size]

    async def aclose(self):
        self.closed = True

class FakeOrigin:
    """Stands in for the origin media store behind the gateway."""

    def __init__(self, media: bytes = MEDIA):
        self.media = media
        self.requests: List[httpx.Request] = []
        self.bodies: List[ChunkedBody] = []
        self.unreachable = False
        self.status: Optional[int] = None
        self.content_range: Optional[str] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("origin down", request=request)
        if self.status is not None:
            return httpx.Response(self.status, json={"error": "nope"})

        size = len(self.media)
        range_header = request.headers.get("range")
        if range_header:
            match = re.match(r"bytes=(\d+)-(\d*)", range_header)
            start = int(match.group(1))
            end = int(match.group(2)) if match.group(2) else size - 1
            chunk = self.media[start:end + 1]
            headers = {
                "content-type": "video/mp4",
                "accept-ranges": "bytes",
                "content-length": str(len(chunk)),
                "content-range": self.content_range or f"bytes {start}-{end}/{size}",
            }
            return self._respond(206, headers, chunk)

        headers = {
            "content-type": "video/mp4",
            "accept-ranges": "bytes",
            "content-length": str(size),
        }
        return self._respond(200, headers, self.media)

    def _respond(self, status: int, headers: dict, data: bytes) -> httpx.Response:
        body = ChunkedBody(data)
        self.bodies.append(body)
        return httpx.Response(status, headers=headers, stream=body)

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def codec(clock):
    return TokenCodec(SECRET, lifetime_seconds=LIFETIME, clock=clock)

@pytest.fixture
def settings():
    return Settings(
        SITE_SECRET=SECRET,
        BACKEND_URL=ORIGIN_URL,
        STREAM_TOKEN_LIFETIME_SECONDS=LIFETIME,
        TELEGRAM_BOT_NAME="reeltestbot",
    )

@pytest.fixture
def origin():
    return FakeOrigin()

@pytest.fixture
def app(settings, origin, codec):
    return create_app(settings, transport=httpx.MockTransport(origin), codec=codec)

@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
