import logging
from typing import AsyncIterator, Dict, Optional

import httpx

from app.core.exceptions import AuthError, InvalidToken, OriginUnavailable
from app.modules.tokens.codec import TokenCodec
from app.modules.tokens.schemas import Grant

logger = logging.getLogger(__name__)

PASSTHROUGH_STATUSES = (200, 206)

# Connection-scoped headers that must not be relayed by a proxy (RFC 9110 7.6.1)
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})

class OriginStream:
    """
    An open origin response being relayed to the client.
    The body is read chunk by chunk; nothing is buffered beyond one chunk.
    """

    def __init__(self, response: httpx.Response, chunk_size: int):
        self.response = response
        self.chunk_size = chunk_size

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def headers(self) -> Dict[str, str]:
        return {
            key: value
            for key, value in self.response.headers.items()
            if key.lower() not in HOP_BY_HOP_HEADERS
        }

    async def body(self) -> AsyncIterator[bytes]:
        # Raw bytes: content-encoding and content-length stay exactly as origin sent them
        try:
            async for chunk in self.response.aiter_raw(self.chunk_size):
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self):
        if not self.response.is_closed:
            await self.response.aclose()
            logger.debug("[Gateway] Upstream response closed")

class StreamingGateway:
    """
    Redeems grants and relays byte ranges from the origin media store.
    Origin failures are surfaced immediately; nothing here retries.
    """

    def __init__(
        self,
        codec: TokenCodec,
        client: httpx.AsyncClient,
        origin_url: str,
        chunk_size: int = 64 * 1024,
    ):
        self.codec = codec
        self.client = client
        self.origin_url = origin_url.rstrip("/")
        self.chunk_size = chunk_size

    def redeem(self, token: str) -> Grant:
        try:
            return self.codec.decode(token)
        except AuthError as e:
            # Which check failed is only ever logged
            logger.warning(f"[Gateway] Rejected token ({e.kind.value}): {e}")
            raise InvalidToken("Invalid or expired token") from None

    def build_origin_request(
        self, grant: Grant, token: str, range_header: Optional[str] = None
    ) -> httpx.Request:
        params = {"token": token, "quality": grant.quality_index}
        if grant.season_number is not None:
            params["season"] = grant.season_number
        if grant.episode_number is not None:
            params["episode"] = grant.episode_number

        headers = {}
        if range_header:
            headers["Range"] = range_header

        return self.client.build_request(
            "GET",
            f"{self.origin_url}/api/v1/dl/{grant.content_id}",
            params=params,
            headers=headers,
        )

    async def open(self, token: str, range_header: Optional[str] = None) -> OriginStream:
        grant = self.redeem(token)
        request = self.build_origin_request(grant, token, range_header)

        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error(f"[Gateway] Origin fetch failed for {grant.content_id}: {e!r}")
            raise OriginUnavailable("Origin store unreachable") from e

        if response.status_code not in PASSTHROUGH_STATUSES:
            await response.aclose()
            logger.error(
                f"[Gateway] Origin responded {response.status_code} for {grant.content_id}"
            )
            raise OriginUnavailable(
                f"Origin responded with status {response.status_code}",
                status_code=response.status_code,
            )

        logger.info(
            f"[Gateway] Relaying {grant.content_id} q={grant.quality_index} "
            f"range={range_header or '-'} status={response.status_code}"
        )
        return OriginStream(response, self.chunk_size)
