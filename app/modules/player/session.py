import asyncio
import logging
from typing import Callable, List, Optional
from urllib.parse import quote

import httpx

from app.core.config import Settings
from app.modules.downloads.schemas import DownloadLinks
from app.modules.tokens.schemas import QualityOption, StreamSelection

logger = logging.getLogger(__name__)

TOKEN_ERROR = "Failed to generate stream token"
DOWNLOAD_ERROR = "Couldn't generate download links"

class StreamSession:
    """
    Keeps one valid grant alive while playback (or a pending download) is active.

    Activation fetches a grant straight away and starts a single renewal task
    that fetches a new one every ``refresh_interval`` seconds. Listeners get
    every new stream URL; that URL is the only thing shared with the player.
    Failures never raise: they land in ``error`` and the caller may retry.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        refresh_interval: float,
        timeout: float = 10.0,
        issue_path: str = "/api/v1/stream/token",
        stream_path: str = "/api/v1/stream",
        download_path: str = "/api/v1/download",
    ):
        self.client = client
        self.refresh_interval = refresh_interval
        self.timeout = timeout
        self.issue_path = issue_path
        self.stream_path = stream_path
        self.download_path = download_path

        self.selection: Optional[StreamSelection] = None
        self.token: Optional[str] = None
        self.loading = False
        self.error: Optional[str] = None
        self.is_active = False

        self._renewal_task: Optional[asyncio.Task] = None
        self._fetch_seq = 0
        self._listeners: List[Callable[[str], None]] = []

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> "StreamSession":
        prefix = settings.API_V1_STR
        return cls(
            client,
            refresh_interval=settings.refresh_interval_seconds,
            timeout=settings.API_REQUEST_TIMEOUT,
            issue_path=f"{prefix}/stream/token",
            stream_path=f"{prefix}/stream",
            download_path=f"{prefix}/download",
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.deactivate()

    @property
    def stream_url(self) -> Optional[str]:
        if not self.token:
            return None
        base = str(self.client.base_url).rstrip("/")
        return f"{base}{self.stream_path}?token={quote(self.token, safe='')}"

    def add_listener(self, callback: Callable[[str], None]):
        self._listeners.append(callback)

    async def start(self, selection: StreamSelection) -> Optional[str]:
        """Inactive -> active: fetch a grant now and begin renewing it."""
        if self.is_active:
            return await self.activate(selection)
        self.is_active = True
        logger.info(f"[Session] Started for {selection.media_kind.value} {selection.content_id}")
        return await self.activate(selection)

    async def activate(self, selection: Optional[StreamSelection] = None) -> Optional[str]:
        """
        Fetch a fresh grant for ``selection`` (or the current one) and restart
        the renewal schedule. Does nothing while the session is inactive.
        """
        if not self.is_active:
            return None
        if selection is not None:
            self.selection = selection
        if self.selection is None:
            return None
        await self._restart_renewal()
        return await self._fetch()

    async def refresh(self) -> Optional[str]:
        return await self.activate()

    async def deactivate(self):
        """
        Stop renewing and drop the token. A fetch already in flight is left to
        finish and its result is ignored.
        """
        if not self.is_active and self._renewal_task is None:
            return
        self.is_active = False
        self._fetch_seq += 1
        await self._stop_renewal()
        self.token = None
        self.loading = False
        logger.info("[Session] Deactivated")

    async def request_download(
        self, title: str, quality: Optional[QualityOption] = None
    ) -> Optional[DownloadLinks]:
        """Renew the grant on demand and ask the server for download links."""
        await self.refresh()
        stream_url = self.stream_url
        if stream_url is None or self.selection is None:
            return None

        selection = self.selection
        body = {
            "streamUrl": stream_url,
            "title": title,
            "quality": quality.type if quality else "Unknown",
            "size": quality.size if quality else "Unknown",
            **selection.to_request_body(),
            "mediaType": selection.media_kind.value,
        }
        try:
            response = await self.client.post(self.download_path, json=body, timeout=self.timeout)
            response.raise_for_status()
            return DownloadLinks.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[Session] Download links failed: {e!r}")
            self.error = DOWNLOAD_ERROR
            return None

    async def _fetch(self) -> Optional[str]:
        self._fetch_seq += 1
        seq = self._fetch_seq
        selection = self.selection
        self.loading = True
        self.error = None

        try:
            response = await self.client.post(
                self.issue_path, json=selection.to_request_body(), timeout=self.timeout
            )
            response.raise_for_status()
            token = response.json()["token"]
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"[Session] Token generation error: {e!r}")
            if seq == self._fetch_seq:
                self.error = TOKEN_ERROR
                self.loading = False
            return None

        if seq != self._fetch_seq or not self.is_active:
            logger.debug("[Session] Discarding superseded grant")
            return None

        self.token = token
        self.loading = False
        self._notify(self.stream_url)
        return token

    def _notify(self, url: str):
        for listener in self._listeners:
            try:
                listener(url)
            except Exception as e:
                logger.warning(f"[Session] Listener failed for new stream URL: {e!r}")

    async def _restart_renewal(self):
        await self._stop_renewal()
        self._renewal_task = asyncio.create_task(self._renew_forever())

    async def _stop_renewal(self):
        task, self._renewal_task = self._renewal_task, None
        if task is None:
            return
        task.cancel()
        if task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _renew_forever(self):
        while self.is_active:
            await asyncio.sleep(self.refresh_interval)
            if not self.is_active:
                break
            try:
                # Shielded so cancelling the schedule never aborts a request mid-flight
                await asyncio.shield(self._fetch())
            except Exception as e:
                logger.error(f"[Session] Renewal error: {e!r}", exc_info=True)
                self.error = TOKEN_ERROR
