import asyncio
import logging
from typing import Callable, List, Optional, Protocol

from app.core.exceptions import PlaybackStalled
from app.modules.player import events as ev
from app.modules.player.reducer import reduce
from app.modules.player.state import CONTROLS_HIDE_AFTER_SECONDS, PlaybackState

logger = logging.getLogger(__name__)

class MediaElement(Protocol):
    def load(self, url: Optional[str]) -> None: ...
    def play(self) -> None: ...
    def pause(self) -> None: ...
    def seek(self, time: float) -> None: ...
    def set_volume(self, volume: float, muted: bool) -> None: ...
    def set_playback_rate(self, rate: float) -> None: ...

class FullscreenHost(Protocol):
    def request_fullscreen(self) -> None: ...
    def exit_fullscreen(self) -> None: ...

class TimerHandle(Protocol):
    def cancel(self) -> None: ...

Scheduler = Callable[[float, Callable[[], None]], TimerHandle]

def _call_later(delay: float, callback: Callable[[], None]) -> Optional[TimerHandle]:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return None
    return loop.call_later(delay, callback)

class PlaybackEngine:
    """
    Drives a media element from PlaybackState.

    Events go through the reducer; the resulting commands are executed on the
    media element and fullscreen host. The engine also owns the timer that
    hides the transport controls after a period without interaction. It has no
    network logic: a failed source stays stalled until change_source() is
    called with a fresh URL.
    """

    def __init__(
        self,
        media: MediaElement,
        fullscreen: Optional[FullscreenHost] = None,
        hide_after: float = CONTROLS_HIDE_AFTER_SECONDS,
        scheduler: Optional[Scheduler] = None,
    ):
        self.media = media
        self.fullscreen = fullscreen
        self.hide_after = hide_after
        self._schedule = scheduler or _call_later
        self._controls_timer: Optional[TimerHandle] = None
        self._listeners: List[Callable[[PlaybackState], None]] = []
        self.state = PlaybackState()

    def subscribe(self, listener: Callable[[PlaybackState], None]):
        self._listeners.append(listener)

    def dispatch(self, event: ev.PlaybackEvent) -> PlaybackState:
        transition = reduce(self.state, event)
        self.state = transition.state
        for command in transition.commands:
            self._execute(command)

        if isinstance(event, ev.USER_INTENTS):
            self._reset_controls_timer()
        elif isinstance(event, ev.ControlsTimedOut):
            self._controls_timer = None

        for listener in self._listeners:
            listener(self.state)
        return self.state

    def start(self):
        """Show the controls and arm the idle timer, as on first mount."""
        self.dispatch(ev.Interaction())

    def close(self):
        self._cancel_controls_timer()

    def change_source(self, url: Optional[str], resume_at: Optional[float] = None):
        """
        Point the element at a new URL. Without an explicit resume position the
        current one is kept, so a renewed grant does not restart the title.
        """
        if resume_at is None and self.state.source is not None:
            # A source replaced before its metadata loaded still owes the old position
            if self.state.resume_at is not None:
                resume_at = self.state.resume_at
            else:
                resume_at = self.state.current_time
        self.dispatch(ev.SourceChanged(url=url, resume_at=resume_at))

    @property
    def stalled(self) -> Optional[PlaybackStalled]:
        if self.state.error is None:
            return None
        return PlaybackStalled(self.state.error)

    def _execute(self, command: ev.MediaCommand):
        try:
            if isinstance(command, ev.Play):
                self.media.play()
            elif isinstance(command, ev.Pause):
                self.media.pause()
            elif isinstance(command, ev.Seek):
                self.media.seek(command.time)
            elif isinstance(command, ev.ApplyVolume):
                self.media.set_volume(command.volume, command.muted)
            elif isinstance(command, ev.ApplyPlaybackRate):
                self.media.set_playback_rate(command.rate)
            elif isinstance(command, ev.LoadSource):
                self.media.load(command.url)
            elif isinstance(command, ev.RequestFullscreen):
                if self.fullscreen is not None:
                    self.fullscreen.request_fullscreen()
            elif isinstance(command, ev.ExitFullscreen):
                if self.fullscreen is not None:
                    self.fullscreen.exit_fullscreen()
        except Exception as e:
            # The surface must keep working; the platform reports the real state back
            logger.warning(f"[Player] {type(command).__name__} failed: {e}")
            if isinstance(command, ev.Play):
                self.dispatch(ev.PlayRejected())

    def _reset_controls_timer(self):
        self._cancel_controls_timer()
        self._controls_timer = self._schedule(self.hide_after, self._on_controls_timeout)

    def _cancel_controls_timer(self):
        if self._controls_timer is not None:
            self._controls_timer.cancel()
            self._controls_timer = None

    def _on_controls_timeout(self):
        self.dispatch(ev.ControlsTimedOut())
