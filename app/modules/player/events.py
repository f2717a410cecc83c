from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.modules.player.state import AspectRatioMode

class PlaybackEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

# User intents

class TogglePlay(PlaybackEvent):
    pass

class SeekBy(PlaybackEvent):
    seconds: float

class SeekTo(PlaybackEvent):
    time: float

class SeekToFraction(PlaybackEvent):
    fraction: float

class SetVolume(PlaybackEvent):
    volume: float

class ToggleMute(PlaybackEvent):
    pass

class SetPlaybackRate(PlaybackEvent):
    rate: float

class ToggleFullscreen(PlaybackEvent):
    pass

class SetAspectRatio(PlaybackEvent):
    mode: AspectRatioMode

class ToggleSettingsMenu(PlaybackEvent):
    pass

class CloseSettingsMenu(PlaybackEvent):
    pass

class Interaction(PlaybackEvent):
    """Pointer move, click or key press anywhere on the player."""

class PointerLeft(PlaybackEvent):
    pass

# Media element callbacks

class SourceChanged(PlaybackEvent):
    url: Optional[str]
    resume_at: Optional[float] = None

class MetadataLoaded(PlaybackEvent):
    duration: float
    volume: Optional[float] = None
    playback_rate: Optional[float] = None

class TimeUpdated(PlaybackEvent):
    current_time: float

class Waiting(PlaybackEvent):
    pass

class Playing(PlaybackEvent):
    pass

class Stalled(PlaybackEvent):
    pass

class ReadinessChanged(PlaybackEvent):
    """canplay / canplaythrough with the element's current readyState."""
    ready_state: int

class BufferProgress(PlaybackEvent):
    buffered_end: float

class SeekStarted(PlaybackEvent):
    pass

class SeekCompleted(PlaybackEvent):
    pass

class PlayRejected(PlaybackEvent):
    """The element refused to start, e.g. autoplay was blocked."""

class MediaFailed(PlaybackEvent):
    message: str = "Media source error"

# Ambient

class ControlsTimedOut(PlaybackEvent):
    pass

class FullscreenChanged(PlaybackEvent):
    is_fullscreen: bool

# Any of these counts as the viewer touching the player (pointer or keyboard)
USER_INTENTS = (
    TogglePlay,
    SeekBy,
    SeekTo,
    SeekToFraction,
    SetVolume,
    ToggleMute,
    SetPlaybackRate,
    ToggleFullscreen,
    SetAspectRatio,
    ToggleSettingsMenu,
    CloseSettingsMenu,
    Interaction,
)

# Commands for the media element, produced by the reducer

class MediaCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

class Play(MediaCommand):
    pass

class Pause(MediaCommand):
    pass

class Seek(MediaCommand):
    time: float

class ApplyVolume(MediaCommand):
    volume: float
    muted: bool

class ApplyPlaybackRate(MediaCommand):
    rate: float

class LoadSource(MediaCommand):
    url: Optional[str]

class RequestFullscreen(MediaCommand):
    pass

class ExitFullscreen(MediaCommand):
    pass
