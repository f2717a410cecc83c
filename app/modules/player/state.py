import enum
import math
from typing import Optional

from pydantic import BaseModel, ConfigDict

# HTMLMediaElement.readyState levels
HAVE_NOTHING = 0
HAVE_METADATA = 1
HAVE_CURRENT_DATA = 2
HAVE_FUTURE_DATA = 3
HAVE_ENOUGH_DATA = 4

PLAYBACK_SPEEDS = (0.5, 0.75, 1.0, 1.25, 1.5, 2.0)
SEEK_STEP_SECONDS = 10.0
CONTROLS_HIDE_AFTER_SECONDS = 3.0

class AspectRatioMode(str, enum.Enum):
    BEST_FIT = "bestFit"
    FIT_SCREEN = "fitScreen"
    FILL = "fill"
    RATIO_16_9 = "ratio16_9"
    RATIO_4_3 = "ratio4_3"

    @property
    def label(self) -> str:
        return _ASPECT_LABELS[self]

    @property
    def object_fit(self) -> str:
        """CSS object-fit the video surface should use."""
        if self is AspectRatioMode.FIT_SCREEN:
            return "cover"
        if self is AspectRatioMode.FILL:
            return "fill"
        return "contain"

    @property
    def forced_ratio(self) -> Optional[float]:
        if self is AspectRatioMode.RATIO_16_9:
            return 16 / 9
        if self is AspectRatioMode.RATIO_4_3:
            return 4 / 3
        return None

_ASPECT_LABELS = {
    AspectRatioMode.BEST_FIT: "Best Fit",
    AspectRatioMode.FIT_SCREEN: "Fit Screen",
    AspectRatioMode.FILL: "Fill",
    AspectRatioMode.RATIO_16_9: "16:9",
    AspectRatioMode.RATIO_4_3: "4:3",
}

class PlaybackState(BaseModel):
    """
    Everything the player surface renders. Replaced, never mutated, by the
    reducer; a fresh instance is used whenever the media source changes.
    """
    model_config = ConfigDict(frozen=True)

    source: Optional[str] = None
    is_playing: bool = True  # the surface autoplays
    current_time: float = 0.0
    duration: float = 0.0
    volume: float = 1.0
    last_volume: float = 1.0
    playback_rate: float = 1.0
    is_fullscreen: bool = False
    show_controls: bool = True
    show_settings_menu: bool = False
    is_loading: bool = True
    ready_state: int = HAVE_NOTHING
    buffered_fraction: float = 0.0
    aspect_ratio: AspectRatioMode = AspectRatioMode.BEST_FIT
    error: Optional[str] = None
    # Position to restore once the new source reports its duration
    resume_at: Optional[float] = None

    @property
    def has_duration(self) -> bool:
        return self.duration > 0 and math.isfinite(self.duration)

    @property
    def progress(self) -> float:
        """Elapsed time as a percentage in [0, 100]."""
        if not self.has_duration:
            return 0.0
        return min(max(self.current_time / self.duration * 100, 0.0), 100.0)

    @property
    def buffered_percent(self) -> float:
        return min(max(self.buffered_fraction * 100, 0.0), 100.0)

    @property
    def is_muted(self) -> bool:
        return self.volume == 0

    @property
    def is_stalled(self) -> bool:
        return self.error is not None

    @property
    def show_loading_overlay(self) -> bool:
        # Mid-stream rebuffering with enough data queued does not flash the overlay
        return self.is_loading and (self.current_time < 1 or self.ready_state < HAVE_FUTURE_DATA)

def format_time(seconds: float) -> str:
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return "0:00"
    minutes = int(seconds // 60)
    remaining = int(seconds % 60)
    return f"{minutes}:{remaining:02d}"

def volume_level(volume: float) -> str:
    """Icon bucket for the volume button: muted, low or high."""
    if volume == 0:
        return "muted"
    if volume <= 0.66:
        return "low"
    return "high"

def speed_label(rate: float) -> str:
    return "Normal" if rate == 1 else f"{rate:g}x"
