"""
Pure state transitions for the player.

Every event source (user intents, media element callbacks, the controls
timer, the platform fullscreen signal) goes through :func:`reduce`, which is
the only code that produces a new :class:`PlaybackState`. The media element
is never touched here; the reducer returns commands and the engine executes
them.
"""
import math
from typing import Callable, Dict, NamedTuple, Tuple, Type

from app.modules.player import events as ev
from app.modules.player.state import (
    HAVE_FUTURE_DATA,
    PLAYBACK_SPEEDS,
    PlaybackState,
)

class Transition(NamedTuple):
    state: PlaybackState
    commands: Tuple[ev.MediaCommand, ...] = ()

Handler = Callable[[PlaybackState, ev.PlaybackEvent], Transition]

_HANDLERS: Dict[Type[ev.PlaybackEvent], Handler] = {}

def _on(event_type: Type[ev.PlaybackEvent]):
    def register(handler: Handler) -> Handler:
        _HANDLERS[event_type] = handler
        return handler
    return register

def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)

def _finite(value: float, default: float = 0.0) -> float:
    return value if value is not None and math.isfinite(value) else default

def reduce(state: PlaybackState, event: ev.PlaybackEvent) -> Transition:
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unhandled playback event: {type(event).__name__}")
    transition = handler(state, event)
    if isinstance(event, ev.USER_INTENTS) and not transition.state.show_controls:
        return Transition(
            transition.state.model_copy(update={"show_controls": True}),
            transition.commands,
        )
    return transition

def _update(state: PlaybackState, *commands: ev.MediaCommand, **changes) -> Transition:
    return Transition(state.model_copy(update=changes), tuple(commands))

def _seek(state: PlaybackState, target: float) -> Transition:
    if not state.has_duration:
        return Transition(state)
    new_time = _clamp(_finite(target), 0.0, state.duration)
    return _update(state, ev.Seek(time=new_time), current_time=new_time)

# User intents

@_on(ev.TogglePlay)
def _toggle_play(state, event):
    command = ev.Pause() if state.is_playing else ev.Play()
    return _update(state, command, is_playing=not state.is_playing)

@_on(ev.SeekBy)
def _seek_by(state, event):
    return _seek(state, state.current_time + _finite(event.seconds))

@_on(ev.SeekTo)
def _seek_to(state, event):
    return _seek(state, event.time)

@_on(ev.SeekToFraction)
def _seek_to_fraction(state, event):
    fraction = _clamp(_finite(event.fraction), 0.0, 1.0)
    return _seek(state, fraction * state.duration)

@_on(ev.SetVolume)
def _set_volume(state, event):
    volume = _clamp(_finite(event.volume, state.volume), 0.0, 1.0)
    changes = {"volume": volume}
    if volume > 0:
        changes["last_volume"] = volume
    return _update(state, ev.ApplyVolume(volume=volume, muted=volume == 0), **changes)

@_on(ev.ToggleMute)
def _toggle_mute(state, event):
    if state.volume > 0:
        return _update(
            state,
            ev.ApplyVolume(volume=0.0, muted=True),
            last_volume=state.volume,
            volume=0.0,
        )
    restored = state.last_volume if state.last_volume > 0 else 1.0
    return _update(state, ev.ApplyVolume(volume=restored, muted=False), volume=restored)

@_on(ev.SetPlaybackRate)
def _set_playback_rate(state, event):
    if event.rate not in PLAYBACK_SPEEDS:
        return Transition(state)
    return _update(
        state,
        ev.ApplyPlaybackRate(rate=event.rate),
        playback_rate=event.rate,
        show_settings_menu=False,
    )

@_on(ev.ToggleFullscreen)
def _toggle_fullscreen(state, event):
    if state.is_fullscreen:
        return _update(state, ev.ExitFullscreen(), is_fullscreen=False)
    return _update(state, ev.RequestFullscreen(), is_fullscreen=True)

@_on(ev.SetAspectRatio)
def _set_aspect_ratio(state, event):
    return _update(state, aspect_ratio=event.mode)

@_on(ev.ToggleSettingsMenu)
def _toggle_settings_menu(state, event):
    return _update(state, show_settings_menu=not state.show_settings_menu)

@_on(ev.CloseSettingsMenu)
def _close_settings_menu(state, event):
    return _update(state, show_settings_menu=False)

@_on(ev.Interaction)
def _interaction(state, event):
    return _update(state, show_controls=True)

@_on(ev.PointerLeft)
def _pointer_left(state, event):
    if state.show_settings_menu:
        return Transition(state)
    return _update(state, show_controls=False)

# Media element callbacks

@_on(ev.SourceChanged)
def _source_changed(state, event):
    # Playback progress starts over; user preferences and presentation carry across
    fresh = PlaybackState(
        source=event.url,
        volume=state.volume,
        last_volume=state.last_volume,
        playback_rate=state.playback_rate,
        is_fullscreen=state.is_fullscreen,
        aspect_ratio=state.aspect_ratio,
        resume_at=event.resume_at if event.resume_at and event.resume_at > 0 else None,
    )
    return Transition(
        fresh,
        (
            ev.LoadSource(url=event.url),
            ev.ApplyVolume(volume=fresh.volume, muted=fresh.volume == 0),
            ev.ApplyPlaybackRate(rate=fresh.playback_rate),
        ),
    )

@_on(ev.MetadataLoaded)
def _metadata_loaded(state, event):
    duration = max(_finite(event.duration), 0.0)
    changes = {"duration": duration}
    if event.volume is not None:
        volume = _clamp(_finite(event.volume, state.volume), 0.0, 1.0)
        changes["volume"] = volume
        if volume > 0:
            changes["last_volume"] = volume
    if event.playback_rate is not None and event.playback_rate > 0:
        changes["playback_rate"] = event.playback_rate
    if duration > 0:
        changes["current_time"] = _clamp(state.current_time, 0.0, duration)

    commands = []
    if state.resume_at is not None and duration > 0:
        resume_time = _clamp(state.resume_at, 0.0, duration)
        changes["current_time"] = resume_time
        commands.append(ev.Seek(time=resume_time))
    changes["resume_at"] = None
    return _update(state, *commands, **changes)

@_on(ev.TimeUpdated)
def _time_updated(state, event):
    current_time = max(_finite(event.current_time, state.current_time), 0.0)
    if state.has_duration:
        current_time = min(current_time, state.duration)
    return _update(state, current_time=current_time)

@_on(ev.Waiting)
@_on(ev.Stalled)
@_on(ev.SeekStarted)
def _loading(state, event):
    return _update(state, is_loading=True)

@_on(ev.Playing)
def _playing(state, event):
    return _update(
        state,
        is_loading=False,
        ready_state=max(state.ready_state, HAVE_FUTURE_DATA),
    )

@_on(ev.SeekCompleted)
def _seek_completed(state, event):
    return _update(state, is_loading=False)

@_on(ev.ReadinessChanged)
def _readiness_changed(state, event):
    return _update(
        state,
        ready_state=event.ready_state,
        is_loading=event.ready_state < HAVE_FUTURE_DATA,
    )

@_on(ev.BufferProgress)
def _buffer_progress(state, event):
    if not state.has_duration:
        return Transition(state)
    fraction = _clamp(_finite(event.buffered_end) / state.duration, 0.0, 1.0)
    return _update(state, buffered_fraction=fraction)

@_on(ev.PlayRejected)
def _play_rejected(state, event):
    return _update(state, is_playing=False)

@_on(ev.MediaFailed)
def _media_failed(state, event):
    # Stays stalled until the session hands over a fresh source
    return _update(state, is_loading=True, error=event.message)

# Ambient

@_on(ev.ControlsTimedOut)
def _controls_timed_out(state, event):
    return _update(state, show_controls=False)

@_on(ev.FullscreenChanged)
def _fullscreen_changed(state, event):
    return _update(state, is_fullscreen=event.is_fullscreen)
