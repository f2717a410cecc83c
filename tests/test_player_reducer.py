import pytest

from app.modules.player import events as ev
from app.modules.player.reducer import reduce
from app.modules.player.state import (
    HAVE_CURRENT_DATA,
    HAVE_ENOUGH_DATA,
    HAVE_FUTURE_DATA,
    AspectRatioMode,
    PlaybackState,
    format_time,
    speed_label,
    volume_level,
)

def run(state, *events):
    for event in events:
        state = reduce(state, event).state
    return state

@pytest.fixture
def loaded():
    return run(
        PlaybackState(),
        ev.SourceChanged(url="/api/v1/stream?token=t"),
        ev.MetadataLoaded(duration=120.0, volume=1.0, playback_rate=1.0),
    )

def test_toggle_play_pauses_then_plays(loaded):
    paused = reduce(loaded, ev.TogglePlay())
    assert paused.state.is_playing is False
    assert paused.commands == (ev.Pause(),)

    playing = reduce(paused.state, ev.TogglePlay())
    assert playing.state.is_playing is True
    assert playing.commands == (ev.Play(),)

def test_unmute_restores_volume_set_before_dragging_to_zero(loaded):
    state = run(loaded, ev.SetVolume(volume=0.35), ev.SetVolume(volume=0.0))
    assert state.volume == 0.0

    state = run(state, ev.ToggleMute())
    assert state.volume == 0.35

def test_repeated_mute_toggles_keep_restoring_same_volume(loaded):
    state = run(loaded, ev.SetVolume(volume=0.6))

    for _ in range(4):
        state = run(state, ev.ToggleMute())
        assert state.volume == 0.0
        assert state.is_muted
        state = run(state, ev.ToggleMute())
        assert state.volume == 0.6

def test_unmute_with_no_remembered_volume_goes_to_full(loaded):
    state = loaded.model_copy(update={"volume": 0.0, "last_volume": 0.0})

    transition = reduce(state, ev.ToggleMute())

    assert transition.state.volume == 1.0
    assert transition.commands == (ev.ApplyVolume(volume=1.0, muted=False),)

@pytest.mark.parametrize("requested, expected", [(-0.5, 0.0), (1.7, 1.0), (0.4, 0.4)])
def test_volume_is_clamped(loaded, requested, expected):
    assert run(loaded, ev.SetVolume(volume=requested)).volume == expected

@pytest.mark.parametrize("target, expected", [(-30.0, 0.0), (500.0, 120.0), (61.5, 61.5)])
def test_seek_clamps_to_duration(loaded, target, expected):
    transition = reduce(loaded, ev.SeekTo(time=target))

    assert transition.state.current_time == expected
    assert transition.commands == (ev.Seek(time=expected),)

def test_relative_seek_clamps_at_both_ends(loaded):
    assert run(loaded, ev.SeekBy(seconds=-10)).current_time == 0.0

    near_end = run(loaded, ev.TimeUpdated(current_time=115.0), ev.SeekBy(seconds=10))
    assert near_end.current_time == 120.0
    assert near_end.progress == 100.0

def test_seek_to_fraction(loaded):
    assert run(loaded, ev.SeekToFraction(fraction=0.25)).current_time == 30.0
    assert run(loaded, ev.SeekToFraction(fraction=3)).current_time == 120.0

def test_seek_before_duration_is_known_is_ignored():
    state = PlaybackState()

    transition = reduce(state, ev.SeekBy(seconds=10))

    assert transition.state is state
    assert transition.commands == ()

def test_time_updates_stay_inside_duration(loaded):
    assert run(loaded, ev.TimeUpdated(current_time=999)).current_time == 120.0
    assert run(loaded, ev.TimeUpdated(current_time=-1)).current_time == 0.0
    assert run(loaded, ev.TimeUpdated(current_time=30)).progress == 25.0

def test_progress_is_zero_without_duration():
    assert PlaybackState(current_time=50).progress == 0.0

def test_loading_follows_readiness_regardless_of_play_flag(loaded):
    paused = run(loaded, ev.TogglePlay())

    starving = run(paused, ev.ReadinessChanged(ready_state=HAVE_CURRENT_DATA))
    assert starving.is_loading is True

    ready = run(starving, ev.ReadinessChanged(ready_state=HAVE_ENOUGH_DATA))
    assert ready.is_loading is False

def test_waiting_stalled_and_playing(loaded):
    assert run(loaded, ev.Waiting()).is_loading is True
    assert run(loaded, ev.Stalled()).is_loading is True
    assert run(loaded, ev.Waiting(), ev.Playing()).is_loading is False

def test_seek_forces_loading_on_then_off(loaded):
    seeking = run(loaded, ev.Playing(), ev.SeekStarted())
    assert seeking.is_loading is True

    assert run(seeking, ev.SeekCompleted()).is_loading is False

def test_loading_overlay_hidden_during_mid_stream_rebuffering(loaded):
    mid_stream = run(loaded, ev.ReadinessChanged(ready_state=HAVE_FUTURE_DATA), ev.TimeUpdated(current_time=40))

    rebuffering = run(mid_stream, ev.Waiting())
    assert rebuffering.is_loading is True
    assert rebuffering.show_loading_overlay is False

    starved = run(rebuffering, ev.ReadinessChanged(ready_state=HAVE_CURRENT_DATA))
    assert starved.show_loading_overlay is True

def test_loading_overlay_shown_at_start(loaded):
    assert run(loaded, ev.Waiting()).show_loading_overlay is True

def test_buffer_progress_is_fraction_of_duration(loaded):
    assert run(loaded, ev.BufferProgress(buffered_end=60)).buffered_fraction == 0.5
    assert run(loaded, ev.BufferProgress(buffered_end=500)).buffered_percent == 100.0
    assert run(PlaybackState(), ev.BufferProgress(buffered_end=60)).buffered_fraction == 0.0

def test_playback_rate_only_from_menu(loaded):
    menu_open = run(loaded, ev.ToggleSettingsMenu())

    picked = reduce(menu_open, ev.SetPlaybackRate(rate=1.5))
    assert picked.state.playback_rate == 1.5
    assert picked.state.show_settings_menu is False
    assert picked.commands == (ev.ApplyPlaybackRate(rate=1.5),)

    assert run(loaded, ev.SetPlaybackRate(rate=3.0)).playback_rate == 1.0

def test_fullscreen_toggle_and_platform_mirror(loaded):
    entering = reduce(loaded, ev.ToggleFullscreen())
    assert entering.state.is_fullscreen is True
    assert entering.commands == (ev.RequestFullscreen(),)

    # e.g. the viewer pressed Escape
    exited = run(entering.state, ev.FullscreenChanged(is_fullscreen=False))
    assert exited.is_fullscreen is False

    assert reduce(exited, ev.ToggleFullscreen()).commands == (ev.RequestFullscreen(),)

def test_aspect_ratio_modes(loaded):
    state = run(loaded, ev.SetAspectRatio(mode=AspectRatioMode.RATIO_4_3))

    assert state.aspect_ratio.label == "4:3"
    assert state.aspect_ratio.forced_ratio == pytest.approx(4 / 3)
    assert AspectRatioMode.FIT_SCREEN.object_fit == "cover"
    assert AspectRatioMode.BEST_FIT.forced_ratio is None

def test_pointer_leaving_keeps_controls_while_menu_open(loaded):
    assert run(loaded, ev.PointerLeft()).show_controls is False
    assert run(loaded, ev.ToggleSettingsMenu(), ev.PointerLeft()).show_controls is True

def test_controls_timeout_and_interaction(loaded):
    hidden = run(loaded, ev.ControlsTimedOut())
    assert hidden.show_controls is False
    assert run(hidden, ev.Interaction()).show_controls is True

@pytest.mark.parametrize(
    "intent",
    [ev.SeekBy(seconds=10), ev.ToggleMute(), ev.TogglePlay(), ev.SetVolume(volume=0.2), ev.ToggleFullscreen()],
)
def test_keyboard_intents_bring_controls_back(loaded, intent):
    hidden = run(loaded, ev.ControlsTimedOut())

    assert run(hidden, intent).show_controls is True

def test_media_events_leave_hidden_controls_hidden(loaded):
    hidden = run(loaded, ev.ControlsTimedOut())

    assert run(hidden, ev.TimeUpdated(current_time=3), ev.Waiting()).show_controls is False

def test_media_failure_leaves_player_stalled(loaded):
    state = run(loaded, ev.Playing(), ev.MediaFailed(message="network error"))

    assert state.is_loading is True
    assert state.is_stalled
    assert state.error == "network error"
    # Progress events do not clear the stall
    assert run(state, ev.TimeUpdated(current_time=5)).is_stalled

def test_source_change_resets_progress_but_keeps_preferences(loaded):
    state = run(
        loaded,
        ev.SetVolume(volume=0.3),
        ev.SetPlaybackRate(rate=1.25),
        ev.SetAspectRatio(mode=AspectRatioMode.FILL),
        ev.TimeUpdated(current_time=80),
        ev.BufferProgress(buffered_end=100),
        ev.MediaFailed(),
    )

    transition = reduce(state, ev.SourceChanged(url="/api/v1/stream?token=new"))
    fresh = transition.state

    assert fresh.source == "/api/v1/stream?token=new"
    assert (fresh.current_time, fresh.duration, fresh.buffered_fraction) == (0.0, 0.0, 0.0)
    assert fresh.error is None
    assert fresh.is_loading is True
    assert (fresh.volume, fresh.playback_rate, fresh.aspect_ratio) == (0.3, 1.25, AspectRatioMode.FILL)
    assert transition.commands[0] == ev.LoadSource(url="/api/v1/stream?token=new")

def test_resume_position_applied_after_metadata():
    state = run(PlaybackState(), ev.SourceChanged(url="/s?token=a", resume_at=95.0))
    assert state.resume_at == 95.0

    transition = reduce(state, ev.MetadataLoaded(duration=90.0))

    assert transition.state.current_time == 90.0
    assert transition.state.resume_at is None
    assert transition.commands == (ev.Seek(time=90.0),)

def test_play_rejected_marks_paused(loaded):
    assert run(loaded, ev.PlayRejected()).is_playing is False

def test_unknown_event_is_an_error(loaded):
    class Bogus(ev.PlaybackEvent):
        pass

    with pytest.raises(TypeError):
        reduce(loaded, Bogus())

@pytest.mark.parametrize(
    "seconds, text",
    [(0, "0:00"), (9.9, "0:09"), (61, "1:01"), (3725, "62:05"), (float("nan"), "0:00"), (float("inf"), "0:00")],
)
def test_format_time(seconds, text):
    assert format_time(seconds) == text

def test_labels():
    assert volume_level(0) == "muted"
    assert volume_level(0.5) == "low"
    assert volume_level(0.9) == "high"
    assert speed_label(1.0) == "Normal"
    assert speed_label(0.75) == "0.75x"
