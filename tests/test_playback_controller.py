"""Tests for the reader session state machine."""

from __future__ import annotations

import asyncio

import pytest

from tts_reader.playback import (
    Backend,
    MemoryStorage,
    PlaybackState,
    PreferenceStore,
    SynthesisApiError,
)
from tts_reader.playback.controller import (
    EMPTY_TEXT_MESSAGE,
    PLAYBACK_ERROR_MESSAGE,
    SYNTHESIS_FAILED_MESSAGE,
)
from tts_reader.playback.preferences import ENGINE_STORAGE_KEY, SPEED_STORAGE_KEY, VOICE_STORAGE_KEY

from conftest import PlaybackRig

TEXT = "one two three four"


async def _signed_in(rig: PlaybackRig) -> PlaybackRig:
    await rig.controller.set_authenticated(True)
    rig.controller.set_text(TEXT)
    return rig


@pytest.mark.asyncio
async def test_guest_play_uses_local_speech_with_estimate(rig):
    controller = rig.controller
    controller.set_text(TEXT)

    await controller.play()

    assert controller.effective_engine is Backend.LOCAL
    assert controller.state is PlaybackState.PLAYING
    assert rig.speech.last.text == TEXT
    assert rig.api.synthesize_calls == []
    assert controller.session.total_seconds == pytest.approx(1.6)
    await controller.dispose()


@pytest.mark.asyncio
async def test_signed_in_play_fetches_remote_audio(rig):
    controller = (await _signed_in(rig)).controller

    await controller.play()

    assert controller.state is PlaybackState.PLAYING
    assert rig.api.synthesize_calls == [
        {"text": TEXT, "voice_id": "Ruth", "engine": "neural", "token": "id-token"}
    ]
    assert controller.session.engine_in_use is Backend.REMOTE
    assert rig.store.created == 1
    assert rig.audio.last.play_calls == 1
    assert rig.speech.spoken == []
    await controller.dispose()


@pytest.mark.asyncio
async def test_remote_failure_falls_back_to_local(rig):
    controller = (await _signed_in(rig)).controller
    rig.api.error = SynthesisApiError("Service unavailable", 502)

    await controller.play()

    assert controller.state is PlaybackState.PLAYING
    assert controller.error == "Service unavailable"
    assert controller.session.engine_in_use is Backend.LOCAL
    assert rig.speech.last.text == TEXT
    assert rig.audio.created == []
    await controller.dispose()


@pytest.mark.asyncio
async def test_missing_token_falls_back_to_local(rig):
    rig.tokens.token = None
    controller = (await _signed_in(rig)).controller

    await controller.play()

    assert rig.api.synthesize_calls == []
    assert controller.error == "Not authenticated"
    assert controller.session.engine_in_use is Backend.LOCAL
    await controller.dispose()


@pytest.mark.asyncio
async def test_pause_and_resume_never_refetch(rig):
    controller = (await _signed_in(rig)).controller

    await controller.play_pause()
    controller.pause()
    assert controller.state is PlaybackState.PAUSED
    await controller.play_pause()
    await controller.play_pause()

    assert controller.state is PlaybackState.PAUSED
    assert len(rig.api.synthesize_calls) == 1
    assert len(rig.audio.created) == 1
    assert rig.audio.last.play_calls == 2
    await controller.dispose()


@pytest.mark.asyncio
async def test_text_change_stops_and_releases_every_cycle(rig):
    controller = (await _signed_in(rig)).controller

    for cycle in range(3):
        controller.set_text(f"passage number {cycle}")
        await controller.play()
        assert controller.state is PlaybackState.PLAYING
        controller.set_text(f"edited passage {cycle}")
        assert controller.state is PlaybackState.IDLE
        assert rig.adapter.has_handle is False

    assert rig.store.created == 3
    assert rig.store.released == 3
    assert len(rig.store) == 0


@pytest.mark.asyncio
async def test_seek_sets_position_and_returns_to_idle(rig):
    controller = (await _signed_in(rig)).controller
    await controller.play()
    rig.audio.last.duration = 120.0
    controller.refresh_progress()

    controller.seek(0.5)

    assert controller.session.elapsed_seconds == pytest.approx(60.0)
    assert controller.session.progress == pytest.approx(50.0)
    assert controller.state is PlaybackState.IDLE
    assert rig.adapter.has_handle is False


@pytest.mark.asyncio
async def test_superseded_fetch_is_discarded(rig):
    controller = (await _signed_in(rig)).controller
    rig.api.gate = asyncio.Event()

    pending = asyncio.create_task(controller.play())
    while not rig.api.synthesize_calls:
        await asyncio.sleep(0)
    assert controller.state is PlaybackState.LOADING

    controller.set_text("something else entirely")
    rig.api.gate.set()
    await pending

    assert controller.state is PlaybackState.IDLE
    assert rig.audio.created == []
    assert rig.store.created == 0


@pytest.mark.asyncio
async def test_second_play_supersedes_first_fetch(rig):
    controller = (await _signed_in(rig)).controller
    rig.api.gate = asyncio.Event()

    first = asyncio.create_task(controller.play())
    while len(rig.api.synthesize_calls) < 1:
        await asyncio.sleep(0)
    second = asyncio.create_task(controller.play())
    while len(rig.api.synthesize_calls) < 2:
        await asyncio.sleep(0)
    rig.api.gate.set()
    await asyncio.gather(first, second)

    assert controller.state is PlaybackState.PLAYING
    assert len(rig.audio.created) == 1
    assert rig.store.created == 1
    await controller.dispose()


@pytest.mark.asyncio
async def test_token_refresh_failure_falls_back_to_local(rig):
    rig.tokens.error = RuntimeError("token refresh failed")
    controller = (await _signed_in(rig)).controller

    await controller.play()

    assert controller.voice_options == []
    assert controller.loading_voices is False
    assert controller.state is PlaybackState.PLAYING
    assert controller.error == "token refresh failed"
    assert controller.session.engine_in_use is Backend.LOCAL
    assert rig.speech.last.text == TEXT
    await controller.dispose()


@pytest.mark.asyncio
async def test_malformed_synthesis_result_falls_back_to_local(rig):
    controller = (await _signed_in(rig)).controller
    rig.api.error = ValueError()

    await controller.play()

    assert controller.state is PlaybackState.PLAYING
    assert controller.error == SYNTHESIS_FAILED_MESSAGE
    assert controller.session.engine_in_use is Backend.LOCAL
    assert rig.audio.created == []
    await controller.dispose()


@pytest.mark.asyncio
async def test_pause_while_audio_start_is_pending_stays_silent(rig):
    controller = (await _signed_in(rig)).controller
    rig.audio.gate = asyncio.Event()

    pending = asyncio.create_task(controller.play())
    while not rig.audio.created or rig.audio.last.play_calls == 0:
        await asyncio.sleep(0)

    controller.pause()
    rig.audio.gate.set()
    await pending

    handle = rig.audio.last
    assert controller.state is PlaybackState.PAUSED
    assert handle.paused is True
    assert rig.adapter.is_paused() is True

    await controller.play()

    assert controller.state is PlaybackState.PLAYING
    assert handle.paused is False
    assert handle.play_calls == 2
    assert len(rig.api.synthesize_calls) == 1
    await controller.dispose()


@pytest.mark.asyncio
async def test_playback_error_leaves_session_idle(rig):
    controller = (await _signed_in(rig)).controller
    rig.audio.fail_next = True

    await controller.play()

    assert controller.state is PlaybackState.IDLE
    assert controller.error == PLAYBACK_ERROR_MESSAGE
    assert rig.store.released == rig.store.created == 1


@pytest.mark.asyncio
async def test_ended_remote_audio_replays_without_refetch(rig):
    controller = (await _signed_in(rig)).controller
    await controller.play()
    handle = rig.audio.last

    handle.finish()
    assert controller.state is PlaybackState.IDLE
    assert controller.session.progress == 100.0

    await controller.play()

    assert controller.state is PlaybackState.PLAYING
    assert len(rig.api.synthesize_calls) == 1
    assert handle.play_calls == 2
    assert controller.session.progress == 0.0
    await controller.dispose()


@pytest.mark.asyncio
async def test_local_end_sets_full_progress(rig):
    controller = rig.controller
    controller.set_text(TEXT)
    await controller.play()

    rig.speech.finish()

    assert controller.state is PlaybackState.IDLE
    assert controller.session.progress == 100.0
    assert controller.session.elapsed_seconds == controller.session.total_seconds


@pytest.mark.asyncio
async def test_polling_updates_progress_and_stops_on_pause(rig):
    controller = (await _signed_in(rig)).controller
    await controller.play()
    handle = rig.audio.last
    handle.duration = 10.0
    handle.current_time = 2.5

    await asyncio.sleep(0.05)
    assert controller.session.total_seconds == 10.0
    assert controller.session.elapsed_seconds == 2.5
    assert controller.session.progress == pytest.approx(25.0)

    controller.pause()
    handle.current_time = 7.0
    await asyncio.sleep(0.05)
    assert controller.session.elapsed_seconds == 2.5
    await controller.dispose()


@pytest.mark.asyncio
async def test_blank_and_oversized_text_rejected_before_network(rig):
    controller = (await _signed_in(rig)).controller

    controller.set_text("   ")
    await controller.play()
    assert controller.error == EMPTY_TEXT_MESSAGE
    assert controller.state is PlaybackState.IDLE

    controller.set_text("x" * 100_001)
    await controller.play()
    assert controller.error == "Text is too long. Maximum 100,000 characters allowed."
    assert rig.api.synthesize_calls == []
    assert rig.speech.spoken == []


@pytest.mark.asyncio
async def test_login_switches_to_remote_and_persists():
    rig = PlaybackRig(MemoryStorage({ENGINE_STORAGE_KEY: "browser"}))
    controller = rig.controller
    assert controller.engine_choice is Backend.LOCAL

    await controller.set_authenticated(True)

    assert controller.engine_choice is Backend.REMOTE
    assert controller.effective_engine is Backend.REMOTE
    assert rig.storage.get(ENGINE_STORAGE_KEY) == "remote"


@pytest.mark.asyncio
async def test_logout_forces_local_and_clears_voices(rig):
    controller = (await _signed_in(rig)).controller
    await controller.play()
    assert controller.voice_options

    await controller.set_authenticated(False)

    assert controller.effective_engine is Backend.LOCAL
    assert controller.state is PlaybackState.IDLE
    assert controller.voice_options == []
    assert rig.adapter.has_handle is False


def test_guest_cannot_select_remote_engine():
    rig = PlaybackRig(MemoryStorage({ENGINE_STORAGE_KEY: "local"}))

    rig.controller.select_engine(Backend.REMOTE)

    assert rig.controller.engine_choice is Backend.LOCAL
    assert rig.storage.get(ENGINE_STORAGE_KEY) == "local"


@pytest.mark.asyncio
async def test_engine_change_discards_session(rig):
    controller = (await _signed_in(rig)).controller
    await controller.play()

    controller.select_engine(Backend.LOCAL)

    assert controller.state is PlaybackState.IDLE
    assert rig.adapter.has_handle is False
    assert rig.storage.get(ENGINE_STORAGE_KEY) == "local"


@pytest.mark.asyncio
async def test_voice_list_is_expanded_sorted_and_cached():
    rig = PlaybackRig(MemoryStorage({VOICE_STORAGE_KEY: "Matthew:generative"}))
    controller = rig.controller

    await controller.set_authenticated(True)
    await controller.load_voices()

    assert [option.key for option in controller.voice_options] == [
        "Joanna:neural",
        "Matthew:neural",
        "Matthew:generative",
        "Ruth:neural",
        "Ruth:generative",
    ]
    assert controller.voice_key == "Matthew:generative"
    assert rig.api.voice_calls == 1


@pytest.mark.asyncio
async def test_unavailable_voice_resets_to_default():
    rig = PlaybackRig(MemoryStorage({VOICE_STORAGE_KEY: "Ivy"}))
    controller = rig.controller
    assert controller.voice_key == "Ivy:neural"

    await controller.set_authenticated(True)

    assert controller.voice_key == "Ruth:neural"
    assert rig.storage.get(VOICE_STORAGE_KEY) == "Ruth:neural"


@pytest.mark.asyncio
async def test_voice_list_failure_keeps_selection(rig):
    rig.api.error = SynthesisApiError("Failed to get voices", 500)

    await rig.controller.set_authenticated(True)

    assert rig.controller.voice_options == []
    assert rig.controller.loading_voices is False
    assert rig.controller.voice_key == "Ruth:neural"


def test_legacy_voice_preference_gains_default_tier():
    rig = PlaybackRig(MemoryStorage({VOICE_STORAGE_KEY: "Joanna"}))

    assert rig.controller.voice_key == "Joanna:neural"


@pytest.mark.parametrize("speed", [0.5, 1.0, 1.7, 2.35, 4.0])
def test_speed_round_trips_through_storage(rig, speed):
    rig.controller.set_speed(speed)

    assert PreferenceStore(rig.storage).load().speed == pytest.approx(speed)


def test_speed_out_of_range_is_clamped(rig):
    rig.controller.set_speed(9.0)
    assert rig.controller.speed == 4.0
    assert float(rig.storage.get(SPEED_STORAGE_KEY)) == 4.0

    rig.controller.set_speed(0.1)
    assert rig.controller.speed == 0.5


def test_speed_steps_stay_in_range(rig):
    rig.controller.increase_speed()
    assert rig.controller.speed == pytest.approx(1.1)

    rig.controller.set_speed(3.95)
    rig.controller.increase_speed()
    assert rig.controller.speed == 4.0

    rig.controller.set_speed(0.55)
    rig.controller.decrease_speed()
    assert rig.controller.speed == 0.5


@pytest.mark.asyncio
async def test_speed_and_volume_reach_live_remote_handle(rig):
    controller = (await _signed_in(rig)).controller
    await controller.play()

    controller.set_speed(2.0)
    controller.set_volume(0.25)

    assert rig.audio.last.playback_rate == 2.0
    assert rig.audio.last.volume == 0.25
    await controller.dispose()


def test_banner_dismissal_is_persisted(rig):
    assert rig.controller.show_banner is True

    rig.controller.dismiss_banner()

    assert rig.controller.show_banner is False
    assert PreferenceStore(rig.storage).load().banner_dismissed is True
