"""Single control surface over remote audio handles and local speech."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from tts_reader.playback.primitives import (
    AudioFactory,
    AudioHandle,
    AudioResourceStore,
    PlaybackCallback,
    SpeechSynthesizer,
    SpeechUtterance,
)
from tts_reader.playback.types import Backend

logger = logging.getLogger(__name__)


@dataclass
class _ActiveHandle:
    """The one live handle; ``settled`` flips once end or error was delivered.

    ``paused`` is the requested state, which may be set while an audio
    handle's ``play()`` is still pending.
    """

    backend: Backend
    audio: Optional[AudioHandle] = None
    utterance: Optional[SpeechUtterance] = None
    started_at: float = 0.0
    paused_offset: float = 0.0
    paused: bool = False
    settled: bool = False


class PlaybackEngineAdapter:
    """Owns at most one audio handle and the transient resource behind it.

    Remote audio goes through ``load_remote`` / ``load_audio``; local speech
    through ``speak_local``. Either call tears down whatever was playing
    before, so exactly one backend is live at any time. Completion and error
    callbacks registered with ``on_end`` / ``on_error`` apply to the current
    handle and every later one, and fire at most once per playthrough.
    """

    def __init__(
        self,
        *,
        audio_factory: AudioFactory,
        speech: SpeechSynthesizer,
        resources: AudioResourceStore,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._audio_factory = audio_factory
        self._speech = speech
        self._resources = resources
        self._clock = clock
        self._active: Optional[_ActiveHandle] = None
        self._resource_url: Optional[str] = None
        self._volume = 1.0
        self._rate = 1.0
        self._on_end: Optional[PlaybackCallback] = None
        self._on_error: Optional[PlaybackCallback] = None

    @property
    def active_backend(self) -> Backend | None:
        return self._active.backend if self._active is not None else None

    @property
    def has_handle(self) -> bool:
        return self._active is not None

    async def load_remote(self, audio_url: str, rate: float) -> None:
        """Replace the current handle with one bound to ``audio_url`` and start it."""

        self.stop()
        await self._start_audio(audio_url, rate)

    async def load_audio(self, audio: bytes, content_type: str, rate: float) -> None:
        """Like ``load_remote`` for synthesized bytes; the adapter owns the resource."""

        self.stop()
        self._resource_url = self._resources.create(audio, content_type)
        await self._start_audio(self._resource_url, rate)

    def speak_local(self, text: str, rate: float, volume: float) -> None:
        """Replace the current handle with an on-device utterance and speak it."""

        self.stop()
        self._rate = rate
        self._volume = _clamp_volume(volume)

        utterance = self._speech.create_utterance(text)
        utterance.rate = rate
        utterance.volume = self._volume
        slot = _ActiveHandle(backend=Backend.LOCAL, utterance=utterance)
        utterance.on_end = lambda: self._notify_end(slot)
        utterance.on_error = lambda: self._notify_error(slot)

        self._active = slot
        slot.started_at = self._clock()
        self._speech.speak(utterance)

    def pause(self) -> None:
        slot = self._active
        if slot is None:
            return
        if slot.audio is not None:
            slot.paused = True
            slot.audio.pause()
            return
        if not slot.paused:
            self._speech.pause()
            slot.paused_offset = self._clock() - slot.started_at
            slot.paused = True

    async def resume(self) -> None:
        slot = self._active
        if slot is None:
            return
        if slot.audio is not None:
            slot.paused = False
            await self._play(slot)
            return
        if slot.paused:
            self._speech.resume()
            slot.started_at = self._clock() - slot.paused_offset
            slot.paused = False

    async def restart(self) -> None:
        """Play the current handle again from the beginning."""

        slot = self._active
        if slot is None:
            return
        if slot.audio is not None:
            slot.audio.current_time = 0
            slot.paused = False
            slot.settled = False
            await self._play(slot)
            return
        if slot.utterance is not None:
            self.speak_local(slot.utterance.text, self._rate, self._volume)

    def stop(self) -> None:
        """Halt playback, drop the handle and release the owned resource. Idempotent."""

        slot, self._active = self._active, None
        if slot is not None:
            if slot.audio is not None:
                slot.audio.on_ended = None
                slot.audio.on_error = None
                slot.audio.pause()
                slot.audio.current_time = 0
            else:
                self._speech.cancel()
        self._release_resource()

    def dispose(self) -> None:
        self.stop()
        self._on_end = None
        self._on_error = None

    def set_volume(self, volume: float) -> None:
        self._volume = _clamp_volume(volume)
        slot = self._active
        if slot is None:
            return
        if slot.audio is not None:
            slot.audio.volume = self._volume
        elif slot.utterance is not None:
            slot.utterance.volume = self._volume

    def set_speed(self, rate: float) -> None:
        self._rate = rate
        slot = self._active
        if slot is None:
            return
        if slot.audio is not None:
            slot.audio.playback_rate = rate
        elif slot.utterance is not None:
            # Engines read the rate when speaking starts.
            slot.utterance.rate = rate

    def get_current_time(self) -> float:
        slot = self._active
        if slot is None:
            return 0.0
        if slot.audio is not None:
            return _finite_or_zero(slot.audio.current_time)
        if slot.paused:
            return slot.paused_offset
        return max(0.0, self._clock() - slot.started_at)

    def get_duration(self) -> float:
        slot = self._active
        if slot is None or slot.audio is None:
            return 0.0
        return _finite_or_zero(slot.audio.duration)

    def is_paused(self) -> bool:
        slot = self._active
        if slot is None:
            return True
        if slot.audio is not None:
            return slot.paused or bool(slot.audio.paused)
        return slot.paused

    def on_end(self, callback: PlaybackCallback) -> None:
        self._on_end = callback

    def on_error(self, callback: PlaybackCallback) -> None:
        self._on_error = callback

    async def _start_audio(self, url: str, rate: float) -> None:
        self._rate = rate
        audio = self._audio_factory(url)
        audio.playback_rate = rate
        audio.volume = self._volume
        slot = _ActiveHandle(backend=Backend.REMOTE, audio=audio)
        audio.on_ended = lambda: self._notify_end(slot)
        audio.on_error = lambda: self._notify_error(slot)
        self._active = slot
        await self._play(slot)

    async def _play(self, slot: _ActiveHandle) -> None:
        audio = slot.audio
        if audio is None:
            return
        try:
            await audio.play()
        except Exception:
            logger.exception("Audio playback failed to start")
            self._notify_error(slot)
            return
        if slot is not self._active or slot.paused:
            # Superseded or paused while the start was pending.
            audio.pause()

    def _notify_end(self, slot: _ActiveHandle) -> None:
        if slot is not self._active or slot.settled:
            return
        slot.settled = True
        if slot.audio is None and not slot.paused:
            slot.paused_offset = max(0.0, self._clock() - slot.started_at)
        slot.paused = True
        if self._on_end is not None:
            self._on_end()

    def _notify_error(self, slot: _ActiveHandle) -> None:
        if slot is not self._active or slot.settled:
            return
        slot.settled = True
        if self._on_error is not None:
            self._on_error()

    def _release_resource(self) -> None:
        url, self._resource_url = self._resource_url, None
        if url is not None:
            self._resources.release(url)


def _clamp_volume(volume: float) -> float:
    return max(0.0, min(1.0, float(volume)))


def _finite_or_zero(value: float | None) -> float:
    if value is None:
        return 0.0
    value = float(value)
    if math.isnan(value) or math.isinf(value) or value < 0:
        return 0.0
    return value


__all__ = ["PlaybackEngineAdapter"]
