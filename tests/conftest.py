"""Shared fakes for the API and playback tests."""

from __future__ import annotations

import asyncio
import math
from pathlib import Path
import sys
from typing import Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from tts_reader.playback import (  # noqa: E402
    InMemoryAudioStore,
    MemoryStorage,
    PlaybackEngineAdapter,
    PlaybackSessionController,
    PreferenceStore,
    RemoteVoice,
    SynthesizedAudio,
)


class FakeAudio:
    """Media-element stand-in recording what the adapter did to it."""

    def __init__(
        self,
        url: str,
        *,
        fail_play: bool = False,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.url = url
        self.volume = 1.0
        self.playback_rate = 1.0
        self.current_time = 0.0
        self.on_ended = None
        self.on_error = None
        self.duration = math.nan
        self.paused = True
        self.fail_play = fail_play
        self.gate = gate
        self.play_calls = 0

    async def play(self) -> None:
        self.play_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_play:
            raise RuntimeError("NotAllowedError: play() blocked")
        self.paused = False

    def pause(self) -> None:
        self.paused = True

    def finish(self) -> None:
        self.paused = True
        self.current_time = self.duration
        if self.on_ended is not None:
            self.on_ended()

    def fail(self) -> None:
        if self.on_error is not None:
            self.on_error()


class FakeAudioFactory:
    def __init__(self) -> None:
        self.created: list[FakeAudio] = []
        self.fail_next = False
        self.gate: Optional[asyncio.Event] = None

    def __call__(self, url: str) -> FakeAudio:
        audio = FakeAudio(url, fail_play=self.fail_next, gate=self.gate)
        self.fail_next = False
        self.created.append(audio)
        return audio

    @property
    def last(self) -> FakeAudio:
        return self.created[-1]


class FakeUtterance:
    def __init__(self, text: str) -> None:
        self.text = text
        self.volume = 1.0
        self.rate = 1.0
        self.on_end = None
        self.on_error = None


class FakeSpeech:
    def __init__(self) -> None:
        self.spoken: list[FakeUtterance] = []
        self.speaking = False
        self.paused = False
        self.cancel_calls = 0

    def create_utterance(self, text: str) -> FakeUtterance:
        return FakeUtterance(text)

    def speak(self, utterance: FakeUtterance) -> None:
        self.spoken.append(utterance)
        self.speaking = True
        self.paused = False

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def cancel(self) -> None:
        self.cancel_calls += 1
        self.speaking = False
        self.paused = False

    def finish(self) -> None:
        utterance = self.spoken[-1]
        self.speaking = False
        if utterance.on_end is not None:
            utterance.on_end()

    @property
    def last(self) -> FakeUtterance:
        return self.spoken[-1]


class CountingAudioStore(InMemoryAudioStore):
    def __init__(self) -> None:
        super().__init__()
        self.created = 0
        self.released = 0

    def create(self, data: bytes, content_type: str) -> str:
        self.created += 1
        return super().create(data, content_type)

    def release(self, url: str) -> None:
        self.released += 1
        super().release(url)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTokens:
    def __init__(self, token: Optional[str] = "id-token") -> None:
        self.token = token
        self.error: Optional[Exception] = None

    async def get_token(self) -> Optional[str]:
        if self.error is not None:
            raise self.error
        return self.token


class FakeApi:
    """Synthesis client double; ``gate`` holds a fetch open until released."""

    def __init__(self) -> None:
        self.synthesize_calls: list[dict] = []
        self.voice_calls = 0
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.voices = [
            RemoteVoice("Ruth", "Ruth", "Female", ("generative", "long-form", "neural"), "en-US", "US English"),
            RemoteVoice("Joanna", "Joanna", "Female", ("neural", "standard"), "en-US", "US English"),
            RemoteVoice("Matthew", "Matthew", "Male", ("generative", "neural", "standard"), "en-US", "US English"),
            RemoteVoice("Ivy", "Ivy", "Female", ("standard",), "en-US", "US English"),
        ]

    async def synthesize(self, text: str, *, voice_id: str, engine: str, token: str) -> SynthesizedAudio:
        self.synthesize_calls.append(
            {"text": text, "voice_id": voice_id, "engine": engine, "token": token}
        )
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return SynthesizedAudio(
            audio=f"audio:{text}".encode(),
            content_type="audio/mpeg",
            character_count=len(text),
            voice_id=voice_id,
            engine=engine,
        )

    async def get_voices(self, token: str) -> list[RemoteVoice]:
        self.voice_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.voices)


class PlaybackRig:
    """Adapter, fakes and controller wired together for one test."""

    def __init__(self, storage: MemoryStorage | None = None) -> None:
        self.audio = FakeAudioFactory()
        self.speech = FakeSpeech()
        self.store = CountingAudioStore()
        self.clock = FakeClock()
        self.api = FakeApi()
        self.tokens = FakeTokens()
        self.storage = storage if storage is not None else MemoryStorage()
        self.preferences = PreferenceStore(self.storage)
        self.adapter = PlaybackEngineAdapter(
            audio_factory=self.audio,
            speech=self.speech,
            resources=self.store,
            clock=self.clock,
        )
        self.controller = PlaybackSessionController(
            self.adapter,
            self.preferences,
            self.api,
            self.tokens,
            poll_interval=0.01,
        )


@pytest.fixture
def rig() -> PlaybackRig:
    return PlaybackRig()
