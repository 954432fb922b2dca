"""Typed containers shared across the playback core.

Kept in their own module so the adapter, client, catalogue and controller can
import them without circular dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Backend(str, Enum):
    """Which synthesis path produces the audio for a session."""

    LOCAL = "local"
    REMOTE = "remote"


class PlaybackState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class RemoteVoice:
    """A voice as listed by ``GET /tts/voices``."""

    id: str
    name: str
    gender: str
    engines: tuple[str, ...]
    language_code: str
    language_name: str


@dataclass(frozen=True)
class VoiceOption:
    """One selectable (voice, tier) pair."""

    id: str
    name: str
    gender: str
    language_code: str
    language_name: str
    tier: str

    @property
    def key(self) -> str:
        return f"{self.id}:{self.tier}"

    @property
    def label(self) -> str:
        return f"{self.name} ({self.gender}) - {self.tier.capitalize()}"


@dataclass(frozen=True)
class SynthesizedAudio:
    """Decoded response of ``POST /tts/synthesize``."""

    audio: bytes
    content_type: str
    character_count: int
    voice_id: str
    engine: str


__all__ = [
    "Backend",
    "PlaybackState",
    "RemoteVoice",
    "SynthesizedAudio",
    "VoiceOption",
]
