"""Voice catalogue: fetches remote voices once and expands them per tier."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from tts_reader.playback.preferences import (
    DEFAULT_TIER,
    DEFAULT_VOICE_ID,
    DEFAULT_VOICE_KEY,
    split_voice_key,
)
from tts_reader.playback.types import RemoteVoice, VoiceOption

logger = logging.getLogger(__name__)

# Tiers offered to the reader, in display order.
TIER_ORDER = {"neural": 0, "generative": 1}


class VoiceSource(Protocol):
    async def get_voices(self, token: str) -> list[RemoteVoice]: ...


def expand_voice_options(voices: Iterable[RemoteVoice]) -> list[VoiceOption]:
    """One option per supported tier of each voice, sorted by name then tier."""

    options = [
        VoiceOption(
            id=voice.id,
            name=voice.name,
            gender=voice.gender,
            language_code=voice.language_code,
            language_name=voice.language_name,
            tier=tier,
        )
        for voice in voices
        for tier in voice.engines
        if tier in TIER_ORDER
    ]
    options.sort(key=lambda option: (option.name, TIER_ORDER[option.tier]))
    return options


def resolve_selection(options: Iterable[VoiceOption], voice_key: str) -> str:
    """Keep ``voice_key`` when it is offered, otherwise fall back to the default."""

    if any(option.key == voice_key for option in options):
        return voice_key
    return DEFAULT_VOICE_KEY


class VoiceCatalog:
    """Caches the voice list for the lifetime of the reader session."""

    def __init__(self, source: VoiceSource) -> None:
        self._source = source
        self._voices: list[RemoteVoice] = []

    @property
    def cached(self) -> bool:
        return bool(self._voices)

    async def get_options(self, token: str) -> list[VoiceOption]:
        if not self._voices:
            self._voices = await self._source.get_voices(token)
            logger.debug("Fetched %d voices", len(self._voices))
        return expand_voice_options(self._voices)

    def clear(self) -> None:
        self._voices = []


__all__ = [
    "DEFAULT_TIER",
    "DEFAULT_VOICE_ID",
    "DEFAULT_VOICE_KEY",
    "TIER_ORDER",
    "VoiceCatalog",
    "VoiceOption",
    "VoiceSource",
    "expand_voice_options",
    "resolve_selection",
    "split_voice_key",
]
