"""Durable reader preferences: speed, voice, engine choice and the guest banner."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from tts_reader.playback.types import Backend

logger = logging.getLogger(__name__)

SPEED_STORAGE_KEY = "tts-playback-speed"
VOICE_STORAGE_KEY = "tts-voice-id"
ENGINE_STORAGE_KEY = "tts-engine"
BANNER_DISMISSED_KEY = "tts-guest-banner-dismissed"

DEFAULT_SPEED = 1.0
MIN_SPEED = 0.5
MAX_SPEED = 4.0
DEFAULT_VOICE_ID = "Ruth"
DEFAULT_TIER = "neural"
DEFAULT_VOICE_KEY = f"{DEFAULT_VOICE_ID}:{DEFAULT_TIER}"

# Values written by earlier releases of the web reader.
_LEGACY_ENGINE_NAMES = {"browser": Backend.LOCAL, "polly": Backend.REMOTE}


class KeyValueStorage(Protocol):
    """Synchronous string key/value storage (browser ``localStorage`` semantics)."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value


class JsonFileStorage:
    """Key/value pairs persisted to a JSON file, rewritten on every ``set``."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._values = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self._write()

    def _read(self) -> dict[str, str]:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable preferences file %s", self._path)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(key): str(value) for key, value in raw.items()}

    def _write(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".prefs-", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._values, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


@dataclass
class UserPreferences:
    speed: float = DEFAULT_SPEED
    voice_key: str = DEFAULT_VOICE_KEY
    engine: Backend = Backend.REMOTE
    banner_dismissed: bool = False


def clamp_speed(speed: float) -> float:
    return max(MIN_SPEED, min(MAX_SPEED, float(speed)))


def normalize_voice_key(value: str) -> str:
    """Upgrade a bare voice id (older format) to ``"<id>:<default tier>"``."""

    value = value.strip()
    if not value:
        return DEFAULT_VOICE_KEY
    if ":" in value:
        return value
    return f"{value}:{DEFAULT_TIER}"


def split_voice_key(key: str) -> tuple[str, str]:
    voice_id, _, tier = normalize_voice_key(key).partition(":")
    return voice_id, tier or DEFAULT_TIER


def _parse_engine(value: Optional[str]) -> Backend:
    if value is None:
        return Backend.REMOTE
    if value in _LEGACY_ENGINE_NAMES:
        return _LEGACY_ENGINE_NAMES[value]
    try:
        return Backend(value)
    except ValueError:
        return Backend.REMOTE


def _parse_speed(value: Optional[str]) -> float:
    if value is None:
        return DEFAULT_SPEED
    try:
        speed = float(value)
    except ValueError:
        return DEFAULT_SPEED
    if speed != speed:  # NaN
        return DEFAULT_SPEED
    return clamp_speed(speed)


class PreferenceStore:
    """Reads preferences once and writes each change through immediately."""

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    def load(self) -> UserPreferences:
        voice = self._storage.get(VOICE_STORAGE_KEY)
        return UserPreferences(
            speed=_parse_speed(self._storage.get(SPEED_STORAGE_KEY)),
            voice_key=normalize_voice_key(voice) if voice else DEFAULT_VOICE_KEY,
            engine=_parse_engine(self._storage.get(ENGINE_STORAGE_KEY)),
            banner_dismissed=self._storage.get(BANNER_DISMISSED_KEY) == "true",
        )

    def save_speed(self, speed: float) -> float:
        speed = clamp_speed(speed)
        self._storage.set(SPEED_STORAGE_KEY, repr(speed))
        return speed

    def save_voice(self, voice_key: str) -> str:
        voice_key = normalize_voice_key(voice_key)
        self._storage.set(VOICE_STORAGE_KEY, voice_key)
        return voice_key

    def save_engine(self, engine: Backend) -> None:
        self._storage.set(ENGINE_STORAGE_KEY, engine.value)

    def save_banner_dismissed(self, dismissed: bool = True) -> None:
        self._storage.set(BANNER_DISMISSED_KEY, "true" if dismissed else "false")


__all__ = [
    "BANNER_DISMISSED_KEY",
    "DEFAULT_SPEED",
    "DEFAULT_TIER",
    "DEFAULT_VOICE_ID",
    "DEFAULT_VOICE_KEY",
    "ENGINE_STORAGE_KEY",
    "JsonFileStorage",
    "KeyValueStorage",
    "MAX_SPEED",
    "MIN_SPEED",
    "MemoryStorage",
    "PreferenceStore",
    "SPEED_STORAGE_KEY",
    "UserPreferences",
    "VOICE_STORAGE_KEY",
    "clamp_speed",
    "normalize_voice_key",
    "split_voice_key",
]
