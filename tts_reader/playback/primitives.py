"""Contracts for the platform audio primitives the adapter drives.

The playback core never talks to a sound device directly. A host embeds it by
supplying:

* an ``AudioFactory`` that opens an ``AudioHandle`` for a resource URL (an
  audio element, a media player widget, ...);
* a ``SpeechSynthesizer`` for on-device speech;
* an ``AudioResourceStore`` that turns synthesized bytes into a URL the audio
  factory can open, and frees it again.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Optional, Protocol
from uuid import uuid4

logger = logging.getLogger(__name__)

PlaybackCallback = Callable[[], None]

_EXTENSIONS = {
    "audio/mpeg": ".mp3",
    "audio/ogg": ".ogg",
    "audio/pcm": ".pcm",
    "audio/wav": ".wav",
}


class AudioHandle(Protocol):
    """A loaded audio resource with media-element semantics.

    ``play()`` may fail (decode error, autoplay policy); it signals that by
    raising. ``duration`` is 0 or NaN until the media metadata is known.
    """

    volume: float
    playback_rate: float
    current_time: float
    on_ended: Optional[PlaybackCallback]
    on_error: Optional[PlaybackCallback]

    @property
    def duration(self) -> float: ...

    @property
    def paused(self) -> bool: ...

    async def play(self) -> None: ...

    def pause(self) -> None: ...


AudioFactory = Callable[[str], AudioHandle]


class SpeechUtterance(Protocol):
    text: str
    volume: float
    rate: float
    on_end: Optional[PlaybackCallback]
    on_error: Optional[PlaybackCallback]


class SpeechSynthesizer(Protocol):
    """Process-wide on-device speech engine (one utterance speaks at a time)."""

    @property
    def speaking(self) -> bool: ...

    @property
    def paused(self) -> bool: ...

    def create_utterance(self, text: str) -> SpeechUtterance: ...

    def speak(self, utterance: SpeechUtterance) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def cancel(self) -> None: ...


class AudioResourceStore(Protocol):
    def create(self, data: bytes, content_type: str) -> str: ...

    def release(self, url: str) -> None: ...


class InMemoryAudioStore:
    """Keeps synthesized audio in memory under ``blob:`` style URLs."""

    def __init__(self) -> None:
        self._blobs: dict[str, tuple[bytes, str]] = {}

    def create(self, data: bytes, content_type: str) -> str:
        url = f"blob:tts-reader/{uuid4()}"
        self._blobs[url] = (data, content_type)
        return url

    def release(self, url: str) -> None:
        self._blobs.pop(url, None)

    def get(self, url: str) -> tuple[bytes, str] | None:
        return self._blobs.get(url)

    def __len__(self) -> int:
        return len(self._blobs)


class TempFileAudioStore:
    """Writes synthesized audio to temporary files for file-based players."""

    def __init__(self, directory: str | Path | None = None) -> None:
        self._directory = Path(directory) if directory is not None else None
        self._files: set[Path] = set()

    def create(self, data: bytes, content_type: str) -> str:
        suffix = _EXTENSIONS.get(content_type.split(";", 1)[0].strip(), ".bin")
        with tempfile.NamedTemporaryFile(
            prefix="tts-reader-",
            suffix=suffix,
            dir=self._directory,
            delete=False,
        ) as handle:
            handle.write(data)
            path = Path(handle.name)
        self._files.add(path)
        return path.as_uri()

    def release(self, url: str) -> None:
        path = next((item for item in self._files if item.as_uri() == url), None)
        if path is None:
            return
        self._files.discard(path)
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove temporary audio file %s", path)

    def release_all(self) -> None:
        for path in list(self._files):
            self.release(path.as_uri())

    def __len__(self) -> int:
        return len(self._files)


__all__ = [
    "AudioFactory",
    "AudioHandle",
    "AudioResourceStore",
    "InMemoryAudioStore",
    "PlaybackCallback",
    "SpeechSynthesizer",
    "SpeechUtterance",
    "TempFileAudioStore",
]
