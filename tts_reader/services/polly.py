"""Amazon Polly speech synthesis and voice catalogue."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from tts_reader.config.settings import settings
from tts_reader.services.aws import create_boto3_client

logger = logging.getLogger(__name__)

SUPPORTED_ENGINES = ("standard", "neural", "long-form", "generative")
SUPPORTED_OUTPUT_FORMATS = ("mp3", "ogg_vorbis", "pcm")


@dataclass(frozen=True)
class SynthesisResult:
    """Audio produced by Polly for a single request."""

    audio_bytes: bytes
    content_type: str
    character_count: int
    voice_id: str
    engine: str
    output_format: str


@dataclass(frozen=True)
class PollyVoice:
    """Voice metadata as exposed to clients."""

    id: str
    name: str
    gender: str
    engines: tuple[str, ...]
    language_code: str
    language_name: str


class SpeechSynthesisError(RuntimeError):
    """Raised when Polly cannot synthesize speech or list voices."""


_polly_client = create_boto3_client("polly", region_name=settings.polly.region)


class PollySpeechService:
    """Thin facade over the Polly client used by the TTS controller."""

    def __init__(
        self,
        *,
        client: Any | None = None,
        default_voice_id: str = settings.polly.default_voice_id,
        default_engine: str = settings.polly.default_engine,
        output_format: str = settings.polly.output_format,
    ) -> None:
        self._client = client if client is not None else _polly_client
        self._default_voice_id = default_voice_id
        self._default_engine = default_engine
        self._output_format = output_format

    async def synthesize(
        self,
        text: str,
        *,
        voice_id: str | None = None,
        engine: str | None = None,
        output_format: str | None = None,
    ) -> SynthesisResult:
        """Convert text to speech and return the full audio payload."""

        voice = voice_id or self._default_voice_id
        engine_name = engine or self._default_engine
        audio_format = output_format or self._output_format
        logger.debug(
            "Polly synthesis voice=%s engine=%s format=%s chars=%d",
            voice,
            engine_name,
            audio_format,
            len(text),
        )

        try:
            response: dict[str, Any] = await run_in_threadpool(
                self._client.synthesize_speech,
                Text=text,
                VoiceId=voice,
                Engine=engine_name,
                OutputFormat=audio_format,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Polly synth failed for voice '%s'", voice)
            raise SpeechSynthesisError(f"Failed to synthesize speech: {exc}") from exc

        audio_stream = response.get("AudioStream")
        if audio_stream is None:
            raise SpeechSynthesisError("Polly returned no audio stream.")
        try:
            audio_bytes = await run_in_threadpool(audio_stream.read)
        finally:
            close = getattr(audio_stream, "close", None)
            if close is not None:
                close()
        if not audio_bytes:
            raise SpeechSynthesisError("Polly returned an empty audio stream.")

        return SynthesisResult(
            audio_bytes=audio_bytes,
            content_type=response.get("ContentType") or "audio/mpeg",
            character_count=len(text),
            voice_id=voice,
            engine=engine_name,
            output_format=audio_format,
        )

    async def list_voices(self) -> list[PollyVoice]:
        """Return every Polly voice, sorted by display name."""

        try:
            raw_voices = await run_in_threadpool(self._describe_all_voices)
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Polly describe_voices failed")
            raise SpeechSynthesisError(f"Failed to list voices: {exc}") from exc

        voices = [
            PollyVoice(
                id=raw["Id"],
                name=raw.get("Name") or raw["Id"],
                gender=raw.get("Gender", ""),
                engines=tuple(raw.get("SupportedEngines", ())),
                language_code=raw.get("LanguageCode", ""),
                language_name=raw.get("LanguageName", ""),
            )
            for raw in raw_voices
        ]
        voices.sort(key=lambda voice: voice.name)
        return voices

    def _describe_all_voices(self) -> list[dict[str, Any]]:
        collected: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {}
        while True:
            page = self._client.describe_voices(**kwargs)
            collected.extend(page.get("Voices", []))
            next_token = page.get("NextToken")
            if not next_token:
                return collected
            kwargs["NextToken"] = next_token


def get_polly_speech_service() -> PollySpeechService:
    """Return the default Polly speech service instance."""

    return _DEFAULT_SERVICE


_DEFAULT_SERVICE = PollySpeechService()


__all__ = [
    "PollySpeechService",
    "PollyVoice",
    "SpeechSynthesisError",
    "SynthesisResult",
    "SUPPORTED_ENGINES",
    "SUPPORTED_OUTPUT_FORMATS",
    "get_polly_speech_service",
]
