"""Reader session state machine over the playback adapter.

The controller decides per user action which backend speaks the text, fetches
remote audio when needed, keeps progress up to date by polling the adapter,
and writes every preference change through to the preference store. Nothing
raises across this boundary: failures become ``state`` plus ``error``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from tts_reader.config.settings import settings
from tts_reader.playback.adapter import PlaybackEngineAdapter
from tts_reader.playback.client import SynthesisApiClient, SynthesisApiError, TokenProvider
from tts_reader.playback.preferences import (
    MAX_SPEED,
    MIN_SPEED,
    PreferenceStore,
    clamp_speed,
    normalize_voice_key,
    split_voice_key,
)
from tts_reader.playback.types import Backend, PlaybackState, VoiceOption
from tts_reader.playback.voices import VoiceCatalog, resolve_selection

logger = logging.getLogger(__name__)

SPEED_INCREMENT = 0.1
SECONDS_PER_WORD = 0.4
PLAYBACK_ERROR_MESSAGE = "Error playing audio"
EMPTY_TEXT_MESSAGE = "Text is required and must be a non-empty string"
SYNTHESIS_FAILED_MESSAGE = "Failed to synthesize speech"


def estimate_duration(text: str, rate: float) -> float:
    """Rough spoken length in seconds until the handle knows better."""

    return len(text.split(" ")) * SECONDS_PER_WORD / rate


@dataclass
class PlaybackSession:
    """Progress bookkeeping for one play gesture."""

    generation: int = 0
    engine_in_use: Optional[Backend] = None
    rate: float = 1.0
    volume: float = 1.0
    progress: float = 0.0
    elapsed_seconds: float = 0.0
    total_seconds: float = 0.0
    finished: bool = False


class PlaybackSessionController:
    def __init__(
        self,
        adapter: PlaybackEngineAdapter,
        preferences: PreferenceStore,
        api: SynthesisApiClient,
        token_provider: TokenProvider,
        *,
        catalog: VoiceCatalog | None = None,
        poll_interval: float = settings.reader.poll_interval,
        max_text_length: int = settings.polly.max_text_length,
    ) -> None:
        self._adapter = adapter
        self._preferences = preferences
        self._api = api
        self._tokens = token_provider
        self._catalog = catalog or VoiceCatalog(api)
        self._poll_interval = poll_interval
        self._max_text_length = max_text_length

        stored = preferences.load()
        self._speed = stored.speed
        self._voice_key = stored.voice_key
        self._engine_choice = stored.engine
        self._banner_dismissed = stored.banner_dismissed

        self._state = PlaybackState.IDLE
        self._text = ""
        self._volume = 1.0
        self._authenticated = False
        self._voice_options: list[VoiceOption] = []
        self._loading_voices = False
        self._error = ""
        self._session = PlaybackSession(rate=self._speed)
        self._poll_task: Optional[asyncio.Task[None]] = None

        adapter.on_end(self._handle_end)
        adapter.on_error(self._handle_error)

    # -- read-only view -------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def session(self) -> PlaybackSession:
        return self._session

    @property
    def text(self) -> str:
        return self._text

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def voice_key(self) -> str:
        return self._voice_key

    @property
    def engine_choice(self) -> Backend:
        return self._engine_choice

    @property
    def effective_engine(self) -> Backend:
        """Guests always get local synthesis whatever they chose before."""

        return self._engine_choice if self._authenticated else Backend.LOCAL

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    @property
    def voice_options(self) -> list[VoiceOption]:
        return list(self._voice_options)

    @property
    def loading_voices(self) -> bool:
        return self._loading_voices

    @property
    def error(self) -> str:
        return self._error

    @property
    def show_banner(self) -> bool:
        return not self._authenticated and not self._banner_dismissed

    # -- inputs that invalidate the session -----------------------------

    def set_text(self, text: str) -> None:
        if text == self._text:
            return
        self._text = text
        self._discard()

    def select_voice(self, voice_key: str) -> None:
        voice_key = normalize_voice_key(voice_key)
        if voice_key == self._voice_key:
            return
        self._voice_key = self._preferences.save_voice(voice_key)
        self._discard()

    def select_engine(self, engine: Backend) -> None:
        engine = Backend(engine)
        if engine is Backend.REMOTE and not self._authenticated:
            logger.debug("Ignoring remote engine selection without a session")
            return
        if engine is self._engine_choice:
            return
        previous = self.effective_engine
        self._engine_choice = engine
        self._preferences.save_engine(engine)
        if self.effective_engine is not previous:
            self._discard()

    def seek(self, fraction: float) -> None:
        """Move the progress marker; playback restarts from idle on the next play."""

        fraction = max(0.0, min(1.0, float(fraction)))
        self._session.progress = fraction * 100
        self._session.elapsed_seconds = fraction * self._session.total_seconds
        self._discard()

    async def set_authenticated(self, authenticated: bool) -> None:
        if authenticated == self._authenticated:
            return
        self._authenticated = authenticated
        self._discard()
        if authenticated:
            self._engine_choice = Backend.REMOTE
            self._preferences.save_engine(Backend.REMOTE)
            await self.load_voices()
        else:
            self._voice_options = []

    # -- transport ------------------------------------------------------

    async def play_pause(self) -> None:
        if self._state is PlaybackState.PLAYING:
            self.pause()
        else:
            await self.play()

    async def play(self) -> None:
        self._error = ""
        if self._state is PlaybackState.PLAYING:
            return

        if self._state is PlaybackState.PAUSED and self._adapter.has_handle:
            self._enter_playing()
            await self._adapter.resume()
            return

        if (
            self._state is PlaybackState.IDLE
            and self._session.finished
            and self._adapter.active_backend is Backend.REMOTE
        ):
            await self._replay_remote()
            return

        await self._start()

    def pause(self) -> None:
        if self._state is not PlaybackState.PLAYING:
            return
        self._stop_polling()
        self._adapter.pause()
        self._state = PlaybackState.PAUSED
        self.refresh_progress()

    def set_volume(self, volume: float) -> None:
        self._volume = max(0.0, min(1.0, float(volume)))
        self._session.volume = self._volume
        self._adapter.set_volume(self._volume)

    def set_speed(self, speed: float) -> None:
        self._speed = self._preferences.save_speed(round(clamp_speed(speed), 2))
        if self._adapter.active_backend is Backend.REMOTE:
            self._adapter.set_speed(self._speed)
            self._session.rate = self._speed

    def increase_speed(self) -> None:
        self.set_speed(min(self._speed + SPEED_INCREMENT, MAX_SPEED))

    def decrease_speed(self) -> None:
        self.set_speed(max(self._speed - SPEED_INCREMENT, MIN_SPEED))

    def dismiss_banner(self) -> None:
        self._banner_dismissed = True
        self._preferences.save_banner_dismissed(True)

    async def load_voices(self) -> None:
        if not self._authenticated:
            self._voice_options = []
            return

        self._loading_voices = True
        try:
            token = await self._tokens.get_token()
            if not token:
                return
            options = await self._catalog.get_options(token)
        except SynthesisApiError as exc:
            logger.warning("Failed to load voices: %s", exc)
            return
        except Exception:
            logger.exception("Unexpected failure loading voices")
            return
        finally:
            self._loading_voices = False

        self._voice_options = options
        resolved = resolve_selection(options, self._voice_key)
        if resolved != self._voice_key:
            logger.info("Voice %s is not offered; using %s", self._voice_key, resolved)
            self.select_voice(resolved)

    async def dispose(self) -> None:
        self._session.generation += 1
        task = self._poll_task
        self._stop_polling()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._adapter.dispose()
        self._state = PlaybackState.IDLE

    def refresh_progress(self) -> None:
        """Read elapsed time and duration off the adapter into the session."""

        session = self._session
        elapsed = self._adapter.get_current_time()
        if session.engine_in_use is Backend.REMOTE:
            duration = self._adapter.get_duration()
            if duration > 0:
                session.total_seconds = duration
        session.elapsed_seconds = elapsed
        if session.total_seconds > 0:
            session.progress = min(elapsed / session.total_seconds * 100, 100.0)

    # -- internals ------------------------------------------------------

    def _validate(self) -> bool:
        if not self._text.strip():
            self._error = EMPTY_TEXT_MESSAGE
            return False
        if len(self._text) > self._max_text_length:
            self._error = (
                f"Text is too long. Maximum {self._max_text_length:,} characters allowed."
            )
            return False
        return True

    async def _start(self) -> None:
        if not self._validate():
            return

        self._discard()
        self._session = PlaybackSession(
            generation=self._session.generation,
            rate=self._speed,
            volume=self._volume,
        )
        if self.effective_engine is Backend.REMOTE:
            await self._start_remote(self._session.generation)
        else:
            self._start_local()

    async def _start_remote(self, generation: int) -> None:
        self._state = PlaybackState.LOADING
        text = self._text
        voice_id, tier = split_voice_key(self._voice_key)
        try:
            token = await self._tokens.get_token()
            if not token:
                raise SynthesisApiError("Not authenticated")
            result = await self._api.synthesize(
                text,
                voice_id=voice_id,
                engine=tier,
                token=token,
            )
        except SynthesisApiError as exc:
            if generation != self._session.generation:
                return
            logger.warning("Remote synthesis failed, speaking locally: %s", exc)
            self._error = str(exc) or SYNTHESIS_FAILED_MESSAGE
            self._start_local()
            return
        except Exception as exc:
            if generation != self._session.generation:
                return
            logger.exception("Unexpected synthesis failure, speaking locally")
            self._error = str(exc) or SYNTHESIS_FAILED_MESSAGE
            self._start_local()
            return

        if generation != self._session.generation:
            logger.debug("Discarding synthesis result for superseded session %d", generation)
            return

        session = self._session
        session.engine_in_use = Backend.REMOTE
        session.total_seconds = estimate_duration(text, self._speed)
        self._adapter.set_volume(self._volume)
        self._enter_playing()
        await self._adapter.load_audio(result.audio, result.content_type, self._speed)
        if generation == self._session.generation:
            duration = self._adapter.get_duration()
            if duration > 0:
                session.total_seconds = duration

    def _start_local(self) -> None:
        session = self._session
        session.engine_in_use = Backend.LOCAL
        session.rate = self._speed
        session.total_seconds = estimate_duration(self._text, self._speed)
        self._enter_playing()
        self._adapter.speak_local(self._text, self._speed, self._volume)

    async def _replay_remote(self) -> None:
        session = self._session
        session.finished = False
        session.progress = 0.0
        session.elapsed_seconds = 0.0
        session.rate = self._speed
        self._adapter.set_speed(self._speed)
        self._enter_playing()
        await self._adapter.restart()

    def _enter_playing(self) -> None:
        self._state = PlaybackState.PLAYING
        self._session.finished = False
        self._start_polling()

    def _discard(self) -> None:
        """Invalidate in-flight fetches and drop the handle."""

        self._session.generation += 1
        self._session.finished = False
        self._stop_polling()
        self._adapter.stop()
        self._state = PlaybackState.IDLE

    def _handle_end(self) -> None:
        self._stop_polling()
        session = self._session
        session.progress = 100.0
        session.elapsed_seconds = session.total_seconds
        session.finished = True
        self._state = PlaybackState.IDLE

    def _handle_error(self) -> None:
        logger.error("Playback failed for session %d", self._session.generation)
        self._stop_polling()
        self._error = PLAYBACK_ERROR_MESSAGE
        self._state = PlaybackState.IDLE
        self._session.generation += 1
        self._adapter.stop()

    def _start_polling(self) -> None:
        self._stop_polling()
        self._poll_task = asyncio.get_running_loop().create_task(self._poll())

    def _stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _poll(self) -> None:
        while self._state is PlaybackState.PLAYING:
            await asyncio.sleep(self._poll_interval)
            if self._state is not PlaybackState.PLAYING:
                break
            self.refresh_progress()


__all__ = [
    "EMPTY_TEXT_MESSAGE",
    "PLAYBACK_ERROR_MESSAGE",
    "PlaybackSession",
    "PlaybackSessionController",
    "SPEED_INCREMENT",
    "SYNTHESIS_FAILED_MESSAGE",
    "estimate_duration",
]
