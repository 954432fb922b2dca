"""HTTP client for the synthesis API and the token provider contract."""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional, Protocol

import httpx

from tts_reader.config.settings import settings
from tts_reader.playback.types import RemoteVoice, SynthesizedAudio

logger = logging.getLogger(__name__)


class SynthesisApiError(RuntimeError):
    """Raised when the synthesis API cannot be reached or rejects a request.

    ``str(error)`` is the server's own message when one was returned, so it
    can be shown to the reader as-is.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TokenProvider(Protocol):
    async def get_token(self) -> Optional[str]: ...


class StaticTokenProvider:
    """Token provider for hosts that obtain the ID token out of band."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    async def get_token(self) -> Optional[str]:
        return self._token


class SynthesisApiClient:
    """Async client for ``/tts/synthesize`` and ``/tts/voices``."""

    def __init__(
        self,
        base_url: str = settings.reader.api_endpoint,
        *,
        timeout: float = settings.reader.request_timeout,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "SynthesisApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def get_voices(self, token: str) -> list[RemoteVoice]:
        data = await self._request("GET", "/tts/voices", token, "Failed to get voices")
        try:
            return [
                RemoteVoice(
                    id=item["id"],
                    name=item.get("name") or item["id"],
                    gender=item.get("gender", ""),
                    engines=tuple(item.get("engine") or ()),
                    language_code=item.get("languageCode", ""),
                    language_name=item.get("languageName", ""),
                )
                for item in data.get("voices") or []
            ]
        except (KeyError, TypeError, AttributeError) as exc:
            raise SynthesisApiError("Failed to get voices: malformed voice list") from exc

    async def synthesize(
        self,
        text: str,
        *,
        voice_id: str,
        engine: str,
        token: str,
    ) -> SynthesizedAudio:
        data = await self._request(
            "POST",
            "/tts/synthesize",
            token,
            "TTS synthesis failed",
            json={"text": text, "voiceId": voice_id, "engine": engine},
        )
        try:
            return SynthesizedAudio(
                audio=base64.b64decode(data["audioContent"], validate=True),
                content_type=data.get("contentType") or "audio/mpeg",
                character_count=int(data.get("characterCount") or len(text)),
                voice_id=data.get("voiceId") or voice_id,
                engine=data.get("engine") or engine,
            )
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise SynthesisApiError("TTS synthesis failed: malformed audio payload") from exc

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        failure: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(
                method,
                path,
                headers={"Authorization": f"Bearer {token}"},
                **kwargs,
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise SynthesisApiError(f"{failure}: {exc}") from exc

        if response.is_error:
            raise SynthesisApiError(_error_message(response), response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise SynthesisApiError(f"{failure}: invalid JSON response") from exc


def _error_message(response: httpx.Response) -> str:
    """Prefer the server's ``detail``/``error`` message over the raw body."""

    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("detail", "error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.text or f"HTTP {response.status_code}"


__all__ = [
    "StaticTokenProvider",
    "SynthesisApiClient",
    "SynthesisApiError",
    "TokenProvider",
]
