"""Text-to-speech controller backed by Amazon Polly."""

from __future__ import annotations

import base64
import logging

from fastapi import APIRouter, HTTPException, status

from tts_reader.config.settings import settings
from tts_reader.controllers.dependencies import (
    CurrentUserDep,
    SpeechServiceDep,
    UsageLedgerDep,
)
from tts_reader.services import SpeechSynthesisError, UsageStoreError
from tts_reader.services.polly import SUPPORTED_ENGINES, SUPPORTED_OUTPUT_FORMATS
from tts_reader.telemetry import increment_synthesis_failure, observe_synthesis
from tts_reader.views import (
    TextToSpeechRequest,
    TextToSpeechResponse,
    VoiceListResponse,
    VoiceResponse,
    error_responses,
)

router = APIRouter(prefix="/tts", tags=["tts"])

logger = logging.getLogger(__name__)


def _validate_text(text: object) -> str:
    if not isinstance(text, str) or not text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Text is required and must be a non-empty string",
        )
    limit = settings.polly.max_text_length
    if len(text) > limit:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Text is too long. Maximum {limit:,} characters allowed.",
        )
    return text


@router.post(
    "/synthesize",
    response_model=TextToSpeechResponse,
    responses=error_responses(400, 401, 502),
)
async def synthesize(
    payload: TextToSpeechRequest,
    current_user: CurrentUserDep,
    speech_service: SpeechServiceDep,
    usage_ledger: UsageLedgerDep,
) -> TextToSpeechResponse:
    """Synthesize text with Polly, record the usage row and return base64 audio."""

    text = _validate_text(payload.text)
    voice_id = payload.voice_id or settings.polly.default_voice_id
    engine = payload.engine or settings.polly.default_engine
    output_format = payload.output_format or settings.polly.output_format

    if engine not in SUPPORTED_ENGINES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported engine '{engine}'.",
        )
    if output_format not in SUPPORTED_OUTPUT_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported output format '{output_format}'.",
        )

    try:
        result = await speech_service.synthesize(
            text,
            voice_id=voice_id,
            engine=engine,
            output_format=output_format,
        )
    except SpeechSynthesisError as exc:
        increment_synthesis_failure(engine)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc

    record = usage_ledger.build_record(
        user_id=current_user.sub,
        character_count=result.character_count,
        voice_id=result.voice_id,
        engine=result.engine,
        output_format=result.output_format,
    )
    try:
        await usage_ledger.record(record)
    except UsageStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc

    observe_synthesis(result.engine, result.character_count)
    logger.info(
        "Synthesized %d chars for user=%s voice=%s engine=%s",
        result.character_count,
        current_user.sub,
        result.voice_id,
        result.engine,
    )

    return TextToSpeechResponse(
        audio_content=base64.b64encode(result.audio_bytes).decode("ascii"),
        content_type=result.content_type,
        character_count=result.character_count,
        voice_id=result.voice_id,
        engine=result.engine,
    )


@router.get(
    "/voices",
    response_model=VoiceListResponse,
    responses=error_responses(401, 502),
)
async def list_voices(
    _current_user: CurrentUserDep,
    speech_service: SpeechServiceDep,
) -> VoiceListResponse:
    """List the voices Polly offers, sorted by name."""

    try:
        voices = await speech_service.list_voices()
    except SpeechSynthesisError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc

    return VoiceListResponse(
        voices=[
            VoiceResponse(
                id=voice.id,
                name=voice.name,
                gender=voice.gender,
                engine=list(voice.engines),
                language_code=voice.language_code,
                language_name=voice.language_name,
            )
            for voice in voices
        ]
    )
