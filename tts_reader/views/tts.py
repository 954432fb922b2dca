"""Schemas for text-to-speech requests and responses."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TextToSpeechRequest(BaseModel):
    """Synthesis request; text is validated by the controller so errors stay 400s."""

    text: Optional[str] = None
    voice_id: Optional[str] = Field(default=None, alias="voiceId")
    engine: Optional[str] = None
    output_format: Optional[str] = Field(default=None, alias="outputFormat")

    model_config = ConfigDict(populate_by_name=True)


class TextToSpeechResponse(BaseModel):
    audio_content: str = Field(alias="audioContent")
    content_type: str = Field(alias="contentType")
    character_count: int = Field(alias="characterCount")
    voice_id: str = Field(alias="voiceId")
    engine: str

    model_config = ConfigDict(populate_by_name=True)


class VoiceResponse(BaseModel):
    id: str
    name: str
    gender: str
    engine: list[str]
    language_code: str = Field(alias="languageCode")
    language_name: str = Field(alias="languageName")

    model_config = ConfigDict(populate_by_name=True)


class VoiceListResponse(BaseModel):
    voices: list[VoiceResponse]
