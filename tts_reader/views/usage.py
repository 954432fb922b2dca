"""Schemas for usage and profile summaries."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UsagePeriod(BaseModel):
    days: int
    start_time: int = Field(alias="startTime")
    end_time: int = Field(alias="endTime")

    model_config = ConfigDict(populate_by_name=True)


class UsageTotals(BaseModel):
    total_requests: int = Field(alias="totalRequests")
    total_characters: int = Field(alias="totalCharacters")
    average_characters_per_request: int = Field(alias="averageCharactersPerRequest")

    model_config = ConfigDict(populate_by_name=True)


class VoiceUsageResponse(BaseModel):
    count: int
    characters: int


class RecentRequest(BaseModel):
    timestamp: int
    character_count: int = Field(alias="characterCount")
    voice_id: str = Field(alias="voiceId")
    engine: str

    model_config = ConfigDict(populate_by_name=True)


class UsageResponse(BaseModel):
    user_id: str = Field(alias="userId")
    period: UsagePeriod
    summary: UsageTotals
    voice_usage: dict[str, VoiceUsageResponse] = Field(alias="voiceUsage")
    recent_requests: list[RecentRequest] = Field(alias="recentRequests")

    model_config = ConfigDict(populate_by_name=True)


class WindowTotals(BaseModel):
    total_requests: int = Field(alias="totalRequests")
    total_characters: int = Field(alias="totalCharacters")

    model_config = ConfigDict(populate_by_name=True)


class ProfileUsage(BaseModel):
    last_30_days: WindowTotals = Field(alias="last30Days")
    first_usage: Optional[int] = Field(default=None, alias="firstUsage")
    last_usage: Optional[int] = Field(default=None, alias="lastUsage")

    model_config = ConfigDict(populate_by_name=True)


class ProfileResponse(BaseModel):
    user_id: str = Field(alias="userId")
    email: Optional[str] = None
    usage: ProfileUsage

    model_config = ConfigDict(populate_by_name=True)
