"""Pydantic schemas used as views in the MVC architecture."""

from .common import ErrorResponse, error_responses
from .tts import (
    TextToSpeechRequest,
    TextToSpeechResponse,
    VoiceListResponse,
    VoiceResponse,
)
from .usage import (
    ProfileResponse,
    ProfileUsage,
    RecentRequest,
    UsagePeriod,
    UsageResponse,
    UsageTotals,
    VoiceUsageResponse,
    WindowTotals,
)

__all__ = [
    "ErrorResponse",
    "error_responses",
    "TextToSpeechRequest",
    "TextToSpeechResponse",
    "VoiceListResponse",
    "VoiceResponse",
    "ProfileResponse",
    "ProfileUsage",
    "RecentRequest",
    "UsagePeriod",
    "UsageResponse",
    "UsageTotals",
    "VoiceUsageResponse",
    "WindowTotals",
]
