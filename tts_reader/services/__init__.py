"""Service layer helpers for external integrations."""

from .polly import (
    PollySpeechService,
    PollyVoice,
    SpeechSynthesisError,
    SynthesisResult,
    get_polly_speech_service,
)
from .usage import (
    UsageLedger,
    UsageRecord,
    UsageStoreError,
    UsageSummary,
    get_usage_ledger,
    summarize_usage,
    window_start_ms,
)

__all__ = [
    "PollySpeechService",
    "PollyVoice",
    "SpeechSynthesisError",
    "SynthesisResult",
    "get_polly_speech_service",
    "UsageLedger",
    "UsageRecord",
    "UsageStoreError",
    "UsageSummary",
    "get_usage_ledger",
    "summarize_usage",
    "window_start_ms",
]
