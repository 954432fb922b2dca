"""Usage statistics for the authenticated user."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from tts_reader.config.settings import settings
from tts_reader.controllers.dependencies import CurrentUserDep, UsageLedgerDep
from tts_reader.services import UsageStoreError, summarize_usage, window_start_ms
from tts_reader.services.usage import now_ms
from tts_reader.views import (
    RecentRequest,
    UsagePeriod,
    UsageResponse,
    UsageTotals,
    VoiceUsageResponse,
    error_responses,
)

router = APIRouter(prefix="/usage", tags=["usage"])


@router.get("", response_model=UsageResponse, responses=error_responses(401, 502))
async def get_usage(
    current_user: CurrentUserDep,
    usage_ledger: UsageLedgerDep,
    days: int = Query(default=settings.usage.summary_days, ge=1),
    limit: int = Query(default=settings.usage.default_limit, ge=1),
) -> UsageResponse:
    """Summarize the caller's most recent requests within the last ``days`` days."""

    end_time = now_ms()
    start_time = window_start_ms(days, reference_ms=end_time)
    try:
        records = await usage_ledger.query(
            current_user.sub,
            since_ms=start_time,
            limit=limit,
        )
    except UsageStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc

    summary = summarize_usage(records)
    return UsageResponse(
        user_id=current_user.sub,
        period=UsagePeriod(days=days, start_time=start_time, end_time=end_time),
        summary=UsageTotals(
            total_requests=summary.total_requests,
            total_characters=summary.total_characters,
            average_characters_per_request=summary.average_characters_per_request,
        ),
        voice_usage={
            voice: VoiceUsageResponse(count=usage.count, characters=usage.characters)
            for voice, usage in summary.voice_usage.items()
        },
        recent_requests=[
            RecentRequest(
                timestamp=record.timestamp,
                character_count=record.character_count,
                voice_id=record.voice_id,
                engine=record.engine,
            )
            for record in records[: settings.usage.recent_requests]
        ],
    )
