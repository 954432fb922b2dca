"""Profile endpoint combining identity claims with recent usage."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from tts_reader.config.settings import settings
from tts_reader.controllers.dependencies import CurrentUserDep, UsageLedgerDep
from tts_reader.services import UsageStoreError, summarize_usage, window_start_ms
from tts_reader.views import ProfileResponse, ProfileUsage, WindowTotals, error_responses

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=ProfileResponse, responses=error_responses(401, 502))
async def get_profile(
    current_user: CurrentUserDep,
    usage_ledger: UsageLedgerDep,
) -> ProfileResponse:
    try:
        records = await usage_ledger.query(
            current_user.sub,
            since_ms=window_start_ms(settings.usage.summary_days),
        )
    except UsageStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc

    summary = summarize_usage(records)
    return ProfileResponse(
        user_id=current_user.sub,
        email=current_user.email,
        usage=ProfileUsage(
            last_30_days=WindowTotals(
                total_requests=summary.total_requests,
                total_characters=summary.total_characters,
            ),
            first_usage=summary.first_usage,
            last_usage=summary.last_usage,
        ),
    )
