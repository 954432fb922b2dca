"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tts_reader.services import (
    PollySpeechService,
    UsageLedger,
    get_polly_speech_service,
    get_usage_ledger,
)
from tts_reader.utils import AuthenticationError, TokenClaims, verify_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> TokenClaims:
    """Resolve the caller's identity claims from the bearer token."""

    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return await verify_access_token(credentials.credentials)
    except AuthenticationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


CurrentUserDep = Annotated[TokenClaims, Depends(get_current_user)]
SpeechServiceDep = Annotated[PollySpeechService, Depends(get_polly_speech_service)]
UsageLedgerDep = Annotated[UsageLedger, Depends(get_usage_ledger)]


__all__ = [
    "bearer_scheme",
    "get_current_user",
    "CurrentUserDep",
    "SpeechServiceDep",
    "UsageLedgerDep",
]
