"""Utility helpers for the TTS Reader backend."""

from .security import (
    AuthenticationError,
    TokenClaims,
    create_access_token,
    decode_access_token,
    verify_access_token,
)

__all__ = [
    "create_access_token",
    "decode_access_token",
    "verify_access_token",
    "AuthenticationError",
    "TokenClaims",
]
