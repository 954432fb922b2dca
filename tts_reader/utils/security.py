"""Bearer token helpers for the managed identity provider and local development."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from tts_reader.config.settings import settings

logger = logging.getLogger(__name__)

_jwks_cache: dict[str, dict[str, Any]] = {}


class AuthenticationError(Exception):
    """Raised when a JWT cannot be decoded or is otherwise invalid."""


class TokenClaims(BaseModel):
    """Claims the API relies on; identity-provider extras are ignored."""

    sub: str
    exp: datetime
    email: str | None = None
    iat: datetime | None = None
    token_use: str | None = None

    model_config = {"extra": "ignore"}


def create_access_token(
    subject: str,
    email: str | None = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Generate a signed JWT for the provided subject using the shared secret."""

    now = datetime.now(timezone.utc)
    expires_delta = expires_delta or timedelta(
        minutes=settings.security.access_token_expires_minutes
    )
    to_encode: dict[str, Any] = {"sub": subject, "exp": now + expires_delta, "iat": now}
    if email is not None:
        to_encode["email"] = email

    secret = settings.security.jwt_secret_key.get_secret_value()
    return jwt.encode(
        to_encode,
        secret,
        algorithm=settings.security.jwt_algorithm,
    )


async def _fetch_jwks(url: str) -> dict[str, Any]:
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Failed to fetch JWKS from %s: %s", url, exc)
        raise AuthenticationError("Unable to load token signing keys") from exc


def _has_key_id(jwks: dict[str, Any], kid: str) -> bool:
    return any(key.get("kid") == kid for key in jwks.get("keys", []))


async def _load_jwks(url: str, kid: str | None = None) -> dict[str, Any]:
    """Return the identity provider's key set, refetching once for an unknown ``kid``."""

    cached = _jwks_cache.get(url)
    if cached is not None and (kid is None or _has_key_id(cached, kid)):
        return cached
    if cached is not None:
        logger.info("Signing key %s not in cached JWKS; refetching", kid)
    keys = await _fetch_jwks(url)
    _jwks_cache[url] = keys
    return keys


def decode_access_token(
    token: str,
    *,
    key: Any = None,
    algorithms: Optional[list[str]] = None,
) -> TokenClaims:
    """Decode and validate a bearer token, returning its claims.

    Without ``key`` the shared secret is used.
    """

    security = settings.security
    if key is None:
        key = security.jwt_secret_key.get_secret_value()
        algorithms = [security.jwt_algorithm]

    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=algorithms,
            audience=security.audience,
            issuer=security.issuer,
            options={
                "verify_aud": security.audience is not None,
                "verify_at_hash": False,
            },
        )
        return TokenClaims.model_validate(payload)
    except (JWTError, ValidationError) as exc:
        raise AuthenticationError("Invalid authentication token") from exc


async def verify_access_token(token: str) -> TokenClaims:
    """Verify a bearer token against the configured identity provider."""

    jwks_url = settings.security.jwks_url
    if not jwks_url:
        return decode_access_token(token)

    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except JWTError as exc:
        raise AuthenticationError("Invalid authentication token") from exc
    jwks = await _load_jwks(jwks_url, kid)
    return decode_access_token(token, key=jwks, algorithms=["RS256"])


__all__ = [
    "create_access_token",
    "decode_access_token",
    "verify_access_token",
    "AuthenticationError",
    "TokenClaims",
]
