"""Common response schemas."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    detail: str


def error_responses(*status_codes: int) -> dict[int | str, dict]:
    """OpenAPI ``responses`` entry documenting the ``{"detail": ...}`` error body."""

    return {code: {"model": ErrorResponse} for code in status_codes}
