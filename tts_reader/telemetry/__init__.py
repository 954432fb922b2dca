"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    SYNTHESIS_FAILURES,
    SYNTHESIZED_CHARACTERS,
    increment_synthesis_failure,
    observe_request,
    observe_synthesis,
)

__all__ = [
    "ERROR_COUNTER",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "SYNTHESIS_FAILURES",
    "SYNTHESIZED_CHARACTERS",
    "increment_synthesis_failure",
    "observe_request",
    "observe_synthesis",
]
