"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    observe_booking,
    observe_cache_lookup,
    observe_conflict,
    observe_monitor_run,
    observe_options_generated,
    observe_provider_call,
    observe_request,
    set_circuit_state,
)

__all__ = [
    "ERROR_COUNTER",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "observe_booking",
    "observe_cache_lookup",
    "observe_conflict",
    "observe_monitor_run",
    "observe_options_generated",
    "observe_provider_call",
    "observe_request",
    "set_circuit_state",
]
