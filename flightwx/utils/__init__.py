"""Utility helpers for the FlightWx backend."""

from .resilience import (
    CircuitBreaker,
    CircuitSnapshot,
    RetryPolicy,
    is_transient_error,
    retry_with_jitter,
)

__all__ = [
    "CircuitBreaker",
    "CircuitSnapshot",
    "RetryPolicy",
    "is_transient_error",
    "retry_with_jitter",
]
