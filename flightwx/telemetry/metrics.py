"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

from flightwx.domain.models import CircuitState

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

WEATHER_PROVIDER_CALLS = Counter(
    "weather_provider_calls_total",
    "Weather provider calls by outcome",
    ("provider", "outcome"),
)

WEATHER_CACHE_LOOKUPS = Counter(
    "weather_cache_lookups_total",
    "Weather cache lookups by result",
    ("result",),
)

CIRCUIT_STATE = Gauge(
    "weather_circuit_state",
    "Circuit breaker state per provider (0=closed, 1=half-open, 2=open)",
    ("provider",),
)

MONITOR_RUNS = Counter(
    "conflict_monitor_runs_total",
    "Conflict monitor runs by final status",
    ("status",),
)

MONITOR_RUN_DURATION = Histogram(
    "conflict_monitor_run_duration_seconds",
    "Conflict monitor run duration in seconds",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 240.0),
)

BOOKINGS_PROCESSED = Counter(
    "conflict_monitor_bookings_total",
    "Bookings evaluated by the conflict monitor by outcome",
    ("outcome",),
)

CONFLICTS_DETECTED = Counter(
    "weather_conflicts_total",
    "Weather conflicts detected by severity",
    ("severity",),
)

RESCHEDULE_OPTIONS_GENERATED = Counter(
    "reschedule_options_generated_total",
    "Reschedule options persisted",
)

_CIRCUIT_VALUES = {
    CircuitState.CLOSED: 0,
    CircuitState.HALF_OPEN: 1,
    CircuitState.OPEN: 2,
}


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def observe_provider_call(provider: str, outcome: str) -> None:
    WEATHER_PROVIDER_CALLS.labels(provider=provider, outcome=outcome).inc()


def observe_cache_lookup(hit: bool) -> None:
    WEATHER_CACHE_LOOKUPS.labels(result="hit" if hit else "miss").inc()


def set_circuit_state(provider: str, state: CircuitState) -> None:
    CIRCUIT_STATE.labels(provider=provider).set(_CIRCUIT_VALUES[state])


def observe_monitor_run(status: str, duration_seconds: float) -> None:
    """Record the outcome of a completed monitor run."""

    MONITOR_RUNS.labels(status=status).inc()
    MONITOR_RUN_DURATION.observe(max(duration_seconds, 0.0))


def observe_booking(outcome: str) -> None:
    BOOKINGS_PROCESSED.labels(outcome=outcome).inc()


def observe_conflict(severity: str) -> None:
    CONFLICTS_DETECTED.labels(severity=severity).inc()


def observe_options_generated(count: int) -> None:
    RESCHEDULE_OPTIONS_GENERATED.inc(count)
