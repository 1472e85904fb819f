"""Fault-tolerant weather lookups across redundant providers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Mapping, Optional, Sequence

import httpx

from flightwx.application.interfaces import WeatherProviderInterface
from flightwx.domain.errors import (
    CircuitOpenError,
    FlightWxError,
    ForecastOutOfRange,
    WeatherUnavailable,
)
from flightwx.domain.models import Coordinate, WeatherReading
from flightwx.services.weather_cache import WeatherCache
from flightwx.telemetry import observe_cache_lookup, observe_provider_call, set_circuit_state
from flightwx.utils.resilience import CircuitBreaker, CircuitSnapshot, RetryPolicy, retry_with_jitter

logger = logging.getLogger(__name__)

SINGLE_SOURCE_CONFIDENCE = 80.0
VISIBILITY_TOLERANCE = 0.10
WIND_TOLERANCE = 0.15
TEMPERATURE_TOLERANCE = 0.05


@dataclass(frozen=True)
class CrossValidatedReading:
    """Primary reading plus the agreement score between providers."""

    reading: WeatherReading
    confidence: float
    sources: tuple[str, ...]


def agreement_confidence(primary: WeatherReading, secondary: WeatherReading) -> float:
    """Percentage of the visibility, wind and temperature checks that agree."""

    checks = (
        abs(primary.visibility - secondary.visibility) <= primary.visibility * VISIBILITY_TOLERANCE,
        abs(primary.wind_speed - secondary.wind_speed) <= primary.wind_speed * WIND_TOLERANCE,
        abs(primary.temperature - secondary.temperature)
        <= abs(primary.temperature) * TEMPERATURE_TOLERANCE,
    )
    return round(100.0 * sum(checks) / len(checks), 2)


class WeatherGateway:
    """Cache-first weather access with primary/secondary provider fallback.

    Each provider call goes through that provider's circuit breaker and a
    jittered exponential retry. A provider whose circuit is open is skipped
    immediately so the other provider (or the cache) can still answer.
    """

    def __init__(
        self,
        providers: Sequence[WeatherProviderInterface],
        cache: WeatherCache,
        *,
        breakers: Optional[Mapping[str, CircuitBreaker]] = None,
        retry_policy: RetryPolicy = RetryPolicy(),
        sweep_interval: float = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not providers:
            raise ValueError("WeatherGateway requires at least one provider")
        self._providers = list(providers)
        self._cache = cache
        self._breakers = dict(breakers or {})
        for provider in self._providers:
            self._breakers.setdefault(
                provider.name, CircuitBreaker(provider.name, ignored=(ForecastOutOfRange,))
            )
        self._retry_policy = retry_policy
        self._sweep_interval = sweep_interval
        self._sleep = sleep
        self._sweep_task: Optional[asyncio.Task[None]] = None

    @property
    def cache(self) -> WeatherCache:
        return self._cache

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self._providers]

    def breaker(self, provider_name: str) -> CircuitBreaker:
        return self._breakers[provider_name]

    def circuit_snapshots(self) -> list[CircuitSnapshot]:
        return [self._breakers[name].snapshot() for name in self.provider_names]

    async def get(self, coordinate: Coordinate, at: Optional[datetime] = None) -> WeatherReading:
        """Return a reading, raising WeatherUnavailable only when every source failed."""

        cached = self._cache.get_any(coordinate, self.provider_names, at)
        observe_cache_lookup(cached is not None)
        if cached is not None:
            return cached

        failures: list[str] = []
        for provider in self._providers:
            if not provider.is_configured():
                continue
            try:
                reading = await self._fetch(provider, coordinate, at)
            except (FlightWxError, httpx.HTTPError) as exc:
                failures.append(f"{provider.name}: {exc}")
                logger.warning(
                    "Weather provider %s failed for (%.2f, %.2f): %s",
                    provider.name,
                    coordinate.latitude,
                    coordinate.longitude,
                    exc,
                )
                continue
            self._cache.set(coordinate, provider.name, reading, at)
            return reading

        detail = "; ".join(failures) if failures else "no weather provider is configured"
        raise WeatherUnavailable(f"Weather unavailable: {detail}")

    async def get_cross_validated(
        self, coordinate: Coordinate, at: Optional[datetime] = None
    ) -> CrossValidatedReading:
        """Query every configured provider concurrently and score their agreement."""

        configured = [provider for provider in self._providers if provider.is_configured()]
        results = await asyncio.gather(
            *(self._cached_or_fetch(provider, coordinate, at) for provider in configured),
            return_exceptions=True,
        )

        readings: list[WeatherReading] = []
        for provider, result in zip(configured, results):
            if isinstance(result, BaseException):
                if not isinstance(result, (FlightWxError, httpx.HTTPError)):
                    raise result
                logger.warning("Cross-validation source %s failed: %s", provider.name, result)
                continue
            readings.append(result)

        if not readings:
            raise WeatherUnavailable("Weather unavailable: all providers failed cross-validation")

        primary = readings[0]
        if len(readings) == 1:
            confidence = SINGLE_SOURCE_CONFIDENCE
        else:
            confidence = agreement_confidence(primary, readings[1])
        return CrossValidatedReading(
            reading=primary,
            confidence=confidence,
            sources=tuple(reading.provider for reading in readings),
        )

    async def _cached_or_fetch(
        self,
        provider: WeatherProviderInterface,
        coordinate: Coordinate,
        at: Optional[datetime],
    ) -> WeatherReading:
        cached = self._cache.get(coordinate, provider.name, at)
        observe_cache_lookup(cached is not None)
        if cached is not None:
            return cached
        reading = await self._fetch(provider, coordinate, at)
        self._cache.set(coordinate, provider.name, reading, at)
        return reading

    async def _fetch(
        self,
        provider: WeatherProviderInterface,
        coordinate: Coordinate,
        at: Optional[datetime],
    ) -> WeatherReading:
        breaker = self._breakers[provider.name]

        async def attempt() -> WeatherReading:
            return await provider.fetch(coordinate, at)

        async def guarded() -> WeatherReading:
            return await retry_with_jitter(
                attempt,
                self._retry_policy,
                sleep=self._sleep,
                label=f"weather:{provider.name}",
            )

        try:
            reading = await breaker.call(guarded)
        except CircuitOpenError:
            observe_provider_call(provider.name, "circuit_open")
            raise
        except ForecastOutOfRange:
            observe_provider_call(provider.name, "out_of_range")
            raise
        except Exception:
            observe_provider_call(provider.name, "error")
            raise
        finally:
            set_circuit_state(provider.name, breaker.state)

        observe_provider_call(provider.name, "success")
        return reading

    def start(self) -> None:
        """Start the periodic cache sweep on the running loop."""

        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop(), name="weather-cache-sweep")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self._cache.purge_expired()

    async def aclose(self) -> None:
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


__all__ = [
    "CrossValidatedReading",
    "WeatherGateway",
    "agreement_confidence",
]
