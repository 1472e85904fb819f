"""Provider fallback, circuit breaking and cross-validation."""

from __future__ import annotations

import asyncio

import pytest

from conftest import PALO_ALTO, FakeProvider, make_reading
from flightwx.domain.errors import ForecastOutOfRange, ProviderError, WeatherUnavailable
from flightwx.domain.models import CircuitState
from flightwx.services.weather_cache import WeatherCache
from flightwx.services.weather_gateway import WeatherGateway, agreement_confidence
from flightwx.utils.resilience import RetryPolicy


async def _no_sleep(delay: float) -> None:
    return None


def _gateway(*providers: FakeProvider, **kwargs) -> WeatherGateway:
    kwargs.setdefault("retry_policy", RetryPolicy(max_retries=0))
    return WeatherGateway(list(providers), WeatherCache(), sleep=_no_sleep, **kwargs)


def test_falls_back_to_secondary_when_primary_fails():
    primary = FakeProvider("primary", error=ProviderError("primary", "HTTP 500"))
    secondary = FakeProvider("secondary")

    reading = asyncio.run(_gateway(primary, secondary).get(PALO_ALTO))

    assert reading.provider == "secondary"
    assert len(primary.calls) == 1
    assert len(secondary.calls) == 1


def test_transient_primary_failure_is_retried_before_falling_back():
    primary = FakeProvider("primary", error=ProviderError("primary", "timeout", retryable=True))
    secondary = FakeProvider("secondary")
    gateway = _gateway(primary, secondary, retry_policy=RetryPolicy(max_retries=2))

    asyncio.run(gateway.get(PALO_ALTO))

    assert len(primary.calls) == 3


def test_raises_when_every_provider_fails():
    gateway = _gateway(
        FakeProvider("primary", error=ProviderError("primary", "down")),
        FakeProvider("secondary", error=ProviderError("secondary", "down")),
    )

    with pytest.raises(WeatherUnavailable):
        asyncio.run(gateway.get(PALO_ALTO))


def test_unconfigured_providers_are_skipped():
    primary = FakeProvider("primary", configured=False)
    secondary = FakeProvider("secondary")

    reading = asyncio.run(_gateway(primary, secondary).get(PALO_ALTO))

    assert reading.provider == "secondary"
    assert primary.calls == []


def test_no_configured_provider_is_unavailable():
    gateway = _gateway(FakeProvider("primary", configured=False))

    with pytest.raises(WeatherUnavailable, match="no weather provider is configured"):
        asyncio.run(gateway.get(PALO_ALTO))


def test_open_circuit_skips_the_primary():
    primary = FakeProvider("primary", error=ProviderError("primary", "down"))
    secondary = FakeProvider("secondary")
    gateway = _gateway(primary, secondary)

    for _ in range(5):
        asyncio.run(gateway.get(PALO_ALTO))
        gateway.cache.clear()

    assert gateway.breaker("primary").state == CircuitState.OPEN
    assert len(primary.calls) == 5

    reading = asyncio.run(gateway.get(PALO_ALTO))

    assert reading.provider == "secondary"
    assert len(primary.calls) == 5
    states = {snapshot.name: snapshot.state for snapshot in gateway.circuit_snapshots()}
    assert states == {"primary": CircuitState.OPEN, "secondary": CircuitState.CLOSED}


def test_forecast_gaps_fall_back_without_tripping_the_circuit():
    primary = FakeProvider("primary", error=ForecastOutOfRange("primary", "beyond horizon"))
    secondary = FakeProvider("secondary")
    gateway = _gateway(primary, secondary)

    for _ in range(6):
        reading = asyncio.run(gateway.get(PALO_ALTO))
        gateway.cache.clear()
        assert reading.provider == "secondary"

    assert len(primary.calls) == 6
    assert gateway.breaker("primary").state == CircuitState.CLOSED


def test_cross_validation_of_identical_readings_is_fully_confident():
    gateway = _gateway(FakeProvider("primary"), FakeProvider("secondary"))

    checked = asyncio.run(gateway.get_cross_validated(PALO_ALTO))

    assert checked.confidence == 100.0
    assert checked.sources == ("primary", "secondary")
    assert checked.reading.provider == "primary"


def test_cross_validation_with_one_source_is_discounted():
    gateway = _gateway(
        FakeProvider("primary", error=ProviderError("primary", "down")),
        FakeProvider("secondary"),
    )

    checked = asyncio.run(gateway.get_cross_validated(PALO_ALTO))

    assert checked.confidence == 80.0
    assert checked.reading.provider == "secondary"


def test_cross_validation_without_sources_is_unavailable():
    gateway = _gateway(FakeProvider("primary", error=ProviderError("primary", "down")))

    with pytest.raises(WeatherUnavailable):
        asyncio.run(gateway.get_cross_validated(PALO_ALTO))


def test_agreement_scores_each_dimension():
    primary = make_reading(visibility=10.0, wind_speed=10.0, temperature=60.0)

    assert agreement_confidence(primary, make_reading(visibility=9.5, wind_speed=11.0, temperature=62.0)) == 100.0
    assert agreement_confidence(primary, make_reading(visibility=5.0, wind_speed=11.0, temperature=61.0)) == 66.67
    assert agreement_confidence(primary, make_reading(visibility=5.0, wind_speed=20.0, temperature=61.0)) == 33.33
    assert agreement_confidence(primary, make_reading(visibility=5.0, wind_speed=20.0, temperature=80.0)) == 0.0
