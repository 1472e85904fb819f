"""TTL cache behaviour and its use by the gateway."""

from __future__ import annotations

import asyncio
from datetime import timedelta

from conftest import NOW, PALO_ALTO, SAN_CARLOS, FakeProvider, make_reading
from flightwx.domain.models import Coordinate
from flightwx.services.weather_cache import WeatherCache, make_key
from flightwx.services.weather_gateway import WeatherGateway


class Ticker:
    def __init__(self) -> None:
        self.value = 0.0

    def __call__(self) -> float:
        return self.value


def test_keys_round_coordinates_and_bucket_forecast_hours():
    nearby = Coordinate(latitude=37.4632, longitude=PALO_ALTO.longitude)

    assert make_key(PALO_ALTO, "primary") == make_key(nearby, "primary")
    assert make_key(PALO_ALTO, "primary", NOW) == make_key(PALO_ALTO, "primary", NOW + timedelta(minutes=59))
    assert make_key(PALO_ALTO, "primary", NOW) != make_key(PALO_ALTO, "primary", NOW + timedelta(hours=1))
    assert make_key(PALO_ALTO, "primary") != make_key(PALO_ALTO, "secondary")


def test_entries_expire_after_ttl():
    ticker = Ticker()
    cache = WeatherCache(ttl_seconds=300, clock=ticker)
    cache.set(PALO_ALTO, "primary", make_reading())

    ticker.value = 299.0
    assert cache.get(PALO_ALTO, "primary") is not None

    ticker.value = 300.0
    assert cache.get(PALO_ALTO, "primary") is None
    assert len(cache) == 0


def test_oldest_entry_is_evicted_when_full():
    ticker = Ticker()
    cache = WeatherCache(max_entries=2, clock=ticker)
    cache.set(PALO_ALTO, "primary", make_reading())
    ticker.value = 1.0
    cache.set(SAN_CARLOS, "primary", make_reading())
    ticker.value = 2.0
    cache.set(PALO_ALTO, "secondary", make_reading())

    assert len(cache) == 2
    assert cache.get(PALO_ALTO, "primary") is None
    assert cache.get(SAN_CARLOS, "primary") is not None


def test_purge_expired_removes_only_stale_entries():
    ticker = Ticker()
    cache = WeatherCache(ttl_seconds=10, clock=ticker)
    cache.set(PALO_ALTO, "primary", make_reading())
    ticker.value = 8.0
    cache.set(SAN_CARLOS, "primary", make_reading())

    ticker.value = 12.0

    assert cache.purge_expired() == 1
    assert len(cache) == 1


def test_get_any_follows_provider_priority():
    cache = WeatherCache()
    cache.set(PALO_ALTO, "secondary", make_reading(provider="secondary"))

    assert cache.get_any(PALO_ALTO, ["primary", "secondary"]).provider == "secondary"

    cache.set(PALO_ALTO, "primary", make_reading(provider="primary"))
    assert cache.get_any(PALO_ALTO, ["primary", "secondary"]).provider == "primary"


def test_gateway_serves_repeat_lookups_from_cache_until_expiry():
    ticker = Ticker()
    provider = FakeProvider()
    gateway = WeatherGateway([provider], WeatherCache(ttl_seconds=300, clock=ticker))

    asyncio.run(gateway.get(PALO_ALTO))
    asyncio.run(gateway.get(PALO_ALTO))
    assert len(provider.calls) == 1

    ticker.value = 301.0
    asyncio.run(gateway.get(PALO_ALTO))
    assert len(provider.calls) == 2
