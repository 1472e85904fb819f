"""Provider payload normalisation against mocked HTTP transports."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from conftest import PALO_ALTO
from flightwx.config.settings import OpenWeatherMapConfig, WeatherApiConfig
from flightwx.domain.errors import ForecastOutOfRange, ProviderError
from flightwx.domain.models import ConditionType
from flightwx.services.weather_providers import (
    OpenWeatherMapProvider,
    WeatherApiProvider,
    estimate_ceiling,
)

OWM_CURRENT = {
    "dt": 1780315200,
    "visibility": 10000,
    "wind": {"speed": 10.0, "deg": 90},
    "clouds": {"all": 80},
    "main": {"temp": 55.0, "humidity": 80, "pressure": 1013},
    "weather": [{"main": "Rain", "description": "light rain"}],
}

WEATHERAPI_CURRENT = {
    "current": {
        "last_updated_epoch": 1780315200,
        "temp_f": 60.0,
        "wind_mph": 5.0,
        "wind_degree": 0,
        "vis_miles": 9.0,
        "cloud": 0,
        "humidity": 50,
        "pressure_in": 30.1,
        "condition": {"text": "Sunny", "code": 1000},
    }
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _fetch(provider, at=None):
    async def run():
        try:
            return await provider.fetch(PALO_ALTO, at)
        finally:
            await provider._client.aclose()

    return asyncio.run(run())


def test_openweathermap_current_conditions_are_normalised():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=OWM_CURRENT)

    provider = OpenWeatherMapProvider(_client(handler), OpenWeatherMapConfig(api_key="owm-key"))

    reading = _fetch(provider)

    assert seen[0].url.path.endswith("/weather")
    assert seen[0].url.params["units"] == "imperial"
    assert seen[0].url.params["appid"] == "owm-key"
    assert reading.provider == "openweathermap"
    assert reading.visibility == pytest.approx(6.21)
    assert reading.wind_speed == pytest.approx(8.69)
    assert reading.crosswind == pytest.approx(8.69)
    assert reading.ceiling == 1000.0
    assert reading.pressure == pytest.approx(29.91)
    assert reading.conditions == frozenset({ConditionType.RAIN})
    assert reading.timestamp == datetime.fromtimestamp(1780315200, tz=timezone.utc)


def test_openweathermap_forecast_picks_the_closest_entry():
    at = datetime.now(timezone.utc) + timedelta(hours=6)
    entries = [
        dict(OWM_CURRENT, dt=int((at - timedelta(hours=3)).timestamp()), visibility=1000),
        dict(OWM_CURRENT, dt=int((at + timedelta(hours=1)).timestamp()), visibility=16000),
        dict(OWM_CURRENT, dt=int((at + timedelta(hours=4)).timestamp()), visibility=2000),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/forecast")
        return httpx.Response(200, json={"list": entries})

    provider = OpenWeatherMapProvider(_client(handler), OpenWeatherMapConfig(api_key="owm-key"))

    reading = _fetch(provider, at)

    assert reading.visibility == pytest.approx(9.94)
    assert reading.valid_at == at


def test_openweathermap_rejects_times_beyond_the_forecast_horizon():
    now = datetime.now(timezone.utc)
    at = now + timedelta(days=7)
    entries = [
        dict(OWM_CURRENT, dt=int((now + timedelta(hours=hours)).timestamp()))
        for hours in range(3, 5 * 24 + 1, 3)
    ]

    provider = OpenWeatherMapProvider(
        _client(lambda request: httpx.Response(200, json={"list": entries})),
        OpenWeatherMapConfig(api_key="owm-key"),
    )

    with pytest.raises(ForecastOutOfRange) as excinfo:
        _fetch(provider, at)

    assert not excinfo.value.retryable
    assert excinfo.value.provider == "openweathermap"


def test_openweathermap_accepts_an_entry_one_step_away():
    at = datetime.now(timezone.utc) + timedelta(days=3)
    entries = [dict(OWM_CURRENT, dt=int((at - timedelta(hours=2, minutes=59)).timestamp()))]

    provider = OpenWeatherMapProvider(
        _client(lambda request: httpx.Response(200, json={"list": entries})),
        OpenWeatherMapConfig(api_key="owm-key"),
    )

    assert _fetch(provider, at).valid_at == at


def test_weatherapi_rejects_hours_missing_from_the_forecast():
    now = datetime.now(timezone.utc)
    at = now + timedelta(days=2)
    hours = [
        dict(WEATHERAPI_CURRENT["current"], time_epoch=int((now + timedelta(hours=offset)).timestamp()))
        for offset in range(0, 24)
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/forecast.json")
        return httpx.Response(200, json={"forecast": {"forecastday": [{"hour": hours}]}})

    provider = WeatherApiProvider(_client(handler), WeatherApiConfig(api_key="wa-key"))

    with pytest.raises(ForecastOutOfRange):
        _fetch(provider, at)


def test_weatherapi_current_conditions_are_normalised():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/current.json")
        assert request.url.params["q"] == f"{PALO_ALTO.latitude},{PALO_ALTO.longitude}"
        return httpx.Response(200, json=WEATHERAPI_CURRENT)

    provider = WeatherApiProvider(_client(handler), WeatherApiConfig(api_key="wa-key"))

    reading = _fetch(provider)

    assert reading.provider == "weatherapi"
    assert reading.visibility == 9.0
    assert reading.ceiling is None
    assert reading.wind_speed == pytest.approx(4.34)
    assert reading.crosswind == 0.0
    assert reading.temperature == 60.0
    assert reading.conditions == frozenset({ConditionType.CLEAR})


def test_server_errors_are_retryable_provider_errors():
    provider = OpenWeatherMapProvider(
        _client(lambda request: httpx.Response(503)),
        OpenWeatherMapConfig(api_key="owm-key"),
    )

    with pytest.raises(ProviderError) as excinfo:
        _fetch(provider)

    assert excinfo.value.retryable
    assert excinfo.value.status_code == 503


def test_client_errors_are_not_retryable():
    provider = WeatherApiProvider(
        _client(lambda request: httpx.Response(401)),
        WeatherApiConfig(api_key="wa-key"),
    )

    with pytest.raises(ProviderError) as excinfo:
        _fetch(provider)

    assert not excinfo.value.retryable


def test_unconfigured_provider_refuses_to_fetch():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    provider = OpenWeatherMapProvider(_client(handler), OpenWeatherMapConfig(api_key=None))

    assert not provider.is_configured()
    with pytest.raises(ProviderError, match="not configured"):
        _fetch(provider)


@pytest.mark.parametrize(
    ("cover", "ceiling"),
    [(None, None), (0, None), (10, 5000.0), (40, 3000.0), (60, 1500.0), (100, 1000.0)],
)
def test_ceiling_estimate_from_cloud_cover(cover, ceiling):
    assert estimate_ceiling(cover) == ceiling
