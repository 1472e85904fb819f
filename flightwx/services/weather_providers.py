"""HTTP clients for the OpenWeatherMap and WeatherAPI.com providers.

Both clients normalise their payloads into :class:`WeatherReading` using
statute miles, knots, Fahrenheit and inHg.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Optional

import httpx

from flightwx.application.interfaces import WeatherProviderInterface
from flightwx.config.settings import OpenWeatherMapConfig, WeatherApiConfig
from flightwx.domain.errors import ForecastOutOfRange, ProviderError
from flightwx.domain.models import ConditionType, Coordinate, WeatherReading
from flightwx.domain.services import MinimumsDomainService

logger = logging.getLogger(__name__)

METERS_TO_MILES = 0.000621371
MPH_TO_KNOTS = 0.868976
HPA_TO_INHG = 0.02953
DEFAULT_VISIBILITY_MILES = 10.0
FORECAST_THRESHOLD = timedelta(hours=1)
WEATHERAPI_MAX_FORECAST_DAYS = 10
OWM_FORECAST_STEP = timedelta(hours=3)
WEATHERAPI_FORECAST_STEP = timedelta(hours=1)


def estimate_ceiling(cloud_cover: Optional[float]) -> Optional[float]:
    """Rough ceiling estimate from cloud cover percentage; clear sky has none."""

    if not cloud_cover:
        return None
    if cloud_cover < 25:
        return 5000.0
    if cloud_cover < 50:
        return 3000.0
    if cloud_cover < 75:
        return 1500.0
    return 1000.0


def _needs_forecast(at: Optional[datetime], now: datetime) -> bool:
    return at is not None and abs(at - now) > FORECAST_THRESHOLD


def _closest(entries: Iterable[Mapping[str, Any]], epoch_key: str, at: datetime) -> Mapping[str, Any]:
    target = at.timestamp()
    best: Optional[Mapping[str, Any]] = None
    for entry in entries:
        if best is None or abs(entry[epoch_key] - target) < abs(best[epoch_key] - target):
            best = entry
    if best is None:
        raise ValueError("forecast payload contained no entries")
    return best


def _ensure_covered(
    provider: str, entry: Mapping[str, Any], epoch_key: str, at: datetime, max_gap: timedelta
) -> None:
    """Reject a forecast entry more than one forecast step away from ``at``."""

    gap = timedelta(seconds=abs(entry[epoch_key] - at.timestamp()))
    if gap > max_gap:
        raise ForecastOutOfRange(
            provider,
            f"no forecast within {max_gap} of {at.isoformat()} (closest is {gap} away)",
        )


def _map_owm_conditions(weather: Iterable[Mapping[str, Any]]) -> frozenset[ConditionType]:
    conditions: set[ConditionType] = set()
    for item in weather:
        main = str(item.get("main", "")).lower()
        description = str(item.get("description", "")).lower()
        if main == "clear":
            conditions.add(ConditionType.CLEAR)
        elif main == "clouds":
            conditions.add(ConditionType.CLOUDS)
        elif main in {"rain", "drizzle"}:
            conditions.add(ConditionType.RAIN)
            if "freezing" in description:
                conditions.add(ConditionType.ICE)
        elif main == "snow":
            conditions.add(ConditionType.SNOW)
        elif main == "thunderstorm":
            conditions.update({ConditionType.THUNDERSTORM, ConditionType.CONVECTIVE})
        elif main == "fog":
            conditions.add(ConditionType.FOG)
        elif main == "mist":
            conditions.add(ConditionType.MIST)
        elif main in {"haze", "smoke", "dust", "sand"}:
            conditions.add(ConditionType.HAZE)
        elif main in {"squall", "tornado"}:
            conditions.add(ConditionType.CONVECTIVE)
    return frozenset(conditions)


def _map_weatherapi_condition(code: Optional[int], text: str = "") -> frozenset[ConditionType]:
    if code is None:
        return frozenset()
    lowered = text.lower()
    conditions: set[ConditionType] = set()
    if code == 1000:
        conditions.add(ConditionType.CLEAR)
    elif 1003 <= code <= 1009:
        conditions.add(ConditionType.CLOUDS)
    elif code in {1030}:
        conditions.add(ConditionType.MIST)
    elif code in {1135, 1147}:
        conditions.add(ConditionType.FOG)
        if code == 1147:
            conditions.add(ConditionType.ICE)
    elif code in {1087} or code >= 1273:
        conditions.update({ConditionType.THUNDERSTORM, ConditionType.CONVECTIVE})
    elif code in {1066, 1114, 1117} or 1210 <= code <= 1225 or code in {1255, 1258}:
        conditions.add(ConditionType.SNOW)
    elif code in {1069, 1204, 1207, 1249, 1252}:
        conditions.update({ConditionType.SNOW, ConditionType.RAIN})
    elif code in {1072, 1168, 1171, 1198, 1201, 1237, 1261, 1264}:
        conditions.add(ConditionType.ICE)
    elif 1063 <= code <= 1246:
        conditions.add(ConditionType.RAIN)
    if "freezing" in lowered:
        conditions.add(ConditionType.ICE)
    return frozenset(conditions)


class _HttpWeatherProvider(WeatherProviderInterface):
    """Shared request handling for the HTTP providers."""

    name = "http"

    def __init__(self, client: httpx.AsyncClient, timeout_seconds: float):
        self._client = client
        self._timeout = httpx.Timeout(timeout_seconds)

    async def _get_json(self, url: str, params: Mapping[str, Any]) -> Any:
        try:
            response = await self._client.get(url, params=dict(params), timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            raise ProviderError(
                self.name,
                f"HTTP {status_code}",
                retryable=status_code >= 500 or status_code == 429,
                status_code=status_code,
            ) from exc
        except httpx.TimeoutException as exc:
            raise ProviderError(self.name, "request timed out", retryable=True) from exc
        except httpx.RequestError as exc:
            raise ProviderError(self.name, f"request failed: {exc}", retryable=True) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(self.name, "invalid JSON payload") from exc


class OpenWeatherMapProvider(_HttpWeatherProvider):
    """Primary provider backed by the OpenWeatherMap 2.5 API."""

    name = "openweathermap"

    def __init__(self, client: httpx.AsyncClient, config: OpenWeatherMapConfig):
        super().__init__(client, config.timeout_seconds)
        self._config = config

    def is_configured(self) -> bool:
        return self._config.is_configured()

    async def fetch(self, coordinate: Coordinate, at: Optional[datetime] = None) -> WeatherReading:
        if not self.is_configured():
            raise ProviderError(self.name, "API key is not configured")

        now = datetime.now(timezone.utc)
        params = {
            "lat": coordinate.latitude,
            "lon": coordinate.longitude,
            "appid": self._config.api_key.get_secret_value(),
            "units": "imperial",
        }
        if _needs_forecast(at, now):
            payload = await self._get_json(f"{self._config.base_url}/forecast", params)
            try:
                entry = _closest(payload.get("list") or [], "dt", at)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise ProviderError(self.name, f"unexpected forecast payload: {exc}") from exc
            _ensure_covered(self.name, entry, "dt", at, OWM_FORECAST_STEP)
            return self._parse(entry, coordinate, valid_at=at)

        payload = await self._get_json(f"{self._config.base_url}/weather", params)
        return self._parse(payload, coordinate)

    def _parse(
        self,
        data: Mapping[str, Any],
        coordinate: Coordinate,
        valid_at: Optional[datetime] = None,
    ) -> WeatherReading:
        try:
            raw_visibility = data.get("visibility")
            visibility = (
                round(raw_visibility * METERS_TO_MILES, 2)
                if raw_visibility is not None
                else DEFAULT_VISIBILITY_MILES
            )
            wind = data.get("wind") or {}
            main = data.get("main") or {}
            wind_speed = float(wind.get("speed") or 0) * MPH_TO_KNOTS
            wind_direction = float(wind.get("deg") or 0)
            epoch = data.get("dt")
            timestamp = (
                datetime.fromtimestamp(epoch, tz=timezone.utc)
                if epoch is not None
                else datetime.now(timezone.utc)
            )
            return WeatherReading(
                coordinate=coordinate,
                timestamp=timestamp,
                visibility=visibility,
                ceiling=estimate_ceiling((data.get("clouds") or {}).get("all")),
                wind_speed=round(wind_speed, 2),
                wind_direction=wind_direction,
                crosswind=round(MinimumsDomainService.crosswind(wind_speed, wind_direction), 2),
                temperature=float(main.get("temp") or 0),
                humidity=float(main.get("humidity") or 0),
                pressure=round(float(main.get("pressure") or 0) * HPA_TO_INHG, 2),
                conditions=_map_owm_conditions(data.get("weather") or []),
                provider=self.name,
                raw=dict(data),
                valid_at=valid_at,
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise ProviderError(self.name, f"unexpected payload: {exc}") from exc


class WeatherApiProvider(_HttpWeatherProvider):
    """Secondary provider backed by WeatherAPI.com."""

    name = "weatherapi"

    def __init__(self, client: httpx.AsyncClient, config: WeatherApiConfig):
        super().__init__(client, config.timeout_seconds)
        self._config = config

    def is_configured(self) -> bool:
        return self._config.is_configured()

    async def fetch(self, coordinate: Coordinate, at: Optional[datetime] = None) -> WeatherReading:
        if not self.is_configured():
            raise ProviderError(self.name, "API key is not configured")

        now = datetime.now(timezone.utc)
        params: dict[str, Any] = {
            "key": self._config.api_key.get_secret_value(),
            "q": f"{coordinate.latitude},{coordinate.longitude}",
        }
        if _needs_forecast(at, now):
            days = min(max((at - now).days + 2, 1), WEATHERAPI_MAX_FORECAST_DAYS)
            params["days"] = days
            payload = await self._get_json(f"{self._config.base_url}/forecast.json", params)
            try:
                hours = [
                    hour
                    for day in payload["forecast"]["forecastday"]
                    for hour in day.get("hour", [])
                ]
                entry = _closest(hours, "time_epoch", at)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise ProviderError(self.name, f"unexpected forecast payload: {exc}") from exc
            _ensure_covered(self.name, entry, "time_epoch", at, WEATHERAPI_FORECAST_STEP)
            return self._parse(entry, coordinate, epoch_key="time_epoch", valid_at=at)

        payload = await self._get_json(f"{self._config.base_url}/current.json", params)
        try:
            current = payload["current"]
        except (KeyError, TypeError) as exc:
            raise ProviderError(self.name, "payload missing 'current'") from exc
        return self._parse(current, coordinate, epoch_key="last_updated_epoch")

    def _parse(
        self,
        data: Mapping[str, Any],
        coordinate: Coordinate,
        epoch_key: str,
        valid_at: Optional[datetime] = None,
    ) -> WeatherReading:
        try:
            wind_speed = float(data.get("wind_mph") or 0) * MPH_TO_KNOTS
            wind_direction = float(data.get("wind_degree") or 0)
            condition = data.get("condition") or {}
            epoch = data.get(epoch_key)
            timestamp = (
                datetime.fromtimestamp(epoch, tz=timezone.utc)
                if epoch is not None
                else datetime.now(timezone.utc)
            )
            visibility = data.get("vis_miles")
            return WeatherReading(
                coordinate=coordinate,
                timestamp=timestamp,
                visibility=float(visibility) if visibility is not None else DEFAULT_VISIBILITY_MILES,
                ceiling=estimate_ceiling(data.get("cloud")),
                wind_speed=round(wind_speed, 2),
                wind_direction=wind_direction,
                crosswind=round(MinimumsDomainService.crosswind(wind_speed, wind_direction), 2),
                temperature=float(data.get("temp_f") or 0),
                humidity=float(data.get("humidity") or 0),
                pressure=float(data.get("pressure_in") or 0),
                conditions=_map_weatherapi_condition(condition.get("code"), str(condition.get("text", ""))),
                provider=self.name,
                raw=dict(data),
                valid_at=valid_at,
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise ProviderError(self.name, f"unexpected payload: {exc}") from exc


__all__ = [
    "OpenWeatherMapProvider",
    "WeatherApiProvider",
    "estimate_ceiling",
]
