"""
OpenWeather Adapter
https://api.openweathermap.org/data/2.5

Current conditions used for weather panels and fire-weather risk.

Rate Limit: 1000 requests/day (free tier)
Authentication: appid required (free)
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from config.settings import PROVIDERS
from .base import BaseAdapter
from ..computation.formulas import calculate_fire_weather_index
from ..config.regions import get_location_name
from ..models import DataCategory, Weather


class _Main(BaseModel):
    temp: float = 0.0
    humidity: float = 0.0
    pressure: float = 1013.0


class _Wind(BaseModel):
    speed: float = 0.0


class _Clouds(BaseModel):
    all: float = 0.0


class _Sys(BaseModel):
    country: Optional[str] = None


class _Condition(BaseModel):
    description: str = ""


class OpenWeatherPayload(BaseModel):
    """Fields of /weather the engine depends on; missing ones take defaults."""
    main: _Main
    wind: _Wind = Field(default_factory=_Wind)
    clouds: _Clouds = Field(default_factory=_Clouds)
    rain: Dict[str, float] = Field(default_factory=dict)
    snow: Dict[str, float] = Field(default_factory=dict)
    sys: _Sys = Field(default_factory=_Sys)
    weather: List[_Condition] = Field(default_factory=list)
    name: Optional[str] = None

    @property
    def precipitation(self) -> float:
        return self.rain.get("1h") or self.snow.get("1h") or 0.0


def weather_from_payload(payload: OpenWeatherPayload, lat: float, lng: float, source: str) -> Weather:
    main = payload.main
    return Weather(
        temperature_c=main.temp,
        humidity_pct=main.humidity,
        precipitation_mm=payload.precipitation,
        wind_speed=payload.wind.speed,
        pressure=main.pressure,
        cloud_cover_pct=payload.clouds.all,
        fire_weather_index=calculate_fire_weather_index(main.temp, main.humidity, payload.precipitation),
        location=payload.name or get_location_name(lat, lng),
        description=payload.weather[0].description if payload.weather else "",
        country=payload.sys.country,
        source=source,
    )


class OpenWeatherAdapter(BaseAdapter):
    """OpenWeather current weather API."""

    category = DataCategory.WEATHER
    requires_credential = True
    empty_is_error = True

    def __init__(self, base_url: str = PROVIDERS["openweather"]["base_url"], **kwargs):
        super().__init__(base_url=base_url, **kwargs)

    @property
    def source_name(self) -> str:
        return "openweather"

    async def fetch(self, params: Dict[str, Any], credential: Optional[str], timeout: float) -> Any:
        if not credential:
            raise self._error("OpenWeather API key not configured")
        query = {
            "lat": params["lat"],
            "lon": params["lng"],
            "appid": credential,
            "units": "metric",
        }
        return await self._get("/weather", params=query, timeout=timeout)

    def parse_payload(self, raw: Any) -> Optional[OpenWeatherPayload]:
        if not isinstance(raw, dict):
            return None
        try:
            return OpenWeatherPayload.model_validate(raw)
        except ValidationError as e:
            self.logger.debug(f"Malformed OpenWeather payload: {e.error_count()} errors")
            return None

    def parse(self, raw: Any, params: Dict[str, Any]) -> List[Weather]:
        payload = self.parse_payload(raw)
        if payload is None:
            return []
        return [weather_from_payload(payload, params.get("lat", 0.0), params.get("lng", 0.0), self.source_name)]

    def health_params(self) -> Dict[str, Any]:
        return {"lat": 51.5074, "lng": -0.1278}
