"""
Forest Region Summary Adapter

Composite over OpenWeather: current conditions for every reference
forest region, fetched concurrently, combined with the reference
deforestation figures into health / alert-level summaries.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .base import BaseAdapter
from .openweather import OpenWeatherAdapter
from ..computation.formulas import (
    calculate_fire_weather_index,
    calculate_forest_cover,
    calculate_health_score,
    calculate_region_alert_level,
)
from ..config.regions import FOREST_REGIONS
from ..errors import ProviderError
from ..models import Coordinates, DataCategory, Region, Severity


class ForestRegionAdapter(BaseAdapter):
    """Region summaries enriched with live weather."""

    category = DataCategory.REGIONS
    requires_credential = True
    empty_is_error = True

    def __init__(self, weather: Optional[OpenWeatherAdapter] = None, **kwargs):
        super().__init__(**kwargs)
        self.weather = weather or OpenWeatherAdapter(session=self.session)

    @property
    def source_name(self) -> str:
        return "openweather-composite"

    async def fetch(self, params: Dict[str, Any], credential: Optional[str], timeout: float) -> Dict[str, Any]:
        if not credential:
            raise self._error("OpenWeather API key not configured")
        region_ids = list(FOREST_REGIONS)
        calls = [
            self.weather.fetch(
                {"lat": FOREST_REGIONS[rid]["lat"], "lng": FOREST_REGIONS[rid]["lng"]},
                credential,
                timeout,
            )
            for rid in region_ids
        ]
        outcomes = await asyncio.gather(*calls, return_exceptions=True)

        payloads: Dict[str, Any] = {}
        for rid, outcome in zip(region_ids, outcomes):
            if isinstance(outcome, ProviderError):
                self.logger.warning(f"Weather for region {rid} unavailable: {outcome.cause}")
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            payloads[rid] = outcome

        if not payloads:
            raise self._error("weather unavailable for every reference region")
        return payloads

    def parse(self, raw: Any, params: Dict[str, Any]) -> List[Region]:
        if not isinstance(raw, dict) or not raw:
            return []
        now = datetime.now(timezone.utc)
        regions: List[Region] = []

        for rid, ref in FOREST_REGIONS.items():
            rate = ref["deforestation_rate"]
            payload = self.weather.parse_payload(raw.get(rid))
            if payload is None:
                temperature = ref["temperature_c"]
                fire_risk = ref["fire_risk_index"]
                health = ref["health_score"]
                alert_level = Severity(ref["alert_level"])
            else:
                temperature = payload.main.temp
                fire_risk = calculate_fire_weather_index(
                    temperature, payload.main.humidity, payload.precipitation
                )
                health = calculate_health_score(fire_risk, ref["precipitation_mm"], temperature, rate)
                alert_level = calculate_region_alert_level(fire_risk, rate)

            regions.append(Region(
                id=rid,
                name=ref["name"],
                coordinates=Coordinates(lat=ref["lat"], lng=ref["lng"]),
                health_score=health,
                deforestation_rate=rate,
                biodiversity_index=ref["biodiversity_index"],
                alert_level=alert_level,
                area_km2=ref["area_km2"],
                forest_cover_pct=calculate_forest_cover(ref["base_forest_cover"], rate),
                fire_risk_index=fire_risk,
                temperature_c=temperature,
                precipitation_mm=ref["precipitation_mm"],
                last_update=now,
                source=self.source_name,
            ))
        return regions

    async def health_check(self, credential: Optional[str] = None) -> Dict[str, Any]:
        status = await self.weather.health_check(credential)
        return {**status, "source": self.source_name}
