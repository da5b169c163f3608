"""
Forest Engine: mock data generators.

Synthetic records for every category, used as the terminal route of a
fallback chain and to backfill a partial parallel join. Generation is
synchronous and never fails. Values stay inside each field's documented
range (confidence 60-100) and severities are computed with the same
rules the adapters use, spread across all four levels.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from .adapters.gibs import DEFAULT_LAYER, layer_resolution, tile_url, wms_url
from .computation.formulas import (
    calculate_deforestation_severity,
    calculate_fire_severity,
    calculate_fire_weather_index,
    calculate_forest_cover,
    threat_level_for,
)
from .config.regions import FOREST_REGIONS, get_location_name
from .config.species import TRACKED_SPECIES, lookup_species
from .models import (
    Alert,
    AlertCategory,
    CanonicalRecord,
    Coordinates,
    DataCategory,
    Region,
    SatelliteImagery,
    Severity,
    Species,
    SpeciesStatus,
    Weather,
)

GIBS_BASE_URL = "https://gibs.earthdata.nasa.gov"

# (lat, lng, location, frp, brightness, confidence, hours ago)
FIRE_TEMPLATES = [
    (-3.2, -61.8, "Amazon Basin, Brazil", 25.3, 320.5, 85, 0),
    (1.5, 104.2, "Southeast Asian Rainforest", 57.8, 340.2, 92, 1),
]

# (lat, lng, location, alert count, confidence, hours ago, description)
DEFORESTATION_TEMPLATES = [
    (-0.3, 15.9, "Congo Basin, DRC", 64, 78, 2, "Deforestation alert detected by GLAD system"),
    (-4.1, -63.2, "Brazilian Amazon", 18, 89, 3, "Forest clearing detected via satellite imagery"),
]

# (lat, lng, location, severity, confidence, hours ago, description)
BIODIVERSITY_ALERT_TEMPLATES = [
    (0.5, 101.5, "Sumatran Forest, Indonesia", Severity.MEDIUM, 85, 4,
     "Endangered species habitat disruption detected"),
    (-22.9, -43.2, "Atlantic Forest, Brazil", Severity.LOW, 72, 5,
     "Wildlife migration pattern changes observed"),
]


class MockDataGenerator:
    """Synthetic data for every category."""

    def __init__(self, seed: Optional[int] = None, clock: Optional[Callable[[], datetime]] = None):
        self.rng = random.Random(seed)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def generate(self, category: DataCategory, params: Dict[str, Any],
                 source: str = "mock") -> List[CanonicalRecord]:
        """Records for one category, each tagged with ``source``."""
        builders = {
            DataCategory.FIRE: self.fire_alerts,
            DataCategory.DEFORESTATION: self.deforestation_alerts,
            DataCategory.WEATHER: self.weather,
            DataCategory.REGIONS: self.regions,
            DataCategory.BIODIVERSITY: self.species,
            DataCategory.SATELLITE: self.satellite,
        }
        return builders[DataCategory(category)](params or {}, source)

    def _confidence(self, base: float) -> float:
        return round(max(60.0, min(100.0, base + self.rng.uniform(-3, 3))), 1)

    def fire_alerts(self, params: Dict[str, Any], source: str) -> List[Alert]:
        now = self.clock()
        alerts = []
        for index, (lat, lng, location, frp, brightness, confidence, hours) in enumerate(FIRE_TEMPLATES, 1):
            alerts.append(Alert(
                id=f"fire_mock_{index}",
                timestamp=now - timedelta(hours=hours),
                location=location,
                category=AlertCategory.FIRE,
                severity=calculate_fire_severity(frp, confidence),
                confidence=float(confidence),
                description=f"Fire detected with {frp:.1f} MW radiative power",
                coordinates=Coordinates(lat=lat, lng=lng),
                metadata={"brightness": brightness, "frp": frp},
                source=source,
            ))
        return alerts

    def deforestation_alerts(self, params: Dict[str, Any], source: str) -> List[Alert]:
        now = self.clock()
        return [
            Alert(
                id=f"deforest_mock_{index}",
                timestamp=now - timedelta(hours=hours),
                location=location,
                category=AlertCategory.DEFORESTATION,
                severity=calculate_deforestation_severity(count),
                confidence=self._confidence(confidence),
                description=description,
                coordinates=Coordinates(lat=lat, lng=lng),
                metadata={"alerts": count},
                source=source,
            )
            for index, (lat, lng, location, count, confidence, hours, description)
            in enumerate(DEFORESTATION_TEMPLATES, 1)
        ]

    def biodiversity_alerts(self, source: str = "mock") -> List[Alert]:
        """Supplementary alerts shown when no fire or deforestation alert is available."""
        now = self.clock()
        return [
            Alert(
                id=f"biodiversity_mock_{index}",
                timestamp=now - timedelta(hours=hours),
                location=location,
                category=AlertCategory.BIODIVERSITY,
                severity=severity,
                confidence=self._confidence(confidence),
                description=description,
                coordinates=Coordinates(lat=lat, lng=lng),
                source=source,
            )
            for index, (lat, lng, location, severity, confidence, hours, description)
            in enumerate(BIODIVERSITY_ALERT_TEMPLATES, 1)
        ]

    def weather(self, params: Dict[str, Any], source: str) -> List[Weather]:
        lat = float(params.get("lat", 0.0))
        lng = float(params.get("lng", 0.0))
        temperature = round(30 - abs(lat) * 0.6 + self.rng.uniform(-5, 5), 1)
        humidity = round(self.rng.uniform(40, 90), 1)
        precipitation = round(self.rng.uniform(0, 10), 1)
        return [Weather(
            temperature_c=temperature,
            humidity_pct=humidity,
            precipitation_mm=precipitation,
            wind_speed=round(self.rng.uniform(0, 15), 1),
            pressure=round(self.rng.uniform(1000, 1025), 1),
            cloud_cover_pct=round(self.rng.uniform(0, 100), 1),
            fire_weather_index=calculate_fire_weather_index(temperature, humidity, precipitation),
            location=get_location_name(lat, lng),
            description="partly cloudy",
            source=source,
        )]

    def regions(self, params: Dict[str, Any], source: str) -> List[Region]:
        now = self.clock()
        return [
            Region(
                id=rid,
                name=ref["name"],
                coordinates=Coordinates(lat=ref["lat"], lng=ref["lng"]),
                health_score=ref["health_score"],
                deforestation_rate=ref["deforestation_rate"],
                biodiversity_index=ref["biodiversity_index"],
                alert_level=Severity(ref["alert_level"]),
                area_km2=ref["area_km2"],
                forest_cover_pct=calculate_forest_cover(ref["base_forest_cover"], ref["deforestation_rate"]),
                fire_risk_index=ref["fire_risk_index"],
                temperature_c=ref["temperature_c"],
                precipitation_mm=ref["precipitation_mm"],
                last_update=now,
                source=source,
            )
            for rid, ref in FOREST_REGIONS.items()
        ]

    def species(self, params: Dict[str, Any], source: str) -> List[Species]:
        """
        Species records. An explicit ``species`` list is honoured in order
        (used to backfill specific failed lookups); otherwise the tracked
        reference table is used up to ``limit``.
        """
        names = params.get("species")
        if not names:
            names = list(TRACKED_SPECIES)
            limit = params.get("limit")
            if limit is not None:
                names = names[:max(0, int(limit))]

        now = self.clock()
        records = []
        for name in names:
            ref = lookup_species(name)
            if ref is None:
                ref = {
                    "id": name.lower().replace(" ", "_"),
                    "name": name,
                    "status": "stable",
                    "population": None,
                    "trend_pct_per_year": 0.0,
                    "habitat": "Forest",
                    "conservation_status": "Data Deficient",
                }
            status = SpeciesStatus(ref["status"])
            records.append(Species(
                id=f"{ref['id']}_mock",
                name=ref["name"],
                scientific_name=name,
                status=status,
                population=ref["population"],
                trend_pct_per_year=ref["trend_pct_per_year"],
                habitat=ref["habitat"],
                last_seen=now - timedelta(days=self.rng.randint(1, 30)),
                confidence=self._confidence(88),
                threat_level=threat_level_for(status),
                conservation_status=ref["conservation_status"],
                source=source,
            ))
        return records

    def satellite(self, params: Dict[str, Any], source: str) -> List[SatelliteImagery]:
        lat = float(params.get("lat", 0.0))
        lng = float(params.get("lng", 0.0))
        layer = params.get("layer") or DEFAULT_LAYER
        now = self.clock()
        today = now.strftime("%Y-%m-%d")
        return [SatelliteImagery(
            id=f"gibs_mock_{layer}_{today}",
            timestamp=now,
            coordinates=Coordinates(lat=lat, lng=lng),
            layer=layer,
            title=layer.replace("_", " "),
            resolution_m=layer_resolution(layer),
            tile_url=tile_url(GIBS_BASE_URL, layer, today),
            wms_url=wms_url(GIBS_BASE_URL, layer, lat, lng, today),
            coverage_pct=round(self.rng.uniform(85, 95), 1),
            cloud_cover_pct=round(self.rng.uniform(0, 30), 1),
            source=source,
        )]
