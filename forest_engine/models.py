"""
Forest Engine: canonical records.

Every caller receives these shapes regardless of which upstream answered.
Records are immutable; percentage-like fields are clamped to [0, 100] on
construction and every record carries the ``source`` that produced it.
"""

import enum
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

MOCK_SOURCES = ("mock", "mock-fallback")


class DataCategory(str, enum.Enum):
    """Logical category of environmental data."""
    FIRE = "fire"
    DEFORESTATION = "deforestation"
    WEATHER = "weather"
    REGIONS = "regions"
    BIODIVERSITY = "biodiversity"
    SATELLITE = "satellite"


class Route(str, enum.Enum):
    """How a single attempt reaches its data."""
    DIRECT = "direct"
    PROXY = "proxy"
    MOCK = "mock"


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertCategory(str, enum.Enum):
    FIRE = "fire"
    DEFORESTATION = "deforestation"
    BIODIVERSITY = "biodiversity"
    WEATHER = "weather"


class SpeciesStatus(str, enum.Enum):
    STABLE = "stable"
    DECLINING = "declining"
    CRITICALLY_ENDANGERED = "critically_endangered"
    RECOVERING = "recovering"


def clamp_pct(value: Any) -> Any:
    """Clamp a numeric percentage to [0, 100]; non-numbers pass through to validation."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    if value != value:
        return 0.0
    return max(0.0, min(100.0, float(value)))


def freeze(value: Any) -> Any:
    """Read-only copy of nested dicts and lists."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    return value


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class CanonicalRecord(BaseModel):
    """Base for all records: immutable and tagged with its source."""
    model_config = ConfigDict(frozen=True)

    source: str

    @property
    def is_mock(self) -> bool:
        return self.source in MOCK_SOURCES

    @property
    def is_live(self) -> bool:
        return not self.is_mock


class Alert(CanonicalRecord):
    id: str
    timestamp: datetime
    location: str
    category: AlertCategory
    severity: Severity
    confidence: float = Field(ge=0, le=100)
    description: str
    coordinates: Coordinates
    metadata: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_percentages(cls, value):
        return clamp_pct(value)

    @field_validator("metadata")
    @classmethod
    def freeze_metadata(cls, value):
        return freeze(value)

    @field_serializer("metadata")
    def dump_metadata(self, value):
        return thaw(value)


class Region(CanonicalRecord):
    id: str
    name: str
    coordinates: Coordinates
    health_score: float = Field(ge=0, le=100)
    deforestation_rate: float
    biodiversity_index: float = Field(ge=0, le=100)
    alert_level: Severity
    area_km2: float
    forest_cover_pct: float = Field(ge=0, le=100)
    fire_risk_index: float = Field(ge=0, le=100)
    temperature_c: float
    precipitation_mm: float
    last_update: datetime

    @field_validator(
        "health_score", "biodiversity_index", "forest_cover_pct", "fire_risk_index", mode="before"
    )
    @classmethod
    def clamp_percentages(cls, value):
        return clamp_pct(value)


class Species(CanonicalRecord):
    id: str
    name: str
    scientific_name: str
    status: SpeciesStatus
    population: Optional[int] = None
    trend_pct_per_year: float = 0.0
    habitat: str = "Forest"
    last_seen: Optional[datetime] = None
    confidence: float = Field(ge=0, le=100)
    threat_level: float = Field(ge=0, le=100)
    conservation_status: str = "Data Deficient"

    @field_validator("confidence", "threat_level", mode="before")
    @classmethod
    def clamp_percentages(cls, value):
        return clamp_pct(value)


class Weather(CanonicalRecord):
    temperature_c: float
    humidity_pct: float = Field(ge=0, le=100)
    precipitation_mm: float
    wind_speed: float
    pressure: float
    cloud_cover_pct: float = Field(ge=0, le=100)
    fire_weather_index: float = Field(ge=0, le=100)
    location: str
    description: str = ""
    country: Optional[str] = None

    @field_validator(
        "humidity_pct", "cloud_cover_pct", "fire_weather_index", mode="before"
    )
    @classmethod
    def clamp_percentages(cls, value):
        return clamp_pct(value)


class SatelliteImagery(CanonicalRecord):
    id: str
    timestamp: datetime
    coordinates: Coordinates
    layer: str
    title: str
    resolution_m: int
    tile_url: str
    wms_url: str
    coverage_pct: Optional[float] = None
    cloud_cover_pct: Optional[float] = None

    @field_validator("coverage_pct", "cloud_cover_pct", mode="before")
    @classmethod
    def clamp_percentages(cls, value):
        return clamp_pct(value)


RECORD_TYPES = {
    DataCategory.FIRE: Alert,
    DataCategory.DEFORESTATION: Alert,
    DataCategory.WEATHER: Weather,
    DataCategory.REGIONS: Region,
    DataCategory.BIODIVERSITY: Species,
    DataCategory.SATELLITE: SatelliteImagery,
}
