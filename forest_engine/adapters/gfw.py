"""
Global Forest Watch Adapter
https://production-api.globalforestwatch.org

GLAD deforestation alerts aggregated per administrative area.
No API key required.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from config.settings import PROVIDERS
from .base import BaseAdapter
from ..computation.formulas import calculate_deforestation_severity, parse_confidence
from ..config.regions import get_region_centroid
from ..models import Alert, AlertCategory, Coordinates, DataCategory

MAX_ALERTS = 25
DEFAULT_CONFIDENCE = 85.0


class GladAlertRow(BaseModel):
    """One row of the GLAD admin response; every field optional."""
    model_config = ConfigDict(extra="allow")

    date: Optional[str] = None
    iso: Optional[str] = None
    admin: Optional[Union[str, int]] = None
    alerts: Optional[float] = None
    area: Optional[float] = None
    confidence: Optional[Union[float, str]] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class GlobalForestWatchAdapter(BaseAdapter):
    """Global Forest Watch GLAD alerts."""

    category = DataCategory.DEFORESTATION

    def __init__(self, base_url: str = PROVIDERS["global_forest_watch"]["base_url"], **kwargs):
        super().__init__(base_url=base_url, **kwargs)

    @property
    def source_name(self) -> str:
        return "global-forest-watch"

    async def fetch(self, params: Dict[str, Any], credential: Optional[str], timeout: float) -> Any:
        region = params.get("region", "BRA")
        days = max(1, int(params.get("days", 90)))
        limit = int(params.get("limit", 50))
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=days)
        query = {
            "period": f"{start.strftime('%Y-%m-%d')},{end.strftime('%Y-%m-%d')}",
            "gladConfirmOnly": "false",
            "limit": limit,
        }
        self.logger.info(f"Fetching GLAD alerts: region={region} days={days}")
        return await self._get(f"/v1/glad-alerts/admin/{region}", params=query, timeout=timeout)

    def parse(self, raw: Any, params: Dict[str, Any]) -> List[Alert]:
        rows = raw.get("data") if isinstance(raw, dict) else None
        if not isinstance(rows, list):
            return []
        region = params.get("region", "BRA")
        default_lat, default_lng = get_region_centroid(region)
        now = datetime.now(timezone.utc)
        alerts: List[Alert] = []

        for index, item in enumerate(rows[:MAX_ALERTS]):
            try:
                row = GladAlertRow.model_validate(item)
            except ValidationError as e:
                self.logger.debug(f"Skipping malformed GLAD row {index}: {e.error_count()} errors")
                continue
            count = row.alerts if row.alerts is not None else (row.area if row.area is not None else 1)
            timestamp = _parse_date(row.date) or now
            confidence = parse_confidence(row.confidence) if row.confidence is not None else DEFAULT_CONFIDENCE
            location = row.iso or (str(row.admin) if row.admin is not None else None) or "Forest Region"

            alerts.append(Alert(
                id=f"deforest_{region}_{timestamp.strftime('%Y%m%d')}_{index}",
                timestamp=timestamp,
                location=location,
                category=AlertCategory.DEFORESTATION,
                severity=calculate_deforestation_severity(count),
                confidence=confidence,
                description=f"Deforestation detected: {count:g} alerts",
                coordinates=Coordinates(
                    lat=row.lat if row.lat is not None else default_lat,
                    lng=row.lng if row.lng is not None else default_lng,
                ),
                metadata=row.model_dump(exclude_none=True),
                source=self.source_name,
            ))
        return alerts

    def health_params(self) -> Dict[str, Any]:
        return {"region": "BRA", "days": 7, "limit": 1}
