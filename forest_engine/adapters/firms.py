"""
NASA FIRMS Adapter
https://firms.modaps.eosdis.nasa.gov/api/

Active fire detections (MODIS / VIIRS) as CSV.

Rate Limit: 1000 requests/day
Authentication: MAP_KEY required (free)
"""

import csv
import io
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, NamedTuple, Optional

from config.settings import PROVIDERS
from .base import BaseAdapter
from ..errors import ProviderError
from ..computation.formulas import calculate_fire_severity, parse_confidence
from ..config.regions import get_location_name
from ..models import Alert, AlertCategory, Coordinates, DataCategory

MAX_DETECTIONS = 50

# Tried in order when no dataset is pinned
DATASETS = ("MODIS_NRT", "VIIRS_SNPP_NRT", "VIIRS_NOAA20_NRT")


class FirmsCsv(NamedTuple):
    """CSV body together with the dataset that produced it."""
    dataset: str
    text: str


def _float(value: Any) -> Optional[float]:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if result == result else None


def _acquired_at(acq_date: Optional[str], acq_time: Optional[str]) -> Optional[datetime]:
    """FIRMS acquisition date (YYYY-MM-DD) and time (HHMM, UTC)."""
    if not acq_date:
        return None
    hhmm = (acq_time or "0").strip().zfill(4)
    try:
        return datetime.strptime(f"{acq_date.strip()} {hhmm}", "%Y-%m-%d %H%M").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


class FIRMSAdapter(BaseAdapter):
    """NASA FIRMS area API."""

    category = DataCategory.FIRE
    requires_credential = True

    def __init__(self, dataset: Optional[str] = None, base_url: str = PROVIDERS["nasa_firms"]["base_url"], **kwargs):
        super().__init__(base_url=base_url, **kwargs)
        self.dataset = dataset

    def _datasets(self, params: Dict[str, Any]) -> List[str]:
        pinned = params.get("dataset") or self.dataset
        return [pinned] if pinned else list(DATASETS)

    @property
    def source_name(self) -> str:
        return f"nasa-firms:{(self.dataset or DATASETS[0]).lower()}"

    def source_for(self, params: Dict[str, Any], raw: Any = None) -> str:
        dataset = raw.dataset if isinstance(raw, FirmsCsv) else self._datasets(params)[0]
        return f"nasa-firms:{dataset.lower()}"

    async def fetch(self, params: Dict[str, Any], credential: Optional[str], timeout: float) -> FirmsCsv:
        """
        Fetch detections for the pinned dataset, or walk DATASETS in order
        until one answers. The returned FirmsCsv names the dataset used.
        """
        if not credential:
            raise self._error("NASA FIRMS API key not configured")
        region = params.get("region", "world")
        days = params.get("days", 1)
        date = params.get("date") or (datetime.now(timezone.utc) - timedelta(days=1)).strftime("%Y-%m-%d")

        last_error: Optional[ProviderError] = None
        for dataset in self._datasets(params):
            path = f"/area/csv/{credential}/{dataset}/{region}/{days}/{date}"
            self.logger.info(f"Fetching fire detections: {dataset} region={region} days={days}")
            try:
                text = await self._get(path, timeout=timeout, as_text=True)
            except ProviderError as e:
                self.logger.warning(f"FIRMS dataset {dataset} unavailable: {e.cause}")
                last_error = e
                continue
            return FirmsCsv(dataset, text)
        raise last_error

    def parse(self, raw: Any, params: Dict[str, Any]) -> List[Alert]:
        source = self.source_for(params, raw)
        if isinstance(raw, FirmsCsv):
            raw = raw.text
        if not isinstance(raw, str) or not raw.strip():
            return []
        now = datetime.now(timezone.utc)
        alerts: List[Alert] = []

        reader = csv.DictReader(io.StringIO(raw.strip()))
        for row in reader:
            if len(alerts) >= MAX_DETECTIONS:
                break
            lat = _float(row.get("latitude"))
            lng = _float(row.get("longitude"))
            if lat is None or lng is None:
                continue
            frp = _float(row.get("frp")) or 0.0
            brightness = _float(row.get("brightness") or row.get("bright_ti4"))
            confidence = parse_confidence(row.get("confidence"))
            acquired = _acquired_at(row.get("acq_date"), row.get("acq_time"))
            stamp = acquired.strftime("%Y%m%d%H%M") if acquired else "latest"

            alerts.append(Alert(
                id=f"fire_{lat}_{lng}_{stamp}",
                timestamp=acquired or now,
                location=get_location_name(lat, lng),
                category=AlertCategory.FIRE,
                severity=calculate_fire_severity(frp, confidence),
                confidence=confidence,
                description=f"Fire detected with {frp:.1f} MW radiative power",
                coordinates=Coordinates(lat=lat, lng=lng),
                metadata={
                    "brightness": brightness,
                    "frp": frp,
                    "satellite": row.get("satellite"),
                },
                source=source,
            ))
        return alerts

    def health_params(self) -> Dict[str, Any]:
        return {"region": "world", "days": 1}
