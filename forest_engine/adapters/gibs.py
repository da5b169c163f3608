"""
NASA GIBS Adapter
https://gibs.earthdata.nasa.gov

Layer metadata plus WMTS tile and WMS map URLs for a point.
No API key required.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config.settings import PROVIDERS
from .base import BaseAdapter
from ..models import Coordinates, DataCategory, SatelliteImagery

DEFAULT_LAYER = "MODIS_Terra_CorrectedReflectance_TrueColor"


def layer_resolution(layer: str) -> int:
    return 250 if "MODIS" in layer else 375


def tile_url(base_url: str, layer: str, date: str) -> str:
    return (
        f"{base_url}/wmts/epsg4326/best/wmts.cgi?SERVICE=WMTS&REQUEST=GetTile&VERSION=1.0.0"
        f"&LAYER={layer}&STYLE=default&TILEMATRIXSET=EPSG4326_250m&TILEMATRIX=6"
        f"&TILEROW=32&TILECOL=64&FORMAT=image%2Fjpeg&TIME={date}"
    )


def wms_url(base_url: str, layer: str, lat: float, lng: float, date: str) -> str:
    bbox = f"{round(lat - 1, 4)},{round(lng - 1, 4)},{round(lat + 1, 4)},{round(lng + 1, 4)}"
    return (
        f"{base_url}/wms/epsg4326/best/wms.cgi?SERVICE=WMS&REQUEST=GetMap&VERSION=1.3.0"
        f"&LAYERS={layer}&STYLES=default&CRS=EPSG:4326&BBOX={bbox}"
        f"&WIDTH=512&HEIGHT=512&FORMAT=image/png&TIME={date}"
    )


class GIBSAdapter(BaseAdapter):
    """NASA Global Imagery Browse Services."""

    category = DataCategory.SATELLITE
    empty_is_error = True

    def __init__(self, base_url: str = PROVIDERS["nasa_gibs"]["base_url"], **kwargs):
        super().__init__(base_url=base_url, **kwargs)

    @property
    def source_name(self) -> str:
        return "nasa-gibs"

    async def fetch(self, params: Dict[str, Any], credential: Optional[str], timeout: float) -> Any:
        layer = params.get("layer") or DEFAULT_LAYER
        return await self._get(f"/layer-metadata/v1.0/{layer}.json", timeout=timeout)

    def parse(self, raw: Any, params: Dict[str, Any]) -> List[SatelliteImagery]:
        if not isinstance(raw, dict):
            return []
        layer = params.get("layer") or DEFAULT_LAYER
        try:
            lat = float(params["lat"])
            lng = float(params["lng"])
        except (KeyError, TypeError, ValueError):
            return []
        now = datetime.now(timezone.utc)
        today = now.strftime("%Y-%m-%d")
        base = self.base_url.rstrip("/")

        return [SatelliteImagery(
            id=f"gibs_{layer}_{today}_{lat:.2f}_{lng:.2f}",
            timestamp=now,
            coordinates=Coordinates(lat=lat, lng=lng),
            layer=layer,
            title=str(raw.get("title") or layer),
            resolution_m=layer_resolution(layer),
            tile_url=tile_url(base, layer, today),
            wms_url=wms_url(base, layer, lat, lng, today),
            source=self.source_name,
        )]

    def health_params(self) -> Dict[str, Any]:
        return {"layer": DEFAULT_LAYER}
