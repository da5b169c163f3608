"""
GBIF Adapter
https://api.gbif.org/v1

Species search for tracked forest species. One request per scientific
name; the executor issues them concurrently and joins the results.
No API key required.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from config.settings import PROVIDERS, get_settings
from .base import BaseAdapter
from ..computation.formulas import determine_conservation_status, threat_level_for
from ..config.species import lookup_species
from ..models import DataCategory, Species, SpeciesStatus

MATCHED_CONFIDENCE = 90.0
UNMATCHED_CONFIDENCE = 70.0


class GbifSpeciesResult(BaseModel):
    """One entry of ``results`` in a /species/search response."""
    model_config = ConfigDict(extra="ignore")

    key: Optional[Union[int, str]] = None
    vernacularName: Optional[str] = None
    canonicalName: Optional[str] = None
    scientificName: Optional[str] = None
    threatStatus: Optional[str] = None
    habitat: Optional[str] = None


class GBIFAdapter(BaseAdapter):
    """GBIF species search API."""

    category = DataCategory.BIODIVERSITY

    def __init__(self, base_url: str = PROVIDERS["gbif"]["base_url"], **kwargs):
        super().__init__(base_url=base_url, **kwargs)

    @property
    def source_name(self) -> str:
        return "gbif"

    def fan_out(self, params: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
        names = params.get("species") or get_settings().tracked_species
        limit = params.get("limit")
        if limit is not None:
            names = names[:max(0, int(limit))]
        return [{"name": name} for name in names]

    def backfill_params(self, params: Dict[str, Any], failed: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {**params, "species": [sub["name"] for sub in failed]}

    async def fetch(self, params: Dict[str, Any], credential: Optional[str], timeout: float) -> Any:
        query = {"q": params["name"], "limit": 1}
        return await self._get("/species/search", params=query, timeout=timeout)

    def parse(self, raw: Any, params: Dict[str, Any]) -> List[Species]:
        results = raw.get("results") if isinstance(raw, dict) else None
        if not isinstance(results, list) or not results:
            return []
        try:
            result = GbifSpeciesResult.model_validate(results[0])
        except ValidationError as e:
            self.logger.debug(f"Malformed GBIF result: {e.error_count()} errors")
            return []

        scientific_name = result.scientificName or result.canonicalName or params.get("name")
        if not scientific_name:
            return []
        reference = lookup_species(result.canonicalName or scientific_name) or {}
        status = determine_conservation_status(result.threatStatus)
        # GBIF rarely carries a threat status; fall back to the tracked reference
        if result.threatStatus is None and reference:
            status = SpeciesStatus(reference["status"])

        return [Species(
            id=str(result.key) if result.key is not None else scientific_name.lower().replace(" ", "_"),
            name=result.vernacularName or reference.get("name") or result.canonicalName or "Unknown Species",
            scientific_name=scientific_name,
            status=status,
            population=reference.get("population"),
            trend_pct_per_year=reference.get("trend_pct_per_year", 0.0),
            habitat=reference.get("habitat") or result.habitat or "Forest",
            last_seen=datetime.now(timezone.utc),
            confidence=MATCHED_CONFIDENCE if reference else UNMATCHED_CONFIDENCE,
            threat_level=threat_level_for(status),
            conservation_status=result.threatStatus or reference.get("conservation_status", "Data Deficient"),
            source=self.source_name,
        )]

    def health_params(self) -> Dict[str, Any]:
        return {"name": "Panthera onca"}
