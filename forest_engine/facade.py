"""
Forest Data Service

Single entry point for callers. Each method resolves one or more
categories through the fallback chain executor and shapes the result:
alerts are merged across fire and deforestation, sorted newest first
and truncated; regions, species, weather and satellite metadata are
one resolution each.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from config.settings import Settings, get_settings
from .adapters import (
    BaseAdapter,
    FIRMSAdapter,
    ForestRegionAdapter,
    GBIFAdapter,
    GIBSAdapter,
    GlobalForestWatchAdapter,
    OpenWeatherAdapter,
    ProxyClient,
)
from .cache import CacheStore
from .config.capabilities import CapabilityManager
from .config.credentials import LocalConfigStore
from .errors import ResolutionFailed
from .fallback import FallbackChainExecutor, Resolution
from .mocks import MockDataGenerator
from .models import Alert, DataCategory, Region, SatelliteImagery, Species, Weather

logger = logging.getLogger(__name__)

ALERT_CATEGORIES = (DataCategory.FIRE, DataCategory.DEFORESTATION)


def default_adapters(settings: Settings, session: Optional[aiohttp.ClientSession] = None) -> Dict[DataCategory, BaseAdapter]:
    """One adapter per category, sharing an optional HTTP session."""
    weather = OpenWeatherAdapter(session=session)
    return {
        DataCategory.FIRE: FIRMSAdapter(dataset=settings.firms_dataset, session=session),
        DataCategory.DEFORESTATION: GlobalForestWatchAdapter(session=session),
        DataCategory.WEATHER: weather,
        DataCategory.REGIONS: ForestRegionAdapter(weather=weather, session=session),
        DataCategory.BIODIVERSITY: GBIFAdapter(session=session),
        DataCategory.SATELLITE: GIBSAdapter(session=session),
    }


class ForestDataService:
    """Facade over the capability manager, cache and fallback executor."""

    def __init__(
        self,
        capabilities: CapabilityManager,
        executor: FallbackChainExecutor,
        alerts_limit: int = 25,
        tracked_species: Optional[List[str]] = None,
    ):
        self.capabilities = capabilities
        self.executor = executor
        self.cache = executor.cache
        self.mocks = executor.mocks
        self.alerts_limit = alerts_limit
        self.tracked_species = list(tracked_species or get_settings().tracked_species)
        capabilities.subscribe(self._on_configuration_changed)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        store: Optional[LocalConfigStore] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> "ForestDataService":
        settings = settings or get_settings()
        capabilities = CapabilityManager.from_settings(settings, store=store)
        proxy = ProxyClient(settings.proxy_base_url, session=session) if settings.proxy_base_url else None
        executor = FallbackChainExecutor(
            capabilities=capabilities,
            adapters=default_adapters(settings, session),
            cache=CacheStore(),
            proxy=proxy,
            mocks=MockDataGenerator(),
            direct_timeout=settings.direct_timeout,
            proxy_timeout=settings.proxy_timeout,
        )
        return cls(capabilities, executor, settings.alerts_limit, settings.tracked_species)

    def _on_configuration_changed(self) -> None:
        logger.info("Configuration changed; invalidating cache")
        self.executor.invalidate()

    def _live_only(self, live_only: Optional[bool]) -> bool:
        return self.capabilities.is_live_only() if live_only is None else live_only

    async def resolve(self, category: DataCategory, params: Optional[Dict[str, Any]] = None,
                      live_only: Optional[bool] = None) -> Resolution:
        return await self.executor.resolve(category, params, self._live_only(live_only))

    # ---- alerts ----

    async def get_alerts(self, region: str = "world", days: int = 1,
                         live_only: Optional[bool] = None) -> List[Alert]:
        """
        Merged fire and deforestation alerts, newest first.

        In live-only mode a failed category contributes nothing; if every
        category failed the ResolutionFailed propagates. Otherwise, when no
        alert was obtained at all, a bounded set of mock biodiversity
        alerts is appended.
        """
        live_only = self._live_only(live_only)
        params = {
            DataCategory.FIRE: {"region": region, "days": days},
            DataCategory.DEFORESTATION: {"region": "BRA" if region == "world" else region, "days": max(days, 90)},
        }
        outcomes = await asyncio.gather(
            *(self.executor.resolve(category, params[category], live_only) for category in ALERT_CATEGORIES),
            return_exceptions=True,
        )

        alerts: List[Alert] = []
        failures: List[ResolutionFailed] = []
        for category, outcome in zip(ALERT_CATEGORIES, outcomes):
            if isinstance(outcome, ResolutionFailed):
                logger.warning(f"No {category.value} alerts in live-only mode: {outcome}")
                failures.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                alerts.extend(outcome.records)

        if len(failures) == len(ALERT_CATEGORIES):
            raise failures[0]

        if not live_only and not alerts:
            alerts.extend(self.mocks.biodiversity_alerts())

        alerts.sort(key=lambda alert: alert.timestamp, reverse=True)
        return alerts[:self.alerts_limit]

    # ---- single-category lookups ----

    async def get_regions(self, live_only: Optional[bool] = None) -> List[Region]:
        resolution = await self.resolve(DataCategory.REGIONS, {}, live_only)
        return list(resolution.records)

    async def get_species(self, limit: Optional[int] = None, region: str = "global",
                          live_only: Optional[bool] = None) -> List[Species]:
        names = self.tracked_species if limit is None else self.tracked_species[:max(0, limit)]
        resolution = await self.resolve(
            DataCategory.BIODIVERSITY, {"region": region, "species": names, "limit": len(names)}, live_only
        )
        return list(resolution.records)

    async def get_weather(self, lat: float, lng: float, live_only: Optional[bool] = None) -> Weather:
        params = {"lat": round(float(lat), 2), "lng": round(float(lng), 2)}
        resolution = await self.resolve(DataCategory.WEATHER, params, live_only)
        return resolution.records[0]

    async def get_satellite_data(self, lat: float, lng: float, layer: Optional[str] = None,
                                 live_only: Optional[bool] = None) -> SatelliteImagery:
        params = {"lat": round(float(lat), 4), "lng": round(float(lng), 4)}
        if layer:
            params["layer"] = layer
        resolution = await self.resolve(DataCategory.SATELLITE, params, live_only)
        return resolution.records[0]

    # ---- maintenance ----

    def clear_cache(self) -> None:
        self.executor.invalidate()

    def close(self) -> None:
        """Stop following configuration changes; call before discarding the service."""
        self.capabilities.unsubscribe(self._on_configuration_changed)

    async def source_statuses(self) -> List[Dict[str, Any]]:
        """Health of every upstream adapter, checked concurrently."""
        checks = [
            adapter.health_check(self.capabilities.get_credential(category))
            for category, adapter in self.executor.adapters.items()
            if category != DataCategory.REGIONS
        ]
        if self.executor.proxy is not None:
            checks.append(self.executor.proxy.health_check())
        return list(await asyncio.gather(*checks))

    def health(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "configured": self.capabilities.configured_providers(),
            "live_only": self.capabilities.is_live_only(),
            "proxy": self.executor.proxy is not None,
        }
