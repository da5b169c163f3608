"""
Test Configuration and Fixtures

Shared fixtures and test doubles for the forest engine test suite.
No test performs real network I/O: adapters and the proxy are replaced
by scripted doubles that record every call.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from forest_engine.adapters.base import BaseAdapter
from forest_engine.cache import CacheStore
from forest_engine.config.capabilities import CapabilityManager, ExecutionContext
from forest_engine.config.credentials import LocalConfigStore
from forest_engine.errors import ProviderError
from forest_engine.fallback import FallbackChainExecutor
from forest_engine.mocks import MockDataGenerator
from forest_engine.models import (
    Alert,
    AlertCategory,
    Coordinates,
    DataCategory,
    Route,
    Severity,
    Species,
    SpeciesStatus,
    Weather,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable time source for the cache store."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_alert(alert_id: str, hours_ago: float = 0, source: str = "nasa-firms:modis_nrt",
               category: AlertCategory = AlertCategory.FIRE) -> Alert:
    return Alert(
        id=alert_id,
        timestamp=NOW - timedelta(hours=hours_ago),
        location="Amazon Basin, Brazil",
        category=category,
        severity=Severity.HIGH,
        confidence=85,
        description="test alert",
        coordinates=Coordinates(lat=-3.9, lng=-62.1),
        source=source,
    )


def make_species(scientific_name: str, source: str = "gbif") -> Species:
    return Species(
        id=scientific_name.lower().replace(" ", "_"),
        name=scientific_name,
        scientific_name=scientific_name,
        status=SpeciesStatus.DECLINING,
        confidence=90,
        threat_level=65,
        source=source,
    )


def make_weather(source: str = "openweather") -> Weather:
    return Weather(
        temperature_c=30.0,
        humidity_pct=20.0,
        precipitation_mm=0.0,
        wind_speed=3.0,
        pressure=1010.0,
        cloud_cover_pct=10.0,
        fire_weather_index=40.0,
        location="Amazon Basin, Brazil",
        source=source,
    )


class ScriptedAdapter(BaseAdapter):
    """
    Adapter double. ``outcome`` is either a list of records returned by
    fetch/parse, or an exception raised by fetch.
    """

    def __init__(self, category: DataCategory, outcome: Any, call_log: Optional[List] = None,
                 source: str = "live-source", delay: float = 0.0, empty_is_error: bool = False,
                 requires_credential: bool = False):
        super().__init__()
        self.category = category
        self.outcome = outcome
        self.call_log = call_log if call_log is not None else []
        self._source = source
        self.delay = delay
        self.empty_is_error = empty_is_error
        self.requires_credential = requires_credential
        self.calls = 0
        self.params: List[Dict[str, Any]] = []
        self.cancelled = False

    @property
    def source_name(self) -> str:
        return self._source

    async def fetch(self, params, credential, timeout):
        self.calls += 1
        self.params.append(params)
        self.call_log.append(Route.DIRECT)
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    def parse(self, raw, params):
        return list(raw)


class SpeciesFanOutAdapter(BaseAdapter):
    """Biodiversity double issuing one subrequest per species name."""

    category = DataCategory.BIODIVERSITY

    def __init__(self, names: List[str], failing: set):
        super().__init__()
        self.names = names
        self.failing = failing
        self.requested: List[str] = []

    @property
    def source_name(self) -> str:
        return "gbif"

    def fan_out(self, params):
        return [{"name": name} for name in params.get("species", self.names)]

    def backfill_params(self, params, failed):
        return {**params, "species": [sub["name"] for sub in failed]}

    async def fetch(self, params, credential, timeout):
        self.requested.append(params["name"])
        if params["name"] in self.failing:
            raise ProviderError(self.category, Route.DIRECT, "HTTP 503: Service Unavailable")
        return {"results": [{"scientificName": params["name"]}]}

    def parse(self, raw, params):
        return [make_species(result["scientificName"]) for result in raw["results"]]


class FakeProxy:
    """Proxy double: returns scripted records or raises a ProviderError."""

    def __init__(self, outcomes: Optional[Dict[DataCategory, Any]] = None,
                 call_log: Optional[List] = None, source: str = "proxy-source"):
        self.outcomes = outcomes or {}
        self.call_log = call_log if call_log is not None else []
        self.source = source
        self.requests: List[Dict[str, Any]] = []

    async def fetch(self, category, params, live_only, timeout):
        self.call_log.append(Route.PROXY)
        self.requests.append({"category": category, "params": params, "live_only": live_only})
        outcome = self.outcomes.get(category, ProviderError(category, Route.PROXY, "HTTP 502: Bad Gateway"))
        if isinstance(outcome, BaseException):
            raise outcome
        return list(outcome), self.source

    async def health_check(self):
        return {"source": "proxy", "status": "OPERATIONAL", "configured": True}



class Upstream:
    """
    Local aiohttp server standing in for a provider. Every GET is recorded
    as (path, query) and answered by ``handler``.
    """

    def __init__(self, handler):
        self.handler = handler
        self.requests: List[tuple] = []

    async def _dispatch(self, request: web.Request) -> web.StreamResponse:
        self.requests.append((request.path, dict(request.query)))
        return await self.handler(request)

    @property
    def paths(self) -> List[str]:
        return [path for path, _ in self.requests]

    async def __aenter__(self) -> "Upstream":
        app = web.Application()
        app.router.add_route("GET", "/{tail:.*}", self._dispatch)
        self.server = TestServer(app)
        await self.server.start_server()
        self.base_url = f"http://{self.server.host}:{self.server.port}"
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.server.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheStore(clock=clock)


@pytest.fixture
def call_log():
    return []


@pytest.fixture
def mocks():
    return MockDataGenerator(seed=42, clock=lambda: NOW)


@pytest.fixture
def config_store(tmp_path):
    return LocalConfigStore(tmp_path / "config.json")


@pytest.fixture
def capabilities(config_store):
    """Server context, FIRMS and OpenWeather keys present, proxy configured."""
    return CapabilityManager(
        store=config_store,
        context=ExecutionContext.SERVER,
        proxy_available=True,
        env_keys={"nasa_firms": "firms-test-key", "openweather": "ow-test-key"},
    )


@pytest.fixture
def make_executor(capabilities, cache, mocks):
    """Build an executor around the given adapters and proxy double."""
    def factory(adapters=None, proxy=None, direct_timeout=5.0, proxy_timeout=8.0):
        return FallbackChainExecutor(
            capabilities=capabilities,
            adapters=adapters or {},
            cache=cache,
            proxy=proxy,
            mocks=mocks,
            direct_timeout=direct_timeout,
            proxy_timeout=proxy_timeout,
        )
    return factory
