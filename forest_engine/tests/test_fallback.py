"""
Fallback chain executor tests.

Covers chain construction, fallback totality, live-only strictness,
route ordering, timeouts, the parallel join backfill and the
fire-alert scenario (FIRMS 500, proxy down, mock fallback cached).
"""

import pytest

from config.settings import CACHE_TTLS
from forest_engine.cache import generate_cache_key
from forest_engine.config.capabilities import CapabilityManager, ExecutionContext
from forest_engine.errors import ProviderError, ResolutionFailed
from forest_engine.fallback import FallbackChainExecutor
from forest_engine.models import Alert, DataCategory, Route, RECORD_TYPES

from conftest import (
    FakeProxy,
    ScriptedAdapter,
    SpeciesFanOutAdapter,
    make_alert,
    make_species,
    make_weather,
)

SPECIES = ["Pongo abelii", "Panthera onca", "Gorilla beringei", "Harpia harpyja", "Ara macao"]


def failing_adapters(call_log):
    return {
        category: ScriptedAdapter(category, ProviderError(category, Route.DIRECT, "HTTP 500"), call_log)
        for category in DataCategory
    }


# ---- chain construction ----

def test_chain_order_with_all_routes(make_executor):
    executor = make_executor(adapters=failing_adapters([]), proxy=FakeProxy())
    chain = executor.build_chain(DataCategory.FIRE)
    assert [a.route for a in chain] == [Route.DIRECT, Route.PROXY, Route.MOCK]
    assert [a.timeout for a in chain[:2]] == [5.0, 8.0]


def test_live_only_removes_mock_step(make_executor, capabilities):
    executor = make_executor(adapters=failing_adapters([]), proxy=FakeProxy())
    capabilities.set_live_only(True)
    assert [a.route for a in executor.build_chain(DataCategory.FIRE)] == [Route.DIRECT, Route.PROXY]


def test_chain_is_rebuilt_after_configuration_change(config_store, cache, mocks):
    manager = CapabilityManager(store=config_store)
    executor = FallbackChainExecutor(manager, failing_adapters([]), cache=cache, mocks=mocks)
    assert [a.route for a in executor.build_chain(DataCategory.FIRE)] == [Route.MOCK]
    manager.set_credential("nasa_firms", "k")
    assert [a.route for a in executor.build_chain(DataCategory.FIRE)] == [Route.DIRECT, Route.MOCK]
    manager.remove_credential("nasa_firms")
    assert [a.route for a in executor.build_chain(DataCategory.FIRE)] == [Route.MOCK]


def test_browser_chain_skips_direct_for_fire(config_store, cache, mocks):
    manager = CapabilityManager(
        store=config_store, context=ExecutionContext.BROWSER, proxy_available=True,
        env_keys={"nasa_firms": "k"},
    )
    executor = FallbackChainExecutor(manager, failing_adapters([]), cache=cache, proxy=FakeProxy(), mocks=mocks)
    assert [a.route for a in executor.build_chain(DataCategory.FIRE)] == [Route.PROXY, Route.MOCK]
    assert [a.route for a in executor.build_chain(DataCategory.SATELLITE)] == [
        Route.DIRECT, Route.PROXY, Route.MOCK
    ]


# ---- fallback totality ----

@pytest.mark.asyncio
@pytest.mark.parametrize("category", list(DataCategory))
async def test_every_category_resolves_when_all_live_routes_fail(make_executor, call_log, category):
    executor = make_executor(adapters=failing_adapters(call_log), proxy=FakeProxy(call_log=call_log))
    params = {"lat": -3.4, "lng": -62.2} if category in (DataCategory.WEATHER, DataCategory.SATELLITE) else {}

    resolution = await executor.resolve(category, params)

    assert resolution.records
    assert all(isinstance(r, RECORD_TYPES[category]) for r in resolution.records)
    assert all(r.source == "mock-fallback" for r in resolution.records)
    assert resolution.route == Route.MOCK


@pytest.mark.asyncio
async def test_mock_is_tagged_plain_mock_when_no_live_route_exists(config_store, cache, mocks):
    manager = CapabilityManager(store=config_store)
    executor = FallbackChainExecutor(manager, {}, cache=cache, mocks=mocks)
    resolution = await executor.resolve(DataCategory.FIRE, {"region": "world"})
    assert resolution.source == "mock"
    assert [a.route for a in resolution.attempts] == [Route.MOCK]


# ---- live-only strictness ----

@pytest.mark.asyncio
async def test_live_only_failure_raises_and_never_mocks(make_executor, capabilities, call_log, cache):
    capabilities.set_live_only(True)
    executor = make_executor(adapters=failing_adapters(call_log), proxy=FakeProxy(call_log=call_log))

    with pytest.raises(ResolutionFailed) as excinfo:
        await executor.resolve(DataCategory.FIRE, {"region": "world", "days": 1})

    assert [e.route for e in excinfo.value.errors] == [Route.DIRECT, Route.PROXY]
    assert call_log == [Route.DIRECT, Route.PROXY]
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_live_only_override_per_call(make_executor):
    executor = make_executor(adapters=failing_adapters([]))
    with pytest.raises(ResolutionFailed):
        await executor.resolve(DataCategory.WEATHER, {"lat": 1, "lng": 2}, live_only=True)
    resolution = await executor.resolve(DataCategory.WEATHER, {"lat": 1, "lng": 2}, live_only=False)
    assert resolution.is_mock


@pytest.mark.asyncio
async def test_mock_answer_is_not_served_in_live_only_mode(make_executor, capabilities):
    executor = make_executor(adapters=failing_adapters([]))
    await executor.resolve(DataCategory.FIRE, {"region": "world"})
    capabilities.set_live_only(True)
    with pytest.raises(ResolutionFailed):
        await executor.resolve(DataCategory.FIRE, {"region": "world"})


# ---- route ordering ----

@pytest.mark.asyncio
async def test_direct_failure_then_proxy_success(make_executor, call_log):
    adapters = failing_adapters(call_log)
    proxy = FakeProxy({DataCategory.FIRE: [make_alert("p1", source="nasa-firms:viirs")]}, call_log=call_log)
    executor = make_executor(adapters=adapters, proxy=proxy)

    resolution = await executor.resolve(DataCategory.FIRE, {"region": "world", "days": 1})

    assert call_log == [Route.DIRECT, Route.PROXY]
    assert [a.route for a in resolution.attempts] == [Route.DIRECT, Route.PROXY]
    assert [a.succeeded for a in resolution.attempts] == [False, True]
    assert resolution.route == Route.PROXY
    assert resolution.source == "proxy-source"
    assert resolution.records[0].source == "nasa-firms:viirs"


@pytest.mark.asyncio
async def test_direct_success_stops_the_chain(make_executor, call_log):
    adapter = ScriptedAdapter(DataCategory.FIRE, [make_alert("d1")], call_log, source="nasa-firms:modis_nrt")
    executor = make_executor(adapters={DataCategory.FIRE: adapter}, proxy=FakeProxy(call_log=call_log))

    resolution = await executor.resolve(DataCategory.FIRE, {"region": "world"})

    assert call_log == [Route.DIRECT]
    assert resolution.source == "nasa-firms:modis_nrt"
    assert resolution.records[0].is_live


@pytest.mark.asyncio
async def test_no_retry_within_a_route(make_executor):
    adapters = failing_adapters([])
    executor = make_executor(adapters=adapters)
    await executor.resolve(DataCategory.FIRE, {})
    assert adapters[DataCategory.FIRE].calls == 1


@pytest.mark.asyncio
async def test_unstructured_adapter_error_advances_the_chain(make_executor):
    adapter = ScriptedAdapter(DataCategory.FIRE, RuntimeError("boom"))
    executor = make_executor(adapters={DataCategory.FIRE: adapter})
    resolution = await executor.resolve(DataCategory.FIRE, {})
    assert resolution.source == "mock-fallback"
    assert isinstance(resolution.attempts[0].error, ProviderError)


@pytest.mark.asyncio
async def test_empty_single_record_response_counts_as_failure(make_executor):
    adapter = ScriptedAdapter(DataCategory.WEATHER, [], empty_is_error=True)
    executor = make_executor(adapters={DataCategory.WEATHER: adapter})
    resolution = await executor.resolve(DataCategory.WEATHER, {"lat": 0, "lng": 0})
    assert resolution.source == "mock-fallback"


@pytest.mark.asyncio
async def test_empty_list_response_is_a_success(make_executor):
    adapter = ScriptedAdapter(DataCategory.DEFORESTATION, [], source="global-forest-watch")
    executor = make_executor(adapters={DataCategory.DEFORESTATION: adapter})
    resolution = await executor.resolve(DataCategory.DEFORESTATION, {"region": "BRA"})
    assert resolution.source == "global-forest-watch"
    assert resolution.records == ()


# ---- timeouts ----

@pytest.mark.asyncio
async def test_slow_route_times_out_and_is_cancelled(make_executor):
    adapter = ScriptedAdapter(DataCategory.WEATHER, [make_weather()], delay=1.0)
    executor = make_executor(adapters={DataCategory.WEATHER: adapter}, direct_timeout=0.05)

    resolution = await executor.resolve(DataCategory.WEATHER, {"lat": 0, "lng": 0})

    assert resolution.source == "mock-fallback"
    assert "timed out" in str(resolution.attempts[0].error)
    assert adapter.cancelled


# ---- caching ----

@pytest.mark.asyncio
async def test_second_call_is_served_from_cache(make_executor, call_log):
    adapter = ScriptedAdapter(DataCategory.FIRE, [make_alert("d1")], call_log)
    executor = make_executor(adapters={DataCategory.FIRE: adapter})

    first = await executor.resolve(DataCategory.FIRE, {"region": "world"})
    second = await executor.resolve(DataCategory.FIRE, {"region": "world"})

    assert not first.from_cache
    assert second.from_cache
    assert second.records == first.records
    assert call_log == [Route.DIRECT]


@pytest.mark.asyncio
async def test_expired_cache_triggers_a_new_resolution(make_executor, clock):
    adapter = ScriptedAdapter(DataCategory.WEATHER, [make_weather()])
    executor = make_executor(adapters={DataCategory.WEATHER: adapter})

    await executor.resolve(DataCategory.WEATHER, {"lat": 1, "lng": 1})
    clock.advance(CACHE_TTLS["weather"])
    await executor.resolve(DataCategory.WEATHER, {"lat": 1, "lng": 1})

    assert adapter.calls == 2


@pytest.mark.asyncio
async def test_cached_records_cannot_be_altered_by_a_caller(make_executor):
    executor = make_executor()

    first = await executor.resolve(DataCategory.FIRE, {"region": "world"})
    with pytest.raises(TypeError):
        first.records[0].metadata["poisoned"] = True
    second = await executor.resolve(DataCategory.FIRE, {"region": "world"})

    assert second.from_cache
    assert "poisoned" not in second.records[0].metadata
    assert second.records[0].model_dump(mode="json")["metadata"] == dict(first.records[0].metadata)


def test_nested_metadata_is_frozen_and_dumps_as_plain_json():
    fields = make_alert("a1").model_dump()
    alert = Alert(**{**fields, "metadata": {"tiles": [1, 2], "extra": {"k": "v"}}})

    assert alert.metadata["tiles"] == (1, 2)
    with pytest.raises(TypeError):
        alert.metadata["extra"]["k"] = "changed"
    assert alert.model_dump(mode="json")["metadata"] == {"tiles": [1, 2], "extra": {"k": "v"}}


# ---- parallel join ----

@pytest.mark.asyncio
async def test_partial_join_is_backfilled_with_mocks(make_executor):
    adapter = SpeciesFanOutAdapter(SPECIES, failing={"Gorilla beringei", "Harpia harpyja", "Ara macao"})
    executor = make_executor(adapters={DataCategory.BIODIVERSITY: adapter})

    resolution = await executor.resolve(DataCategory.BIODIVERSITY, {"species": SPECIES, "limit": 5})

    assert len(resolution.records) == 5
    live = [r for r in resolution.records if r.is_live]
    mock = [r for r in resolution.records if r.source == "mock"]
    assert [r.scientific_name for r in live] == ["Pongo abelii", "Panthera onca"]
    assert sorted(r.scientific_name for r in mock) == ["Ara macao", "Gorilla beringei", "Harpia harpyja"]
    assert resolution.source == "gbif-partial"
    assert sorted(adapter.requested) == sorted(SPECIES)


@pytest.mark.asyncio
async def test_partial_join_in_live_only_mode_returns_only_live(make_executor):
    adapter = SpeciesFanOutAdapter(SPECIES, failing={"Gorilla beringei", "Harpia harpyja", "Ara macao"})
    executor = make_executor(adapters={DataCategory.BIODIVERSITY: adapter})

    resolution = await executor.resolve(DataCategory.BIODIVERSITY, {"species": SPECIES}, live_only=True)

    assert len(resolution.records) == 2
    assert all(r.is_live for r in resolution.records)


@pytest.mark.asyncio
async def test_complete_join_is_tagged_live(make_executor):
    adapter = SpeciesFanOutAdapter(SPECIES, failing=set())
    executor = make_executor(adapters={DataCategory.BIODIVERSITY: adapter})
    resolution = await executor.resolve(DataCategory.BIODIVERSITY, {"species": SPECIES})
    assert resolution.source == "gbif"
    assert len(resolution.records) == 5


@pytest.mark.asyncio
async def test_join_with_every_subrequest_failing_advances_the_chain(make_executor):
    adapter = SpeciesFanOutAdapter(SPECIES, failing=set(SPECIES))
    proxy = FakeProxy({DataCategory.BIODIVERSITY: [make_species(name, source="gbif") for name in SPECIES]})
    executor = make_executor(adapters={DataCategory.BIODIVERSITY: adapter}, proxy=proxy)

    resolution = await executor.resolve(DataCategory.BIODIVERSITY, {"species": SPECIES})

    assert resolution.route == Route.PROXY
    assert len(resolution.records) == 5


# ---- FIRMS outage end to end ----

@pytest.mark.asyncio
async def test_firms_500_proxy_down_falls_back_to_cached_mock(make_executor, call_log, cache, clock):
    firms = ScriptedAdapter(
        DataCategory.FIRE,
        ProviderError(DataCategory.FIRE, Route.DIRECT, "HTTP 500: Internal Server Error"),
        call_log,
        requires_credential=True,
    )
    executor = make_executor(adapters={DataCategory.FIRE: firms}, proxy=FakeProxy(call_log=call_log))
    params = {"region": "world", "days": 1}

    resolution = await executor.resolve(DataCategory.FIRE, params)

    assert call_log == [Route.DIRECT, Route.PROXY]
    assert [a.route for a in resolution.attempts] == [Route.DIRECT, Route.PROXY, Route.MOCK]
    assert len(resolution.records) == 2
    assert all(r.source == "mock-fallback" for r in resolution.records)

    entry = cache.entry(generate_cache_key(DataCategory.FIRE, params, live_only=False))
    assert entry is not None
    assert entry.ttl == 15 * 60

    clock.advance(15 * 60 - 1)
    cached = await executor.resolve(DataCategory.FIRE, params)
    assert cached.from_cache
    assert call_log == [Route.DIRECT, Route.PROXY]

    clock.advance(1)
    await executor.resolve(DataCategory.FIRE, params)
    assert call_log == [Route.DIRECT, Route.PROXY, Route.DIRECT, Route.PROXY]
