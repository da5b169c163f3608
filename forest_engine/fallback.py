"""
Fallback Chain Executor

Resolves one category of data by walking an ordered chain of routes
(Direct, Proxy, Mock) built from the current capability. Each attempt is
bounded by its own timeout; a ProviderError advances to the next route,
a success stops the chain and is cached under the category's TTL.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from .adapters.base import BaseAdapter
from .adapters.proxy import ProxyClient
from .cache import CacheStore, generate_cache_key, ttl_for
from .config.capabilities import CapabilityManager
from .errors import ProviderError, ResolutionFailed
from .mocks import MockDataGenerator
from .models import CanonicalRecord, DataCategory, Route

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attempt:
    """One step of a fallback chain."""
    route: Route
    timeout: float


@dataclass(frozen=True)
class AttemptRecord:
    """Outcome of one executed attempt."""
    route: Route
    succeeded: bool
    duration_ms: int = 0
    error: Optional[ProviderError] = None


@dataclass(frozen=True)
class Resolution:
    """Result of one resolution call."""
    category: DataCategory
    records: Tuple[CanonicalRecord, ...]
    source: str
    route: Route
    attempts: Tuple[AttemptRecord, ...] = field(default_factory=tuple)
    from_cache: bool = False

    @property
    def is_mock(self) -> bool:
        return self.route == Route.MOCK


class FallbackChainExecutor:
    """
    Per-category route orchestration.

    Routes are always attempted in declared order. The chain is rebuilt
    on every call so configuration changes apply immediately. There are
    no retries within a route; the caller's next request after cache
    expiry is the retry.
    """

    def __init__(
        self,
        capabilities: CapabilityManager,
        adapters: Dict[DataCategory, BaseAdapter],
        cache: Optional[CacheStore] = None,
        proxy: Optional[ProxyClient] = None,
        mocks: Optional[MockDataGenerator] = None,
        direct_timeout: float = 5.0,
        proxy_timeout: float = 8.0,
    ):
        self.capabilities = capabilities
        self.adapters = {DataCategory(k): v for k, v in adapters.items()}
        self.cache = cache if cache is not None else CacheStore()
        self.proxy = proxy
        self.mocks = mocks or MockDataGenerator()
        self.direct_timeout = direct_timeout
        self.proxy_timeout = proxy_timeout

    def build_chain(self, category: DataCategory, live_only: Optional[bool] = None) -> List[Attempt]:
        """Ordered attempts for a category under the current capability."""
        category = DataCategory(category)
        capability = self.capabilities.capability(category)
        if live_only is None:
            live_only = capability.live_only

        chain = []
        if capability.can_call_direct and category in self.adapters:
            chain.append(Attempt(Route.DIRECT, self.direct_timeout))
        if capability.can_call_via_proxy and self.proxy is not None:
            chain.append(Attempt(Route.PROXY, self.proxy_timeout))
        if not live_only:
            chain.append(Attempt(Route.MOCK, 0.0))
        return chain

    async def resolve(
        self,
        category: DataCategory,
        params: Optional[Dict[str, Any]] = None,
        live_only: Optional[bool] = None,
    ) -> Resolution:
        """
        Resolve a category, consulting the cache first.

        Args:
            category: Data category to resolve
            params: Request parameters (region, days, lat/lng, ...)
            live_only: Per-call override of the no-mock flag

        Returns:
            Resolution with records tagged by the route that answered

        Raises:
            ResolutionFailed when every live route failed and mocks are disallowed
        """
        category = DataCategory(category)
        params = dict(params or {})
        if live_only is None:
            live_only = self.capabilities.is_live_only()

        cache_key = generate_cache_key(category, params, live_only)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return replace(cached, from_cache=True)

        chain = self.build_chain(category, live_only)
        attempts: List[AttemptRecord] = []
        errors: List[ProviderError] = []
        resolution = None

        for attempt in chain:
            start = time.monotonic()
            if attempt.route == Route.MOCK:
                source = "mock-fallback" if attempts else "mock"
                records = self.mocks.generate(category, params, source=source)
                attempts.append(AttemptRecord(Route.MOCK, True))
                logger.info(f"{category.value}: serving {len(records)} {source} records")
                resolution = Resolution(category, tuple(records), source, Route.MOCK, tuple(attempts))
                break

            logger.info(f"{category.value}: attempting {attempt.route.value} (timeout {attempt.timeout}s)")
            try:
                records, source = await self._run(category, attempt, params, live_only)
            except ProviderError as e:
                elapsed = int((time.monotonic() - start) * 1000)
                logger.warning(f"{e}; advancing chain")
                errors.append(e)
                attempts.append(AttemptRecord(attempt.route, False, elapsed, e))
                continue

            elapsed = int((time.monotonic() - start) * 1000)
            attempts.append(AttemptRecord(attempt.route, True, elapsed))
            logger.info(f"{category.value}: {len(records)} records from {source} via {attempt.route.value}")
            resolution = Resolution(category, tuple(records), source, attempt.route, tuple(attempts))
            break

        if resolution is None:
            failure = ResolutionFailed(category, errors)
            logger.error(str(failure))
            raise failure

        self.cache.set(cache_key, resolution, ttl_for(category))
        return resolution

    async def _run(
        self,
        category: DataCategory,
        attempt: Attempt,
        params: Dict[str, Any],
        live_only: bool,
    ) -> Tuple[List[CanonicalRecord], str]:
        """Execute one live attempt; every failure leaves as ProviderError."""
        try:
            if attempt.route == Route.DIRECT:
                return await self._direct(category, attempt.timeout, params, live_only)
            records, source = await self._bounded(
                self.proxy.fetch(category, params, live_only, attempt.timeout),
                attempt.timeout, category, Route.PROXY,
            )
        except ProviderError:
            raise
        except Exception as e:
            logger.debug(f"Unexpected error on {attempt.route.value}", exc_info=True)
            raise ProviderError(category, attempt.route, e) from e

        adapter = self.adapters.get(category)
        if not records and adapter is not None and adapter.empty_is_error:
            raise ProviderError(category, Route.PROXY, "empty response")
        return records, source

    async def _direct(
        self,
        category: DataCategory,
        timeout: float,
        params: Dict[str, Any],
        live_only: bool,
    ) -> Tuple[List[CanonicalRecord], str]:
        adapter = self.adapters[category]
        credential = self.capabilities.get_credential(category)

        subrequests = adapter.fan_out(params)
        if subrequests is not None:
            return await self._join(adapter, credential, params, subrequests, timeout, live_only)

        raw = await self._bounded(adapter.fetch(params, credential, timeout), timeout, category, Route.DIRECT)
        records = adapter.parse(raw, params)
        if not records and adapter.empty_is_error:
            raise ProviderError(category, Route.DIRECT, "empty response")
        return records, adapter.source_for(params, raw)

    async def _join(
        self,
        adapter: BaseAdapter,
        credential: Optional[str],
        params: Dict[str, Any],
        subrequests: List[Dict[str, Any]],
        timeout: float,
        live_only: bool,
    ) -> Tuple[List[CanonicalRecord], str]:
        """
        Best-effort join over same-tier subrequests.

        All subtasks are awaited; successes are concatenated in request
        order and failures dropped. When mocks are allowed the shortfall is
        backfilled with mock records, one per failed subrequest.
        """
        category = adapter.category

        async def run_one(sub: Dict[str, Any]) -> List[CanonicalRecord]:
            raw = await self._bounded(adapter.fetch(sub, credential, timeout), timeout, category, Route.DIRECT)
            return adapter.parse(raw, sub)

        outcomes = await asyncio.gather(*(run_one(sub) for sub in subrequests), return_exceptions=True)

        records: List[CanonicalRecord] = []
        failed: List[Dict[str, Any]] = []
        for sub, outcome in zip(subrequests, outcomes):
            if isinstance(outcome, Exception):
                logger.debug(f"{category.value}: subrequest {sub} failed: {outcome}")
                failed.append(sub)
            elif isinstance(outcome, BaseException):
                raise outcome
            elif not outcome:
                failed.append(sub)
            else:
                records.extend(outcome)

        if subrequests and not records:
            raise ProviderError(category, Route.DIRECT, f"all {len(subrequests)} subrequests failed")

        source = adapter.source_for(params)
        if failed:
            logger.warning(f"{category.value}: {len(failed)} of {len(subrequests)} subrequests failed")
            if not live_only:
                backfill = self.mocks.generate(category, adapter.backfill_params(params, failed), source="mock")
                records.extend(backfill[:len(failed)])
                source = f"{source}-partial"
        return records, source

    @staticmethod
    async def _bounded(coro, timeout: float, category: DataCategory, route: Route):
        """Await with a timeout; the losing request is cancelled."""
        try:
            return await asyncio.wait_for(coro, timeout)
        except asyncio.TimeoutError as e:
            raise ProviderError(category, route, f"timed out after {timeout}s") from e

    def invalidate(self) -> None:
        self.cache.invalidate_all()
