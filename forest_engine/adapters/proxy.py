"""
Proxy Client

Calls the forest-monitor proxy service (api/main.py or any host exposing
the same surface) for categories the current context cannot reach
directly. Responses are wrapped in ``{success, data, source, error}``.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
from pydantic import ValidationError

from .base import USER_AGENT
from ..errors import ProviderError
from ..models import RECORD_TYPES, CanonicalRecord, DataCategory, Route

logger = logging.getLogger(__name__)

PROXY_ENDPOINTS = {
    DataCategory.FIRE: "/fire-alerts",
    DataCategory.DEFORESTATION: "/deforestation-alerts",
    DataCategory.WEATHER: "/weather",
    DataCategory.REGIONS: "/forest-regions",
    DataCategory.BIODIVERSITY: "/biodiversity",
    DataCategory.SATELLITE: "/satellite-data",
}

# Request parameters the proxy surface understands, per category
PROXY_PARAMS = {
    DataCategory.FIRE: ("region", "days", "dataset"),
    DataCategory.DEFORESTATION: ("region", "days", "limit"),
    DataCategory.WEATHER: ("lat", "lng"),
    DataCategory.REGIONS: (),
    DataCategory.BIODIVERSITY: ("region", "limit"),
    DataCategory.SATELLITE: ("lat", "lng", "layer"),
}


class ProxyClient:
    """HTTP client for the proxy route."""

    def __init__(self, base_url: str, session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session

    def _error(self, category: DataCategory, cause: Any) -> ProviderError:
        return ProviderError(category, Route.PROXY, cause)

    def _query(self, category: DataCategory, params: Dict[str, Any], live_only: bool) -> Dict[str, str]:
        query = {
            name: str(params[name])
            for name in PROXY_PARAMS[category]
            if params.get(name) is not None
        }
        if live_only:
            query["no_mock"] = "1"
        return query

    async def fetch(
        self,
        category: DataCategory,
        params: Dict[str, Any],
        live_only: bool,
        timeout: float,
    ) -> Tuple[List[CanonicalRecord], str]:
        """
        Fetch one category through the proxy.

        Returns:
            (records, source) where source is the tag the proxy reported

        Raises:
            ProviderError on network failure, non-2xx status, timeout,
            a malformed envelope or ``success: false``
        """
        category = DataCategory(category)
        url = f"{self.base_url}{PROXY_ENDPOINTS[category]}"
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        client_timeout = aiohttp.ClientTimeout(total=timeout)
        query = self._query(category, params, live_only)

        try:
            if self.session is not None:
                envelope = await self._read(self.session, url, query, headers, client_timeout)
            else:
                async with aiohttp.ClientSession(timeout=client_timeout) as session:
                    envelope = await self._read(session, url, query, headers, client_timeout)
        except aiohttp.ClientResponseError as e:
            raise self._error(category, f"HTTP {e.status}: {e.message}") from e
        except asyncio.TimeoutError as e:
            raise self._error(category, f"Request timed out after {timeout}s") from e
        except aiohttp.ClientError as e:
            raise self._error(category, e) from e
        except ValueError as e:
            raise self._error(category, f"Undecodable response body: {e}") from e

        return self.parse_envelope(category, envelope)

    @staticmethod
    async def _read(session, url, params, headers, timeout):
        async with session.get(url, params=params, headers=headers, timeout=timeout) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    def parse_envelope(self, category: DataCategory, envelope: Any) -> Tuple[List[CanonicalRecord], str]:
        if not isinstance(envelope, dict):
            raise self._error(category, "response is not an envelope object")
        if not envelope.get("success"):
            raise self._error(category, envelope.get("error") or "proxy reported failure")

        source = envelope.get("source") or "proxy"
        data = envelope.get("data")
        if data is None:
            items: List[Any] = []
        elif isinstance(data, list):
            items = data
        else:
            items = [data]

        record_type = RECORD_TYPES[category]
        records = []
        try:
            for item in items:
                if isinstance(item, dict) and "source" not in item:
                    item = {**item, "source": source}
                records.append(record_type.model_validate(item))
        except ValidationError as e:
            raise self._error(category, f"malformed {category.value} record: {e.error_count()} errors") from e
        return records, source

    async def health_check(self) -> Dict[str, Any]:
        url = f"{self.base_url}/health"
        try:
            if self.session is not None:
                body = await self._read(self.session, url, None, {"User-Agent": USER_AGENT},
                                        aiohttp.ClientTimeout(total=5))
            else:
                async with aiohttp.ClientSession() as session:
                    body = await self._read(session, url, None, {"User-Agent": USER_AGENT},
                                            aiohttp.ClientTimeout(total=5))
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            return {"source": "proxy", "status": "ERROR", "configured": True, "error": str(e)}
        return {"source": "proxy", "status": "OPERATIONAL", "configured": True, "details": body}
