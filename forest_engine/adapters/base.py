"""
Base Provider Adapter

Abstract base class for all upstream provider adapters.
Each adapter builds requests for exactly one upstream and parses its raw
response into canonical records. All upstream faults leave the adapter
as a ProviderError.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import asyncio
import logging
import time

import aiohttp

from ..errors import ProviderError
from ..models import CanonicalRecord, DataCategory, Route

logger = logging.getLogger(__name__)

USER_AGENT = "Forest-Monitor/1.0"


class BaseAdapter(ABC):
    """
    Abstract base class for provider adapters.

    Provides:
    - HTTP GET with a caller-supplied timeout
    - Uniform error normalization into ProviderError
    - Health check
    """

    category: DataCategory
    requires_credential: bool = False
    # Single-record categories treat an empty parse as a failed attempt
    empty_is_error: bool = False

    def __init__(self, base_url: str = "", session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url
        self.session = session
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Source tag stamped on every record this adapter produces."""

    @abstractmethod
    async def fetch(self, params: Dict[str, Any], credential: Optional[str], timeout: float) -> Any:
        """
        Fetch the raw upstream payload.

        Args:
            params: Category request parameters (region, lat/lng, ...)
            credential: Provider API key, if the provider needs one
            timeout: Per-attempt timeout in seconds

        Raises:
            ProviderError on network failure, non-2xx status or timeout
        """

    @abstractmethod
    def parse(self, raw: Any, params: Dict[str, Any]) -> List[CanonicalRecord]:
        """
        Parse a raw payload into canonical records.

        Pure and total: malformed or empty payloads give an empty list.
        """

    def fan_out(self, params: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
        """
        Split a request into independent same-tier subrequests that the
        executor issues concurrently. None means a single request.
        """
        return None

    def backfill_params(self, params: Dict[str, Any], failed: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Mock-generator parameters covering the failed subrequests of a join."""
        return {**params, "limit": len(failed)}

    def source_for(self, params: Dict[str, Any], raw: Any = None) -> str:
        """Source tag for a request and, when known, the raw payload that answered it."""
        return self.source_name

    def is_configured(self, credential: Optional[str] = None) -> bool:
        return bool(credential) or not self.requires_credential

    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _error(self, cause: Any) -> ProviderError:
        return ProviderError(self.category, Route.DIRECT, cause)

    async def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 5.0,
        as_text: bool = False,
    ) -> Any:
        """
        Make an HTTP GET request.

        Returns:
            Parsed JSON, or the body text when ``as_text`` is set
        """
        url = self._url(path)
        default_headers = {
            "Accept": "text/csv" if as_text else "application/json",
            "User-Agent": USER_AGENT,
        }
        if headers:
            default_headers.update(headers)

        client_timeout = aiohttp.ClientTimeout(total=timeout)
        try:
            if self.session is not None:
                return await self._read(self.session, url, params, default_headers, client_timeout, as_text)
            async with aiohttp.ClientSession(timeout=client_timeout) as session:
                return await self._read(session, url, params, default_headers, client_timeout, as_text)
        except aiohttp.ClientResponseError as e:
            raise self._error(f"HTTP {e.status}: {e.message}") from e
        except asyncio.TimeoutError as e:
            raise self._error(f"Request timed out after {timeout}s") from e
        except aiohttp.ClientError as e:
            raise self._error(e) from e
        except ValueError as e:
            raise self._error(f"Undecodable response body: {e}") from e

    @staticmethod
    async def _read(session, url, params, headers, timeout, as_text):
        async with session.get(url, params=params, headers=headers, timeout=timeout) as response:
            response.raise_for_status()
            if as_text:
                return await response.text()
            return await response.json(content_type=None)

    async def health_check(self, credential: Optional[str] = None) -> Dict[str, Any]:
        """
        Perform a health check on the upstream.

        Returns:
            Dict with status, configured, response_time_ms
        """
        if not self.is_configured(credential):
            return {"source": self.source_name, "status": "NOT_CONFIGURED", "configured": False}
        start = time.time()
        try:
            await self.fetch(self.health_params(), credential, timeout=5.0)
            return {
                "source": self.source_name,
                "status": "OPERATIONAL",
                "configured": True,
                "response_time_ms": int((time.time() - start) * 1000),
            }
        except ProviderError as e:
            return {
                "source": self.source_name,
                "status": "ERROR",
                "configured": True,
                "error": str(e.cause),
                "response_time_ms": int((time.time() - start) * 1000),
            }

    def health_params(self) -> Dict[str, Any]:
        """Cheap request used by health_check()."""
        return {}
