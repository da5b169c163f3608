"""
Forest Engine: configuration / capability manager.

Pure configuration plus a lookup table; performs no network I/O.
Tracks which provider credentials are present, whether live-only
(no-mock) mode is enabled, and which routes each category may use in
the injected execution context.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from config.settings import BROWSER_DIRECT_ACCESS, PROVIDERS
from ..errors import ConfigurationError
from ..models import DataCategory, Route
from .credentials import LocalConfigStore, env_credentials, parse_api_key, parse_flag

logger = logging.getLogger(__name__)

CATEGORY_PROVIDER = {
    DataCategory.FIRE: "nasa_firms",
    DataCategory.DEFORESTATION: "global_forest_watch",
    DataCategory.WEATHER: "openweather",
    DataCategory.REGIONS: "openweather",
    DataCategory.BIODIVERSITY: "gbif",
    DataCategory.SATELLITE: "nasa_gibs",
}


class ExecutionContext(str, enum.Enum):
    """Where the engine runs; decides which upstreams are reachable directly."""
    SERVER = "server"
    BROWSER = "browser"


@dataclass(frozen=True)
class Capability:
    category: DataCategory
    has_credential: bool
    can_call_direct: bool
    can_call_via_proxy: bool
    live_only: bool


class CapabilityManager:
    """
    Process-wide capability state, constructed explicitly and injected.

    Mutated only by explicit configuration changes (key saved/removed,
    flag toggled, refresh). Every change is persisted to the local store
    and announced to subscribers.
    """

    def __init__(
        self,
        store: Optional[LocalConfigStore] = None,
        context: ExecutionContext = ExecutionContext.SERVER,
        proxy_available: bool = False,
        env_keys: Optional[Dict[str, str]] = None,
        live_only_default: bool = False,
    ):
        self.store = store
        self.context = ExecutionContext(context)
        self.proxy_available = proxy_available
        self._env_keys = dict(env_keys or {})
        self._live_only_default = live_only_default
        self._stored_keys: Dict[str, str] = {}
        self._stored_no_mock: Optional[bool] = None
        self._listeners: List[Callable[[], None]] = []
        self._load()

    @classmethod
    def from_settings(cls, settings, store: Optional[LocalConfigStore] = None) -> "CapabilityManager":
        return cls(
            store=store if store is not None else LocalConfigStore(settings.config_path),
            context=ExecutionContext(settings.execution_context),
            proxy_available=bool(settings.proxy_base_url),
            env_keys=env_credentials(settings),
            live_only_default=settings.live_only,
        )

    # ---- loading / persistence ----

    def _load(self) -> None:
        self._stored_keys = {}
        self._stored_no_mock = None
        if self.store is None:
            return
        try:
            record = self.store.load()
        except ConfigurationError as e:
            logger.warning(f"Ignoring stored configuration: {e}")
            return

        raw_keys = record.get("api_keys", {})
        if not isinstance(raw_keys, dict):
            logger.warning(str(ConfigurationError("api_keys", "expected an object")))
            raw_keys = {}
        for provider, raw in raw_keys.items():
            try:
                key = parse_api_key(provider, raw)
            except ConfigurationError as e:
                logger.warning(f"Treating credential as absent: {e}")
                continue
            if key:
                self._stored_keys[provider] = key

        if "no_mock" in record:
            try:
                self._stored_no_mock = parse_flag(record["no_mock"])
            except ConfigurationError as e:
                logger.warning(f"Treating no-mock flag as unset: {e}")

    def _persist(self) -> None:
        if self.store is None:
            return
        record = {"api_keys": dict(self._stored_keys)}
        if self._stored_no_mock is not None:
            record["no_mock"] = self._stored_no_mock
        self.store.save(record)

    def _snapshot(self) -> tuple:
        return tuple(sorted(self._stored_keys.items())), self._stored_no_mock

    # ---- notifications ----

    def subscribe(self, listener: Callable[[], None]) -> None:
        """Register a callback fired after every configuration change."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ---- mutations ----

    def refresh(self) -> None:
        """Reload persisted configuration; notifies subscribers if anything changed."""
        before = self._snapshot()
        self._load()
        if self._snapshot() != before:
            logger.info("Configuration changed on refresh")
            self._notify()

    def set_credential(self, provider: str, value: str) -> None:
        key = parse_api_key(provider, value)
        if key is None:
            raise ConfigurationError(f"api_keys.{provider}", "empty or placeholder key")
        self._stored_keys[provider] = key
        self._persist()
        logger.info(f"Credential saved for {provider}")
        self._notify()

    def remove_credential(self, provider: str) -> None:
        if self._stored_keys.pop(provider, None) is None:
            return
        self._persist()
        logger.info(f"Credential removed for {provider}")
        self._notify()

    def set_live_only(self, enabled: bool) -> None:
        self._stored_no_mock = bool(enabled)
        self._persist()
        logger.info(f"Live-only mode {'enabled' if enabled else 'disabled'}")
        self._notify()

    # ---- queries ----

    def is_live_only(self) -> bool:
        if self._stored_no_mock is not None:
            return self._stored_no_mock
        return self._live_only_default

    def get_credential(self, category: DataCategory) -> Optional[str]:
        provider = CATEGORY_PROVIDER[DataCategory(category)]
        return self._stored_keys.get(provider) or self._env_keys.get(provider)

    def has_credential(self, category: DataCategory) -> bool:
        """True when the category's provider needs no key or has one configured."""
        provider = CATEGORY_PROVIDER[DataCategory(category)]
        if not PROVIDERS[provider]["requires_key"]:
            return True
        return self.get_credential(category) is not None

    def can_call_direct(self, category: DataCategory) -> bool:
        category = DataCategory(category)
        if not self.has_credential(category):
            return False
        if self.context == ExecutionContext.SERVER:
            return True
        return BROWSER_DIRECT_ACCESS[category.value]

    def capability(self, category: DataCategory) -> Capability:
        category = DataCategory(category)
        return Capability(
            category=category,
            has_credential=self.has_credential(category),
            can_call_direct=self.can_call_direct(category),
            can_call_via_proxy=self.proxy_available,
            live_only=self.is_live_only(),
        )

    def resolve_route(self, category: DataCategory) -> Route:
        """Preferred live route: Direct when reachable, otherwise Proxy."""
        return Route.DIRECT if self.can_call_direct(category) else Route.PROXY

    def configured_providers(self) -> Dict[str, bool]:
        """Which key-requiring providers have a credential."""
        keys = {**self._env_keys, **self._stored_keys}
        return {
            provider: provider in keys
            for provider, cfg in PROVIDERS.items()
            if cfg["requires_key"]
        }
