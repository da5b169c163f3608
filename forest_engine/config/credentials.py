"""
Forest Engine: API credential management.

Keys come from the persisted local configuration record first and from
environment variables (via Settings) second. Never hardcoded.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from config.settings import PLACEHOLDER_KEYS, PROVIDERS
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_SETTING_MAP = {
    "nasa_firms": "nasa_firms_api_key",
    "openweather": "openweather_api_key",
}

TRUTHY_FLAGS = {"1", "true", "yes", "on"}
FALSY_FLAGS = {"0", "false", "no", "off", ""}


def is_usable_key(value: Optional[str]) -> bool:
    """A key counts only if it is a non-empty string that is not a shipped placeholder."""
    if not isinstance(value, str):
        return False
    value = value.strip()
    return bool(value) and value not in PLACEHOLDER_KEYS


def env_credentials(settings) -> Dict[str, str]:
    """Provider keys configured through Settings / environment variables."""
    keys = {}
    for provider, attr in ENV_SETTING_MAP.items():
        value = getattr(settings, attr, None)
        if is_usable_key(value):
            keys[provider] = value.strip()
        elif value:
            logger.warning(f"API key not configured: {attr.upper()} holds a placeholder")
    return keys


def parse_flag(raw: Any) -> bool:
    """Boolean flag from a stored value ("1", "true", True, ...)."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int):
        return raw != 0
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in TRUTHY_FLAGS:
            return True
        if text in FALSY_FLAGS:
            return False
    raise ConfigurationError("no_mock", f"expected a boolean, got {raw!r}")


def parse_api_key(provider: str, raw: Any) -> Optional[str]:
    """
    Stored key for one provider. Accepts a plain string or the
    ``{"value": "..."}`` form written by the settings panel.
    """
    if provider not in PROVIDERS:
        raise ConfigurationError(f"api_keys.{provider}", "unknown provider")
    if isinstance(raw, dict):
        raw = raw.get("value")
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ConfigurationError(f"api_keys.{provider}", f"expected a string, got {type(raw).__name__}")
    return raw.strip() if is_usable_key(raw) else None


class LocalConfigStore:
    """
    Durable local key-value record:
    {"api_keys": {provider: key}, "no_mock": bool}
    """

    def __init__(self, path: str | Path):
        self.path = Path(os.path.expanduser(str(path)))

    def load(self) -> Dict[str, Any]:
        """Read the record; a missing file is an empty record."""
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                record = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(str(self.path), f"unreadable configuration: {e}") from e
        if not isinstance(record, dict):
            raise ConfigurationError(str(self.path), "configuration record must be an object")
        return record

    def save(self, record: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2, sort_keys=True)
        tmp.replace(self.path)
