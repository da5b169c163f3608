"""
Forest Monitor Configuration Settings

Centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Forest Monitor Data Engine"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Execution context: "server" may call every upstream directly,
    # "browser" is limited by BROWSER_DIRECT_ACCESS
    execution_context: str = "server"

    # Proxy route (unset = no proxy route in the chain)
    proxy_base_url: Optional[str] = None

    # Per-attempt timeouts (seconds)
    direct_timeout: float = 5.0
    proxy_timeout: float = 8.0

    # Persisted local configuration (api keys + no-mock flag)
    config_path: str = "~/.forest_monitor/config.json"

    # Data Source API Keys (Free Tier)
    nasa_firms_api_key: Optional[str] = None
    openweather_api_key: Optional[str] = None

    # Environment default for the no-mock flag
    live_only: bool = False

    # Facade
    alerts_limit: int = 25
    # Pinned FIRMS dataset; unset walks MODIS_NRT, VIIRS_SNPP_NRT, VIIRS_NOAA20_NRT
    firms_dataset: Optional[str] = None
    tracked_species: List[str] = [
        "Pongo abelii",
        "Panthera onca",
        "Gorilla beringei",
        "Harpia harpyja",
        "Ara macao",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Cache TTLs per data category (seconds). Fixed, never configurable per call.
CACHE_TTLS = {
    "fire": 15 * 60,
    "deforestation": 60 * 60,
    "weather": 10 * 60,
    "regions": 24 * 60 * 60,
    "biodiversity": 24 * 60 * 60,
    "satellite": 30 * 60,
}

# Upstream provider configurations
PROVIDERS = {
    "nasa_firms": {
        "name": "NASA FIRMS - Fire Information for Resource Management System",
        "base_url": "https://firms.modaps.eosdis.nasa.gov/api",
        "categories": ["fire"],
        "requires_key": True,
        "rate_limit": 1000,  # per day
    },
    "global_forest_watch": {
        "name": "Global Forest Watch",
        "base_url": "https://production-api.globalforestwatch.org",
        "categories": ["deforestation"],
        "requires_key": False,
        "rate_limit": 10000,  # per day
    },
    "openweather": {
        "name": "OpenWeather",
        "base_url": "https://api.openweathermap.org/data/2.5",
        "categories": ["weather", "regions"],
        "requires_key": True,
        "rate_limit": 1000,  # per day (free tier)
    },
    "gbif": {
        "name": "GBIF - Global Biodiversity Information Facility",
        "base_url": "https://api.gbif.org/v1",
        "categories": ["biodiversity"],
        "requires_key": False,
        "rate_limit": 100000,  # per day
    },
    "nasa_gibs": {
        "name": "NASA GIBS - Global Imagery Browse Services",
        "base_url": "https://gibs.earthdata.nasa.gov",
        "categories": ["satellite"],
        "requires_key": False,
        "rate_limit": 999999,  # No strict limit
    },
}

# Which categories a browser may call directly (CORS policy of each upstream)
BROWSER_DIRECT_ACCESS = {
    "fire": False,
    "deforestation": False,
    "weather": True,
    "regions": True,
    "biodiversity": True,
    "satellite": True,
}

# Credential values shipped as examples count as "not configured"
PLACEHOLDER_KEYS = {
    "YOUR_NASA_FIRMS_API_KEY",
    "YOUR_NASA_FIRMS_API_KEY_HERE",
    "YOUR_OPENWEATHER_API_KEY",
    "YOUR_OPENWEATHER_API_KEY_HERE",
}
