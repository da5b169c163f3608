"""
Provider adapters for upstream environmental data APIs.
"""

from .base import BaseAdapter
from .firms import FIRMSAdapter
from .gfw import GlobalForestWatchAdapter
from .openweather import OpenWeatherAdapter
from .gbif import GBIFAdapter
from .gibs import GIBSAdapter
from .regions import ForestRegionAdapter
from .proxy import ProxyClient

__all__ = [
    'BaseAdapter',
    'FIRMSAdapter',
    'GlobalForestWatchAdapter',
    'OpenWeatherAdapter',
    'GBIFAdapter',
    'GIBSAdapter',
    'ForestRegionAdapter',
    'ProxyClient',
]
