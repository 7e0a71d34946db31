# ridebid/core/geo/__init__.py
"""
Geo-Matcher: поиск водителей рядом с точкой.
"""

from ridebid.core.geo.models import Coordinates, DriverLocation, NearbyDriver, ScoredDriver
from ridebid.core.geo.repository import DriverLocationStore, RedisDriverLocationStore
from ridebid.core.geo.service import GeoMatcher, haversine_km
from ridebid.core.geo.snapper import GoogleRoadsSnapper, IdentitySnapper, RoadSnapper

__all__ = [
    "Coordinates",
    "DriverLocation",
    "NearbyDriver",
    "ScoredDriver",
    "DriverLocationStore",
    "RedisDriverLocationStore",
    "GeoMatcher",
    "haversine_km",
    "RoadSnapper",
    "IdentitySnapper",
    "GoogleRoadsSnapper",
]
