"""
Geo Analytics

Geo-locates network addresses to ISO country codes and keeps persistent
per-country lookup counts.

Usage:
    async with await GeoAnalytics.open("GeoLite2-Country.mmdb", "analytics.db") as analytics:
        code = await analytics.resolve_and_count("8.8.8.8")
        counts = await analytics.report()
"""

from geo_analytics.core.exceptions import BackendError, GeoAnalyticsException, GeoError, StoreError
from geo_analytics.core.setting import CountingMode
from geo_analytics.db.counter_store import CounterStore
from geo_analytics.services.geo_analytics import GeoAnalytics
from geo_analytics.services.geo_resolver import GeoResolver

__all__ = [
    "BackendError",
    "CounterStore",
    "CountingMode",
    "GeoAnalytics",
    "GeoAnalyticsException",
    "GeoError",
    "GeoResolver",
    "StoreError",
]
