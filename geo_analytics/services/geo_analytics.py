"""
Geo Analytics Service

Composes country resolution with persistent per-country counting.

Design Decisions:
- Resolution is synchronous and in-process; counting goes through the
  CounterStore queue
- A counting failure never reaches the resolution caller: it is logged and
  dropped (CountingMode.best_effort / CountingMode.wait)
- Reporting failures always propagate; there is no degraded report
"""

import asyncio
import logging
from functools import partial
from typing import Optional, Set

from geo_analytics.core.exceptions import StoreError
from geo_analytics.core.logging import configure_logging
from geo_analytics.core.setting import CountingMode, Settings, settings as default_settings
from geo_analytics.db.counter_store import CounterStore, CountryCounts
from geo_analytics.services.geo_resolver import Address, CountryResolver, GeoResolver

logger = logging.getLogger(__name__)


class GeoAnalytics:
    """
    Geo-locates addresses and keeps per-country analytics.

    Args:
        resolver: Maps addresses to country codes (usually a GeoResolver)
        store: Open CounterStore
        mode: How increments are dispatched (see CountingMode)
    """

    def __init__(
        self,
        resolver: CountryResolver,
        store: CounterStore,
        mode: CountingMode = CountingMode.best_effort,
    ):
        self.resolver = resolver
        self.store = store
        self.mode = CountingMode(mode)
        self._pending: Set[asyncio.Future] = set()

    @classmethod
    async def open(
        cls,
        geoip_country_db_path: str,
        analytics_db_path: str,
        mode: CountingMode = CountingMode.best_effort,
    ) -> "GeoAnalytics":
        """
        Load the geo database and open the counter store.

        Raises:
            GeoError: If the geo database cannot be loaded
            BackendError: If the counter store cannot be opened
        """
        resolver = await GeoResolver.load(geoip_country_db_path)
        try:
            store = await CounterStore.open(analytics_db_path)
        except StoreError:
            resolver.close()
            raise
        return cls(resolver, store, mode=mode)

    @classmethod
    async def from_settings(cls, settings: Optional[Settings] = None) -> "GeoAnalytics":
        """Open using GEOIP_COUNTRY_DB_PATH, ANALYTICS_DB_PATH and COUNTING_MODE; applies LOG_LEVEL."""
        settings = settings or default_settings
        configure_logging(settings.LOG_LEVEL)
        return await cls.open(
            settings.GEOIP_COUNTRY_DB_PATH,
            settings.ANALYTICS_DB_PATH,
            mode=settings.COUNTING_MODE,
        )

    async def resolve_and_count(self, address: Address) -> Optional[str]:
        """
        Resolve ``address`` to a country code and count the lookup.

        Returns None, without counting anything, when the address cannot be
        resolved. Counting failures are logged, never raised.
        """
        iso_code = self.resolver.lookup(address)
        if iso_code is None:
            return None

        if self.mode is CountingMode.wait:
            try:
                await self.store.increment(iso_code)
            except StoreError as e:
                logger.error(f"Could not increment analytics for {iso_code}: {e}", exc_info=True)
        else:
            pending = self.store.increment_nowait(iso_code)
            self._pending.add(pending)
            pending.add_done_callback(partial(self._increment_done, iso_code))

        return iso_code

    def _increment_done(self, iso_code: str, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(
                f"Could not increment analytics for {iso_code}: {error}",
                exc_info=error,
            )

    async def report(self) -> CountryCounts:
        """
        Every (iso_code, count) pair recorded so far, in no particular order.

        Raises:
            BackendError: If the store cannot be queried
        """
        return await self.store.list()

    async def flush(self) -> None:
        """Wait for in-flight best-effort increments. Never raises."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def close(self) -> None:
        try:
            await self.flush()
            await self.store.close()
        finally:
            close_resolver = getattr(self.resolver, "close", None)
            if close_resolver is not None:
                close_resolver()

    async def __aenter__(self) -> "GeoAnalytics":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
