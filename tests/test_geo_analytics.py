"""Tests for the GeoAnalytics facade."""

import logging

import pytest

from geo_analytics.core.exceptions import BackendError, GeoError
from geo_analytics.core.setting import CountingMode, Settings
from geo_analytics.db.counter_store import CounterStore
from geo_analytics.services.geo_analytics import GeoAnalytics
from geo_analytics.services.geo_resolver import GeoResolver

from conftest import FakeResolver, drop_analytics_table


@pytest.fixture
def analytics(resolver, store) -> GeoAnalytics:
    return GeoAnalytics(resolver, store)


@pytest.fixture
def waiting_analytics(resolver, store) -> GeoAnalytics:
    return GeoAnalytics(resolver, store, mode=CountingMode.wait)


class TestResolveAndCount:
    """The resolve-and-count path."""

    @pytest.mark.asyncio
    async def test_returns_code_and_counts(self, analytics):
        assert await analytics.resolve_and_count("8.8.8.8") == "US"
        await analytics.flush()
        assert await analytics.report() == [("US", 1)]

    @pytest.mark.asyncio
    async def test_report_reflects_earlier_lookups_without_flush(self, analytics):
        """Increments are queued before resolve_and_count returns."""
        await analytics.resolve_and_count("8.8.8.8")
        await analytics.resolve_and_count("1.1.1.1")
        await analytics.resolve_and_count("2.2.2.2")
        assert set(await analytics.report()) == {("US", 2), ("FR", 1)}

    @pytest.mark.asyncio
    async def test_miss_returns_none_and_counts_nothing(self, analytics):
        assert await analytics.resolve_and_count("203.0.113.9") is None
        assert await analytics.resolve_and_count("garbage") is None
        await analytics.flush()
        assert await analytics.report() == []

    @pytest.mark.asyncio
    async def test_miss_leaves_existing_rows_untouched(self, analytics):
        await analytics.resolve_and_count("8.8.8.8")
        await analytics.resolve_and_count("203.0.113.9")
        assert await analytics.report() == [("US", 1)]

    @pytest.mark.asyncio
    async def test_wait_mode_counts_before_returning(self, waiting_analytics, store):
        assert await waiting_analytics.resolve_and_count("2a00:1450:4007::1") == "FR"
        assert await store.get("FR") == 1

    @pytest.mark.asyncio
    async def test_many_lookups_are_all_counted(self, analytics):
        for _ in range(200):
            await analytics.resolve_and_count("8.8.8.8")
        await analytics.flush()
        assert await analytics.report() == [("US", 200)]


class TestCountingFailures:
    """A broken store never breaks resolution."""

    @pytest.mark.asyncio
    async def test_closed_store_still_resolves(self, analytics, store, caplog):
        caplog.set_level(logging.ERROR, logger="geo_analytics")
        await store.close()

        assert await analytics.resolve_and_count("8.8.8.8") == "US"
        await analytics.flush()

        assert "Could not increment analytics for US" in caplog.text

    @pytest.mark.asyncio
    async def test_dropped_table_still_resolves(self, analytics, db_path, caplog):
        caplog.set_level(logging.ERROR, logger="geo_analytics")
        await drop_analytics_table(db_path)

        assert await analytics.resolve_and_count("2.2.2.2") == "FR"
        await analytics.flush()

        assert "Could not increment analytics for FR" in caplog.text

    @pytest.mark.asyncio
    async def test_wait_mode_logs_instead_of_raising(self, waiting_analytics, db_path, caplog):
        caplog.set_level(logging.ERROR, logger="geo_analytics")
        await drop_analytics_table(db_path)

        assert await waiting_analytics.resolve_and_count("8.8.8.8") == "US"
        assert "Could not increment analytics for US" in caplog.text

    @pytest.mark.asyncio
    async def test_report_propagates_store_failure(self, analytics, store):
        await store.close()
        with pytest.raises(BackendError):
            await analytics.report()


class TestConstruction:
    """Building the facade from paths and settings."""

    @pytest.mark.asyncio
    async def test_missing_geo_database_is_fatal(self, tmp_path, db_path):
        with pytest.raises(GeoError):
            await GeoAnalytics.open(str(tmp_path / "missing.mmdb"), db_path)

    @pytest.mark.asyncio
    async def test_store_failure_closes_resolver(self, tmp_path, monkeypatch, resolver):
        async def fake_load(path):
            return resolver

        monkeypatch.setattr(GeoResolver, "load", fake_load)
        with pytest.raises(BackendError):
            await GeoAnalytics.open("country.mmdb", str(tmp_path / "no-such-dir" / "a.db"))
        assert resolver.closed

    @pytest.mark.asyncio
    async def test_from_settings(self, db_path, monkeypatch, resolver):
        loaded_from = []

        async def fake_load(path):
            loaded_from.append(path)
            return resolver

        monkeypatch.setattr(GeoResolver, "load", fake_load)
        settings = Settings(
            GEOIP_COUNTRY_DB_PATH="country.mmdb",
            ANALYTICS_DB_PATH=db_path,
            COUNTING_MODE="wait",
        )

        async with await GeoAnalytics.from_settings(settings) as analytics:
            assert analytics.mode is CountingMode.wait
            assert await analytics.resolve_and_count("8.8.8.8") == "US"
            assert await analytics.report() == [("US", 1)]

        assert loaded_from == ["country.mmdb"]
        assert resolver.closed

    @pytest.mark.asyncio
    async def test_close_flushes_pending_increments(self, db_path):
        first = FakeResolver({"8.8.8.8": "US"})
        analytics = GeoAnalytics(first, await CounterStore.open(db_path))
        for _ in range(10):
            await analytics.resolve_and_count("8.8.8.8")
        await analytics.close()

        async with await CounterStore.open(db_path) as reopened:
            assert await reopened.list() == [("US", 10)]

    @pytest.mark.asyncio
    async def test_close_releases_resolver_when_store_close_fails(self, resolver, store, monkeypatch):
        async def failing_close():
            raise BackendError("disk went away")

        analytics = GeoAnalytics(resolver, store)
        monkeypatch.setattr(store, "close", failing_close)

        with pytest.raises(BackendError):
            await analytics.close()
        assert resolver.closed
