"""Shared fixtures for the geo analytics tests."""

from typing import Dict, Optional

import pytest
import pytest_asyncio
from sqlalchemy import text

from geo_analytics.db.counter_store import CounterStore
from geo_analytics.db.sqlite_adapter import create_sqlite_engine


class FakeResolver:
    """Dict-backed stand-in for GeoResolver."""

    def __init__(self, table: Dict[str, str]):
        self.table = dict(table)
        self.closed = False
        self.lookups = []

    def lookup(self, address) -> Optional[str]:
        self.lookups.append(address)
        return self.table.get(str(address))

    def close(self) -> None:
        self.closed = True


async def drop_analytics_table(path: str) -> None:
    """Break a store from the outside by dropping its table."""
    engine = create_sqlite_engine(path)
    try:
        async with engine.begin() as connection:
            await connection.execute(text("DROP TABLE analytics"))
    finally:
        await engine.dispose()


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "analytics.db")


@pytest_asyncio.fixture
async def store(db_path):
    store = await CounterStore.open(db_path)
    yield store
    await store.close()


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver({
        "8.8.8.8": "US",
        "1.1.1.1": "US",
        "2.2.2.2": "FR",
        "2a00:1450:4007::1": "FR",
    })
