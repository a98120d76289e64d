"""
Database module.

This module provides:
- CountryCounter: the analytics table model
- CounterStore: non-blocking access to the counts, backed by one SQLite
  aiosqlite connection owned by a single consumer task
"""

from geo_analytics.db.counter_store import CounterStore, CountryCounts
from geo_analytics.db.models import CountryCounter

__all__ = [
    "CounterStore",
    "CountryCounts",
    "CountryCounter",
]
