"""
Database Models for Geo Analytics

This module defines the SQLModel schema for:
- CountryCounter: Per-country lookup counts

Design Decisions:
- One row per country code; the code itself is the primary key, so a second
  row for the same code can never exist
- count is only ever incremented (see CounterStore.increment)
- No other tables, indexes or migrations: the table is created lazily on
  first open and never dropped
"""

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Integer, Text


class CountryCounter(SQLModel, table=True):
    """
    Lookup counts keyed by country code.

    Fields:
    - iso_code: ISO 3166-1 alpha-2 code (any string is accepted as a key)
    - count: Number of lookups resolved to this country, starts at 1
    """
    __tablename__ = "analytics"

    iso_code: str = Field(sa_column=Column(Text, primary_key=True))
    count: int = Field(default=1, sa_column=Column(Integer, nullable=False))
