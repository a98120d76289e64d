"""
Geo Resolver

Thin wrapper around the geoip2 country reader. The MaxMind database format
and lookup algorithm live in geoip2/maxminddb; this module only loads the file
and maps lookup outcomes to "country code or None".
"""

import asyncio
import ipaddress
import logging
from typing import Optional, Protocol, Union

import geoip2.database
import geoip2.errors
import maxminddb

from geo_analytics.core.exceptions import GeoError

logger = logging.getLogger(__name__)

Address = Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address]

# database_type substrings whose records carry a country
SUPPORTED_DATABASE_TYPES = ("Country", "City")


class CountryResolver(Protocol):
    """Anything that maps an address to an ISO country code."""

    def lookup(self, address: Address) -> Optional[str]:
        ...


class GeoResolver:
    """
    Resolves addresses to ISO 3166-1 alpha-2 country codes.

    The whole database is read into memory when loaded, so lookups never
    touch the disk and never suspend.
    """

    def __init__(
        self,
        reader: geoip2.database.Reader,
        path: Optional[str] = None,
        database_type: str = "Country",
    ):
        self._reader = reader
        self.path = path
        # geoip2 only allows country() on Country databases; City records carry a country too
        self._query = reader.city if "City" in database_type else reader.country

    @classmethod
    def open(cls, path: str) -> "GeoResolver":
        """
        Load a MaxMind country database from ``path``.

        Raises:
            GeoError: If the file is missing, unreadable, not a MaxMind DB,
                or a MaxMind DB without country data (e.g. ASN)
        """
        try:
            reader = geoip2.database.Reader(path, mode=maxminddb.MODE_MEMORY)
        except (OSError, maxminddb.InvalidDatabaseError, ValueError) as e:
            raise GeoError(path, reason=f"Could not load geo database ({type(e).__name__}: {e})") from e
        database_type = reader.metadata().database_type
        if not any(kind in database_type for kind in SUPPORTED_DATABASE_TYPES):
            reader.close()
            raise GeoError(path, reason=f"Not a country database (type {database_type!r})")
        logger.info(f"Geo database loaded from {path}")
        return cls(reader, path=path, database_type=database_type)

    @classmethod
    async def load(cls, path: str) -> "GeoResolver":
        """Same as open(), with the file read on a worker thread."""
        return await asyncio.to_thread(cls.open, path)

    def lookup(self, address: Address) -> Optional[str]:
        """
        Country code for ``address``, or None.

        None covers addresses missing from the database, malformed addresses
        and records that carry no country.
        """
        try:
            response = self._query(address)
        except (geoip2.errors.AddressNotFoundError, ValueError):
            return None
        return response.country.iso_code

    def close(self) -> None:
        self._reader.close()
