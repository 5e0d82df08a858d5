"""SQL dialect detection and capability probing."""

from enum import Enum
from typing import Optional

from loguru import logger

from searchable.adapter import ConnectionInfo
from searchable.errors import DialectUnavailableError

EXTENDED_DISTANCE = "extended_distance"


class Dialect(str, Enum):
    """SQL dialects with distinct search behavior."""

    MYSQL = "mysql"
    POSTGRES = "postgres"
    SQLITE = "sqlite"
    OTHER = "other"

    @classmethod
    def from_name(cls, name: str) -> "Dialect":
        """Map a SQLAlchemy dialect name (e.g. 'postgresql') to a Dialect."""
        normalized = name.lower()
        if normalized in ("mysql", "mariadb"):
            return cls.MYSQL
        if normalized in ("postgresql", "postgres"):
            return cls.POSTGRES
        if normalized == "sqlite":
            return cls.SQLITE
        return cls.OTHER


class CapabilityCache:
    """Memoized capability flags.

    Lives for as long as the owner keeps it (process or connection). Entries
    are never invalidated, so a capability installed mid-lifetime is not seen.
    """

    def __init__(self) -> None:
        self._flags: dict[str, bool] = {}

    def get(self, capability: str) -> Optional[bool]:
        return self._flags.get(capability)

    def set(self, capability: str, available: bool) -> None:
        self._flags[capability] = available

    def clear(self) -> None:
        self._flags.clear()

    def __contains__(self, capability: str) -> bool:
        return capability in self._flags


# Process-wide cache used when the caller does not inject one
_DEFAULT_CAPABILITY_CACHE = CapabilityCache()


def default_capability_cache() -> CapabilityCache:
    return _DEFAULT_CAPABILITY_CACHE


def extended_distance_probe_sql(distance_function: str) -> str:
    """Catalog query checking for a two-argument distance function."""
    return (
        "SELECT EXISTS ("
        "SELECT 1 FROM pg_catalog.pg_proc "
        f"WHERE proname = '{distance_function}' AND pronargs = 2"
        ")"
    )


class DialectProbe:
    """Reports the connection's dialect and whether edit distance is available.

    Args:
        connection: ConnectionInfo for the active connection
        cache: Where the capability flag is memoized
        distance_function: Function name probed for (validated identifier)
    """

    def __init__(
        self,
        connection: ConnectionInfo,
        cache: Optional[CapabilityCache] = None,
        distance_function: str = "levenshtein",
    ):
        self.connection = connection
        self.cache = cache if cache is not None else default_capability_cache()
        self.distance_function = distance_function

    def dialect(self) -> Dialect:
        """Get the active dialect.

        Raises:
            DialectUnavailableError: If the connection cannot report its dialect
        """
        name = self.connection.dialect_name()
        if not name:
            raise DialectUnavailableError("Unable to determine the SQL dialect of the connection")
        return Dialect.from_name(name)

    def has_extended_distance(self) -> bool:
        """Check whether the edit distance function can be used.

        Only Postgres is probed. The result is memoized in the cache, and a
        probe that cannot run counts as unavailable.
        """
        if self.dialect() != Dialect.POSTGRES:
            return False

        cached = self.cache.get(EXTENDED_DISTANCE)
        if cached is not None:
            return cached

        result = self.connection.probe(extended_distance_probe_sql(self.distance_function))
        available = bool(result) if result is not None else False
        self.cache.set(EXTENDED_DISTANCE, available)
        logger.info(f"Edit distance function {self.distance_function}() available: {available}")
        return available
