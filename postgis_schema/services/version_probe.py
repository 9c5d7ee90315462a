"""
PostGIS dialect detection

PostGIS 1.x keeps geometry_columns as a real table maintained by
AddGeometryColumn / DropGeometryColumn; from 2.0 on it is a view over the
typmod information in pg_attribute.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import text

from ..config import settings
from ..exceptions import ConfigurationError
from ..models import DialectMode

logger = logging.getLogger("postgis-schema.version_probe")

GEOMETRY_REGISTRY_KIND_SQL = """
    SELECT c.relkind
    FROM pg_class c
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE c.relname = 'geometry_columns'
    ORDER BY n.nspname = current_schema() DESC
    LIMIT 1
"""

POSTGIS_VERSION_SQL = "SELECT postgis_lib_version()"


def parse_dialect(value: str) -> DialectMode:
    try:
        return DialectMode(value.strip().lower())
    except ValueError:
        raise ConfigurationError(
            f'Unknown PostGIS dialect "{value}" (expected "legacy" or "typmod")'
        ) from None


def dialect_for_version(version: str) -> DialectMode:
    """postgis_lib_version() returns e.g. "3.4.2"."""
    major = int(version.strip().split(".")[0])
    return DialectMode.TYPMOD_BASED if major >= 2 else DialectMode.LEGACY_MANAGED


class VersionProbe:
    """Resolves and caches the DialectMode per connection object."""

    def __init__(self, override: Optional[str] = None):
        override = override if override is not None else settings.POSTGIS_DIALECT
        self.override = parse_dialect(override) if override else None
        # id(connection) -> (connection, mode); the connection is kept so its id stays unique
        self._resolved: Dict[int, Tuple[Any, DialectMode]] = {}

    def resolve(self, connection) -> DialectMode:
        cached = self._resolved.get(id(connection))
        if cached is not None and cached[0] is connection:
            return cached[1]

        mode = self.override or self._detect(connection)
        self._resolved[id(connection)] = (connection, mode)
        logger.info(f"PostGIS dialect resolved: {mode.value}")
        return mode

    def forget(self, connection) -> None:
        self._resolved.pop(id(connection), None)

    def _detect(self, connection) -> DialectMode:
        relkind = connection.execute(text(GEOMETRY_REGISTRY_KIND_SQL)).scalar()
        if relkind == "r":
            return DialectMode.LEGACY_MANAGED
        if relkind == "v":
            return DialectMode.TYPMOD_BASED

        version = connection.execute(text(POSTGIS_VERSION_SQL)).scalar()
        logger.debug(f"geometry_columns not found, falling back to PostGIS version {version}")
        return dialect_for_version(str(version))
