"""
Exception hierarchy for postgis-schema

Catalog lookups that find nothing are not errors: introspection returns
None or an empty collection and the column or index is treated as ordinary.
"""

from typing import Any, Optional


class SpatialSchemaError(Exception):
    """Base class for errors raised by the spatial schema layer."""
    pass


class ConfigurationError(SpatialSchemaError):
    """
    Raised when the router is wired incorrectly.

    Examples:
        - One router instance bound to two different live connections
        - A schema event handled before any connection was bound
    """
    pass


class UnsupportedMutationError(SpatialSchemaError):
    """
    Raised when a schema change would alter what PostGIS stores physically
    for a spatial column (its base type, geometry subtype, or its name under
    PostGIS 1.x). The column has to be dropped and recreated instead.
    """

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        column: Optional[str] = None,
        old: Any = None,
        new: Any = None,
    ):
        super().__init__(message)
        self.table = table
        self.column = column
        self.old = old
        self.new = new
