"""
SQLAlchemy column types for PostGIS columns and the registry that holds them

The column types are GeoAlchemy2's, which own value binding and the DDL
declaration. The subclasses here only derive the coordinate dimension from
the Z/M/ZM suffix and leave spatial indexes to the explicit index flags.
PostGIS 1.x geometry columns are never declared inline (see
CreateTableSqlGenerator).
"""

import logging
from typing import Any, Dict, List, Optional, Type

from geoalchemy2.types import Geography, Geometry, Raster
from sqlalchemy import Column, text
from sqlalchemy.types import TypeEngine

from .exceptions import ConfigurationError
from .identifiers import sql_literal
from .models import SpatialColumnDescriptor, SpatialKind
from .services.spatial_type_model import GENERIC_GEOMETRY_TYPE, default_srid, normalize, split_geometry_type

logger = logging.getLogger("postgis-schema.types")


def _gis_arguments(kind: SpatialKind, geometry_type: Optional[str], srid: Optional[int], kw: Dict[str, Any]) -> Dict[str, Any]:
    geometry_type = (geometry_type or GENERIC_GEOMETRY_TYPE).upper()
    kw.setdefault("dimension", split_geometry_type(geometry_type)[1])
    # indexes come from spatial_index(), not from GeoAlchemy2's attach hook
    kw.setdefault("spatial_index", False)
    kw["geometry_type"] = geometry_type
    kw["srid"] = default_srid(kind) if srid is None else srid
    return kw


class GeometryType(Geometry):

    def __init__(self, geometry_type: Optional[str] = None, srid: Optional[int] = None, **kw):
        super().__init__(**_gis_arguments(SpatialKind.GEOMETRY, geometry_type, srid, kw))


class GeographyType(Geography):

    def __init__(self, geometry_type: Optional[str] = None, srid: Optional[int] = None, **kw):
        super().__init__(**_gis_arguments(SpatialKind.GEOGRAPHY, geometry_type, srid, kw))


class RasterType(Raster):
    """Rasters carry no subtype or SRID option."""

    def __init__(self, **kw):
        kw.setdefault("spatial_index", False)
        super().__init__(**kw)


SPATIAL_TYPES: Dict[str, Type[TypeEngine]] = {
    SpatialKind.GEOMETRY.value: GeometryType,
    SpatialKind.GEOGRAPHY.value: GeographyType,
    SpatialKind.RASTER.value: RasterType,
}


def spatial_kind(column_type: Any) -> Optional[SpatialKind]:
    """Kind of a GeoAlchemy2 column type, or None for anything else."""
    if isinstance(column_type, Raster):
        return SpatialKind.RASTER
    if isinstance(column_type, Geography):
        return SpatialKind.GEOGRAPHY
    if isinstance(column_type, Geometry):
        return SpatialKind.GEOMETRY
    return None


def spatial_options(column_type: Any) -> Dict[str, Any]:
    kind = spatial_kind(column_type)
    if kind is SpatialKind.RASTER:
        return {"type": kind}
    return {
        "type": kind,
        "geometry_type": column_type.geometry_type,
        "srid": column_type.srid,
    }


class TypeRegistry:
    """
    Name -> type class lookup for spatial columns.

    One registry is created by the wiring layer and handed to the router;
    register_spatial_types() may be called any number of times.
    """

    def __init__(self):
        self._types: Dict[str, Type[TypeEngine]] = {}

    def has_type(self, name: str) -> bool:
        return name in self._types

    def add_type(self, name: str, type_class: Type[TypeEngine]) -> None:
        if self.has_type(name):
            raise ConfigurationError(f'Type "{name}" is already registered')
        self._types[name] = type_class

    def get_type(self, name: str, **options) -> TypeEngine:
        try:
            type_class = self._types[name]
        except KeyError:
            raise ConfigurationError(f'Type "{name}" is not registered') from None
        return type_class(**options)

    def register_spatial_types(self) -> List[str]:
        """Register geometry, geography and raster; returns the names added."""
        added = []
        for name, type_class in SPATIAL_TYPES.items():
            if not self.has_type(name):
                self.add_type(name, type_class)
                added.append(name)
        if added:
            logger.debug(f"Registered spatial types: {', '.join(added)}")
        return added

    def column_for(self, descriptor: SpatialColumnDescriptor) -> Column:
        """Build a SQLAlchemy column from a descriptor."""
        if descriptor.kind is SpatialKind.RASTER:
            column_type = self.get_type(descriptor.kind.value)
        else:
            column_type = self.get_type(
                descriptor.kind.value,
                geometry_type=descriptor.geometry_type,
                srid=descriptor.srid,
            )
        return Column(
            descriptor.name,
            column_type,
            nullable=descriptor.nullable,
            server_default=text(descriptor.default) if descriptor.default is not None else None,
            comment=descriptor.comment,
        )


def is_spatial_type(column_type: Any) -> bool:
    return spatial_kind(column_type) is not None


def is_spatial_column(column: Optional[Column]) -> bool:
    return column is not None and is_spatial_type(column.type)


def server_default_sql(column: Column) -> Optional[str]:
    """The column's server default as SQL text, or None."""
    default = column.server_default
    arg = getattr(default, "arg", None)
    if arg is None:
        return None
    if isinstance(arg, str):
        return sql_literal(arg)
    return str(getattr(arg, "text", arg))


def descriptor_from_column(column: Column) -> SpatialColumnDescriptor:
    """Canonical descriptor for a spatial SQLAlchemy column."""
    options: Dict[str, Any] = {
        "name": column.name,
        "nullable": column.nullable,
        "default": server_default_sql(column),
        "comment": column.comment,
    }
    options.update(spatial_options(column.type))
    return normalize(options)
