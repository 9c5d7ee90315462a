"""
Spatial Type Model

Maps a column's spatial options (kind, geometry subtype with Z/M/ZM suffix,
SRID) to a canonical SpatialColumnDescriptor and back, and to the two
on-disk forms PostGIS knows: typmod declarations and geometry_columns rows.
"""

from typing import Any, Dict, Mapping, Optional, Tuple

from ..config import settings
from ..models import DialectMode, SpatialColumnDescriptor, SpatialKind

GENERIC_GEOMETRY_TYPE = "GEOMETRY"

# Defaults PostgreSQL reports for spatial columns without a real default
NULL_DEFAULT_SENTINELS = frozenset({"NULL::geometry", "NULL::geography"})


def split_geometry_type(geometry_type: str) -> Tuple[str, int]:
    """
    Split a subtype into the string AddGeometryColumn expects and its
    coordinate dimension.

    "ZM" is stripped (4 dimensions), "Z" is stripped (3 dimensions), a lone
    "M" is kept because PostGIS 1.x spells measured types POINTM etc.
    (3 dimensions). Anything else is 2-dimensional.
    """
    geometry_type = geometry_type.upper()

    if geometry_type.endswith("ZM"):
        return geometry_type[:-2], 4
    if geometry_type.endswith("M"):
        return geometry_type, 3
    if geometry_type.endswith("Z"):
        return geometry_type[:-1], 3
    return geometry_type, 2


def geometry_type_from_catalog(type_name: str, coord_dimension: Optional[int]) -> str:
    """Rebuild the suffixed subtype from a geometry_columns / geography_columns row."""
    geometry_type = (type_name or GENERIC_GEOMETRY_TYPE).upper()

    if geometry_type.endswith("M"):
        return geometry_type
    if coord_dimension == 4:
        return geometry_type + "ZM"
    if coord_dimension == 3:
        return geometry_type + "Z"
    return geometry_type


def default_srid(kind: SpatialKind) -> Optional[int]:
    if kind is SpatialKind.GEOMETRY:
        return 0
    if kind is SpatialKind.GEOGRAPHY:
        return settings.GEOGRAPHY_DEFAULT_SRID
    return None


def coerce_kind(value: Any) -> SpatialKind:
    if isinstance(value, SpatialKind):
        return value
    return SpatialKind(str(value).lower())


def normalize(options: Mapping[str, Any]) -> SpatialColumnDescriptor:
    """
    Build the canonical descriptor from raw column options.

    Recognised keys: name, type (geometry/geography/raster), geometry_type,
    srid, nullable, default, comment. The SRID is stored as given; dialect
    specific handling happens in sql_srid() when SQL is generated.
    """
    kind = coerce_kind(options.get("type") or SpatialKind.GEOMETRY)

    geometry_type = None
    srid = None
    if kind is not SpatialKind.RASTER:
        geometry_type = str(options.get("geometry_type") or GENERIC_GEOMETRY_TYPE).upper()
        raw_srid = options.get("srid")
        srid = int(raw_srid) if raw_srid is not None else default_srid(kind)

    default = options.get("default")
    if default is not None and str(default) in NULL_DEFAULT_SENTINELS:
        default = None

    return SpatialColumnDescriptor(
        name=options["name"],
        kind=kind,
        geometry_type=geometry_type,
        srid=srid,
        nullable=bool(options.get("nullable", True)),
        default=default,
        comment=options.get("comment"),
    )


def denormalize(descriptor: SpatialColumnDescriptor) -> Dict[str, Any]:
    """Inverse of normalize(): the raw option mapping for a descriptor."""
    return {
        "name": descriptor.name,
        "type": descriptor.kind.value,
        "geometry_type": descriptor.geometry_type,
        "srid": descriptor.srid,
        "nullable": descriptor.nullable,
        "default": descriptor.default,
        "comment": descriptor.comment,
    }


def sql_srid(srid: Optional[int], mode: DialectMode) -> int:
    """SRID as it must appear in generated SQL for the given dialect."""
    srid = int(srid or 0)
    # PostGIS 1.x uses -1 for undefined SRIDs
    if mode is DialectMode.LEGACY_MANAGED and srid <= 0:
        return settings.LEGACY_UNDEFINED_SRID
    return srid


def type_declaration(descriptor: SpatialColumnDescriptor) -> str:
    """Typmod column type, e.g. geometry(POLYGONZM,4326), as GeoAlchemy2 declares it."""
    if descriptor.kind is SpatialKind.RASTER:
        return SpatialKind.RASTER.value

    geometry_type = descriptor.geometry_type or GENERIC_GEOMETRY_TYPE
    srid = descriptor.srid if descriptor.srid is not None else default_srid(descriptor.kind)
    return f"{descriptor.kind.value}({geometry_type},{srid})"
