"""
Pydantic models for the spatial schema layer
Descriptors are built per schema event from catalog rows or from
SQLAlchemy schema objects and are never mutated afterwards.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

SPATIAL_INDEX_FLAG = "spatial"


class DialectMode(str, Enum):
    """Which PostGIS flavour a connection speaks."""
    LEGACY_MANAGED = "legacy"  # PostGIS 1.x, geometry_columns is a real table
    TYPMOD_BASED = "typmod"    # PostGIS 2+, subtype and SRID live in the type


class SpatialKind(str, Enum):
    GEOMETRY = "geometry"
    GEOGRAPHY = "geography"
    RASTER = "raster"


class SpatialColumnDescriptor(BaseModel):
    """Canonical description of a spatial column."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Column name")
    kind: SpatialKind = Field(default=SpatialKind.GEOMETRY, description="geometry, geography or raster")
    geometry_type: Optional[str] = Field(
        None, description="Uppercase subtype with dimension suffix, e.g. POLYGONZM; None for raster"
    )
    srid: Optional[int] = Field(None, description="SRID as declared; 0 means unknown; None for raster")
    nullable: bool = True
    default: Optional[str] = Field(None, description="Default as SQL expression text")
    comment: Optional[str] = None

    @field_validator("geometry_type")
    @classmethod
    def _uppercase_geometry_type(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value is not None else None


class SpatialIndexDescriptor(BaseModel):
    """An index together with the flag set that marks it as spatial."""
    model_config = ConfigDict(frozen=True)

    name: str
    columns: Tuple[str, ...] = ()
    unique: bool = False
    primary: bool = False
    flags: FrozenSet[str] = frozenset()

    @property
    def is_spatial(self) -> bool:
        return SPATIAL_INDEX_FLAG in self.flags

    def with_flag(self, flag: str) -> "SpatialIndexDescriptor":
        return self.model_copy(update={"flags": self.flags | {flag}})


class SpatialColumnInfo(BaseModel):
    """What geometry_columns / geography_columns say about one column."""
    model_config = ConfigDict(frozen=True)

    geometry_type: str
    srid: int = 0


class SpatialIndexInfo(BaseModel):
    """A GiST-style index covering at least one geometry/geography column."""
    model_config = ConfigDict(frozen=True)

    name: str
    columns: Tuple[str, ...] = ()
    method: str = "gist"


class TableCatalogSnapshot(BaseModel):
    """Spatial catalog facts about one table, read once per schema event."""
    model_config = ConfigDict(frozen=True)

    table: str
    geometry_columns: FrozenSet[str] = frozenset()
    spatial_indexes: Dict[str, SpatialIndexInfo] = Field(default_factory=dict)

    @property
    def has_geometry_columns(self) -> bool:
        return len(self.geometry_columns) > 0
