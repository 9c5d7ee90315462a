"""
postgis-schema: spatial column and index support for schema management
on PostGIS 1.x (geometry_columns registry) and PostGIS 2+ (typmod).
"""

from .events import (
    AddColumnEvent,
    AlterTableEvent,
    Augment,
    ChangeColumnEvent,
    ColumnDefinitionEvent,
    Continue,
    CreateTableEvent,
    DropTableEvent,
    IndexDefinitionEvent,
    Outcome,
    Reject,
    RemoveColumnEvent,
    RenameColumnEvent,
    Replace,
    collect_sql,
)
from .exceptions import ConfigurationError, SpatialSchemaError, UnsupportedMutationError
from .models import (
    DialectMode,
    SpatialColumnDescriptor,
    SpatialIndexDescriptor,
    SpatialKind,
)
from .schema import ColumnDiff, TableDiff, spatial_index
from .services.catalog import CatalogIntrospector
from .services.schema_router import SchemaEventRouter
from .services.version_probe import VersionProbe
from .types import GeographyType, GeometryType, RasterType, TypeRegistry

__version__ = "0.1.0"
