"""
Schema change objects

SQLAlchemy models tables, columns and indexes but has no notion of a
proposed change to them. TableDiff / ColumnDiff fill that gap; they hold
plain SQLAlchemy Column and Index objects.
"""

from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Column, Index

from .models import SPATIAL_INDEX_FLAG, SpatialIndexDescriptor
from .types import descriptor_from_column, is_spatial_column, server_default_sql, spatial_kind

COLUMN_PROPERTIES = ("type", "geometry_type", "srid", "nullable", "default", "comment")


# ────────────────────────────────────────────────────────────────────────────
# Index flags
# ────────────────────────────────────────────────────────────────────────────

def index_flags(index: Index) -> FrozenSet[str]:
    return frozenset(index.info.get("flags", ()))


def is_spatial_index(index: Index) -> bool:
    return SPATIAL_INDEX_FLAG in index_flags(index)


def spatial_index(name: str, *columns, **kw) -> Index:
    """An Index carrying the spatial flag."""
    info = dict(kw.pop("info", None) or {})
    info["flags"] = set(info.get("flags", ())) | {SPATIAL_INDEX_FLAG}
    return Index(name, *columns, info=info, **kw)


def index_column_names(index: Index) -> Tuple[str, ...]:
    names = [column.name for column in index.columns]
    if names:
        return tuple(names)
    # not yet attached to a table: fall back to the declared expressions
    return tuple(
        expression if isinstance(expression, str) else getattr(expression, "name", str(expression))
        for expression in index.expressions
    )


def index_descriptor(index: Index) -> SpatialIndexDescriptor:
    return SpatialIndexDescriptor(
        name=index.name,
        columns=index_column_names(index),
        unique=bool(index.unique),
        primary=bool(index.info.get("primary", False)),
        flags=index_flags(index),
    )


# ────────────────────────────────────────────────────────────────────────────
# Column diff
# ────────────────────────────────────────────────────────────────────────────

def column_type_name(column: Optional[Column]) -> Optional[str]:
    """Spatial kind name for PostGIS columns, compiled SQL type otherwise."""
    if column is None:
        return None
    if is_spatial_column(column):
        return spatial_kind(column.type).value
    return str(column.type)


class ColumnDiff(BaseModel):
    """A proposed change to one column."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    old_column_name: str
    column: Column
    from_column: Optional[Column] = None
    changed_properties: FrozenSet[str] = frozenset()

    def has_changed(self, property_name: str) -> bool:
        return property_name in self.changed_properties

    @classmethod
    def compare(cls, from_column: Column, column: Column) -> "ColumnDiff":
        """Diff two versions of the same column."""
        changed = set()

        if column_type_name(from_column) != column_type_name(column):
            changed.add("type")
        elif is_spatial_column(column):
            old = descriptor_from_column(from_column)
            new = descriptor_from_column(column)
            if old.geometry_type != new.geometry_type:
                changed.add("geometry_type")
            if old.srid != new.srid:
                changed.add("srid")

        if bool(from_column.nullable) != bool(column.nullable):
            changed.add("nullable")
        if server_default_sql(from_column) != server_default_sql(column):
            changed.add("default")
        if from_column.comment != column.comment:
            changed.add("comment")

        return cls(
            old_column_name=from_column.name,
            column=column,
            from_column=from_column,
            changed_properties=frozenset(changed),
        )


# ────────────────────────────────────────────────────────────────────────────
# Table diff
# ────────────────────────────────────────────────────────────────────────────

class TableDiff(BaseModel):
    """The column and index changes proposed against one table."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    schema_name: Optional[str] = None
    new_name: Optional[str] = None

    added_columns: Dict[str, Column] = Field(default_factory=dict)
    changed_columns: Dict[str, ColumnDiff] = Field(default_factory=dict)
    removed_columns: Dict[str, Column] = Field(default_factory=dict)
    renamed_columns: Dict[str, Column] = Field(default_factory=dict)

    added_indexes: List[Index] = Field(default_factory=list)
    changed_indexes: List[Index] = Field(default_factory=list)
    removed_indexes: List[Index] = Field(default_factory=list)

    @property
    def effective_name(self) -> str:
        return self.new_name or self.name

    def with_indexes(
        self,
        added: Iterable[Index],
        changed: Iterable[Index],
        removed: Iterable[Index],
    ) -> "TableDiff":
        return self.model_copy(update={
            "added_indexes": list(added),
            "changed_indexes": list(changed),
            "removed_indexes": list(removed),
        })
