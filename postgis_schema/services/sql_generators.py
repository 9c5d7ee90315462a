"""
DDL generators for spatial tables, columns and indexes

Each generator is a pure function of its inputs and the dialect mode; none
of them touch the database. Non-spatial DDL is compiled by SQLAlchemy's
PostgreSQL dialect.
"""

import re
from contextvars import ContextVar
from typing import FrozenSet, List, Optional

from sqlalchemy import CheckConstraint, Column, Table, UniqueConstraint
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.schema import AddConstraint, CreateColumn, CreateIndex, CreateTable, SetColumnComment

from ..config import settings
from ..identifiers import dialect, quote_identifier, quote_table, sql_literal
from ..models import DialectMode, SpatialColumnDescriptor, SpatialIndexDescriptor, SpatialKind
from ..schema import index_column_names, index_descriptor, is_spatial_index
from ..types import descriptor_from_column, spatial_kind
from .spatial_type_model import split_geometry_type, sql_srid

# Columns left out of the CREATE TABLE being compiled; they are added
# afterwards through AddGeometryColumn
_registered_columns: ContextVar[FrozenSet[str]] = ContextVar("registered_columns", default=frozenset())


def _references(constraint, column_names: FrozenSet[str]) -> bool:
    return any(column.name in column_names for column in constraint.columns)


@compiles(CreateColumn, "postgresql")
def _compile_create_column(create, compiler, **kw):
    if create.element.name in _registered_columns.get():
        return None
    return compiler.visit_create_column(create, **kw)


@compiles(UniqueConstraint, "postgresql")
def _compile_unique_constraint(constraint, compiler, **kw):
    if _references(constraint, _registered_columns.get()):
        return None
    return compiler.visit_unique_constraint(constraint, **kw)


@compiles(CheckConstraint, "postgresql")
def _compile_check_constraint(constraint, compiler, **kw):
    if _references(constraint, _registered_columns.get()):
        return None
    return compiler.visit_check_constraint(constraint, **kw)


def compile_ddl(element) -> str:
    """Compile a DDL construct for PostgreSQL as a single line."""
    return re.sub(r"\s*\n\s*", " ", str(element.compile(dialect=dialect)).strip())


def _registration_table_args(table_name: str, schema: Optional[str]) -> str:
    if schema:
        return f"{sql_literal(schema)}, {sql_literal(table_name)}"
    return sql_literal(table_name)


def is_legacy_geometry_column(column: Column, mode: DialectMode) -> bool:
    """Geometry columns PostGIS 1.x must create through AddGeometryColumn."""
    return (
        mode is DialectMode.LEGACY_MANAGED
        and column is not None
        and spatial_kind(column.type) is SpatialKind.GEOMETRY
    )


def _constraint_sort_key(constraint) -> str:
    # type-generated constraints carry a non-string placeholder name
    return constraint.name if isinstance(constraint.name, str) else ""


def comment_sql(table: str, column: str, comment: Optional[str]) -> str:
    value = sql_literal(comment) if comment is not None else "NULL"
    return f"COMMENT ON COLUMN {table}.{quote_identifier(column)} IS {value}"


class SpatialColumnSqlGenerator:
    """Registers a PostGIS 1.x geometry column via AddGeometryColumn."""

    def __init__(self, mode: DialectMode = DialectMode.LEGACY_MANAGED):
        self.mode = mode

    def get_sql(
        self,
        descriptor: SpatialColumnDescriptor,
        table_name: str,
        schema: Optional[str] = None,
    ) -> List[str]:
        sql = []

        geometry_type, dimension = split_geometry_type(descriptor.geometry_type or "GEOMETRY")
        srid = sql_srid(descriptor.srid, self.mode)

        # Geometry columns are created by the AddGeometryColumn stored procedure
        sql.append(
            f"SELECT AddGeometryColumn({_registration_table_args(table_name, schema)}, "
            f"{sql_literal(descriptor.name)}, {srid}, {sql_literal(geometry_type)}, {dimension})"
        )

        # AddGeometryColumn cannot express anything below, so follow up with ALTERs
        table = quote_table(table_name, schema)
        column = quote_identifier(descriptor.name)
        if not descriptor.nullable:
            sql.append(f"ALTER TABLE {table} ALTER {column} SET NOT NULL")
        if descriptor.default is not None:
            sql.append(f"ALTER TABLE {table} ALTER {column} SET DEFAULT {descriptor.default}")
        if descriptor.comment is not None:
            sql.append(comment_sql(table, descriptor.name, descriptor.comment))

        return sql


class SpatialIndexSqlGenerator:
    """CREATE INDEX ... USING GIST for indexes carrying the spatial flag."""

    def __init__(self, index_method: Optional[str] = None):
        self.index_method = (index_method or settings.SPATIAL_INDEX_METHOD).upper()

    def get_sql(self, index: SpatialIndexDescriptor, table: str) -> str:
        """`table` is the already quoted table name."""
        # PostgreSQL indexes cannot be primary keys, uniqueness is as close as it gets
        unique = "UNIQUE " if index.unique or index.primary else ""
        columns = ", ".join(quote_identifier(column) for column in index.columns)
        return (
            f"CREATE {unique}INDEX {quote_identifier(index.name)} ON {table} "
            f"USING {self.index_method} ({columns})"
        )



class CreateTableSqlGenerator:
    """
    Full CREATE TABLE for a SQLAlchemy Table.

    TypmodBased: spatial columns are declared inline, e.g.
    geometry(POLYGONZM,4326).
    LegacyManaged: geometry columns are left out of the column list and
    added afterwards with AddGeometryColumn; geography and raster columns
    are native types and stay inline. Constraints and plain indexes on the
    registered columns follow the registration.
    Spatial indexes are emitted last, once every column exists.
    """

    def __init__(self, mode: DialectMode, index_method: Optional[str] = None):
        self.mode = mode
        self.spatial_column_generator = SpatialColumnSqlGenerator(mode)
        self.spatial_index_generator = SpatialIndexSqlGenerator(index_method)

    def get_sql(self, table: Table) -> List[str]:
        table_sql = quote_table(table.name, table.schema)

        registered_columns = [c for c in table.columns if is_legacy_geometry_column(c, self.mode)]
        registered = frozenset(column.name for column in registered_columns)

        indexes = sorted(table.indexes, key=lambda index: index.name or "")
        spatial_indexes = [index for index in indexes if is_spatial_index(index)]
        plain_indexes = [index for index in indexes if not is_spatial_index(index)]
        late_indexes = [index for index in plain_indexes if registered.intersection(index_column_names(index))]

        late_constraints = sorted(
            (
                constraint for constraint in table.constraints
                if isinstance(constraint, (UniqueConstraint, CheckConstraint))
                and _references(constraint, registered)
            ),
            key=_constraint_sort_key,
        )

        # foreign keys go in as ALTERs so referenced tables may be created later
        token = _registered_columns.set(registered)
        try:
            sql = [compile_ddl(CreateTable(table, include_foreign_key_constraints=()))]
        finally:
            _registered_columns.reset(token)

        for index in plain_indexes:
            if index not in late_indexes:
                sql.append(compile_ddl(CreateIndex(index)))

        for constraint in sorted(table.foreign_key_constraints, key=_constraint_sort_key):
            sql.append(compile_ddl(AddConstraint(constraint)))

        for column in table.columns:
            if column.comment is not None and column.name not in registered:
                sql.append(compile_ddl(SetColumnComment(column)))

        for column in registered_columns:
            sql.extend(self.spatial_column_generator.get_sql(
                descriptor_from_column(column), table.name, table.schema
            ))

        for constraint in late_constraints:
            sql.append(compile_ddl(AddConstraint(constraint)))

        for index in late_indexes:
            sql.append(compile_ddl(CreateIndex(index)))

        for index in spatial_indexes:
            sql.append(self.spatial_index_generator.get_sql(index_descriptor(index), table_sql))

        return sql
