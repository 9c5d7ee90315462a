"""
Schema Event Router

Receives schema-change events from the framework and decides, per event and
per PostGIS dialect, whether the default DDL runs as-is (Continue), gets
extra statements (Augment), is replaced (Replace), or is refused (Reject).

Event handling in short:

    create table   always replaced by CreateTableSqlGenerator
    drop table     PostGIS 1.x with geometry columns -> DropGeometryTable()
    alter table    spatial indexes split out and created USING GIST
    add column     PostGIS 1.x geometry -> AddGeometryColumn()
    remove column  PostGIS 1.x geometry -> DropGeometryColumn()
    change column  type / subtype changes rejected, SRID -> UpdateGeometrySRID()
    rename column  spatial columns cannot be renamed on PostGIS 1.x
    column def     catalog row -> SpatialColumnDescriptor
    index def      catalog row -> SpatialIndexDescriptor with the spatial flag
"""

import logging
from typing import Any, Callable, Dict, Optional

from ..exceptions import ConfigurationError, UnsupportedMutationError
from ..events import (
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
    SchemaEvent,
    lower_keys,
)
from ..identifiers import quote_identifier, quote_table, sql_literal
from ..models import SPATIAL_INDEX_FLAG, DialectMode, SpatialIndexDescriptor, SpatialKind
from ..schema import column_type_name, index_descriptor, is_spatial_index
from ..types import TypeRegistry, descriptor_from_column, is_spatial_column, spatial_kind
from .catalog import CatalogIntrospector
from .spatial_type_model import normalize, sql_srid
from .sql_generators import CreateTableSqlGenerator, SpatialColumnSqlGenerator, SpatialIndexSqlGenerator
from .version_probe import VersionProbe

logger = logging.getLogger("postgis-schema.router")


class SchemaEventRouter:
    """
    Spatial handling for one database connection.

    Register one router per connection: binding a second, different
    connection raises ConfigurationError. Calling connect() again with the
    same connection object (e.g. a primary/replica wrapper switching roles)
    is a no-op.
    """

    def __init__(
        self,
        registry: TypeRegistry,
        probe: Optional[VersionProbe] = None,
        introspector_factory: Callable[[Any], CatalogIntrospector] = CatalogIntrospector,
        index_method: Optional[str] = None,
    ):
        self.registry = registry
        self.probe = probe or VersionProbe()
        self.introspector_factory = introspector_factory
        self.index_method = index_method

        self.connection = None
        self.mode: Optional[DialectMode] = None
        self.introspector: Optional[CatalogIntrospector] = None

        self._handlers: Dict[type, Callable[[Any], Outcome]] = {
            CreateTableEvent: self.on_create_table,
            DropTableEvent: self.on_drop_table,
            AlterTableEvent: self.on_alter_table,
            AddColumnEvent: self.on_add_column,
            RemoveColumnEvent: self.on_remove_column,
            ChangeColumnEvent: self.on_change_column,
            RenameColumnEvent: self.on_rename_column,
            ColumnDefinitionEvent: self.on_column_definition,
            IndexDefinitionEvent: self.on_index_definition,
        }

    # ────────────────────────────────────────────────────────────────────
    # Connection binding
    # ────────────────────────────────────────────────────────────────────

    def connect(self, connection) -> DialectMode:
        if self.connection is not None:
            if self.connection is connection:
                return self.mode

            raise ConfigurationError(
                f"It looks like you have registered the {type(self).__name__} to more than "
                "one connection. Please register one instance per connection."
            )

        self.registry.register_spatial_types()
        self.mode = self.probe.resolve(connection)
        self.connection = connection
        self.introspector = self.introspector_factory(connection)
        logger.info(f"Spatial schema router bound ({self.mode.value} dialect)")
        return self.mode

    def disconnect(self) -> None:
        """Release the bound connection so a replacement can be bound."""
        if self.connection is not None:
            self.probe.forget(self.connection)
        self.connection = None
        self.mode = None
        self.introspector = None

    @property
    def is_legacy(self) -> bool:
        return self._require_mode() is DialectMode.LEGACY_MANAGED

    def _require_mode(self) -> DialectMode:
        if self.mode is None:
            raise ConfigurationError("Schema event received before connect() bound a connection")
        return self.mode

    # ────────────────────────────────────────────────────────────────────
    # Dispatch
    # ────────────────────────────────────────────────────────────────────

    def handle(self, event: SchemaEvent) -> Outcome:
        self._require_mode()
        try:
            handler = self._handlers[type(event)]
        except KeyError:
            raise TypeError(f"Unsupported schema event: {type(event).__name__}") from None

        outcome = handler(event)
        if isinstance(outcome, Reject):
            logger.warning(f"Rejected {type(event).__name__}: {outcome.error}")
        else:
            logger.debug(f"{type(event).__name__} -> {type(outcome).__name__}")
        return outcome

    def dispatch(self, event: SchemaEvent) -> Outcome:
        """handle(), raising the error of a Reject."""
        outcome = self.handle(event)
        if isinstance(outcome, Reject):
            outcome.raise_error()
        return outcome

    # ────────────────────────────────────────────────────────────────────
    # Tables
    # ────────────────────────────────────────────────────────────────────

    def on_create_table(self, event: CreateTableEvent) -> Outcome:
        generator = CreateTableSqlGenerator(self.mode, self.index_method)
        return Replace(sql=tuple(generator.get_sql(event.table)))

    def on_drop_table(self, event: DropTableEvent) -> Outcome:
        if not self.is_legacy:
            return Continue()

        name = f"{event.schema_name}.{event.table_name}" if event.schema_name else event.table_name
        if not self.introspector.snapshot(name).has_geometry_columns:
            return Continue()

        if event.schema_name:
            args = f"{sql_literal(event.schema_name)}, {sql_literal(event.table_name)}"
        else:
            args = sql_literal(event.table_name)
        return Replace(sql=(f"SELECT DropGeometryTable({args})",))

    def on_alter_table(self, event: AlterTableEvent) -> Outcome:
        diff = event.diff

        spatial_indexes = []
        added_indexes = []
        changed_indexes = []
        removed_indexes = list(diff.removed_indexes)

        for index in diff.added_indexes:
            if is_spatial_index(index):
                spatial_indexes.append(index)
            else:
                added_indexes.append(index)

        # a changed spatial index is dropped by the default DDL and recreated below
        for index in diff.changed_indexes:
            if is_spatial_index(index):
                removed_indexes.append(index)
                spatial_indexes.append(index)
            else:
                changed_indexes.append(index)

        if not spatial_indexes:
            return Continue()

        generator = SpatialIndexSqlGenerator(self.index_method)
        table = quote_table(diff.effective_name, diff.schema_name)
        sql = tuple(generator.get_sql(index_descriptor(index), table) for index in spatial_indexes)

        return Augment(
            sql=sql,
            diff=diff.with_indexes(added_indexes, changed_indexes, removed_indexes),
        )

    # ────────────────────────────────────────────────────────────────────
    # Columns
    # ────────────────────────────────────────────────────────────────────

    def _is_legacy_geometry(self, column) -> bool:
        return (
            is_spatial_column(column)
            and spatial_kind(column.type) is SpatialKind.GEOMETRY
            and self.is_legacy
        )

    def on_add_column(self, event: AddColumnEvent) -> Outcome:
        if not self._is_legacy_geometry(event.column):
            return Continue()

        generator = SpatialColumnSqlGenerator(self.mode)
        sql = generator.get_sql(
            descriptor_from_column(event.column),
            event.diff.effective_name,
            event.diff.schema_name,
        )
        return Replace(sql=tuple(sql))

    def on_remove_column(self, event: RemoveColumnEvent) -> Outcome:
        column = event.column
        if not self._is_legacy_geometry(column):
            return Continue()

        diff = event.diff
        sql = []

        if not column.nullable:
            # Remove NOT NULL constraint from the field
            sql.append(
                f"ALTER TABLE {quote_table(diff.effective_name, diff.schema_name)} "
                f"ALTER {quote_identifier(column.name)} DROP NOT NULL"
            )

        # DropGeometryColumn() also removes the entry from geometry_columns
        if diff.schema_name:
            args = f"{sql_literal(diff.schema_name)}, {sql_literal(diff.effective_name)}"
        else:
            args = sql_literal(diff.effective_name)
        sql.append(f"SELECT DropGeometryColumn({args}, {sql_literal(column.name)})")

        return Replace(sql=tuple(sql))

    def on_change_column(self, event: ChangeColumnEvent) -> Outcome:
        column_diff = event.column_diff
        column = column_diff.column
        from_column = column_diff.from_column

        if not (is_spatial_column(column) or is_spatial_column(from_column)):
            return Continue()

        table = event.diff.effective_name

        type_changed = column_diff.has_changed("type") or (
            from_column is not None and is_spatial_column(column) != is_spatial_column(from_column)
        )
        if type_changed:
            old_type = column_type_name(from_column)
            new_type = column_type_name(column)
            return Reject(error=UnsupportedMutationError(
                f'The type of a spatial column cannot be changed (Requested changing type from '
                f'"{old_type}" to "{new_type}" for column "{column.name}" in table "{table}")',
                table=table, column=column.name, old=old_type, new=new_type,
            ))

        new = descriptor_from_column(column)
        old = descriptor_from_column(from_column) if from_column is not None else new

        if column_diff.has_changed("geometry_type"):
            return Reject(error=UnsupportedMutationError(
                f'The geometry_type of a spatial column cannot be changed (Requested changing type from '
                f'"{old.geometry_type}" to "{new.geometry_type}" for column "{column.name}" in table "{table}")',
                table=table, column=column.name, old=old.geometry_type, new=new.geometry_type,
            ))

        if not column_diff.has_changed("srid"):
            return Continue()

        # UpdateGeometrySRID exists in PostGIS 1.x and 2+ alike and takes any spatial column
        if event.diff.schema_name:
            args = f"{sql_literal(event.diff.schema_name)}, {sql_literal(table)}"
        else:
            args = sql_literal(table)
        srid = sql_srid(new.srid, self.mode)
        return Augment(sql=(f"SELECT UpdateGeometrySRID({args}, {sql_literal(column.name)}, {srid})",))

    def on_rename_column(self, event: RenameColumnEvent) -> Outcome:
        if not is_spatial_column(event.column) or not self.is_legacy:
            return Continue()

        return Reject(error=UnsupportedMutationError(
            f'Spatial columns cannot be renamed (Requested renaming column "{event.old_column_name}" '
            f'to "{event.column.name}" in table "{event.diff.name}")',
            table=event.diff.name, column=event.old_column_name,
            old=event.old_column_name, new=event.column.name,
        ))

    # ────────────────────────────────────────────────────────────────────
    # Introspection
    # ────────────────────────────────────────────────────────────────────

    def on_column_definition(self, event: ColumnDefinitionEvent) -> Outcome:
        table_column = lower_keys(event.table_column)
        column_type = table_column.get("type")
        name = table_column["field"]

        if column_type == SpatialKind.GEOMETRY.value:
            info = self.introspector.get_geometry_spatial_column_info(event.table, name)
        elif column_type == SpatialKind.GEOGRAPHY.value:
            info = self.introspector.get_geography_spatial_column_info(event.table, name)
        else:
            return Continue()

        if info is None:
            return Continue()

        descriptor = normalize({
            "name": name,
            "type": column_type,
            "geometry_type": info.geometry_type,
            "srid": info.srid,
            "nullable": not bool(table_column.get("isnotnull")),
            "default": table_column.get("default"),
            "comment": table_column.get("comment"),
        })
        return Replace(replacement=descriptor)

    def on_index_definition(self, event: IndexDefinitionEvent) -> Outcome:
        table_index = lower_keys(event.table_index)

        spatial_indexes = self.introspector.list_spatial_indexes(event.table)
        if table_index["name"] not in spatial_indexes:
            return Continue()

        descriptor = SpatialIndexDescriptor(
            name=table_index["name"],
            columns=tuple(table_index.get("columns") or ()),
            unique=bool(table_index.get("unique")),
            primary=bool(table_index.get("primary")),
            flags=frozenset(table_index.get("flags") or ()),
        ).with_flag(SPATIAL_INDEX_FLAG)
        return Replace(replacement=descriptor)
