#!/usr/bin/env python
"""
postgis-schema command line

    python -m postgis_schema probe
    python -m postgis_schema columns public.parcels
    python -m postgis_schema indexes parcels
"""

import argparse
import sys

from rich.table import Table as RichTable

from .config import settings
from .events import ColumnDefinitionEvent, IndexDefinitionEvent, Replace
from .logging_config import configure_logging, console
from .database import bound_connection, create_engine_from_settings
from .services.schema_router import SchemaEventRouter
from .services.spatial_type_model import split_geometry_type, type_declaration
from .services.version_probe import VersionProbe
from .types import TypeRegistry


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        prog="postgis_schema",
        description="Inspect spatial columns and indexes of a PostGIS database."
    )
    parser.add_argument("--database-url", help="SQLAlchemy database URL (default: DATABASE_URL)")
    parser.add_argument("--dialect", choices=["legacy", "typmod"],
                        help="Skip probing and assume this PostGIS dialect")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("probe", help="Show which PostGIS dialect the database speaks")
    columns = subparsers.add_parser("columns", help="List spatial columns of a table")
    columns.add_argument("table", help="Table name, optionally schema-qualified")
    indexes = subparsers.add_parser("indexes", help="List spatial indexes of a table")
    indexes.add_argument("table", help="Table name, optionally schema-qualified")

    return parser.parse_args(argv)


def show_columns(router: SchemaEventRouter, table: str) -> int:
    output = RichTable(title=f"Spatial columns of {table}")
    for header in ("column", "declaration", "dims", "nullable", "default"):
        output.add_column(header)

    found = 0
    for row in router.introspector.list_table_columns(table):
        outcome = router.handle(ColumnDefinitionEvent(table=table, table_column=row))
        if not isinstance(outcome, Replace):
            continue
        descriptor = outcome.replacement
        _, dimension = split_geometry_type(descriptor.geometry_type or "GEOMETRY")
        output.add_row(
            descriptor.name,
            type_declaration(descriptor),
            str(dimension),
            "yes" if descriptor.nullable else "no",
            descriptor.default or "",
        )
        found += 1

    if found:
        console.print(output)
    else:
        console.print(f"[yellow]No spatial columns found on {table}[/yellow]")
    return 0


def show_indexes(router: SchemaEventRouter, table: str) -> int:
    output = RichTable(title=f"Spatial indexes of {table}")
    for header in ("index", "columns", "unique", "flags"):
        output.add_column(header)

    found = 0
    for row in router.introspector.list_table_indexes(table):
        outcome = router.handle(IndexDefinitionEvent(table=table, table_index=row))
        if not isinstance(outcome, Replace):
            continue
        descriptor = outcome.replacement
        output.add_row(
            descriptor.name,
            ", ".join(descriptor.columns),
            "yes" if descriptor.unique else "no",
            ", ".join(sorted(descriptor.flags)),
        )
        found += 1

    if found:
        console.print(output)
    else:
        console.print(f"[yellow]No spatial indexes found on {table}[/yellow]")
    return 0


def main(argv=None) -> int:
    args = parse_arguments(argv)
    logger = configure_logging(args.log_level)

    registry = TypeRegistry()
    registry.register_spatial_types()
    router = SchemaEventRouter(registry, probe=VersionProbe(override=args.dialect))

    engine = create_engine_from_settings(args.database_url)
    try:
        with bound_connection(engine, router):
            if args.command == "probe":
                console.print(f"PostGIS dialect: [bold]{router.mode.value}[/bold]")
                return 0
            if args.command == "columns":
                return show_columns(router, args.table)
            return show_indexes(router, args.table)
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
