"""
Catalog Introspector

Read-only queries against the PostgreSQL / PostGIS catalogs. A missing row
means "not spatial", so lookups return None or empty collections instead of
raising.
"""

import logging
from typing import Any, Dict, FrozenSet, List, Optional

from sqlalchemy import text

from ..identifiers import split_table_name
from ..models import SpatialColumnInfo, SpatialIndexInfo, TableCatalogSnapshot
from .spatial_type_model import geometry_type_from_catalog

logger = logging.getLogger("postgis-schema.catalog")

GEOMETRY_COLUMNS_SQL = """
    SELECT f_geometry_column
    FROM geometry_columns
    WHERE f_table_name = :table
    AND f_table_schema = COALESCE(:schema, current_schema())
    ORDER BY f_geometry_column
"""

GEOMETRY_COLUMN_INFO_SQL = """
    SELECT coord_dimension, srid, type
    FROM geometry_columns
    WHERE f_table_name = :table
    AND f_geometry_column = :column
    AND f_table_schema = COALESCE(:schema, current_schema())
"""

GEOGRAPHY_COLUMN_INFO_SQL = """
    SELECT coord_dimension, srid, type
    FROM geography_columns
    WHERE f_table_name = :table
    AND f_geography_column = :column
    AND f_table_schema = COALESCE(:schema, current_schema())
"""

SPATIAL_INDEXES_SQL = """
    SELECT i.relname AS index_name, a.attname AS column_name, am.amname AS method
    FROM pg_index d
    JOIN pg_class i ON i.oid = d.indexrelid
    JOIN pg_class t ON t.oid = d.indrelid
    JOIN pg_namespace n ON n.oid = t.relnamespace
    JOIN pg_am am ON am.oid = i.relam
    JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = ANY(d.indkey)
    JOIN pg_type ty ON ty.oid = a.atttypid
    WHERE t.relname = :table
    AND n.nspname = COALESCE(:schema, current_schema())
    AND am.amname IN ('gist', 'spgist', 'brin')
    AND ty.typname IN ('geometry', 'geography')
    ORDER BY i.relname, a.attnum
"""

TABLE_COLUMNS_SQL = """
    SELECT a.attname AS field,
           ty.typname AS type,
           a.attnotnull AS isnotnull,
           pg_get_expr(ad.adbin, ad.adrelid) AS "default",
           col_description(a.attrelid, a.attnum) AS comment
    FROM pg_attribute a
    JOIN pg_class t ON t.oid = a.attrelid
    JOIN pg_namespace n ON n.oid = t.relnamespace
    JOIN pg_type ty ON ty.oid = a.atttypid
    LEFT JOIN pg_attrdef ad ON ad.adrelid = a.attrelid AND ad.adnum = a.attnum
    WHERE t.relname = :table
    AND n.nspname = COALESCE(:schema, current_schema())
    AND a.attnum > 0
    AND NOT a.attisdropped
    ORDER BY a.attnum
"""

TABLE_INDEXES_SQL = """
    SELECT i.relname AS name,
           a.attname AS column_name,
           d.indisunique AS "unique",
           d.indisprimary AS "primary"
    FROM pg_index d
    JOIN pg_class i ON i.oid = d.indexrelid
    JOIN pg_class t ON t.oid = d.indrelid
    JOIN pg_namespace n ON n.oid = t.relnamespace
    JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = ANY(d.indkey)
    WHERE t.relname = :table
    AND n.nspname = COALESCE(:schema, current_schema())
    ORDER BY i.relname, a.attnum
"""


class CatalogIntrospector:
    """Answers spatial questions about existing tables over one connection."""

    def __init__(self, connection):
        self.connection = connection

    def _fetch_all(self, sql: str, **params) -> List[Dict[str, Any]]:
        result = self.connection.execute(text(sql), params)
        return [dict(row) for row in result.mappings().all()]

    def _fetch_one(self, sql: str, **params) -> Optional[Dict[str, Any]]:
        row = self.connection.execute(text(sql), params).mappings().first()
        return dict(row) if row is not None else None

    def list_spatial_geometry_columns(self, table: str) -> FrozenSet[str]:
        """Geometry columns registered in geometry_columns for a table."""
        schema, table = split_table_name(table)
        rows = self._fetch_all(GEOMETRY_COLUMNS_SQL, table=table, schema=schema)
        return frozenset(row["f_geometry_column"] for row in rows)

    def list_spatial_indexes(self, table: str) -> Dict[str, SpatialIndexInfo]:
        """Indexes using a spatial access method over geometry/geography columns."""
        schema, table = split_table_name(table)
        rows = self._fetch_all(SPATIAL_INDEXES_SQL, table=table, schema=schema)

        columns: Dict[str, List[str]] = {}
        methods: Dict[str, str] = {}
        for row in rows:
            name = row["index_name"]
            columns.setdefault(name, []).append(str(row["column_name"]).strip())
            methods[name] = row["method"]

        return {
            name: SpatialIndexInfo(name=name, columns=tuple(cols), method=methods[name])
            for name, cols in columns.items()
        }

    def get_geometry_spatial_column_info(self, table: str, column: str) -> Optional[SpatialColumnInfo]:
        schema, table = split_table_name(table)
        row = self._fetch_one(GEOMETRY_COLUMN_INFO_SQL, table=table, column=column, schema=schema)
        return self._build_spatial_column_info(row)

    def get_geography_spatial_column_info(self, table: str, column: str) -> Optional[SpatialColumnInfo]:
        schema, table = split_table_name(table)
        row = self._fetch_one(GEOGRAPHY_COLUMN_INFO_SQL, table=table, column=column, schema=schema)
        return self._build_spatial_column_info(row)

    def snapshot(self, table: str) -> TableCatalogSnapshot:
        return TableCatalogSnapshot(
            table=table,
            geometry_columns=self.list_spatial_geometry_columns(table),
            spatial_indexes=self.list_spatial_indexes(table),
        )

    def list_table_columns(self, table: str) -> List[Dict[str, Any]]:
        """Raw column rows (field, type, isnotnull, default, comment)."""
        schema, table = split_table_name(table)
        return self._fetch_all(TABLE_COLUMNS_SQL, table=table, schema=schema)

    def list_table_indexes(self, table: str) -> List[Dict[str, Any]]:
        """Raw index rows (name, columns, unique, primary, flags)."""
        schema, table = split_table_name(table)
        indexes: Dict[str, Dict[str, Any]] = {}
        for row in self._fetch_all(TABLE_INDEXES_SQL, table=table, schema=schema):
            index = indexes.setdefault(row["name"], {
                "name": row["name"],
                "columns": [],
                "unique": bool(row["unique"]),
                "primary": bool(row["primary"]),
                "flags": [],
            })
            index["columns"].append(row["column_name"])
        return list(indexes.values())

    @staticmethod
    def _build_spatial_column_info(row: Optional[Dict[str, Any]]) -> Optional[SpatialColumnInfo]:
        if row is None:
            return None
        dimension = row.get("coord_dimension")
        srid = int(row.get("srid") or 0)
        return SpatialColumnInfo(
            geometry_type=geometry_type_from_catalog(row.get("type"), int(dimension) if dimension else None),
            # PostGIS 1.x stores -1 for an unknown SRID
            srid=max(srid, 0),
        )
