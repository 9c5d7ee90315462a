"""Catalog introspection against canned geometry_columns / pg_index rows."""

from postgis_schema.models import SpatialColumnInfo
from postgis_schema.services.catalog import CatalogIntrospector

from .conftest import FakeConnection


class TestSpatialColumns:

    def test_list_spatial_geometry_columns(self):
        connection = FakeConnection({
            "SELECT f_geometry_column": [
                {"f_geometry_column": "boundary"},
                {"f_geometry_column": "centroid"},
            ],
        })
        columns = CatalogIntrospector(connection).list_spatial_geometry_columns("gis.parcels")

        assert columns == frozenset({"boundary", "centroid"})
        _, params = connection.executed[0]
        assert params == {"table": "parcels", "schema": "gis"}

    def test_unqualified_table_uses_current_schema(self):
        connection = FakeConnection()
        assert CatalogIntrospector(connection).list_spatial_geometry_columns("parcels") == frozenset()
        sql, params = connection.executed[0]
        assert params["schema"] is None
        assert "current_schema()" in sql

    def test_geometry_column_info(self):
        connection = FakeConnection({
            "AND f_geometry_column = :column": [{"coord_dimension": 4, "srid": 4326, "type": "POLYGON"}],
        })
        info = CatalogIntrospector(connection).get_geometry_spatial_column_info("parcels", "boundary")
        assert info == SpatialColumnInfo(geometry_type="POLYGONZM", srid=4326)

    def test_measured_geometry_is_not_suffixed_again(self):
        connection = FakeConnection({
            "AND f_geometry_column = :column": [{"coord_dimension": 3, "srid": 4326, "type": "LINESTRINGM"}],
        })
        info = CatalogIntrospector(connection).get_geometry_spatial_column_info("routes", "track")
        assert info.geometry_type == "LINESTRINGM"

    def test_legacy_unknown_srid_reads_as_zero(self):
        connection = FakeConnection({
            "AND f_geometry_column = :column": [{"coord_dimension": 2, "srid": -1, "type": "POINT"}],
        })
        info = CatalogIntrospector(connection).get_geometry_spatial_column_info("sites", "geom")
        assert info.srid == 0

    def test_geography_column_info(self):
        connection = FakeConnection({
            "FROM geography_columns": [{"coord_dimension": 3, "srid": 4326, "type": "Point"}],
        })
        info = CatalogIntrospector(connection).get_geography_spatial_column_info("sites", "location")
        assert info == SpatialColumnInfo(geometry_type="POINTZ", srid=4326)

    def test_missing_column_info(self):
        introspector = CatalogIntrospector(FakeConnection())
        assert introspector.get_geometry_spatial_column_info("sites", "geom") is None
        assert introspector.get_geography_spatial_column_info("sites", "geom") is None


class TestSpatialIndexes:

    def test_rows_are_grouped_per_index(self):
        connection = FakeConnection({
            "am.amname IN": [
                {"index_name": "idx_sites_geom", "column_name": "geom", "method": "gist"},
                {"index_name": "idx_sites_both", "column_name": "geom", "method": "gist"},
                {"index_name": "idx_sites_both", "column_name": "location", "method": "gist"},
            ],
        })
        indexes = CatalogIntrospector(connection).list_spatial_indexes("sites")

        assert set(indexes) == {"idx_sites_geom", "idx_sites_both"}
        assert indexes["idx_sites_both"].columns == ("geom", "location")
        assert indexes["idx_sites_geom"].method == "gist"

    def test_snapshot(self):
        connection = FakeConnection({
            "SELECT f_geometry_column": [{"f_geometry_column": "geom"}],
            "am.amname IN": [{"index_name": "idx_sites_geom", "column_name": "geom", "method": "gist"}],
        })
        snapshot = CatalogIntrospector(connection).snapshot("sites")
        assert snapshot.has_geometry_columns
        assert list(snapshot.spatial_indexes) == ["idx_sites_geom"]

    def test_empty_snapshot(self):
        snapshot = CatalogIntrospector(FakeConnection()).snapshot("owners")
        assert not snapshot.has_geometry_columns
        assert snapshot.spatial_indexes == {}


class TestTableRows:

    def test_list_table_columns(self):
        rows = [
            {"field": "id", "type": "int4", "isnotnull": True, "default": None, "comment": None},
            {"field": "geom", "type": "geometry", "isnotnull": False, "default": None, "comment": None},
        ]
        connection = FakeConnection({"pg_attrdef": rows})
        assert CatalogIntrospector(connection).list_table_columns("sites") == rows

    def test_list_table_indexes(self):
        connection = FakeConnection({
            "d.indisunique": [
                {"name": "sites_pkey", "column_name": "id", "unique": True, "primary": True},
                {"name": "idx_sites_pair", "column_name": "code", "unique": False, "primary": False},
                {"name": "idx_sites_pair", "column_name": "region", "unique": False, "primary": False},
            ],
        })
        indexes = CatalogIntrospector(connection).list_table_indexes("sites")
        assert indexes == [
            {"name": "sites_pkey", "columns": ["id"], "unique": True, "primary": True, "flags": []},
            {"name": "idx_sites_pair", "columns": ["code", "region"], "unique": False,
             "primary": False, "flags": []},
        ]
