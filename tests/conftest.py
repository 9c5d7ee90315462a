"""
Shared fixtures: a fake connection serving canned catalog rows, the type
registry and routers bound in either dialect. No database is needed.
"""

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table

from postgis_schema.models import DialectMode
from postgis_schema.schema import spatial_index
from postgis_schema.services.schema_router import SchemaEventRouter
from postgis_schema.services.version_probe import VersionProbe
from postgis_schema.types import GeometryType, TypeRegistry


class FakeResult:
    def __init__(self, rows):
        self._rows = list(rows)

    def mappings(self):
        return self

    def all(self):
        return list(self._rows)

    def first(self):
        return self._rows[0] if self._rows else None

    def scalar(self):
        if not self._rows:
            return None
        return next(iter(self._rows[0].values()))


class FakeConnection:
    """
    Answers execute() with the rows registered under the first SQL fragment
    found in the statement. Values may be callables taking the bound params.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.executed = []

    def execute(self, statement, params=None):
        sql = str(statement)
        params = dict(params or {})
        self.executed.append((sql, params))
        for fragment, rows in self.responses.items():
            if fragment in sql:
                return FakeResult(rows(params) if callable(rows) else rows)
        return FakeResult([])


@pytest.fixture
def registry():
    registry = TypeRegistry()
    registry.register_spatial_types()
    return registry


@pytest.fixture
def make_router(registry):
    """Factory: a router bound to a FakeConnection in the given dialect."""
    def _make(mode: DialectMode, responses=None):
        router = SchemaEventRouter(registry, probe=VersionProbe(override=mode.value))
        router.connect(FakeConnection(responses))
        return router
    return _make


@pytest.fixture
def legacy_router(make_router):
    return make_router(DialectMode.LEGACY_MANAGED)


@pytest.fixture
def typmod_router(make_router):
    return make_router(DialectMode.TYPMOD_BASED)


@pytest.fixture
def parcels():
    """parcels(id, title, boundary POLYGONZM/4326 NOT NULL) with a spatial index."""
    return Table(
        "parcels",
        MetaData(),
        Column("id", Integer, primary_key=True),
        Column("title", String(100)),
        Column("boundary", GeometryType("POLYGONZM", srid=4326), nullable=False),
        spatial_index("idx_parcels_boundary", "boundary"),
    )
