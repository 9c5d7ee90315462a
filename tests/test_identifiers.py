"""Identifier quoting and table name splitting."""

import pytest

from postgis_schema.identifiers import quote_identifier, quote_table, split_table_name, sql_literal


@pytest.mark.parametrize("name,expected", [
    ("parcels", (None, "parcels")),
    ("gis.parcels", ("gis", "parcels")),
    ('"my.schema".parcels', ("my.schema", "parcels")),
    ('gis."Parcels.2024"', ("gis", "Parcels.2024")),
])
def test_split_table_name(name, expected):
    assert split_table_name(name) == expected


def test_quote_identifier_only_when_needed():
    assert quote_identifier("parcels") == "parcels"
    assert quote_identifier("Geom") == '"Geom"'
    assert quote_table("sites", "my.schema") == '"my.schema".sites'


def test_quote_identifier_rejects_empty_names():
    with pytest.raises(ValueError):
        quote_identifier("")


def test_sql_literal_escapes_quotes():
    assert sql_literal("Site's location") == "'Site''s location'"
