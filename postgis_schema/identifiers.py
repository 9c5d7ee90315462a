"""
Identifier and literal quoting for generated SQL
Identifiers go through SQLAlchemy's PostgreSQL preparer, which only adds
double quotes where PostgreSQL needs them (reserved words, mixed case,
special characters).
"""

from typing import Optional, Tuple

from sqlalchemy.dialects import postgresql

dialect = postgresql.dialect()
_preparer = dialect.identifier_preparer


def quote_identifier(name: str) -> str:
    """
    Safely quote a database identifier (table name, column name, etc.)

    Raises:
        ValueError: If the identifier is empty or not a string
    """
    if not name or not isinstance(name, str):
        raise ValueError(f"Invalid identifier: {name!r}")
    return _preparer.quote(name)


def quote_table(name: str, schema: Optional[str] = None) -> str:
    """Quote a table name, schema-qualified when a schema is given."""
    if schema:
        return f"{_preparer.quote_schema(schema)}.{quote_identifier(name)}"
    return quote_identifier(name)


def sql_literal(value: str) -> str:
    """Render a string as a single-quoted SQL literal."""
    return "'" + str(value).replace("'", "''") + "'"


def split_table_name(name: str) -> Tuple[Optional[str], str]:
    """
    Split "schema.table" into (schema, table); schema is None when absent.

    Quoted parts may contain dots, e.g. '"my.schema".parcels'.
    """
    parts = _preparer.unformat_identifiers(name)
    if len(parts) < 2:
        return None, parts[0] if parts else name
    return parts[-2], parts[-1]
