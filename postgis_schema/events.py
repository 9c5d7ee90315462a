"""
Schema events and their outcomes

The framework describes what it is about to do with an event; the router
answers with an Outcome instead of mutating the event:

    Continue  - nothing spatial here, run the default DDL
    Augment   - run the default DDL plus these statements
    Replace   - skip the default DDL, run these statements instead
                (or use this descriptor instead of the inferred one)
    Reject    - the change is not allowed
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Column, Table

from .exceptions import SpatialSchemaError
from .schema import ColumnDiff, TableDiff


class SchemaEvent(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


class CreateTableEvent(SchemaEvent):
    table: Table


class DropTableEvent(SchemaEvent):
    table_name: str
    schema_name: Optional[str] = None


class AlterTableEvent(SchemaEvent):
    diff: TableDiff


class AddColumnEvent(SchemaEvent):
    column: Column
    diff: TableDiff


class RemoveColumnEvent(SchemaEvent):
    column: Column
    diff: TableDiff


class ChangeColumnEvent(SchemaEvent):
    column_diff: ColumnDiff
    diff: TableDiff


class RenameColumnEvent(SchemaEvent):
    old_column_name: str
    column: Column
    diff: TableDiff


class ColumnDefinitionEvent(SchemaEvent):
    """A raw catalog row describing one column of an existing table."""
    table: str
    table_column: Dict[str, Any]


class IndexDefinitionEvent(SchemaEvent):
    """A raw catalog row describing one index of an existing table."""
    table: str
    table_index: Dict[str, Any]


# ────────────────────────────────────────────────────────────────────────────
# Outcomes
# ────────────────────────────────────────────────────────────────────────────

class Outcome(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @property
    def prevents_default(self) -> bool:
        return False

    @property
    def statements(self) -> Tuple[str, ...]:
        return ()


class Continue(Outcome):
    pass


class Augment(Outcome):
    sql: Tuple[str, ...] = ()
    diff: Optional[TableDiff] = Field(None, description="Rewritten diff for the default DDL")

    @property
    def statements(self) -> Tuple[str, ...]:
        return self.sql


class Replace(Outcome):
    sql: Tuple[str, ...] = ()
    replacement: Any = Field(None, description="Descriptor to use instead of the inferred one")

    @property
    def prevents_default(self) -> bool:
        return True

    @property
    def statements(self) -> Tuple[str, ...]:
        return self.sql


class Reject(Outcome):
    error: SpatialSchemaError

    @property
    def prevents_default(self) -> bool:
        return True

    def raise_error(self) -> None:
        raise self.error


def collect_sql(outcome: Outcome, default_sql: Optional[List[str]] = None) -> List[str]:
    """
    Statements to execute for an outcome, given what the framework would
    have run by default. Raises the error of a Reject.
    """
    if isinstance(outcome, Reject):
        outcome.raise_error()
    sql = [] if outcome.prevents_default else list(default_sql or [])
    sql.extend(outcome.statements)
    return sql


def lower_keys(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(key).lower(): value for key, value in row.items()}
