"""
Target table definitions.

A TableSpec describes one destination table: its columns, the natural
key used as the upsert conflict target, how a record is bound to SQL
parameters and which schema validates a bound chunk.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import pandera.pandas as pa

from covidbatch.schemas.breakdown import CountyBreakdownSchema, StateBreakdownSchema
from covidbatch.schemas.records import CountyBreakdown, StateBreakdown

T = TypeVar("T")

# Absent FIPS codes are stored as -1 so the natural key stays NOT NULL.
FIPS_SENTINEL = -1


@dataclass(frozen=True)
class Column:
    """A table column and its SQLite declaration."""

    name: str
    sql_type: str


@dataclass(frozen=True)
class TableSpec(Generic[T]):
    """
    Destination table for one record type.

    Attributes:
        name: Table name.
        columns: Columns in bind order.
        conflict_columns: Natural key; duplicate keys are ignored on insert.
        bind: Converts a record to a parameter tuple in column order.
        schema: Optional Pandera schema applied to each bound chunk.
    """

    name: str
    columns: tuple[Column, ...]
    conflict_columns: tuple[str, ...]
    bind: Callable[[T], tuple[Any, ...]]
    schema: type[pa.DataFrameModel] | None = None

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def create_sql(self) -> str:
        """CREATE TABLE statement with the natural key as a unique constraint."""
        column_defs = ", ".join(f"{c.name} {c.sql_type}" for c in self.columns)
        key = ", ".join(self.conflict_columns)
        return (
            f"CREATE TABLE IF NOT EXISTS {self.name} ("
            f"{column_defs}, "
            f"CONSTRAINT {self.name}_natural_key UNIQUE ({key}))"
        )

    def insert_sql(self) -> str:
        """Parameterized INSERT that leaves existing natural keys untouched."""
        names = ", ".join(self.column_names)
        placeholders = ", ".join("?" for _ in self.columns)
        key = ", ".join(self.conflict_columns)
        return (
            f"INSERT INTO {self.name} ({names}) VALUES ({placeholders}) "
            f"ON CONFLICT ({key}) DO NOTHING"
        )


def fips_or_sentinel(fips: int | None) -> int:
    return FIPS_SENTINEL if fips is None else fips


def bind_county(record: CountyBreakdown) -> tuple[Any, ...]:
    return (
        record.date.isoformat(),
        record.state,
        fips_or_sentinel(record.fips),
        record.cases,
        record.deaths,
        record.county,
    )


def bind_state(record: StateBreakdown) -> tuple[Any, ...]:
    return (
        record.date.isoformat(),
        record.state,
        fips_or_sentinel(record.fips),
        record.cases,
        record.deaths,
    )


_STATE_COLUMNS = (
    Column("date", "TEXT NOT NULL"),
    Column("state", "TEXT NOT NULL"),
    Column("fips", "INTEGER NOT NULL"),
    Column("cases", "INTEGER NOT NULL"),
    Column("deaths", "INTEGER NOT NULL"),
)


def counties_table(name: str = "covid19_usa_by_counties") -> TableSpec[CountyBreakdown]:
    """Per-county table, unique on (date, county, state, fips)."""
    return TableSpec(
        name=name,
        columns=(*_STATE_COLUMNS, Column("county", "TEXT NOT NULL")),
        conflict_columns=("date", "county", "state", "fips"),
        bind=bind_county,
        schema=CountyBreakdownSchema,
    )


def states_table(name: str = "covid19_usa_by_states") -> TableSpec[StateBreakdown]:
    """Per-state table, unique on (date, state, fips)."""
    return TableSpec(
        name=name,
        columns=_STATE_COLUMNS,
        conflict_columns=("date", "state", "fips"),
        bind=bind_state,
        schema=StateBreakdownSchema,
    )
