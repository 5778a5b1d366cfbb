"""
Dataset definitions for the NYT COVID-19 feeds.

Each dataset binds a CSV column layout, a row mapper and a destination
table. The step loop is shared; only these definitions differ.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Generic, TypeVar

from covidbatch.config.settings import DateConvention
from covidbatch.ingestion.fields import parse_date, parse_int, parse_optional_int
from covidbatch.persistence.tables import TableSpec, counties_table, states_table
from covidbatch.schemas.records import CountyBreakdown, StateBreakdown

T = TypeVar("T")

COUNTY_COLUMNS = ("date", "county", "state", "fips", "cases", "deaths")
STATE_COLUMNS = ("date", "state", "fips", "cases", "deaths")


@dataclass(frozen=True)
class Dataset(Generic[T]):
    """
    One input feed and where its records go.

    Attributes:
        name: Dataset name; also the step name.
        columns: CSV column layout, in file order.
        mapper: Builds a record from the positional fields of one row.
        table: Destination table.
    """

    name: str
    columns: tuple[str, ...]
    mapper: Callable[[Sequence[str]], T]
    table: TableSpec[T]


def map_county_row(
    fields: Sequence[str], convention: DateConvention = DateConvention.CALENDAR
) -> CountyBreakdown:
    """Map ``date, county, state, fips, cases, deaths``."""
    return CountyBreakdown(
        date=parse_date(fields[0], convention),
        county=fields[1],
        state=fields[2],
        fips=parse_optional_int(fields[3]),
        cases=parse_int(fields[4]),
        deaths=parse_int(fields[5]),
    )


def map_state_row(
    fields: Sequence[str], convention: DateConvention = DateConvention.CALENDAR
) -> StateBreakdown:
    """Map ``date, state, fips, cases, deaths``."""
    return StateBreakdown(
        date=parse_date(fields[0], convention),
        state=fields[1],
        fips=parse_optional_int(fields[2]),
        cases=parse_int(fields[3]),
        deaths=parse_int(fields[4]),
    )


def counties_dataset(
    table_name: str = "covid19_usa_by_counties",
    convention: DateConvention = DateConvention.CALENDAR,
) -> Dataset[CountyBreakdown]:
    return Dataset(
        name="counties",
        columns=COUNTY_COLUMNS,
        mapper=partial(map_county_row, convention=convention),
        table=counties_table(table_name),
    )


def states_dataset(
    table_name: str = "covid19_usa_by_states",
    convention: DateConvention = DateConvention.CALENDAR,
) -> Dataset[StateBreakdown]:
    return Dataset(
        name="states",
        columns=STATE_COLUMNS,
        mapper=partial(map_state_row, convention=convention),
        table=states_table(table_name),
    )

