"""
Typed records produced from the NYT feeds.

One immutable record per source row. Records only live as long as the
chunk that carries them.
"""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class CountyBreakdown:
    """
    Cumulative cases and deaths for one county on one day.

    Attributes:
        date: Reporting date.
        county: County name (e.g. 'Suffolk', or 'Unknown').
        state: State name.
        fips: 5-digit county FIPS code, None when the feed leaves it blank.
        cases: Cumulative confirmed cases.
        deaths: Cumulative deaths.
    """

    date: date
    county: str
    state: str
    fips: int | None
    cases: int
    deaths: int


@dataclass(frozen=True)
class StateBreakdown:
    """Cumulative cases and deaths for one state on one day."""

    date: date
    state: str
    fips: int | None
    cases: int
    deaths: int
