"""
Field parsers for raw CSV values.

Pure functions converting raw text fields into typed values. Every
failure raises ParseError; nothing is swallowed or defaulted.
"""

import re
from datetime import date, timedelta

from covidbatch.config.settings import DateConvention
from covidbatch.errors import ParseError

_INTEGER = re.compile(r"^[+-]?[0-9]+$")
_DATE_PART = re.compile(r"^[0-9]+$")


def parse_optional_int(text: str | None) -> int | None:
    """
    Parse an optional base-10 integer.

    Args:
        text: Raw field value.

    Returns:
        None if the value is None or blank after trimming, else the integer.

    Raises:
        ParseError: If the trimmed value is not a base-10 integer.
    """
    if text is None:
        return None
    stripped = text.strip()
    if not stripped:
        return None
    if not _INTEGER.match(stripped):
        msg = f"Not an integer: {text!r}"
        raise ParseError(msg, value=text)
    return int(stripped, 10)


def parse_int(text: str | None) -> int:
    """
    Parse a required base-10 integer.

    Raises:
        ParseError: If the value is missing, blank or not an integer.
    """
    value = parse_optional_int(text)
    if value is None:
        msg = "Missing required integer"
        raise ParseError(msg, value=text)
    return value


def _split_date(text: str) -> tuple[int, int, int]:
    parts = text.strip().split("-")
    if len(parts) != 3 or not all(_DATE_PART.match(p) for p in parts):
        msg = f"Expected a Y-M-D date, got: {text!r}"
        raise ParseError(msg, value=text)
    year, month, day = (int(p, 10) for p in parts)
    return year, month, day


def _lenient_zero_based(year: int, month_index: int, day: int) -> date:
    # Month index and day roll over into the following month/year.
    year += month_index // 12
    month_index %= 12
    return date(year, month_index + 1, 1) + timedelta(days=day - 1)


def parse_date(text: str, convention: DateConvention = DateConvention.CALENDAR) -> date:
    """
    Parse a ``Y-M-D`` date string.

    With DateConvention.CALENDAR the month is 1-based and the date must
    exist (``2020-03-10`` is 10 March 2020). With
    DateConvention.ZERO_BASED_MONTH the month number is used as a 0-based
    month index and out-of-range months/days roll over, so ``2020-03-10``
    is 10 April 2020 and ``2020-12-01`` is 1 January 2021.

    Args:
        text: Raw field value.
        convention: Month interpretation.

    Returns:
        The parsed date.

    Raises:
        ParseError: If the value is not three dash-separated integers or
            does not name a representable date.
    """
    if text is None:
        msg = "Missing date"
        raise ParseError(msg)

    year, month, day = _split_date(text)

    try:
        if convention is DateConvention.ZERO_BASED_MONTH:
            return _lenient_zero_based(year, month, day)
        return date(year, month, day)
    except (ValueError, OverflowError) as e:
        msg = f"Invalid date {text!r}: {e}"
        raise ParseError(msg, value=text) from e
