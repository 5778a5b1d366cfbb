"""
Pandera schemas for bound breakdown rows.

Validate a chunk in its database form (ISO date strings, FIPS sentinel
already applied) right before it is written.
"""

import pandera.pandas as pa
from pandera.typing import Series

ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class StateBreakdownSchema(pa.DataFrameModel):
    """Schema for rows bound for the per-state table."""

    date: Series[str] = pa.Field(
        str_matches=ISO_DATE_PATTERN,
        description="Reporting date (ISO 8601)",
    )
    state: Series[str] = pa.Field(
        str_length={"min_value": 1},
        description="State name",
    )
    fips: Series[int] = pa.Field(
        ge=-1,
        description="State FIPS code, -1 when absent",
    )
    cases: Series[int] = pa.Field(ge=0, description="Cumulative cases")
    deaths: Series[int] = pa.Field(ge=0, description="Cumulative deaths")

    class Config:
        """Schema configuration."""

        name = "StateBreakdownSchema"
        strict = False
        coerce = False


class CountyBreakdownSchema(StateBreakdownSchema):
    """Schema for rows bound for the per-county table."""

    county: Series[str] = pa.Field(
        str_length={"min_value": 1},
        description="County name",
    )

    class Config:
        """Schema configuration."""

        name = "CountyBreakdownSchema"
        strict = False
        coerce = False
