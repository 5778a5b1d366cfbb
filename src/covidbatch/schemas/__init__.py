"""
Data contracts for the batch job.

Typed records for parsed rows and Pandera schemas for the rows as they
are bound for the database.
"""

from covidbatch.schemas.breakdown import CountyBreakdownSchema, StateBreakdownSchema
from covidbatch.schemas.records import CountyBreakdown, StateBreakdown

__all__ = [
    "CountyBreakdown",
    "CountyBreakdownSchema",
    "StateBreakdown",
    "StateBreakdownSchema",
]
