"""
Persistence layer.

SQLite connection provisioning, target table definitions, the chunk
upsert writer and the run history repository.
"""

from covidbatch.persistence.database import Database
from covidbatch.persistence.runs import JobRunRecord, RunRepository
from covidbatch.persistence.tables import (
    FIPS_SENTINEL,
    TableSpec,
    counties_table,
    states_table,
)
from covidbatch.persistence.writer import RecordWriter, WriteSummary

__all__ = [
    "FIPS_SENTINEL",
    "Database",
    "JobRunRecord",
    "RecordWriter",
    "RunRepository",
    "TableSpec",
    "WriteSummary",
    "counties_table",
    "states_table",
]
