"""
Chunk writer with insert-or-ignore semantics.

Each chunk is bound, validated and inserted in a single transaction.
Rows whose natural key already exists are left as they are, which makes
re-running the job over the same input a no-op.
"""

import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import pandas as pd
from pandera.errors import SchemaError

from covidbatch.errors import ChunkWriteError, RecordValidationError
from covidbatch.persistence.database import Database
from covidbatch.persistence.tables import TableSpec
from covidbatch.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class WriteSummary:
    """Outcome of writing one chunk."""

    attempted: int
    inserted: int

    @property
    def duplicates(self) -> int:
        """Rows ignored because their natural key already existed."""
        return self.attempted - self.inserted


class RecordWriter(Generic[T]):
    """
    Bulk upsert of record chunks into one table.

    A chunk where every row already exists inserts nothing; that is a
    normal outcome unless assert_updates is set.
    """

    def __init__(
        self,
        database: Database,
        table: TableSpec[T],
        *,
        assert_updates: bool = False,
    ) -> None:
        """
        Initialize record writer.

        Args:
            database: Connection provider.
            table: Destination table specification.
            assert_updates: If True, a chunk that inserts zero rows is an error.
        """
        self.database = database
        self.table = table
        self.assert_updates = assert_updates
        self._sql = table.insert_sql()

    def __call__(self, chunk: Sequence[T]) -> WriteSummary:
        return self.write(chunk)

    def write(self, chunk: Sequence[T]) -> WriteSummary:
        """
        Write one chunk.

        Args:
            chunk: Records to insert.

        Returns:
            WriteSummary with attempted and inserted row counts.

        Raises:
            RecordValidationError: If the bound rows fail schema validation.
                Nothing is written.
            ChunkWriteError: If binding or the insert fails. The chunk is
                rolled back.
        """
        if not chunk:
            return WriteSummary(attempted=0, inserted=0)

        rows = self._bind(chunk)
        self._validate(rows)

        try:
            with self.database.transaction() as conn:
                before = conn.total_changes
                conn.executemany(self._sql, rows)
                inserted = conn.total_changes - before
        except sqlite3.Error as e:
            raise ChunkWriteError(self.table.name, len(rows), str(e)) from e

        if self.assert_updates and inserted == 0:
            raise ChunkWriteError(self.table.name, len(rows), "no rows were inserted")

        summary = WriteSummary(attempted=len(rows), inserted=inserted)
        log.debug(
            "Chunk written",
            table=self.table.name,
            attempted=summary.attempted,
            inserted=summary.inserted,
            duplicates=summary.duplicates,
        )
        return summary

    def _bind(self, chunk: Sequence[T]) -> list[tuple[Any, ...]]:
        try:
            return [self.table.bind(record) for record in chunk]
        except (AttributeError, TypeError, ValueError) as e:
            raise ChunkWriteError(self.table.name, len(chunk), f"binding failed: {e}") from e

    def _validate(self, rows: list[tuple[Any, ...]]) -> None:
        if self.table.schema is None:
            return

        df = pd.DataFrame.from_records(rows, columns=self.table.column_names)
        try:
            self.table.schema.validate(df)
        except SchemaError as e:
            msg = f"Chunk for {self.table.name} failed validation: {e}"
            raise RecordValidationError(msg) from e
