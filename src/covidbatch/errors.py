"""
Error taxonomy for the batch job.

Every failure is fatal to the step it happens in and, transitively, to
the job. There is no row-level skip or retry.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from covidbatch.batch.execution import JobExecution, StepExecution


class BatchError(Exception):
    """Base class for all batch job errors."""


class ParseError(BatchError, ValueError):
    """A single raw field could not be converted to its typed value."""

    def __init__(self, message: str, value: str | None = None) -> None:
        super().__init__(message)
        self.value = value


class RowParseError(BatchError):
    """
    A source line could not be turned into a record.

    Attributes:
        source: Name of the reader that hit the line.
        line_number: 1-based physical line number (the header is line 1).
        line: Raw text of the offending line.
    """

    def __init__(self, message: str, *, source: str, line_number: int, line: str) -> None:
        super().__init__(f"{source}, line {line_number}: {message}")
        self.source = source
        self.line_number = line_number
        self.line = line


class RowShapeError(RowParseError):
    """A source line has the wrong number of delimited fields."""

    def __init__(
        self,
        *,
        source: str,
        line_number: int,
        line: str,
        expected: int,
        actual: int,
    ) -> None:
        super().__init__(
            f"expected {expected} fields, got {actual}",
            source=source,
            line_number=line_number,
            line=line,
        )
        self.expected = expected
        self.actual = actual


class SourceUnavailableError(BatchError):
    """An input resource could not be opened or fetched."""

    def __init__(self, locator: str, reason: str) -> None:
        super().__init__(f"Source unavailable: {locator} ({reason})")
        self.locator = locator
        self.reason = reason


class RecordValidationError(BatchError):
    """A chunk failed schema validation before it was written."""


class ChunkWriteError(BatchError):
    """
    A chunk write failed for a reason other than the declared conflict target.

    Covers foreign constraint violations, type and binding errors. The chunk
    is rolled back; chunks committed before it stay committed.
    """

    def __init__(self, table: str, size: int, reason: str) -> None:
        super().__init__(f"Writing {size} records to {table} failed: {reason}")
        self.table = table
        self.size = size


class StepFailedError(BatchError):
    """A step aborted; the original error is chained as ``__cause__``."""

    def __init__(self, execution: "StepExecution", reason: str) -> None:
        super().__init__(f"Step '{execution.step_name}' failed: {reason}")
        self.step = execution.step_name
        self.execution = execution


class JobFailedError(BatchError):
    """A job aborted because one of its steps failed."""

    def __init__(self, execution: "JobExecution", step: str) -> None:
        super().__init__(
            f"Job '{execution.job_name}' (run {execution.run_id}) failed in step '{step}'"
        )
        self.execution = execution
        self.step = step


class JobAlreadyCompleteError(BatchError):
    """The run identifier has already completed and cannot be run again."""

    def __init__(self, job_name: str, run_id: str) -> None:
        super().__init__(
            f"Job '{job_name}' run {run_id} already completed; use a new run id"
        )
        self.job_name = job_name
        self.run_id = run_id
