"""
Chunk-oriented step.

A step pulls records from a reader in fixed-size chunks and hands each
chunk to a writer, until the reader is exhausted or something fails.
Reader and writer are plain values; the loop is the same for every
dataset.

State machine:

    NOT_STARTED -> READING -> WRITING -> READING ... -> COMPLETED
                      |          |
                      +----------+--> FAILED

There is no retry and no skip: the first reader or writer error fails
the step.
"""

from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import TYPE_CHECKING, Generic, TypeVar

from covidbatch.batch.execution import StepExecution, StepStatus, utc_now
from covidbatch.errors import RowParseError, StepFailedError
from covidbatch.utils.logging import get_logger, log_context

if TYPE_CHECKING:
    from covidbatch.persistence.writer import WriteSummary

log = get_logger(__name__)

T = TypeVar("T")

ChunkWriter = Callable[[Sequence[T]], "WriteSummary"]
StepListener = Callable[[StepExecution], None]


class Step(Generic[T]):
    """
    One reader, one writer and a chunk size.

    Example:
        step = Step("states", reader, writer, chunk_size=100)
        execution = step.execute()
    """

    def __init__(
        self,
        name: str,
        reader: Iterable[T],
        writer: ChunkWriter[T],
        chunk_size: int,
    ) -> None:
        """
        Initialize step.

        Args:
            name: Step name, unique within a job.
            reader: Re-iterable record source; iterated once per execution.
            writer: Called with each non-empty chunk.
            chunk_size: Maximum records per chunk.
        """
        if chunk_size < 1:
            msg = f"chunk_size must be at least 1, got {chunk_size}"
            raise ValueError(msg)
        self.name = name
        self.reader = reader
        self.writer = writer
        self.chunk_size = chunk_size

    def execute(self, listener: StepListener | None = None) -> StepExecution:
        """
        Run the chunk loop to completion.

        Args:
            listener: Called with the execution after every committed chunk
                and on reaching a terminal state.

        Returns:
            The COMPLETED step execution.

        Raises:
            StepFailedError: On any reader, writer or listener error, with
                the original error as ``__cause__`` and the FAILED execution
                attached. A listener error while recording the failure is
                logged and does not replace the original error.
        """
        execution = StepExecution(step_name=self.name, started_at=utc_now())
        notify = listener or (lambda _: None)

        with log_context(step=self.name):
            log.info("Step started", chunk_size=self.chunk_size)
            records = iter(self.reader)
            try:
                self._run(records, execution, notify)
                execution.status = StepStatus.COMPLETED
                execution.ended_at = utc_now()
                notify(execution)
            except Exception as e:
                self._fail(execution, e)
                try:
                    notify(execution)
                except Exception as listener_error:
                    log.error(
                        "Listener failed while recording step failure",
                        error=str(listener_error),
                        error_type=type(listener_error).__name__,
                    )
                raise StepFailedError(execution, str(e)) from e
            finally:
                _close(records)

            log.info(
                "Step completed",
                read=execution.read_count,
                written=execution.write_count,
                duplicates=execution.skip_count,
                commits=execution.commit_count,
            )
        return execution

    def _run(
        self,
        records: Iterator[T],
        execution: StepExecution,
        notify: StepListener,
    ) -> None:
        while True:
            execution.status = StepStatus.READING
            chunk = self._read_chunk(records, execution)
            if not chunk:
                return

            execution.status = StepStatus.WRITING
            summary = self.writer(chunk)
            execution.write_count += summary.inserted
            execution.skip_count += summary.duplicates
            execution.commit_count += 1
            notify(execution)

    def _read_chunk(self, records: Iterator[T], execution: StepExecution) -> list[T]:
        chunk: list[T] = []
        for record in records:
            chunk.append(record)
            execution.read_count += 1
            if len(chunk) >= self.chunk_size:
                break
        return chunk

    def _fail(self, execution: StepExecution, error: Exception) -> None:
        failed_in = execution.status
        execution.status = StepStatus.FAILED
        execution.ended_at = utc_now()
        execution.exit_message = f"{type(error).__name__}: {error}"
        log.error(
            "Step failed",
            phase=failed_in.value,
            read=execution.read_count,
            commits=execution.commit_count,
            line=error.line_number if isinstance(error, RowParseError) else None,
            error=str(error),
            error_type=type(error).__name__,
        )


def _close(records: Iterator[object]) -> None:
    # Generators hold the source open until closed.
    close = getattr(records, "close", None)
    if close is not None:
        close()
