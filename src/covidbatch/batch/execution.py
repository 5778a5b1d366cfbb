"""
Execution state for steps and jobs.

Mutable bookkeeping owned by the step loop and the job; persisted by
RunRepository when one is attached.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class StepStatus(str, Enum):
    """States of the chunk loop."""

    NOT_STARTED = "NOT_STARTED"
    READING = "READING"
    WRITING = "WRITING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED)


class JobStatus(str, Enum):
    """States of a job run."""

    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


def utc_now() -> datetime:
    """Return the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def new_run_id() -> str:
    """
    Generate a run identifier from the current time in epoch milliseconds.

    Call once at process entry and pass the value down explicitly.
    """
    return str(time.time_ns() // 1_000_000)


@dataclass
class StepExecution:
    """
    Progress of one step.

    Attributes:
        step_name: Name of the step.
        status: Current state of the chunk loop.
        read_count: Records pulled from the reader.
        write_count: Rows actually inserted.
        skip_count: Rows ignored because their natural key already existed.
        commit_count: Chunks written successfully.
        started_at: When the step left NOT_STARTED.
        ended_at: When the step reached a terminal state.
        exit_message: Failure description, empty on success.
    """

    step_name: str
    status: StepStatus = StepStatus.NOT_STARTED
    read_count: int = 0
    write_count: int = 0
    skip_count: int = 0
    commit_count: int = 0
    started_at: datetime | None = None
    ended_at: datetime | None = None
    exit_message: str = ""


@dataclass
class JobExecution:
    """Progress of one job run."""

    job_name: str
    run_id: str
    status: JobStatus = JobStatus.STARTED
    started_at: datetime = field(default_factory=utc_now)
    ended_at: datetime | None = None
    step_executions: list[StepExecution] = field(default_factory=list)
    skipped_steps: list[str] = field(default_factory=list)
    exit_message: str = ""

    def step(self, name: str) -> StepExecution | None:
        """Return the execution of a step in this run, if it ran."""
        for execution in self.step_executions:
            if execution.step_name == name:
                return execution
        return None
