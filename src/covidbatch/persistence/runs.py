"""
Job and step run history.

Records every job run and step execution so that a failed run can be
restarted under the same run id and a completed run is never repeated.
"""

from dataclasses import dataclass
from datetime import datetime

from covidbatch.batch.execution import JobExecution, JobStatus, StepExecution, StepStatus
from covidbatch.persistence.database import Database
from covidbatch.utils.logging import get_logger

log = get_logger(__name__)

JOB_TABLE = "batch_job_execution"
STEP_TABLE = "batch_step_execution"

RUN_HISTORY_DDL = (
    f"""CREATE TABLE IF NOT EXISTS {JOB_TABLE} (
        job_name TEXT NOT NULL,
        run_id TEXT NOT NULL,
        status TEXT NOT NULL,
        started_at TEXT NOT NULL,
        ended_at TEXT,
        exit_message TEXT NOT NULL DEFAULT '',
        PRIMARY KEY (job_name, run_id))""",
    f"""CREATE TABLE IF NOT EXISTS {STEP_TABLE} (
        job_name TEXT NOT NULL,
        run_id TEXT NOT NULL,
        step_name TEXT NOT NULL,
        status TEXT NOT NULL,
        read_count INTEGER NOT NULL,
        write_count INTEGER NOT NULL,
        skip_count INTEGER NOT NULL,
        commit_count INTEGER NOT NULL,
        started_at TEXT,
        ended_at TEXT,
        exit_message TEXT NOT NULL DEFAULT '',
        PRIMARY KEY (job_name, run_id, step_name))""",
)


@dataclass(frozen=True)
class JobRunRecord:
    """A stored job run, as listed by the CLI."""

    job_name: str
    run_id: str
    status: JobStatus
    started_at: datetime
    ended_at: datetime | None
    exit_message: str


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class RunRepository:
    """Run history stored next to the target tables."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def initialize(self) -> None:
        """Create the run history tables if missing."""
        self.database.initialize(RUN_HISTORY_DDL)

    def find_job(self, job_name: str, run_id: str) -> JobRunRecord | None:
        """Return the stored run for a run id, or None if it never started."""
        with self.database.transaction() as conn:
            row = conn.execute(
                f"SELECT job_name, run_id, status, started_at, ended_at, exit_message "
                f"FROM {JOB_TABLE} WHERE job_name = ? AND run_id = ?",
                (job_name, run_id),
            ).fetchone()
        return self._to_record(row) if row else None

    def recent_jobs(self, limit: int = 20) -> list[JobRunRecord]:
        """Most recently started job runs first."""
        with self.database.transaction() as conn:
            rows = conn.execute(
                f"SELECT job_name, run_id, status, started_at, ended_at, exit_message "
                f"FROM {JOB_TABLE} ORDER BY started_at DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._to_record(row) for row in rows]

    def completed_steps(self, job_name: str, run_id: str) -> set[str]:
        """Names of the steps that completed under a run id."""
        with self.database.transaction() as conn:
            rows = conn.execute(
                f"SELECT step_name FROM {STEP_TABLE} "
                f"WHERE job_name = ? AND run_id = ? AND status = ?",
                (job_name, run_id, StepStatus.COMPLETED.value),
            ).fetchall()
        return {row[0] for row in rows}

    def step_executions(self, job_name: str, run_id: str) -> dict[str, StepExecution]:
        """Stored step executions for a run id, keyed by step name."""
        with self.database.transaction() as conn:
            rows = conn.execute(
                f"SELECT step_name, status, read_count, write_count, skip_count, "
                f"commit_count, started_at, ended_at, exit_message "
                f"FROM {STEP_TABLE} WHERE job_name = ? AND run_id = ?",
                (job_name, run_id),
            ).fetchall()
        return {
            row[0]: StepExecution(
                step_name=row[0],
                status=StepStatus(row[1]),
                read_count=row[2],
                write_count=row[3],
                skip_count=row[4],
                commit_count=row[5],
                started_at=_parse_ts(row[6]),
                ended_at=_parse_ts(row[7]),
                exit_message=row[8],
            )
            for row in rows
        }

    def save_job(self, execution: JobExecution) -> None:
        """Insert or update a job run."""
        with self.database.transaction() as conn:
            conn.execute(
                f"INSERT INTO {JOB_TABLE} "
                f"(job_name, run_id, status, started_at, ended_at, exit_message) "
                f"VALUES (?, ?, ?, ?, ?, ?) "
                f"ON CONFLICT (job_name, run_id) DO UPDATE SET "
                f"status = excluded.status, started_at = excluded.started_at, "
                f"ended_at = excluded.ended_at, exit_message = excluded.exit_message",
                (
                    execution.job_name,
                    execution.run_id,
                    execution.status.value,
                    _iso(execution.started_at),
                    _iso(execution.ended_at),
                    execution.exit_message,
                ),
            )
        log.debug("Job run saved", status=execution.status.value)

    def save_step(self, job_name: str, run_id: str, execution: StepExecution) -> None:
        """Insert or update a step execution."""
        with self.database.transaction() as conn:
            conn.execute(
                f"INSERT INTO {STEP_TABLE} "
                f"(job_name, run_id, step_name, status, read_count, write_count, "
                f"skip_count, commit_count, started_at, ended_at, exit_message) "
                f"VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                f"ON CONFLICT (job_name, run_id, step_name) DO UPDATE SET "
                f"status = excluded.status, read_count = excluded.read_count, "
                f"write_count = excluded.write_count, skip_count = excluded.skip_count, "
                f"commit_count = excluded.commit_count, started_at = excluded.started_at, "
                f"ended_at = excluded.ended_at, exit_message = excluded.exit_message",
                (
                    job_name,
                    run_id,
                    execution.step_name,
                    execution.status.value,
                    execution.read_count,
                    execution.write_count,
                    execution.skip_count,
                    execution.commit_count,
                    _iso(execution.started_at),
                    _iso(execution.ended_at),
                    execution.exit_message,
                ),
            )

    @staticmethod
    def _to_record(row: tuple) -> JobRunRecord:
        return JobRunRecord(
            job_name=row[0],
            run_id=row[1],
            status=JobStatus(row[2]),
            started_at=datetime.fromisoformat(row[3]),
            ended_at=_parse_ts(row[4]),
            exit_message=row[5],
        )
