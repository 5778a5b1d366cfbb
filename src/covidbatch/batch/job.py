"""
Job orchestration.

Runs an ordered list of steps as one unit of work identified by a run
id. Steps run strictly in sequence; the first failure ends the job.
"""

from collections.abc import Sequence
from functools import partial
from typing import TYPE_CHECKING, Any

from covidbatch.batch.execution import JobExecution, JobStatus, utc_now
from covidbatch.batch.step import Step, StepListener
from covidbatch.errors import JobAlreadyCompleteError, JobFailedError, StepFailedError
from covidbatch.utils.logging import get_logger, log_context

if TYPE_CHECKING:
    from covidbatch.persistence.runs import RunRepository

log = get_logger(__name__)


class Job:
    """
    Sequence of steps tagged with a run id.

    With a run repository attached, a run id that already completed is
    refused, and restarting a failed run id skips the steps that
    completed under it. Without one, every run executes every step.
    """

    def __init__(
        self,
        name: str,
        steps: Sequence[Step[Any]],
        run_id: str,
        repository: "RunRepository | None" = None,
    ) -> None:
        """
        Initialize job.

        Args:
            name: Job name.
            steps: Steps in execution order. Names must be unique.
            run_id: Identifier of this job instance.
            repository: Optional run history for restart semantics.
        """
        names = [step.name for step in steps]
        if len(set(names)) != len(names):
            msg = f"Step names must be unique, got {names}"
            raise ValueError(msg)
        self.name = name
        self.steps = list(steps)
        self.run_id = run_id
        self.repository = repository

    def run(self) -> JobExecution:
        """
        Execute the steps in order.

        Returns:
            The COMPLETED job execution.

        Raises:
            JobAlreadyCompleteError: If the run id already completed.
            JobFailedError: If a step failed. The FAILED execution is
                attached; later steps did not run.
        """
        with log_context(job=self.name, run_id=self.run_id):
            completed = self._completed_steps()
            execution = JobExecution(job_name=self.name, run_id=self.run_id)
            self._save(execution)
            log.info("Job started", steps=[step.name for step in self.steps])

            for step in self.steps:
                if step.name in completed:
                    log.info("Skipping step completed in an earlier attempt", step=step.name)
                    execution.skipped_steps.append(step.name)
                    continue

                try:
                    step_execution = step.execute(listener=self._listener())
                except StepFailedError as e:
                    execution.step_executions.append(e.execution)
                    execution.status = JobStatus.FAILED
                    execution.ended_at = utc_now()
                    execution.exit_message = str(e)
                    try:
                        self._save(execution)
                    except Exception as save_error:
                        log.error("Could not record job failure", error=str(save_error))
                    log.error("Job failed", step=step.name, error=str(e.__cause__ or e))
                    raise JobFailedError(execution, step.name) from e

                execution.step_executions.append(step_execution)

            execution.status = JobStatus.COMPLETED
            execution.ended_at = utc_now()
            self._save(execution)
            log.info(
                "Job completed",
                steps_run=len(execution.step_executions),
                steps_skipped=len(execution.skipped_steps),
            )
        return execution

    def _completed_steps(self) -> set[str]:
        if self.repository is None:
            return set()

        previous = self.repository.find_job(self.name, self.run_id)
        if previous is None:
            return set()
        if previous.status is JobStatus.COMPLETED:
            raise JobAlreadyCompleteError(self.name, self.run_id)

        log.info("Restarting run", previous_status=previous.status.value)
        return self.repository.completed_steps(self.name, self.run_id)

    def _listener(self) -> StepListener | None:
        if self.repository is None:
            return None
        return partial(self.repository.save_step, self.name, self.run_id)

    def _save(self, execution: JobExecution) -> None:
        if self.repository is not None:
            self.repository.save_job(execution)
