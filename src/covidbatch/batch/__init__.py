"""
Batch engine: chunk-oriented steps composed into jobs.
"""

from covidbatch.batch.execution import (
    JobExecution,
    JobStatus,
    StepExecution,
    StepStatus,
    new_run_id,
)
from covidbatch.batch.job import Job
from covidbatch.batch.step import Step

__all__ = [
    "Job",
    "JobExecution",
    "JobStatus",
    "Step",
    "StepExecution",
    "StepStatus",
    "new_run_id",
]
