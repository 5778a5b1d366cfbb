"""
ETL pipeline assembly.

Builds the counties and states steps from configuration and runs them
as one job.
"""

from typing import Any

from covidbatch.batch.execution import JobExecution
from covidbatch.batch.job import Job
from covidbatch.batch.step import Step
from covidbatch.config.settings import JobConfig
from covidbatch.etl.datasets import Dataset, counties_dataset, states_dataset
from covidbatch.ingestion.reader import RecordReader
from covidbatch.ingestion.sources import source_for
from covidbatch.persistence.database import Database
from covidbatch.persistence.runs import RunRepository
from covidbatch.persistence.writer import RecordWriter
from covidbatch.utils.logging import get_logger

log = get_logger(__name__)


def build_step(
    dataset: Dataset[Any],
    locator: str,
    database: Database,
    *,
    chunk_size: int,
    timeout: float = 60.0,
) -> Step[Any]:
    """
    Bind a dataset to its source and table as a step.

    Args:
        dataset: Column layout, mapper and destination table.
        locator: URL or path of the dataset's CSV.
        database: Target database.
        chunk_size: Records per write batch.
        timeout: HTTP timeout for remote sources.

    Returns:
        Step named after the dataset.
    """
    reader = RecordReader(
        source_for(locator, timeout=timeout),
        name=f"read-{dataset.name}",
        columns=dataset.columns,
        mapper=dataset.mapper,
    )
    writer = RecordWriter(database, dataset.table, assert_updates=False)
    return Step(dataset.name, reader, writer, chunk_size=chunk_size)


def build_job(
    config: JobConfig,
    run_id: str,
    *,
    database: Database | None = None,
    track_runs: bool = True,
) -> Job:
    """
    Assemble the job: counties first, then states.

    Creates any missing target and run history tables.

    Args:
        config: Job configuration.
        run_id: Identifier of this job instance, generated at process entry.
        database: Override the database from config (used in tests).
        track_runs: Whether to record run history and honour restarts.

    Returns:
        Ready-to-run Job.
    """
    database = database or Database(config.database.path)
    convention = config.batch.date_convention

    datasets: list[Dataset[Any]] = [
        counties_dataset(config.database.counties_table, convention),
        states_dataset(config.database.states_table, convention),
    ]
    database.initialize(dataset.table.create_sql() for dataset in datasets)

    repository = None
    if track_runs:
        repository = RunRepository(database)
        repository.initialize()

    locators = {
        "counties": config.sources.by_county_url,
        "states": config.sources.by_state_url,
    }
    steps = [
        build_step(
            dataset,
            locators[dataset.name],
            database,
            chunk_size=config.chunk_size,
            timeout=config.sources.timeout_seconds,
        )
        for dataset in datasets
    ]

    return Job(config.job_name, steps, run_id, repository=repository)


def run_etl(config: JobConfig, run_id: str, **kwargs: Any) -> JobExecution:
    """
    Convenience function to build and run the job.

    Args:
        config: Job configuration.
        run_id: Identifier of this job instance.
        **kwargs: Passed to build_job.

    Returns:
        The COMPLETED job execution.

    Raises:
        JobFailedError: If a step failed.
        JobAlreadyCompleteError: If the run id already completed.
    """
    log.info(
        "Configured sources",
        by_county=config.sources.by_county_url,
        by_state=config.sources.by_state_url,
        database=str(config.database.path),
    )
    job = build_job(config, run_id, **kwargs)
    return job.run()
