"""End-to-end tests of the ETL pipeline over files and SQLite."""

from pathlib import Path
from unittest.mock import patch

import pytest

from covidbatch.batch import JobStatus, StepStatus
from covidbatch.config import BatchConfig, DatabaseConfig, DateConvention, JobConfig, SourcesConfig
from covidbatch.errors import JobFailedError, RowParseError, SourceUnavailableError
from covidbatch.etl import build_job, run_etl
from covidbatch.persistence.writer import RecordWriter
from tests.conftest import COUNTY_HEADER, STATE_HEADER, count_rows, fetch_rows, write_csv

COUNTIES = "covid19_usa_by_counties"
STATES = "covid19_usa_by_states"


def config_for(county: Path, state: Path, db_path: Path, **batch) -> JobConfig:
    return JobConfig(
        sources=SourcesConfig(by_county_url=str(county), by_state_url=str(state)),
        database=DatabaseConfig(path=db_path),
        batch=BatchConfig(**batch),
    )


class TestEndToEnd:
    """Full job runs."""

    def test_single_county_row(self, tmp_path: Path, db_path: Path) -> None:
        """Test one county row becomes one upsert with FIPS bound as an integer."""
        county = write_csv(
            tmp_path / "c.csv", COUNTY_HEADER, ["2020-03-10,Suffolk,Massachusetts,25025,5,0"]
        )
        state = write_csv(tmp_path / "s.csv", STATE_HEADER, [])
        config = config_for(county, state, db_path)

        with patch.object(RecordWriter, "write", autospec=True, side_effect=RecordWriter.write) as write:
            execution = run_etl(config, "1")

        county_calls = [c for c in write.call_args_list if c.args[0].table.name == COUNTIES]
        assert len(county_calls) == 1
        (record,) = county_calls[0].args[1]
        assert (record.fips, record.cases, record.deaths) == (25025, 5, 0)

        assert execution.status is JobStatus.COMPLETED
        rows = fetch_rows(db_path, f"SELECT fips, typeof(fips), cases, deaths FROM {COUNTIES}")
        assert rows == [(25025, "integer", 5, 0)]

    def test_empty_fips_stored_as_sentinel(self, tmp_path: Path, db_path: Path) -> None:
        """Test that a blank FIPS field is persisted as -1 without error."""
        county = write_csv(
            tmp_path / "c.csv", COUNTY_HEADER, ["2020-03-10,Unknown,Massachusetts,,5,0"]
        )
        state = write_csv(tmp_path / "s.csv", STATE_HEADER, [])

        run_etl(config_for(county, state, db_path), "1")

        assert fetch_rows(db_path, f"SELECT county, fips FROM {COUNTIES}") == [("Unknown", -1)]

    def test_rerun_creates_no_duplicates(self, job_config: JobConfig, db_path: Path) -> None:
        """Test that two runs over the same input leave one copy of each row."""
        first = run_etl(job_config, "1")
        second = run_etl(job_config, "2")

        assert count_rows(db_path, STATES) == 2
        assert count_rows(db_path, COUNTIES) == 5
        assert first.step("states").write_count == 2
        assert second.step("states").write_count == 0
        assert second.step("states").skip_count == 2
        assert second.status is JobStatus.COMPLETED

    def test_counts_per_step(self, job_config: JobConfig) -> None:
        """Test read counts and chunk commits for both steps."""
        config = job_config.model_copy(update={"batch": BatchConfig(chunk_size=2)})
        execution = run_etl(config, "1")

        counties = execution.step("counties")
        assert counties.read_count == 5
        assert counties.commit_count == 3
        assert execution.step("states").commit_count == 1

    def test_dates_stored_as_iso(self, job_config: JobConfig, db_path: Path) -> None:
        """Test the stored date form for the default convention."""
        run_etl(job_config, "1")
        rows = fetch_rows(db_path, f"SELECT DISTINCT date FROM {STATES}")
        assert rows == [("2020-03-10",)]

    def test_zero_based_month_convention(self, job_config: JobConfig, db_path: Path) -> None:
        """Test that the legacy convention shifts stored dates by one month."""
        config = job_config.model_copy(
            update={"batch": BatchConfig(date_convention=DateConvention.ZERO_BASED_MONTH)}
        )
        run_etl(config, "1")
        rows = fetch_rows(db_path, f"SELECT DISTINCT date FROM {STATES}")
        assert rows == [("2020-04-10",)]


class TestFailures:
    """Job runs that abort."""

    def test_malformed_row_keeps_earlier_chunks(self, tmp_path: Path, db_path: Path) -> None:
        """Test that chunks before a bad line stay committed and later ones are never written."""
        rows = [f"2020-03-{day:02d},Suffolk,Massachusetts,25025,{day},0" for day in range(1, 6)]
        rows.insert(3, "2020-03-04,Suffolk,Massachusetts,25025,not-a-number,0")
        rows += [f"2020-04-{day:02d},Suffolk,Massachusetts,25025,{day},0" for day in range(1, 6)]
        county = write_csv(tmp_path / "c.csv", COUNTY_HEADER, rows)
        state = write_csv(tmp_path / "s.csv", STATE_HEADER, ["2020-03-10,Ohio,39,3,0"])

        with pytest.raises(JobFailedError) as exc_info:
            run_etl(config_for(county, state, db_path, chunk_size=2), "1")

        # Bad row is data line 4 (file line 5); chunk [1, 2] committed, [3, bad] not.
        cause = exc_info.value.__cause__.__cause__
        assert isinstance(cause, RowParseError)
        assert cause.line_number == 5
        assert count_rows(db_path, COUNTIES) == 2
        assert count_rows(db_path, STATES) == 0
        assert exc_info.value.execution.step("counties").status is StepStatus.FAILED
        assert exc_info.value.execution.step("states") is None

    def test_missing_source(self, tmp_path: Path, db_path: Path, state_csv: Path) -> None:
        """Test that an unavailable source fails the step before anything is written."""
        config = config_for(tmp_path / "missing.csv", state_csv, db_path)

        with pytest.raises(JobFailedError) as exc_info:
            run_etl(config, "1")

        assert isinstance(exc_info.value.__cause__.__cause__, SourceUnavailableError)
        assert count_rows(db_path, COUNTIES) == 0

    def test_restart_after_fix(self, tmp_path: Path, db_path: Path, county_csv: Path) -> None:
        """Test restarting a failed run id once the bad source is fixed."""
        state = write_csv(tmp_path / "s.csv", STATE_HEADER, ["2020-03-10,Ohio,39"])
        config = config_for(county_csv, state, db_path)

        with pytest.raises(JobFailedError):
            run_etl(config, "42")
        assert count_rows(db_path, COUNTIES) == 5

        write_csv(state, STATE_HEADER, ["2020-03-10,Ohio,39,3,0"])
        execution = run_etl(config, "42")

        assert execution.skipped_steps == ["counties"]
        assert count_rows(db_path, STATES) == 1


class TestBuildJob:
    """Tests for job assembly."""

    def test_step_order_and_names(self, job_config: JobConfig) -> None:
        """Test that counties come before states."""
        job = build_job(job_config, "1")
        assert [step.name for step in job.steps] == ["counties", "states"]
        assert job.run_id == "1"
        assert job.name == "nytimes"

    def test_tables_created(self, job_config: JobConfig, db_path: Path) -> None:
        """Test that target and history tables exist after assembly."""
        build_job(job_config, "1")
        names = {row[0] for row in fetch_rows(db_path, "SELECT name FROM sqlite_master")}
        assert {COUNTIES, STATES, "batch_job_execution", "batch_step_execution"} <= names

    def test_custom_table_names(self, job_config: JobConfig, db_path: Path) -> None:
        """Test that table names come from configuration."""
        config = job_config.model_copy(
            update={
                "database": DatabaseConfig(
                    path=db_path, counties_table="by_county", states_table="by_state"
                )
            }
        )
        run_etl(config, "1")
        assert count_rows(db_path, "by_county") == 5
        assert count_rows(db_path, "by_state") == 2

    def test_untracked_job_has_no_repository(self, job_config: JobConfig) -> None:
        """Test that run tracking can be disabled."""
        job = build_job(job_config, "1", track_runs=False)
        assert job.repository is None
