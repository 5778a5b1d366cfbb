"""Tests for the command-line interface."""

import sqlite3
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from covidbatch.cli import app
from tests.conftest import STATE_HEADER, count_rows, write_csv

runner = CliRunner()


@pytest.fixture(autouse=True)
def configure_logging() -> Iterator[MagicMock]:
    """Keep the CLI from reconfiguring structlog for the rest of the session."""
    with patch("covidbatch.utils.logging.configure_logging") as mock:
        yield mock


def write_config(path: Path, county: Path, state: Path, db_path: Path) -> Path:
    path.write_text(
        f"""
sources:
  by_county_url: {county}
  by_state_url: {state}
database:
  path: {db_path}
batch:
  chunk_size: 2
logging:
  level: debug
""",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def config_file(tmp_path: Path, county_csv: Path, state_csv: Path, db_path: Path) -> Path:
    return write_config(tmp_path / "job.yaml", county_csv, state_csv, db_path)


class TestRun:
    """Tests for the run command."""

    def test_success(
        self, config_file: Path, db_path: Path, configure_logging: MagicMock
    ) -> None:
        """Test a successful run exits 0 and loads both tables."""
        result = runner.invoke(app, ["run", "--config", str(config_file), "--run-id", "7"])

        assert result.exit_code == 0, result.output
        assert "Job completed" in result.output
        assert count_rows(db_path, "covid19_usa_by_counties") == 5
        assert count_rows(db_path, "covid19_usa_by_states") == 2
        configure_logging.assert_called_once_with("DEBUG", json_output=False)

    def test_failed_step_exits_1(
        self, tmp_path: Path, county_csv: Path, db_path: Path
    ) -> None:
        """Test that a failing step gives exit code 1 and names the cause."""
        state = write_csv(tmp_path / "bad.csv", STATE_HEADER, ["2020-03-10,Ohio,39"])
        config = write_config(tmp_path / "job.yaml", county_csv, state, db_path)

        result = runner.invoke(app, ["run", "--config", str(config), "--run-id", "8"])

        assert result.exit_code == 1
        assert "failed in step 'states'" in result.output
        assert "Cause:" in result.output
        assert count_rows(db_path, "covid19_usa_by_counties") == 5

    def test_completed_run_id_exits_1(self, config_file: Path) -> None:
        """Test that reusing a completed run id is refused."""
        args = ["run", "--config", str(config_file), "--run-id", "9"]
        assert runner.invoke(app, args).exit_code == 0

        result = runner.invoke(app, args)

        assert result.exit_code == 1
        assert "already completed" in result.output

    def test_chunk_size_override(self, config_file: Path) -> None:
        """Test that --chunk-size replaces the configured value."""
        assert runner.invoke(
            app, ["run", "-c", str(config_file), "--run-id", "10", "--chunk-size", "5"]
        ).exit_code == 0

        result = runner.invoke(app, ["runs", "-c", str(config_file), "--run-id", "10"])

        assert result.exit_code == 0
        assert "COMPLETED" in result.output

    def test_unopenable_database_exits_1(
        self, tmp_path: Path, county_csv: Path, state_csv: Path
    ) -> None:
        """Test that a database path that cannot be opened is reported, not raised."""
        db_dir = tmp_path / "not-a-file"
        db_dir.mkdir()
        config = write_config(tmp_path / "job.yaml", county_csv, state_csv, db_dir)

        result = runner.invoke(app, ["run", "--config", str(config), "--run-id", "13"])

        assert result.exit_code == 1
        assert "Database error" in result.output
        assert not isinstance(result.exception, sqlite3.Error)

    def test_invalid_config_exits_1(self, tmp_path: Path) -> None:
        """Test that an invalid config value is reported."""
        config = tmp_path / "bad.yaml"
        config.write_text("batch:\n  chunk_size: 0\n", encoding="utf-8")

        result = runner.invoke(app, ["run", "--config", str(config)])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestRuns:
    """Tests for the runs command."""

    def test_lists_recorded_runs(self, config_file: Path) -> None:
        """Test that completed runs appear in the listing."""
        runner.invoke(app, ["run", "-c", str(config_file), "--run-id", "11"])

        result = runner.invoke(app, ["runs", "-c", str(config_file)])

        assert result.exit_code == 0
        assert "11" in result.output
        assert "COMPLETED" in result.output

    def test_missing_database(self, tmp_path: Path, county_csv: Path, state_csv: Path) -> None:
        """Test that listing without a database exits 1."""
        config = write_config(
            tmp_path / "job.yaml", county_csv, state_csv, tmp_path / "none.sqlite"
        )

        result = runner.invoke(app, ["runs", "-c", str(config)])

        assert result.exit_code == 1
        assert "No database" in result.output

    def test_unknown_run_id(self, config_file: Path) -> None:
        """Test that asking for an unrecorded run exits 1."""
        runner.invoke(app, ["run", "-c", str(config_file), "--run-id", "12"])

        result = runner.invoke(app, ["runs", "-c", str(config_file), "--run-id", "999"])

        assert result.exit_code == 1


def test_version() -> None:
    """Test the version command."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "covidbatch version" in result.output
