"""Pytest configuration and shared fixtures."""

import sqlite3
from collections.abc import Callable
from contextlib import nullcontext
from pathlib import Path

import pytest

from covidbatch.config import DatabaseConfig, JobConfig, SourcesConfig
from covidbatch.persistence.database import Database

COUNTY_HEADER = "date,county,state,fips,cases,deaths"
STATE_HEADER = "date,state,fips,cases,deaths"


def write_csv(path: Path, header: str, rows: list[str]) -> Path:
    """Write a header plus rows as a newline-terminated CSV file."""
    path.write_text("\n".join([header, *rows]) + "\n", encoding="utf-8")
    return path


def lines_source(lines: list[str]) -> Callable[[], nullcontext]:
    """In-memory text source; every call yields a fresh iterator."""
    return lambda: nullcontext(iter(lines))


def count_rows(db_path: Path, table: str) -> int:
    """Number of rows in a table."""
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


def fetch_rows(db_path: Path, sql: str) -> list[tuple]:
    """Run a query and return all rows."""
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(sql).fetchall()
    finally:
        conn.close()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path of a fresh SQLite database file."""
    return tmp_path / "db" / "covid19.sqlite"


@pytest.fixture
def database(db_path: Path) -> Database:
    """Database handle with its directory created."""
    db = Database(db_path)
    db.initialize([])
    return db


@pytest.fixture
def county_rows() -> list[str]:
    """Sample county rows from the first days of the NYT feed."""
    return [
        "2020-01-21,Snohomish,Washington,53061,1,0",
        "2020-01-22,Snohomish,Washington,53061,1,0",
        "2020-01-24,Cook,Illinois,17031,1,0",
        "2020-03-10,Suffolk,Massachusetts,25025,5,0",
        "2020-03-10,Unknown,Massachusetts,,5,0",
    ]


@pytest.fixture
def state_rows() -> list[str]:
    """Sample state rows."""
    return [
        "2020-03-10,Massachusetts,25,92,0",
        "2020-03-10,Washington,53,267,23",
    ]


@pytest.fixture
def county_csv(tmp_path: Path, county_rows: list[str]) -> Path:
    """County CSV file on disk."""
    return write_csv(tmp_path / "us-counties.csv", COUNTY_HEADER, county_rows)


@pytest.fixture
def state_csv(tmp_path: Path, state_rows: list[str]) -> Path:
    """State CSV file on disk."""
    return write_csv(tmp_path / "us-states.csv", STATE_HEADER, state_rows)


@pytest.fixture
def job_config(county_csv: Path, state_csv: Path, db_path: Path) -> JobConfig:
    """Job configuration pointing at the sample files."""
    return JobConfig(
        sources=SourcesConfig(by_county_url=str(county_csv), by_state_url=str(state_csv)),
        database=DatabaseConfig(path=db_path),
    )
