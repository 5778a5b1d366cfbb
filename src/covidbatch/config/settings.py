"""
Typed configuration models using Pydantic.

All configuration is defined here with explicit typing and validation.
Source locators, table names and chunking are never hardcoded in the
processing code.
"""

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BY_COUNTY_URL = (
    "https://raw.githubusercontent.com/nytimes/covid-19-data/master/us-counties.csv"
)
DEFAULT_BY_STATE_URL = (
    "https://raw.githubusercontent.com/nytimes/covid-19-data/master/us-states.csv"
)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class DateConvention(str, Enum):
    """How the month field of a ``Y-M-D`` date string is interpreted."""

    CALENDAR = "calendar"  # month is 1-based, strict validation
    ZERO_BASED_MONTH = "zero_based_month"  # month is a 0-based index, lenient rollover


class SourcesConfig(BaseModel):
    """Locations of the two input feeds."""

    model_config = ConfigDict(frozen=True)

    by_county_url: str = Field(
        default=DEFAULT_BY_COUNTY_URL,
        description="URL, file:// URL or filesystem path of the per-county CSV",
    )
    by_state_url: str = Field(
        default=DEFAULT_BY_STATE_URL,
        description="URL, file:// URL or filesystem path of the per-state CSV",
    )
    timeout_seconds: float = Field(
        default=60.0, gt=0, description="HTTP connect/read timeout"
    )

    @field_validator("by_county_url", "by_state_url")
    @classmethod
    def validate_locator(cls, v: str) -> str:
        """Reject blank locators."""
        if not v.strip():
            msg = "Source locator must not be empty"
            raise ValueError(msg)
        return v.strip()


class DatabaseConfig(BaseModel):
    """Target database and table names."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(
        default=Path("./data/covid19.sqlite"), description="SQLite database file"
    )
    counties_table: str = Field(default="covid19_usa_by_counties")
    states_table: str = Field(default="covid19_usa_by_states")

    @field_validator("counties_table", "states_table")
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Table names are interpolated into SQL, so only plain identifiers pass."""
        if not _IDENTIFIER.match(v):
            msg = f"Table name must be a plain SQL identifier, got: {v!r}"
            raise ValueError(msg)
        return v


class BatchConfig(BaseModel):
    """Chunking and parsing behaviour of the job."""

    model_config = ConfigDict(frozen=True)

    job_name: str = Field(default="nytimes", min_length=1)
    chunk_size: int = Field(default=1000, ge=1, description="Records per write batch")
    date_convention: DateConvention = Field(default=DateConvention.CALENDAR)


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_output: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Ensure the level is one the logging module knows."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {v!r}"
            raise ValueError(msg)
        return level


class JobConfig(BaseModel):
    """
    Complete job configuration.

    Aggregates source, database, batch and logging settings.
    """

    model_config = ConfigDict(frozen=True)

    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def job_name(self) -> str:
        """Shortcut for batch.job_name."""
        return self.batch.job_name

    @property
    def chunk_size(self) -> int:
        """Shortcut for batch.chunk_size."""
        return self.batch.chunk_size
