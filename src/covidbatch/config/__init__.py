"""
Configuration management with typed Pydantic models.

Provides the source locators, target tables and chunking parameters
with environment-aware configuration loading.
"""

from covidbatch.config.loader import load_config
from covidbatch.config.settings import (
    BatchConfig,
    DatabaseConfig,
    DateConvention,
    JobConfig,
    LoggingConfig,
    SourcesConfig,
)

__all__ = [
    "BatchConfig",
    "DatabaseConfig",
    "DateConvention",
    "JobConfig",
    "LoggingConfig",
    "SourcesConfig",
    "load_config",
]
