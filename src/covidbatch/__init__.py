"""
covidbatch: NYT COVID-19 batch ingestion.

Downloads the per-county and per-state case/death feeds, parses each row
into a typed record and upserts the records into SQLite, once per run.
"""

from importlib.metadata import version

__version__ = version("covidbatch")

__all__ = ["__version__"]
