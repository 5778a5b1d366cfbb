"""
ETL pipeline for the NYT COVID-19 feeds.

Wires the county and state datasets into one job.
"""

from covidbatch.etl.pipeline import build_job, run_etl

__all__ = ["build_job", "run_etl"]
