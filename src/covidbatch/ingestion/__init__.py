"""
Data ingestion layer.

Field parsing, source resolution and line-to-record reading. All raw
input passes through here before it reaches a writer.
"""

from covidbatch.ingestion.fields import parse_date, parse_int, parse_optional_int
from covidbatch.ingestion.reader import RecordReader
from covidbatch.ingestion.sources import open_source, source_for

__all__ = [
    "RecordReader",
    "open_source",
    "parse_date",
    "parse_int",
    "parse_optional_int",
    "source_for",
]
