"""
Delimited record reader.

Reads a comma-delimited text source line by line, skips the header and
maps each remaining line to a typed record.
"""

from collections.abc import Callable, Iterator, Sequence
from typing import Generic, TypeVar

from covidbatch.errors import ParseError, RowParseError, RowShapeError
from covidbatch.ingestion.sources import TextSource
from covidbatch.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

RowMapper = Callable[[Sequence[str]], T]


class RecordReader(Generic[T]):
    """
    Lazy, restartable reader of typed records.

    Every call to ``iter()`` reopens the source and starts again from the
    first line; there is no offset-based resume within a file.

    The delimiter is a plain comma with no quoting support, so fields
    containing commas are rejected as malformed rows.
    """

    def __init__(
        self,
        source: TextSource,
        name: str,
        columns: Sequence[str],
        mapper: RowMapper[T],
        *,
        lines_to_skip: int = 1,
        delimiter: str = ",",
    ) -> None:
        """
        Initialize record reader.

        Args:
            source: Opener returning a fresh line stream per call.
            name: Reader name used in logs and error messages.
            columns: Expected column names, in file order.
            mapper: Converts the positional field values of one row to a record.
            lines_to_skip: Leading lines to ignore (the header).
            delimiter: Field delimiter.
        """
        self.source = source
        self.name = name
        self.columns = tuple(columns)
        self.mapper = mapper
        self.lines_to_skip = lines_to_skip
        self.delimiter = delimiter

    def __iter__(self) -> Iterator[T]:
        """
        Yield one record per data line.

        Blank lines at the end of the source are ignored. A blank line
        followed by more data is a malformed row and raises RowShapeError.
        """
        n_records = 0
        first_blank: int | None = None
        with self.source() as lines:
            for line_number, line in enumerate(lines, start=1):
                if line_number <= self.lines_to_skip:
                    log.debug("Skipping header", reader=self.name, line=line)
                    continue
                if not line.strip():
                    if first_blank is None:
                        first_blank = line_number
                    continue
                if first_blank is not None:
                    raise RowShapeError(
                        source=self.name,
                        line_number=first_blank,
                        line="",
                        expected=len(self.columns),
                        actual=1,
                    )
                yield self.map_line(line_number, line)
                n_records += 1

        log.info("Source exhausted", reader=self.name, records=n_records)

    def map_line(self, line_number: int, line: str) -> T:
        """
        Tokenize and map a single line.

        Raises:
            RowShapeError: If the field count differs from the column layout.
            RowParseError: If the mapper rejects a field value.
        """
        fields = [field.strip() for field in line.split(self.delimiter)]

        if len(fields) != len(self.columns):
            raise RowShapeError(
                source=self.name,
                line_number=line_number,
                line=line,
                expected=len(self.columns),
                actual=len(fields),
            )

        try:
            return self.mapper(fields)
        except ParseError as e:
            raise RowParseError(
                str(e), source=self.name, line_number=line_number, line=line
            ) from e
