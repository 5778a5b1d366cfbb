"""
SQLite connection provisioning.

Every unit of work gets its own connection, opened for the duration of
one transaction and closed on both success and failure.
"""

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import closing, contextmanager
from pathlib import Path

from covidbatch.utils.logging import get_logger

log = get_logger(__name__)


class Database:
    """
    Handle on a SQLite database file.

    Holds no open connection itself; callers acquire one per transaction.
    """

    def __init__(self, path: Path, *, timeout: float = 30.0) -> None:
        """
        Initialize database handle.

        Args:
            path: Database file. Parent directories are created on initialize().
            timeout: Seconds to wait on a locked database.
        """
        self.path = path
        self.timeout = timeout

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Open a connection and run the block in one transaction.

        Commits when the block exits normally and rolls back when it raises.
        The connection is closed either way.
        """
        with closing(sqlite3.connect(self.path, timeout=self.timeout)) as conn:
            with conn:
                yield conn

    def initialize(self, ddl: Iterable[str]) -> None:
        """
        Create missing tables.

        Args:
            ddl: CREATE TABLE IF NOT EXISTS statements.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.transaction() as conn:
            for statement in ddl:
                conn.execute(statement)
        log.debug("Database initialized", path=str(self.path))
