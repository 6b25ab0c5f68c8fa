from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence

import psycopg2
import psycopg2.extensions
import psycopg2.extras

from ..errors import SourceUnavailable
from ..utils.uri import ConnectionParams


class SourceDatabase:
    """Read-only PostgreSQL connection holding one snapshot for the whole run."""

    def __init__(self, params: ConnectionParams, logger) -> None:
        self.params = params
        self.logger = logger
        self._connection = None

    def __enter__(self) -> "SourceDatabase":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        if self._connection is not None:
            return
        try:
            connection = psycopg2.connect(**self.params.to_psycopg2())
            connection.set_session(
                isolation_level=psycopg2.extensions.ISOLATION_LEVEL_REPEATABLE_READ,
                readonly=True,
                autocommit=False,
            )
        except psycopg2.Error as exc:
            raise SourceUnavailable(f"Cannot connect to source {self.params.describe()}: {exc}") from exc
        self._connection = connection
        self.logger.info("Connected to source %s (read-only snapshot)", self.params.describe())

    def close(self) -> None:
        if self._connection is None:
            return
        try:
            self._connection.rollback()
        except psycopg2.Error as exc:
            self.logger.warning("Could not roll back source snapshot: %s", exc)
        finally:
            self._connection.close()
            self._connection = None

    @property
    def connection(self):
        if self._connection is None:
            raise SourceUnavailable("Source connection is not open")
        return self._connection

    def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[dict]:
        try:
            with self.connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                cursor.execute(sql, params)
                return [dict(row) for row in cursor.fetchall()]
        except psycopg2.Error as exc:
            raise SourceUnavailable(f"Source query failed: {exc}") from exc

    @contextmanager
    def savepoint(self, name: str) -> Iterator[None]:
        """Scope a unit of work so its failure does not abort the snapshot."""
        with self.connection.cursor() as cursor:
            cursor.execute(f"SAVEPOINT {name}")
        try:
            yield
        except Exception:
            with self.connection.cursor() as cursor:
                cursor.execute(f"ROLLBACK TO SAVEPOINT {name}")
            raise
        with self.connection.cursor() as cursor:
            cursor.execute(f"RELEASE SAVEPOINT {name}")

    def copy_to(self, sql: str, stream, chunk_size: int) -> None:
        with self.connection.cursor() as cursor:
            cursor.copy_expert(sql, stream, size=chunk_size)
