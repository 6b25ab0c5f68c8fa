from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

import duckdb
import psycopg2

from ..catalog.model import TableDescriptor
from ..config.model import MigrationConfig
from ..errors import TargetUnavailable
from ..utils.sql import quote_literal
from ..utils.uri import ConnectionParams
from .copy_format import DELIMITER, transcode_to_csv
from .objects import ObjectStore


@dataclass
class Warehouse:
    """A target connection with explicit open/close, used as a context manager."""

    params: ConnectionParams
    store: ObjectStore
    logger: Any
    _connection: Any = field(default=None, init=False, repr=False)

    def __enter__(self) -> "Warehouse":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        if self._connection is not None:
            return
        self._connection = self.connect()
        self.logger.info("Connected to target %s", self.params.describe())

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    @property
    def connection(self):
        if self._connection is None:
            raise TargetUnavailable("Target connection is not open")
        return self._connection

    def connect(self):
        raise NotImplementedError

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        raise NotImplementedError

    def bulk_load(self, qualified_table: str, table: TableDescriptor, key: str) -> None:
        raise NotImplementedError


@dataclass
class RedshiftWarehouse(Warehouse):
    iam_role: Optional[str] = None

    def connect(self):
        try:
            connection = psycopg2.connect(**self.params.to_psycopg2())
        except psycopg2.Error as exc:
            raise TargetUnavailable(f"Cannot connect to target {self.params.describe()}: {exc}") from exc
        # Statements commit individually; promotion issues its own BEGIN/COMMIT.
        connection.autocommit = True
        return connection

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        with self.connection.cursor() as cursor:
            cursor.execute(sql, params)

    def authorization(self) -> str:
        if self.iam_role:
            return f"IAM_ROLE {quote_literal(self.iam_role)}"
        settings = self.store.settings
        credentials = (
            f"aws_access_key_id={settings.access_key_id};"
            f"aws_secret_access_key={settings.secret_access_key}"
        )
        return f"CREDENTIALS {quote_literal(credentials)}"

    def copy_statement(self, qualified_table: str, key: str) -> str:
        return (
            f"COPY {qualified_table} FROM {quote_literal(self.store.url(key))} "
            f"{self.authorization()} "
            f"GZIP TRUNCATECOLUMNS ESCAPE DELIMITER AS '{DELIMITER}'"
        )

    def bulk_load(self, qualified_table: str, table: TableDescriptor, key: str) -> None:
        self.execute(self.copy_statement(qualified_table, key))


@dataclass
class DuckDBWarehouse(Warehouse):
    """Local DuckDB target: fetches the staged object and loads it with read_csv."""

    def connect(self):
        try:
            return duckdb.connect(self.params.dbname)
        except duckdb.Error as exc:
            raise TargetUnavailable(f"Cannot open target {self.params.describe()}: {exc}") from exc

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        self.connection.execute(sql, params)

    def bulk_load(self, qualified_table: str, table: TableDescriptor, key: str) -> None:
        with tempfile.TemporaryDirectory(prefix="pg2rs-") as workdir:
            staged = Path(workdir) / "staged.psv.gz"
            csv_path = Path(workdir) / "staged.csv"
            self.store.download(key, str(staged))
            rows = transcode_to_csv(staged, csv_path, len(table.columns))
            if rows == 0:
                return
            names = [f"c{index}" for index in range(len(table.columns))]
            columns = ", ".join(f"'{name}': 'VARCHAR'" for name in names)
            casts = ", ".join(
                f"CAST({name} AS {column.target_type})" for name, column in zip(names, table.columns)
            )
            self.execute(
                f"INSERT INTO {qualified_table} SELECT {casts} FROM read_csv("
                f"{quote_literal(str(csv_path))}, delim=',', quote='\"', escape='\"', header=false, "
                f"auto_detect=false, allow_quoted_nulls=false, columns={{{columns}}})"
            )


def open_warehouse(config: MigrationConfig, store: ObjectStore, logger) -> Warehouse:
    params = config.target_params
    if params.scheme == "duckdb":
        return DuckDBWarehouse(params=params, store=store, logger=logger)
    return RedshiftWarehouse(params=params, store=store, logger=logger, iam_role=config.iam_role)
