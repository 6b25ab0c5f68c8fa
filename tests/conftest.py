from __future__ import annotations

import gzip
import io
import logging
from contextlib import contextmanager
from typing import Dict, List, Optional

import pytest

from postgres_to_redshift.catalog.model import ColumnDescriptor, TableDescriptor
from postgres_to_redshift.config.model import MigrationConfig, StorageSettings
from postgres_to_redshift.storage.warehouse import DuckDBWarehouse
from postgres_to_redshift.utils.uri import ConnectionParams


class FakeSource:
    """Stands in for SourceDatabase: catalog rows plus canned COPY payloads."""

    def __init__(self) -> None:
        self.tables: List[dict] = []
        self.columns: Dict[str, List[dict]] = {}
        self.payloads: Dict[str, bytes] = {}
        self.failing: Dict[str, bytes] = {}
        self.copy_commands: List[str] = []
        self.savepoints: List[str] = []

    def add_table(self, name: str, columns, payload: bytes = b"", table_type: str = "BASE TABLE") -> None:
        self.tables.append({"table_name": name, "table_type": table_type})
        self.columns[name] = [
            {
                "column_name": column_name,
                "data_type": data_type,
                "character_maximum_length": None,
                "numeric_precision": None,
                "numeric_scale": None,
            }
            for column_name, data_type in columns
        ]
        self.payloads[name] = payload

    def fail_copy(self, name: str, partial: bytes = b"") -> None:
        self.failing[name] = partial

    def fetch_all(self, sql, params=None):
        if "information_schema.tables" in sql:
            return sorted(self.tables, key=lambda row: row["table_name"])
        _, table_name = params
        return list(self.columns[table_name])

    @contextmanager
    def savepoint(self, name):
        self.savepoints.append(name)
        yield

    def copy_to(self, sql, stream, chunk_size):
        self.copy_commands.append(sql)
        name = sql.split(" FROM ")[-1].split(")")[0].split(".")[-1].strip('"')
        if name in self.failing:
            stream.write(self.failing[name])
            raise RuntimeError(f"connection lost while reading {name}")
        payload = self.payloads[name]
        for start in range(0, len(payload), chunk_size):
            stream.write(payload[start:start + chunk_size])


class FakeStore:
    def __init__(self, settings: StorageSettings) -> None:
        self.settings = settings
        self.objects: Dict[str, bytes] = {}
        self.fail_put = False
        self.fail_publish = False

    @property
    def bucket(self) -> str:
        return self.settings.bucket

    def url(self, key: str) -> str:
        return f"s3://{self.bucket}/{key}"

    def put(self, key, data, length):
        if self.fail_put:
            raise OSError("upload interrupted")
        payload = data.read()
        assert len(payload) == length
        self.objects[key] = payload

    def publish(self, temp_key, key):
        if self.fail_publish:
            raise OSError("copy failed")
        self.objects[key] = self.objects.pop(temp_key)

    def delete(self, key):
        self.objects.pop(key, None)

    def download(self, key, path):
        with open(path, "wb") as handle:
            handle.write(self.objects[key])

    def exists(self, key):
        return key in self.objects

    def text(self, key: str) -> str:
        return gzip.decompress(self.objects[key]).decode("utf-8")


def gzipped(text: str) -> bytes:
    buffer = io.BytesIO()
    with gzip.GzipFile(fileobj=buffer, mode="wb") as handle:
        handle.write(text.encode("utf-8"))
    return buffer.getvalue()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("pipeline.test")


@pytest.fixture
def storage_settings() -> StorageSettings:
    return StorageSettings(bucket="exports", access_key_id="AKIDEXAMPLE", secret_access_key="s3cr3t")


@pytest.fixture
def config(storage_settings) -> MigrationConfig:
    return MigrationConfig(
        source_uri="postgres://reader:pw@source.internal:5432/app",
        target_uri="duckdb:///:memory:",
        target_schema="analytics",
        storage=storage_settings,
    )


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def store(storage_settings) -> FakeStore:
    return FakeStore(storage_settings)


@pytest.fixture
def warehouse(store, logger):
    params = ConnectionParams.from_uri("duckdb:///:memory:")
    with DuckDBWarehouse(params=params, store=store, logger=logger) as opened:
        yield opened


@pytest.fixture
def events_table() -> TableDescriptor:
    return TableDescriptor(name="events").with_columns(
        [ColumnDescriptor.from_source("id", "integer"), ColumnDescriptor.from_source("name", "text")]
    )


def fetch_rows(warehouse, sql: str) -> Optional[list]:
    return warehouse.connection.execute(sql).fetchall()
