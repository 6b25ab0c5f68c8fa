from __future__ import annotations

import gzip
from tempfile import SpooledTemporaryFile

from ..catalog.model import TableDescriptor
from ..config.model import ExportSettings
from ..errors import ExportError
from ..storage.copy_format import DELIMITER
from ..storage.objects import ObjectStore, staged_key
from ..utils.sql import quote_qualified
from .source import SourceDatabase


def copy_command(table: TableDescriptor, schema: str) -> str:
    return (
        f"COPY (SELECT {table.columns_for_copy} FROM {quote_qualified(schema, table.name)}) "
        f"TO STDOUT WITH DELIMITER '{DELIMITER}'"
    )


class Exporter:
    def __init__(
        self,
        source: SourceDatabase,
        store: ObjectStore,
        schema: str,
        settings: ExportSettings,
        run_id: str,
        logger,
    ) -> None:
        self.source = source
        self.store = store
        self.schema = schema
        self.settings = settings
        self.run_id = run_id
        self.logger = logger

    def export(self, table: TableDescriptor) -> str:
        key = staged_key(table.target_table_name)
        temp_key = f"{key}.{self.run_id}.tmp"

        self.logger.info("Downloading %s", table.name)
        with SpooledTemporaryFile(max_size=self.settings.spool_max_bytes) as buffer:
            try:
                command = copy_command(table, self.schema)
                with self.source.savepoint("export_table"):
                    with gzip.GzipFile(fileobj=buffer, mode="wb") as compressor:
                        self.source.copy_to(command, compressor, self.settings.chunk_size)
            except Exception as exc:
                raise ExportError(f"Failed to read {table.name}: {exc}", table=table.name) from exc

            size = buffer.tell()
            buffer.seek(0)
            self.logger.info("Uploading %s (%s bytes compressed)", key, size)
            try:
                self.store.put(temp_key, buffer, size)
                self.store.publish(temp_key, key)
            except Exception as exc:
                self._discard(temp_key)
                raise ExportError(f"Failed to stage {table.name} at {key}: {exc}", table=table.name) from exc

        return key

    def _discard(self, temp_key: str) -> None:
        try:
            self.store.delete(temp_key)
        except Exception as exc:
            self.logger.warning("Could not remove temporary object %s: %s", temp_key, exc)
