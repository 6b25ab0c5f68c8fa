from __future__ import annotations

from dataclasses import dataclass

from ..catalog.model import TableDescriptor
from ..errors import LoadError, TargetUnavailable
from ..utils.sql import quote_ident, quote_qualified
from .objects import staged_key
from .warehouse import Warehouse


@dataclass
class Loader:
    """Bulk-loads a staged export into a temp table and swaps it in atomically.

    The live table is only touched inside the final BEGIN/COMMIT block, so a
    failure anywhere before it leaves the previous contents authoritative.
    """

    warehouse: Warehouse
    schema: str
    logger: object

    def ensure_schema(self) -> None:
        self.warehouse.execute(f"CREATE SCHEMA IF NOT EXISTS {quote_ident(self.schema)}")

    def ensure_table(self, table: TableDescriptor) -> None:
        self.warehouse.execute(
            f"CREATE TABLE IF NOT EXISTS {quote_qualified(self.schema, table.target_table_name)} "
            f"({table.columns_for_create})"
        )

    def load(self, table: TableDescriptor) -> None:
        target = quote_qualified(self.schema, table.target_table_name)
        temp = quote_qualified(self.schema, table.target_temp_table_name)
        key = staged_key(table.target_table_name)

        self.logger.info("Importing %s", table.target_table_name)
        try:
            self.ensure_schema()
            self.ensure_table(table)
            self.warehouse.execute(f"DROP TABLE IF EXISTS {temp}")
            self.warehouse.execute(f"CREATE TABLE {temp} ({table.columns_for_create})")
            self.warehouse.bulk_load(temp, table, key)
        except TargetUnavailable:
            raise
        except Exception as exc:
            self._drop_temp(temp)
            raise LoadError(f"Failed to load {table.target_table_name}: {exc}", table=table.name) from exc

        self.promote(target, temp, table.target_table_name)

    def promote(self, target: str, temp: str, target_name: str) -> None:
        try:
            self.warehouse.execute("BEGIN")
            self.warehouse.execute(f"DROP TABLE IF EXISTS {target}")
            self.warehouse.execute(f"ALTER TABLE {temp} RENAME TO {quote_ident(target_name)}")
            self.warehouse.execute("COMMIT")
        except Exception as exc:
            self._rollback()
            raise LoadError(f"Failed to promote {target_name}: {exc}", table=target_name) from exc
        self.logger.info("Promoted %s", target)

    def _rollback(self) -> None:
        try:
            self.warehouse.execute("ROLLBACK")
        except Exception as exc:
            self.logger.warning("Rollback failed: %s", exc)

    def _drop_temp(self, temp: str) -> None:
        try:
            self.warehouse.execute(f"DROP TABLE IF EXISTS {temp}")
        except Exception as exc:
            self.logger.warning("Could not drop %s: %s", temp, exc)
