from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .catalog.model import TableDescriptor
from .catalog.reader import CatalogReader
from .config.model import MigrationConfig
from .core.context import RunContext
from .errors import InvalidIdentifier, LoadError, MigrationError, SourceUnavailable, TargetUnavailable
from .extract.exporter import Exporter
from .extract.source import SourceDatabase
from .storage.loader import Loader
from .storage.objects import ObjectStore, staged_key
from .storage.warehouse import Warehouse, open_warehouse

EXPORTED = "exported"
LOADED = "loaded"
FAILED = "failed"


@dataclass
class TableResult:
    table: str
    status: str
    key: Optional[str] = None
    error: Optional[str] = None
    seconds: float = 0.0


@dataclass
class PipelineResult:
    run_id: str
    tables: List[TableResult] = field(default_factory=list)

    @property
    def failed(self) -> List[TableResult]:
        return [result for result in self.tables if result.status == FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed


class Pipeline:
    """Discovers in-scope tables and exports then loads them one at a time.

    A failure on one table is recorded and the next table is still attempted;
    only an unreachable source or target stops the run.
    """

    def __init__(
        self,
        config: MigrationConfig,
        context: RunContext,
        source: SourceDatabase,
        warehouse: Optional[Warehouse],
        store: ObjectStore,
        logger,
    ) -> None:
        self.config = config
        self.context = context
        self.store = store
        self.logger = logger
        self.catalog = CatalogReader(source, config.source_schema, logger)
        self.exporter = Exporter(source, store, config.source_schema, config.export, context.run_id, logger)
        self.loader = Loader(warehouse, config.target_schema, logger) if warehouse is not None else None

    def discover(self) -> List[TableDescriptor]:
        return self.catalog.discover(self.config.tables_to_export)

    def run(self) -> PipelineResult:
        self._ensure_schema()
        return self._each_table(self._export_and_load)

    def export_only(self) -> PipelineResult:
        return self._each_table(self._export)

    def load_only(self) -> PipelineResult:
        self._ensure_schema()
        return self._each_table(self._load_staged)

    def _ensure_schema(self) -> None:
        try:
            self.loader.ensure_schema()
        except MigrationError:
            raise
        except Exception as exc:
            raise TargetUnavailable(f"Cannot create schema {self.config.target_schema}: {exc}") from exc

    def _export_and_load(self, table: TableDescriptor) -> TableResult:
        try:
            self.loader.ensure_table(table)
        except MigrationError:
            raise
        except Exception as exc:
            raise LoadError(f"Cannot create {table.target_table_name}: {exc}", table=table.name) from exc
        key = self.exporter.export(table)
        self.loader.load(table)
        return TableResult(table=table.name, status=LOADED, key=key)

    def _export(self, table: TableDescriptor) -> TableResult:
        key = self.exporter.export(table)
        return TableResult(table=table.name, status=EXPORTED, key=key)

    def _load_staged(self, table: TableDescriptor) -> TableResult:
        key = staged_key(table.target_table_name)
        try:
            staged = self.store.exists(key)
        except Exception as exc:
            raise LoadError(f"Cannot check staged export at {key}: {exc}", table=table.name) from exc
        if not staged:
            raise LoadError(f"No staged export at {key}", table=table.name)
        self.loader.load(table)
        return TableResult(table=table.name, status=LOADED, key=key)

    def _each_table(self, step: Callable[[TableDescriptor], TableResult]) -> PipelineResult:
        result = PipelineResult(run_id=self.context.run_id)
        tables = self.discover()
        rejected = find_name_collisions(tables)

        for table in tables:
            start = time.time()
            if table.name in rejected:
                self.logger.error("Skipping %s: %s", table.name, rejected[table.name])
                result.tables.append(TableResult(table=table.name, status=FAILED, error=rejected[table.name]))
                continue
            try:
                outcome = step(table)
            except (SourceUnavailable, TargetUnavailable):
                raise
            except MigrationError as exc:
                self.logger.error("Table %s failed: %s", table.name, exc)
                outcome = TableResult(table=table.name, status=FAILED, error=str(exc))
            outcome.seconds = time.time() - start
            if outcome.status != FAILED:
                self.logger.info("Table %s %s in %.1fs", table.name, outcome.status, outcome.seconds)
            result.tables.append(outcome)

        self.logger.info(
            "Run %s finished: %s tables, %s failed",
            self.context.run_id,
            len(result.tables),
            len(result.failed),
        )
        return result


def find_name_collisions(tables: List[TableDescriptor]) -> dict:
    """Map table name -> reason for tables whose target names clash or are invalid."""
    rejected = {}
    targets = {}
    for table in tables:
        try:
            targets[table.name] = (table.target_table_name, table.target_temp_table_name)
        except InvalidIdentifier as exc:
            rejected[table.name] = str(exc)

    counts = Counter(target for target, _ in targets.values())
    for name, (target, temp) in targets.items():
        if counts[target] > 1:
            rejected[name] = f"target table {target} is produced by more than one source table"
        elif temp in counts:
            rejected[name] = f"temporary table {temp} would collide with a migrated table"
    return rejected


def discover_tables(config: MigrationConfig, logger) -> List[TableDescriptor]:
    with SourceDatabase(config.source_params, logger) as source:
        return CatalogReader(source, config.source_schema, logger).discover(config.tables_to_export)


def run_pipeline(config: MigrationConfig, context: RunContext, logger, mode: str = "run") -> PipelineResult:
    store = ObjectStore(config.storage)
    with SourceDatabase(config.source_params, logger) as source:
        if mode == "export":
            return Pipeline(config, context, source, None, store, logger).export_only()
        with open_warehouse(config, store, logger) as warehouse:
            pipeline = Pipeline(config, context, source, warehouse, store, logger)
            if mode == "load":
                return pipeline.load_only()
            return pipeline.run()
