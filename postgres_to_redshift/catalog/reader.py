from __future__ import annotations

from typing import Collection, List, Tuple

from ..errors import TypeMappingGap
from ..extract.source import SourceDatabase
from .filters import in_scope
from .model import ColumnDescriptor, TableDescriptor, TableType
from .types import FALLBACK_TYPE, is_mapped

TABLES_SQL = """
    SELECT table_name, table_type
    FROM information_schema.tables
    WHERE table_schema = %s AND table_type IN ('BASE TABLE', 'VIEW')
    ORDER BY table_name
"""

COLUMNS_SQL = """
    SELECT column_name, data_type, character_maximum_length, numeric_precision, numeric_scale
    FROM information_schema.columns
    WHERE table_schema = %s AND table_name = %s
    ORDER BY ordinal_position
"""

PRECISION_TYPES = {"numeric", "decimal"}
LENGTH_TYPES = {"character varying", "character"}


def source_type_of(row: dict) -> str:
    data_type = row["data_type"]
    if data_type in LENGTH_TYPES and row.get("character_maximum_length"):
        return f"{data_type}({row['character_maximum_length']})"
    if data_type in PRECISION_TYPES and row.get("numeric_precision") is not None:
        return f"{data_type}({row['numeric_precision']},{row.get('numeric_scale') or 0})"
    return data_type


class CatalogReader:
    def __init__(self, source: SourceDatabase, schema: str, logger) -> None:
        self.source = source
        self.schema = schema
        self.logger = logger

    def list_tables(self) -> List[TableDescriptor]:
        rows = self.source.fetch_all(TABLES_SQL, (self.schema,))
        return [TableDescriptor(name=row["table_name"], type=TableType(row["table_type"])) for row in rows]

    def load_columns(self, table: TableDescriptor) -> Tuple[ColumnDescriptor, ...]:
        rows = self.source.fetch_all(COLUMNS_SQL, (self.schema, table.name))
        columns = []
        for row in rows:
            source_type = source_type_of(row)
            if not is_mapped(source_type):
                gap = TypeMappingGap(table.name, row["column_name"], source_type, FALLBACK_TYPE)
                self.logger.warning("%s", gap)
            columns.append(ColumnDescriptor.from_source(row["column_name"], source_type))
        return tuple(columns)

    def discover(self, inclusion_list: Collection[str]) -> List[TableDescriptor]:
        discovered = self.list_tables()
        tables = []
        for table in discovered:
            if not in_scope(table.name, table.type, inclusion_list):
                continue
            tables.append(table.with_columns(self.load_columns(table)))
        self.logger.info(
            "Discovered %s tables in %s, %s in scope", len(discovered), self.schema, len(tables)
        )
        missing = sorted(set(inclusion_list) - {table.name for table in tables})
        if missing:
            self.logger.warning("Requested tables not found in source: %s", ", ".join(missing))
        return tables
