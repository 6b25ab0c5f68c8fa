from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence, Tuple

from ..utils.sql import quote_ident, validate_ident
from .types import copy_cast, map_type

VIEW_SUFFIX = "_view"
TEMP_SUFFIX = "_updating"


class TableType(str, Enum):
    BASE_TABLE = "BASE TABLE"
    VIEW = "VIEW"


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    source_type: str
    target_type: str
    copy_cast: Optional[str] = None

    @classmethod
    def from_source(cls, name: str, source_type: str) -> "ColumnDescriptor":
        return cls(
            name=name,
            source_type=source_type,
            target_type=map_type(source_type),
            copy_cast=copy_cast(source_type),
        )

    @property
    def name_for_copy(self) -> str:
        quoted = quote_ident(self.name)
        if self.copy_cast:
            return f"CAST({quoted} AS {self.copy_cast}) AS {quoted}"
        return quoted

    @property
    def definition(self) -> str:
        return f"{quote_ident(self.name)} {self.target_type}"


@dataclass(frozen=True)
class TableDescriptor:
    name: str
    type: TableType = TableType.BASE_TABLE
    columns: Tuple[ColumnDescriptor, ...] = ()

    def with_columns(self, columns: Sequence[ColumnDescriptor]) -> "TableDescriptor":
        names = [column.name for column in columns]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate column names in {self.name}: {names}")
        return replace(self, columns=tuple(columns))

    @property
    def target_table_name(self) -> str:
        name = self.name
        if name.endswith(VIEW_SUFFIX) and len(name) > len(VIEW_SUFFIX):
            name = name[: -len(VIEW_SUFFIX)]
        return validate_ident(name)

    @property
    def target_temp_table_name(self) -> str:
        return validate_ident(f"{self.target_table_name}{TEMP_SUFFIX}")

    @property
    def columns_for_copy(self) -> str:
        if not self.columns:
            raise ValueError(f"Table {self.name} has no columns")
        return ", ".join(column.name_for_copy for column in self.columns)

    @property
    def columns_for_create(self) -> str:
        if not self.columns:
            raise ValueError(f"Table {self.name} has no columns")
        return ", ".join(column.definition for column in self.columns)

    def __str__(self) -> str:
        return self.name
