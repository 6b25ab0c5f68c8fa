from __future__ import annotations

from typing import Collection, List, Optional

from .model import TableType

RESERVED_PREFIX = "pg_"


def parse_inclusion_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def in_scope(table_name: str, table_type: TableType, inclusion_list: Collection[str]) -> bool:
    if table_name.startswith(RESERVED_PREFIX):
        return False
    if not inclusion_list:
        return True
    return table_name in inclusion_list
