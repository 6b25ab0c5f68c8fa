from .model import ColumnDescriptor, TableDescriptor, TableType
from .types import FALLBACK_TYPE, copy_cast, is_mapped, map_type
from .filters import in_scope, parse_inclusion_list
from .reader import CatalogReader

__all__ = [
    "ColumnDescriptor",
    "TableDescriptor",
    "TableType",
    "FALLBACK_TYPE",
    "copy_cast",
    "is_mapped",
    "map_type",
    "in_scope",
    "parse_inclusion_list",
    "CatalogReader",
]
