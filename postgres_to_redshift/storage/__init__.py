from .objects import ObjectStore, staged_key
from .warehouse import Warehouse, RedshiftWarehouse, DuckDBWarehouse, open_warehouse
from .loader import Loader

__all__ = [
    "ObjectStore",
    "staged_key",
    "Warehouse",
    "RedshiftWarehouse",
    "DuckDBWarehouse",
    "open_warehouse",
    "Loader",
]
