from .fs import ensure_dir
from .sql import quote_ident, quote_literal, quote_qualified, validate_ident
from .uri import ConnectionParams

__all__ = [
    "ensure_dir",
    "quote_ident",
    "quote_literal",
    "quote_qualified",
    "validate_ident",
    "ConnectionParams",
]
