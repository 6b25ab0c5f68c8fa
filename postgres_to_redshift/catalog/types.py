"""PostgreSQL to Redshift column type mapping.

``map_type`` is total: any type string outside the lookup tables maps to
``FALLBACK_TYPE`` so a single odd column never stops a table from loading.
"""
from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

MAX_VARCHAR_BYTES = 65535
MAX_DECIMAL_PRECISION = 38
# Redshift VARCHAR lengths are bytes, PostgreSQL lengths are characters.
BYTES_PER_CHAR = 4

FALLBACK_TYPE = f"CHARACTER VARYING({MAX_VARCHAR_BYTES})"
TEXT_CAST = f"character varying({MAX_VARCHAR_BYTES})"

SIMPLE_TYPES: Dict[str, str] = {
    "smallint": "SMALLINT",
    "int2": "SMALLINT",
    "smallserial": "SMALLINT",
    "integer": "INTEGER",
    "int": "INTEGER",
    "int4": "INTEGER",
    "serial": "INTEGER",
    "bigint": "BIGINT",
    "int8": "BIGINT",
    "bigserial": "BIGINT",
    "real": "REAL",
    "float4": "REAL",
    "double precision": "DOUBLE PRECISION",
    "float8": "DOUBLE PRECISION",
    "float": "DOUBLE PRECISION",
    "boolean": "BOOLEAN",
    "bool": "BOOLEAN",
    "date": "DATE",
    "time": "TIME",
    "time without time zone": "TIME",
    "time with time zone": "TIMETZ",
    "timetz": "TIMETZ",
    "timestamp": "TIMESTAMP",
    "timestamp without time zone": "TIMESTAMP",
    "timestamp with time zone": "TIMESTAMPTZ",
    "timestamptz": "TIMESTAMPTZ",
    "money": "DECIMAL(19,2)",
    "uuid": "CHARACTER VARYING(36)",
}

# No Redshift counterpart; loaded as their text representation.
TEXT_TYPES = {
    "text",
    "citext",
    "name",
    "json",
    "jsonb",
    "xml",
    "bytea",
    "oid",
    "interval",
    "inet",
    "cidr",
    "macaddr",
    "macaddr8",
    "tsvector",
    "tsquery",
    "bit",
    "bit varying",
    "varbit",
    "point",
    "line",
    "lseg",
    "box",
    "path",
    "polygon",
    "circle",
    "array",
    "user-defined",
}

VARCHAR_TYPES = {"character varying", "varchar", "character", "char", "bpchar"}
DECIMAL_TYPES = {"numeric", "decimal"}

COPY_CASTS: Dict[str, str] = {
    "money": "numeric(19,2)",
    "uuid": "character varying(36)",
}

_ARGS_RE = re.compile(r"\(([^)]*)\)")


def parse_type(source_type: str) -> Tuple[str, Tuple[int, ...]]:
    """Split ``numeric(12, 2)`` into ``("numeric", (12, 2))``.

    Qualifiers written after the parentheses stay in the base name, so
    ``timestamp(3) with time zone`` parses as ``timestamp with time zone``.
    Array suffixes (``integer[]``) collapse to the ``array`` base.
    """
    text = (source_type or "").strip().lower()
    if text.endswith("[]"):
        return "array", ()
    args: Tuple[int, ...] = ()
    match = _ARGS_RE.search(text)
    if match:
        try:
            args = tuple(int(part) for part in match.group(1).split(",") if part.strip())
        except ValueError:
            args = ()
        text = text[: match.start()] + " " + text[match.end():]
    return " ".join(text.split()), args


def _varchar(args: Tuple[int, ...]) -> str:
    if not args:
        return FALLBACK_TYPE
    return f"CHARACTER VARYING({min(args[0] * BYTES_PER_CHAR, MAX_VARCHAR_BYTES)})"


def _decimal(args: Tuple[int, ...]) -> str:
    if not args:
        return f"DECIMAL({MAX_DECIMAL_PRECISION},10)"
    precision = min(args[0], MAX_DECIMAL_PRECISION)
    scale = max(0, min(args[1], precision)) if len(args) > 1 else 0
    return f"DECIMAL({precision},{scale})"


def is_mapped(source_type: str) -> bool:
    base, _ = parse_type(source_type)
    return base in SIMPLE_TYPES or base in TEXT_TYPES or base in VARCHAR_TYPES or base in DECIMAL_TYPES


def map_type(source_type: str) -> str:
    base, args = parse_type(source_type)
    if base in SIMPLE_TYPES:
        return SIMPLE_TYPES[base]
    if base in VARCHAR_TYPES:
        return _varchar(args)
    if base in DECIMAL_TYPES:
        return _decimal(args)
    return FALLBACK_TYPE


def copy_cast(source_type: str) -> Optional[str]:
    """Source-side cast for the export projection, or None to export as-is."""
    base, args = parse_type(source_type)
    if base in COPY_CASTS:
        return COPY_CASTS[base]
    if base in VARCHAR_TYPES:
        return None if args else TEXT_CAST
    if base in TEXT_TYPES or not is_mapped(source_type):
        return TEXT_CAST
    return None
