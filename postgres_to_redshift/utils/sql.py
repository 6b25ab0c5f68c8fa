from __future__ import annotations

import re

from ..errors import InvalidIdentifier

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")
MAX_IDENTIFIER_BYTES = 127


def validate_ident(value: str) -> str:
    if not isinstance(value, str) or not IDENTIFIER_PATTERN.match(value):
        raise InvalidIdentifier(f"Identifier not allowed: {value!r}")
    if len(value.encode("utf-8")) > MAX_IDENTIFIER_BYTES:
        raise InvalidIdentifier(f"Identifier longer than {MAX_IDENTIFIER_BYTES} bytes: {value!r}")
    return value


def quote_ident(value: str) -> str:
    return '"' + validate_ident(value).replace('"', '""') + '"'


def quote_qualified(schema: str, name: str) -> str:
    return f"{quote_ident(schema)}.{quote_ident(name)}"


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"
