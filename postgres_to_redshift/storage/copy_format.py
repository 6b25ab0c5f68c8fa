"""PostgreSQL text COPY format, as written by ``COPY ... TO STDOUT``.

Fields are split on the delimiter, ``\\N`` is NULL, and a backslash escapes
the next character (``\\n``, ``\\t``, ``\\\\``, ``\\|`` ...). COPY TO never
emits octal or hex escapes, so those are not decoded.
"""
from __future__ import annotations

import gzip
from pathlib import Path
from typing import Iterator, List, Optional, TextIO

DELIMITER = "|"
NULL_MARKER = "\\N"
ESCAPES = {"b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t", "v": "\v"}


def decode_field(raw: str) -> Optional[str]:
    if raw == NULL_MARKER:
        return None
    if "\\" not in raw:
        return raw
    out: List[str] = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == "\\" and i + 1 < len(raw):
            nxt = raw[i + 1]
            out.append(ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def parse_line(line: str, delimiter: str = DELIMITER) -> List[Optional[str]]:
    if line.endswith("\n"):
        line = line[:-1]
    fields: List[Optional[str]] = []
    start = 0
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch == delimiter:
            fields.append(decode_field(line[start:i]))
            start = i + 1
        i += 1
    fields.append(decode_field(line[start:]))
    return fields


def iter_rows(path: Path, delimiter: str = DELIMITER) -> Iterator[List[Optional[str]]]:
    with gzip.open(path, "rt", encoding="utf-8", newline="\n") as handle:
        for line in handle:
            yield parse_line(line, delimiter)


def _csv_field(value: Optional[str]) -> str:
    if value is None:
        return ""
    return '"' + value.replace('"', '""') + '"'


def write_csv_row(handle: TextIO, row: List[Optional[str]]) -> None:
    """Write one row with every non-NULL value quoted, so NULL and '' stay distinct."""
    handle.write(",".join(_csv_field(value) for value in row))
    handle.write("\n")


def transcode_to_csv(source: Path, target: Path, column_count: int, delimiter: str = DELIMITER) -> int:
    rows = 0
    with target.open("w", encoding="utf-8", newline="") as handle:
        for row in iter_rows(source, delimiter):
            if len(row) != column_count:
                raise ValueError(
                    f"Row {rows + 1} of {source.name} has {len(row)} fields, expected {column_count}"
                )
            write_csv_row(handle, row)
            rows += 1
    return rows
