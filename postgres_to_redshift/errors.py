from __future__ import annotations

from typing import Optional


class MigrationError(RuntimeError):
    def __init__(self, message: str, table: Optional[str] = None) -> None:
        super().__init__(message)
        self.table = table


class SourceUnavailable(MigrationError):
    pass


class TargetUnavailable(MigrationError):
    pass


class ExportError(MigrationError):
    pass


class LoadError(MigrationError):
    pass


class InvalidIdentifier(MigrationError, ValueError):
    pass


class TypeMappingGap(UserWarning):
    def __init__(self, table: str, column: str, source_type: str, fallback: str) -> None:
        super().__init__(
            f"Unmapped source type {source_type!r} for {table}.{column}; using {fallback}"
        )
        self.table = table
        self.column = column
        self.source_type = source_type
        self.fallback = fallback
