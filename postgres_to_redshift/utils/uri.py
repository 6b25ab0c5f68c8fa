from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlparse

POSTGRES_SCHEMES = {"postgres", "postgresql", "redshift"}


@dataclass(frozen=True)
class ConnectionParams:
    scheme: str
    host: Optional[str]
    port: Optional[int]
    user: Optional[str]
    password: Optional[str]
    dbname: str

    @classmethod
    def from_uri(cls, uri: str) -> "ConnectionParams":
        parsed = urlparse(uri)
        scheme = parsed.scheme.lower()
        if scheme == "duckdb":
            # duckdb:///relative.duckdb, duckdb:////abs/path.duckdb, duckdb:///:memory:
            return cls(scheme=scheme, host=None, port=None, user=None, password=None, dbname=parsed.path[1:] or ":memory:")
        if scheme not in POSTGRES_SCHEMES:
            raise ValueError(f"Unsupported connection scheme: {parsed.scheme!r}")
        return cls(
            scheme=scheme,
            host=parsed.hostname,
            port=parsed.port,
            user=unquote(parsed.username) if parsed.username else None,
            password=unquote(parsed.password) if parsed.password else None,
            dbname=parsed.path[1:],
        )

    def to_psycopg2(self) -> Dict[str, Any]:
        params = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "dbname": self.dbname,
        }
        return {key: value for key, value in params.items() if value is not None}

    def describe(self) -> str:
        if self.scheme == "duckdb":
            return f"duckdb:{self.dbname}"
        return f"{self.scheme}://{self.host}:{self.port or ''}/{self.dbname}"
