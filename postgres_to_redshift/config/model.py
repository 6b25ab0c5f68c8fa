from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import InvalidIdentifier
from ..utils.sql import validate_ident
from ..utils.uri import POSTGRES_SCHEMES, ConnectionParams

DEFAULT_SCHEMA = "public"
DEFAULT_ENDPOINT = "s3.amazonaws.com"


class StorageSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    bucket: str
    access_key_id: str
    secret_access_key: str = Field(repr=False)
    endpoint: str = DEFAULT_ENDPOINT
    region: Optional[str] = None
    secure: bool = True

    @field_validator("bucket", "access_key_id", "secret_access_key", "endpoint")
    @classmethod
    def ensure_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class ExportSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    chunk_size: int = 1024 * 1024
    spool_max_bytes: int = 64 * 1024 * 1024

    @field_validator("chunk_size", "spool_max_bytes")
    @classmethod
    def ensure_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value


class MigrationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_uri: str = Field(repr=False)
    target_uri: str = Field(repr=False)
    source_schema: str = DEFAULT_SCHEMA
    target_schema: str = DEFAULT_SCHEMA
    tables_to_export: List[str] = Field(default_factory=list)
    iam_role: Optional[str] = None
    log_dir: str = "logs"
    storage: StorageSettings
    export: ExportSettings = Field(default_factory=ExportSettings)

    @field_validator("source_schema", "target_schema", mode="before")
    @classmethod
    def default_schema(cls, value: Optional[str]) -> str:
        if value is None or not str(value).strip():
            return DEFAULT_SCHEMA
        return str(value).strip()

    @field_validator("source_schema", "target_schema")
    @classmethod
    def validate_schema(cls, value: str) -> str:
        try:
            return validate_ident(value)
        except InvalidIdentifier as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("tables_to_export", mode="before")
    @classmethod
    def split_tables(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(item).strip() for item in value if str(item).strip()]

    @field_validator("source_uri")
    @classmethod
    def validate_source_uri(cls, value: str) -> str:
        params = ConnectionParams.from_uri(value)
        if params.scheme not in POSTGRES_SCHEMES:
            raise ValueError("source must be a PostgreSQL URI")
        return value

    @field_validator("target_uri")
    @classmethod
    def validate_target_uri(cls, value: str) -> str:
        ConnectionParams.from_uri(value)
        return value

    @field_validator("iam_role", mode="before")
    @classmethod
    def blank_iam_role(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not str(value).strip():
            return None
        return str(value).strip()

    @property
    def source_params(self) -> ConnectionParams:
        return ConnectionParams.from_uri(self.source_uri)

    @property
    def target_params(self) -> ConnectionParams:
        return ConnectionParams.from_uri(self.target_uri)

    def with_tables(self, tables: List[str]) -> "MigrationConfig":
        return self.model_copy(update={"tables_to_export": list(tables)})
