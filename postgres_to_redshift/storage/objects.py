from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

from minio import Minio
from minio.commonconfig import REPLACE, CopySource
from minio.error import S3Error

from ..config.model import StorageSettings

EXPORT_PREFIX = "export"
GZIP_CONTENT_TYPE = "application/gzip"
# Canned ACL applied to staged exports.
OBJECT_ACL_HEADERS = {"x-amz-acl": "authenticated-read"}


def staged_key(target_table_name: str) -> str:
    return f"{EXPORT_PREFIX}/{target_table_name}.psv.gz"


@dataclass
class ObjectStore:
    """Put/publish/delete/get by key against one S3-compatible bucket."""

    settings: StorageSettings

    def __post_init__(self) -> None:
        self.client = Minio(
            self.settings.endpoint,
            access_key=self.settings.access_key_id,
            secret_key=self.settings.secret_access_key,
            region=self.settings.region,
            secure=self.settings.secure,
        )

    @property
    def bucket(self) -> str:
        return self.settings.bucket

    def url(self, key: str) -> str:
        return f"s3://{self.bucket}/{key}"

    def put(self, key: str, data: BinaryIO, length: int) -> None:
        self.client.put_object(
            bucket_name=self.bucket,
            object_name=key,
            data=data,
            length=length,
            content_type=GZIP_CONTENT_TYPE,
            metadata=OBJECT_ACL_HEADERS,
        )

    def publish(self, temp_key: str, key: str) -> None:
        """Copy a fully written temporary object over ``key``, then drop the temporary."""
        self.client.copy_object(
            bucket_name=self.bucket,
            object_name=key,
            source=CopySource(self.bucket, temp_key),
            metadata=OBJECT_ACL_HEADERS,
            metadata_directive=REPLACE,
        )
        self.client.remove_object(bucket_name=self.bucket, object_name=temp_key)

    def delete(self, key: str) -> None:
        self.client.remove_object(bucket_name=self.bucket, object_name=key)

    def download(self, key: str, path: str) -> None:
        self.client.fget_object(bucket_name=self.bucket, object_name=key, file_path=path)

    def exists(self, key: str) -> bool:
        try:
            self.client.stat_object(bucket_name=self.bucket, object_name=key)
        except S3Error as exc:
            if exc.code in {"NoSuchKey", "NoSuchObject", "NotFound"}:
                return False
            raise
        return True
