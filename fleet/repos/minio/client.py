"""
MinioClient protocol definition and shared repository helpers.

The protocol captures only the MinIO client methods the repositories use, so
that both the real ``minio.Minio`` client and the in-process fake used in
tests can be injected. ``MinioRepositoryMixin`` holds the JSON object
handling and the version-checked write shared by every repository.
"""

import io
import os
import logging
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Optional,
    Protocol,
    Type,
    TypeVar,
    runtime_checkable,
)

import urllib3
from minio import Minio
from minio.error import S3Error
from pydantic import BaseModel

from fleet.exceptions import ConcurrentModificationError

M = TypeVar("M", bound=BaseModel)

RETRY_STATUS_CODES = (500, 502, 503, 504)


@runtime_checkable
class MinioClient(Protocol):
    """
    Protocol defining the MinIO client interface used by the repositories.
    """

    def bucket_exists(self, bucket_name: str) -> bool:
        ...

    def make_bucket(self, bucket_name: str) -> None:
        ...

    def put_object(
        self,
        bucket_name: str,
        object_name: str,
        data: Any,
        length: int,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Store an object in the bucket.

        Raises:
            S3Error: If object storage fails
        """
        ...

    def get_object(self, bucket_name: str, object_name: str) -> Any:
        """Retrieve an object from the bucket.

        Returns:
            HTTPResponse containing the object data

        Raises:
            S3Error: If object retrieval fails (e.g., NoSuchKey)
        """
        ...

    def stat_object(self, bucket_name: str, object_name: str) -> Any:
        """Get object metadata without retrieving the object data.

        Raises:
            S3Error: If object doesn't exist (NoSuchKey) or other errors
        """
        ...

    def remove_object(self, bucket_name: str, object_name: str) -> None:
        ...

    def list_objects(self, bucket_name: str) -> Iterator[Any]:
        """List objects in a bucket. Items expose ``object_name``."""
        ...


def build_minio_client(
    endpoint: str,
    access_key: str,
    secret_key: str,
    secure: bool = False,
    timeout_seconds: float = 5.0,
    max_retries: int = 3,
) -> Minio:
    """Create a MinIO client whose HTTP calls are bounded in time.

    Every storage call gives up after ``timeout_seconds`` per attempt and is
    retried at most ``max_retries`` times on connection errors and 5xx
    responses, so a stalled store surfaces as an error rather than a hang.
    """
    http_client = urllib3.PoolManager(
        timeout=urllib3.Timeout(
            connect=timeout_seconds, read=timeout_seconds
        ),
        retries=urllib3.Retry(
            total=max_retries,
            backoff_factor=0.2,
            status_forcelist=list(RETRY_STATUS_CODES),
        ),
    )
    return Minio(
        endpoint,
        access_key=access_key,
        secret_key=secret_key,
        secure=secure,
        http_client=http_client,
    )


def is_not_found(error: S3Error) -> bool:
    return getattr(error, "code", None) in ("NoSuchKey", "NoSuchObject")


class MinioRepositoryMixin:
    """Helpers shared by the MinIO repositories.

    Classes using this mixin must set ``self.client`` and ``self.logger``.

    Writes are compare-and-swap on the ``version`` field: the stored object
    is read, its version compared with the entity's and the new body written
    only when they match. The read and the write happen without yielding to
    the event loop, so writers inside one process never interleave. Writers
    in separate processes can still race between the read and the write.
    """

    client: MinioClient
    logger: logging.Logger

    def ensure_buckets_exist(self, *bucket_names: str) -> None:
        for bucket_name in bucket_names:
            try:
                if not self.client.bucket_exists(bucket_name):
                    self.logger.info(
                        "Creating bucket", extra={"bucket_name": bucket_name}
                    )
                    self.client.make_bucket(bucket_name)
                else:
                    self.logger.debug(
                        "Bucket already exists",
                        extra={"bucket_name": bucket_name},
                    )
            except S3Error as e:
                self.logger.error(
                    "Failed to create bucket",
                    extra={"bucket_name": bucket_name, "error": str(e)},
                )
                raise

    def read_object(
        self, bucket_name: str, object_name: str
    ) -> Optional[bytes]:
        """Return the raw object body, or None when the key is absent."""
        try:
            response = self.client.get_object(
                bucket_name=bucket_name, object_name=object_name
            )
            try:
                return bytes(response.read())
            finally:
                response.close()
                response.release_conn()
        except S3Error as e:
            if is_not_found(e):
                return None
            self.logger.error(
                "Error reading object",
                extra={
                    "bucket_name": bucket_name,
                    "object_name": object_name,
                    "error": str(e),
                },
            )
            raise

    def get_json_object(
        self, bucket_name: str, object_name: str, model_class: Type[M]
    ) -> Optional[M]:
        data = self.read_object(bucket_name, object_name)
        if data is None:
            self.logger.debug(
                "Object not found",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            return None
        return model_class.model_validate_json(data)

    def put_json_object(
        self, bucket_name: str, object_name: str, model: M, kind: str
    ) -> None:
        """Write ``model`` if its version matches the stored version.

        A ``version`` of 0 means the object must not exist yet. On success
        the version on ``model`` is bumped to match what was written.

        Raises:
            ConcurrentModificationError: if the stored version differs
        """
        expected: int = getattr(model, "version")
        existing = self.read_object(bucket_name, object_name)
        actual: Optional[int] = None
        if existing is not None:
            stored = type(model).model_validate_json(existing)
            actual = getattr(stored, "version")

        if actual != (None if expected == 0 else expected):
            self.logger.warning(
                "Version mismatch, write rejected",
                extra={
                    "bucket_name": bucket_name,
                    "object_name": object_name,
                    "expected_version": expected,
                    "actual_version": actual,
                },
            )
            raise ConcurrentModificationError(
                kind, object_name, expected, actual
            )

        body = model.model_copy(update={"version": expected + 1})
        payload = body.model_dump_json().encode("utf-8")
        try:
            self.client.put_object(
                bucket_name=bucket_name,
                object_name=object_name,
                data=io.BytesIO(payload),
                length=len(payload),
                content_type="application/json",
                metadata={"version": str(expected + 1)},
            )
        except S3Error as e:
            self.logger.error(
                "Error writing object",
                extra={
                    "bucket_name": bucket_name,
                    "object_name": object_name,
                    "error": str(e),
                },
            )
            raise

        setattr(model, "version", expected + 1)
        self.logger.debug(
            "Object written",
            extra={
                "bucket_name": bucket_name,
                "object_name": object_name,
                "version": expected + 1,
                "payload_size_bytes": len(payload),
            },
        )

    def remove_json_object(self, bucket_name: str, object_name: str) -> bool:
        try:
            self.client.stat_object(
                bucket_name=bucket_name, object_name=object_name
            )
        except S3Error as e:
            if is_not_found(e):
                return False
            raise
        self.client.remove_object(
            bucket_name=bucket_name, object_name=object_name
        )
        self.logger.debug(
            "Object removed",
            extra={"bucket_name": bucket_name, "object_name": object_name},
        )
        return True

    def list_json_objects(
        self, bucket_name: str, model_class: Type[M]
    ) -> List[M]:
        """Read every object in the bucket.

        Objects removed between the listing and the read are skipped.
        """
        results: List[M] = []
        for item in self.client.list_objects(bucket_name=bucket_name):
            record = self.get_json_object(
                bucket_name, item.object_name, model_class
            )
            if record is not None:
                results.append(record)
        return results


def client_from_env() -> Minio:
    """Build the MinIO client from the process environment."""
    return build_minio_client(
        endpoint=os.environ.get("MINIO_ENDPOINT", "localhost:9000"),
        access_key=os.environ.get("MINIO_ROOT_USER", "minioadmin"),
        secret_key=os.environ.get("MINIO_ROOT_PASSWORD", "minioadmin"),
        secure=os.environ.get("MINIO_SECURE", "false").lower() == "true",
        timeout_seconds=float(
            os.environ.get("STORAGE_TIMEOUT_SECONDS", "5")
        ),
        max_retries=int(os.environ.get("STORAGE_MAX_RETRIES", "3")),
    )


def bucket_prefix_from_env() -> str:
    return os.environ.get("FLEET_BUCKET_PREFIX", "fleet")
