"""
MinIO repository implementations for the fleet domain.

Each repository stores its records as JSON objects, one object per record,
in a dedicated bucket named ``<prefix>-<collection>``.
"""

from .boat import MinioBoatRepository
from .client import (
    MinioClient,
    bucket_prefix_from_env,
    build_minio_client,
    client_from_env,
)
from .load import MinioLoadRepository
from .user import MinioUserRepository

__all__ = [
    "MinioBoatRepository",
    "MinioClient",
    "MinioLoadRepository",
    "MinioUserRepository",
    "bucket_prefix_from_env",
    "build_minio_client",
    "client_from_env",
]
