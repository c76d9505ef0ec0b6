"""
Minio implementation of LoadRepository.
"""

import logging
import uuid
from typing import List, Optional

from fleet.domain import LOADS, Load
from fleet.repositories import LoadRepository

from .client import MinioClient, MinioRepositoryMixin


class MinioLoadRepository(LoadRepository, MinioRepositoryMixin):
    """Loads stored as JSON objects in the ``<prefix>-loads`` bucket."""

    def __init__(self, client: MinioClient, bucket_prefix: str = "fleet"):
        self.client = client
        self.logger = logging.getLogger("MinioLoadRepository")
        self.bucket_name = f"{bucket_prefix}-{LOADS}"
        self.ensure_buckets_exist(self.bucket_name)

    async def generate_id(self) -> str:
        load_id = str(uuid.uuid4())
        self.logger.debug("Generated load ID", extra={"load_id": load_id})
        return load_id

    async def get(self, load_id: str) -> Optional[Load]:
        return self.get_json_object(self.bucket_name, load_id, Load)

    async def save(self, load: Load) -> None:
        self.put_json_object(self.bucket_name, load.load_id, load, "load")

    async def delete(self, load_id: str) -> bool:
        return self.remove_json_object(self.bucket_name, load_id)

    async def list_all(self) -> List[Load]:
        return self.list_json_objects(self.bucket_name, Load)
