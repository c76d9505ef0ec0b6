"""
Minio implementation of BoatRepository.

Boats are stored as JSON objects in the ``<prefix>-boats`` bucket, keyed by
``boat_id``. Name, owner and visibility lookups list the bucket and filter
client side; MinIO has no secondary indexes.
"""

import logging
import uuid
from typing import List, Optional

from fleet.domain import BOATS, Boat
from fleet.repositories import BoatRepository

from .client import MinioClient, MinioRepositoryMixin


class MinioBoatRepository(BoatRepository, MinioRepositoryMixin):
    def __init__(self, client: MinioClient, bucket_prefix: str = "fleet"):
        """Initialize repository with Minio client.

        Args:
            client: MinioClient protocol implementation (real or fake)
            bucket_prefix: Prefix shared by all fleet buckets
        """
        self.client = client
        self.logger = logging.getLogger("MinioBoatRepository")
        self.bucket_name = f"{bucket_prefix}-{BOATS}"
        self.ensure_buckets_exist(self.bucket_name)

    async def generate_id(self) -> str:
        boat_id = str(uuid.uuid4())
        self.logger.debug("Generated boat ID", extra={"boat_id": boat_id})
        return boat_id

    async def get(self, boat_id: str) -> Optional[Boat]:
        return self.get_json_object(self.bucket_name, boat_id, Boat)

    async def save(self, boat: Boat) -> None:
        self.put_json_object(self.bucket_name, boat.boat_id, boat, "boat")

    async def delete(self, boat_id: str) -> bool:
        return self.remove_json_object(self.bucket_name, boat_id)

    async def list_all(self) -> List[Boat]:
        return self.list_json_objects(self.bucket_name, Boat)

    async def find_by_name(self, name: str) -> List[Boat]:
        return [b for b in await self.list_all() if b.name == name]

    async def list_by_owner(self, owner: str) -> List[Boat]:
        return [b for b in await self.list_all() if b.owner == owner]

    async def list_public(self) -> List[Boat]:
        return [b for b in await self.list_all() if b.is_public]
