"""
Minio implementation of UserRepository.

Users are keyed by ``sub`` so that the existence check on first login is a
single object read.
"""

import logging
import uuid
from typing import List, Optional

from fleet.domain import USERS, User
from fleet.repositories import UserRepository

from .client import MinioClient, MinioRepositoryMixin


class MinioUserRepository(UserRepository, MinioRepositoryMixin):
    def __init__(self, client: MinioClient, bucket_prefix: str = "fleet"):
        self.client = client
        self.logger = logging.getLogger("MinioUserRepository")
        self.bucket_name = f"{bucket_prefix}-{USERS}"
        self.ensure_buckets_exist(self.bucket_name)

    async def generate_id(self) -> str:
        return str(uuid.uuid4())

    async def get_by_sub(self, sub: str) -> Optional[User]:
        return self.get_json_object(self.bucket_name, sub, User)

    async def save(self, user: User) -> None:
        self.put_json_object(self.bucket_name, user.sub, user, "user")

    async def list_all(self) -> List[User]:
        return self.list_json_objects(self.bucket_name, User)
