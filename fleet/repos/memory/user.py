"""
Memory implementation of UserRepository.

Users are keyed by their identity-provider subject so that a second
registration of the same ``sub`` collides on insert.
"""

import logging
from typing import List, Optional

from fleet.domain import User
from fleet.repositories import UserRepository

from .base import MemoryStore

logger = logging.getLogger(__name__)


class MemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        logger.debug("Initializing MemoryUserRepository")
        self._store: MemoryStore[User] = MemoryStore("user", logger)

    async def generate_id(self) -> str:
        return self._store.new_id()

    async def get_by_sub(self, sub: str) -> Optional[User]:
        return self._store.get(sub)

    async def save(self, user: User) -> None:
        self._store.put(user.sub, user)

    async def list_all(self) -> List[User]:
        return self._store.values()
