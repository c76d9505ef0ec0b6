"""
Memory implementation of LoadRepository.
"""

import logging
from typing import List, Optional

from fleet.domain import Load
from fleet.repositories import LoadRepository

from .base import MemoryStore

logger = logging.getLogger(__name__)


class MemoryLoadRepository(LoadRepository):
    """In-memory LoadRepository with compare-and-swap saves."""

    def __init__(self) -> None:
        logger.debug("Initializing MemoryLoadRepository")
        self._store: MemoryStore[Load] = MemoryStore("load", logger)

    async def generate_id(self) -> str:
        return self._store.new_id()

    async def get(self, load_id: str) -> Optional[Load]:
        return self._store.get(load_id)

    async def save(self, load: Load) -> None:
        self._store.put(load.load_id, load)

    async def delete(self, load_id: str) -> bool:
        return self._store.delete(load_id)

    async def list_all(self) -> List[Load]:
        return self._store.values()
