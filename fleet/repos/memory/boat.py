"""
Memory implementation of BoatRepository.

Boats are kept in a dictionary keyed by ``boat_id``. Lookups by name, owner
and visibility scan the dictionary, which is fine for the data volumes used
in tests and local development.
"""

import logging
from typing import List, Optional

from fleet.domain import Boat
from fleet.repositories import BoatRepository

from .base import MemoryStore

logger = logging.getLogger(__name__)


class MemoryBoatRepository(BoatRepository):
    """In-memory BoatRepository with compare-and-swap saves."""

    def __init__(self) -> None:
        logger.debug("Initializing MemoryBoatRepository")
        self._store: MemoryStore[Boat] = MemoryStore("boat", logger)

    async def generate_id(self) -> str:
        return self._store.new_id()

    async def get(self, boat_id: str) -> Optional[Boat]:
        return self._store.get(boat_id)

    async def save(self, boat: Boat) -> None:
        self._store.put(boat.boat_id, boat)

    async def delete(self, boat_id: str) -> bool:
        return self._store.delete(boat_id)

    async def list_all(self) -> List[Boat]:
        return self._store.values()

    async def find_by_name(self, name: str) -> List[Boat]:
        return [b for b in self._store.values() if b.name == name]

    async def list_by_owner(self, owner: str) -> List[Boat]:
        return [b for b in self._store.values() if b.owner == owner]

    async def list_public(self) -> List[Boat]:
        return [b for b in self._store.values() if b.is_public]
