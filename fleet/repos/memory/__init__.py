"""
Memory repository implementations for the fleet domain.

These implementations use Python dictionaries for storage and are ideal for
testing scenarios and local development where MinIO is not available. They
honour the same compare-and-swap contract as the MinIO repositories.
"""

from .boat import MemoryBoatRepository
from .load import MemoryLoadRepository
from .user import MemoryUserRepository

__all__ = [
    "MemoryBoatRepository",
    "MemoryLoadRepository",
    "MemoryUserRepository",
]
