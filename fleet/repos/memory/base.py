"""
Shared dictionary storage for the memory repositories.

Entities are copied on the way in and on the way out, so a caller holding an
entity never observes writes made by another caller until it reads again.
That mirrors the behaviour of a remote store and keeps version checks
meaningful in tests.
"""

import logging
import uuid
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

from fleet.exceptions import ConcurrentModificationError

T = TypeVar("T", bound=BaseModel)


class MemoryStore(Generic[T]):
    """Versioned key/value storage of pydantic entities."""

    def __init__(self, kind: str, logger: logging.Logger) -> None:
        self.kind = kind
        self.logger = logger
        self._records: Dict[str, T] = {}

    def new_id(self) -> str:
        record_id = str(uuid.uuid4())
        self.logger.debug(
            f"Memory{self.kind.title()}Repository: Generated id",
            extra={"kind": self.kind, "record_id": record_id},
        )
        return record_id

    def get(self, record_id: str) -> Optional[T]:
        record = self._records.get(record_id)
        if record is None:
            self.logger.debug(
                f"Memory{self.kind.title()}Repository: Record not found",
                extra={"kind": self.kind, "record_id": record_id},
            )
            return None
        return record.model_copy(deep=True)

    def put(self, record_id: str, entity: T) -> None:
        """Compare-and-swap write keyed on ``entity.version``."""
        stored = self._records.get(record_id)
        expected: int = getattr(entity, "version")
        actual = None if stored is None else getattr(stored, "version")

        if actual != (None if expected == 0 else expected):
            self.logger.warning(
                f"Memory{self.kind.title()}Repository: Version mismatch, "
                "write rejected",
                extra={
                    "kind": self.kind,
                    "record_id": record_id,
                    "expected_version": expected,
                    "actual_version": actual,
                },
            )
            raise ConcurrentModificationError(
                self.kind, record_id, expected, actual
            )

        setattr(entity, "version", expected + 1)
        self._records[record_id] = entity.model_copy(deep=True)
        self.logger.debug(
            f"Memory{self.kind.title()}Repository: Record saved",
            extra={
                "kind": self.kind,
                "record_id": record_id,
                "version": expected + 1,
            },
        )

    def delete(self, record_id: str) -> bool:
        removed = self._records.pop(record_id, None)
        self.logger.debug(
            f"Memory{self.kind.title()}Repository: Delete requested",
            extra={
                "kind": self.kind,
                "record_id": record_id,
                "existed": removed is not None,
            },
        )
        return removed is not None

    def values(self) -> List[T]:
        return [r.model_copy(deep=True) for r in self._records.values()]
