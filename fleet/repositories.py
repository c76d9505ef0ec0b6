"""
Repository interfaces defined as Protocols.

All repository operations in this module follow these principles:

- **Point operations only**: every method touches a single key (or scans a
  single bucket). No operation spans several records atomically; the
  assignment use cases keep Boat and Load consistent with compensating
  writes instead.

- **Optimistic concurrency**: every record carries a ``version`` token.
  ``save()`` is a compare-and-swap: it succeeds only when the stored version
  equals the version on the entity being saved, then bumps the version on
  both the stored record and the entity in place. A losing write raises
  ``ConcurrentModificationError`` and leaves storage untouched. Saving an
  entity with ``version == 0`` is an insert and fails if the key exists.

- **Domain Objects**: Methods accept and return domain objects or
  primitives, never storage-specific types.

Architectural Notes:

- These are pure interfaces with no implementation details
- Use case classes depend on these protocols, not concrete implementations
- Repository implementations are free to be non-deterministic (generate
  IDs, make network calls)
"""

from typing import List, Optional, Protocol, runtime_checkable

from fleet.domain import Boat, Load, User


@runtime_checkable
class BoatRepository(Protocol):
    """Stores Boat records keyed by ``boat_id``."""

    async def generate_id(self) -> str:
        """Generate a unique boat identifier."""
        ...

    async def get(self, boat_id: str) -> Optional[Boat]:
        """Retrieve a Boat by id.

        Returns:
            Boat if found, None otherwise. Missing records never raise.
        """
        ...

    async def save(self, boat: Boat) -> None:
        """Insert or overwrite a Boat using compare-and-swap on version.

        Raises:
            ConcurrentModificationError: if the stored version differs from
                ``boat.version``
        """
        ...

    async def delete(self, boat_id: str) -> bool:
        """Delete a Boat. Returns False when nothing was stored under the
        id."""
        ...

    async def list_all(self) -> List[Boat]:
        """Return every stored Boat."""
        ...

    async def find_by_name(self, name: str) -> List[Boat]:
        """Return Boats whose name matches ``name`` exactly
        (case-sensitive).

        Implementation Notes:
        - A read-then-decide helper; storage does not enforce uniqueness
        """
        ...

    async def list_by_owner(self, owner: str) -> List[Boat]:
        """Return Boats created by the given principal."""
        ...

    async def list_public(self) -> List[Boat]:
        """Return Boats flagged as public."""
        ...


@runtime_checkable
class LoadRepository(Protocol):
    """Stores Load records keyed by ``load_id``."""

    async def generate_id(self) -> str:
        """Generate a unique load identifier."""
        ...

    async def get(self, load_id: str) -> Optional[Load]:
        """Retrieve a Load by id, or None when it does not exist."""
        ...

    async def save(self, load: Load) -> None:
        """Insert or overwrite a Load using compare-and-swap on version.

        Raises:
            ConcurrentModificationError: if the stored version differs from
                ``load.version``
        """
        ...

    async def delete(self, load_id: str) -> bool:
        """Delete a Load. Returns False when nothing was stored under the
        id."""
        ...

    async def list_all(self) -> List[Load]:
        """Return every stored Load."""
        ...


@runtime_checkable
class UserRepository(Protocol):
    """Stores User records. ``sub`` is unique and used for lookups."""

    async def generate_id(self) -> str:
        """Generate a unique user identifier."""
        ...

    async def get_by_sub(self, sub: str) -> Optional[User]:
        """Retrieve a User by identity-provider subject, or None."""
        ...

    async def save(self, user: User) -> None:
        """Insert a User.

        Raises:
            ConcurrentModificationError: if a User with the same ``sub``
                already exists and the versions do not match
        """
        ...

    async def list_all(self) -> List[User]:
        """Return every registered User."""
        ...
