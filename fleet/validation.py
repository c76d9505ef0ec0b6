"""
Guards applied where fleet wires its pieces together and where requests
enter the use cases: repository protocol checks, record ownership and
payload key normalisation.
"""

import logging
from typing import Any, Mapping, Type, TypeVar

from fleet.exceptions import NotOwnerError

logger = logging.getLogger(__name__)

P = TypeVar("P")

UNRECOGNIZED_ATTRIBUTES_REASON = (
    "The request object contains attributes that are not allowed."
)


class RepositoryValidationError(Exception):
    """A storage adapter handed to a use case lacks a required method."""


def validate_repository_protocol(
    repository: object, protocol: Type[P]
) -> None:
    """Fail fast when ``repository`` does not structurally match
    ``protocol``.

    Use cases call this from their constructors, so a miswired backend is
    reported at startup rather than on the first request that needs the
    missing method.
    """
    repo_name = type(repository).__name__
    if isinstance(repository, protocol):
        logger.debug(
            "Storage adapter accepted",
            extra={"repository": repo_name, "protocol": protocol.__name__},
        )
        return

    logger.error(
        "Storage adapter rejected",
        extra={"repository": repo_name, "protocol": protocol.__name__},
    )
    raise RepositoryValidationError(
        f"{repo_name} cannot be used as a {protocol.__name__}"
    )


def ensure_repository_protocol(repository: object, protocol: Type[P]) -> P:
    """Check ``repository`` and hand it back typed as ``protocol``."""
    validate_repository_protocol(repository, protocol)
    return repository  # type: ignore[return-value]


def ensure_boat_repository(repo: object) -> Any:
    """Ensure an object satisfies the BoatRepository protocol"""
    from fleet.repositories import BoatRepository

    return ensure_repository_protocol(repo, BoatRepository)  # type: ignore[type-abstract]


def ensure_load_repository(repo: object) -> Any:
    """Ensure an object satisfies the LoadRepository protocol"""
    from fleet.repositories import LoadRepository

    return ensure_repository_protocol(repo, LoadRepository)  # type: ignore[type-abstract]


def ensure_user_repository(repo: object) -> Any:
    """Ensure an object satisfies the UserRepository protocol"""
    from fleet.repositories import UserRepository

    return ensure_repository_protocol(repo, UserRepository)  # type: ignore[type-abstract]


def ensure_owner(kind: str, owner: Any, principal_sub: str) -> None:
    """Raise NotOwnerError unless ``principal_sub`` owns the record."""
    if owner != principal_sub:
        logger.warning(
            "Ownership check failed",
            extra={"kind": kind, "principal": principal_sub},
        )
        raise NotOwnerError(
            f"This {kind}_id exists but you are not the owner."
        )


def lowercase_keys(payload: Any) -> Any:
    """Return a copy of a mapping with every top-level key lower-cased.

    Non-mapping payloads are returned unchanged so that the model validator
    downstream can report them.
    """
    if not isinstance(payload, Mapping):
        return payload
    return {str(k).lower(): v for k, v in payload.items()}
