"""
Dependency injection for FastAPI endpoints.
"""

import asyncio
import logging
import os
from typing import Any, Dict, Optional

from fastapi import Depends, Header, Request

from fleet.auth import GoogleTokenVerifier, TokenVerifier, bearer_token
from fleet.domain import Principal
from fleet.exceptions import NotAcceptableError
from fleet.repos.memory import (
    MemoryBoatRepository,
    MemoryLoadRepository,
    MemoryUserRepository,
)
from fleet.repos.minio import (
    MinioBoatRepository,
    MinioLoadRepository,
    MinioUserRepository,
    bucket_prefix_from_env,
    client_from_env,
)
from fleet.repositories import BoatRepository, LoadRepository, UserRepository
from fleet.usecase import (
    AssignmentUseCase,
    BoatUseCase,
    LoadUseCase,
    UserUseCase,
)

logger = logging.getLogger(__name__)

JSON_MEDIA_RANGES = ("application/json", "application/*", "*/*")


class DependencyContainer:
    """
    Dependency injection container with singleton lifecycle management.
    Always creates real clients; mocks are provided by test overrides.
    """

    def __init__(self) -> None:
        self._instances: Dict[str, Any] = {}

    async def get_or_create(self, key: str, factory: Any) -> Any:
        """Get or create a singleton instance."""
        if key not in self._instances:
            self._instances[key] = await factory()
        return self._instances[key]

    def storage_backend(self) -> str:
        return os.environ.get("FLEET_STORAGE_BACKEND", "minio").lower()

    async def get_minio_client(self) -> Any:
        async def create() -> Any:
            logger.debug(
                "Creating Minio client",
                extra={
                    "endpoint": os.environ.get(
                        "MINIO_ENDPOINT", "localhost:9000"
                    )
                },
            )
            return client_from_env()

        return await self.get_or_create("minio_client", create)

    async def get_boat_repository(self) -> BoatRepository:
        async def create() -> BoatRepository:
            if self.storage_backend() == "memory":
                return MemoryBoatRepository()
            return MinioBoatRepository(
                await self.get_minio_client(), bucket_prefix_from_env()
            )

        repo = await self.get_or_create("boat_repo", create)
        return repo  # type: ignore[no-any-return]

    async def get_load_repository(self) -> LoadRepository:
        async def create() -> LoadRepository:
            if self.storage_backend() == "memory":
                return MemoryLoadRepository()
            return MinioLoadRepository(
                await self.get_minio_client(), bucket_prefix_from_env()
            )

        repo = await self.get_or_create("load_repo", create)
        return repo  # type: ignore[no-any-return]

    async def get_user_repository(self) -> UserRepository:
        async def create() -> UserRepository:
            if self.storage_backend() == "memory":
                return MemoryUserRepository()
            return MinioUserRepository(
                await self.get_minio_client(), bucket_prefix_from_env()
            )

        repo = await self.get_or_create("user_repo", create)
        return repo  # type: ignore[no-any-return]

    async def get_token_verifier(self) -> TokenVerifier:
        async def create() -> TokenVerifier:
            return GoogleTokenVerifier(os.environ.get("GOOGLE_CLIENT_ID"))

        verifier = await self.get_or_create("token_verifier", create)
        return verifier  # type: ignore[no-any-return]


# Global container instance
_container = DependencyContainer()


def get_storage_backend() -> str:
    return _container.storage_backend()


async def get_boat_repository() -> BoatRepository:
    """FastAPI dependency for BoatRepository."""
    return await _container.get_boat_repository()


async def get_load_repository() -> LoadRepository:
    """FastAPI dependency for LoadRepository."""
    return await _container.get_load_repository()


async def get_user_repository() -> UserRepository:
    """FastAPI dependency for UserRepository."""
    return await _container.get_user_repository()


async def get_token_verifier() -> TokenVerifier:
    return await _container.get_token_verifier()


async def get_assignment_use_case(
    boat_repo: BoatRepository = Depends(get_boat_repository),
    load_repo: LoadRepository = Depends(get_load_repository),
) -> AssignmentUseCase:
    return AssignmentUseCase(boat_repo=boat_repo, load_repo=load_repo)


async def get_boat_use_case(
    boat_repo: BoatRepository = Depends(get_boat_repository),
    load_repo: LoadRepository = Depends(get_load_repository),
) -> BoatUseCase:
    return BoatUseCase(boat_repo=boat_repo, load_repo=load_repo)


async def get_load_use_case(
    load_repo: LoadRepository = Depends(get_load_repository),
) -> LoadUseCase:
    return LoadUseCase(load_repo=load_repo)


async def get_user_use_case(
    user_repo: UserRepository = Depends(get_user_repository),
) -> UserUseCase:
    return UserUseCase(user_repo=user_repo)


async def get_principal(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
    users: UserUseCase = Depends(get_user_use_case),
) -> Optional[Principal]:
    """Resolve the caller from the bearer token.

    Returns None for anonymous callers and for invalid tokens; use cases
    that need a principal reject None as unauthenticated. A verified caller
    is registered as a User on first sight.
    """
    token = bearer_token(authorization)
    if token is None:
        return None
    # Verification may fetch Google's signing certificates.
    principal = await asyncio.to_thread(verifier.verify, token)
    if principal is None:
        return None
    await users.register_principal(principal)
    return principal


async def require_json_response(request: Request) -> None:
    """Reject clients that cannot accept a JSON response body."""
    accept = request.headers.get("accept", "").lower()
    if not accept:
        return
    if any(media in accept for media in JSON_MEDIA_RANGES):
        return
    raise NotAcceptableError()


def get_base_url(request: Request) -> str:
    """Scheme and host of the current request, used for ``self`` links."""
    return str(request.base_url).rstrip("/")
