"""
Users API router.

Users are created implicitly the first time a caller authenticates, so the
resource is read-only.

Routes defined at root level:
- GET / - List registered users (paginated)
- GET /{sub} - Get a user by identity-provider subject

These routes are mounted at /users in the main app.
"""

import logging

from fastapi import APIRouter, Depends, Path
from fastapi_pagination import Page, paginate

from fleet.api.dependencies import (
    get_base_url,
    get_user_use_case,
    require_json_response,
)
from fleet.domain import UserProjection
from fleet.usecase import UserUseCase

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_json_response)])


@router.get("", response_model=Page[UserProjection])
async def list_users(
    users: UserUseCase = Depends(get_user_use_case),
    base_url: str = Depends(get_base_url),
) -> Page[UserProjection]:
    results = await users.list_users()
    return paginate(  # type: ignore[no-any-return]
        [user.to_projection(base_url) for user in results]
    )


@router.get("/{sub}", response_model=UserProjection)
async def get_user(
    sub: str = Path(description="Identity-provider subject of the user"),
    users: UserUseCase = Depends(get_user_use_case),
    base_url: str = Depends(get_base_url),
) -> UserProjection:
    user = await users.get_user(sub)
    return user.to_projection(base_url)
