import asyncio

import pytest

from fleet.domain import Principal
from fleet.exceptions import RecordNotFoundError
from fleet.repos.memory import MemoryUserRepository
from fleet.tests.factories import PrincipalFactory
from fleet.usecase import UserUseCase


@pytest.mark.asyncio
async def test_first_login_registers_user(
    user_use_case: UserUseCase,
    user_repo: MemoryUserRepository,
    owner: Principal,
) -> None:
    user = await user_use_case.register_principal(owner)

    stored = await user_repo.get_by_sub(owner.sub)
    assert stored is not None
    assert stored.user_id == user.user_id
    assert (stored.first_name, stored.last_name) == ("Ada", "Lovelace")


@pytest.mark.asyncio
async def test_later_logins_keep_the_original_record(
    user_use_case: UserUseCase, owner: Principal
) -> None:
    first = await user_use_case.register_principal(owner)
    renamed = owner.model_copy(update={"first_name": "Augusta"})

    second = await user_use_case.register_principal(renamed)

    assert second.user_id == first.user_id
    assert second.first_name == "Ada"
    assert len(await user_use_case.list_users()) == 1


@pytest.mark.asyncio
async def test_concurrent_first_logins_create_one_user(
    user_use_case: UserUseCase, owner: Principal
) -> None:
    results = await asyncio.gather(
        *(user_use_case.register_principal(owner) for _ in range(3))
    )

    assert len({u.user_id for u in results}) == 1
    assert len(await user_use_case.list_users()) == 1


@pytest.mark.asyncio
async def test_list_users(user_use_case: UserUseCase) -> None:
    principals = PrincipalFactory.build_batch(3)
    for principal in principals:
        await user_use_case.register_principal(principal)

    users = await user_use_case.list_users()

    assert sorted(u.sub for u in users) == sorted(p.sub for p in principals)


@pytest.mark.asyncio
async def test_get_user_by_sub(
    user_use_case: UserUseCase, owner: Principal
) -> None:
    await user_use_case.register_principal(owner)
    user = await user_use_case.get_user(owner.sub)
    assert user.sub == owner.sub


@pytest.mark.asyncio
async def test_get_unknown_user(user_use_case: UserUseCase) -> None:
    with pytest.raises(RecordNotFoundError) as exc_info:
        await user_use_case.get_user("google-oauth2|nobody")
    assert exc_info.value.reason == "No user with this sub exists"
