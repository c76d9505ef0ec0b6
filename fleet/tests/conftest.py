import pytest

from fleet.domain import Principal
from fleet.repos.memory import (
    MemoryBoatRepository,
    MemoryLoadRepository,
    MemoryUserRepository,
)
from fleet.usecase import (
    AssignmentUseCase,
    BoatUseCase,
    LoadUseCase,
    ReconcileAssignmentsUseCase,
    UserUseCase,
)

OWNER_SUB = "google-oauth2|owner"
OTHER_SUB = "google-oauth2|other"


@pytest.fixture
def boat_repo() -> MemoryBoatRepository:
    return MemoryBoatRepository()


@pytest.fixture
def load_repo() -> MemoryLoadRepository:
    return MemoryLoadRepository()


@pytest.fixture
def user_repo() -> MemoryUserRepository:
    return MemoryUserRepository()


@pytest.fixture
def owner() -> Principal:
    return Principal(sub=OWNER_SUB, first_name="Ada", last_name="Lovelace")


@pytest.fixture
def other_user() -> Principal:
    return Principal(sub=OTHER_SUB, first_name="Grace", last_name="Hopper")


@pytest.fixture
def assignments(
    boat_repo: MemoryBoatRepository, load_repo: MemoryLoadRepository
) -> AssignmentUseCase:
    return AssignmentUseCase(boat_repo=boat_repo, load_repo=load_repo)


@pytest.fixture
def boat_use_case(
    boat_repo: MemoryBoatRepository, load_repo: MemoryLoadRepository
) -> BoatUseCase:
    return BoatUseCase(boat_repo=boat_repo, load_repo=load_repo)


@pytest.fixture
def load_use_case(load_repo: MemoryLoadRepository) -> LoadUseCase:
    return LoadUseCase(load_repo=load_repo)


@pytest.fixture
def user_use_case(user_repo: MemoryUserRepository) -> UserUseCase:
    return UserUseCase(user_repo=user_repo)


@pytest.fixture
def reconcile(
    boat_repo: MemoryBoatRepository, load_repo: MemoryLoadRepository
) -> ReconcileAssignmentsUseCase:
    return ReconcileAssignmentsUseCase(
        boat_repo=boat_repo, load_repo=load_repo
    )
