"""
Fixtures for API tests: an app wired to memory repositories and a token
verifier that recognises a fixed set of bearer tokens.
"""

from typing import Dict, Generator, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from fleet.api.app import create_app
from fleet.api.dependencies import (
    get_boat_repository,
    get_load_repository,
    get_token_verifier,
    get_user_repository,
)
from fleet.domain import Principal
from fleet.repos.memory import (
    MemoryBoatRepository,
    MemoryLoadRepository,
    MemoryUserRepository,
)
from fleet.tests.conftest import OTHER_SUB, OWNER_SUB

OWNER_TOKEN = "owner-token"
OTHER_TOKEN = "other-token"


class FakeTokenVerifier:
    def __init__(self, principals: Dict[str, Principal]) -> None:
        self.principals = principals

    def verify(self, token: str) -> Optional[Principal]:
        return self.principals.get(token)


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def verifier() -> FakeTokenVerifier:
    return FakeTokenVerifier(
        {
            OWNER_TOKEN: Principal(
                sub=OWNER_SUB, first_name="Ada", last_name="Lovelace"
            ),
            OTHER_TOKEN: Principal(
                sub=OTHER_SUB, first_name="Grace", last_name="Hopper"
            ),
        }
    )


@pytest.fixture
def app(
    boat_repo: MemoryBoatRepository,
    load_repo: MemoryLoadRepository,
    user_repo: MemoryUserRepository,
    verifier: FakeTokenVerifier,
) -> Generator[FastAPI, None, None]:
    application = create_app()
    application.dependency_overrides[get_boat_repository] = lambda: boat_repo
    application.dependency_overrides[get_load_repository] = lambda: load_repo
    application.dependency_overrides[get_user_repository] = lambda: user_repo
    application.dependency_overrides[get_token_verifier] = lambda: verifier
    yield application
    application.dependency_overrides = {}


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client
