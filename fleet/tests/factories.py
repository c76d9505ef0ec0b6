"""
Test factories for creating domain objects using factory_boy.

Design decisions documented:
- Entities are built with ``version=0`` so that saving them into a
  repository is an insert
- Boats and Loads start unassigned; tests wire assignments explicitly
- Boat names come from a sequence so that uniqueness checks never trip by
  accident
"""

import uuid

from factory.base import Factory
from factory.declarations import LazyFunction, Sequence
from factory.faker import Faker

from fleet.domain import Boat, Load, Principal, User


def _new_id() -> str:
    return str(uuid.uuid4())


class PrincipalFactory(Factory):
    class Meta:
        model = Principal

    sub = Sequence(lambda n: f"google-oauth2|{100000 + n}")
    first_name = Faker("first_name")
    last_name = Faker("last_name")


class BoatFactory(Factory):
    class Meta:
        model = Boat

    boat_id = LazyFunction(_new_id)
    name = Sequence(lambda n: f"Vessel {n}")
    type = Faker("random_element", elements=("Sloop", "Ketch", "Catamaran"))
    length = Faker("pyint", min_value=10, max_value=120)
    owner = "google-oauth2|owner"
    is_public = False
    loads = LazyFunction(list)
    version = 0


class LoadFactory(Factory):
    class Meta:
        model = Load

    load_id = LazyFunction(_new_id)
    volume = Faker("pyint", min_value=1, max_value=500)
    content = Faker("random_element", elements=("LEGO Blocks", "Grain"))
    creation_date = Faker("date", pattern="%m/%d/%Y")
    owner = "google-oauth2|owner"
    carrier = None
    version = 0


class UserFactory(Factory):
    class Meta:
        model = User

    user_id = LazyFunction(_new_id)
    sub = Sequence(lambda n: f"google-oauth2|{200000 + n}")
    first_name = Faker("first_name")
    last_name = Faker("last_name")
    version = 0
