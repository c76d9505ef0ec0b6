"""
Property-based tests for the Boat/Load relationship.

Hypothesis generates sequences of assign and unassign requests over a small
fleet; after every sequence both sides of the relationship must agree.
"""

import asyncio
from typing import List, Tuple

from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from fleet.domain import Boat, Principal
from fleet.repos.memory import MemoryBoatRepository, MemoryLoadRepository
from fleet.tests.factories import BoatFactory, LoadFactory
from fleet.usecase import AssignmentUseCase

BOAT_IDS = ["b1", "b2", "b3"]
LOAD_IDS = ["l1", "l2", "l3", "l4"]
PRINCIPAL = Principal(sub="google-oauth2|owner")

Operation = Tuple[str, str, str]


@composite
def operation_strategy(draw) -> Operation:  # type: ignore[no-untyped-def]
    """Generate one assign/unassign request, occasionally for unknown ids."""
    action = draw(st.sampled_from(["assign", "unassign"]))
    boat_id = draw(st.sampled_from(BOAT_IDS + ["missing"]))
    load_id = draw(st.sampled_from(LOAD_IDS + ["missing"]))
    return action, boat_id, load_id


async def _apply(operations: List[Operation]) -> Tuple[list, list, list]:
    boat_repo = MemoryBoatRepository()
    load_repo = MemoryLoadRepository()
    for boat_id in BOAT_IDS:
        await boat_repo.save(BoatFactory.build(boat_id=boat_id))
    for load_id in LOAD_IDS:
        await load_repo.save(LoadFactory.build(load_id=load_id))
    use_case = AssignmentUseCase(boat_repo=boat_repo, load_repo=load_repo)

    outcomes = []
    for action, boat_id, load_id in operations:
        before = await load_repo.get(load_id)
        if action == "assign":
            outcome = await use_case.assign_load(boat_id, load_id, PRINCIPAL)
        else:
            outcome = await use_case.unassign_load(
                boat_id, load_id, PRINCIPAL
            )
        outcomes.append((action, boat_id, before, outcome))

    return outcomes, await boat_repo.list_all(), await load_repo.list_all()


def _boat_by_id(boats: List[Boat], boat_id: str) -> Boat:
    return next(b for b in boats if b.boat_id == boat_id)


@given(st.lists(operation_strategy(), max_size=25))
@settings(max_examples=75, deadline=None)
def test_both_sides_of_relationship_agree(
    operations: List[Operation],
) -> None:
    _, boats, loads = asyncio.run(_apply(operations))

    for load in loads:
        if load.carrier is None:
            assert all(not b.carries(load.load_id) for b in boats)
        else:
            carrier = _boat_by_id(boats, load.carrier)
            assert carrier.loads.count(load.load_id) == 1
            others = [b for b in boats if b.boat_id != load.carrier]
            assert all(not b.carries(load.load_id) for b in others)

    loads_by_id = {ld.load_id: ld for ld in loads}
    for boat in boats:
        for load_id in boat.loads:
            assert loads_by_id[load_id].carrier == boat.boat_id


@given(st.lists(operation_strategy(), max_size=25))
@settings(max_examples=75, deadline=None)
def test_outcome_matches_prior_state(operations: List[Operation]) -> None:
    outcomes, _, _ = asyncio.run(_apply(operations))

    for action, boat_id, before, outcome in outcomes:
        if boat_id == "missing" or before is None:
            assert outcome.status == "not_found"
        elif action == "assign":
            expected = "assigned" if before.carrier is None else "conflict"
            assert outcome.status == expected
        else:
            expected = (
                "unassigned" if before.carrier == boat_id else "conflict"
            )
            assert outcome.status == expected
