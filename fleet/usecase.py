"""
usecase logic must be clean, without direct dependencies.
dependencies are injected via repository instances.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from pydantic import ValidationError

from fleet.domain import (
    BOAT_REQUIRED_FIELDS,
    LOAD_REQUIRED_FIELDS,
    LOADS,
    AssignmentOutcome,
    Boat,
    BoatProjection,
    Load,
    Principal,
    ReconciliationReport,
    ResourceRef,
    User,
    resource_url,
)
from fleet.exceptions import (
    ConcurrentModificationError,
    ConflictError,
    DuplicateBoatNameError,
    RecordInUseError,
    RecordNotFoundError,
    RequestShapeError,
    UnauthenticatedError,
)
from fleet.repositories import BoatRepository, LoadRepository, UserRepository
from fleet.validation import (
    ensure_boat_repository,
    ensure_load_repository,
    ensure_owner,
    ensure_user_repository,
)

logger = logging.getLogger(__name__)

BOTH_MISSING_REASON = "The specified boat and load does not exist"
BOAT_MISSING_REASON = "The specified boat does not exist"
LOAD_MISSING_REASON = "The specified load does not exist"
ON_THIS_BOAT_REASON = (
    "The specified load has already been assigned to this boat."
)
ON_ANOTHER_BOAT_REASON = (
    "The specified load has already been assigned to another boat."
)
NOT_ON_THIS_BOAT_REASON = "The specified load is not on this boat."
CONCURRENT_CHANGE_REASON = (
    "The boat or load was changed by another request. Please retry."
)
NO_BOAT_PROPERTIES_REASON = (
    "No properties of the boat were included in the body of the request."
)
NO_LOAD_PROPERTIES_REASON = (
    "No properties of the load were included in the body of the request."
)
BOAT_PUT_REASON = (
    "PUTs at this endpoint require that all fields are updated. "
    "Use PATCH for partial updates."
)
LOAD_PUT_REASON = BOAT_PUT_REASON
INVALID_VALUES_REASON = (
    "The request object contains attributes with invalid values."
)


def _require_principal(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise UnauthenticatedError()
    return principal


def _missing_outcome(
    boat: Optional[Boat], load: Optional[Load]
) -> Optional[AssignmentOutcome]:
    if boat is None and load is None:
        return AssignmentOutcome(
            status="not_found",
            reason=BOTH_MISSING_REASON,
            missing=["boat", "load"],
        )
    if boat is None:
        return AssignmentOutcome(
            status="not_found", reason=BOAT_MISSING_REASON, missing=["boat"]
        )
    if load is None:
        return AssignmentOutcome(
            status="not_found", reason=LOAD_MISSING_REASON, missing=["load"]
        )
    return None


def _conflict(reason: str) -> AssignmentOutcome:
    return AssignmentOutcome(status="conflict", reason=reason)


def _assign_conflict(load: Load, boat_id: str) -> Optional[AssignmentOutcome]:
    if load.carrier is None:
        return None
    if load.is_carried_by(boat_id):
        return _conflict(ON_THIS_BOAT_REASON)
    return _conflict(ON_ANOTHER_BOAT_REASON)


class AssignmentUseCase:
    """
    Moves Loads on and off Boats while keeping both records consistent.

    ``Load.carrier`` is the authoritative side of the relationship and
    ``Boat.loads`` mirrors it. Storage offers no multi-record transactions,
    so each transition is two compare-and-swap writes, Boat first and then
    Load:

    - A lost compare-and-swap on the Boat write aborts the operation before
      anything is changed.
    - A failed Load write triggers a compensating write that brings the Boat
      back in line with whatever the Load record now says.
    - If the compensating write fails too, the anomaly is logged and left
      for ``ReconcileAssignmentsUseCase`` to repair.

    Business failures (missing records, relationship conflicts) are returned
    as ``AssignmentOutcome`` values and never retried here.
    """

    def __init__(
        self, boat_repo: BoatRepository, load_repo: LoadRepository
    ) -> None:
        self.boat_repo = ensure_boat_repository(boat_repo)
        self.load_repo = ensure_load_repository(load_repo)

    async def _read_pair(
        self, boat_id: str, load_id: str
    ) -> Tuple[Optional[Boat], Optional[Load]]:
        boat, load = await asyncio.gather(
            self.boat_repo.get(boat_id), self.load_repo.get(load_id)
        )
        return boat, load

    async def assign_load(
        self,
        boat_id: str,
        load_id: str,
        principal: Optional[Principal],
    ) -> AssignmentOutcome:
        """Put a Load on a Boat.

        Re-assigning a Load to the Boat already carrying it is a conflict,
        not a no-op.
        """
        if principal is None:
            return AssignmentOutcome(
                status="unauthenticated",
                reason=UnauthenticatedError.default_reason,
            )

        log_extra = {
            "boat_id": boat_id,
            "load_id": load_id,
            "principal": principal.sub,
        }
        logger.debug("Assigning load to boat", extra=log_extra)

        boat, load = await self._read_pair(boat_id, load_id)
        missing = _missing_outcome(boat, load)
        if missing is not None:
            logger.info(
                "Assignment target not found",
                extra=log_extra | {"missing": missing.missing},
            )
            return missing
        assert boat is not None and load is not None

        conflict = _assign_conflict(load, boat_id)
        if conflict is not None:
            logger.info(
                "Assignment rejected",
                extra=log_extra | {"carrier": load.carrier},
            )
            return conflict

        boat.add_load(load_id)
        load.carrier = boat_id

        outcome = await self._write_pair(boat, load, "assign", log_extra)
        if outcome is not None:
            return outcome

        logger.info("Load assigned to boat", extra=log_extra)
        return AssignmentOutcome(status="assigned")

    async def unassign_load(
        self,
        boat_id: str,
        load_id: str,
        principal: Optional[Principal],
    ) -> AssignmentOutcome:
        """Take a Load off the Boat currently carrying it."""
        if principal is None:
            return AssignmentOutcome(
                status="unauthenticated",
                reason=UnauthenticatedError.default_reason,
            )

        log_extra = {
            "boat_id": boat_id,
            "load_id": load_id,
            "principal": principal.sub,
        }
        logger.debug("Unassigning load from boat", extra=log_extra)

        boat, load = await self._read_pair(boat_id, load_id)
        missing = _missing_outcome(boat, load)
        if missing is not None:
            logger.info(
                "Unassignment target not found",
                extra=log_extra | {"missing": missing.missing},
            )
            return missing
        assert boat is not None and load is not None

        if not load.is_carried_by(boat_id):
            logger.info(
                "Unassignment rejected",
                extra=log_extra | {"carrier": load.carrier},
            )
            return _conflict(NOT_ON_THIS_BOAT_REASON)

        boat.remove_load(load_id)
        load.carrier = None

        outcome = await self._write_pair(boat, load, "unassign", log_extra)
        if outcome is not None:
            return outcome

        logger.info("Load unassigned from boat", extra=log_extra)
        return AssignmentOutcome(status="unassigned")

    async def _write_pair(
        self,
        boat: Boat,
        load: Load,
        operation: str,
        log_extra: Dict[str, Any],
    ) -> Optional[AssignmentOutcome]:
        """Persist Boat then Load. Returns an outcome only on conflict."""
        log_extra = log_extra | {"operation": operation}
        try:
            await self.boat_repo.save(boat)
        except ConcurrentModificationError:
            logger.warning(
                "Boat changed concurrently, nothing written",
                extra=log_extra,
            )
            return _conflict(CONCURRENT_CHANGE_REASON)

        try:
            await self.load_repo.save(load)
        except ConcurrentModificationError:
            logger.warning(
                "Load changed concurrently, compensating boat write",
                extra=log_extra,
            )
            await self._compensate_boat(boat.boat_id, load.load_id)
            return await self._conflict_after_race(
                boat.boat_id, load.load_id, operation
            )
        except Exception:
            logger.error(
                "Load write failed after boat write, compensating",
                extra=log_extra,
                exc_info=True,
            )
            await self._compensate_boat(boat.boat_id, load.load_id)
            raise
        return None

    async def _compensate_boat(self, boat_id: str, load_id: str) -> None:
        """Make the Boat's reference to ``load_id`` agree with the Load.

        The Load is re-read so that a concurrent writer who won the race
        keeps its change.
        """
        extra = {"boat_id": boat_id, "load_id": load_id}
        try:
            boat, load = await self._read_pair(boat_id, load_id)
            if boat is None:
                return
            should_carry = load is not None and load.is_carried_by(boat_id)
            if boat.carries(load_id) == should_carry:
                return
            if should_carry:
                boat.add_load(load_id)
            else:
                boat.remove_load(load_id)
            await self.boat_repo.save(boat)
            logger.info("Compensating boat write succeeded", extra=extra)
        except Exception as e:
            logger.error(
                "Compensating boat write failed; records left for "
                "reconciliation",
                extra=extra | {"error": str(e)},
                exc_info=True,
            )

    async def _conflict_after_race(
        self, boat_id: str, load_id: str, operation: str
    ) -> AssignmentOutcome:
        """Explain a lost Load write from the Load as it now stands."""
        load = await self.load_repo.get(load_id)
        if load is None:
            return AssignmentOutcome(
                status="not_found",
                reason=LOAD_MISSING_REASON,
                missing=["load"],
            )
        if operation == "unassign":
            if not load.is_carried_by(boat_id):
                return _conflict(NOT_ON_THIS_BOAT_REASON)
            return _conflict(CONCURRENT_CHANGE_REASON)
        conflict = _assign_conflict(load, boat_id)
        return conflict or _conflict(CONCURRENT_CHANGE_REASON)

    async def fetch_boat_with_loads(
        self, boat_id: str, base_url: str
    ) -> Optional[BoatProjection]:
        """Return the Boat projection with each Load rendered as
        ``{id, self}``, or None when the Boat does not exist."""
        boat = await self.boat_repo.get(boat_id)
        if boat is None:
            logger.debug("Boat not found", extra={"boat_id": boat_id})
            return None
        loads = await self.hydrate_boat_loads(boat, base_url)
        return boat.to_projection(base_url, loads=loads)

    async def hydrate_boat_loads(
        self, boat: Boat, base_url: str
    ) -> List[ResourceRef]:
        """Read every Load referenced by the Boat.

        References to Loads that no longer exist are omitted and removed
        from the stored Boat on a best-effort basis. References to Loads
        whose carrier is a different Boat are omitted and logged; those are
        repaired by reconciliation.
        """
        ref_ids = list(dict.fromkeys(boat.loads))
        loads = await asyncio.gather(
            *(self.load_repo.get(load_id) for load_id in ref_ids)
        )

        refs: List[ResourceRef] = []
        dangling: List[str] = []
        for load_id, load in zip(ref_ids, loads):
            if load is None:
                dangling.append(load_id)
                continue
            if not load.is_carried_by(boat.boat_id):
                logger.warning(
                    "Boat references a load carried elsewhere",
                    extra={
                        "boat_id": boat.boat_id,
                        "load_id": load_id,
                        "carrier": load.carrier,
                    },
                )
                continue
            refs.append(
                ResourceRef(
                    id=load.load_id,
                    self_link=resource_url(base_url, LOADS, load.load_id),
                )
            )

        if dangling:
            await self._drop_dangling_refs(boat, dangling)
        return refs

    async def _drop_dangling_refs(
        self, boat: Boat, dangling: List[str]
    ) -> None:
        extra = {"boat_id": boat.boat_id, "dangling_load_ids": dangling}
        logger.warning("Boat references deleted loads", extra=extra)
        healed = boat.model_copy(deep=True)
        for load_id in dangling:
            healed.remove_load(load_id)
        try:
            await self.boat_repo.save(healed)
            logger.info("Dangling load references removed", extra=extra)
        except Exception as e:
            logger.warning(
                "Could not remove dangling load references",
                extra=extra | {"error": str(e)},
            )


class BoatUseCase:
    """CRUD on Boats with ownership and name-uniqueness checks.

    Loads are only read, to decide whether a Boat may be deleted.
    """

    def __init__(
        self, boat_repo: BoatRepository, load_repo: LoadRepository
    ) -> None:
        self.boat_repo = ensure_boat_repository(boat_repo)
        self.load_repo = ensure_load_repository(load_repo)

    async def _ensure_unique_name(
        self, name: str, exclude_id: Optional[str] = None
    ) -> None:
        # Read-then-decide: two concurrent creates can still both pass.
        matches = await self.boat_repo.find_by_name(name)
        if any(b.boat_id != exclude_id for b in matches):
            logger.info(
                "Duplicate boat name rejected",
                extra={"name": name, "boat_id": exclude_id},
            )
            raise DuplicateBoatNameError()

    async def create_boat(
        self, payload: Mapping[str, Any], principal: Optional[Principal]
    ) -> Boat:
        caller = _require_principal(principal)
        boat_id = await self.boat_repo.generate_id()
        try:
            boat = Boat.from_input(boat_id, payload, owner=caller.sub)
        except ValidationError as e:
            logger.debug(
                "Boat payload rejected", extra={"errors": e.error_count()}
            )
            raise RequestShapeError(INVALID_VALUES_REASON) from e

        await self._ensure_unique_name(boat.name)
        await self.boat_repo.save(boat)
        logger.info(
            "Boat created",
            extra={"boat_id": boat_id, "owner": caller.sub},
        )
        return boat

    async def get_boat(self, boat_id: str) -> Boat:
        boat = await self.boat_repo.get(boat_id)
        if boat is None:
            raise RecordNotFoundError("boat", boat_id)
        return boat

    async def list_boats(self, principal: Optional[Principal]) -> List[Boat]:
        """Authenticated callers see their own Boats, anonymous callers see
        public ones."""
        if principal is None:
            return await self.boat_repo.list_public()
        return await self.boat_repo.list_by_owner(principal.sub)

    async def update_boat(
        self,
        boat_id: str,
        payload: Mapping[str, Any],
        principal: Optional[Principal],
        replace: bool = False,
    ) -> Boat:
        """Apply a partial (PATCH) or full (PUT) update.

        ``loads`` and ``owner`` are never changed here. A full update resets
        ``public`` to False when it is not supplied.
        """
        caller = _require_principal(principal)
        boat = await self.get_boat(boat_id)
        ensure_owner("boat", boat.owner, caller.sub)

        changes = dict(payload)
        if replace:
            if any(changes.get(f) is None for f in BOAT_REQUIRED_FIELDS):
                raise RequestShapeError(BOAT_PUT_REASON)
            changes.setdefault("public", False)

        if changes.get("name") is not None:
            await self._ensure_unique_name(changes["name"], exclude_id=boat_id)

        try:
            if not boat.apply_changes(changes):
                raise RequestShapeError(NO_BOAT_PROPERTIES_REASON)
        except ValidationError as e:
            raise RequestShapeError(INVALID_VALUES_REASON) from e

        try:
            await self.boat_repo.save(boat)
        except ConcurrentModificationError as e:
            raise ConflictError(CONCURRENT_CHANGE_REASON) from e
        logger.info(
            "Boat updated", extra={"boat_id": boat_id, "replace": replace}
        )
        return boat

    async def delete_boat(
        self, boat_id: str, principal: Optional[Principal]
    ) -> None:
        """Delete a Boat that carries no Loads.

        Only references to Loads that still exist and name this Boat as
        their carrier count; references left behind by deleted or moved
        Loads do not block the delete.
        """
        caller = _require_principal(principal)
        boat = await self.get_boat(boat_id)
        ensure_owner("boat", boat.owner, caller.sub)
        carried = await self._carried_loads(boat)
        if carried:
            logger.info(
                "Delete blocked by carried loads",
                extra={"boat_id": boat_id, "load_ids": carried},
            )
            raise RecordInUseError(
                "This boat still carries loads. Remove them before "
                "deleting the boat."
            )
        await self.boat_repo.delete(boat_id)
        logger.info(
            "Boat deleted",
            extra={"boat_id": boat_id, "ignored_refs": len(boat.loads)},
        )

    async def _carried_loads(self, boat: Boat) -> List[str]:
        ref_ids = list(dict.fromkeys(boat.loads))
        loads = await asyncio.gather(
            *(self.load_repo.get(load_id) for load_id in ref_ids)
        )
        return [
            load.load_id
            for load in loads
            if load is not None and load.is_carried_by(boat.boat_id)
        ]


class LoadUseCase:
    """CRUD on Loads. ``carrier`` is only ever written by assignment."""

    def __init__(self, load_repo: LoadRepository) -> None:
        self.load_repo = ensure_load_repository(load_repo)

    async def create_load(
        self, payload: Mapping[str, Any], principal: Optional[Principal]
    ) -> Load:
        caller = _require_principal(principal)
        load_id = await self.load_repo.generate_id()
        try:
            load = Load.from_input(load_id, payload, owner=caller.sub)
        except ValidationError as e:
            raise RequestShapeError(INVALID_VALUES_REASON) from e
        await self.load_repo.save(load)
        logger.info(
            "Load created", extra={"load_id": load_id, "owner": caller.sub}
        )
        return load

    async def get_load(self, load_id: str) -> Load:
        load = await self.load_repo.get(load_id)
        if load is None:
            raise RecordNotFoundError("load", load_id)
        return load

    async def list_loads(self) -> List[Load]:
        return await self.load_repo.list_all()

    async def update_load(
        self,
        load_id: str,
        payload: Mapping[str, Any],
        principal: Optional[Principal],
        replace: bool = False,
    ) -> Load:
        caller = _require_principal(principal)
        load = await self.get_load(load_id)
        ensure_owner("load", load.owner, caller.sub)

        missing = [f for f in LOAD_REQUIRED_FIELDS if payload.get(f) is None]
        if replace and missing:
            raise RequestShapeError(LOAD_PUT_REASON)
        try:
            if not load.apply_changes(payload):
                raise RequestShapeError(NO_LOAD_PROPERTIES_REASON)
        except ValidationError as e:
            raise RequestShapeError(INVALID_VALUES_REASON) from e

        try:
            await self.load_repo.save(load)
        except ConcurrentModificationError as e:
            raise ConflictError(CONCURRENT_CHANGE_REASON) from e
        logger.info("Load updated", extra={"load_id": load_id})
        return load

    async def delete_load(
        self, load_id: str, principal: Optional[Principal]
    ) -> None:
        caller = _require_principal(principal)
        load = await self.get_load(load_id)
        ensure_owner("load", load.owner, caller.sub)
        if load.is_assigned:
            raise RecordInUseError(
                "This load is on a boat. Remove it from the boat before "
                "deleting it."
            )
        await self.load_repo.delete(load_id)
        logger.info("Load deleted", extra={"load_id": load_id})


class UserUseCase:
    def __init__(self, user_repo: UserRepository) -> None:
        self.user_repo = ensure_user_repository(user_repo)

    async def register_principal(self, principal: Principal) -> User:
        """Create the User on first login; later logins return it as is."""
        existing = await self.user_repo.get_by_sub(principal.sub)
        if existing is not None:
            return existing

        user = User(
            user_id=await self.user_repo.generate_id(),
            sub=principal.sub,
            first_name=principal.first_name,
            last_name=principal.last_name,
        )
        try:
            await self.user_repo.save(user)
        except ConcurrentModificationError:
            # Another request registered the same sub first.
            winner = await self.user_repo.get_by_sub(principal.sub)
            if winner is None:
                raise
            return winner
        logger.info(
            "User registered on first login", extra={"sub": principal.sub}
        )
        return user

    async def list_users(self) -> List[User]:
        return await self.user_repo.list_all()

    async def get_user(self, sub: str) -> User:
        user = await self.user_repo.get_by_sub(sub)
        if user is None:
            raise RecordNotFoundError(
                "user", sub, "No user with this sub exists"
            )
        return user


class ReconcileAssignmentsUseCase:
    """
    Repairs one-sided Boat/Load references left behind by failed writes.

    ``Load.carrier`` is treated as the truth:

    - a Boat reference to a missing Load is removed
    - a Boat reference to a Load carried elsewhere (or nowhere) is removed
    - repeated references on one Boat are collapsed
    - a Load whose carrier Boat no longer exists is unassigned
    - a Load whose carrier Boat lacks the reference gets it back

    Each repair is a compare-and-swap write; records that change while the
    pass runs are skipped and reported, and picked up by the next pass.
    """

    def __init__(
        self, boat_repo: BoatRepository, load_repo: LoadRepository
    ) -> None:
        self.boat_repo = ensure_boat_repository(boat_repo)
        self.load_repo = ensure_load_repository(load_repo)

    async def execute(self) -> ReconciliationReport:
        boats, loads = await asyncio.gather(
            self.boat_repo.list_all(), self.load_repo.list_all()
        )
        report = ReconciliationReport(
            boats_scanned=len(boats), loads_scanned=len(loads)
        )
        logger.info(
            "Starting assignment reconciliation",
            extra={"boats": len(boats), "loads": len(loads)},
        )

        boats_by_id = {b.boat_id: b for b in boats}
        loads_by_id = {ld.load_id: ld for ld in loads}

        for boat in boats:
            await self._reconcile_boat(boat, loads, loads_by_id, report)

        for load in loads:
            if load.carrier is None or load.carrier in boats_by_id:
                continue
            logger.warning(
                "Load carried by a missing boat, clearing carrier",
                extra={"load_id": load.load_id, "carrier": load.carrier},
            )
            load.carrier = None
            try:
                await self.load_repo.save(load)
                report.carriers_cleared += 1
            except ConcurrentModificationError:
                report.skipped.append(f"load:{load.load_id}")

        logger.info(
            "Assignment reconciliation finished",
            extra=report.as_log_extra(),
        )
        return report

    async def _reconcile_boat(
        self,
        boat: Boat,
        loads: List[Load],
        loads_by_id: Dict[str, Load],
        report: ReconciliationReport,
    ) -> None:
        stale = [
            load_id
            for load_id in dict.fromkeys(boat.loads)
            if load_id in loads_by_id
            and not loads_by_id[load_id].is_carried_by(boat.boat_id)
        ]
        missing = [
            ld.load_id
            for ld in loads
            if ld.is_carried_by(boat.boat_id) and not boat.carries(ld.load_id)
        ]
        has_dangling = any(lid not in loads_by_id for lid in boat.loads)
        has_duplicates = len(set(boat.loads)) != len(boat.loads)
        if not (stale or missing or has_dangling or has_duplicates):
            return

        # A disagreement may be an assign or unassign caught between its
        # Boat write and its Load write. Rewriting the Load first makes
        # that Load write lose, so the operation compensates instead.
        fenced: Set[str] = set()
        for load_id in stale + missing:
            if await self._fence_load(loads_by_id[load_id]):
                fenced.add(load_id)
            else:
                report.skipped.append(f"load:{load_id}")

        kept: List[str] = []
        dangling = removed_stale = duplicates = 0
        for load_id in boat.loads:
            if load_id not in loads_by_id:
                dangling += 1
            elif load_id in fenced:
                removed_stale += 1
            elif load_id in kept:
                duplicates += 1
            else:
                kept.append(load_id)
        restored = [load_id for load_id in missing if load_id in fenced]
        if not (dangling or removed_stale or duplicates or restored):
            return

        logger.warning(
            "Repairing boat load references",
            extra={
                "boat_id": boat.boat_id,
                "dangling": dangling,
                "stale": removed_stale,
                "duplicates": duplicates,
                "restored": restored,
            },
        )
        boat.loads = kept + restored
        try:
            await self.boat_repo.save(boat)
        except ConcurrentModificationError:
            report.skipped.append(f"boat:{boat.boat_id}")
            return
        report.dangling_refs_removed += dangling
        report.stale_refs_removed += removed_stale
        report.duplicate_refs_removed += duplicates
        report.refs_restored += len(restored)

    async def _fence_load(self, load: Load) -> bool:
        """Write ``load`` back unchanged; False if it moved since read."""
        try:
            await self.load_repo.save(load)
        except ConcurrentModificationError:
            logger.info(
                "Load changed during reconciliation, leaving its boat",
                extra={"load_id": load.load_id, "carrier": load.carrier},
            )
            return False
        return True
