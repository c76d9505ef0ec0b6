"""
Tests for the fleet domain models: construction from storage and from
request input, projections, and field validation.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from fleet.domain import (
    MISSING_ATTRIBUTES_REASON,
    AssignmentOutcome,
    Boat,
    Load,
    ReconciliationReport,
    User,
)
from fleet.exceptions import RequestShapeError
from fleet.tests.factories import BoatFactory, LoadFactory

BASE_URL = "https://fleet.example.com"


class TestBoatConstruction:
    def test_from_input_creates_unassigned_boat(self) -> None:
        boat = Boat.from_input(
            "1",
            {"name": "Orca", "type": "Sloop", "length": 28},
            owner="sub-1",
        )
        assert boat.boat_id == "1"
        assert boat.owner == "sub-1"
        assert boat.loads == []
        assert boat.is_public is False
        assert boat.version == 0

    def test_from_input_reads_public_flag(self) -> None:
        boat = Boat.from_input(
            "1",
            {"name": "Orca", "type": "Sloop", "length": 28, "public": True},
            owner="sub-1",
        )
        assert boat.is_public is True

    @pytest.mark.parametrize("missing", ["name", "type", "length"])
    def test_from_input_rejects_missing_required_field(
        self, missing: str
    ) -> None:
        payload = {"name": "Orca", "type": "Sloop", "length": 28}
        del payload[missing]
        with pytest.raises(RequestShapeError) as exc_info:
            Boat.from_input("1", payload, owner="sub-1")
        assert exc_info.value.reason == MISSING_ATTRIBUTES_REASON

    def test_from_storage_accepts_json_and_mappings(self) -> None:
        original = BoatFactory.build(loads=["9"], version=4)
        from_json = Boat.from_storage(original.model_dump_json())
        from_bytes = Boat.from_storage(
            original.model_dump_json().encode("utf-8")
        )
        from_dict = Boat.from_storage(original.model_dump())
        assert from_json == from_bytes == from_dict == original

    def test_blank_name_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BoatFactory.build(name="   ")

    def test_non_positive_length_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BoatFactory.build(length=0)


class TestBoatChanges:
    def test_apply_changes_updates_only_given_fields(self) -> None:
        boat = BoatFactory.build(name="Orca", type="Sloop", length=28)
        assert boat.apply_changes({"length": 30}) is True
        assert (boat.name, boat.type, boat.length) == ("Orca", "Sloop", 30)

    def test_apply_changes_without_recognized_fields_is_a_no_op(
        self,
    ) -> None:
        boat = BoatFactory.build(name="Orca")
        assert boat.apply_changes({"colour": "red"}) is False
        assert boat.name == "Orca"

    def test_apply_changes_validates_values(self) -> None:
        boat = BoatFactory.build(length=28)
        with pytest.raises(ValidationError):
            boat.apply_changes({"length": -1})

    def test_apply_changes_never_touches_loads_or_owner(self) -> None:
        boat = BoatFactory.build(loads=["9"], owner="sub-1")
        boat.apply_changes({"loads": [], "owner": "sub-2", "name": "Kraken"})
        assert boat.loads == ["9"]
        assert boat.owner == "sub-1"

    def test_add_load_keeps_order_and_ignores_repeats(self) -> None:
        boat = BoatFactory.build()
        boat.add_load("1")
        boat.add_load("2")
        boat.add_load("1")
        assert boat.loads == ["1", "2"]

    def test_remove_load_matches_by_identifier(self) -> None:
        boat = BoatFactory.build(loads=["1", "2", "3"])
        boat.remove_load("2")
        assert boat.loads == ["1", "3"]
        assert not boat.carries("2")


class TestBoatProjection:
    def test_projection_hides_owner_and_adds_links(self) -> None:
        boat = BoatFactory.build(
            boat_id="1", name="Orca", loads=["9"], is_public=True
        )
        body = boat.to_projection(BASE_URL).model_dump(by_alias=True)

        assert "owner" not in body
        assert "version" not in body
        assert body["id"] == "1"
        assert body["public"] is True
        assert body["self"] == f"{BASE_URL}/boats/1"
        assert body["loads"] == [
            {"id": "9", "self": f"{BASE_URL}/loads/9"}
        ]

    def test_base_url_trailing_slash_is_ignored(self) -> None:
        boat = BoatFactory.build(boat_id="1")
        assert boat.to_projection(BASE_URL + "/").self_link == (
            f"{BASE_URL}/boats/1"
        )


class TestLoad:
    def test_from_input_starts_unassigned(self) -> None:
        load = Load.from_input(
            "9",
            {"volume": 5, "content": "LEGO Blocks", "creation_date": "1/1/20"},
            owner="sub-1",
        )
        assert load.carrier is None
        assert not load.is_assigned

    def test_from_input_rejects_missing_fields(self) -> None:
        with pytest.raises(RequestShapeError):
            Load.from_input("9", {"volume": 5}, owner="sub-1")

    def test_apply_changes_never_sets_carrier(self) -> None:
        load = LoadFactory.build(carrier=None)
        assert load.apply_changes({"carrier": "1", "content": "Grain"})
        assert load.carrier is None
        assert load.content == "Grain"

    def test_is_carried_by_compares_identifiers(self) -> None:
        load = LoadFactory.build(carrier="1")
        assert load.is_carried_by("1")
        assert not load.is_carried_by("2")
        assert not LoadFactory.build(carrier=None).is_carried_by("1")

    def test_projection_renders_carrier_reference(self) -> None:
        load = LoadFactory.build(load_id="9", carrier="1")
        body = load.to_projection(BASE_URL).model_dump(by_alias=True)
        assert body["carrier"] == {"id": "1", "self": f"{BASE_URL}/boats/1"}
        assert body["self"] == f"{BASE_URL}/loads/9"
        assert "owner" not in body

    def test_projection_of_unassigned_load_has_null_carrier(self) -> None:
        load = LoadFactory.build(carrier=None)
        assert load.to_projection(BASE_URL).carrier is None

    def test_volume_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            LoadFactory.build(volume=0)


class TestUser:
    def test_projection_formats_date_and_links_by_sub(self) -> None:
        user = User(
            user_id="u1",
            sub="google-oauth2|42",
            first_name="Ada",
            last_name="Lovelace",
            account_created=date(2024, 3, 7),
        )
        body = user.to_projection(BASE_URL).model_dump(by_alias=True)
        assert body["account_created"] == "03/07/2024"
        assert body["self"] == f"{BASE_URL}/users/google-oauth2|42"

    def test_empty_sub_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            User(user_id="u1", sub="")


class TestAssignmentOutcome:
    def test_successful_outcomes(self) -> None:
        assert AssignmentOutcome(status="assigned").succeeded
        assert AssignmentOutcome(status="unassigned").succeeded

    def test_failures_require_a_reason(self) -> None:
        with pytest.raises(ValidationError):
            AssignmentOutcome(status="conflict")

    def test_not_found_requires_missing_resources(self) -> None:
        with pytest.raises(ValidationError):
            AssignmentOutcome(status="not_found", reason="gone")


def test_reconciliation_report_counts_repairs() -> None:
    report = ReconciliationReport(
        dangling_refs_removed=1,
        stale_refs_removed=2,
        duplicate_refs_removed=3,
        carriers_cleared=4,
        refs_restored=5,
    )
    assert report.repairs == 15
    assert report.as_log_extra()["repairs"] == 15
