"""
Domain models defined as Pydantic models.

Boats and Loads are stored as two independent records. The relationship
between them is kept on both sides:

- ``Load.carrier`` holds the id of the Boat currently carrying the Load (the
  authoritative side), or ``None`` when the Load is unassigned.
- ``Boat.loads`` holds the ordered list of Load ids currently on the Boat.

Every record carries a ``version`` token which repositories use for
compare-and-swap writes. Public projections strip internal fields (``owner``,
``version``) and add ``id`` and ``self``.
"""

from datetime import date
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from fleet.exceptions import RequestShapeError

BOATS = "boats"
LOADS = "loads"
USERS = "users"

BOAT_REQUIRED_FIELDS = ("name", "type", "length")
BOAT_OPTIONAL_FIELDS = ("public",)
LOAD_REQUIRED_FIELDS = ("volume", "content", "creation_date")

MISSING_ATTRIBUTES_REASON = (
    "The request object is missing at least one of the required attributes"
)


def resource_url(base_url: str, collection: str, resource_id: str) -> str:
    """Build the canonical ``self`` link of a resource."""
    return f"{base_url.rstrip('/')}/{collection}/{resource_id}"


def _missing_fields(
    payload: Mapping[str, Any], required: tuple[str, ...]
) -> List[str]:
    return [name for name in required if payload.get(name) is None]


class ResourceRef(BaseModel):
    """Minimal ``{id, self}`` rendering of a related resource."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    self_link: str = Field(alias="self")


class BoatProjection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    type: str
    length: int
    public: bool
    loads: List[ResourceRef] = Field(default_factory=list)
    self_link: str = Field(alias="self")


class LoadProjection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    volume: int
    content: str
    creation_date: str
    carrier: Optional[ResourceRef] = None
    self_link: str = Field(alias="self")


class UserProjection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    sub: str
    first_name: str
    last_name: str
    account_created: str
    self_link: str = Field(alias="self")


class Boat(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    boat_id: str
    name: str
    type: str
    length: int
    owner: str
    is_public: bool = False
    loads: List[str] = Field(default_factory=list)
    version: int = 0

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Boat name must not be blank")
        return v

    @field_validator("length")
    @classmethod
    def length_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Length must be positive")
        return v

    @classmethod
    def from_storage(
        cls, record: Union[bytes, str, Mapping[str, Any]]
    ) -> "Boat":
        """Rebuild a Boat from its stored representation."""
        if isinstance(record, (bytes, str)):
            return cls.model_validate_json(record)
        return cls.model_validate(record)

    @classmethod
    def from_input(
        cls, boat_id: str, payload: Mapping[str, Any], owner: str
    ) -> "Boat":
        """Create a new, unassigned Boat from validated request fields.

        Raises:
            RequestShapeError: if any required attribute is missing
        """
        if _missing_fields(payload, BOAT_REQUIRED_FIELDS):
            raise RequestShapeError(MISSING_ATTRIBUTES_REASON)
        return cls(
            boat_id=boat_id,
            name=payload["name"],
            type=payload["type"],
            length=payload["length"],
            owner=owner,
            is_public=bool(payload.get("public", False)),
        )

    def apply_changes(self, changes: Mapping[str, Any]) -> bool:
        """Overwrite descriptive fields present in ``changes``.

        Unrecognized keys are ignored. Returns False when ``changes``
        carried no recognized field, in which case nothing is modified.
        """
        recognized = {
            k: v
            for k, v in changes.items()
            if k in BOAT_REQUIRED_FIELDS + BOAT_OPTIONAL_FIELDS
            and v is not None
        }
        if not recognized:
            return False
        if "name" in recognized:
            self.name = recognized["name"]
        if "type" in recognized:
            self.type = recognized["type"]
        if "length" in recognized:
            self.length = recognized["length"]
        if "public" in recognized:
            self.is_public = bool(recognized["public"])
        return True

    def carries(self, load_id: str) -> bool:
        return load_id in self.loads

    def add_load(self, load_id: str) -> None:
        if load_id not in self.loads:
            self.loads.append(load_id)

    def remove_load(self, load_id: str) -> None:
        self.loads = [ref for ref in self.loads if ref != load_id]

    def to_projection(
        self, base_url: str, loads: Optional[List[ResourceRef]] = None
    ) -> BoatProjection:
        """Public shape of the Boat.

        When ``loads`` is not given, load references are rendered straight
        from the stored ids without reading the Load records.
        """
        if loads is None:
            loads = [
                ResourceRef(
                    id=load_id,
                    self_link=resource_url(base_url, LOADS, load_id),
                )
                for load_id in self.loads
            ]
        return BoatProjection(
            id=self.boat_id,
            name=self.name,
            type=self.type,
            length=self.length,
            public=self.is_public,
            loads=loads,
            self_link=resource_url(base_url, BOATS, self.boat_id),
        )


class Load(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    load_id: str
    volume: int
    content: str
    creation_date: str
    owner: Optional[str] = None
    carrier: Optional[str] = None
    version: int = 0

    @field_validator("volume")
    @classmethod
    def volume_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Volume must be positive")
        return v

    @classmethod
    def from_storage(
        cls, record: Union[bytes, str, Mapping[str, Any]]
    ) -> "Load":
        """Rebuild a Load from its stored representation."""
        if isinstance(record, (bytes, str)):
            return cls.model_validate_json(record)
        return cls.model_validate(record)

    @classmethod
    def from_input(
        cls, load_id: str, payload: Mapping[str, Any], owner: Optional[str]
    ) -> "Load":
        """Create a new, unassigned Load from validated request fields."""
        if _missing_fields(payload, LOAD_REQUIRED_FIELDS):
            raise RequestShapeError(MISSING_ATTRIBUTES_REASON)
        return cls(
            load_id=load_id,
            volume=payload["volume"],
            content=payload["content"],
            creation_date=payload["creation_date"],
            owner=owner,
        )

    def apply_changes(self, changes: Mapping[str, Any]) -> bool:
        """Overwrite descriptive fields; ``carrier`` is never touched here."""
        recognized = {
            k: v
            for k, v in changes.items()
            if k in LOAD_REQUIRED_FIELDS and v is not None
        }
        if not recognized:
            return False
        if "volume" in recognized:
            self.volume = recognized["volume"]
        if "content" in recognized:
            self.content = recognized["content"]
        if "creation_date" in recognized:
            self.creation_date = recognized["creation_date"]
        return True

    @property
    def is_assigned(self) -> bool:
        return self.carrier is not None

    def is_carried_by(self, boat_id: str) -> bool:
        return self.carrier is not None and self.carrier == boat_id

    def to_projection(self, base_url: str) -> LoadProjection:
        carrier = None
        if self.carrier is not None:
            carrier = ResourceRef(
                id=self.carrier,
                self_link=resource_url(base_url, BOATS, self.carrier),
            )
        return LoadProjection(
            id=self.load_id,
            volume=self.volume,
            content=self.content,
            creation_date=self.creation_date,
            carrier=carrier,
            self_link=resource_url(base_url, LOADS, self.load_id),
        )


class User(BaseModel):
    user_id: str
    sub: str
    first_name: str = ""
    last_name: str = ""
    account_created: date = Field(default_factory=date.today)
    version: int = 0

    @field_validator("sub")
    @classmethod
    def sub_must_not_be_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Subject identifier must not be empty")
        return v

    @classmethod
    def from_storage(
        cls, record: Union[bytes, str, Mapping[str, Any]]
    ) -> "User":
        if isinstance(record, (bytes, str)):
            return cls.model_validate_json(record)
        return cls.model_validate(record)

    def to_projection(self, base_url: str) -> UserProjection:
        return UserProjection(
            id=self.user_id,
            sub=self.sub,
            first_name=self.first_name,
            last_name=self.last_name,
            account_created=self.account_created.strftime("%m/%d/%Y"),
            self_link=resource_url(base_url, USERS, self.sub),
        )


class Principal(BaseModel):
    """Authenticated caller identity derived from a verified ID token."""

    sub: str
    first_name: str = ""
    last_name: str = ""


class AssignmentOutcome(BaseModel):
    """Result of an assign or unassign attempt."""

    status: Literal[
        "assigned", "unassigned", "not_found", "conflict", "unauthenticated"
    ]
    reason: Optional[str] = None
    missing: List[Literal["boat", "load"]] = Field(default_factory=list)

    @model_validator(mode="after")
    def failures_must_carry_details(self) -> "AssignmentOutcome":
        if self.status not in ("assigned", "unassigned") and not self.reason:
            raise ValueError("Failed outcomes must carry a reason")
        if self.status == "not_found" and not self.missing:
            raise ValueError(
                "not_found outcomes must name the missing resource"
            )
        return self

    @property
    def succeeded(self) -> bool:
        return self.status in ("assigned", "unassigned")


class ReconciliationReport(BaseModel):
    """Summary of a reconciliation pass over all Boats and Loads."""

    boats_scanned: int = 0
    loads_scanned: int = 0
    dangling_refs_removed: int = 0
    stale_refs_removed: int = 0
    duplicate_refs_removed: int = 0
    carriers_cleared: int = 0
    refs_restored: int = 0
    skipped: List[str] = Field(default_factory=list)

    @property
    def repairs(self) -> int:
        return (
            self.dangling_refs_removed
            + self.stale_refs_removed
            + self.duplicate_refs_removed
            + self.carriers_cleared
            + self.refs_restored
        )

    def as_log_extra(self) -> Dict[str, Any]:
        return self.model_dump() | {"repairs": self.repairs}
