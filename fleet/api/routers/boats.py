"""
Boats API router.

Routes defined at root level:
- POST / - Create a boat
- GET / - List the caller's boats, or public boats for anonymous callers
- GET /{boat_id} - Get a boat with its loads
- PATCH /{boat_id} - Partially update a boat
- PUT /{boat_id} - Replace a boat's attributes
- DELETE /{boat_id} - Delete an empty boat
- PUT /{boat_id}/loads/{load_id} - Put a load on a boat
- DELETE /{boat_id}/loads/{load_id} - Take a load off a boat

These routes are mounted at /boats in the main app.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Response
from fastapi.responses import RedirectResponse
from fastapi_pagination import Page, paginate

from fleet.api.dependencies import (
    get_assignment_use_case,
    get_base_url,
    get_boat_use_case,
    get_principal,
    require_json_response,
)
from fleet.api.errors import outcome_response
from fleet.api.requests import BoatRequest
from fleet.domain import BOATS, BoatProjection, Principal, resource_url
from fleet.exceptions import MethodNotAllowedError, RecordNotFoundError
from fleet.usecase import AssignmentUseCase, BoatUseCase

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_json_response)])


@router.post("", response_model=BoatProjection, status_code=201)
async def create_boat(
    request: BoatRequest,
    response: Response,
    principal: Optional[Principal] = Depends(get_principal),
    boats: BoatUseCase = Depends(get_boat_use_case),
    base_url: str = Depends(get_base_url),
) -> BoatProjection:
    boat = await boats.create_boat(
        request.model_dump(exclude_unset=True), principal
    )
    projection = boat.to_projection(base_url)
    response.headers["Location"] = projection.self_link
    return projection


@router.get("", response_model=Page[BoatProjection])
async def list_boats(
    principal: Optional[Principal] = Depends(get_principal),
    boats: BoatUseCase = Depends(get_boat_use_case),
    base_url: str = Depends(get_base_url),
) -> Page[BoatProjection]:
    """
    Authenticated callers get the boats they own; anonymous callers get the
    public boats. Loads are rendered from the stored references without
    reading the Load records.
    """
    results = await boats.list_boats(principal)
    logger.info(
        "Boats listed",
        extra={"count": len(results), "authenticated": bool(principal)},
    )
    return paginate(  # type: ignore[no-any-return]
        [boat.to_projection(base_url) for boat in results]
    )


@router.put("", include_in_schema=False)
@router.patch("", include_in_schema=False)
async def update_all_boats() -> None:
    raise MethodNotAllowedError("You cannot update all boats.")


@router.get("/{boat_id}", response_model=BoatProjection)
async def get_boat(
    boat_id: str = Path(description="The ID of the boat to retrieve"),
    assignments: AssignmentUseCase = Depends(get_assignment_use_case),
    base_url: str = Depends(get_base_url),
) -> BoatProjection:
    projection = await assignments.fetch_boat_with_loads(boat_id, base_url)
    if projection is None:
        raise RecordNotFoundError("boat", boat_id)
    return projection


@router.patch("/{boat_id}", response_model=BoatProjection)
async def patch_boat(
    request: BoatRequest,
    boat_id: str = Path(description="The ID of the boat to update"),
    principal: Optional[Principal] = Depends(get_principal),
    boats: BoatUseCase = Depends(get_boat_use_case),
    base_url: str = Depends(get_base_url),
) -> BoatProjection:
    boat = await boats.update_boat(
        boat_id, request.model_dump(exclude_unset=True), principal
    )
    return boat.to_projection(base_url)


@router.put("/{boat_id}", status_code=303)
async def replace_boat(
    request: BoatRequest,
    boat_id: str = Path(description="The ID of the boat to replace"),
    principal: Optional[Principal] = Depends(get_principal),
    boats: BoatUseCase = Depends(get_boat_use_case),
    base_url: str = Depends(get_base_url),
) -> RedirectResponse:
    await boats.update_boat(
        boat_id,
        request.model_dump(exclude_unset=True),
        principal,
        replace=True,
    )
    return RedirectResponse(
        url=resource_url(base_url, BOATS, boat_id), status_code=303
    )


@router.delete("/{boat_id}", status_code=204)
async def delete_boat(
    boat_id: str = Path(description="The ID of the boat to delete"),
    principal: Optional[Principal] = Depends(get_principal),
    boats: BoatUseCase = Depends(get_boat_use_case),
) -> Response:
    await boats.delete_boat(boat_id, principal)
    return Response(status_code=204)


@router.put("/{boat_id}/loads/{load_id}", status_code=204)
async def assign_load(
    boat_id: str,
    load_id: str,
    principal: Optional[Principal] = Depends(get_principal),
    assignments: AssignmentUseCase = Depends(get_assignment_use_case),
) -> Response:
    outcome = await assignments.assign_load(boat_id, load_id, principal)
    return outcome_response(outcome)


@router.delete("/{boat_id}/loads/{load_id}", status_code=204)
async def unassign_load(
    boat_id: str,
    load_id: str,
    principal: Optional[Principal] = Depends(get_principal),
    assignments: AssignmentUseCase = Depends(get_assignment_use_case),
) -> Response:
    outcome = await assignments.unassign_load(boat_id, load_id, principal)
    return outcome_response(outcome)
