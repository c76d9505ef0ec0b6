"""
Loads API router.

Routes defined at root level:
- POST / - Create a load
- GET / - List loads (paginated)
- GET /{load_id} - Get a load
- PATCH /{load_id} - Partially update a load
- PUT /{load_id} - Replace a load's attributes
- DELETE /{load_id} - Delete a load that is not on a boat

A load's carrier is changed only through the /boats/{boat_id}/loads routes.

These routes are mounted at /loads in the main app.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Response
from fastapi.responses import RedirectResponse
from fastapi_pagination import Page, paginate

from fleet.api.dependencies import (
    get_base_url,
    get_load_use_case,
    get_principal,
    require_json_response,
)
from fleet.api.requests import LoadRequest
from fleet.domain import LOADS, LoadProjection, Principal, resource_url
from fleet.exceptions import MethodNotAllowedError
from fleet.usecase import LoadUseCase

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_json_response)])


@router.post("", response_model=LoadProjection, status_code=201)
async def create_load(
    request: LoadRequest,
    response: Response,
    principal: Optional[Principal] = Depends(get_principal),
    loads: LoadUseCase = Depends(get_load_use_case),
    base_url: str = Depends(get_base_url),
) -> LoadProjection:
    load = await loads.create_load(
        request.model_dump(exclude_unset=True), principal
    )
    projection = load.to_projection(base_url)
    response.headers["Location"] = projection.self_link
    return projection


@router.get("", response_model=Page[LoadProjection])
async def list_loads(
    loads: LoadUseCase = Depends(get_load_use_case),
    base_url: str = Depends(get_base_url),
) -> Page[LoadProjection]:
    results = await loads.list_loads()
    logger.info("Loads listed", extra={"count": len(results)})
    return paginate(  # type: ignore[no-any-return]
        [load.to_projection(base_url) for load in results]
    )


@router.put("", include_in_schema=False)
@router.patch("", include_in_schema=False)
async def update_all_loads() -> None:
    raise MethodNotAllowedError("You cannot update all loads.")


@router.get("/{load_id}", response_model=LoadProjection)
async def get_load(
    load_id: str = Path(description="The ID of the load to retrieve"),
    loads: LoadUseCase = Depends(get_load_use_case),
    base_url: str = Depends(get_base_url),
) -> LoadProjection:
    load = await loads.get_load(load_id)
    return load.to_projection(base_url)


@router.patch("/{load_id}", response_model=LoadProjection)
async def patch_load(
    request: LoadRequest,
    load_id: str = Path(description="The ID of the load to update"),
    principal: Optional[Principal] = Depends(get_principal),
    loads: LoadUseCase = Depends(get_load_use_case),
    base_url: str = Depends(get_base_url),
) -> LoadProjection:
    load = await loads.update_load(
        load_id, request.model_dump(exclude_unset=True), principal
    )
    return load.to_projection(base_url)


@router.put("/{load_id}", status_code=303)
async def replace_load(
    request: LoadRequest,
    load_id: str = Path(description="The ID of the load to replace"),
    principal: Optional[Principal] = Depends(get_principal),
    loads: LoadUseCase = Depends(get_load_use_case),
    base_url: str = Depends(get_base_url),
) -> RedirectResponse:
    await loads.update_load(
        load_id,
        request.model_dump(exclude_unset=True),
        principal,
        replace=True,
    )
    return RedirectResponse(
        url=resource_url(base_url, LOADS, load_id), status_code=303
    )


@router.delete("/{load_id}", status_code=204)
async def delete_load(
    load_id: str = Path(description="The ID of the load to delete"),
    principal: Optional[Principal] = Depends(get_principal),
    loads: LoadUseCase = Depends(get_load_use_case),
) -> Response:
    await loads.delete_load(load_id, principal)
    return Response(status_code=204)
