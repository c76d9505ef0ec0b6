"""
Translation of fleet failures into HTTP responses.

Every failure body has the shape ``{"Error": "<reason>"}``.
"""

import logging
from typing import Dict, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from fleet.domain import MISSING_ATTRIBUTES_REASON, AssignmentOutcome
from fleet.exceptions import (
    ConflictError,
    FleetError,
    MethodNotAllowedError,
    NotAcceptableError,
    NotOwnerError,
    RecordNotFoundError,
    RequestShapeError,
    UnauthenticatedError,
)
from fleet.usecase import INVALID_VALUES_REASON
from fleet.validation import UNRECOGNIZED_ATTRIBUTES_REASON

logger = logging.getLogger(__name__)

INTERNAL_ERROR_REASON = "The request failed due to an internal error."
INVALID_JSON_REASON = "The request body is not valid JSON."

STATUS_BY_ERROR: Dict[Type[FleetError], int] = {
    UnauthenticatedError: 401,
    RecordNotFoundError: 404,
    ConflictError: 403,
    NotOwnerError: 403,
    RequestShapeError: 400,
    NotAcceptableError: 406,
    MethodNotAllowedError: 405,
}

STATUS_BY_OUTCOME = {
    "not_found": 404,
    "conflict": 403,
    "unauthenticated": 401,
}


def error_response(status_code: int, reason: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"Error": reason})


def status_for(error: FleetError) -> int:
    for cls in type(error).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 400


def outcome_response(outcome: AssignmentOutcome) -> Response:
    """204 for a completed assignment change, the mapped error otherwise."""
    if outcome.succeeded:
        return Response(status_code=204)
    return error_response(
        STATUS_BY_OUTCOME[outcome.status], outcome.reason or ""
    )


def request_validation_reason(exc: RequestValidationError) -> str:
    kinds = {err.get("type") for err in exc.errors()}
    if "extra_forbidden" in kinds:
        return UNRECOGNIZED_ATTRIBUTES_REASON
    if "json_invalid" in kinds:
        return INVALID_JSON_REASON
    if "missing" in kinds:
        return MISSING_ATTRIBUTES_REASON
    return INVALID_VALUES_REASON


async def handle_fleet_error(request: Request, exc: Exception) -> Response:
    assert isinstance(exc, FleetError)
    status_code = status_for(exc)
    logger.info(
        "Request failed",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "error_type": type(exc).__name__,
            "reason": exc.reason,
        },
    )
    return error_response(status_code, exc.reason)


async def handle_validation_error(
    request: Request, exc: Exception
) -> Response:
    assert isinstance(exc, RequestValidationError)
    reason = request_validation_reason(exc)
    logger.info(
        "Request body rejected",
        extra={
            "path": request.url.path,
            "method": request.method,
            "reason": reason,
        },
    )
    return error_response(400, reason)


async def handle_unexpected_error(
    request: Request, exc: Exception
) -> Response:
    logger.error(
        "Unhandled error while processing request",
        exc_info=exc,
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc),
        },
    )
    return error_response(500, INTERNAL_ERROR_REASON)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FleetError, handle_fleet_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
