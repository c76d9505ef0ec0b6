"""
Liveness route for the fleet API, mounted at the application root.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from fleet.api.dependencies import get_storage_backend
from fleet.api.responses import HealthCheckResponse

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Report that the process is serving and which store it writes to.

    Storage is not contacted; a broken MinIO shows up on the first
    boat, load or user request instead.
    """
    backend = get_storage_backend()
    logger.debug("Health probe", extra={"storage_backend": backend})
    return HealthCheckResponse(
        status="ok",
        version=API_VERSION,
        storage_backend=backend,
        timestamp=datetime.now(timezone.utc),
    )
