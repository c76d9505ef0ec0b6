"""
FastAPI application for the Boats, Loads and Users API.

The API provides endpoints for:
- Boats (CRUD, plus putting loads on and taking them off boats)
- Loads (CRUD)
- Users (read-only; created on first authentication)
- Health checks

Every failure is returned as ``{"Error": "<reason>"}`` with the status code
chosen in ``fleet.api.errors``.
"""

import logging

from fastapi import FastAPI
from fastapi_pagination import add_pagination
from fastapi_pagination.utils import disable_installed_extensions_check

from fleet.api.errors import register_exception_handlers
from fleet.api.routers import boats, loads, system, users
from fleet.api.routers.system import API_VERSION
from fleet.worker import setup_logging

# Disable pagination extensions check for cleaner startup
disable_installed_extensions_check()

# Setup logging when module is imported
setup_logging()
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    application = FastAPI(
        title="Fleet API",
        description="Boats, Loads and the assignments between them",
        version=API_VERSION,
    )
    register_exception_handlers(application)
    add_pagination(application)

    application.include_router(system.router, tags=["System"])
    application.include_router(boats.router, prefix="/boats", tags=["Boats"])
    application.include_router(loads.router, prefix="/loads", tags=["Loads"])
    application.include_router(users.router, prefix="/users", tags=["Users"])
    return application


app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "fleet.api.app:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "8000")),
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
    )
