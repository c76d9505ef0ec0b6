"""
Pydantic models for API responses.

Resources are returned as the domain projections (``BoatProjection``,
``LoadProjection``, ``UserProjection``). This file holds only the response
models specific to API concerns.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class HealthCheckResponse(BaseModel):
    """Response for health check endpoint."""

    status: str
    version: str
    storage_backend: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Body of every failed request."""

    error: str = Field(alias="Error")
