"""Pydantic models for response validation."""
from datetime import datetime, timezone
from typing import Literal
from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    service: str = Field(..., description="Service name")
    database: Literal["connected", "disconnected"] = Field(..., description="PostgreSQL status")
    timestamp: datetime = Field(default_factory=_utcnow, description="Health check timestamp")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error message")
