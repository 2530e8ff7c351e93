"""Error and health response schemas shared by every router."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every non-2xx response (problem+json style)."""

    error: str = Field(..., description="Machine-readable error code", examples=["INVALID_INPUT"])
    message: str
    status: int
    details: Optional[Dict[str, Any]] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "INVALID_INPUT",
                "message": "start_date must be before end_date",
                "status": 400,
            }
        }
    }


class HealthResponse(BaseModel):
    status: str = Field(..., examples=["healthy", "unhealthy"])
    version: str
    timestamp: datetime
    checks: Dict[str, bool] = Field(default_factory=dict)
    scheduler_running: bool = False
    next_runs: Dict[str, Optional[datetime]] = Field(
        default_factory=dict, description="Next scheduled run per job"
    )
    latest_evaluation_date: Optional[date] = Field(
        default=None, description="Newest evaluation date with a stored ranking"
    )
