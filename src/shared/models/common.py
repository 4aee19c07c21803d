"""Common Pydantic v2 data models shared across services."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    """Health status of the scenario engine.

    ``configured_specs`` counts the spec files named by
    ``SWAGGER_FILE_PATHS``; requests may still name their own.
    """
    status: str = Field(
        default="healthy",
        pattern=r"^(healthy|degraded|unhealthy)$"
    )
    service_name: str
    version: str
    uptime_seconds: float
    configured_specs: int = 0
    analyzer_flags: dict[str, bool] = Field(default_factory=dict)
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}
