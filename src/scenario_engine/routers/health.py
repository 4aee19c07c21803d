"""Health check endpoint for the Scenario Engine."""
from __future__ import annotations
import time

from fastapi import APIRouter, Request

from src.shared.models.common import HealthStatus
from src.shared.constants import VERSION, SCENARIO_ENGINE_SERVICE_NAME

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthStatus)
async def health(request: Request) -> HealthStatus:
    """Report uptime and the spec files configured for analysis."""
    start_time = getattr(request.app.state, "start_time", time.time())
    config = getattr(request.app.state, "config", None)
    if config is None:
        return HealthStatus(
            status="degraded",
            service_name=SCENARIO_ENGINE_SERVICE_NAME,
            version=VERSION,
            uptime_seconds=time.time() - start_time,
            details={"config": "not loaded"},
        )
    return HealthStatus(
        service_name=SCENARIO_ENGINE_SERVICE_NAME,
        version=VERSION,
        uptime_seconds=time.time() - start_time,
        configured_specs=len(config.swagger_file_paths),
        analyzer_flags={
            "noExternalDependencyResourceType": config.no_external_dependency_resource_type,
            "filerTopLevelResourceType": config.filer_top_level_resource_type,
        },
    )
