"""Resource dependency analysis endpoint."""
from __future__ import annotations
import asyncio
from typing import Any

from fastapi import APIRouter, Request

from src.scenario_engine.services.dependency_analyzer import SwaggerAnalyzer
from src.shared.models.scenarios import AnalyzerOptions

router = APIRouter(prefix="/api", tags=["dependencies"])

_CONFIG_FIELDS = (
    "swagger_file_paths",
    "no_external_dependency_resource_type",
    "filer_top_level_resource_type",
)


@router.post("/dependencies")
async def analyze_dependencies(
    body: AnalyzerOptions, request: Request
) -> dict[str, list[dict[str, Any]]]:
    """Analyze the examples of the given spec files.

    Options missing from the request fall back to the service configuration
    (``SWAGGER_FILE_PATHS`` and the two analyzer flags).  Returns
    ``{exampleFilePath: [record, ...]}``.
    """
    options = body
    config = getattr(request.app.state, "config", None)
    if config is not None:
        update = {
            name: getattr(config, name)
            for name in _CONFIG_FIELDS
            if name not in body.model_fields_set
        }
        if not body.swagger_file_paths:
            update["swagger_file_paths"] = list(config.swagger_file_paths)
        options = body.model_copy(update=update)

    def _analyze() -> dict[str, list[dict[str, Any]]]:
        analyzer = SwaggerAnalyzer.create(options)
        analyzer.initialize()
        result = analyzer.analyze_dependency()
        return {
            path: [record.model_dump(by_alias=True) for record in records]
            for path, records in result.items()
        }

    return await asyncio.to_thread(_analyze)
