"""Shared configuration management using pydantic-settings."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class SharedConfig(BaseSettings):
    """Base configuration shared across all services."""
    log_level: str = Field(default="info", validation_alias="LOG_LEVEL")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


class ScenarioEngineConfig(SharedConfig):
    """Configuration for the Scenario Engine service.

    ``SWAGGER_FILE_PATHS`` is parsed as a JSON list, e.g.
    ``'["specification/foo/foo.json"]'``.
    """
    swagger_file_paths: list[str] = Field(
        default_factory=list, validation_alias="SWAGGER_FILE_PATHS"
    )
    no_external_dependency_resource_type: bool = Field(
        default=False, validation_alias="NO_EXTERNAL_DEPENDENCY_RESOURCE_TYPE"
    )
    filer_top_level_resource_type: bool = Field(
        default=False, validation_alias="FILER_TOP_LEVEL_RESOURCE_TYPE"
    )
