"""Shared constants used across all services."""
from __future__ import annotations

# Application version
VERSION: str = "1.0.0"

# Port numbers
SCENARIO_ENGINE_PORT: int = 8004
INTERNAL_PORT: int = 8000

# Service names
SCENARIO_ENGINE_SERVICE_NAME: str = "scenario-engine"

# Test definition defaults
DEFAULT_SCOPE: str = "ResourceGroup"
RESOURCE_GROUP_SCOPE: str = "ResourceGroup"
RESOURCE_GROUP_REQUIRED_VARIABLES: tuple[str, ...] = ("subscriptionId", "location")
DEFAULT_STATUS_CODE: int = 200
UNNAMED_STEP: str = "__step_with_no_name"

# Swagger extensions
X_MS_EXAMPLES: str = "x-ms-examples"
X_MS_ARM_ID_DETAILS: str = "x-ms-arm-id-details"
X_MS_DISCRIMINATOR_VALUE: str = "x-ms-discriminator-value"

HTTP_METHODS: tuple[str, ...] = (
    "get", "put", "post", "patch", "delete", "head", "options",
)
