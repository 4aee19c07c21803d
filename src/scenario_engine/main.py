"""Scenario Engine service FastAPI application."""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from src.shared.config import ScenarioEngineConfig
from src.shared.constants import VERSION, SCENARIO_ENGINE_SERVICE_NAME
from src.shared.errors import register_exception_handlers
from src.shared.logging import TraceIDMiddleware, setup_logging

config = ScenarioEngineConfig()
logger = setup_logging(SCENARIO_ENGINE_SERVICE_NAME, config.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - record start time and configuration."""
    app.state.start_time = time.time()
    app.state.config = config

    logger.info(
        "Service started: name=%s version=%s specs=%d",
        SCENARIO_ENGINE_SERVICE_NAME, VERSION, len(config.swagger_file_paths),
    )
    yield
    logger.info("Service stopped: name=%s", SCENARIO_ENGINE_SERVICE_NAME)


app = FastAPI(
    title="Scenario Engine",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(TraceIDMiddleware)
register_exception_handlers(app)

# Register all routers
from src.scenario_engine.routers.health import router as health_router
from src.scenario_engine.routers.dependencies import router as dependencies_router
from src.scenario_engine.routers.test_definitions import router as test_definitions_router

app.include_router(health_router)
app.include_router(dependencies_router)
app.include_router(test_definitions_router)
