"""FastAPI server for the cowcheck daemon."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cowcheck import __version__
from cowcheck.api.health_routes import health_router
from cowcheck.config import Settings, settings as default_settings
from cowcheck.health.registry import CheckRegistry, build_registry
from cowcheck.health.scheduler import HealthScheduler
from cowcheck.health.state import NodeHealth
from cowcheck.metrics import HealthMetrics

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start polling on startup, stop it on shutdown."""
    scheduler = HealthScheduler(
        app.state.node_health,
        interval=float(app.state.settings.poll_interval),
    )
    app.state.health_scheduler = scheduler

    await scheduler.start()

    yield

    await scheduler.stop()


def create_app(
    settings: Settings | None = None,
    registry: CheckRegistry | None = None,
    metrics: HealthMetrics | None = None,
) -> FastAPI:
    """Build the app with its NodeHealth context on app.state.

    registry defaults to the standard DNS / metadata / storage checks.
    """
    settings = settings or default_settings
    metrics = metrics or HealthMetrics()
    if registry is None:
        registry = build_registry(settings, metrics)

    app = FastAPI(
        title="cowcheck - node health",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.node_health = NodeHealth(registry, metrics)

    app.include_router(health_router)

    return app
