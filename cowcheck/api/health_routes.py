"""HTTP exposition of node health.

Endpoints:
  GET  /                   — 200 "Everything OK" / 503 "Failed"
  GET  /health             — same as /
  GET  /metrics            — Prometheus gauges
  GET  /health/checks      — per-check diagnostics (JSON)
  POST /health/checks/run  — run an evaluation pass now, return diagnostics
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse

logger = logging.getLogger(__name__)

health_router = APIRouter()

OK_BODY = "Everything OK"
FAILED_BODY = "Failed"


@health_router.get("/", response_class=PlainTextResponse)
@health_router.get("/health", response_class=PlainTextResponse)
def check_state(request: Request) -> PlainTextResponse:
    """Binary node health for orchestrators."""
    if request.app.state.node_health.healthy:
        return PlainTextResponse(OK_BODY, status_code=200)
    return PlainTextResponse(FAILED_BODY, status_code=503)


@health_router.get("/metrics")
def metrics(request: Request) -> Response:
    """Prometheus text exposition."""
    health_metrics = request.app.state.metrics
    return Response(content=health_metrics.render(), media_type=health_metrics.content_type)


@health_router.get("/health/checks")
def list_checks(request: Request) -> dict[str, Any]:
    """Aggregate health plus the last known state of every check."""
    return request.app.state.node_health.to_dict()


@health_router.post("/health/checks/run")
async def run_checks(request: Request) -> dict[str, Any]:
    """Trigger an immediate evaluation pass."""
    scheduler = getattr(request.app.state, "health_scheduler", None)
    if scheduler is None or not scheduler.running:
        raise HTTPException(status_code=409, detail="Health scheduler is not running")
    await scheduler.run_pass_now()
    return request.app.state.node_health.to_dict()
