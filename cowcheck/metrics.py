"""Prometheus gauges for node health and Docker storage headroom.

Each HealthMetrics owns its own CollectorRegistry so several apps (and
tests) can live in one process without duplicate-series errors.
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

NAMESPACE = "cowcheck"
SUBSYSTEM = "node"

STORAGE_POOLS = ("data", "metadata")


class HealthMetrics:
    """Gauges written at evaluation / aggregation time, read at scrape time."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.node_health = Gauge(
            "health",
            "Boolean representation of overall health of node based on all checks",
            namespace=NAMESPACE,
            subsystem=SUBSYSTEM,
            registry=self.registry,
        )
        self.storage_free = {
            "data": Gauge(
                "docker_data_storage",
                "Amount of free Docker Data Storage space in bytes",
                namespace=NAMESPACE,
                subsystem=SUBSYSTEM,
                registry=self.registry,
            ),
            "metadata": Gauge(
                "docker_metadata_storage",
                "Amount of free Docker Metadata Storage space in bytes",
                namespace=NAMESPACE,
                subsystem=SUBSYSTEM,
                registry=self.registry,
            ),
        }
        # Matches the optimistic default of the aggregate flag
        self.node_health.set(1)

    def set_node_health(self, healthy: bool) -> None:
        self.node_health.set(1 if healthy else 0)

    def set_storage_free(self, pool: str, free_bytes: int) -> None:
        if pool not in self.storage_free:
            raise KeyError(f"Unknown storage pool: {pool}")
        self.storage_free[pool].set(float(free_bytes))

    def render(self) -> bytes:
        """Text exposition of every gauge in this registry."""
        return generate_latest(self.registry)
