"""Node health — the registry plus the aggregate flag derived from it.

One NodeHealth is built at startup and handed to both the scheduler (the
only writer) and the HTTP handlers (readers).
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from ..metrics import HealthMetrics
from .registry import CheckRegistry

logger = logging.getLogger(__name__)


class NodeHealth:
    """Aggregate node health: True iff every registered check is healthy."""

    def __init__(self, registry: CheckRegistry, metrics: HealthMetrics | None = None) -> None:
        self.registry = registry
        self.metrics = metrics
        self._lock = threading.Lock()
        self._healthy = True

    @property
    def healthy(self) -> bool:
        with self._lock:
            return self._healthy

    def aggregate(self) -> bool:
        """Recompute the aggregate from every check's last status."""
        healthy = True
        for check in self.registry:
            status = check.status
            logger.debug("Reading state of check %s: %s", check.name, status)
            if not status:
                healthy = False

        with self._lock:
            previous = self._healthy
            self._healthy = healthy

        if self.metrics:
            self.metrics.set_node_health(healthy)

        if previous and not healthy:
            failed = [c.name for c in self.registry if not c.status]
            logger.warning("Node health degraded, failing checks: %s", ", ".join(failed))
        elif healthy and not previous:
            logger.info("Node health restored")
        return healthy

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "checks": [c.snapshot() for c in self.registry],
        }
