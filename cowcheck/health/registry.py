"""Check registry — ordered, name-unique, frozen once polling starts."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from ..config import Settings
from ..metrics import HealthMetrics
from .checks import Check, DnsCheck, MetadataCheck, StorageCheck

logger = logging.getLogger(__name__)


class CheckRegistryError(Exception):
    """Raised on duplicate check names or registration after freeze."""


class CheckRegistry:
    """Holds every registered Check in registration order."""

    def __init__(self, checks: Iterable[Check] = ()) -> None:
        self._checks: list[Check] = []
        self._frozen = False
        for check in checks:
            self.register(check)

    def register(self, check: Check) -> Check:
        if self._frozen:
            raise CheckRegistryError(f"Registry is frozen, cannot add {check.name}")
        if self.get(check.name) is not None:
            raise CheckRegistryError(f"Duplicate check name: {check.name}")
        self._checks.append(check)
        logger.debug("Registered check %s", check.name)
        return check

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Check | None:
        for check in self._checks:
            if check.name == name:
                return check
        return None

    def names(self) -> list[str]:
        return [c.name for c in self._checks]

    def __iter__(self) -> Iterator[Check]:
        return iter(tuple(self._checks))

    def __len__(self) -> int:
        return len(self._checks)


def build_registry(settings: Settings, metrics: HealthMetrics | None = None) -> CheckRegistry:
    """The node's standard checks, configured from settings."""
    return CheckRegistry([
        DnsCheck(
            query_name=settings.dns_query_name,
            resolv_conf=settings.resolv_conf,
            timeout=settings.dns_timeout,
        ),
        MetadataCheck(url=settings.metadata_url, timeout=settings.metadata_timeout),
        StorageCheck(
            enabled=settings.enable_storage_check,
            data_threshold=settings.data_space_threshold,
            metadata_threshold=settings.metadata_space_threshold,
            timeout=settings.storage_timeout,
            metrics=metrics,
        ),
    ])
