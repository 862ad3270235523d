"""Tests for the check registry and node-health aggregation."""

from __future__ import annotations

import pytest

from cowcheck.config import Settings
from cowcheck.health.checks import DnsCheck, MetadataCheck, StorageCheck
from cowcheck.health.registry import CheckRegistry, CheckRegistryError, build_registry
from cowcheck.health.state import NodeHealth
from cowcheck.metrics import HealthMetrics


# ── CheckRegistry ────────────────────────────────────────────────────────────


class TestCheckRegistry:
    def test_registration_order(self, make_fake) -> None:
        reg = CheckRegistry([make_fake("B"), make_fake("A"), make_fake("C")])
        assert reg.names() == ["B", "A", "C"]
        assert len(reg) == 3

    def test_duplicate_name_rejected(self, make_fake) -> None:
        reg = CheckRegistry([make_fake("A")])
        with pytest.raises(CheckRegistryError):
            reg.register(make_fake("A"))

    def test_frozen_rejects_register(self, make_fake) -> None:
        reg = CheckRegistry()
        reg.freeze()
        assert reg.frozen
        with pytest.raises(CheckRegistryError):
            reg.register(make_fake())

    def test_get(self, registry: CheckRegistry) -> None:
        assert registry.get("FakeB").name == "FakeB"
        assert registry.get("nope") is None

    def test_build_registry_from_settings(self) -> None:
        settings = Settings(
            _env_file=None,
            enable_storage_check=True,
            data_space_threshold=5,
            metadata_space_threshold=7,
            metadata_timeout=3.0,
            storage_timeout=4.0,
        )
        reg = build_registry(settings)
        assert reg.names() == ["CheckDNS", "CheckMetadata", "CheckStorage"]
        dns_check, meta_check, storage_check = list(reg)
        assert isinstance(dns_check, DnsCheck)
        assert isinstance(meta_check, MetadataCheck)
        assert meta_check.timeout == 3.0
        assert isinstance(storage_check, StorageCheck)
        assert storage_check.enabled is True
        assert storage_check.thresholds == {"data": 5, "metadata": 7}
        assert storage_check.timeout == 4.0


# ── NodeHealth aggregation ───────────────────────────────────────────────────


def _health_gauge(metrics: HealthMetrics) -> float | None:
    return metrics.registry.get_sample_value("cowcheck_node_health")


class TestNodeHealth:
    def test_default_healthy(self, node_health: NodeHealth, metrics: HealthMetrics) -> None:
        assert node_health.healthy is True
        assert _health_gauge(metrics) == 1.0

    def test_all_healthy(self, node_health: NodeHealth) -> None:
        assert node_health.aggregate() is True
        assert node_health.healthy is True

    def test_one_failure_flips_and_restores(
        self, node_health: NodeHealth, fake_checks, metrics: HealthMetrics,
    ) -> None:
        fake_checks[1].mark_failed("down")
        assert node_health.aggregate() is False
        assert node_health.healthy is False
        assert _health_gauge(metrics) == 0.0

        fake_checks[1].evaluate()  # FakeCheck passes by default
        assert node_health.aggregate() is True
        assert node_health.healthy is True
        assert _health_gauge(metrics) == 1.0

    def test_aggregate_is_projection(self, node_health: NodeHealth, fake_checks) -> None:
        # Failing a check does not change the flag until the next aggregation
        fake_checks[0].mark_failed()
        assert node_health.healthy is True
        node_health.aggregate()
        assert node_health.healthy is False

    def test_empty_registry_is_healthy(self) -> None:
        assert NodeHealth(CheckRegistry()).aggregate() is True

    def test_to_dict(self, node_health: NodeHealth, fake_checks) -> None:
        fake_checks[2].mark_failed("disk")
        node_health.aggregate()
        data = node_health.to_dict()
        assert data["healthy"] is False
        assert [c["name"] for c in data["checks"]] == ["FakeA", "FakeB", "FakeC"]
        assert data["checks"][2]["status"] is False
        assert data["checks"][2]["message"] == "disk"


# ── Metrics ──────────────────────────────────────────────────────────────────


class TestHealthMetrics:
    def test_render_exposes_gauges(self, metrics: HealthMetrics) -> None:
        metrics.set_storage_free("data", 1234)
        text = metrics.render().decode()
        assert "cowcheck_node_health 1.0" in text
        assert "cowcheck_node_docker_data_storage 1234.0" in text
        assert "cowcheck_node_docker_metadata_storage" in text

    def test_unknown_pool(self, metrics: HealthMetrics) -> None:
        with pytest.raises(KeyError):
            metrics.set_storage_free("swap", 1)

    def test_independent_registries(self) -> None:
        a, b = HealthMetrics(), HealthMetrics()
        a.set_node_health(False)
        assert b.registry.get_sample_value("cowcheck_node_health") == 1.0
