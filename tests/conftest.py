"""Shared test fixtures."""

from __future__ import annotations

import pytest

from cowcheck.config import Settings
from cowcheck.health.checks import Check, Outcome, ProbeResult
from cowcheck.health.registry import CheckRegistry
from cowcheck.health.state import NodeHealth
from cowcheck.metrics import HealthMetrics


class FakeCheck(Check):
    """Check whose probe outcome is set by the test."""

    def __init__(self, name: str = "FakeCheck", outcome: Outcome = Outcome.PASS) -> None:
        super().__init__(name, "FakeCheck")
        self.outcome = outcome
        self.calls = 0

    def probe(self) -> ProbeResult:
        self.calls += 1
        return self.outcome, f"fake {self.outcome.value}"


class ExplodingCheck(Check):
    """Check whose evaluate() itself raises, bypassing the base-class guard."""

    def __init__(self, name: str = "ExplodingCheck") -> None:
        super().__init__(name, "ExplodingCheck")
        self.calls = 0

    def evaluate(self) -> None:
        self.calls += 1
        raise RuntimeError("driver fault")


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def metrics() -> HealthMetrics:
    return HealthMetrics()


@pytest.fixture
def fake_checks() -> list[FakeCheck]:
    return [FakeCheck("FakeA"), FakeCheck("FakeB"), FakeCheck("FakeC")]


@pytest.fixture
def registry(fake_checks: list[FakeCheck]) -> CheckRegistry:
    return CheckRegistry(fake_checks)


@pytest.fixture
def node_health(registry: CheckRegistry, metrics: HealthMetrics) -> NodeHealth:
    return NodeHealth(registry, metrics)


@pytest.fixture
def make_fake():
    """Factory for FakeCheck instances."""
    return FakeCheck


@pytest.fixture
def make_exploding():
    """Factory for ExplodingCheck instances."""
    return ExplodingCheck
