"""
Vesting program instrumentation.

Prometheus metrics for processed instructions and the value moving through
vaults. The registry is injectable so tests can use an isolated one.
"""

from __future__ import annotations

from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge


class VestingMetrics:
    """Metrics for vesting instruction processing."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else REGISTRY

        self.instructions_total = Counter(
            "vestvault_instructions_total",
            "Total number of vesting instructions processed",
            ["instruction", "status"],
            registry=self.registry,
        )

        self.value_locked = Counter(
            "vestvault_value_locked_total",
            "Total value deposited into vesting vaults",
            registry=self.registry,
        )

        self.value_released = Counter(
            "vestvault_value_released_total",
            "Total value released from vesting vaults to receivers",
            registry=self.registry,
        )

        self.active_schedules = Gauge(
            "vestvault_active_schedules",
            "Number of vesting schedules initialized and not yet claimed",
            registry=self.registry,
        )

    def record_success(self, instruction: str) -> None:
        self.instructions_total.labels(instruction=instruction, status="ok").inc()

    def record_failure(self, instruction: str, error_type: str) -> None:
        self.instructions_total.labels(instruction=instruction, status=error_type).inc()

    def record_locked(self, amount: int) -> None:
        self.value_locked.inc(amount)
        self.active_schedules.inc()

    def record_released(self, amount: int) -> None:
        self.value_released.inc(amount)
        self.active_schedules.dec()


_default_metrics: Optional[VestingMetrics] = None


def get_vesting_metrics() -> VestingMetrics:
    """Process-wide metrics bound to the default registry."""
    global _default_metrics
    if _default_metrics is None:
        _default_metrics = VestingMetrics()
    return _default_metrics
