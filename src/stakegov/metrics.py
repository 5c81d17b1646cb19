"""
stakegov/metrics.py

Prometheus metrics collection for stakegov.

Counts ledger operations and rejected operations, and renders them in
Prometheus text format for scraping or debugging.
"""

import time
import logging
from typing import Dict, Any

logger = logging.getLogger("stakegov.metrics")


class MetricsCollector:
    """
    Prometheus metrics collector for the stake ledger and governance registry.

    Usage:
        from stakegov.metrics import MetricsCollector

        metrics = MetricsCollector()
        ledger = StakeLedger(store, config, metrics=metrics)
        registry = GovernanceRegistry(store, config, metrics=metrics)

        prometheus_output = metrics.collect()
    """

    # Metric definitions
    METRICS = {
        "stakegov_stakes_created_total": {
            "type": "counter",
            "help": "Total number of stake entries created",
        },
        "stakegov_stakes_claimed_total": {
            "type": "counter",
            "help": "Total number of stake entries claimed",
        },
        "stakegov_staked_amount_total": {
            "type": "counter",
            "help": "Total amount staked across all entries",
        },
        "stakegov_proposals_created_total": {
            "type": "counter",
            "help": "Total number of governance proposals created",
        },
        "stakegov_votes_cast_total": {
            "type": "counter",
            "help": "Total number of votes cast",
        },
        "stakegov_proposals_executed_total": {
            "type": "counter",
            "help": "Total number of proposals executed",
        },
        "stakegov_operations_rejected_total": {
            "type": "counter",
            "help": "Operations rejected by validation or lifecycle checks",
        },
        "stakegov_uptime_seconds": {
            "type": "counter",
            "help": "Collector uptime in seconds",
        },
    }

    def __init__(self):
        self._start_time = time.time()
        self._stakes_created = 0
        self._stakes_claimed = 0
        self._staked_amount = 0.0
        self._proposals_created = 0
        self._votes_cast = 0
        self._proposals_executed = 0
        self._rejections: Dict[str, int] = {}

    def record_stake_created(self, amount: float) -> None:
        self._stakes_created += 1
        self._staked_amount += amount

    def record_stake_claimed(self) -> None:
        self._stakes_claimed += 1

    def record_proposal_created(self) -> None:
        self._proposals_created += 1

    def record_vote_cast(self) -> None:
        self._votes_cast += 1

    def record_proposal_executed(self) -> None:
        self._proposals_executed += 1

    def record_rejection(self, reason: str) -> None:
        """Record a rejected operation, keyed by error class name."""
        self._rejections[reason] = self._rejections.get(reason, 0) + 1

    def collect(self) -> str:
        """
        Collect all metrics and return in Prometheus format.

        Returns:
            Prometheus-formatted metrics string
        """
        lines = []

        def add_header(name: str):
            metric_def = self.METRICS.get(name, {})
            lines.append(f"# HELP {name} {metric_def.get('help', '')}")
            lines.append(f"# TYPE {name} {metric_def.get('type', 'gauge')}")

        def add_metric(name: str, value: float):
            add_header(name)
            lines.append(f"{name} {value}")

        add_metric("stakegov_stakes_created_total", self._stakes_created)
        add_metric("stakegov_stakes_claimed_total", self._stakes_claimed)
        add_metric("stakegov_staked_amount_total", self._staked_amount)
        add_metric("stakegov_proposals_created_total", self._proposals_created)
        add_metric("stakegov_votes_cast_total", self._votes_cast)
        add_metric("stakegov_proposals_executed_total", self._proposals_executed)

        add_header("stakegov_operations_rejected_total")
        for reason in sorted(self._rejections):
            lines.append(
                f'stakegov_operations_rejected_total{{reason="{reason}"}} {self._rejections[reason]}'
            )

        add_metric("stakegov_uptime_seconds", time.time() - self._start_time)

        return "\n".join(lines) + "\n"

    def get_stats(self) -> Dict[str, Any]:
        """
        Get metrics as a dictionary.

        Returns:
            Dictionary of metric values
        """
        return {
            "stakes_created": self._stakes_created,
            "stakes_claimed": self._stakes_claimed,
            "staked_amount": self._staked_amount,
            "proposals_created": self._proposals_created,
            "votes_cast": self._votes_cast,
            "proposals_executed": self._proposals_executed,
            "rejections": dict(self._rejections),
            "uptime_seconds": time.time() - self._start_time,
        }

    def reset_counters(self) -> None:
        """Reset all counters (useful for testing)."""
        self._stakes_created = 0
        self._stakes_claimed = 0
        self._staked_amount = 0.0
        self._proposals_created = 0
        self._votes_cast = 0
        self._proposals_executed = 0
        self._rejections = {}
