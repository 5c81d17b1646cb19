"""
stakegov/tests/test_metrics.py

Tests for the Prometheus metrics collector.
"""

import pytest

from stakegov.metrics import MetricsCollector


class TestMetricsCollector:
    """Test MetricsCollector class."""

    @pytest.fixture
    def metrics(self):
        return MetricsCollector()

    def test_initial_stats(self, metrics):
        """Test counters start at zero."""
        stats = metrics.get_stats()
        assert stats["stakes_created"] == 0
        assert stats["votes_cast"] == 0
        assert stats["rejections"] == {}

    def test_record_operations(self, metrics):
        """Test recording each operation."""
        metrics.record_stake_created(100.0)
        metrics.record_stake_created(50.0)
        metrics.record_stake_claimed()
        metrics.record_proposal_created()
        metrics.record_vote_cast()
        metrics.record_proposal_executed()

        stats = metrics.get_stats()
        assert stats["stakes_created"] == 2
        assert stats["staked_amount"] == 150.0
        assert stats["stakes_claimed"] == 1
        assert stats["proposals_created"] == 1
        assert stats["votes_cast"] == 1
        assert stats["proposals_executed"] == 1

    def test_rejections_by_reason(self, metrics):
        """Test rejections are counted per reason."""
        metrics.record_rejection("AlreadyVotedError")
        metrics.record_rejection("AlreadyVotedError")
        metrics.record_rejection("ValidationError")

        assert metrics.get_stats()["rejections"] == {
            "AlreadyVotedError": 2,
            "ValidationError": 1,
        }

    def test_collect_prometheus_format(self, metrics):
        """Test Prometheus text output."""
        metrics.record_vote_cast()
        metrics.record_rejection("StillOpenError")

        output = metrics.collect()

        assert "# TYPE stakegov_votes_cast_total counter" in output
        assert "stakegov_votes_cast_total 1" in output
        assert 'stakegov_operations_rejected_total{reason="StillOpenError"} 1' in output
        assert "stakegov_uptime_seconds" in output
        assert output.endswith("\n")

    def test_reset_counters(self, metrics):
        """Test resetting counters."""
        metrics.record_stake_created(10.0)
        metrics.record_rejection("ValidationError")
        metrics.reset_counters()

        stats = metrics.get_stats()
        assert stats["stakes_created"] == 0
        assert stats["staked_amount"] == 0.0
        assert stats["rejections"] == {}
