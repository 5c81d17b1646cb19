"""
stakegov/tests/test_config.py

Tests for LedgerConfig and environment loading.
"""

import pytest

from stakegov.config import (
    LedgerConfig,
    DEFAULT_APR,
    DEFAULT_STAKE_DURATIONS,
    DEFAULT_PROPOSAL_DURATIONS,
)


class TestLedgerConfig:
    """Test LedgerConfig class."""

    def test_defaults(self):
        """Test default settings."""
        config = LedgerConfig()
        assert config.apr == DEFAULT_APR
        assert config.stake_durations == DEFAULT_STAKE_DURATIONS
        assert config.proposal_durations == DEFAULT_PROPOSAL_DURATIONS
        assert config.default_proposal_duration == 5
        assert config.enforce_maturity is False

    def test_negative_apr_rejected(self):
        """Test a negative APR is invalid."""
        with pytest.raises(ValueError):
            LedgerConfig(apr=-0.1)

    def test_non_positive_duration_rejected(self):
        """Test zero-day durations are invalid."""
        with pytest.raises(ValueError):
            LedgerConfig(stake_durations=(0, 30))

    def test_default_duration_must_be_offered(self):
        """Test the default voting window must be one of the offered windows."""
        with pytest.raises(ValueError):
            LedgerConfig(proposal_durations=(3, 7), default_proposal_duration=5)

    def test_empty_durations_allowed(self):
        """Test empty duration sets mean any positive value."""
        config = LedgerConfig(stake_durations=(), proposal_durations=())
        assert config.stake_durations == ()

    def test_to_dict(self):
        """Test serialization."""
        data = LedgerConfig(apr=0.1).to_dict()
        assert data["apr"] == 0.1
        assert data["stake_min_amount"] == 100.0


class TestFromEnv:
    """Test LedgerConfig.from_env."""

    def test_empty_environment(self):
        """Test no variables gives defaults."""
        assert LedgerConfig.from_env({}) == LedgerConfig()

    def test_reads_values(self):
        """Test every variable is read."""
        config = LedgerConfig.from_env({
            "STAKEGOV_APR": "0.10",
            "STAKEGOV_STAKE_MIN_AMOUNT": "250",
            "STAKEGOV_STAKE_DURATIONS": "7, 14,28",
            "STAKEGOV_PROPOSAL_DURATIONS": "3,5",
            "STAKEGOV_ENFORCE_MATURITY": "true",
        })
        assert config.apr == 0.10
        assert config.stake_min_amount == 250.0
        assert config.stake_durations == (7, 14, 28)
        assert config.proposal_durations == (3, 5)
        assert config.default_proposal_duration == 5
        assert config.enforce_maturity is True

    def test_default_duration_follows_offered_windows(self):
        """Test the default window falls back to the first offered one."""
        config = LedgerConfig.from_env({"STAKEGOV_PROPOSAL_DURATIONS": "2,4"})
        assert config.default_proposal_duration == 2

    def test_invalid_number_ignored(self):
        """Test an unparsable value keeps the default."""
        config = LedgerConfig.from_env({"STAKEGOV_APR": "twelve"})
        assert config.apr == DEFAULT_APR

    def test_invalid_days_ignored(self):
        """Test an unparsable duration list keeps the default."""
        config = LedgerConfig.from_env({"STAKEGOV_STAKE_DURATIONS": "30,sixty"})
        assert config.stake_durations == DEFAULT_STAKE_DURATIONS

    def test_out_of_range_falls_back(self):
        """Test values the config rejects fall back to defaults."""
        config = LedgerConfig.from_env({"STAKEGOV_APR": "-1"})
        assert config == LedgerConfig()

    def test_enforce_maturity_false_values(self):
        """Test non-true flag values disable enforcement."""
        config = LedgerConfig.from_env({"STAKEGOV_ENFORCE_MATURITY": "no"})
        assert config.enforce_maturity is False
