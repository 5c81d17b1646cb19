"""
stakegov/config.py

Configuration constants and the LedgerConfig data class.

The config is passed explicitly to StakeLedger and GovernanceRegistry so
that accrual math stays deterministic under test. Values can be read
from the environment:

    STAKEGOV_APR                  annual rate as a fraction (0.12 = 12%)
    STAKEGOV_STAKE_MIN_AMOUNT     active stake needed for governance
    STAKEGOV_STAKE_DURATIONS      comma list of stake durations in days
    STAKEGOV_PROPOSAL_DURATIONS   comma list of voting windows in days
    STAKEGOV_ENFORCE_MATURITY     "1"/"true" to refuse claims before maturity
"""

import os
import logging
from dataclasses import dataclass, asdict
from typing import Dict, Mapping, Optional, Tuple

logger = logging.getLogger("stakegov.config")


SECONDS_PER_DAY = 86400
DAYS_PER_YEAR = 365

# Defaults
DEFAULT_APR = 0.12                          # 12% simple annual rate
DEFAULT_STAKE_MIN_AMOUNT = 100.0            # Active stake needed to take part in governance
DEFAULT_STAKE_DURATIONS = (30, 60, 90, 180)
DEFAULT_PROPOSAL_DURATIONS = (3, 5, 7)
DEFAULT_PROPOSAL_DURATION = 5

# Store layout
STAKES_ROOT = "stakes"
PROPOSALS_ROOT = "governanceProposals"

ENV_PREFIX = "STAKEGOV_"

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class LedgerConfig:
    """Settings shared by the stake ledger and the governance registry."""
    apr: float = DEFAULT_APR
    stake_min_amount: float = DEFAULT_STAKE_MIN_AMOUNT
    stake_durations: Tuple[int, ...] = DEFAULT_STAKE_DURATIONS    # empty = any positive
    proposal_durations: Tuple[int, ...] = DEFAULT_PROPOSAL_DURATIONS
    default_proposal_duration: int = DEFAULT_PROPOSAL_DURATION
    enforce_maturity: bool = False

    def __post_init__(self):
        if self.apr < 0:
            raise ValueError("APR cannot be negative")
        if self.stake_min_amount < 0:
            raise ValueError("Minimum stake cannot be negative")
        if any(d <= 0 for d in self.stake_durations):
            raise ValueError("Stake durations must be positive")
        if any(d <= 0 for d in self.proposal_durations):
            raise ValueError("Proposal durations must be positive")
        if self.default_proposal_duration <= 0:
            raise ValueError("Default proposal duration must be positive")
        if self.proposal_durations and self.default_proposal_duration not in self.proposal_durations:
            raise ValueError("Default proposal duration must be one of the proposal durations")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LedgerConfig":
        """
        Build a config from STAKEGOV_* environment variables.

        Invalid values are logged and replaced by the defaults.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            LedgerConfig
        """
        env = os.environ if environ is None else environ
        values: Dict[str, object] = {}

        apr = _read_float(env, "APR")
        if apr is not None:
            values["apr"] = apr

        min_amount = _read_float(env, "STAKE_MIN_AMOUNT")
        if min_amount is not None:
            values["stake_min_amount"] = min_amount

        stake_durations = _read_days(env, "STAKE_DURATIONS")
        if stake_durations is not None:
            values["stake_durations"] = stake_durations

        proposal_durations = _read_days(env, "PROPOSAL_DURATIONS")
        if proposal_durations is not None:
            values["proposal_durations"] = proposal_durations
            if DEFAULT_PROPOSAL_DURATION not in proposal_durations:
                values["default_proposal_duration"] = proposal_durations[0]

        raw = env.get(ENV_PREFIX + "ENFORCE_MATURITY")
        if raw:
            values["enforce_maturity"] = raw.strip().lower() in _TRUE_VALUES

        try:
            config = cls(**values)
        except ValueError as e:
            logger.warning(f"Invalid ledger config from env ({e}), using defaults")
            return cls()

        logger.debug(f"Ledger config from env: {config.to_dict()}")
        return config


def _read_float(env: Mapping[str, str], name: str) -> Optional[float]:
    raw = env.get(ENV_PREFIX + name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {ENV_PREFIX}{name}: {raw!r}")
        return None


def _read_days(env: Mapping[str, str], name: str) -> Optional[Tuple[int, ...]]:
    raw = env.get(ENV_PREFIX + name)
    if not raw:
        return None
    try:
        days = tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError:
        logger.warning(f"Ignoring invalid {ENV_PREFIX}{name}: {raw!r}")
        return None
    return days or None
