"""
stakegov - Staking reward ledger and token governance registry

Two time-windowed ledgers over a keyed realtime store:
- Stake entries that accrue a prorated APR reward over their duration
- Governance proposals with one vote per wallet and gated execution

Usage:
    from stakegov import StakeLedger, GovernanceRegistry, MemoryStore, LedgerConfig

    store = MemoryStore()
    config = LedgerConfig.from_env()

    ledger = StakeLedger(store, config)
    entry = await ledger.create_stake("0xABC...", 1000, 30)

    registry = GovernanceRegistry(store, config)
    if await ledger.has_minimum_stake("0xabc..."):
        proposal = await registry.create_proposal("0xabc...", "Title", "Description")

Metrics Usage:
    from stakegov.metrics import MetricsCollector

    metrics = MetricsCollector()
    ledger = StakeLedger(store, config, metrics=metrics)
    prometheus_output = metrics.collect()
"""

from .config import LedgerConfig
from .errors import (
    LedgerError,
    ValidationError,
    NotFoundError,
    StakeLockedError,
    GovernanceError,
    AlreadyVotedError,
    VotingClosedError,
    StillOpenError,
    ProposalRejectedError,
    StoreError,
)
from .wallet import normalize_wallet
from .metrics import MetricsCollector
from .protocol import (
    StoreAdapter,
    MemoryStore,
    FileStore,
    accrue,
    estimate_reward,
    StakeLedger,
    StakeEntry,
    StakePosition,
    StakeSummary,
    ProposalState,
    classify,
    GovernanceRegistry,
    Proposal,
    VoteChoice,
)

__version__ = "1.0.0"
__all__ = [
    # Config
    "LedgerConfig",
    # Errors
    "LedgerError",
    "ValidationError",
    "NotFoundError",
    "StakeLockedError",
    "GovernanceError",
    "AlreadyVotedError",
    "VotingClosedError",
    "StillOpenError",
    "ProposalRejectedError",
    "StoreError",
    # Wallet
    "normalize_wallet",
    # Metrics
    "MetricsCollector",
    # Store
    "StoreAdapter",
    "MemoryStore",
    "FileStore",
    # Staking
    "accrue",
    "estimate_reward",
    "StakeLedger",
    "StakeEntry",
    "StakePosition",
    "StakeSummary",
    # Governance
    "ProposalState",
    "classify",
    "GovernanceRegistry",
    "Proposal",
    "VoteChoice",
]
