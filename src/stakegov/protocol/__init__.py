"""
stakegov/protocol/

Ledger implementations: store contract, reward accrual, stake ledger,
voting rules and the governance registry.
"""

from .storage import StoreAdapter, MemoryStore, FileStore, generate_push_id
from .rewards import accrue, estimate_reward, stake_end_time
from .staking import StakeLedger, StakeEntry, StakePosition, StakeSummary
from .voting import ProposalState, classify, is_open, has_passed, can_execute, status_label
from .governance import GovernanceRegistry, Proposal, VoteChoice, VoteTally

__all__ = [
    "StoreAdapter",
    "MemoryStore",
    "FileStore",
    "generate_push_id",
    "accrue",
    "estimate_reward",
    "stake_end_time",
    "StakeLedger",
    "StakeEntry",
    "StakePosition",
    "StakeSummary",
    "ProposalState",
    "classify",
    "is_open",
    "has_passed",
    "can_execute",
    "status_label",
    "GovernanceRegistry",
    "Proposal",
    "VoteChoice",
    "VoteTally",
]
