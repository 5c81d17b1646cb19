"""
stakegov/errors.py

Exception taxonomy for the staking and governance ledgers.

Every error is raised by the operation that detects it. Store failures
(network, disk) are not wrapped here unless the store itself raises
StoreError; they propagate to the caller unchanged.
"""


class LedgerError(Exception):
    """Base class for all stakegov errors."""
    pass


class ValidationError(LedgerError, ValueError):
    """Bad input shape or range (amount, duration, title, description, wallet)."""
    pass


class NotFoundError(LedgerError, LookupError):
    """Referenced stake entry or proposal does not exist."""
    pass


class StakeLockedError(ValidationError):
    """Claim attempted before the stake matured (only with enforce_maturity)."""
    pass


class GovernanceError(LedgerError):
    """Base class for proposal lifecycle failures."""
    pass


class AlreadyVotedError(GovernanceError):
    """The wallet has already voted on this proposal."""
    pass


class VotingClosedError(GovernanceError):
    """The voting window has ended or the proposal was executed."""
    pass


class StillOpenError(GovernanceError):
    """Execution attempted while the proposal is still in its voting window."""
    pass


class ProposalRejectedError(GovernanceError):
    """Execution attempted on a proposal that did not pass."""
    pass


class StoreError(LedgerError):
    """Persistence failure raised by a store implementation."""
    pass
