"""
stakegov/protocol/voting.py

Pure proposal classification.

One wallet is one vote. A proposal passes on a simple majority of the
votes cast: no quorum, no stake weighting, and a tie fails.

    is_open     = now <= end_time and not executed
    has_passed  = for_votes > against_votes
    can_execute = not executed and now > end_time and has_passed
"""

from dataclasses import dataclass, asdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .governance import Proposal


STATUS_ACTIVE = "Active"
STATUS_CLOSED = "Closed"
STATUS_EXECUTED = "Executed"


@dataclass(frozen=True)
class ProposalState:
    """Classification of a proposal at one instant."""
    is_open: bool
    has_passed: bool
    can_execute: bool
    status: str

    def to_dict(self) -> dict:
        return asdict(self)


def is_open(proposal: "Proposal", now: float) -> bool:
    return now <= proposal.end_time and not proposal.executed


def has_passed(proposal: "Proposal") -> bool:
    return proposal.for_votes > proposal.against_votes


def can_execute(proposal: "Proposal", now: float) -> bool:
    return not proposal.executed and now > proposal.end_time and has_passed(proposal)


def status_label(proposal: "Proposal", now: float) -> str:
    """Display label; the stored status field is not authoritative."""
    if proposal.executed:
        return STATUS_EXECUTED
    if now > proposal.end_time:
        return STATUS_CLOSED
    return STATUS_ACTIVE


def classify(proposal: "Proposal", now: float) -> ProposalState:
    """Evaluate every decision for a proposal at `now`."""
    return ProposalState(
        is_open=is_open(proposal, now),
        has_passed=has_passed(proposal),
        can_execute=can_execute(proposal, now),
        status=status_label(proposal, now),
    )
