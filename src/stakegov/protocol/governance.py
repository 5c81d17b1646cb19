"""
stakegov/protocol/governance.py

Governance proposal registry.

Token holders create proposals, vote for or against them while the
voting window is open, and execute proposals that passed once the window
has closed.

Rules:
- One vote per wallet per proposal (wallet keys are case-insensitive)
- Voting window: created_at .. created_at + duration_days
- Simple majority of votes cast; ties fail; no quorum
- Execution only after the window closed, at most once

Every mutation is a store transaction evaluated against the stored
record, so concurrent voters never overwrite each other's tallies.

Usage:
    from stakegov.protocol.governance import GovernanceRegistry

    registry = GovernanceRegistry(store, config)

    proposal = await registry.create_proposal(
        proposer="0xABC...",
        title="List the harbour property",
        description="Add the harbour building to the next listing round",
        duration_days=3,
    )

    await registry.cast_vote(proposal.proposal_id, "0xdef...", support=True)

    # After the window closes
    await registry.execute_proposal(proposal.proposal_id)
"""

import time
import logging
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..config import LedgerConfig, PROPOSALS_ROOT
from ..errors import (
    LedgerError,
    ValidationError,
    NotFoundError,
    AlreadyVotedError,
    VotingClosedError,
    StillOpenError,
    ProposalRejectedError,
)
from ..metrics import MetricsCollector
from ..wallet import require_wallet, short_address
from .rewards import stake_end_time
from .storage import StoreAdapter, Unsubscribe, join_path
from .voting import ProposalState, classify, has_passed, STATUS_ACTIVE, STATUS_EXECUTED

logger = logging.getLogger("stakegov.protocol.governance")


# ============================================================================
# ENUMS
# ============================================================================

class VoteChoice(Enum):
    """Vote options."""
    FOR = "for"
    AGAINST = "against"

    @classmethod
    def from_support(cls, support: bool) -> "VoteChoice":
        return cls.FOR if support else cls.AGAINST


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class VoteTally:
    """Vote counts recomputed from the voter map."""
    for_votes: int = 0
    against_votes: int = 0
    total_voters: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Proposal:
    """A governance proposal."""
    proposal_id: str
    title: str
    description: str
    proposer: str                     # Wallet key
    created_at: int                   # Unix timestamp, equals start_time
    start_time: int
    end_time: int                     # start_time + duration_days
    duration_days: int
    for_votes: int = 0
    against_votes: int = 0
    voters: Dict[str, str] = field(default_factory=dict)  # wallet key -> "for"/"against"
    executed: bool = False
    executed_at: Optional[int] = None
    status: str = STATUS_ACTIVE       # Display label only

    def has_voted(self, wallet_key: str) -> bool:
        return wallet_key in self.voters

    def get_tally(self) -> VoteTally:
        tally = VoteTally(total_voters=len(self.voters))
        for choice in self.voters.values():
            if choice == VoteChoice.FOR.value:
                tally.for_votes += 1
            elif choice == VoteChoice.AGAINST.value:
                tally.against_votes += 1
        return tally

    def to_dict(self) -> dict:
        """Stored shape (camelCase, id excluded)."""
        return {
            "title": self.title,
            "description": self.description,
            "proposer": self.proposer,
            "createdAt": self.created_at,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "durationDays": self.duration_days,
            "forVotes": self.for_votes,
            "againstVotes": self.against_votes,
            "voters": dict(self.voters),
            "executed": self.executed,
            "executedAt": self.executed_at,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, proposal_id: str, data: dict) -> "Proposal":
        start_time = int(data.get("startTime", data["createdAt"]))
        end_time = int(data["endTime"])
        executed_at = data.get("executedAt")
        return cls(
            proposal_id=proposal_id,
            title=data["title"],
            description=data["description"],
            proposer=data.get("proposer", ""),
            created_at=int(data.get("createdAt", start_time)),
            start_time=start_time,
            end_time=end_time,
            duration_days=int(data.get("durationDays", round((end_time - start_time) / 86400))),
            for_votes=int(data.get("forVotes", 0)),
            against_votes=int(data.get("againstVotes", 0)),
            voters=dict(data.get("voters") or {}),
            executed=bool(data.get("executed", False)),
            executed_at=int(executed_at) if executed_at is not None else None,
            status=data.get("status", STATUS_ACTIVE),
        )


# ============================================================================
# GOVERNANCE REGISTRY
# ============================================================================

class GovernanceRegistry:
    """
    Proposal creation, voting and execution over a shared store.

    Stake eligibility is checked by the caller (see
    StakeLedger.has_minimum_stake), not here.
    """

    def __init__(
        self,
        store: StoreAdapter,
        config: Optional[LedgerConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """
        Initialize GovernanceRegistry.

        Args:
            store: Backing store
            config: Ledger settings (defaults if None)
            clock: Returns the current epoch time (time.time if None)
            metrics: Optional metrics collector
        """
        self._store = store
        self.config = config or LedgerConfig()
        self._clock = clock or time.time
        self._metrics = metrics

    # ========================================================================
    # HELPERS
    # ========================================================================

    @staticmethod
    def _proposal_path(proposal_id: str) -> str:
        return join_path(PROPOSALS_ROOT, proposal_id)

    def _now(self) -> int:
        return int(self._clock())

    def _reject(self, error: LedgerError) -> LedgerError:
        if self._metrics:
            self._metrics.record_rejection(type(error).__name__)
        logger.warning(f"Governance operation rejected: {error}")
        return error

    def _validate_id(self, proposal_id: Any) -> str:
        if not isinstance(proposal_id, str) or not proposal_id or "/" in proposal_id:
            raise self._reject(ValidationError(f"Invalid proposal id: {proposal_id!r}"))
        return proposal_id

    def _validate_duration(self, duration_days: Any) -> int:
        if isinstance(duration_days, bool) or not isinstance(duration_days, int):
            raise self._reject(ValidationError(f"Voting duration must be whole days, got {duration_days!r}"))
        if duration_days <= 0:
            raise self._reject(ValidationError(f"Voting duration must be positive, got {duration_days}"))
        allowed = self.config.proposal_durations
        if allowed and duration_days not in allowed:
            raise self._reject(ValidationError(
                f"Voting duration {duration_days} days not offered (choose from {list(allowed)})"
            ))
        return duration_days

    @staticmethod
    def _sorted(proposals: List[Proposal]) -> List[Proposal]:
        """Newest first; proposals created in the same second keep creation order."""
        return sorted(proposals, key=lambda p: (-p.created_at, p.proposal_id))

    def _parse_all(self, data: Any) -> List[Proposal]:
        if not isinstance(data, dict):
            return []
        proposals = []
        for proposal_id, record in data.items():
            try:
                proposals.append(Proposal.from_dict(proposal_id, record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed proposal {proposal_id}: {e}")
        return self._sorted(proposals)

    # ========================================================================
    # PROPOSAL CREATION
    # ========================================================================

    async def create_proposal(
        self,
        proposer: str,
        title: str,
        description: str,
        duration_days: Optional[int] = None,
    ) -> Proposal:
        """
        Create a new governance proposal.

        Args:
            proposer: Proposer's wallet (any casing)
            title: Proposal title
            description: Proposed action
            duration_days: Voting window length (config default if None)

        Returns:
            Created proposal

        Raises:
            ValidationError: Missing proposer, empty title/description or bad duration
        """
        try:
            proposer_key = require_wallet(proposer, "proposer")
        except ValidationError as e:
            raise self._reject(e)
        if not isinstance(title, str) or not title.strip():
            raise self._reject(ValidationError("Proposal title is required"))
        if not isinstance(description, str) or not description.strip():
            raise self._reject(ValidationError("Proposal description is required"))
        if duration_days is None:
            duration_days = self.config.default_proposal_duration
        duration_days = self._validate_duration(duration_days)

        now = self._now()
        proposal = Proposal(
            proposal_id="",
            title=title,
            description=description,
            proposer=proposer_key,
            created_at=now,
            start_time=now,
            end_time=int(stake_end_time(now, duration_days)),
            duration_days=duration_days,
        )
        proposal.proposal_id = await self._store.append(PROPOSALS_ROOT, proposal.to_dict())

        if self._metrics:
            self._metrics.record_proposal_created()
        logger.info(
            f"Created proposal: {proposal.proposal_id} - {title} "
            f"({duration_days}d, by {short_address(proposer_key)})"
        )
        return proposal

    # ========================================================================
    # VOTING
    # ========================================================================

    async def cast_vote(self, proposal_id: str, voter: str, support: bool) -> Proposal:
        """
        Vote on a proposal.

        The voter entry and the matching counter are written together in
        one transaction against the current stored proposal.

        Args:
            proposal_id: Proposal to vote on
            voter: Voter's wallet (any casing)
            support: True to vote for, False to vote against

        Returns:
            The proposal with the vote applied

        Raises:
            NotFoundError: Unknown proposal
            AlreadyVotedError: Wallet already voted on this proposal
            VotingClosedError: Window ended or proposal executed
        """
        proposal_id = self._validate_id(proposal_id)
        try:
            voter_key = require_wallet(voter, "voter")
        except ValidationError as e:
            raise self._reject(e)
        if not isinstance(support, bool):
            raise self._reject(ValidationError(f"Vote support must be True or False, got {support!r}"))

        choice = VoteChoice.from_support(support)
        now = self._now()

        def transform(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            if current is None:
                raise NotFoundError(f"Proposal not found: {proposal_id}")
            proposal = Proposal.from_dict(proposal_id, current)
            if proposal.has_voted(voter_key):
                raise AlreadyVotedError(
                    f"{short_address(voter_key)} already voted on {proposal_id}"
                )
            if proposal.executed or now > proposal.end_time:
                raise VotingClosedError(f"Voting period is closed for {proposal_id}")

            voters = dict(current.get("voters") or {})
            voters[voter_key] = choice.value
            current["voters"] = voters
            counter = "forVotes" if choice == VoteChoice.FOR else "againstVotes"
            current[counter] = int(current.get(counter, 0)) + 1
            return current

        try:
            _, value = await self._store.transaction(self._proposal_path(proposal_id), transform)
        except LedgerError as e:
            raise self._reject(e)

        if self._metrics:
            self._metrics.record_vote_cast()
        logger.info(f"Cast vote on {proposal_id}: {choice.value} by {short_address(voter_key)}")
        return Proposal.from_dict(proposal_id, value)

    # ========================================================================
    # EXECUTION
    # ========================================================================

    async def execute_proposal(self, proposal_id: str) -> Proposal:
        """
        Mark a passed, closed proposal as executed.

        Executing an already executed proposal is a no-op.

        Returns:
            The proposal after execution

        Raises:
            NotFoundError: Unknown proposal
            StillOpenError: Voting window has not ended
            ProposalRejectedError: For votes did not exceed against votes
        """
        proposal_id = self._validate_id(proposal_id)
        now = self._now()

        def transform(current: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
            if current is None:
                raise NotFoundError(f"Proposal not found: {proposal_id}")
            proposal = Proposal.from_dict(proposal_id, current)
            if proposal.executed:
                return None
            if now <= proposal.end_time:
                raise StillOpenError(f"Proposal {proposal_id} still in voting period")
            if not has_passed(proposal):
                raise ProposalRejectedError(
                    f"Proposal {proposal_id} did not pass "
                    f"({proposal.for_votes} for, {proposal.against_votes} against)"
                )
            current["executed"] = True
            current["executedAt"] = now
            current["status"] = STATUS_EXECUTED
            return current

        try:
            committed, value = await self._store.transaction(self._proposal_path(proposal_id), transform)
        except LedgerError as e:
            raise self._reject(e)

        if committed:
            if self._metrics:
                self._metrics.record_proposal_executed()
            logger.info(f"Marked proposal {proposal_id} as executed")
        else:
            logger.debug(f"Proposal {proposal_id} already executed")
        return Proposal.from_dict(proposal_id, value)

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    async def get_proposal(self, proposal_id: str) -> Proposal:
        """Get a proposal by ID."""
        proposal_id = self._validate_id(proposal_id)
        data = await self._store.get(self._proposal_path(proposal_id))
        if data is None:
            raise self._reject(NotFoundError(f"Proposal not found: {proposal_id}"))
        return Proposal.from_dict(proposal_id, data)

    async def list_proposals(self) -> List[Proposal]:
        """All proposals, newest first."""
        return self._parse_all(await self._store.get(PROPOSALS_ROOT))

    async def get_state(self, proposal_id: str) -> ProposalState:
        """Classify a proposal at the current time."""
        proposal = await self.get_proposal(proposal_id)
        return classify(proposal, self._now())

    def classify(self, proposal: Proposal) -> ProposalState:
        """Classify an already loaded proposal at the current time."""
        return classify(proposal, self._now())

    # ========================================================================
    # SUBSCRIPTIONS
    # ========================================================================

    async def subscribe(self, callback: Callable[[List[Proposal]], Any]) -> Unsubscribe:
        """
        Push the ordered proposal list to callback now and after every change.

        Returns:
            Function that stops the pushes
        """
        def on_change(data: Any) -> Any:
            return callback(self._parse_all(data))

        return await self._store.subscribe(PROPOSALS_ROOT, on_change)
