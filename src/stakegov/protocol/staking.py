"""
stakegov/protocol/staking.py

Per-wallet stake ledger.

Each wallet owns a collection of stake entries stored at
stakes/{wallet_key}/entries/{entry_id}. An entry records the amount,
the chosen duration and the start time; everything else (end time,
active flag, accrued reward) is derived at read time from the injected
clock.

Entry lifecycle:
- create_stake() appends an entry (amount/duration/start never change)
- claim_stake() marks it claimed exactly once
- entries are never deleted

Active stake gates governance participation through has_minimum_stake();
the registry itself does not enforce it.

Usage:
    from stakegov.protocol.staking import StakeLedger

    ledger = StakeLedger(store, config)
    entry = await ledger.create_stake("0xABC...", 1000, 30)
    summary = await ledger.get_summary("0xabc...")
    await ledger.claim_stake("0xabc...", entry.entry_id)
"""

import math
import time
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..config import LedgerConfig, STAKES_ROOT
from ..errors import LedgerError, ValidationError, NotFoundError, StakeLockedError
from ..metrics import MetricsCollector
from ..wallet import normalize_wallet, require_wallet, short_address
from .rewards import accrue, estimate_reward, stake_end_time
from .storage import StoreAdapter, Unsubscribe, join_path

logger = logging.getLogger("stakegov.protocol.staking")


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class StakeEntry:
    """A stake record as stored."""
    entry_id: str
    wallet_key: str
    amount: float
    duration_days: int
    start_time: int                   # Unix timestamp, set at creation
    claimed: bool = False
    claimed_at: Optional[int] = None  # Unix timestamp of the first claim
    created_at: str = ""              # ISO-8601 UTC

    @property
    def end_time(self) -> int:
        return int(stake_end_time(self.start_time, self.duration_days))

    def is_active(self, now: float) -> bool:
        """Unclaimed and still inside its staking period."""
        return not self.claimed and now < self.end_time

    def is_matured(self, now: float) -> bool:
        return now >= self.end_time

    def reward(self, now: float, apr: float) -> float:
        return accrue(self.amount, self.start_time, self.end_time, now, apr)

    def to_dict(self) -> dict:
        """Stored shape (camelCase, derived fields excluded)."""
        return {
            "amount": self.amount,
            "durationDays": self.duration_days,
            "startTime": self.start_time,
            "claimed": self.claimed,
            "claimedAt": self.claimed_at,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, entry_id: str, wallet_key: str, data: dict) -> "StakeEntry":
        claimed_at = data.get("claimedAt")
        return cls(
            entry_id=entry_id,
            wallet_key=wallet_key,
            amount=float(data["amount"]),
            duration_days=int(data["durationDays"]),
            start_time=int(data["startTime"]),
            claimed=bool(data.get("claimed", False)),
            claimed_at=int(claimed_at) if claimed_at is not None else None,
            created_at=data.get("createdAt", ""),
        )


@dataclass
class StakePosition:
    """A stake entry evaluated at a point in time."""
    entry: StakeEntry
    end_time: int
    is_active: bool
    is_matured: bool
    reward: float

    @classmethod
    def evaluate(cls, entry: StakeEntry, now: float, apr: float) -> "StakePosition":
        return cls(
            entry=entry,
            end_time=entry.end_time,
            is_active=entry.is_active(now),
            is_matured=entry.is_matured(now),
            reward=entry.reward(now, apr),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.entry.entry_id,
            **self.entry.to_dict(),
            "endTime": self.end_time,
            "isActive": self.is_active,
            "isMatured": self.is_matured,
            "reward": self.reward,
        }


@dataclass
class StakeSummary:
    """Totals for one wallet."""
    total_active: float = 0.0        # Sum of amounts of active entries
    total_rewards: float = 0.0       # Sum of rewards over all entries, claimed or not
    entries: List[StakePosition] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalActive": self.total_active,
            "totalRewards": self.total_rewards,
            "entries": [p.to_dict() for p in self.entries],
        }


# ============================================================================
# STAKE LEDGER
# ============================================================================

class StakeLedger:
    """
    Stake entries and reward accrual for every wallet.

    All state lives in the store; the ledger holds no caches, so several
    ledgers (or processes) can share one store.
    """

    def __init__(
        self,
        store: StoreAdapter,
        config: Optional[LedgerConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """
        Initialize StakeLedger.

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
    # PATHS / HELPERS
    # ========================================================================

    @staticmethod
    def _entries_path(wallet_key: str) -> str:
        return join_path(STAKES_ROOT, wallet_key, "entries")

    def _now(self) -> int:
        return int(self._clock())

    def _reject(self, error: LedgerError) -> LedgerError:
        if self._metrics:
            self._metrics.record_rejection(type(error).__name__)
        logger.warning(f"Stake operation rejected: {error}")
        return error

    def _validate_amount(self, amount: Any) -> float:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise self._reject(ValidationError(f"Stake amount must be a number, got {amount!r}"))
        if not math.isfinite(amount) or amount <= 0:
            raise self._reject(ValidationError(f"Stake amount must be positive, got {amount}"))
        return amount

    def _validate_duration(self, duration_days: Any) -> int:
        if isinstance(duration_days, bool) or not isinstance(duration_days, int):
            raise self._reject(ValidationError(f"Stake duration must be whole days, got {duration_days!r}"))
        if duration_days <= 0:
            raise self._reject(ValidationError(f"Stake duration must be positive, got {duration_days}"))
        allowed = self.config.stake_durations
        if allowed and duration_days not in allowed:
            raise self._reject(ValidationError(
                f"Stake duration {duration_days} days not offered (choose from {list(allowed)})"
            ))
        return duration_days

    def _validate_entry_id(self, entry_id: Any) -> str:
        if not isinstance(entry_id, str) or not entry_id or "/" in entry_id:
            raise self._reject(ValidationError(f"Invalid stake entry id: {entry_id!r}"))
        return entry_id

    def _summarize(self, wallet_key: str, entries: Any, now: float) -> StakeSummary:
        summary = StakeSummary()
        if not isinstance(entries, dict):
            return summary

        for entry_id in sorted(entries):
            try:
                entry = StakeEntry.from_dict(entry_id, wallet_key, entries[entry_id])
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed stake entry {entry_id}: {e}")
                continue

            position = StakePosition.evaluate(entry, now, self.config.apr)
            if position.is_active:
                summary.total_active += entry.amount
            summary.total_rewards += position.reward
            summary.entries.append(position)

        return summary

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    async def create_stake(self, wallet_address: str, amount: float, duration_days: int) -> StakeEntry:
        """
        Record a new stake for a wallet.

        Args:
            wallet_address: Staker's wallet (any casing)
            amount: Amount staked, must be positive
            duration_days: Staking period, must be one of the offered durations

        Returns:
            The created entry, including its generated id

        Raises:
            ValidationError: Missing wallet, bad amount or bad duration
        """
        try:
            wallet_key = require_wallet(wallet_address, "staker")
        except ValidationError as e:
            raise self._reject(e)
        amount = self._validate_amount(amount)
        duration_days = self._validate_duration(duration_days)

        now = self._now()
        entry = StakeEntry(
            entry_id="",
            wallet_key=wallet_key,
            amount=amount,
            duration_days=duration_days,
            start_time=now,
            created_at=datetime.fromtimestamp(now, timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )
        entry.entry_id = await self._store.append(self._entries_path(wallet_key), entry.to_dict())

        if self._metrics:
            self._metrics.record_stake_created(amount)
        logger.info(
            f"Stake created: {amount} for {duration_days}d by {short_address(wallet_key)} "
            f"(entry {entry.entry_id})"
        )
        return entry

    async def get_entry(self, wallet_address: str, entry_id: str) -> StakeEntry:
        """Get a single stake entry."""
        try:
            wallet_key = require_wallet(wallet_address, "staker")
        except ValidationError as e:
            raise self._reject(e)
        entry_id = self._validate_entry_id(entry_id)
        data = await self._store.get(join_path(self._entries_path(wallet_key), entry_id))
        if data is None:
            raise self._reject(NotFoundError(f"Stake entry not found: {entry_id}"))
        return StakeEntry.from_dict(entry_id, wallet_key, data)

    async def get_summary(self, wallet_address: Optional[str]) -> StakeSummary:
        """
        Summarize a wallet's stakes at the current time.

        A wallet with no key or no entries gets the zero summary.

        Returns:
            StakeSummary with active total, reward total and per-entry positions
        """
        wallet_key = normalize_wallet(wallet_address)
        if wallet_key is None:
            return StakeSummary()

        entries = await self._store.get(self._entries_path(wallet_key))
        return self._summarize(wallet_key, entries, self._now())

    async def has_minimum_stake(
        self,
        wallet_address: Optional[str],
        minimum_amount: Optional[float] = None,
    ) -> bool:
        """Check whether the wallet's active stake reaches the governance minimum."""
        if minimum_amount is None:
            minimum_amount = self.config.stake_min_amount
        summary = await self.get_summary(wallet_address)
        return summary.total_active >= minimum_amount

    async def claim_stake(self, wallet_address: str, entry_id: str) -> StakeEntry:
        """
        Mark a stake entry as claimed.

        The check and the write happen in one store transaction. Claiming
        an already claimed entry changes nothing and returns it as stored.
        Maturity is only checked when config.enforce_maturity is set.

        Returns:
            The entry after the claim

        Raises:
            NotFoundError: Entry does not exist
            StakeLockedError: Entry not matured and maturity is enforced
        """
        try:
            wallet_key = require_wallet(wallet_address, "staker")
        except ValidationError as e:
            raise self._reject(e)
        entry_id = self._validate_entry_id(entry_id)
        path = join_path(self._entries_path(wallet_key), entry_id)
        now = self._now()

        def transform(current: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
            if current is None:
                raise NotFoundError(f"Stake entry not found: {entry_id}")
            entry = StakeEntry.from_dict(entry_id, wallet_key, current)
            if entry.claimed:
                return None
            if self.config.enforce_maturity and not entry.is_matured(now):
                raise StakeLockedError(
                    f"Stake entry {entry_id} is locked until {entry.end_time}"
                )
            current["claimed"] = True
            current["claimedAt"] = now
            return current

        try:
            committed, value = await self._store.transaction(path, transform)
        except LedgerError as e:
            raise self._reject(e)

        entry = StakeEntry.from_dict(entry_id, wallet_key, value)
        if committed:
            if self._metrics:
                self._metrics.record_stake_claimed()
            logger.info(f"Stake claimed: entry {entry_id} by {short_address(wallet_key)}")
        else:
            logger.debug(f"Stake entry {entry_id} already claimed at {entry.claimed_at}")
        return entry

    def estimate_reward(self, amount: float, duration_days: int) -> float:
        """Full-term reward preview at the configured APR."""
        return estimate_reward(amount, duration_days, self.config.apr)

    # ========================================================================
    # SUBSCRIPTIONS
    # ========================================================================

    async def subscribe(
        self,
        wallet_address: str,
        callback: Callable[[StakeSummary], Any],
    ) -> Unsubscribe:
        """
        Push the wallet's summary to callback now and after every change.

        Returns:
            Function that stops the pushes
        """
        try:
            wallet_key = require_wallet(wallet_address, "staker")
        except ValidationError as e:
            raise self._reject(e)

        def on_change(entries: Any) -> Any:
            return callback(self._summarize(wallet_key, entries, self._now()))

        return await self._store.subscribe(self._entries_path(wallet_key), on_change)
