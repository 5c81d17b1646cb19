"""
stakegov/protocol/rewards.py

Prorated stake reward accrual.

Rewards use a simple (non-compounding) annual rate:

    reward = amount * apr * days_elapsed / 365

days_elapsed counts from the stake's start until now, capped at the
stake's scheduled end. A stake claimed late earns nothing past its end,
and a clock that reads earlier than the start time yields zero rather
than a negative reward.

Everything here is a pure function of its inputs so any caller can
recompute a reward for a fixed `now`.

Usage:
    from stakegov.protocol.rewards import accrue, estimate_reward

    reward = accrue(1000, start, start + 30 * 86400, now, apr=0.10)
    preview = estimate_reward(1000, 30, apr=0.10)
"""

from ..config import SECONDS_PER_DAY, DAYS_PER_YEAR


def stake_end_time(start_time: float, duration_days: int) -> float:
    """Scheduled end of a stake or voting window."""
    return start_time + duration_days * SECONDS_PER_DAY


def days_elapsed(start_time: float, end_time: float, now: float) -> float:
    """Days accrued between start and min(now, end), never negative."""
    effective_end = min(now, end_time)
    return max(0.0, (effective_end - start_time) / SECONDS_PER_DAY)


def accrue(amount: float, start_time: float, end_time: float, now: float, apr: float) -> float:
    """
    Reward accrued by a stake at `now`.

    Args:
        amount: Staked amount
        start_time: Stake start (epoch seconds)
        end_time: Scheduled stake end (epoch seconds)
        now: Evaluation time (epoch seconds)
        apr: Annual rate as a fraction

    Returns:
        Accrued reward
    """
    return amount * apr * days_elapsed(start_time, end_time, now) / DAYS_PER_YEAR


def estimate_reward(amount: float, duration_days: int, apr: float) -> float:
    """Full-term reward preview for a stake that has not been made yet."""
    if not amount or amount <= 0 or duration_days <= 0:
        return 0.0
    return amount * apr * duration_days / DAYS_PER_YEAR
