"""
stakegov/examples/ledger_demo.py

Example walk-through of the stake ledger and governance registry.

This shows how an application uses stakegov to:
1. Record stakes and watch a wallet's summary update live
2. Gate proposals and votes on a minimum active stake
3. Let several wallets vote at the same time without losing votes
4. Close the voting window and execute a passed proposal

A simulated clock moves time forward so the whole lifecycle runs in a
fraction of a second.

Usage:
    python examples/ledger_demo.py [staking|governance|full]
"""

import asyncio
import logging

from stakegov import (
    LedgerConfig,
    MemoryStore,
    MetricsCollector,
    StakeLedger,
    StakeSummary,
    GovernanceRegistry,
)
from stakegov.config import SECONDS_PER_DAY

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [DEMO] %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


ALICE = "0xA11CE00000000000000000000000000000000001"
BOB = "0xB0B0000000000000000000000000000000000002"
CAROL = "0xCA201000000000000000000000000000000000003"


class SimulatedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_days(self, days: float) -> None:
        self.now += days * SECONDS_PER_DAY


# ========== Example Usage ==========

async def example_staking():
    """Example: stake, watch accrual, claim."""
    clock = SimulatedClock()
    ledger = StakeLedger(MemoryStore(), LedgerConfig(apr=0.10), clock=clock)

    def on_summary(summary: StakeSummary):
        logger.info(
            f"Alice: active {summary.total_active:.2f}, rewards {summary.total_rewards:.4f}"
        )

    unsubscribe = await ledger.subscribe(ALICE, on_summary)

    entry = await ledger.create_stake(ALICE, 1000, 30)
    logger.info(f"Full-term preview: {ledger.estimate_reward(1000, 30):.4f}")

    for days in (15, 25):
        clock.advance_days(days)
        summary = await ledger.get_summary(ALICE)
        logger.info(f"After {days} more days: rewards {summary.total_rewards:.4f}")

    await ledger.claim_stake(ALICE, entry.entry_id)
    unsubscribe()


async def example_governance():
    """Example: propose, vote concurrently, execute."""
    clock = SimulatedClock()
    store = MemoryStore(latency=0.01)
    metrics = MetricsCollector()
    config = LedgerConfig()
    ledger = StakeLedger(store, config, clock=clock, metrics=metrics)
    registry = GovernanceRegistry(store, config, clock=clock, metrics=metrics)

    for wallet in (ALICE, BOB, CAROL):
        await ledger.create_stake(wallet, 500, 30)

    if not await ledger.has_minimum_stake(ALICE):
        logger.error("Alice cannot propose without stake")
        return

    proposal = await registry.create_proposal(
        proposer=ALICE,
        title="Raise staking APR",
        description="Raise the staking APR from 12% to 15%",
        duration_days=3,
    )

    # All three vote at once; the store serializes the tally updates
    await asyncio.gather(
        registry.cast_vote(proposal.proposal_id, ALICE, True),
        registry.cast_vote(proposal.proposal_id, BOB, True),
        registry.cast_vote(proposal.proposal_id, CAROL, False),
    )

    state = await registry.get_state(proposal.proposal_id)
    logger.info(f"During voting: {state.to_dict()}")

    clock.advance_days(3.5)
    state = await registry.get_state(proposal.proposal_id)
    logger.info(f"After the window: {state.to_dict()}")

    if state.can_execute:
        executed = await registry.execute_proposal(proposal.proposal_id)
        logger.info(f"Executed at {executed.executed_at}: {executed.get_tally().to_dict()}")

    print(metrics.collect())


async def example_full():
    """Example: both walkthroughs."""
    await example_staking()
    await example_governance()


if __name__ == "__main__":
    import sys

    mode = sys.argv[1] if len(sys.argv) > 1 else "full"

    if mode == "staking":
        asyncio.run(example_staking())
    elif mode == "governance":
        asyncio.run(example_governance())
    else:
        asyncio.run(example_full())
