"""
stakegov/cli.py

Command line interface over a JSON file store.

Usage:
    stakegov stake 0xABC... 1000 --days 30
    stakegov summary 0xabc...
    stakegov claim 0xabc... <entry_id>
    stakegov propose 0xabc... "Title" "Description" --days 3
    stakegov vote <proposal_id> 0xdef... for
    stakegov execute <proposal_id>
    stakegov proposals
    stakegov status <proposal_id>
    stakegov estimate 1000 --days 30

The store file defaults to ~/.stakegov/ledger.json and can be set with
--store or STAKEGOV_STORE. Ledger settings come from STAKEGOV_*
environment variables (see stakegov.config).
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable

import click

from .config import LedgerConfig
from .errors import LedgerError, StoreError
from .protocol.storage import FileStore, DEFAULT_STORE_PATH
from .protocol.staking import StakeLedger, StakeSummary
from .protocol.governance import GovernanceRegistry, Proposal
from .protocol.rewards import estimate_reward

logger = logging.getLogger("stakegov.cli")


class CliContext:
    """Lazily opened store and ledgers shared by one invocation."""

    def __init__(self, store_path: Path):
        self.store_path = store_path
        self.config = LedgerConfig.from_env()
        self._store = None

    @property
    def store(self) -> FileStore:
        if self._store is None:
            try:
                self._store = FileStore(self.store_path)
            except StoreError as e:
                raise click.ClickException(str(e))
        return self._store

    @property
    def ledger(self) -> StakeLedger:
        return StakeLedger(self.store, self.config)

    @property
    def registry(self) -> GovernanceRegistry:
        return GovernanceRegistry(self.store, self.config)


def _run(action: Callable[[], Awaitable[Any]]) -> Any:
    """Run a coroutine factory, reporting ledger errors as CLI errors."""
    try:
        return asyncio.run(action())
    except LedgerError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}")


def _fmt_time(epoch: int) -> str:
    return datetime.fromtimestamp(epoch, timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def _echo_summary(summary: StakeSummary) -> None:
    click.echo(f"Active stake:      {summary.total_active:,.2f}")
    click.echo(f"Estimated rewards: {summary.total_rewards:,.2f}")
    for position in summary.entries:
        entry = position.entry
        if entry.claimed:
            state = "claimed"
        elif position.is_active:
            state = "active"
        else:
            state = "matured"
        click.echo(
            f"  {entry.entry_id}  {entry.amount:,.2f} x {entry.duration_days}d  "
            f"ends {_fmt_time(position.end_time)}  reward {position.reward:,.4f}  [{state}]"
        )


def _echo_proposal(proposal: Proposal, registry: GovernanceRegistry) -> None:
    state = registry.classify(proposal)
    click.echo(f"{proposal.proposal_id}  {proposal.title}  [{state.status}]")
    click.echo(
        f"  for {proposal.for_votes}  against {proposal.against_votes}  "
        f"ends {_fmt_time(proposal.end_time)}"
        + ("  (executable)" if state.can_execute else "")
    )


@click.group()
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=str(DEFAULT_STORE_PATH),
    envvar="STAKEGOV_STORE",
    show_default=True,
    help="JSON file backing the ledgers",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, store_path: Path, verbose: bool) -> None:
    """Stake ledger and governance registry."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    logger.debug(f"Using store {store_path}")
    ctx.obj = CliContext(store_path)


# ============================================================================
# STAKING COMMANDS
# ============================================================================

@main.command()
@click.argument("wallet")
@click.argument("amount", type=float)
@click.option("--days", "duration_days", type=int, required=True, help="Staking period in days")
@click.pass_obj
def stake(app: CliContext, wallet: str, amount: float, duration_days: int) -> None:
    """Record a new stake for WALLET."""
    entry = _run(lambda: app.ledger.create_stake(wallet, amount, duration_days))
    click.echo(f"Stake recorded: {entry.entry_id}")
    click.echo(f"Matures {_fmt_time(entry.end_time)}")


@main.command()
@click.argument("wallet")
@click.pass_obj
def summary(app: CliContext, wallet: str) -> None:
    """Show active stake and rewards for WALLET."""
    _echo_summary(_run(lambda: app.ledger.get_summary(wallet)))


@main.command()
@click.argument("wallet")
@click.argument("entry_id")
@click.pass_obj
def claim(app: CliContext, wallet: str, entry_id: str) -> None:
    """Mark a stake entry of WALLET as claimed."""
    entry = _run(lambda: app.ledger.claim_stake(wallet, entry_id))
    click.echo(f"Stake {entry.entry_id} claimed at {_fmt_time(entry.claimed_at)}")


@main.command()
@click.argument("amount", type=float)
@click.option("--days", "duration_days", type=int, required=True, help="Staking period in days")
@click.pass_obj
def estimate(app: CliContext, amount: float, duration_days: int) -> None:
    """Preview the full-term reward for staking AMOUNT."""
    reward = estimate_reward(amount, duration_days, app.config.apr)
    click.echo(f"Estimated reward: {reward:,.4f} at {app.config.apr * 100:g}% APR")


# ============================================================================
# GOVERNANCE COMMANDS
# ============================================================================

@main.command()
@click.argument("proposer")
@click.argument("title")
@click.argument("description")
@click.option("--days", "duration_days", type=int, default=None, help="Voting window in days")
@click.option(
    "--require-stake/--no-require-stake",
    default=True,
    show_default=True,
    help="Refuse proposers below the minimum active stake",
)
@click.pass_obj
def propose(
    app: CliContext,
    proposer: str,
    title: str,
    description: str,
    duration_days: int,
    require_stake: bool,
) -> None:
    """Create a proposal from PROPOSER."""
    async def action() -> Proposal:
        if require_stake and not await app.ledger.has_minimum_stake(proposer):
            raise click.ClickException(
                f"Active stake of at least {app.config.stake_min_amount:g} is required to propose"
            )
        return await app.registry.create_proposal(proposer, title, description, duration_days)

    proposal = _run(action)
    click.echo(f"Proposal created: {proposal.proposal_id}")


@main.command()
@click.argument("proposal_id")
@click.argument("wallet")
@click.argument("choice", type=click.Choice(["for", "against"], case_sensitive=False))
@click.option(
    "--require-stake/--no-require-stake",
    default=True,
    show_default=True,
    help="Refuse voters below the minimum active stake",
)
@click.pass_obj
def vote(app: CliContext, proposal_id: str, wallet: str, choice: str, require_stake: bool) -> None:
    """Vote CHOICE on PROPOSAL_ID as WALLET."""
    async def action() -> Proposal:
        if require_stake and not await app.ledger.has_minimum_stake(wallet):
            raise click.ClickException(
                f"Active stake of at least {app.config.stake_min_amount:g} is required to vote"
            )
        return await app.registry.cast_vote(proposal_id, wallet, choice.lower() == "for")

    proposal = _run(action)
    click.echo(f"Vote recorded: for {proposal.for_votes}  against {proposal.against_votes}")


@main.command()
@click.argument("proposal_id")
@click.pass_obj
def execute(app: CliContext, proposal_id: str) -> None:
    """Execute a closed proposal that passed."""
    proposal = _run(lambda: app.registry.execute_proposal(proposal_id))
    click.echo(f"Proposal {proposal.proposal_id} executed at {_fmt_time(proposal.executed_at)}")


@main.command()
@click.pass_obj
def proposals(app: CliContext) -> None:
    """List proposals, newest first."""
    registry = app.registry
    rows = _run(registry.list_proposals)
    if not rows:
        click.echo("No proposals yet.")
        return
    for proposal in rows:
        _echo_proposal(proposal, registry)


@main.command()
@click.argument("proposal_id")
@click.pass_obj
def status(app: CliContext, proposal_id: str) -> None:
    """Show the voting state of PROPOSAL_ID."""
    registry = app.registry
    proposal = _run(lambda: registry.get_proposal(proposal_id))
    _echo_proposal(proposal, registry)
    state = registry.classify(proposal)
    click.echo(
        f"  open {state.is_open}  passed {state.has_passed}  executable {state.can_execute}"
    )


if __name__ == "__main__":
    main()
