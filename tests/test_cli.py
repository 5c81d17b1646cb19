"""
stakegov/tests/test_cli.py

Tests for the stakegov command line interface.
"""

import pytest
import tempfile
from pathlib import Path

from click.testing import CliRunner

from stakegov.cli import main


WALLET = "0xAbC0000000000000000000000000000000000001"


# ============================================================================
# TEST DATA
# ============================================================================

@pytest.fixture
def store_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "ledger.json"


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner: CliRunner, store_path: Path, *args: str, env: dict = None):
    """Run a command against the given store file."""
    return runner.invoke(main, ["--store", str(store_path), *args], env=env)


def created_id(output: str, prefix: str) -> str:
    """Pull the id printed after prefix."""
    return output.split(prefix, 1)[1].split()[0]


# ============================================================================
# STAKING COMMANDS
# ============================================================================

class TestStakingCommands:
    """Test stake, summary, claim and estimate commands."""

    def test_stake_and_summary(self, runner, store_path):
        """Test a stake shows up in the wallet summary."""
        result = invoke(runner, store_path, "stake", WALLET, "1000", "--days", "30")
        assert result.exit_code == 0, result.output
        assert "Stake recorded:" in result.output
        assert store_path.exists()

        result = invoke(runner, store_path, "summary", WALLET.lower())
        assert result.exit_code == 0, result.output
        assert "Active stake:      1,000.00" in result.output
        assert "[active]" in result.output

    def test_stake_invalid_duration(self, runner, store_path):
        """Test a duration that is not offered fails."""
        result = invoke(runner, store_path, "stake", WALLET, "1000", "--days", "45")
        assert result.exit_code == 1
        assert "ValidationError" in result.output

    def test_stake_non_positive_amount(self, runner, store_path):
        """Test a zero stake fails."""
        result = invoke(runner, store_path, "stake", WALLET, "0", "--days", "30")
        assert result.exit_code == 1

    def test_empty_summary(self, runner, store_path):
        """Test a wallet without stakes."""
        result = invoke(runner, store_path, "summary", WALLET)
        assert result.exit_code == 0
        assert "Active stake:      0.00" in result.output

    def test_claim(self, runner, store_path):
        """Test claiming a stake entry."""
        result = invoke(runner, store_path, "stake", WALLET, "500", "--days", "60")
        entry_id = created_id(result.output, "Stake recorded: ")

        result = invoke(runner, store_path, "claim", WALLET, entry_id)
        assert result.exit_code == 0, result.output
        assert f"Stake {entry_id} claimed at" in result.output

        result = invoke(runner, store_path, "summary", WALLET)
        assert "[claimed]" in result.output

    def test_claim_unknown(self, runner, store_path):
        """Test claiming a missing entry fails."""
        result = invoke(runner, store_path, "claim", WALLET, "missing")
        assert result.exit_code == 1
        assert "NotFoundError" in result.output

    def test_claim_locked(self, runner, store_path):
        """Test enforced maturity from the environment."""
        env = {"STAKEGOV_ENFORCE_MATURITY": "1"}
        result = invoke(runner, store_path, "stake", WALLET, "500", "--days", "60", env=env)
        entry_id = created_id(result.output, "Stake recorded: ")

        result = invoke(runner, store_path, "claim", WALLET, entry_id, env=env)
        assert result.exit_code == 1
        assert "StakeLockedError" in result.output

    def test_estimate(self, runner, store_path):
        """Test the reward preview uses the configured APR."""
        result = invoke(
            runner, store_path, "estimate", "1000", "--days", "30",
            env={"STAKEGOV_APR": "0.10"},
        )
        assert result.exit_code == 0, result.output
        assert "Estimated reward: 8.2192 at 10% APR" in result.output


# ============================================================================
# GOVERNANCE COMMANDS
# ============================================================================

class TestGovernanceCommands:
    """Test propose, vote, execute, proposals and status commands."""

    def test_no_proposals(self, runner, store_path):
        """Test listing an empty registry."""
        result = invoke(runner, store_path, "proposals")
        assert result.exit_code == 0
        assert "No proposals yet." in result.output

    def test_propose_requires_stake(self, runner, store_path):
        """Test proposers below the minimum stake are refused."""
        result = invoke(runner, store_path, "propose", WALLET, "Title", "Description")
        assert result.exit_code == 1
        assert "required to propose" in result.output

    def test_propose_with_stake(self, runner, store_path):
        """Test a staked wallet can propose."""
        invoke(runner, store_path, "stake", WALLET, "150", "--days", "30")
        result = invoke(runner, store_path, "propose", WALLET, "Title", "Description", "--days", "3")
        assert result.exit_code == 0, result.output
        assert "Proposal created:" in result.output

    def test_vote_flow(self, runner, store_path):
        """Test proposing, voting, listing and refusing early execution."""
        result = invoke(
            runner, store_path, "propose", WALLET, "Lower fees", "Cut the fee to 1%",
            "--days", "7", "--no-require-stake",
        )
        assert result.exit_code == 0, result.output
        proposal_id = created_id(result.output, "Proposal created: ")

        result = invoke(runner, store_path, "vote", proposal_id, WALLET, "for", "--no-require-stake")
        assert result.exit_code == 0, result.output
        assert "Vote recorded: for 1  against 0" in result.output

        result = invoke(
            runner, store_path, "vote", proposal_id, WALLET.upper().replace("0X", "0x"),
            "against", "--no-require-stake",
        )
        assert result.exit_code == 1
        assert "AlreadyVotedError" in result.output

        result = invoke(runner, store_path, "execute", proposal_id)
        assert result.exit_code == 1
        assert "StillOpenError" in result.output

        result = invoke(runner, store_path, "proposals")
        assert result.exit_code == 0
        assert "Lower fees" in result.output
        assert "[Active]" in result.output

        result = invoke(runner, store_path, "status", proposal_id)
        assert result.exit_code == 0
        assert "open True  passed True  executable False" in result.output

    def test_vote_requires_stake(self, runner, store_path):
        """Test voters below the minimum stake are refused."""
        result = invoke(
            runner, store_path, "propose", WALLET, "Title", "Description", "--no-require-stake",
        )
        proposal_id = created_id(result.output, "Proposal created: ")

        result = invoke(runner, store_path, "vote", proposal_id, "0xnostake", "for")
        assert result.exit_code == 1
        assert "required to vote" in result.output

    def test_vote_invalid_choice(self, runner, store_path):
        """Test only for/against are accepted."""
        result = invoke(runner, store_path, "vote", "p1", WALLET, "maybe")
        assert result.exit_code == 2

    def test_status_unknown(self, runner, store_path):
        """Test status of a missing proposal."""
        result = invoke(runner, store_path, "status", "missing")
        assert result.exit_code == 1
        assert "NotFoundError" in result.output

    def test_corrupt_store(self, runner, store_path):
        """Test an unreadable store file is reported."""
        store_path.write_text("not json")
        result = invoke(runner, store_path, "proposals")
        assert result.exit_code == 1
        assert "Failed to load store" in result.output
