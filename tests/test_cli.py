"""Tests for the quest ledger CLI — proves CLI dispatches correctly."""

import json
from pathlib import Path

import pytest

from questledger import cli
from questledger.cli import build_parser, main
from questledger.issuer.recording import RecordingRewardIssuer
from questledger.persistence.event_log import EventKind, EventLog
from questledger.persistence.state_store import StateStore


ISSUER = "0x" + "11" * 20


class StubChainIssuer(RecordingRewardIssuer):
    """Stands in for the web3 issuer so claims never touch a network."""

    @classmethod
    def from_settings(cls, settings, contract_address: str) -> "StubChainIssuer":
        return cls(address=contract_address)


@pytest.fixture(autouse=True)
def no_chain_env(monkeypatch) -> None:
    monkeypatch.delenv("QUESTLEDGER_RPC_URL", raising=False)
    monkeypatch.delenv("QUESTLEDGER_PRIVATE_KEY", raising=False)


@pytest.fixture
def chain_env(monkeypatch) -> None:
    monkeypatch.setenv("QUESTLEDGER_RPC_URL", "http://localhost:8545")
    monkeypatch.setenv("QUESTLEDGER_PRIVATE_KEY", "0x" + "01" * 32)
    monkeypatch.setattr(cli, "Web3RewardIssuer", StubChainIssuer)


def _run(tmp_path: Path, *argv: str) -> int:
    return main([
        "--data-dir", str(tmp_path / "data"),
        "--env-file", str(tmp_path / "absent.env"),
        *argv,
    ])


def _setup(tmp_path: Path) -> None:
    assert _run(tmp_path, "initialize", "--caller", "authority", "--issuer", ISSUER) == 0
    assert _run(tmp_path, "mark-complete", "--caller", "authority",
                "--user", "alice", "--quest", "1001") == 0


class TestCLIParsing:
    def test_status_command(self) -> None:
        args = build_parser().parse_args(["status"])
        assert args.command == "status"

    def test_mark_complete_command(self) -> None:
        args = build_parser().parse_args([
            "mark-complete", "--caller", "authority", "--user", "alice", "--quest", "1001",
        ])
        assert args.command == "mark-complete"
        assert args.user == "alice"
        assert args.quest == 1001

    def test_quest_must_be_integer(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["claim", "--caller", "alice", "--quest", "abc"])


class TestCLIExecution:
    def test_no_command_shows_help(self, capsys) -> None:
        assert main([]) == 0

    def test_status_runs(self, tmp_path: Path, capsys) -> None:
        assert _run(tmp_path, "status") == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["initialized"] is False

    def test_full_lifecycle(self, tmp_path: Path, capsys, chain_env) -> None:
        _setup(tmp_path)
        capsys.readouterr()

        assert _run(tmp_path, "claim", "--caller", "alice", "--quest", "1001") == 0
        claimed = json.loads(capsys.readouterr().out)
        assert claimed == {"user": "alice", "quest_id": 1001, "reward_token_id": 50}

        assert _run(tmp_path, "show", "--user", "alice", "--quest", "1001") == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["completed"] and shown["claimed"]
        assert shown["reward_token_id"] == 50

        assert _run(tmp_path, "events", "--kind", "reward_claimed") == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["payload"]["token_id"] == 50

        assert _run(tmp_path, "check-invariants") == 0

    def test_second_claim_fails(self, tmp_path: Path, capsys, chain_env) -> None:
        _setup(tmp_path)
        assert _run(tmp_path, "claim", "--caller", "alice", "--quest", "1001") == 0
        assert _run(tmp_path, "claim", "--caller", "alice", "--quest", "1001") == 1
        assert "already_claimed" in capsys.readouterr().err

    def test_unauthorized_mark_fails(self, tmp_path: Path, capsys) -> None:
        _run(tmp_path, "initialize", "--caller", "authority", "--issuer", ISSUER)
        assert _run(tmp_path, "mark-complete", "--caller", "mallory",
                    "--user", "alice", "--quest", "1001") == 1
        assert "unauthorized" in capsys.readouterr().err

    def test_check_invariants_flags_corrupt_state(self, tmp_path: Path, capsys) -> None:
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (data_dir / "state.json").write_text(json.dumps({
            "authority": "authority",
            "issuer_address": ISSUER,
            "quests": [{"quest_id": 1001, "reward_token_id": 50}],
            "completed": [],
            "claimed": [["alice", 1001]],
        }), encoding="utf-8")
        assert _run(tmp_path, "check-invariants") == 1
        assert "claimed without completion" in capsys.readouterr().err


class TestCLIClaimIssuer:
    def test_claim_refused_without_chain_issuer(self, tmp_path: Path, capsys) -> None:
        _setup(tmp_path)
        assert _run(tmp_path, "claim", "--caller", "alice", "--quest", "1001") == 1
        assert "no chain issuer configured" in capsys.readouterr().err
        store = StateStore(tmp_path / "data" / "state.json")
        assert store.load_claimed() == set()

    def test_dry_run_leaves_ledger_untouched(self, tmp_path: Path, capsys) -> None:
        _setup(tmp_path)
        capsys.readouterr()

        assert _run(tmp_path, "claim", "--caller", "alice", "--quest", "1001", "--dry-run") == 0
        assert json.loads(capsys.readouterr().out)["reward_token_id"] == 50

        data_dir = tmp_path / "data"
        assert StateStore(data_dir / "state.json").load_claimed() == set()
        log = EventLog(storage_path=data_dir / "events.jsonl")
        assert log.events(EventKind.REWARD_CLAIMED) == []

    def test_real_claim_after_dry_run(self, tmp_path: Path, request) -> None:
        _setup(tmp_path)
        assert _run(tmp_path, "claim", "--caller", "alice", "--quest", "1001", "--dry-run") == 0

        request.getfixturevalue("chain_env")
        assert _run(tmp_path, "claim", "--caller", "alice", "--quest", "1001") == 0
        assert StateStore(tmp_path / "data" / "state.json").load_claimed() == {("alice", 1001)}
