"""Quest ledger CLI — command-line interface for the reward ledger.

Usage:
    python -m questledger.cli status
    python -m questledger.cli initialize --caller authority --issuer 0xReward...
    python -m questledger.cli mark-complete --caller authority --user alice --quest 1001
    python -m questledger.cli claim --caller alice --quest 1001 [--dry-run]
    python -m questledger.cli show --user alice --quest 1001
    python -m questledger.cli events --kind reward_claimed
    python -m questledger.cli check-invariants

Claims need QUESTLEDGER_RPC_URL and QUESTLEDGER_PRIVATE_KEY. With
--dry-run a claim runs against a scratch copy of the ledger and an
in-memory issuer, leaving the real ledger untouched.
"""

from __future__ import annotations

import argparse
import json
import logging
import shutil
import sys
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Optional

from questledger.config import ROOT, Settings
from questledger.invariants import check_state
from questledger.issuer.base import RewardIssuer
from questledger.issuer.chain import Web3RewardIssuer
from questledger.issuer.recording import RecordingRewardIssuer
from questledger.persistence.event_log import EventKind, EventLog
from questledger.persistence.state_store import StateStore
from questledger.service import QuestService, ServiceResult


DEFAULT_ENV_FILE = ROOT / ".env"
EVENTS_FILE = "events.jsonl"
STATE_FILE = "state.json"


def _make_issuer_factory(settings: Settings):
    def factory(address: str) -> RewardIssuer:
        if settings.has_chain_credentials:
            return Web3RewardIssuer.from_settings(settings, contract_address=address)
        return RecordingRewardIssuer(address=address)
    return factory


def _load_settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(env_file=args.env_file)


def _data_dir(args: argparse.Namespace, settings: Settings) -> Path:
    data_dir: Path = args.data_dir or settings.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def _make_service(
    args: argparse.Namespace,
    settings: Optional[Settings] = None,
    data_dir: Optional[Path] = None,
) -> QuestService:
    """Create a QuestService with durable persistence."""
    settings = settings or _load_settings(args)
    data_dir = data_dir or _data_dir(args, settings)
    return QuestService(
        _make_issuer_factory(settings),
        event_log=EventLog(storage_path=data_dir / EVENTS_FILE),
        state_store=StateStore(storage_path=data_dir / STATE_FILE),
    )


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        return 0
    kind = f" [{result.error_kind.value}]" if result.error_kind else ""
    print(f"Failed{kind}: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.summary(), indent=2))
    return 0


def cmd_initialize(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.initialize(args.caller, args.issuer))


def cmd_register_quest(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.register_quest(args.caller, args.quest, args.reward))


def cmd_mark_complete(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.mark_complete(args.caller, args.user, args.quest))


def cmd_claim(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    data_dir = _data_dir(args, settings)
    if args.dry_run:
        # Work on a scratch copy: nothing is minted, so nothing may be consumed
        with tempfile.TemporaryDirectory(prefix="questledger-dry-run-") as scratch:
            for name in (EVENTS_FILE, STATE_FILE):
                if (data_dir / name).exists():
                    shutil.copy2(data_dir / name, Path(scratch) / name)
            dry_settings = replace(settings, rpc_url=None, private_key=None)
            service = _make_service(args, dry_settings, Path(scratch))
            return _report(service.claim(args.caller, args.quest))
    if not settings.has_chain_credentials:
        print(
            "Failed: no chain issuer configured (set QUESTLEDGER_RPC_URL and "
            "QUESTLEDGER_PRIVATE_KEY, or pass --dry-run)",
            file=sys.stderr,
        )
        return 1
    service = _make_service(args, settings, data_dir)
    return _report(service.claim(args.caller, args.quest))


def cmd_show(args: argparse.Namespace) -> int:
    service = _make_service(args)
    data = service.status(args.user, args.quest).to_dict()
    data["reward_token_id"] = service.reward_for(args.quest)
    print(json.dumps(data, indent=2))
    return 0


def cmd_events(args: argparse.Namespace) -> int:
    service = _make_service(args)
    kind = EventKind(args.kind) if args.kind else None
    for event in service.events(kind):
        print(json.dumps(event.to_dict(), sort_keys=True))
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Check ledger invariants on the persisted state."""
    service = _make_service(args)
    errors = check_state(service.snapshot())
    if errors:
        for error in errors:
            print(f"FAIL: {error}", file=sys.stderr)
        return 1
    print("Ledger invariant checks passed.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="questledger",
        description="Quest ledger — authority-gated reward ledger CLI",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory for events.jsonl and state.json (default: QUESTLEDGER_DATA_DIR or data/)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=DEFAULT_ENV_FILE,
        help="Path to a .env file (default: .env at the project root)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show ledger status")

    # initialize
    p_init = sub.add_parser("initialize", help="One-time setup")
    p_init.add_argument("--caller", required=True, help="Identity that becomes the authority")
    p_init.add_argument("--issuer", required=True, help="Reward issuer address")

    # register-quest
    p_reg = sub.add_parser("register-quest", help="Register a quest (authority only)")
    p_reg.add_argument("--caller", required=True, help="Authority identity")
    p_reg.add_argument("--quest", type=int, required=True, help="Quest ID")
    p_reg.add_argument("--reward", type=int, required=True, help="Reward token ID")

    # mark-complete
    p_mark = sub.add_parser("mark-complete", help="Certify quest completion (authority only)")
    p_mark.add_argument("--caller", required=True, help="Authority identity")
    p_mark.add_argument("--user", required=True, help="User who completed the quest")
    p_mark.add_argument("--quest", type=int, required=True, help="Quest ID")

    # claim
    p_claim = sub.add_parser("claim", help="Claim a quest reward")
    p_claim.add_argument("--caller", required=True, help="Claiming user")
    p_claim.add_argument("--quest", type=int, required=True, help="Quest ID")
    p_claim.add_argument(
        "--dry-run",
        action="store_true",
        help="Claim against a scratch copy of the ledger with an in-memory issuer",
    )

    # show
    p_show = sub.add_parser("show", help="Show status for a user and quest")
    p_show.add_argument("--user", required=True)
    p_show.add_argument("--quest", type=int, required=True)

    # events
    p_events = sub.add_parser("events", help="Print the event log as JSON lines")
    p_events.add_argument("--kind", choices=[k.value for k in EventKind])

    # check-invariants
    sub.add_parser("check-invariants", help="Run ledger invariant checks")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(level=getattr(logging, args.log_level))

    commands = {
        "status": cmd_status,
        "initialize": cmd_initialize,
        "register-quest": cmd_register_quest,
        "mark-complete": cmd_mark_complete,
        "claim": cmd_claim,
        "show": cmd_show,
        "events": cmd_events,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
