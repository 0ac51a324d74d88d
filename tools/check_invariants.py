#!/usr/bin/env python3
"""Ledger invariant checks against a persisted state file.

Usage:
    python3 tools/check_invariants.py
    python3 tools/check_invariants.py path/to/state.json
"""

import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from questledger.invariants import check_state


DEFAULT_STATE = ROOT / "data" / "state.json"


def check(state_path: Path = DEFAULT_STATE) -> int:
    if not state_path.exists():
        print(f"No state file at {state_path} — nothing to check.")
        return 0
    with state_path.open("r", encoding="utf-8") as handle:
        state = json.load(handle)

    errors = check_state(state)
    if errors:
        print("Ledger invariant checks failed:")
        for error in errors:
            print(f"  - {error}")
        return 1

    print(f"Ledger invariant checks passed ({state_path}).")
    return 0


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_STATE
    raise SystemExit(check(path))
