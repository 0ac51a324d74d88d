"""Runtime configuration — environment variables, optionally from a .env file.

Recognised variables:
    QUESTLEDGER_DATA_DIR          directory for events.jsonl and state.json
    QUESTLEDGER_RPC_URL           Ethereum RPC endpoint for the reward contract
    QUESTLEDGER_PRIVATE_KEY       hex key of the signer allowed to mint
    QUESTLEDGER_CHAIN_ID          network chain id (default: 11155111 = Sepolia)
    QUESTLEDGER_GAS               gas limit per mint transaction
    QUESTLEDGER_GAS_PRICE_GWEI    gas price in gwei

Without RPC credentials the CLI runs against an in-memory issuer.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values

from questledger.issuer.chain import DEFAULT_CHAIN_ID


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DATA_DIR = ROOT / "data"


def _int_var(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""
    data_dir: Path = DEFAULT_DATA_DIR
    rpc_url: Optional[str] = None
    private_key: Optional[str] = None
    chain_id: int = DEFAULT_CHAIN_ID
    gas: int = 120_000
    gas_price_gwei: str = "2"

    @property
    def has_chain_credentials(self) -> bool:
        return bool(self.rpc_url and self.private_key)

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Settings:
        """Load settings from the environment.

        Values from env_file (if it exists) are read first; variables set
        in the process environment (or `environ`) take precedence.
        """
        merged: dict[str, str] = {}
        if env_file is not None and env_file.exists():
            merged.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        merged.update(os.environ if environ is None else environ)
        environ = merged

        data_dir = environ.get("QUESTLEDGER_DATA_DIR")
        return cls(
            data_dir=Path(data_dir) if data_dir else DEFAULT_DATA_DIR,
            rpc_url=environ.get("QUESTLEDGER_RPC_URL") or None,
            private_key=environ.get("QUESTLEDGER_PRIVATE_KEY") or None,
            chain_id=_int_var(environ, "QUESTLEDGER_CHAIN_ID", DEFAULT_CHAIN_ID),
            gas=_int_var(environ, "QUESTLEDGER_GAS", 120_000),
            gas_price_gwei=environ.get("QUESTLEDGER_GAS_PRICE_GWEI") or "2",
        )
