"""On-chain reward issuer — mints reward tokens through an Ethereum contract.

The reward contract is an ERC-1155-style token whose issuance layer has
granted this signer the right to call `mint(address,uint256)`. Supply
limits, metadata and the contract's own authorization are the
contract's business, not the ledger's.

Each mint is one signed transaction. The issuer waits for the receipt
and treats a reverted transaction as a failed mint. A transaction that
was sent but never confirmed is reported as unconfirmed, not failed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from questledger.issuer.base import IssuanceError, IssuanceUnconfirmed, MintRecord

logger = logging.getLogger(__name__)


MINT_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "mint",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "id", "type": "uint256"},
        ],
        "outputs": [],
    },
]

DEFAULT_CHAIN_ID = 11155111  # Sepolia


class Web3RewardIssuer:
    """Reward issuer backed by a deployed reward contract.

    Usage:
        issuer = Web3RewardIssuer(
            contract_address="0xReward...",
            rpc_url=settings.rpc_url,
            private_key=settings.private_key,
        )
        record = issuer.mint("0xAlice...", 50)
        record.tx_hash

    No connection is made until the first mint.
    """

    def __init__(
        self,
        contract_address: str,
        rpc_url: str,
        private_key: str,
        chain_id: int = DEFAULT_CHAIN_ID,
        gas: int = 120_000,
        gas_price_gwei: str = "2",
        receipt_timeout: int = 300,
    ) -> None:
        if not rpc_url or not private_key:
            raise ValueError("Web3RewardIssuer requires an RPC URL and a private key")
        self.address = contract_address
        self._rpc_url = rpc_url
        self._private_key = private_key
        self._chain_id = chain_id
        self._gas = gas
        self._gas_price_gwei = gas_price_gwei
        self._receipt_timeout = receipt_timeout
        self._w3: Optional[Any] = None
        self._account: Optional[Any] = None

    @classmethod
    def from_settings(cls, settings: Any, contract_address: str) -> Web3RewardIssuer:
        """Build from questledger.config.Settings."""
        return cls(
            contract_address=contract_address,
            rpc_url=settings.rpc_url,
            private_key=settings.private_key,
            chain_id=settings.chain_id,
            gas=settings.gas,
            gas_price_gwei=settings.gas_price_gwei,
        )

    def _connect(self) -> tuple[Any, Any]:
        if self._w3 is None:
            from web3 import Web3, HTTPProvider
            from eth_account import Account

            self._w3 = Web3(HTTPProvider(self._rpc_url))
            self._account = Account.from_key(self._private_key)
        return self._w3, self._account

    def mint(self, recipient: str, token_id: int) -> MintRecord:
        """Send mint(recipient, token_id) and wait for one confirmation.

        Raises IssuanceError if the transaction cannot be built or sent,
        or if it reverted. Once the transaction is broadcast, a failure to
        obtain the receipt raises IssuanceUnconfirmed carrying the hash.
        """
        try:
            w3, acct = self._connect()
            contract = w3.eth.contract(
                address=w3.to_checksum_address(self.address), abi=MINT_ABI,
            )
            tx = contract.functions.mint(
                w3.to_checksum_address(recipient), token_id,
            ).build_transaction({
                "from": acct.address,
                "nonce": w3.eth.get_transaction_count(acct.address),
                "gas": self._gas,
                "gasPrice": w3.to_wei(self._gas_price_gwei, "gwei"),
                "chainId": self._chain_id,
            })
            signed = acct.sign_transaction(tx)
            tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            raise IssuanceError(f"Mint transaction failed: {e}") from e

        # Broadcast: from here on the mint may land whatever we observe
        tx_hex = w3.to_hex(tx_hash)
        logger.info("Sent mint tx %s (token %s → %s)", tx_hex, token_id, recipient)
        try:
            receipt = w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._receipt_timeout,
            )
        except Exception as e:
            logger.warning("Mint tx %s sent but unconfirmed: %s", tx_hex, e)
            raise IssuanceUnconfirmed(
                f"Mint transaction {tx_hex} sent but not confirmed: {e}",
                tx_hash=tx_hex,
            ) from e

        if receipt.status != 1:
            raise IssuanceError(
                f"Mint transaction reverted: {tx_hex} in block {receipt.blockNumber}"
            )

        logger.info("Mint confirmed in block %s", receipt.blockNumber)
        return MintRecord(
            recipient=recipient,
            token_id=token_id,
            timestamp_utc=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            tx_hash=tx_hex,
            block_number=receipt.blockNumber,
        )
