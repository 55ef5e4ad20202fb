"""
On‑chain reads over JSON‑RPC: ERC‑20 balance held by the vault at a block.
"""
from __future__ import annotations

import logging
from typing import Optional

from web3 import Web3

from config import settings
from weights.errors import DataError

log = logging.getLogger("api.rpc")

ERC20_BALANCE_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


class VaultBalanceReader:
    """Reads ``token.balanceOf(vault)`` at historical block heights."""

    def __init__(
        self,
        *,
        rpc_url: Optional[str] = None,
        vault_address: Optional[str] = None,
        w3: Optional[Web3] = None,  # injectable for tests
    ) -> None:
        self._w3 = w3 or Web3(Web3.HTTPProvider(rpc_url or settings.RPC_URL))
        self.vault_address = Web3.to_checksum_address(vault_address or settings.VAULT_ADDRESS)

    def balance_at(self, token_address: str, block: int) -> int:
        """Raw token units (native decimals) held by the vault at ``block``."""
        contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(token_address), abi=ERC20_BALANCE_ABI
        )
        try:
            balance = contract.functions.balanceOf(self.vault_address).call(
                block_identifier=block
            )
        except Exception as err:
            raise DataError(
                f"balanceOf({self.vault_address}) on {token_address} at block {block} failed: {err}"
            ) from err
        log.debug("[Rpc] Vault balance of %s at %d: %d", token_address, block, balance)
        return int(balance)
