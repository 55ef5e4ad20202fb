"""
Per‑address ownership accumulator for one epoch computation.
"""
from __future__ import annotations

from typing import Dict, Iterator, Mapping, Tuple


class OwnershipAccumulator:
    """
    address → accumulated token amount (int, 18‑decimal fixed point).

    Iteration order is first‑insertion order of each address; the
    normaliser relies on it to pick the address absorbing the rounding
    remainder. An address whose balance returns to zero is dropped, and
    re‑entering later puts it at the end of the order.
    """

    def __init__(self) -> None:
        self._balances: Dict[str, int] = {}

    def add(self, address: str, amount: int) -> None:
        self.apply({address: amount})

    def apply(self, delta: Mapping[str, int]) -> None:
        """Add every (possibly negative) entry of ``delta``."""
        for address, amount in delta.items():
            if amount == 0:
                continue
            balance = self._balances.get(address, 0) + amount
            if balance < 0:
                raise ValueError(
                    f"Accumulator balance for {address} would go negative ({balance})"
                )
            if balance == 0:
                self._balances.pop(address, None)
            else:
                self._balances[address] = balance

    def get(self, address: str) -> int:
        return self._balances.get(address, 0)

    def total(self) -> int:
        return sum(self._balances.values())

    def items(self) -> Iterator[Tuple[str, int]]:
        return iter(list(self._balances.items()))

    def as_dict(self) -> Dict[str, int]:
        return dict(self._balances)

    def __contains__(self, address: object) -> bool:
        return address in self._balances

    def __len__(self) -> int:
        return len(self._balances)
