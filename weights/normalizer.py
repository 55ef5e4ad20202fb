"""
Weight normaliser: final balances → integer weights summing to exactly 10**36.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Tuple

from config import PRECISION_DECIMALS
from weights.errors import NormalizationError

log = logging.getLogger("weights.normalizer")

ONE_UNIT = 10**PRECISION_DECIMALS


def normalize_balances(balances: Iterable[Tuple[str, int]]) -> Dict[str, int]:
    """
    ``floor(balance * 10**36 / total)`` per key, in the given order.

    Truncation leaves the sum a little under one unit; the whole remainder
    goes to the *last* key visited, in either direction. Never split.
    """
    entries: List[Tuple[str, int]] = list(balances)
    if not entries:
        raise NormalizationError("Nothing to normalise: no balances accumulated")

    total = sum(balance for _, balance in entries)
    if total <= 0:
        raise NormalizationError("Total accumulated balance is not positive", expected="> 0", actual=total)

    weights: Dict[str, int] = {}
    for key, balance in entries:
        weights[key] = weights.get(key, 0) + balance * ONE_UNIT // total
    last = entries[-1][0]

    remainder = ONE_UNIT - sum(weights.values())
    if remainder > 0:
        log.info("[Normalizer] Adding %d to %s so weights add up to 1", remainder, last)
    elif remainder < 0:
        log.info("[Normalizer] Deducting %d from %s so weights add up to 1", -remainder, last)
    weights[last] += remainder

    total_after = sum(weights.values())
    if total_after != ONE_UNIT:
        raise NormalizationError("Did not add up to 1e36", expected=ONE_UNIT, actual=total_after)
    return weights


def normalize(accumulator) -> Dict[str, int]:
    """Normalise an :class:`OwnershipAccumulator` (or any mapping)."""
    return normalize_balances(accumulator.items())
