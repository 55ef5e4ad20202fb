"""
Proportional ownership of one token inside one pool snapshot.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, Tuple

from storage.models import PoolSnapshot
from weights.errors import DataError
from weights.fixed_point import FixedPoint


def holder_ownership(share_balance: Decimal, total_shares: Decimal, reserve: FixedPoint) -> int:
    """
    Tokens owned by a holder, as an 18‑decimal integer.

    The ownership fraction is truncated to 18 digits *before* it multiplies
    the reserve; the conservation tolerance is calibrated on that order.
    """
    fraction = FixedPoint.ratio(share_balance, total_shares)
    return (reserve * fraction).raw


def token_reserve(pool: PoolSnapshot, token_address: str, block: int) -> FixedPoint:
    reserve = pool.reserve_of(token_address)
    if reserve is None:
        raise DataError(f"Token balance of {token_address} not found in pool {pool.pool_id} at block {block}")
    return FixedPoint.from_decimal(reserve)


def direct_contributions(
    pool: PoolSnapshot, token_address: str, block: int
) -> Tuple[Dict[str, int], FixedPoint]:
    """
    ({holder: tokens owned}, reserve) for every positive holder of ``pool``.

    Repeated holder entries add up; order follows the holder list.
    """
    if pool.total_shares <= 0:
        raise DataError(
            f"Pool {pool.pool_id} has no shares outstanding at block {block}",
            expected="> 0",
            actual=pool.total_shares,
        )
    reserve = token_reserve(pool, token_address, block)
    owned: Dict[str, int] = {}
    for holder in pool.holders:
        if holder.share_balance <= 0:
            continue
        amount = holder_ownership(holder.share_balance, pool.total_shares, reserve)
        owned[holder.holder_address] = owned.get(holder.holder_address, 0) + amount
    return owned, reserve
