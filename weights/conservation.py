"""
Conservation checks run on every snapshot before its contribution counts.

All comparisons happen on 18‑decimal fixed‑point integers; the tolerance
is one whole unit (``10**18`` raw) in either direction.
"""
from __future__ import annotations

import logging
from typing import Iterable

from storage.models import GaugeSnapshot, HolderShare, PoolSnapshot
from weights.errors import ConservationError
from weights.fixed_point import FixedPoint

log = logging.getLogger("weights.conservation")

TOLERANCE = FixedPoint.one()


def _sum_shares(holders: Iterable[HolderShare]) -> FixedPoint:
    total = FixedPoint(0)
    for h in holders:
        total = total + FixedPoint.from_decimal(h.share_balance)
    return total


def _within(expected: FixedPoint, actual: FixedPoint) -> bool:
    return abs(expected - actual) <= TOLERANCE


def check_pool_shares(pool: PoolSnapshot, block: int) -> None:
    """Holder share balances must reconstruct the pool's total shares."""
    expected = FixedPoint.from_decimal(pool.total_shares)
    actual = _sum_shares(pool.holders)
    if not _within(expected, actual):
        raise ConservationError(
            f"TotalSupply diff greater than 1 in pool {pool.pool_id} at block {block}",
            expected=expected.to_decimal(),
            actual=actual.to_decimal(),
        )


def check_pool_reserve(pool: PoolSnapshot, reserve: FixedPoint, owned: FixedPoint, block: int) -> None:
    """Token ownership handed out for a pool must add up to its reserve."""
    if not _within(reserve, owned):
        raise ConservationError(
            f"TokenBalance diff greater than 1 in pool {pool.pool_id} at block {block}",
            expected=reserve.to_decimal(),
            actual=owned.to_decimal(),
        )


def check_gauge_supply(gauge: GaugeSnapshot, block: int) -> None:
    """Gauge depositor balances must reconstruct the gauge's total supply."""
    expected = FixedPoint.from_decimal(gauge.total_supply)
    actual = _sum_shares(gauge.holders)
    if not _within(expected, actual):
        raise ConservationError(
            f"TotalShares diff in gauge {gauge.gauge_id} greater than 1 at block {block}",
            expected=expected.to_decimal(),
            actual=actual.to_decimal(),
        )
    log.debug("[Conservation] Gauge %s ok at %d", gauge.gauge_id, block)


def check_gauge_transfer(gauge: GaugeSnapshot, pool: PoolSnapshot, taken: int, moved: int, block: int) -> None:
    """Tokens paid to gauge depositors must match what the gauge held in the pool."""
    expected, actual = FixedPoint(taken), FixedPoint(moved)
    if not _within(expected, actual):
        raise ConservationError(
            f"Gauge {gauge.gauge_id} depositors paid more or less than its share "
            f"of pool {pool.pool_id} at block {block}",
            expected=expected.to_decimal(),
            actual=actual.to_decimal(),
        )
