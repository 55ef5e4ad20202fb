"""
Gauge delegation resolver.

A staking gauge appears in a pool's holder list as one address custodying
pool shares for its depositors. The gauge is never a final beneficiary: its
direct contribution for the pool/block is taken back and each depositor is
credited ``holderBalance / pool.totalShares`` of the pool's reserve (the
pool ledger, not the gauge's own supply, is the denominator; gauge shares
are backed 1:1 by pool shares).

Resolution is a pure correction: :func:`gauge_correction` returns a delta
mapping which the aggregator nets against the direct contributions before
anything touches the accumulator.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, Mapping, Optional

from storage.models import GaugeSnapshot, PoolSnapshot
from weights.conservation import check_gauge_supply, check_gauge_transfer
from weights.errors import DataError
from weights.fixed_point import FixedPoint
from weights.ownership import holder_ownership

log = logging.getLogger("weights.gauges")


def gauge_correction(
    pool: PoolSnapshot,
    reserve: FixedPoint,
    direct: Mapping[str, int],
    gauge: GaugeSnapshot,
    block: int,
) -> Dict[str, int]:
    """
    Delta moving the gauge's direct share of ``pool`` to its depositors.

    Raises :class:`ConservationError` when depositor balances do not add
    up to the gauge supply, or when the tokens paid to depositors differ
    from the gauge's own pool share by more than one unit. Raises
    :class:`DataError` when the gauge has depositors but holds no shares
    of the pool.
    """
    check_gauge_supply(gauge, block)

    if gauge.gauge_id not in direct:
        if gauge.holders:
            raise DataError(
                f"Gauge {gauge.gauge_id} has depositors but is not a holder "
                f"of pool {pool.pool_id} at block {block}"
            )
        return {}

    taken = direct[gauge.gauge_id]
    delta: Dict[str, int] = defaultdict(int)
    delta[gauge.gauge_id] -= taken

    moved = 0
    for holder in gauge.holders:
        if holder.share_balance <= 0:
            continue
        amount = holder_ownership(holder.share_balance, pool.total_shares, reserve)
        delta[holder.holder_address] += amount
        moved += amount

    check_gauge_transfer(gauge, pool, taken, moved, block)

    log.debug(
        "[Gauges] Pool %s block %d: moved %d from gauge %s to %d depositors",
        pool.pool_id, block, taken, gauge.gauge_id, len(gauge.holders),
    )
    return dict(delta)


class GaugeResolver:
    """Looks up gauge links for a block's pools and builds the corrections."""

    def __init__(self, *, directory, gauge_source) -> None:
        self._directory = directory
        self._gauge_source = gauge_source

    def links(self, pools: Iterable[PoolSnapshot]) -> Dict[str, str]:
        """{pool_id: gauge_id} for the pools that have a staking gauge."""
        return self._directory.gauges_for_pools([p.pool_id for p in pools])

    def correction(
        self,
        pool: PoolSnapshot,
        reserve: FixedPoint,
        direct: Mapping[str, int],
        gauge_id: Optional[str],
        block: int,
    ) -> Dict[str, int]:
        if not gauge_id:
            return {}
        gauge = self._gauge_source.gauge_holders(gauge_id, block)
        if gauge is None:
            log.debug("[Gauges] Gauge %s not present at block %d", gauge_id, block)
            return {}
        return gauge_correction(pool, reserve, direct, gauge, block)
