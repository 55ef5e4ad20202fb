"""
Ownership aggregator: walks the sampled heights of one epoch and adds every
address's token ownership across all pools into an accumulator.

Per (block, pool) the work is two‑phase:

    1. direct contributions from the pool's holder list
       → conservation checks (shares, reserve)
    2. gauge correction (if the pool has a staking gauge)
       → net delta applied to the accumulator in one step

Blocks are processed strictly in order and any error aborts the epoch.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, Optional

from storage.models import PoolSnapshot
from weights.accumulator import OwnershipAccumulator
from weights.conservation import check_pool_reserve, check_pool_shares
from weights.fixed_point import FixedPoint
from weights.gauges import GaugeResolver
from weights.ownership import direct_contributions

log = logging.getLogger("weights.aggregator")


def net_contribution(direct: Dict[str, int], correction: Dict[str, int]) -> Dict[str, int]:
    """Direct contributions plus a correction, zero entries dropped."""
    net: Dict[str, int] = defaultdict(int)
    for source in (direct, correction):
        for address, amount in source.items():
            net[address] += amount
    return {address: amount for address, amount in net.items() if amount != 0}


class OwnershipAggregator:
    """
    Computes per‑address token ownership for one token.

    The accumulator is explicit: passed in (or created) and returned by
    every call, never kept on the aggregator, so independent epoch runs can
    share an aggregator without sharing state.
    """

    def __init__(
        self,
        *,
        snapshot_source,
        gauge_resolver: Optional[GaugeResolver] = None,
    ) -> None:
        self._source = snapshot_source
        self._gauges = gauge_resolver

    # ------------------------------------------------------------------ #
    # PUBLIC
    # ------------------------------------------------------------------ #
    def aggregate_epoch(
        self,
        token_address: str,
        heights: Iterable[int],
        accumulator: Optional[OwnershipAccumulator] = None,
    ) -> OwnershipAccumulator:
        acc = accumulator if accumulator is not None else OwnershipAccumulator()
        sampled = 0
        for block in heights:
            self.aggregate_block(token_address, block, acc)
            sampled += 1

        log.info(
            "[Aggregator] %d blocks sampled for %s → %d addresses",
            sampled, token_address, len(acc),
        )
        return acc

    def aggregate_block(
        self, token_address: str, block: int, accumulator: OwnershipAccumulator
    ) -> OwnershipAccumulator:
        pools = self._source.pools_holding_token(token_address, block)
        links: Dict[str, str] = self._gauges.links(pools) if self._gauges and pools else {}

        for pool in pools:
            accumulator.apply(
                self.pool_contribution(pool, token_address, block, links.get(pool.pool_id))
            )

        log.debug("[Aggregator] Block %d: %d pools, %d gauges", block, len(pools), len(links))
        return accumulator

    def pool_contribution(
        self,
        pool: PoolSnapshot,
        token_address: str,
        block: int,
        gauge_id: Optional[str] = None,
    ) -> Dict[str, int]:
        """Validated net ownership delta of one pool at one block."""
        direct, reserve = direct_contributions(pool, token_address, block)

        check_pool_shares(pool, block)
        check_pool_reserve(pool, reserve, FixedPoint(sum(direct.values())), block)

        correction: Dict[str, int] = {}
        if gauge_id and self._gauges is not None:
            correction = self._gauges.correction(pool, reserve, direct, gauge_id, block)

        net = net_contribution(direct, correction)
        if correction:
            check_pool_reserve(pool, reserve, FixedPoint(sum(net.values())), block)
        return net
