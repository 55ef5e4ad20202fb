"""
Pool‑level weights: how much of a token each pool held over an epoch.

Pools at or below ``min_weight`` of the total are dropped and the
survivors renormalised, so the output still sums to exactly 10**36.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List

from config import PRECISION_DECIMALS
from storage.models import PoolWeightRecord
from weights.accumulator import OwnershipAccumulator
from weights.normalizer import ONE_UNIT, normalize
from weights.ownership import token_reserve

log = logging.getLogger("weights.pool_weights")

DEFAULT_MIN_WEIGHT = Decimal("0.01")


def accumulate_pool_reserves(
    snapshot_source, token_address: str, heights: Iterable[int]
) -> OwnershipAccumulator:
    """pool_id → token reserve summed over the sampled heights."""
    acc = OwnershipAccumulator()
    for block in heights:
        for pool in snapshot_source.pools_holding_token(token_address, block):
            acc.add(pool.pool_id, token_reserve(pool, token_address, block).raw)
    return acc


def pool_weights(
    reserves: OwnershipAccumulator, min_weight: Decimal = DEFAULT_MIN_WEIGHT
) -> List[PoolWeightRecord]:
    weights = normalize(reserves)
    threshold = int(min_weight * ONE_UNIT)

    kept = OwnershipAccumulator()
    for pool_id, weight in weights.items():
        if weight > threshold:
            kept.add(pool_id, reserves.get(pool_id))
        else:
            log.info(
                "[PoolWeights] Pool %s has a weight of less than %s: %s",
                pool_id, min_weight, Decimal(weight).scaleb(-PRECISION_DECIMALS),
            )

    return [PoolWeightRecord(pool_id, w) for pool_id, w in normalize(kept).items()]
