"""
One epoch computation for one token, end to end.

    cycle → window → block range → sampled heights
          → aggregate ownership → normalise → weight records (+ points)

Nothing is written here: the caller persists or submits the result only
after this returns, so an aborted run leaves no output behind.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from config import SAMPLE_COUNT, TOKENS, TokenConfig
from storage.models import EpochWindow, PointsRecord, WeightRecord
from weights.aggregator import OwnershipAggregator
from weights.epochs import block_range, epoch_window
from weights.errors import ConfigError
from weights.normalizer import normalize
from weights.points import average_vault_balance, derive_points
from weights.sampler import sample_blocks

log = logging.getLogger("weights.forward")


@dataclass
class EpochResult:
    token_name: str
    window: EpochWindow
    heights: List[int]
    weights: List[WeightRecord]
    points: List[PointsRecord] = field(default_factory=list)


def resolve_token(token_name: str) -> TokenConfig:
    try:
        return TOKENS[token_name]
    except KeyError:
        raise ConfigError(
            "Invalid token name", expected=sorted(TOKENS), actual=token_name
        ) from None


def compute_weights(
    aggregator: OwnershipAggregator, token_address: str, heights: Sequence[int]
) -> List[WeightRecord]:
    """Weights for ``token_address`` over already sampled heights."""
    accumulator = aggregator.aggregate_epoch(token_address, heights)
    weights = normalize(accumulator)
    return [WeightRecord(address, weight) for address, weight in weights.items()]


def compute_epoch(
    token_name: str,
    cycle: int = -1,
    *,
    block_resolver,
    aggregator: OwnershipAggregator,
    balance_reader=None,
    now: Optional[int] = None,
    sample_count: int = SAMPLE_COUNT,
) -> EpochResult:
    token = resolve_token(token_name)
    window = epoch_window(cycle, now=now)
    log.warning("[forward] Running for cycle: %d for token: %s", window.cycle, token_name)

    start_block, end_block = block_range(window, block_resolver, now=now)
    heights = sample_blocks(start_block, end_block, sample_count)

    weights = compute_weights(aggregator, token.address, heights)
    log.warning("[forward] %d weights computed for %s (cycle %d)", len(weights), token_name, window.cycle)

    points: List[PointsRecord] = []
    if token.points and balance_reader is not None:
        average = average_vault_balance(balance_reader, token.address, heights)
        points = derive_points({w.address: w.weight for w in weights}, average, token.decimals)

    return EpochResult(token_name, window, heights, weights, points)
