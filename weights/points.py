"""
Points stream derived from a finished weight set.

    points = weight / 10**36 × averageVaultBalance / 10**decimals × 36 × 7

Pure post‑processing; the weights themselves are never touched.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Mapping, Sequence

from config import POINTS_MULTIPLIER, PRECISION_DECIMALS
from storage.models import PointsRecord
from weights.errors import DataError

log = logging.getLogger("weights.points")


def average_vault_balance(reader, token_address: str, heights: Sequence[int]) -> int:
    """Mean vault balance (native token units) over the sampled heights."""
    if not heights:
        raise DataError("No heights to average the vault balance over")
    total = sum(reader.balance_at(token_address, block) for block in heights)
    average = total // len(heights)
    log.info("[Points] Average vault balance of %s over %d blocks: %d", token_address, len(heights), average)
    return average


def derive_points(
    weights: Mapping[str, int], average_balance: int, token_decimals: int
) -> List[PointsRecord]:
    balance = Decimal(average_balance).scaleb(-token_decimals)
    records = []
    for address, weight in weights.items():
        share = Decimal(weight).scaleb(-PRECISION_DECIMALS)
        records.append(PointsRecord(address, share * balance * POINTS_MULTIPLIER))
    return records
