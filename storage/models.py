"""
Lightweight in‑memory model types shared by the fetch boundary and the
weight engine.

There is **no database** here. These classes are plain dataclasses;
snapshots are discarded after aggregation and weight records are the
terminal, write‑once output of one epoch computation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional


__all__ = [
    "HolderShare",
    "PoolSnapshot",
    "GaugeSnapshot",
    "EpochWindow",
    "WeightRecord",
    "PoolWeightRecord",
    "PointsRecord",
]


# ──────────────────────────────────────────────────────────────
# Snapshots (one block height)
# ──────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class HolderShare:
    """One address and its (strictly positive) share balance."""
    holder_address: str
    share_balance: Decimal


@dataclass
class PoolSnapshot:
    """
    State of one pool at one block height.

    `token_reserves` holds the reserve of every pool token keyed by
    lower‑cased token address; the aggregator picks the one it needs.
    """
    pool_id: str
    total_shares: Decimal
    token_reserves: Dict[str, Decimal]
    holders: List[HolderShare] = field(default_factory=list)
    # Registry the snapshot was read from ("v2" / "v3").
    source: str = ""

    def reserve_of(self, token_address: str) -> Optional[Decimal]:
        return self.token_reserves.get(token_address.lower())


@dataclass
class GaugeSnapshot:
    """State of one staking gauge at one block height."""
    gauge_id: str
    total_supply: Decimal
    holders: List[HolderShare] = field(default_factory=list)


@dataclass(frozen=True)
class EpochWindow:
    cycle: int
    start_timestamp: int
    end_timestamp: int


# ──────────────────────────────────────────────────────────────
# Output records
# ──────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class WeightRecord:
    """Address weight as an integer at 36‑decimal fixed‑point scale."""
    address: str
    weight: int

    def as_dict(self) -> Dict[str, str]:
        return {"user": self.address, "weight": str(self.weight)}


@dataclass(frozen=True)
class PoolWeightRecord:
    pool_id: str
    weight: int

    def as_dict(self) -> Dict[str, str]:
        return {"poolId": self.pool_id, "weight": str(self.weight)}


@dataclass(frozen=True)
class PointsRecord:
    address: str
    points: Decimal

    def as_dict(self) -> Dict[str, str]:
        # plain notation without trailing zeros: "0", "1260", "12.5"
        return {"user": self.address, "points": format(self.points.normalize(), "f")}
