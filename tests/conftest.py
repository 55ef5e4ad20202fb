"""
In‑memory collaborators shared by the engine tests (no network).
"""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from storage.models import GaugeSnapshot, HolderShare, PoolSnapshot

TOKEN = "0xd3dce716f3ef535c5ff8d041c1a41c3bd89b97ae"
OTHER_TOKEN = "0x039e2fb66102314ce7b64ce5ce3e5183bc94ad38"


def make_pool(
    pool_id: str,
    total_shares,
    reserve,
    holders: Dict[str, object],
    token: str = TOKEN,
) -> PoolSnapshot:
    return PoolSnapshot(
        pool_id=pool_id,
        total_shares=Decimal(str(total_shares)),
        token_reserves={token: Decimal(str(reserve)), OTHER_TOKEN: Decimal("5")},
        holders=[HolderShare(a, Decimal(str(b))) for a, b in holders.items()],
        source="fake",
    )


def make_gauge(gauge_id: str, total_supply, holders: Dict[str, object]) -> GaugeSnapshot:
    return GaugeSnapshot(
        gauge_id=gauge_id,
        total_supply=Decimal(str(total_supply)),
        holders=[HolderShare(a, Decimal(str(b))) for a, b in holders.items()],
    )


class FakeSnapshotSource:
    """Same pools at every height unless a per‑block list is given."""

    def __init__(self, pools: List[PoolSnapshot], by_block: Optional[Dict[int, List[PoolSnapshot]]] = None):
        self.pools = pools
        self.by_block = by_block or {}
        self.calls: List[int] = []

    def pools_holding_token(self, token_address: str, block: int) -> List[PoolSnapshot]:
        self.calls.append(block)
        return list(self.by_block.get(block, self.pools))


class FakeGaugeDirectory:
    def __init__(self, links: Dict[str, str]):
        self.links = links

    def gauges_for_pools(self, pool_ids) -> Dict[str, str]:
        return {p: self.links[p] for p in pool_ids if p in self.links}


class FakeGaugeSource:
    def __init__(self, gauges: Dict[str, GaugeSnapshot]):
        self.gauges = gauges

    def gauge_holders(self, gauge_id: str, block: int) -> Optional[GaugeSnapshot]:
        return self.gauges.get(gauge_id)


class FakeBlockResolver:
    """One block per minute since ``origin``."""

    def __init__(self, origin: int):
        self.origin = origin
        self.requested: List[int] = []

    def block_at_or_after(self, timestamp: int) -> int:
        self.requested.append(timestamp)
        return max(0, (timestamp - self.origin) // 60)


class FakeBalanceReader:
    def __init__(self, balance: int):
        self.balance = balance
        self.calls: List[int] = []

    def balance_at(self, token_address: str, block: int) -> int:
        self.calls.append(block)
        return self.balance


@pytest.fixture
def simple_pool() -> PoolSnapshot:
    return make_pool("pool-a", 100, 1000, {"0xa": 60, "0xb": 40})
