"""
Fetch boundary of the weight engine.

Every collaborator here answers one question at one block height and hands
back the normalised shapes from :mod:`storage.models`:

    BlockResolver.block_at_or_after(ts)            → height
    V2PoolSnapshotSource / V3PoolSnapshotSource    → [PoolSnapshot]
    MergedSnapshotSource                           → [PoolSnapshot] (both registries)
    GaugeDirectory.gauges_for_pools(ids)           → {pool_id: gauge_id}
    GaugeSnapshotSource.gauge_holders(id, height)  → GaugeSnapshot | None

Holder lists are paginated to exhaustion and exclude the zero address and
non‑positive balances. Any failure is raised as :class:`DataError`.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type

from pydantic import BaseModel, ValidationError

from api.client import GraphQLClient
from api.schemas import (
    ApiPoolRow,
    BlockRow,
    GaugeRow,
    GaugeShareRow,
    PoolRow,
    V2ShareRow,
    V3ShareRow,
)
from config import ZERO_ADDRESS, settings
from storage.models import GaugeSnapshot, HolderShare, PoolSnapshot
from weights.errors import DataError

log = logging.getLogger("weights.snapshot_source")


def _parse(model: Type[BaseModel], row: Dict[str, Any]) -> Any:
    try:
        return model(**row)
    except ValidationError as err:
        raise DataError(f"Malformed {model.__name__} row {row!r}: {err}") from err


def _holder(address: str, balance: Decimal) -> Optional[HolderShare]:
    address = address.lower()
    if balance <= 0 or address == ZERO_ADDRESS:
        return None
    return HolderShare(holder_address=address, share_balance=balance)


# ──────────────────────────────────────────────────────────────
# Blocks
# ──────────────────────────────────────────────────────────────
BLOCK_QUERY = """
query blockAtOrAfter($ts: BigInt!) {
  blocks(first: 1, orderBy: number, orderDirection: asc, where: {timestamp_gte: $ts}) {
    number
  }
}
"""


class BlockResolver:
    def __init__(self, *, client: Optional[GraphQLClient] = None) -> None:
        self._client = client or GraphQLClient.for_deployment(settings.BLOCKS_DEPLOYMENT_ID)

    def block_at_or_after(self, timestamp: int) -> int:
        rows = self._client.query(BLOCK_QUERY, {"ts": str(timestamp)}).get("blocks") or []
        if not rows:
            raise DataError(f"No block found at or after timestamp {timestamp}")
        return _parse(BlockRow, rows[0]).number


# ──────────────────────────────────────────────────────────────
# Pool registries
# ──────────────────────────────────────────────────────────────
class PoolSnapshotSource:
    """
    One pool registry. Subclasses supply the two queries and the share row
    shape; listing pools, paginating holders and normalising the result is
    shared so both registries reach the aggregator identically.
    """

    name = ""
    pools_query = ""
    shares_query = ""
    share_model: Type[BaseModel] = BaseModel

    def __init__(self, client: GraphQLClient) -> None:
        self._client = client

    def pools_holding_token(self, token_address: str, block: int) -> List[PoolSnapshot]:
        token = token_address.lower()
        snapshots: List[PoolSnapshot] = []

        for raw in self._client.paginate(
            self.pools_query, "pools", {"token": token, "block": block}
        ):
            pool = _parse(PoolRow, raw)
            if pool.total_shares <= 0:
                log.debug("[%s] Pool %s has no shares at %d; skipped", self.name, pool.id, block)
                continue

            holders = self._holders(pool.id, block)
            snapshots.append(
                PoolSnapshot(
                    pool_id=pool.id.lower(),
                    total_shares=pool.total_shares,
                    token_reserves={t.address.lower(): t.balance for t in pool.tokens},
                    holders=holders,
                    source=self.name,
                )
            )

        log.info(
            "[%s] %d pools hold %s at block %d", self.name, len(snapshots), token, block
        )
        return snapshots

    def _holders(self, pool_id: str, block: int) -> List[HolderShare]:
        holders: List[HolderShare] = []
        for raw in self._client.paginate(
            self.shares_query, "poolShares", {"pool": pool_id, "block": block, "zero": ZERO_ADDRESS}
        ):
            row = _parse(self.share_model, raw)
            share = _holder(self._holder_address(row), row.balance)
            if share is not None:
                holders.append(share)
        return holders

    def _holder_address(self, row: Any) -> str:
        raise NotImplementedError


class V2PoolSnapshotSource(PoolSnapshotSource):
    name = "v2"
    share_model = V2ShareRow
    pools_query = """
query pools($token: Bytes!, $block: Int!, $first: Int!, $cursor: ID!) {
  pools(
    first: $first, orderBy: id, orderDirection: asc,
    where: {tokensList_contains: [$token], totalShares_gt: "0", id_gt: $cursor}
    block: {number: $block}
  ) {
    id
    totalShares
    tokens { address balance }
  }
}
"""
    shares_query = """
query poolShares($pool: String!, $block: Int!, $zero: String!, $first: Int!, $cursor: ID!) {
  poolShares(
    first: $first, orderBy: id, orderDirection: asc,
    where: {poolId: $pool, balance_gt: "0", userAddress_: {id_not: $zero}, id_gt: $cursor}
    block: {number: $block}
  ) {
    id
    balance
    userAddress { id }
  }
}
"""

    def __init__(self, client: Optional[GraphQLClient] = None) -> None:
        super().__init__(client or GraphQLClient.for_deployment(settings.POOLS_V2_DEPLOYMENT_ID))

    def _holder_address(self, row: V2ShareRow) -> str:
        return row.user_address.id


class V3PoolSnapshotSource(PoolSnapshotSource):
    name = "v3"
    share_model = V3ShareRow
    pools_query = """
query pools($token: Bytes!, $block: Int!, $first: Int!, $cursor: ID!) {
  pools(
    first: $first, orderBy: id, orderDirection: asc,
    where: {tokens_: {address: $token}, id_gt: $cursor}
    block: {number: $block}
  ) {
    id
    totalShares
    tokens { address balance }
  }
}
"""
    shares_query = """
query poolShares($pool: String!, $block: Int!, $zero: String!, $first: Int!, $cursor: ID!) {
  poolShares(
    first: $first, orderBy: id, orderDirection: asc,
    where: {pool: $pool, balance_gt: "0", user_: {id_not: $zero}, id_gt: $cursor}
    block: {number: $block}
  ) {
    id
    balance
    user { id }
  }
}
"""

    def __init__(self, client: Optional[GraphQLClient] = None) -> None:
        super().__init__(client or GraphQLClient.for_deployment(settings.POOLS_V3_DEPLOYMENT_ID))

    def _holder_address(self, row: V3ShareRow) -> str:
        return row.user.id


class MergedSnapshotSource:
    """
    All registries merged into one pool‑id space feeding one accumulator.

    Snapshots keep registry order (as passed in), then each registry's own
    id order. A pool id reported by two registries is a :class:`DataError`.
    """

    def __init__(self, sources: Optional[Sequence[Any]] = None) -> None:
        self._sources = list(sources) if sources is not None else [
            V2PoolSnapshotSource(),
            V3PoolSnapshotSource(),
        ]

    def pools_holding_token(self, token_address: str, block: int) -> List[PoolSnapshot]:
        merged: List[PoolSnapshot] = []
        seen: Dict[str, str] = {}
        for source in self._sources:
            for snap in source.pools_holding_token(token_address, block):
                if snap.pool_id in seen:
                    raise DataError(
                        f"Pool {snap.pool_id} reported by both {seen[snap.pool_id]} "
                        f"and {snap.source} at block {block}"
                    )
                seen[snap.pool_id] = snap.source
                merged.append(snap)
        return merged


# ──────────────────────────────────────────────────────────────
# Gauges
# ──────────────────────────────────────────────────────────────
GAUGE_LOOKUP_QUERY = """
query gaugesForPools($chain: GqlChain!, $ids: [String!]!) {
  poolGetPools(where: {chainIn: [$chain], idIn: $ids}) {
    id
    staking { gauge { id } }
  }
}
"""


class GaugeDirectory:
    """Pool → staking gauge mapping from the pool metadata API."""

    def __init__(self, *, client: Optional[GraphQLClient] = None, chain: Optional[str] = None) -> None:
        self._client = client or GraphQLClient(settings.POOL_API_URL)
        self.chain = chain or settings.POOL_API_CHAIN

    def gauges_for_pools(self, pool_ids: Iterable[str]) -> Dict[str, str]:
        ids = list(pool_ids)
        if not ids:
            return {}
        rows = self._client.query(GAUGE_LOOKUP_QUERY, {"chain": self.chain, "ids": ids}).get(
            "poolGetPools"
        )
        if rows is None:
            raise DataError("Missing 'poolGetPools' in pool API response")

        gauges: Dict[str, str] = {}
        for raw in rows:
            row = _parse(ApiPoolRow, raw)
            if row.gauge_id:
                gauges[row.id.lower()] = row.gauge_id.lower()
        return gauges

    def gauge_for_pool(self, pool_id: str) -> Optional[str]:
        return self.gauges_for_pools([pool_id]).get(pool_id.lower())


GAUGE_QUERY = """
query gauge($id: ID!, $block: Int!) {
  liquidityGauge(id: $id, block: {number: $block}) {
    id
    totalSupply
  }
}
"""

GAUGE_SHARES_QUERY = """
query gaugeShares($gauge: String!, $block: Int!, $first: Int!, $cursor: ID!) {
  gaugeShares(
    first: $first, orderBy: id, orderDirection: asc,
    where: {gauge: $gauge, balance_gt: "0", id_gt: $cursor}
    block: {number: $block}
  ) {
    id
    balance
    user { id }
  }
}
"""


class GaugeSnapshotSource:
    def __init__(self, *, client: Optional[GraphQLClient] = None) -> None:
        self._client = client or GraphQLClient.for_deployment(settings.GAUGES_DEPLOYMENT_ID)

    def gauge_holders(self, gauge_id: str, block: int) -> Optional[GaugeSnapshot]:
        """``None`` when the gauge does not exist yet at ``block``."""
        raw = self._client.query(GAUGE_QUERY, {"id": gauge_id, "block": block}).get(
            "liquidityGauge"
        )
        if raw is None:
            return None
        gauge = _parse(GaugeRow, raw)

        holders: List[HolderShare] = []
        for share_raw in self._client.paginate(
            GAUGE_SHARES_QUERY, "gaugeShares", {"gauge": gauge_id, "block": block}
        ):
            row = _parse(GaugeShareRow, share_raw)
            share = _holder(row.user.id, row.balance)
            if share is not None:
                holders.append(share)

        return GaugeSnapshot(
            gauge_id=gauge_id.lower(), total_supply=gauge.total_supply, holders=holders
        )
