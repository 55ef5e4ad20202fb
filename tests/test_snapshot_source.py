import json
from decimal import Decimal

import httpx
import pytest

from api.client import GraphQLClient
from config import ZERO_ADDRESS, settings
from conftest import TOKEN, FakeSnapshotSource, make_pool
from weights.errors import DataError
from weights.snapshot_source import (
    BlockResolver,
    GaugeDirectory,
    GaugeSnapshotSource,
    MergedSnapshotSource,
    V2PoolSnapshotSource,
    V3PoolSnapshotSource,
)

POOLS = [
    {"id": "0x01", "totalShares": "10", "tokens": [{"address": TOKEN.upper(), "balance": "100"}]},
    {"id": "0x02", "totalShares": "0", "tokens": [{"address": TOKEN, "balance": "0"}]},
    {"id": "0x03", "totalShares": "4", "tokens": [{"address": TOKEN, "balance": "8.5"}]},
]


def _share(i, user, balance, v2=True):
    key = "userAddress" if v2 else "user"
    return {"id": f"s{i:02d}", "balance": balance, key: {"id": user}}


def _pager(rows, variables):
    page = [r for r in rows if r["id"] > variables["cursor"]]
    return page[: variables["first"]]


def _client(handler, page_size=2):
    return GraphQLClient("http://graph.test", page_size=page_size, transport=httpx.MockTransport(handler))


def _pool_handler(shares, requests):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        variables = body["variables"]
        requests.append(variables)
        if "pool" in variables:
            rows = _pager(shares.get(variables["pool"], []), variables)
            return httpx.Response(200, json={"data": {"poolShares": rows}})
        return httpx.Response(200, json={"data": {"pools": _pager(POOLS, variables)}})
    return handler


def test_v2_source_paginates_and_normalises():
    shares = {
        "0x01": [
            _share(1, "0xAA", "4"),
            _share(2, "0xbb", "3"),
            _share(3, ZERO_ADDRESS, "1"),
            _share(4, "0xcc", "3"),
        ],
        "0x03": [_share(5, "0xdd", "4")],
    }
    requests = []
    source = V2PoolSnapshotSource(_client(_pool_handler(shares, requests)))

    snapshots = source.pools_holding_token(TOKEN, 123)

    assert [s.pool_id for s in snapshots] == ["0x01", "0x03"]
    first = snapshots[0]
    assert first.total_shares == Decimal("10")
    assert first.reserve_of(TOKEN) == Decimal("100")
    assert [(h.holder_address, h.share_balance) for h in first.holders] == [
        ("0xaa", Decimal("4")),
        ("0xbb", Decimal("3")),
        ("0xcc", Decimal("3")),
    ]
    assert first.source == "v2"
    # cursor pagination: second page starts after the last id seen
    pool_pages = [r for r in requests if "pool" not in r]
    assert [r["cursor"] for r in pool_pages] == ["", "0x02"]
    share_pages = [r for r in requests if r.get("pool") == "0x01"]
    assert [r["cursor"] for r in share_pages] == ["", "s02", "s04"]
    assert all(r["block"] == 123 for r in requests)


def test_v3_source_reads_user_field():
    shares = {"0x01": [_share(1, "0xaa", "10", v2=False)], "0x03": []}
    source = V3PoolSnapshotSource(_client(_pool_handler(shares, [])))

    snapshots = source.pools_holding_token(TOKEN, 1)

    assert snapshots[0].holders[0].holder_address == "0xaa"
    assert snapshots[0].source == "v3"
    assert snapshots[1].holders == []


def test_merged_source_keeps_registry_order():
    a = FakeSnapshotSource([make_pool("0x1", 1, 1, {"0xa": 1})])
    b = FakeSnapshotSource([make_pool("0x2", 1, 1, {"0xb": 1})])

    merged = MergedSnapshotSource([a, b]).pools_holding_token(TOKEN, 7)

    assert [p.pool_id for p in merged] == ["0x1", "0x2"]
    assert a.calls == b.calls == [7]


def test_merged_source_rejects_duplicate_pool_ids():
    a = FakeSnapshotSource([make_pool("0x1", 1, 1, {"0xa": 1})])
    b = FakeSnapshotSource([make_pool("0x1", 1, 1, {"0xb": 1})])

    with pytest.raises(DataError):
        MergedSnapshotSource([a, b]).pools_holding_token(TOKEN, 7)


def test_graphql_errors_become_data_error():
    client = _client(lambda request: httpx.Response(200, json={"errors": [{"message": "bad block"}]}))
    with pytest.raises(DataError, match="bad block"):
        client.query("{ x }")


def test_transport_failure_becomes_data_error(monkeypatch):
    monkeypatch.setattr(settings, "HTTP_MAX_TRIES", 1)
    client = _client(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(DataError):
        BlockResolver(client=client).block_at_or_after(1)


def test_malformed_row_is_data_error():
    client = _client(lambda request: httpx.Response(200, json={"data": {"blocks": [{"number": "abc"}]}}))
    with pytest.raises(DataError):
        BlockResolver(client=client).block_at_or_after(1)


def test_block_resolver():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content)["variables"])
        return httpx.Response(200, json={"data": {"blocks": [{"number": "4242"}]}})

    assert BlockResolver(client=_client(handler)).block_at_or_after(1700000000) == 4242
    assert seen == [{"ts": "1700000000"}]


def test_block_resolver_without_block():
    client = _client(lambda request: httpx.Response(200, json={"data": {"blocks": []}}))
    with pytest.raises(DataError):
        BlockResolver(client=client).block_at_or_after(1)


def test_gauge_directory_maps_only_staked_pools():
    rows = [
        {"id": "0xP1", "staking": {"gauge": {"id": "0xG1"}}},
        {"id": "0xp2", "staking": None},
        {"id": "0xp3", "staking": {"gauge": None}},
    ]
    client = _client(lambda request: httpx.Response(200, json={"data": {"poolGetPools": rows}}))
    directory = GaugeDirectory(client=client, chain="SONIC")

    assert directory.gauges_for_pools(["0xp1", "0xp2", "0xp3"]) == {"0xp1": "0xg1"}
    assert directory.gauges_for_pools([]) == {}


def test_gauge_source_reads_supply_and_depositors():
    shares = [
        {"id": "a", "balance": "20", "user": {"id": "0xX"}},
        {"id": "b", "balance": "10", "user": {"id": "0xy"}},
        {"id": "c", "balance": "0", "user": {"id": "0xz"}},
    ]

    def handler(request):
        variables = json.loads(request.content)["variables"]
        if "gauge" in variables:
            return httpx.Response(200, json={"data": {"gaugeShares": _pager(shares, variables)}})
        return httpx.Response(200, json={"data": {"liquidityGauge": {"id": "0xg", "totalSupply": "30"}}})

    gauge = GaugeSnapshotSource(client=_client(handler)).gauge_holders("0xG", 5)

    assert gauge.gauge_id == "0xg"
    assert gauge.total_supply == Decimal("30")
    assert [(h.holder_address, h.share_balance) for h in gauge.holders] == [
        ("0xx", Decimal("20")),
        ("0xy", Decimal("10")),
    ]


def test_gauge_source_missing_gauge():
    client = _client(lambda request: httpx.Response(200, json={"data": {"liquidityGauge": None}}))
    assert GaugeSnapshotSource(client=client).gauge_holders("0xg", 5) is None


def test_gauge_for_single_pool():
    seen = []

    def handler(request):
        variables = json.loads(request.content)["variables"]
        seen.append(variables)
        rows = [{"id": "0xP1", "staking": {"gauge": {"id": "0xG1"}}}] if "0xP1" in variables["ids"] else []
        return httpx.Response(200, json={"data": {"poolGetPools": rows}})

    directory = GaugeDirectory(client=_client(handler), chain="SONIC")

    assert directory.gauge_for_pool("0xP1") == "0xg1"
    assert directory.gauge_for_pool("0xp9") is None
    assert seen == [{"chain": "SONIC", "ids": ["0xP1"]}, {"chain": "SONIC", "ids": ["0xp9"]}]
