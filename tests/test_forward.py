import json
from decimal import Decimal

import pytest

from config import EPOCH_ONE_START, ONE_WEEK_IN_SECONDS, TOKENS
from conftest import (
    TOKEN,
    FakeBalanceReader,
    FakeBlockResolver,
    FakeGaugeDirectory,
    FakeGaugeSource,
    FakeSnapshotSource,
    make_gauge,
    make_pool,
)
from weights.aggregator import OwnershipAggregator
from weights.errors import ConfigError
from weights.forward import compute_epoch, compute_weights
from weights.gauges import GaugeResolver
from weights.normalizer import ONE_UNIT

NOW = EPOCH_ONE_START + 10 * ONE_WEEK_IN_SECONDS


def _pools():
    return [
        make_pool("pool-a", 100, 1000, {"0xa": 60, "0xg": 40}),
        make_pool("pool-b", 9, "12.5", {"0xb": 2, "0xc": 3, "0xa": 4}),
    ]


def _aggregator(pools):
    resolver = GaugeResolver(
        directory=FakeGaugeDirectory({"pool-a": "0xg"}),
        gauge_source=FakeGaugeSource({"0xg": make_gauge("0xg", 40, {"0xd": 25, "0xe": 15})}),
    )
    return OwnershipAggregator(snapshot_source=FakeSnapshotSource(pools), gauge_resolver=resolver)


def test_compute_epoch_end_to_end():
    source = FakeSnapshotSource([make_pool("pool-a", 100, 1000, {"0xa": 60, "0xb": 40})])
    reader = FakeBalanceReader(2_000_000)

    result = compute_epoch(
        "scUSD", 1,
        block_resolver=FakeBlockResolver(origin=EPOCH_ONE_START),
        aggregator=OwnershipAggregator(snapshot_source=source),
        balance_reader=reader,
        now=NOW,
        sample_count=4,
    )

    assert result.window.cycle == 1
    assert result.heights == [0, 2520, 5040, 7560, 10080]
    assert source.calls == result.heights
    assert [(w.address, w.weight) for w in result.weights] == [
        ("0xa", 6 * 10**35),
        ("0xb", 4 * 10**35),
    ]
    assert reader.calls == result.heights
    points = {p.address: p.points for p in result.points}
    assert points["0xa"] == Decimal("302.4")
    assert points["0xb"] == Decimal("201.6")


def test_token_without_points_emits_none():
    assert TOKENS["scETH"].points is False
    result = compute_epoch(
        "scETH", 1,
        block_resolver=FakeBlockResolver(origin=EPOCH_ONE_START),
        aggregator=OwnershipAggregator(
            snapshot_source=FakeSnapshotSource(
                [make_pool("p", 1, 1, {"0xa": 1}, token=TOKENS["scETH"].address)]
            )
        ),
        balance_reader=FakeBalanceReader(1),
        now=NOW,
        sample_count=4,
    )
    assert result.points == []
    assert result.weights[0].weight == ONE_UNIT


def test_unknown_token_is_config_error():
    with pytest.raises(ConfigError):
        compute_epoch(
            "DOGE", 1,
            block_resolver=FakeBlockResolver(origin=EPOCH_ONE_START),
            aggregator=OwnershipAggregator(snapshot_source=FakeSnapshotSource([])),
            now=NOW,
        )


def test_identical_snapshots_give_byte_identical_output():
    first = compute_weights(_aggregator(_pools()), TOKEN, range(10))
    second = compute_weights(_aggregator(_pools()), TOKEN, range(10))

    dump = lambda records: json.dumps([r.as_dict() for r in records])  # noqa: E731
    assert dump(first) == dump(second)
    assert sum(r.weight for r in first) == ONE_UNIT
    assert "0xg" not in {r.address for r in first}
    assert [r.address for r in first] == ["0xa", "0xd", "0xe", "0xb", "0xc"]
