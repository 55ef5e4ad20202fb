import pytest

from weights.accumulator import OwnershipAccumulator
from weights.errors import NormalizationError
from weights.normalizer import ONE_UNIT, normalize, normalize_balances

E18 = 10**18


def test_sixty_forty_split_is_exact():
    acc = OwnershipAccumulator()
    acc.add("0xa", 600 * E18)
    acc.add("0xb", 400 * E18)

    weights = normalize(acc)

    assert weights == {"0xa": 6 * 10**35, "0xb": 4 * 10**35}
    assert sum(weights.values()) == ONE_UNIT


def test_remainder_goes_entirely_to_last_address():
    weights = normalize_balances([("0x1", 1), ("0x2", 1), ("0x3", 1)])

    third = ONE_UNIT // 3
    assert weights["0x1"] == third
    assert weights["0x2"] == third
    assert weights["0x3"] == third + 1
    assert sum(weights.values()) == ONE_UNIT


def test_last_address_follows_insertion_order():
    acc = OwnershipAccumulator()
    for address in ("0xc", "0xa", "0xb"):
        acc.add(address, 1)
    acc.add("0xc", 0)

    weights = normalize(acc)

    assert weights["0xb"] == ONE_UNIT // 3 + 1


@pytest.mark.parametrize(
    "balances",
    [
        [7, 11, 13, 17],
        [1, 10**40, 3],
        [123456789, 987654321, 5, 5, 5, 5],
        [1],
    ],
)
def test_sum_is_always_one_unit(balances):
    weights = normalize_balances([(f"0x{i}", b) for i, b in enumerate(balances)])
    assert sum(weights.values()) == ONE_UNIT


def test_empty_accumulator_is_error():
    with pytest.raises(NormalizationError):
        normalize(OwnershipAccumulator())


def test_non_positive_total_is_error():
    with pytest.raises(NormalizationError):
        normalize_balances([("0xa", 0)])
