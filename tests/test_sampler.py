import pytest

from weights.errors import ConfigError
from weights.sampler import sample_blocks


def test_regular_range_includes_both_ends():
    heights = sample_blocks(1000, 1560, 56)
    assert heights[0] == 1000
    assert heights[-1] == 1560
    assert len(heights) == 57
    assert all(b - a == 10 for a, b in zip(heights, heights[1:]))


def test_uneven_range_never_passes_end_block():
    heights = sample_blocks(0, 565, 56)
    assert heights[-1] == 560
    assert max(heights) <= 565


def test_short_range_clamps_stride_to_one():
    assert sample_blocks(10, 15, 56) == [10, 11, 12, 13, 14, 15]


def test_single_block_range():
    assert sample_blocks(42, 42) == [42]


def test_end_before_start_is_config_error():
    with pytest.raises(ConfigError) as exc:
        sample_blocks(100, 99)
    assert exc.value.actual == 99


def test_non_positive_sample_count():
    with pytest.raises(ConfigError):
        sample_blocks(0, 10, 0)
