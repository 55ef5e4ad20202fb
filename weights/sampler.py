"""
Epoch block sampler: turns an epoch's block range into the heights to sample.
"""
from __future__ import annotations

import logging
from typing import List

from config import SAMPLE_COUNT
from weights.errors import ConfigError

log = logging.getLogger("weights.sampler")


def sample_blocks(
    start_block: int, end_block: int, sample_count: int = SAMPLE_COUNT
) -> List[int]:
    """
    Heights ``start, start+stride, …`` while ``height <= end_block``, with
    ``stride = (end - start) // sample_count``.

    The stride is clamped to 1 for ranges shorter than ``sample_count``, so
    a short range samples every block instead of looping forever. A range
    with ``start == end`` yields the single height ``start``.
    """
    if sample_count <= 0:
        raise ConfigError("sample_count must be positive", expected="> 0", actual=sample_count)
    if end_block < start_block:
        raise ConfigError(
            "Epoch end block precedes start block",
            expected=f">= {start_block}",
            actual=end_block,
        )

    stride = (end_block - start_block) // sample_count
    if stride == 0:
        log.warning(
            "[Sampler] Range %d..%d shorter than %d samples; clamping stride to 1",
            start_block, end_block, sample_count,
        )
        stride = 1

    heights = list(range(start_block, end_block + 1, stride))
    log.debug("[Sampler] %d heights, stride %d", len(heights), stride)
    return heights
