"""
Cycle number → epoch window (timestamps) and the matching block range.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional, Tuple

from config import (
    EPOCH_ONE_START,
    EPOCH_ZERO_END,
    EPOCH_ZERO_START,
    ONE_WEEK_IN_SECONDS,
    settings,
)
from storage.models import EpochWindow
from weights.errors import ConfigError

log = logging.getLogger("weights.epochs")


def epoch_window(cycle: int = -1, now: Optional[int] = None) -> EpochWindow:
    """
    Cycle 0 is the odd‑length epoch zero; cycle N ≥ 1 starts
    ``EPOCH_ONE_START + (N-1) weeks``. A negative cycle selects the latest
    cycle by wall clock: ``(now - EPOCH_ONE_START) // WEEK``.
    """
    now = int(time.time()) if now is None else int(now)

    if cycle == 0:
        return EpochWindow(0, EPOCH_ZERO_START, EPOCH_ZERO_END)

    if cycle < 0:
        cycle = (now - EPOCH_ONE_START) // ONE_WEEK_IN_SECONDS
        if cycle < 1:
            raise ConfigError(
                "Current time precedes the first complete cycle", expected=">= 1", actual=cycle
            )

    start = EPOCH_ONE_START + (cycle - 1) * ONE_WEEK_IN_SECONDS
    return EpochWindow(cycle, start, start + ONE_WEEK_IN_SECONDS)


def block_range(window: EpochWindow, resolver, now: Optional[int] = None) -> Tuple[int, int]:
    """
    (start_block, end_block) for ``window``.

    An epoch that has not ended yet is cut at ``now - MID_EPOCH_LAG_SECONDS``
    so the computation can be run mid‑epoch.
    """
    now = int(time.time()) if now is None else int(now)

    start_block = resolver.block_at_or_after(window.start_timestamp)
    end_ts = window.end_timestamp
    if end_ts > now:
        end_ts = now - settings.MID_EPOCH_LAG_SECONDS
        log.warning("[Epochs] Cycle %d still running; cutting at %s", window.cycle, _fmt(end_ts))
    end_block = resolver.block_at_or_after(end_ts)

    log.info("[Epochs] Start block: %d (%s)", start_block, _fmt(window.start_timestamp))
    log.info("[Epochs] End block: %d (%s)", end_block, _fmt(window.end_timestamp))
    if end_block < start_block:
        raise ConfigError("Epoch end block precedes start block", expected=f">= {start_block}", actual=end_block)
    return start_block, end_block


def _fmt(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%m/%d/%Y - %H:%M:%S %z")
