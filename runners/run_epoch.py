#!/usr/bin/env python3
"""
Per‑cycle weight run for the configured tokens.

- Resolves the cycle window, samples the epoch and computes weights per token.
- Writes `rings_cycle_<n>_<token>_beets.json` (and the points file where enabled).
- Optionally POSTs the weights keyed by the vault address.

Usage:
  python -m runners.run_epoch                       # latest cycle, all tokens
  python -m runners.run_epoch --cycle 12 --token scUSD
  python -m runners.run_epoch --pool-weights 0x6646… --start 1745280000 --end 1746316800
"""

# ── LOGGING SETUP (must be first!) ───────────────────────────────────────
import json
import logging


class _JsonFormatter(logging.Formatter):
    """One JSON object per line (JSON_LOGS=true)."""
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        return json.dumps(
            {
                "ts": self.formatTime(record),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
        )


def _configure_logging(level: str, json_logs: bool) -> None:
    handler = logging.StreamHandler()
    if json_logs:
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
        )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
# ─────────────────────────────────────────────────────────────────────────

import argparse
import sys
from contextlib import ExitStack
from decimal import Decimal
from typing import List, Optional, Tuple

from api.client import GraphQLClient, WeightSubmitClient
from api.rpc import VaultBalanceReader
from config import TOKENS, settings
from storage.json_writer import JsonArrayWriter, points_file_name, weights_file_name
from storage.models import EpochWindow
from weights.aggregator import OwnershipAggregator
from weights.epochs import block_range
from weights.errors import WeightsError
from weights.forward import compute_epoch
from weights.gauges import GaugeResolver
from weights.pool_weights import accumulate_pool_reserves, pool_weights
from weights.sampler import sample_blocks
from weights.snapshot_source import (
    BlockResolver,
    GaugeDirectory,
    GaugeSnapshotSource,
    MergedSnapshotSource,
    V2PoolSnapshotSource,
    V3PoolSnapshotSource,
)

log = logging.getLogger("runners.run_epoch")


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Compute epoch LP weights per token.")
    p.add_argument("--cycle", type=int, default=-1, help="cycle number (default: latest complete)")
    p.add_argument("--token", action="append", choices=sorted(TOKENS), help="token name (repeatable)")
    p.add_argument("--submit", action="store_true", help="POST weights to SUBMIT_URL")
    p.add_argument("--pool-weights", metavar="TOKEN_ADDRESS", help="per-pool weights instead")
    p.add_argument("--start", type=int, help="window start timestamp (pool weights)")
    p.add_argument("--end", type=int, help="window end timestamp (pool weights)")
    p.add_argument("--min-weight", type=Decimal, default=Decimal("0.01"))
    return p.parse_args(argv)


def _subgraph(stack: ExitStack, deployment_id: str) -> GraphQLClient:
    return stack.enter_context(GraphQLClient.for_deployment(deployment_id))


def _open_engine(stack: ExitStack) -> Tuple[BlockResolver, OwnershipAggregator]:
    """Block resolver and aggregator whose HTTP clients are closed with ``stack``."""
    resolver = BlockResolver(client=_subgraph(stack, settings.BLOCKS_DEPLOYMENT_ID))
    pools = MergedSnapshotSource(
        [
            V2PoolSnapshotSource(_subgraph(stack, settings.POOLS_V2_DEPLOYMENT_ID)),
            V3PoolSnapshotSource(_subgraph(stack, settings.POOLS_V3_DEPLOYMENT_ID)),
        ]
    )
    gauges = GaugeResolver(
        directory=GaugeDirectory(client=stack.enter_context(GraphQLClient(settings.POOL_API_URL))),
        gauge_source=GaugeSnapshotSource(client=_subgraph(stack, settings.GAUGES_DEPLOYMENT_ID)),
    )
    return resolver, OwnershipAggregator(snapshot_source=pools, gauge_resolver=gauges)


def run_tokens(args: argparse.Namespace) -> int:
    writer = JsonArrayWriter(settings.OUTPUT_DIR)

    with ExitStack() as stack:
        resolver, aggregator = _open_engine(stack)
        reader = VaultBalanceReader()

        for token_name in args.token or list(TOKENS):
            try:
                result = compute_epoch(
                    token_name, args.cycle,
                    block_resolver=resolver, aggregator=aggregator, balance_reader=reader,
                )
            except WeightsError as err:
                log.error("[run] %s aborted for cycle %d: %s", token_name, args.cycle, err)
                return 1

            cycle = result.window.cycle
            writer.write(weights_file_name(cycle, token_name), result.weights)
            if result.points:
                writer.write(points_file_name(cycle, token_name), result.points)

            if args.submit:
                with WeightSubmitClient() as client:
                    client.submit({settings.VAULT_ADDRESS: [w.as_dict() for w in result.weights]})
    return 0


def run_pool_weights(args: argparse.Namespace) -> int:
    if args.start is None or args.end is None:
        log.error("[run] --pool-weights needs --start and --end")
        return 2

    window = EpochWindow(-1, args.start, args.end)
    with ExitStack() as stack:
        resolver = BlockResolver(client=_subgraph(stack, settings.BLOCKS_DEPLOYMENT_ID))
        source = V3PoolSnapshotSource(_subgraph(stack, settings.POOLS_V3_DEPLOYMENT_ID))
        try:
            start_block, end_block = block_range(window, resolver)
            heights = sample_blocks(start_block, end_block)
            reserves = accumulate_pool_reserves(source, args.pool_weights, heights)
            records = pool_weights(reserves, args.min_weight)
        except WeightsError as err:
            log.error("[run] Pool weights for %s aborted: %s", args.pool_weights, err)
            return 1

    print("poolId,weight")
    for r in records:
        print(f"{r.pool_id},{Decimal(r.weight).scaleb(-36)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    _configure_logging(settings.LOG_LEVEL, settings.JSON_LOGS)
    args = _parse_args(argv)
    if args.pool_weights:
        return run_pool_weights(args)
    return run_tokens(args)


# ──────────────────────────────────────────────────────────────────────────
# Entrypoint
# ──────────────────────────────────────────────────────────────────────────
if __name__ == "__main__":
    sys.exit(main())
