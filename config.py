"""
Global configuration entry‑point.

▪ Loads environment variables from `.env` (if present)
▪ Exposes a single singleton `settings` object
▪ Keeps the fixed protocol constants (precision, sampling cadence, tokens)
  next to the tunable settings so every module reads them from one place
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, NamedTuple

from dotenv import load_dotenv
from pydantic import Field, validator
from pydantic_settings import BaseSettings

# ──────────────────────────────────────────────────────────────
# 0. Load .env early so that pydantic can pick up the variables
# ──────────────────────────────────────────────────────────────
load_dotenv()

PRECISION_DECIMALS = 36
TOKEN_DECIMALS = 18
SAMPLE_COUNT = 56
ONE_WEEK_IN_SECONDS = 604800
POINTS_MULTIPLIER = 36 * 7

# Epoch zero has an odd start and therefore also an odd end.
EPOCH_ZERO_START = 1734627600
EPOCH_ZERO_END = 1735340400
EPOCH_ONE_START = 1735340400

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class TokenConfig(NamedTuple):
    address: str
    decimals: int
    points: bool


TOKENS: Dict[str, TokenConfig] = {
    "scUSD": TokenConfig("0xd3dce716f3ef535c5ff8d041c1a41c3bd89b97ae", 6, True),
    "scETH": TokenConfig("0x3bce5cb273f0f148010bbea2470e7b5df84c7812", 18, False),
}


# ──────────────────────────────────────────────────────────────
# 1. Settings object (use everywhere instead of os.getenv)
# ──────────────────────────────────────────────────────────────
class _Settings(BaseSettings):
    # --- General process switches ------------------------------------------------
    LOG_LEVEL: str = Field("INFO", env="LOG_LEVEL")  # DEBUG / INFO / WARNING / ERROR
    JSON_LOGS: bool = Field(False, env="JSON_LOGS")
    OUTPUT_DIR: Path = Field(Path("."), env="OUTPUT_DIR")

    # --- The Graph gateway -------------------------------------------------------
    GRAPH_API_KEY: str = Field("", env="GRAPH_API_KEY")
    GRAPH_BASE_URL: str = Field(
        "https://gateway-arbitrum.network.thegraph.com/api/{api_key}/deployments/id/",
        env="GRAPH_BASE_URL",
    )
    POOLS_V2_DEPLOYMENT_ID: str = Field(
        "Qmbt2NyWBL8WKV5EuBDbByUEUETfhUBVpsLpptFbnwEyrK", env="POOLS_V2_DEPLOYMENT_ID"
    )
    POOLS_V3_DEPLOYMENT_ID: str = Field(
        "QmR1ZDqDUyXih88ytCdaK3hV4ynrJJWst8UjeTg82PGwAf", env="POOLS_V3_DEPLOYMENT_ID"
    )
    GAUGES_DEPLOYMENT_ID: str = Field(
        "QmSRNzwTmLu55ZxxyxYULS5T1Kar7upz1jzL5FsMzLpB2e", env="GAUGES_DEPLOYMENT_ID"
    )
    BLOCKS_DEPLOYMENT_ID: str = Field(
        "QmZYZcSMaGY2rrq8YFP9avicWf2GM8R2vpB2Xuap1WhipT", env="BLOCKS_DEPLOYMENT_ID"
    )
    PAGE_SIZE: int = Field(1000, env="PAGE_SIZE")

    # --- HTTP transport ----------------------------------------------------------
    HTTP_TIMEOUT: float = Field(30.0, env="HTTP_TIMEOUT")  # seconds
    HTTP_MAX_TRIES: int = Field(5, env="HTTP_MAX_TRIES")

    # --- Pool metadata API (pool → staking gauge) --------------------------------
    POOL_API_URL: str = Field(
        "https://backend-v3.beets-ftm-node.com/graphql", env="POOL_API_URL"
    )
    POOL_API_CHAIN: str = Field("SONIC", env="POOL_API_CHAIN")

    # --- Chain RPC ---------------------------------------------------------------
    RPC_URL: str = Field("https://rpc.soniclabs.com", env="RPC_URL")
    VAULT_ADDRESS: str = Field(
        "0xBA12222222228d8Ba445958a75a0704d566BF2C8", env="VAULT_ADDRESS"
    )

    # --- Epoch selection ---------------------------------------------------------
    MID_EPOCH_LAG_SECONDS: int = Field(2 * 60 * 60, env="MID_EPOCH_LAG_SECONDS")

    # --- Weight submission -------------------------------------------------------
    SUBMIT_URL: str = Field("", env="SUBMIT_URL")
    SUBMIT_SUCCESS_STATUS: int = Field(201, env="SUBMIT_SUCCESS_STATUS")

    # pydantic settings
    class Config:
        env_file = ".env"
        case_sensitive = False

    # helpful computed values -----------------------------------------------------
    @property
    def graph_url(self) -> str:
        return self.GRAPH_BASE_URL.format(api_key=self.GRAPH_API_KEY)

    @validator("LOG_LEVEL")
    def _validate_log_level(cls, v: str) -> str:  # noqa: N805
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        v_up = v.upper()
        if v_up not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v_up


@lru_cache(maxsize=1)
def get_settings() -> _Settings:
    """Singleton accessor – import this everywhere."""
    return _Settings()


# instantiate once for module‑level
settings = get_settings()
