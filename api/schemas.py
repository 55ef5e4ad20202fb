"""
Typed rows returned by the pool / gauge / block subgraphs and the pool
metadata API. Amounts stay ``Decimal`` so no float ever touches a balance.
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class AccountRef(BaseModel):
    id: str


class TokenRow(BaseModel):
    address: str
    balance: Decimal


class PoolRow(BaseModel):
    """Pool entity; identical shape on both pool registries."""
    id: str
    total_shares: Decimal = Field(alias="totalShares")
    tokens: List[TokenRow] = Field(default_factory=list)


class V2ShareRow(BaseModel):
    id: str
    balance: Decimal
    user_address: AccountRef = Field(alias="userAddress")


class V3ShareRow(BaseModel):
    id: str
    balance: Decimal
    user: AccountRef


class GaugeRow(BaseModel):
    id: str
    total_supply: Decimal = Field(alias="totalSupply")


class GaugeShareRow(BaseModel):
    id: str
    balance: Decimal
    user: AccountRef


class BlockRow(BaseModel):
    number: int


class _GaugeRef(BaseModel):
    id: str


class _Staking(BaseModel):
    gauge: Optional[_GaugeRef] = None


class ApiPoolRow(BaseModel):
    """`poolGetPools` row from the pool metadata API."""
    id: str
    staking: Optional[_Staking] = None

    @property
    def gauge_id(self) -> Optional[str]:
        if self.staking is None or self.staking.gauge is None:
            return None
        return self.staking.gauge.id
