from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Selection = Literal["home", "draw", "away", "gg", "nogg"]


class LoginBody(BaseModel):
    password: str = ""


class UserCreateBody(BaseModel):
    wallet_address: str
    username: str | None = None


class AllianceBody(BaseModel):
    league_id: str
    team_id: str


class ConvertCoinsBody(BaseModel):
    amount: int = Field(ge=0)


class OddsQueryBody(BaseModel):
    home_strength: float
    away_strength: float


class BetCreateBody(BaseModel):
    wallet_address: str
    match_id: int
    selection: Selection
    stake: int = Field(ge=1)


class AccumulatorLegBody(BaseModel):
    match_id: int
    selection: Selection


class AccumulatorCreateBody(BaseModel):
    wallet_address: str
    stake: int = Field(ge=1)
    selections: list[AccumulatorLegBody] = Field(default_factory=list)


class ReferralBody(BaseModel):
    referral_code: str


class CouponRedeemBody(BaseModel):
    wallet_address: str
    code: str


class CouponCreateBody(BaseModel):
    code: str
    type: Literal["coins", "theme"]
    value: str | int
    usage_limit: int = Field(default=1, ge=1)
    expires_at: datetime | None = None
