from datetime import datetime
from typing import Any, List, Optional

from sqlmodel import Field, Relationship, SQLModel
from sqlalchemy import DateTime, UniqueConstraint

from .clock import utcnow
from .config import INITIAL_COINS, INITIAL_TOKENS


def Timestamp(**kw: Any) -> Any:
    # naive UTC, see clock.utcnow
    return Field(sa_type=DateTime(timezone=False), **kw)


class League(SQLModel, table=True):
    id: str = Field(primary_key=True, max_length=10)
    name: str
    logo: Optional[str] = None

    teams: List["Team"] = Relationship(back_populates="league")


class Team(SQLModel, table=True):
    id: str = Field(primary_key=True, max_length=10)
    league_id: str = Field(foreign_key="league.id", index=True)
    name: str
    strength: float = Field(default=70.0)
    color: str = Field(default="#000000")
    logo: Optional[str] = None

    league: "League" = Relationship(back_populates="teams")


class Season(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    started_at: datetime = Timestamp(default_factory=utcnow)
    ended_at: Optional[datetime] = Timestamp(default=None)
    is_active: bool = Field(default=True, index=True)
    current_round: int = Field(default=0)
    round_started_at: Optional[datetime] = Timestamp(default=None)


class Match(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("season_id", "round", "home_team_id", name="uq_match_round_home"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    round: int = Field(index=True)
    league_id: str = Field(foreign_key="league.id", index=True)

    home_team_id: str = Field(foreign_key="team.id")
    away_team_id: str = Field(foreign_key="team.id")

    status: str = Field(default="SCHEDULED", index=True)  # SCHEDULED/LIVE/FINISHED/VOID

    start_time: datetime = Timestamp(default_factory=utcnow)
    live_start_time: Optional[datetime] = Timestamp(default=None)
    finished_at: Optional[datetime] = Timestamp(default=None)
    settled_at: Optional[datetime] = Timestamp(default=None)

    # frozen at creation
    odds_home: float
    odds_draw: float
    odds_away: float
    odds_gg: float
    odds_nogg: float

    round_hash: str
    commit_hash: str
    block_hash: Optional[str] = None
    # never serialized before the match is finished
    server_seed: str

    home_score: Optional[int] = None
    away_score: Optional[int] = None
    events_json: str = Field(default="[]")
    summary: Optional[str] = None


class User(SQLModel, table=True):
    wallet_address: str = Field(primary_key=True, max_length=42)
    username: str = Field(index=True, unique=True)

    coins: int = Field(default=INITIAL_COINS)
    token_balance: int = Field(default=INITIAL_TOKENS)

    alliance_league_id: Optional[str] = Field(default=None, foreign_key="league.id")
    alliance_team_id: Optional[str] = Field(default=None, foreign_key="team.id")

    total_bets: int = Field(default=0)
    wins: int = Field(default=0)
    biggest_win: int = Field(default=0)
    best_odds_won: float = Field(default=0.0)

    referral_code: Optional[str] = Field(default=None, unique=True, index=True, max_length=10)
    referred_by: Optional[str] = Field(default=None, max_length=42)
    referral_count: int = Field(default=0)
    referral_earnings: int = Field(default=0)

    last_welcome_gift_at: Optional[datetime] = Timestamp(default=None)
    unclaimed_alliance_rewards: int = Field(default=0)
    active_theme: str = Field(default="default", max_length=20)

    created_at: datetime = Timestamp(default_factory=utcnow)
    updated_at: datetime = Timestamp(default_factory=utcnow)


class Accumulator(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    wallet_address: str = Field(foreign_key="user.wallet_address", index=True)
    stake: int
    total_odds: float
    potential_return: int
    status: str = Field(default="pending", index=True)  # pending/won/lost/void
    created_at: datetime = Timestamp(default_factory=utcnow)
    settled_at: Optional[datetime] = Timestamp(default=None)

    legs: List["Bet"] = Relationship(back_populates="accumulator")


class Bet(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    wallet_address: str = Field(foreign_key="user.wallet_address", index=True)
    match_id: int = Field(foreign_key="match.id", index=True)

    selection: str  # home/draw/away/gg/nogg
    odds: float
    stake: int
    potential_return: int
    status: str = Field(default="pending", index=True)  # pending/won/lost/void
    bet_type: str = Field(default="single")  # single/accumulator
    accumulator_id: Optional[int] = Field(default=None, foreign_key="accumulator.id", index=True)

    created_at: datetime = Timestamp(default_factory=utcnow)
    settled_at: Optional[datetime] = Timestamp(default=None)

    accumulator: Optional["Accumulator"] = Relationship(back_populates="legs")


class Transaction(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    wallet_address: str = Field(foreign_key="user.wallet_address", index=True)
    type: str = Field(index=True)  # bet/win/refund/convert/bonus/referral/redeem
    amount: int
    currency: str = Field(default="token")  # token/coins
    description: Optional[str] = None
    created_at: datetime = Timestamp(default_factory=utcnow)


class Coupon(SQLModel, table=True):
    code: str = Field(primary_key=True, max_length=20)  # stored upper-case
    type: str  # coins/theme
    value: str = Field(max_length=50)  # coin amount or theme name
    usage_limit: int = Field(default=1)
    current_usage: int = Field(default=0)
    is_active: bool = Field(default=True)
    expires_at: Optional[datetime] = Timestamp(default=None)
    created_at: datetime = Timestamp(default_factory=utcnow)


class CouponRedemption(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("wallet_address", "coupon_code", name="uq_redemption_wallet_coupon"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    wallet_address: str = Field(foreign_key="user.wallet_address", index=True)
    coupon_code: str = Field(foreign_key="coupon.code", index=True)
    redeemed_at: datetime = Timestamp(default_factory=utcnow)
