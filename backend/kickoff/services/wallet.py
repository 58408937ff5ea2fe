from __future__ import annotations

import logging
import math
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from sqlmodel import Session, select

from ..clock import utcnow
from ..config import (
    CONVERSION_RATE,
    CONVERSION_YIELD,
    LIVE_BET_GRACE_SEC,
    REFERRAL_CODE_LENGTH,
    REFERRAL_REWARD,
    WELCOME_GIFT_COOLDOWN_HOURS,
    WELCOME_GIFT_FIRST,
    WELCOME_GIFT_REPEAT,
)
from ..errors import BettingClosedError, ConflictError, InsufficientFundsError, InvalidInputError, NotFoundError
from ..models import Accumulator, Bet, League, Match, Team, Transaction, User
from ..validation import normalize_wallet
from .settlement import SELECTIONS

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    converted_coins: int
    tokens_added: int
    coins: int
    token_balance: int


def get_user(s: Session, wallet_address: str) -> User:
    user = s.get(User, normalize_wallet(wallet_address))
    if user is None:
        raise NotFoundError("User not found")
    return user


_CODE_ALPHABET = string.ascii_uppercase + string.digits


def _new_referral_code(s: Session) -> str:
    while True:
        code = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))
        if s.exec(select(User).where(User.referral_code == code)).first() is None:
            return code


def ensure_user(s: Session, wallet_address: str, username: str | None = None) -> tuple[User, bool]:
    wallet = normalize_wallet(wallet_address)
    user = s.get(User, wallet)
    if user is not None:
        return user, False

    name = (username or "").strip() or f"User_{wallet[:6]}"
    taken = s.exec(select(User).where(User.username == name)).first()
    if taken is not None:
        if username:
            raise InvalidInputError(f"Username {name!r} is already taken")
        name = f"User_{wallet[:10]}"

    user = User(wallet_address=wallet, username=name, referral_code=_new_referral_code(s))
    s.add(user)
    s.commit()
    s.refresh(user)
    log.info("Registered user %s (%s)", user.username, wallet)
    return user, True


def convert_coins(s: Session, user: User, amount: int) -> ConversionResult:
    """
    Swap coins for tokens in whole blocks of CONVERSION_RATE.

    Anything below one block converts nothing and leaves both balances as
    they are; the leftover part of a larger amount stays as coins.
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidInputError("amount must be a non-negative integer")

    coins_to_convert = (amount // CONVERSION_RATE) * CONVERSION_RATE
    if coins_to_convert > int(user.coins):
        raise InsufficientFundsError("Insufficient coins")

    tokens = (coins_to_convert // CONVERSION_RATE) * CONVERSION_YIELD
    if coins_to_convert == 0:
        return ConversionResult(0, 0, int(user.coins), int(user.token_balance))

    user.coins = int(user.coins) - coins_to_convert
    user.token_balance = int(user.token_balance) + tokens
    user.updated_at = utcnow()
    s.add(user)
    s.add(
        Transaction(
            wallet_address=user.wallet_address,
            type="convert",
            amount=tokens,
            currency="token",
            description=f"Converted {coins_to_convert} coins to {tokens} tokens",
        )
    )
    s.commit()
    s.refresh(user)
    log.info("User %s converted %s coins -> %s tokens", user.wallet_address, coins_to_convert, tokens)
    return ConversionResult(coins_to_convert, tokens, int(user.coins), int(user.token_balance))


def set_alliance(s: Session, user: User, league_id: str, team_id: str) -> User:
    league = s.get(League, league_id)
    if league is None:
        raise NotFoundError(f"League {league_id!r} not found")
    team = s.get(Team, team_id)
    if team is None or team.league_id != league.id:
        raise InvalidInputError(f"Team {team_id!r} does not play in {league.name}")

    user.alliance_league_id = league.id
    user.alliance_team_id = team.id
    user.updated_at = utcnow()
    s.add(user)
    s.commit()
    s.refresh(user)
    return user


def username_available(s: Session, username: str) -> bool:
    name = (username or "").strip()
    if not name:
        raise InvalidInputError("username is required")
    return s.exec(select(User).where(User.username == name)).first() is None


def claim_welcome_gift(s: Session, user: User, now: datetime | None = None) -> int:
    """
    Daily coin gift: WELCOME_GIFT_FIRST the first time, WELCOME_GIFT_REPEAT
    after that, at most once per WELCOME_GIFT_COOLDOWN_HOURS.
    """
    now = now or utcnow()
    first = user.last_welcome_gift_at is None
    if not first:
        hours = (now - user.last_welcome_gift_at).total_seconds() / 3600
        if hours < WELCOME_GIFT_COOLDOWN_HOURS:
            raise ConflictError(f"Wait {math.ceil(WELCOME_GIFT_COOLDOWN_HOURS - hours)} hours")

    reward = WELCOME_GIFT_FIRST if first else WELCOME_GIFT_REPEAT
    user.coins = int(user.coins) + reward
    user.last_welcome_gift_at = now
    user.updated_at = now
    s.add(user)
    s.add(
        Transaction(
            wallet_address=user.wallet_address,
            type="bonus",
            amount=reward,
            currency="coins",
            description="Welcome gift",
            created_at=now,
        )
    )
    s.commit()
    s.refresh(user)
    return reward


def register_referral(s: Session, user: User, referral_code: str) -> User:
    """Link `user` to whoever owns `referral_code` and pay that referrer once."""
    if user.referred_by:
        raise ConflictError("Already referred")
    code = (referral_code or "").strip().upper()
    if not code:
        raise InvalidInputError("referral_code is required")

    referrer = s.exec(select(User).where(User.referral_code == code)).first()
    if referrer is None:
        raise NotFoundError("Referral code not found")
    if referrer.wallet_address == user.wallet_address:
        raise InvalidInputError("Cannot refer yourself")

    now = utcnow()
    user.referred_by = referrer.wallet_address
    user.updated_at = now
    referrer.referral_count = int(referrer.referral_count) + 1
    referrer.referral_earnings = int(referrer.referral_earnings) + REFERRAL_REWARD
    referrer.token_balance = int(referrer.token_balance) + REFERRAL_REWARD
    referrer.updated_at = now
    s.add(user)
    s.add(referrer)
    s.add(
        Transaction(
            wallet_address=referrer.wallet_address,
            type="referral",
            amount=REFERRAL_REWARD,
            currency="token",
            description=f"Referral bonus: {user.username}",
        )
    )
    s.commit()
    s.refresh(user)
    log.info("User %s referred by %s", user.wallet_address, referrer.wallet_address)
    return referrer


def claim_alliance_rewards(s: Session, user: User) -> int:
    unclaimed = int(user.unclaimed_alliance_rewards)
    if unclaimed <= 0:
        raise ConflictError("No rewards to claim")

    user.token_balance = int(user.token_balance) + unclaimed
    user.unclaimed_alliance_rewards = 0
    user.updated_at = utcnow()
    s.add(user)
    s.add(
        Transaction(
            wallet_address=user.wallet_address,
            type="bonus",
            amount=unclaimed,
            currency="token",
            description="Alliance rewards",
        )
    )
    s.commit()
    s.refresh(user)
    return unclaimed


def match_odds(m: Match) -> dict[str, float]:
    return {
        "home": m.odds_home,
        "draw": m.odds_draw,
        "away": m.odds_away,
        "gg": m.odds_gg,
        "nogg": m.odds_nogg,
    }


def in_live_grace(m: Match, now: datetime) -> bool:
    """True while a LIVE match still takes bets at its frozen pre-match odds."""
    if m.status != "LIVE" or m.live_start_time is None:
        return False
    return (now - m.live_start_time).total_seconds() <= LIVE_BET_GRACE_SEC


def betting_open(m: Match, now: datetime) -> bool:
    return m.status == "SCHEDULED" or in_live_grace(m, now)


def ensure_betting_open(m: Match, now: datetime) -> None:
    if betting_open(m, now):
        return
    raise BettingClosedError(f"Betting closed for match {m.id}")


def _check_stake(user: User, stake: int) -> int:
    if isinstance(stake, bool) or not isinstance(stake, int) or stake < 1:
        raise InvalidInputError("stake must be a positive integer")
    if int(user.token_balance) < stake:
        raise InsufficientFundsError("Insufficient balance")
    return stake


def _check_selection(selection: str) -> str:
    sel = str(selection or "").strip().lower()
    if sel not in SELECTIONS:
        raise InvalidInputError(f"selection must be one of {', '.join(SELECTIONS)}")
    return sel


def _debit_stake(s: Session, user: User, stake: int, description: str, now: datetime) -> None:
    user.token_balance = int(user.token_balance) - stake
    user.total_bets = int(user.total_bets) + 1
    user.updated_at = now
    s.add(user)
    s.add(
        Transaction(
            wallet_address=user.wallet_address,
            type="bet",
            amount=-stake,
            currency="token",
            description=description,
            created_at=now,
        )
    )


def place_bet(s: Session, user: User, m: Match, selection: str, stake: int, now: datetime) -> Bet:
    """Single bet at the match's frozen price."""
    sel = _check_selection(selection)
    stake = _check_stake(user, stake)
    ensure_betting_open(m, now)

    odds = float(match_odds(m)[sel])
    bet = Bet(
        wallet_address=user.wallet_address,
        match_id=int(m.id),
        selection=sel,
        odds=odds,
        stake=stake,
        potential_return=math.floor(stake * odds),
        bet_type="single",
        created_at=now,
    )
    s.add(bet)
    _debit_stake(s, user, stake, f"Bet on {sel} @ {odds}", now)
    s.commit()
    s.refresh(bet)
    log.info("Bet %s: %s %s on match %s @ %s", bet.id, user.wallet_address, stake, m.id, odds)
    return bet


def place_accumulator(
    s: Session,
    user: User,
    legs: Iterable[tuple[Match, str]],
    stake: int,
    now: datetime,
) -> Accumulator:
    """One stake across several matches; pays only if every leg wins."""
    picked: list[tuple[Match, str]] = [(m, _check_selection(sel)) for m, sel in legs]
    if len(picked) < 2:
        raise InvalidInputError("An accumulator needs at least two selections")
    match_ids = [int(m.id) for m, _ in picked]
    if len(set(match_ids)) != len(match_ids):
        raise InvalidInputError("Each match can appear only once in an accumulator")
    stake = _check_stake(user, stake)
    for m, _ in picked:
        ensure_betting_open(m, now)

    prices = [float(match_odds(m)[sel]) for m, sel in picked]
    total_odds = math.prod(prices)
    potential = math.floor(stake * total_odds)

    acc = Accumulator(
        wallet_address=user.wallet_address,
        stake=stake,
        total_odds=round(total_odds, 4),
        potential_return=potential,
        created_at=now,
    )
    s.add(acc)
    s.flush()

    for (m, sel), price in zip(picked, prices):
        s.add(
            Bet(
                wallet_address=user.wallet_address,
                match_id=int(m.id),
                selection=sel,
                odds=price,
                stake=stake,
                potential_return=potential,
                bet_type="accumulator",
                accumulator_id=int(acc.id),
                created_at=now,
            )
        )

    _debit_stake(s, user, stake, f"Accumulator bet ({len(picked)} selections) @ {total_odds:.2f}", now)
    s.commit()
    s.refresh(acc)
    log.info("Accumulator %s: %s %s x%.2f", acc.id, user.wallet_address, stake, total_odds)
    return acc
