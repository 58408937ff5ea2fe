import math
import random
from datetime import datetime, timedelta

import pytest
from sqlmodel import select

from kickoff.errors import BettingClosedError, ConflictError, InsufficientFundsError, InvalidInputError, NotFoundError
from kickoff.models import Bet, Match, Transaction, User
from kickoff.services.rounds import RoundClock, RoundManager
from kickoff.services.wallet import (
    betting_open,
    claim_alliance_rewards,
    claim_welcome_gift,
    convert_coins,
    ensure_user,
    get_user,
    in_live_grace,
    place_accumulator,
    place_bet,
    register_referral,
    set_alliance,
    username_available,
)

from tests.util import OTHER_WALLET, WALLET

NOW = datetime(2026, 3, 1, 18, 0, 0)


def open_round(session):
    RoundManager(RoundClock(), rng=random.Random(1)).tick(session, NOW)
    return list(session.exec(select(Match).order_by(Match.id)).all())


def test_register_defaults(session):
    user, created = ensure_user(session, WALLET.upper().replace("0X", "0x"))
    assert created
    assert user.wallet_address == WALLET
    assert user.username == f"User_{WALLET[:6]}"
    assert (user.coins, user.token_balance) == (5000, 1000)

    again, created = ensure_user(session, WALLET, "ignored")
    assert not created
    assert again.username == user.username


def test_register_rejects_bad_wallet_and_taken_name(session):
    with pytest.raises(InvalidInputError):
        ensure_user(session, "0x1234")
    ensure_user(session, WALLET, "striker")
    with pytest.raises(InvalidInputError):
        ensure_user(session, OTHER_WALLET, "striker")
    with pytest.raises(NotFoundError):
        get_user(session, "0x" + "ef" * 20)


def test_convert_in_whole_blocks(session):
    user, _ = ensure_user(session, WALLET)
    res = convert_coins(session, user, 2500)
    assert (res.converted_coins, res.tokens_added) == (2000, 200)
    assert (res.coins, res.token_balance) == (3000, 1200)

    tx = session.exec(select(Transaction).where(Transaction.type == "convert")).one()
    assert tx.amount == 200


def test_convert_below_one_block_changes_nothing(session):
    user, _ = ensure_user(session, WALLET)
    user.coins = 0
    session.add(user)
    session.commit()

    for amount in (0, 999):
        res = convert_coins(session, user, amount)
        assert (res.converted_coins, res.tokens_added, res.coins, res.token_balance) == (0, 0, 0, 1000)
    assert session.exec(select(Transaction)).all() == []


def test_convert_more_than_owned(session):
    user, _ = ensure_user(session, WALLET)
    with pytest.raises(InsufficientFundsError):
        convert_coins(session, user, 6000)
    with pytest.raises(InvalidInputError):
        convert_coins(session, user, -1000)


def test_alliance(session):
    user, _ = ensure_user(session, WALLET)
    set_alliance(session, user, "l1", "t1")
    assert (user.alliance_league_id, user.alliance_team_id) == ("l1", "t1")

    with pytest.raises(InvalidInputError):
        set_alliance(session, user, "l1", "t7")
    with pytest.raises(NotFoundError):
        set_alliance(session, user, "l9", "t1")


def test_single_bet_uses_frozen_odds(session):
    m = open_round(session)[0]
    user, _ = ensure_user(session, WALLET)

    bet = place_bet(session, user, m, "home", 100, NOW)
    assert bet.odds == m.odds_home
    assert bet.potential_return == math.floor(100 * m.odds_home)
    assert bet.status == "pending"
    assert user.token_balance == 900
    assert user.total_bets == 1


def test_single_bet_rejections(session):
    m = open_round(session)[0]
    user, _ = ensure_user(session, WALLET)

    with pytest.raises(InvalidInputError):
        place_bet(session, user, m, "over", 10, NOW)
    with pytest.raises(InvalidInputError):
        place_bet(session, user, m, "home", 0, NOW)
    with pytest.raises(InsufficientFundsError):
        place_bet(session, user, m, "home", 1001, NOW)
    assert user.token_balance == 1000


def test_live_grace_window(session):
    m = open_round(session)[0]
    user, _ = ensure_user(session, WALLET)
    m.status = "LIVE"
    m.live_start_time = NOW

    assert in_live_grace(m, NOW + timedelta(seconds=10))
    place_bet(session, user, m, "draw", 10, NOW + timedelta(seconds=5))
    with pytest.raises(BettingClosedError):
        place_bet(session, user, m, "draw", 10, NOW + timedelta(seconds=11))

    assert not betting_open(m, NOW + timedelta(seconds=11))

    m.status = "FINISHED"
    with pytest.raises(BettingClosedError):
        place_bet(session, user, m, "draw", 10, NOW)


def test_accumulator(session):
    m1, m2, m3 = open_round(session)[:3]
    user, _ = ensure_user(session, WALLET)

    acc = place_accumulator(session, user, [(m1, "home"), (m2, "gg"), (m3, "away")], 50, NOW)
    expected = m1.odds_home * m2.odds_gg * m3.odds_away
    assert acc.total_odds == round(expected, 4)
    assert acc.potential_return == math.floor(50 * expected)
    assert user.token_balance == 950

    legs = session.exec(select(Bet).where(Bet.accumulator_id == acc.id)).all()
    assert len(legs) == 3
    assert {b.bet_type for b in legs} == {"accumulator"}


def test_accumulator_rejections(session):
    m1, m2 = open_round(session)[:2]
    user, _ = ensure_user(session, WALLET)

    with pytest.raises(InvalidInputError):
        place_accumulator(session, user, [(m1, "home")], 50, NOW)
    with pytest.raises(InvalidInputError):
        place_accumulator(session, user, [(m1, "home"), (m1, "draw")], 50, NOW)

    m2.status = "FINISHED"
    with pytest.raises(BettingClosedError):
        place_accumulator(session, user, [(m1, "home"), (m2, "away")], 50, NOW)
    assert user.token_balance == 1000


def test_username_availability(session):
    ensure_user(session, WALLET, "striker")
    assert username_available(session, "keeper")
    assert not username_available(session, " striker ")
    with pytest.raises(InvalidInputError):
        username_available(session, "  ")


def test_welcome_gift_first_then_daily(session):
    user, _ = ensure_user(session, WALLET)

    assert claim_welcome_gift(session, user, NOW) == 500
    assert user.coins == 5500
    with pytest.raises(ConflictError, match="Wait 1 hours"):
        claim_welcome_gift(session, user, NOW + timedelta(hours=23, minutes=30))

    assert claim_welcome_gift(session, user, NOW + timedelta(hours=24)) == 100
    assert user.coins == 5600
    gifts = session.exec(select(Transaction).where(Transaction.type == "bonus")).all()
    assert [(t.amount, t.currency) for t in gifts] == [(500, "coins"), (100, "coins")]


def test_referral_pays_the_referrer_once(session):
    captain, _ = ensure_user(session, WALLET, "captain")
    rookie, _ = ensure_user(session, OTHER_WALLET, "rookie")
    code = captain.referral_code
    assert len(code) == 6
    assert code == code.upper()
    assert rookie.referral_code != code

    referrer = register_referral(session, rookie, code.lower())
    assert referrer.wallet_address == WALLET
    assert rookie.referred_by == WALLET
    assert (referrer.token_balance, referrer.referral_count, referrer.referral_earnings) == (1050, 1, 50)

    with pytest.raises(ConflictError):
        register_referral(session, rookie, code)
    with pytest.raises(InvalidInputError):
        register_referral(session, captain, code)
    with pytest.raises(NotFoundError):
        register_referral(session, captain, "NOPE!!")

    tx = session.exec(select(Transaction).where(Transaction.type == "referral")).one()
    assert (tx.wallet_address, tx.amount, tx.currency) == (WALLET, 50, "token")


def test_alliance_rewards_claim_moves_them_to_tokens(session):
    user, _ = ensure_user(session, WALLET)
    with pytest.raises(ConflictError):
        claim_alliance_rewards(session, user)

    user.unclaimed_alliance_rewards = 30
    session.add(user)
    session.commit()

    assert claim_alliance_rewards(session, user) == 30
    fresh = session.get(User, WALLET)
    assert (fresh.token_balance, fresh.unclaimed_alliance_rewards) == (1030, 0)
