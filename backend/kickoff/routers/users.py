import logging

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from ..db import get_session
from ..models import Transaction, User
from ..schemas import AllianceBody, ConvertCoinsBody, ReferralBody, UserCreateBody
from ..services.wallet import (
    claim_alliance_rewards,
    claim_welcome_gift,
    convert_coins,
    ensure_user,
    get_user,
    register_referral,
    set_alliance,
    username_available,
)
from .common import http_error

log = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


def _user_dict(u: User, *, is_new: bool = False) -> dict:
    return {
        "wallet_address": u.wallet_address,
        "username": u.username,
        "coins": u.coins,
        "token_balance": u.token_balance,
        "alliance_league_id": u.alliance_league_id,
        "alliance_team_id": u.alliance_team_id,
        "total_bets": u.total_bets,
        "wins": u.wins,
        "biggest_win": u.biggest_win,
        "best_odds_won": u.best_odds_won,
        "referral_code": u.referral_code,
        "referred_by": u.referred_by,
        "referral_count": u.referral_count,
        "referral_earnings": u.referral_earnings,
        "unclaimed_alliance_rewards": u.unclaimed_alliance_rewards,
        "last_welcome_gift_at": u.last_welcome_gift_at,
        "active_theme": u.active_theme,
        "is_new": is_new,
    }


@router.post("")
def register(body: UserCreateBody, s: Session = Depends(get_session)):
    """
    Create the profile for a wallet, or return the existing one.
    Ownership of the wallet is proven upstream (signed message).
    """
    try:
        user, created = ensure_user(s, body.wallet_address, body.username)
    except ValueError as e:
        raise http_error(e)
    return _user_dict(user, is_new=created)


@router.get("/username-available")
def check_username(username: str = Query(..., min_length=1), s: Session = Depends(get_session)):
    try:
        return {"username": username.strip(), "available": username_available(s, username)}
    except ValueError as e:
        raise http_error(e)


@router.get("/{wallet_address}")
def profile(wallet_address: str, s: Session = Depends(get_session)):
    try:
        return _user_dict(get_user(s, wallet_address))
    except ValueError as e:
        raise http_error(e)


@router.post("/{wallet_address}/alliance")
def join_alliance(wallet_address: str, body: AllianceBody, s: Session = Depends(get_session)):
    try:
        user = set_alliance(s, get_user(s, wallet_address), body.league_id, body.team_id)
    except ValueError as e:
        raise http_error(e)
    log.info("User %s joined alliance %s/%s", user.wallet_address, user.alliance_league_id, user.alliance_team_id)
    return _user_dict(user)


@router.post("/{wallet_address}/convert-coins")
def convert(wallet_address: str, body: ConvertCoinsBody, s: Session = Depends(get_session)):
    try:
        res = convert_coins(s, get_user(s, wallet_address), body.amount)
    except ValueError as e:
        raise http_error(e)
    return {
        "ok": True,
        "converted_coins": res.converted_coins,
        "tokens_added": res.tokens_added,
        "coins": res.coins,
        "token_balance": res.token_balance,
    }


@router.get("/{wallet_address}/transactions")
def transactions(
    wallet_address: str,
    limit: int = Query(50, ge=1, le=500, description="Max rows"),
    s: Session = Depends(get_session),
):
    try:
        user = get_user(s, wallet_address)
    except ValueError as e:
        raise http_error(e)
    return s.exec(
        select(Transaction)
        .where(Transaction.wallet_address == user.wallet_address)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
    ).all()


@router.post("/{wallet_address}/welcome-gift")
def welcome_gift(wallet_address: str, s: Session = Depends(get_session)):
    try:
        user = get_user(s, wallet_address)
        reward = claim_welcome_gift(s, user)
    except ValueError as e:
        raise http_error(e)
    return {"ok": True, "reward": reward, "coins": user.coins, "message": f"Claimed {reward} coins!"}


@router.post("/{wallet_address}/referral")
def referral(wallet_address: str, body: ReferralBody, s: Session = Depends(get_session)):
    try:
        user = get_user(s, wallet_address)
        referrer = register_referral(s, user, body.referral_code)
    except ValueError as e:
        raise http_error(e)
    return {"ok": True, "referred_by": referrer.wallet_address, "message": "Referral registered"}


@router.post("/{wallet_address}/alliance-rewards")
def alliance_rewards(wallet_address: str, s: Session = Depends(get_session)):
    try:
        user = get_user(s, wallet_address)
        claimed = claim_alliance_rewards(s, user)
    except ValueError as e:
        raise http_error(e)
    return {"ok": True, "claimed": claimed, "token_balance": user.token_balance}
