
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlmodel import Session, select

from ..clock import utcnow
from ..db import get_session
from ..models import Bet, Match, Team
from ..schemas import AccumulatorCreateBody, BetCreateBody
from ..services.wallet import get_user, place_accumulator, place_bet
from ..validation import normalize_wallet
from .common import advance_rounds, http_error

router = APIRouter(prefix="/bets", tags=["bets"])


def _match_or_404(s: Session, match_id: int) -> Match:
    m = s.get(Match, match_id)
    if not m:
        raise HTTPException(status_code=404, detail=f"Match {match_id} not found")
    return m


@router.post("")
async def create_bet(request: Request, body: BetCreateBody, s: Session = Depends(get_session)):
    # close the window first if the round clock already moved on
    await advance_rounds(request)
    try:
        user = get_user(s, body.wallet_address)
        m = _match_or_404(s, body.match_id)
        bet = place_bet(s, user, m, body.selection, body.stake, utcnow())
    except ValueError as e:
        raise http_error(e)
    return {
        "ok": True,
        "bet": {
            "id": bet.id,
            "match_id": bet.match_id,
            "selection": bet.selection,
            "odds": bet.odds,
            "stake": bet.stake,
            "potential_return": bet.potential_return,
            "status": bet.status,
        },
        "token_balance": user.token_balance,
    }


@router.post("/accumulator")
async def create_accumulator(request: Request, body: AccumulatorCreateBody, s: Session = Depends(get_session)):
    await advance_rounds(request)
    try:
        user = get_user(s, body.wallet_address)
        legs = [(_match_or_404(s, leg.match_id), leg.selection) for leg in body.selections]
        acc = place_accumulator(s, user, legs, body.stake, utcnow())
    except ValueError as e:
        raise http_error(e)
    return {
        "ok": True,
        "accumulator": {
            "id": acc.id,
            "stake": acc.stake,
            "total_odds": acc.total_odds,
            "potential_return": acc.potential_return,
            "status": acc.status,
        },
        "token_balance": user.token_balance,
    }


@router.get("/active")
def active_bets(
    wallet_address: str = Query(..., description="Bettor wallet"),
    s: Session = Depends(get_session),
):
    try:
        wallet = normalize_wallet(wallet_address)
    except ValueError as e:
        raise http_error(e)

    rows = s.exec(
        select(Bet, Match)
        .join(Match, Match.id == Bet.match_id)
        .where(Bet.wallet_address == wallet)
        .order_by(Bet.created_at.desc(), Bet.id.desc())
    ).all()
    names = {t.id: t.name for t in s.exec(select(Team)).all()}

    out = []
    for bet, m in rows:
        out.append(
            {
                "id": bet.id,
                "match_id": bet.match_id,
                "selection": bet.selection,
                "odds": bet.odds,
                "stake": bet.stake,
                "potential_return": bet.potential_return,
                "status": bet.status,
                "bet_type": bet.bet_type,
                "accumulator_id": bet.accumulator_id,
                "created_at": bet.created_at,
                "home_team_name": names.get(m.home_team_id, "Unknown"),
                "away_team_name": names.get(m.away_team_id, "Unknown"),
                "match_status": m.status,
                # final score only once the match is over
                "home_score": m.home_score if m.status == "FINISHED" else None,
                "away_score": m.away_score if m.status == "FINISHED" else None,
            }
        )
    return out
