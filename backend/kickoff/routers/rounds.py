from dataclasses import asdict

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session, select

from ..auth import require_admin
from ..clock import utcnow
from ..db import get_session
from ..models import Season
from ..services.rounds import phase_at, seconds_left
from .common import advance_rounds

router = APIRouter(prefix="/rounds", tags=["rounds"])


@router.get("/current")
def current_round(request: Request, s: Session = Depends(get_session)):
    clock = request.app.state.settings.round_clock()
    now = utcnow()
    season = s.exec(
        select(Season).where(Season.is_active == True).order_by(Season.id.desc())  # noqa: E712
    ).first()
    if season is None or season.round_started_at is None:
        return {"season_id": None, "round": 0, "phase": None, "seconds_left": 0}

    return {
        "season_id": season.id,
        "round": season.current_round,
        "started_at": season.round_started_at,
        "phase": phase_at(season.round_started_at, now, clock),
        "seconds_left": seconds_left(season.round_started_at, now, clock),
        "durations": {"betting": clock.betting_sec, "live": clock.live_sec, "result": clock.result_sec},
    }


@router.post("/tick", dependencies=[Depends(require_admin)])
async def tick(request: Request):
    events = await advance_rounds(request)
    return {"ok": True, "events": [asdict(e) for e in events]}
