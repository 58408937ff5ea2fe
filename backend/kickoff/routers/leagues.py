from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from ..db import get_session
from ..models import League, Team
from ..services.standings import league_standings

router = APIRouter(prefix="/leagues", tags=["leagues"])


@router.get("")
def list_leagues(s: Session = Depends(get_session)):
    return s.exec(select(League).order_by(League.id)).all()


@router.get("/standings")
def standings(
    season_id: int | None = Query(None, description="Season (default: active)"),
    s: Session = Depends(get_session),
):
    return league_standings(s, season_id)


@router.get("/{league_id}/teams")
def league_teams(league_id: str, s: Session = Depends(get_session)):
    if s.get(League, league_id) is None:
        raise HTTPException(status_code=404, detail="League not found")
    return s.exec(select(Team).where(Team.league_id == league_id).order_by(Team.name)).all()
