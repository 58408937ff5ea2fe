
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlmodel import Session, select
from starlette.concurrency import run_in_threadpool

from ..auth import require_admin
from ..clock import utcnow
from ..db import get_session, run_with_retry
from ..errors import InvalidInputError, MatchStateError, NotFoundError
from ..models import Match, Season, Team
from ..schemas import OddsQueryBody
from ..services.fairness import verify_commit
from ..services.odds import compute_odds, implied_probabilities, overround
from ..services.rounds import describe_match, phase_at, seconds_left
from ..services.settlement import SettlementSummary, settle_match
from ..services.simulation import events_from_json, verify_result
from .common import advance_rounds, http_error, match_dict

router = APIRouter(prefix="/matches", tags=["matches"])


def _match_or_404(s: Session, match_id: int) -> Match:
    m = s.get(Match, match_id)
    if not m:
        raise HTTPException(status_code=404, detail="Match not found")
    return m


def _teams(s: Session, m: Match) -> tuple[Team | None, Team | None]:
    return s.get(Team, m.home_team_id), s.get(Team, m.away_team_id)


@router.get("/current")
async def current_matches(
    request: Request,
    league_id: str | None = Query(None, description="Optional league filter"),
    s: Session = Depends(get_session),
):
    await advance_rounds(request)

    settings = request.app.state.settings
    clock = settings.round_clock()
    manager = request.app.state.round_manager
    now = utcnow()

    season = s.exec(
        select(Season).where(Season.is_active == True).order_by(Season.id.desc())  # noqa: E712
    ).first()
    if season is None or season.round_started_at is None:
        return {"season_id": None, "round": 0, "phase": None, "seconds_left": 0, "matches": [], "server_time": now}

    matches = manager.round_matches(s, int(season.id), season.current_round, league_id)
    teams = {t.id: t for t in s.exec(select(Team)).all()}

    return {
        "season_id": season.id,
        "round": season.current_round,
        "phase": phase_at(season.round_started_at, now, clock),
        "seconds_left": seconds_left(season.round_started_at, now, clock),
        "matches": [
            match_dict(m, teams.get(m.home_team_id), teams.get(m.away_team_id), now=now, live_sec=clock.live_sec)
            for m in matches
        ],
        "server_time": now,
    }


@router.post("/odds")
def quote_odds(request: Request, body: OddsQueryBody):
    """Ad-hoc quote for two strengths, with the implied probabilities behind it."""
    try:
        odds = compute_odds(body.home_strength, body.away_strength, btts=request.app.state.settings.btts_prices())
    except InvalidInputError as e:
        raise http_error(e)
    return {"odds": odds.as_dict(), "probabilities": implied_probabilities(odds), "overround": overround(odds)}


@router.get("/{match_id}")
def get_match(request: Request, match_id: int, s: Session = Depends(get_session)):
    m = _match_or_404(s, match_id)
    home, away = _teams(s, m)
    live_sec = request.app.state.settings.live_duration_sec
    return match_dict(m, home, away, now=utcnow(), live_sec=live_sec)


@router.get("/{match_id}/verify")
def verify_match(match_id: int, s: Session = Depends(get_session)):
    """
    Audit a finished match: the revealed seed must hash to the published
    commitment and must replay to exactly the recorded score and events.
    """
    m = _match_or_404(s, match_id)
    if m.status != "FINISHED":
        raise http_error(MatchStateError(f"Match {m.id} is {m.status}; seed not revealed yet"))

    home, away = _teams(s, m)
    if home is None or away is None:
        raise HTTPException(status_code=409, detail="Match teams no longer exist")

    try:
        result_ok = verify_result(
            describe_match(m, home, away),
            m.server_seed,
            home_score=int(m.home_score),
            away_score=int(m.away_score),
            events=events_from_json(m.events_json),
        )
    except InvalidInputError as e:
        raise http_error(e)

    return {
        "match_id": int(m.id),
        "server_seed": m.server_seed,
        "commit_hash": m.commit_hash,
        "commit_ok": verify_commit(m.server_seed, m.commit_hash),
        "result_ok": result_ok,
    }


@router.post("/{match_id}/settle", dependencies=[Depends(require_admin)])
async def settle(request: Request, match_id: int):
    def work(s: Session) -> SettlementSummary:
        m = s.get(Match, match_id)
        if m is None:
            raise NotFoundError("Match not found")
        return settle_match(s, m)

    # same lock as the round loop, which settles matches on its own
    async with request.app.state.tick_lock:
        try:
            summary = await run_in_threadpool(run_with_retry, work)
        except (NotFoundError, MatchStateError) as e:
            raise http_error(e)
    return {
        "ok": True,
        "match_id": summary.match_id,
        "settled": summary.settled,
        "winners": summary.winners,
        "refunded": summary.refunded,
        "already_settled": summary.already_settled,
    }
