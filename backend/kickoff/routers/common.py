from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any

from fastapi import HTTPException, Request
from starlette.concurrency import run_in_threadpool

from ..clock import utcnow
from ..db import run_with_retry
from ..errors import BettingClosedError, ConflictError, InsufficientFundsError, MatchStateError, NotFoundError
from ..models import Match, Team
from ..services.live import progress_at, project
from ..services.rounds import RoundEvent
from ..services.simulation import events_from_json
from ..services.wallet import betting_open, in_live_grace, match_odds
from ..ws import ws_manager


def http_error(e: ValueError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InsufficientFundsError):
        return HTTPException(status_code=402, detail=str(e))
    if isinstance(e, (BettingClosedError, MatchStateError, ConflictError)):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


async def advance_rounds(request: Request) -> list[RoundEvent]:
    """Bring the round loop up to date before answering, and tell websocket listeners."""
    manager = request.app.state.round_manager
    now = utcnow()
    async with request.app.state.tick_lock:
        events = await run_in_threadpool(run_with_retry, lambda s: manager.tick(s, now))
    for ev in events:
        await ws_manager.broadcast(ev.event, asdict(ev))
    return events


def team_dict(t: Team | None) -> dict[str, Any] | None:
    if t is None:
        return None
    return {"id": t.id, "name": t.name, "color": t.color, "logo": t.logo, "strength": t.strength}


def match_dict(m: Match, home: Team | None, away: Team | None, *, now: datetime, live_sec: float) -> dict[str, Any]:
    """
    Public view of a match. Scores and events are revealed progressively
    while LIVE, starting once the late-betting grace has passed. The server
    seed is shown only once the match is over.
    """
    out: dict[str, Any] = {
        "id": int(m.id),
        "season_id": m.season_id,
        "round": m.round,
        "league_id": m.league_id,
        "status": m.status,
        "home_team": team_dict(home),
        "away_team": team_dict(away),
        "odds": match_odds(m),
        "round_hash": m.round_hash,
        "commit_hash": m.commit_hash,
        "block_hash": m.block_hash,
        "start_time": m.start_time,
        "live_start_time": m.live_start_time,
        "minute": 0,
        "home_score": None,
        "away_score": None,
        "events": [],
        "summary": None,
        "server_seed": None,
        "betting_open": betting_open(m, now),
    }

    if m.status == "LIVE":
        # nothing is shown while late bets are still taken at pre-match odds
        progress = 0.0 if in_live_grace(m, now) else progress_at(m.live_start_time, now, live_sec)
        snap = project(
            events_from_json(m.events_json),
            progress,
            home_team_id=m.home_team_id,
            away_team_id=m.away_team_id,
        )
        out.update(
            minute=snap.minute,
            home_score=snap.home_score,
            away_score=snap.away_score,
            events=[e.to_dict() for e in snap.events],
        )
    elif m.status in ("FINISHED", "VOID"):
        out.update(
            minute=90 if m.status == "FINISHED" else 0,
            home_score=m.home_score,
            away_score=m.away_score,
            events=[e.to_dict() for e in events_from_json(m.events_json)],
            summary=m.summary,
            server_seed=m.server_seed,
        )
    return out
