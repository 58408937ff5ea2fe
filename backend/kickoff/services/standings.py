from __future__ import annotations

from typing import Any, Iterable

from sqlmodel import Session, select

from ..models import Match, Season, Team


def compute_standings(matches: Iterable[Match], teams: Iterable[Team]) -> list[dict[str, Any]]:
    """
    League table: win=3, draw=1, loss=0.
    Only counts finished matches with a score; void matches are ignored.
    Sorted by points, goal difference, goals scored, then name.
    """
    per: dict[str, dict[str, Any]] = {}
    for t in teams:
        per[t.id] = {
            "team_id": t.id,
            "team_name": t.name,
            "color": t.color,
            "played": 0,
            "won": 0,
            "drawn": 0,
            "lost": 0,
            "goals_for": 0,
            "goals_against": 0,
            "goal_diff": 0,
            "points": 0,
        }

    for m in matches:
        if m.status != "FINISHED" or m.home_score is None or m.away_score is None:
            continue
        home = per.get(m.home_team_id)
        away = per.get(m.away_team_id)
        if home is None or away is None:
            continue

        hg = int(m.home_score)
        ag = int(m.away_score)
        for row, gf, ga in ((home, hg, ag), (away, ag, hg)):
            row["played"] += 1
            row["goals_for"] += gf
            row["goals_against"] += ga
            row["goal_diff"] = row["goals_for"] - row["goals_against"]
            if gf > ga:
                row["won"] += 1
                row["points"] += 3
            elif gf == ga:
                row["drawn"] += 1
                row["points"] += 1
            else:
                row["lost"] += 1

    rows = list(per.values())
    rows.sort(key=lambda r: (-r["points"], -r["goal_diff"], -r["goals_for"], r["team_name"]))
    for i, r in enumerate(rows, start=1):
        r["position"] = i
    return rows


def league_standings(s: Session, season_id: int | None = None) -> dict[str, Any]:
    """Per-league tables for one season (default: the active one)."""
    if season_id is None:
        season = s.exec(
            select(Season).where(Season.is_active == True).order_by(Season.id.desc())  # noqa: E712
        ).first()
        if season is None:
            return {"season_id": None, "leagues": {}}
        season_id = int(season.id)

    teams = list(s.exec(select(Team).order_by(Team.league_id, Team.name)).all())
    matches = list(s.exec(select(Match).where(Match.season_id == season_id, Match.status == "FINISHED")).all())

    by_league: dict[str, list[Team]] = {}
    for t in teams:
        by_league.setdefault(t.league_id, []).append(t)

    return {
        "season_id": season_id,
        "leagues": {
            lid: compute_standings([m for m in matches if m.league_id == lid], league_teams)
            for lid, league_teams in sorted(by_league.items())
        },
    }
