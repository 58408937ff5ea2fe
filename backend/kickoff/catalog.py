from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from .errors import InvalidInputError
from .validation import validate_strength


@dataclass(frozen=True)
class LeagueDef:
    id: str
    name: str
    logo: str | None


@dataclass(frozen=True)
class TeamDef:
    id: str
    league_id: str
    name: str
    strength: float
    color: str
    logo: str | None


@dataclass(frozen=True)
class Catalog:
    leagues: tuple[LeagueDef, ...]
    teams: tuple[TeamDef, ...]

    def teams_in(self, league_id: str) -> list[TeamDef]:
        return [t for t in self.teams if t.league_id == league_id]


def _catalog_path() -> Path:
    # If set, use an external (mounted) config file path.
    p = os.getenv("TEAMS_CONFIG_PATH")
    if p:
        return Path(p)
    return Path(__file__).resolve().parent / "teams.json"


def parse_catalog(raw: dict) -> Catalog:
    leagues: list[LeagueDef] = []
    for item in raw.get("leagues", []):
        lid = str(item.get("id", "")).strip()
        name = str(item.get("name", "")).strip()
        if not lid or not name:
            raise ValueError("teams config: league id and name are required")
        leagues.append(LeagueDef(id=lid, name=name, logo=item.get("logo")))

    league_ids = [lg.id for lg in leagues]
    if len(set(league_ids)) != len(league_ids):
        raise ValueError("teams config: duplicate league ids")

    teams: list[TeamDef] = []
    for item in raw.get("teams", []):
        tid = str(item.get("id", "")).strip()
        lid = str(item.get("league_id", "")).strip()
        name = str(item.get("name", "")).strip()
        if not tid or not name:
            raise ValueError("teams config: team id and name are required")
        if lid not in league_ids:
            raise ValueError(f"teams config: unknown league {lid!r} for team {tid}")
        try:
            strength = validate_strength(item.get("strength"), field=f"strength of {tid}")
        except InvalidInputError as e:
            raise ValueError(f"teams config: {e}") from e
        teams.append(
            TeamDef(
                id=tid,
                league_id=lid,
                name=name,
                strength=strength,
                color=str(item.get("color") or "#000000"),
                logo=item.get("logo"),
            )
        )

    team_ids = [t.id for t in teams]
    if len(set(team_ids)) != len(team_ids):
        raise ValueError("teams config: duplicate team ids")

    return Catalog(leagues=tuple(leagues), teams=tuple(teams))


def load_catalog() -> Catalog:
    p = _catalog_path()
    if not p.exists():
        raise ValueError(f"teams config not found: {p}")
    return parse_catalog(json.loads(p.read_text(encoding="utf-8")))
