import json
import logging
from pathlib import Path
from typing import Any

from sqlmodel import Session, select

from .catalog import Catalog, parse_catalog
from .models import League, Team

log = logging.getLogger(__name__)


def load_seed_file(path: str) -> Catalog:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)
    return parse_catalog(json.loads(p.read_text(encoding="utf-8")))


def upsert_leagues(s: Session, catalog: Catalog) -> dict[str, int]:
    created = 0
    updated = 0

    for lg in catalog.leagues:
        existing = s.get(League, lg.id)
        if existing:
            if existing.name != lg.name or existing.logo != lg.logo:
                existing.name = lg.name
                existing.logo = lg.logo
                s.add(existing)
            updated += 1
            continue

        s.add(League(id=lg.id, name=lg.name, logo=lg.logo))
        created += 1

    s.flush()
    return {"created": created, "updated": updated}


def upsert_teams(s: Session, catalog: Catalog) -> dict[str, int]:
    created = 0
    updated = 0

    for t in catalog.teams:
        existing = s.get(Team, t.id)
        if existing:
            # strength only changes between rounds; odds already issued stay frozen
            existing.name = t.name
            existing.league_id = t.league_id
            existing.strength = float(t.strength)
            existing.color = t.color
            existing.logo = t.logo
            s.add(existing)
            updated += 1
            continue

        s.add(
            Team(
                id=t.id,
                league_id=t.league_id,
                name=t.name,
                strength=float(t.strength),
                color=t.color,
                logo=t.logo,
            )
        )
        created += 1

    s.flush()
    return {"created": created, "updated": updated}


def seed_catalog(s: Session, catalog: Catalog) -> dict[str, Any]:
    """
    Idempotent: safe to run multiple times.
    """
    out: dict[str, Any] = {
        "leagues": upsert_leagues(s, catalog),
        "teams": upsert_teams(s, catalog),
    }
    s.commit()
    log.info("Seeded catalog: %s", out)
    return out


def catalog_missing(s: Session) -> bool:
    return s.exec(select(League)).first() is None
