import argparse
import json
import logging

from sqlmodel import Session

from kickoff.catalog import load_catalog
from kickoff.clock import utcnow
from kickoff.db import configure_db, get_engine, init_db, run_with_retry
from kickoff.logging_config import setup_logging
from kickoff.models import Match, Team
from kickoff.seed import load_seed_file, seed_catalog
from kickoff.services.rounds import RoundManager, describe_match
from kickoff.services.simulation import generate_result
from kickoff.settings import load_settings


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Backend management commands")
    sub = p.add_subparsers(dest="cmd", required=True)

    p.add_argument("--secrets", default="./secrets.json")
    p.add_argument("--db-url")
    p.add_argument("--log-level")

    seed = sub.add_parser("seed", help="Seed leagues and teams from JSON")
    seed.add_argument("--file", help="Path to teams JSON file (default: bundled catalog)")

    sub.add_parser("tick", help="Run one round-loop tick now")

    replay = sub.add_parser("replay", help="Regenerate a match result from its stored seeds")
    replay.add_argument("match_id", type=int)

    return p.parse_args()


def main() -> None:
    args = parse_args()

    settings = load_settings(
        secrets_path=args.secrets,
        db_url=args.db_url,
        log_level=args.log_level,
    )
    setup_logging(settings.log_level)

    configure_db(settings.db_url)
    init_db()

    log = logging.getLogger(__name__)

    if args.cmd == "seed":
        catalog = load_seed_file(args.file) if args.file else load_catalog()
        with Session(get_engine()) as s:
            res = seed_catalog(s, catalog)
        log.info("Seed complete: %s", res)

    elif args.cmd == "tick":
        manager = RoundManager(settings.round_clock(), settings.btts_prices())
        now = utcnow()
        events = run_with_retry(lambda s: manager.tick(s, now))
        for ev in events:
            log.info("%s: season=%s round=%s %s", ev.event, ev.season_id, ev.round, ev.payload)
        if not events:
            log.info("Nothing to do")

    elif args.cmd == "replay":
        with Session(get_engine()) as s:
            m = s.get(Match, args.match_id)
            if m is None:
                raise SystemExit(f"Match {args.match_id} not found")
            if not m.block_hash:
                raise SystemExit(f"Match {m.id} has not gone live yet")
            home = s.get(Team, m.home_team_id)
            away = s.get(Team, m.away_team_id)
            if home is None or away is None:
                raise SystemExit(f"Match {m.id} references unknown teams")
            result = generate_result(describe_match(m, home, away), m.server_seed)

        print(json.dumps(
            {
                "match_id": args.match_id,
                "summary": result.summary,
                "stored_score": [m.home_score, m.away_score],
                "events": [e.to_dict() for e in result.events],
            },
            indent=2,
        ))


if __name__ == "__main__":
    main()
