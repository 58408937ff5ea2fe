from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Literal

from sqlmodel import Session, select

from ..errors import InvalidInputError
from ..models import Match, Season, Team
from .fairness import commit_for, new_seed
from .odds import BttsPrices, compute_odds
from .settlement import settle_match
from .simulation import MatchDescription, TeamRef, generate_result

log = logging.getLogger(__name__)

Phase = Literal["BETTING", "LIVE", "RESULT", "DONE"]


@dataclass(frozen=True)
class RoundClock:
    betting_sec: int = 240
    live_sec: int = 120
    result_sec: int = 240

    def betting_end(self, started_at: datetime) -> datetime:
        return started_at + timedelta(seconds=self.betting_sec)

    def live_end(self, started_at: datetime) -> datetime:
        return self.betting_end(started_at) + timedelta(seconds=self.live_sec)

    def result_end(self, started_at: datetime) -> datetime:
        return self.live_end(started_at) + timedelta(seconds=self.result_sec)


def phase_at(started_at: datetime, now: datetime, clock: RoundClock) -> Phase:
    if now < clock.betting_end(started_at):
        return "BETTING"
    if now < clock.live_end(started_at):
        return "LIVE"
    if now < clock.result_end(started_at):
        return "RESULT"
    return "DONE"


def seconds_left(started_at: datetime, now: datetime, clock: RoundClock) -> int:
    phase = phase_at(started_at, now, clock)
    ends = {
        "BETTING": clock.betting_end(started_at),
        "LIVE": clock.live_end(started_at),
        "RESULT": clock.result_end(started_at),
    }
    if phase == "DONE":
        return 0
    return max(0, int((ends[phase] - now).total_seconds()))


@dataclass(frozen=True)
class RoundEvent:
    event: str  # round_created / round_live / round_finished
    season_id: int
    round: int
    payload: dict[str, Any] = field(default_factory=dict)


def describe_match(m: Match, home: Team, away: Team) -> MatchDescription:
    return MatchDescription(
        match_id=str(m.id),
        home=TeamRef(id=home.id, name=home.name, strength=home.strength),
        away=TeamRef(id=away.id, name=away.name, strength=away.strength),
        round_hash=m.round_hash,
        block_hash=m.block_hash or "",
    )


class RoundManager:
    """
    Drives the BETTING -> LIVE -> RESULT cycle of the active season's round.

    `tick` is idempotent: it looks at the stored round and the wall clock and
    performs whatever transitions are overdue, so duplicate or late ticks are
    harmless. Server seeds for a round are collected into an explicit
    match-id -> seed table and handed to the result generator.
    """

    def __init__(
        self,
        clock: RoundClock,
        btts: BttsPrices = BttsPrices(),
        *,
        rng: random.Random | None = None,
        card_clock: Callable[[], int] | None = None,
    ) -> None:
        self.clock = clock
        self.btts = btts
        self._rng = rng or random.Random()
        self._card_clock = card_clock

    # --- lookups ---

    def active_season(self, s: Session, now: datetime) -> Season:
        season = s.exec(
            select(Season).where(Season.is_active == True).order_by(Season.id.desc())  # noqa: E712
        ).first()
        if season is None:
            season = Season(started_at=now, is_active=True, current_round=0)
            s.add(season)
            s.flush()
            log.info("Opened season %s", season.id)
        return season

    def round_matches(self, s: Session, season_id: int, round_no: int, league_id: str | None = None) -> list[Match]:
        q = select(Match).where(Match.season_id == season_id, Match.round == round_no)
        if league_id:
            q = q.where(Match.league_id == league_id)
        return list(s.exec(q.order_by(Match.league_id, Match.id)).all())

    # --- transitions ---

    def tick(self, s: Session, now: datetime) -> list[RoundEvent]:
        season = self.active_season(s, now)
        out: list[RoundEvent] = []

        if season.current_round <= 0 or season.round_started_at is None:
            out.append(self._open_round(s, season, now))
            s.commit()
            return out

        started = season.round_started_at
        phase = phase_at(started, now, self.clock)
        matches = self.round_matches(s, int(season.id), season.current_round)

        if phase != "BETTING" and any(m.status == "SCHEDULED" for m in matches):
            out.append(self._go_live(s, season, matches, self.clock.betting_end(started)))

        if phase in ("RESULT", "DONE") and any(m.status == "LIVE" or m.settled_at is None for m in matches):
            out.append(self._finish(s, season, matches, self.clock.live_end(started)))

        if phase == "DONE":
            out.append(self._open_round(s, season, now))

        s.commit()
        return out

    def _open_round(self, s: Session, season: Season, now: datetime) -> RoundEvent:
        round_no = int(season.current_round) + 1
        round_hash = new_seed()

        teams = list(s.exec(select(Team).order_by(Team.league_id, Team.id)).all())
        by_league: dict[str, list[Team]] = {}
        for t in teams:
            by_league.setdefault(t.league_id, []).append(t)

        created = 0
        for league_id in sorted(by_league):
            pool = list(by_league[league_id])
            self._rng.shuffle(pool)
            for i in range(0, len(pool) - 1, 2):
                home, away = pool[i], pool[i + 1]
                try:
                    odds = compute_odds(home.strength, away.strength, btts=self.btts)
                except InvalidInputError as e:
                    log.warning("Skipping %s vs %s in round %s: %s", home.id, away.id, round_no, e)
                    continue
                server_seed = new_seed()
                s.add(
                    Match(
                        season_id=int(season.id),
                        round=round_no,
                        league_id=league_id,
                        home_team_id=home.id,
                        away_team_id=away.id,
                        status="SCHEDULED",
                        start_time=now,
                        odds_home=odds.home,
                        odds_draw=odds.draw,
                        odds_away=odds.away,
                        odds_gg=odds.gg,
                        odds_nogg=odds.nogg,
                        round_hash=round_hash,
                        commit_hash=commit_for(server_seed),
                        server_seed=server_seed,
                    )
                )
                created += 1

        season.current_round = round_no
        season.round_started_at = now
        s.add(season)
        s.flush()
        log.info("Season %s round %s opened with %s matches", season.id, round_no, created)
        return RoundEvent("round_created", int(season.id), round_no, {"matches": created, "round_hash": round_hash})

    def _go_live(self, s: Session, season: Season, matches: list[Match], live_at: datetime) -> RoundEvent:
        pending = [m for m in matches if m.status == "SCHEDULED"]
        seeds = {int(m.id): m.server_seed for m in pending}

        live = 0
        voided = 0
        for m in pending:
            m.block_hash = new_seed()
            m.live_start_time = live_at
            home = s.get(Team, m.home_team_id)
            away = s.get(Team, m.away_team_id)
            try:
                if home is None or away is None:
                    raise InvalidInputError(f"unknown team for match {m.id}")
                result = generate_result(describe_match(m, home, away), seeds[int(m.id)], card_clock=self._card_clock)
            except InvalidInputError as e:
                log.error("Voiding match %s: %s", m.id, e)
                m.status = "VOID"
                voided += 1
                s.add(m)
                continue

            m.home_score = result.home_score
            m.away_score = result.away_score
            m.events_json = result.events_json()
            m.summary = result.summary
            m.status = "LIVE"
            s.add(m)
            live += 1

        s.flush()
        log.info("Season %s round %s live: %s matches (%s void)", season.id, season.current_round, live, voided)
        return RoundEvent("round_live", int(season.id), int(season.current_round), {"live": live, "void": voided})

    def _finish(self, s: Session, season: Season, matches: list[Match], finished_at: datetime) -> RoundEvent:
        settled_bets = 0
        for m in matches:
            if m.status == "LIVE":
                m.status = "FINISHED"
                m.finished_at = finished_at
                s.add(m)
            if m.status in ("FINISHED", "VOID") and m.settled_at is None:
                settled_bets += settle_match(s, m, finished_at).settled

        s.flush()
        log.info("Season %s round %s finished, %s bets settled", season.id, season.current_round, settled_bets)
        return RoundEvent("round_finished", int(season.id), int(season.current_round), {"settled_bets": settled_bets})
