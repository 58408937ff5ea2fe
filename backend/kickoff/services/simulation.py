from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Callable, Iterable, Literal

from ..config import MATCH_MINUTES
from ..errors import InvalidInputError, InvalidMatchInputError
from ..validation import validate_seed, validate_strength
from .fairness import hmac_float

EventType = Literal["goal", "yellow_card", "red_card", "injury", "chance", "whistle"]

SCORING_CHANCE = 0.042
INJURY_ABOVE = 0.987
CARD_ABOVE = 0.970
CHANCE_ABOVE = 0.945
RED_CARD_ABOVE = 0.85
TRAILING_MOMENTUM = 1.15


@dataclass(frozen=True)
class TeamRef:
    id: str
    name: str
    strength: float


@dataclass(frozen=True)
class MatchDescription:
    """Everything the generator reads. Built from a persisted match, never mutated."""
    match_id: str
    home: TeamRef
    away: TeamRef
    round_hash: str
    block_hash: str


@dataclass(frozen=True)
class MatchEvent:
    minute: int
    type: EventType
    description: str
    team_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        if d["team_id"] is None:
            del d["team_id"]
        return d


@dataclass(frozen=True)
class MatchResult:
    home_score: int
    away_score: int
    events: tuple[MatchEvent, ...]
    summary: str
    server_seed: str

    def events_json(self) -> str:
        return json.dumps([e.to_dict() for e in self.events], separators=(",", ":"))


def events_from_json(raw: str | None) -> list[MatchEvent]:
    if not raw:
        return []
    out: list[MatchEvent] = []
    for item in json.loads(raw):
        out.append(
            MatchEvent(
                minute=int(item["minute"]),
                type=item["type"],
                description=str(item.get("description") or ""),
                team_id=item.get("team_id"),
            )
        )
    return out


def _check_match(match: MatchDescription, server_seed: str) -> tuple[float, float]:
    try:
        home_str = validate_strength(match.home.strength, field="home.strength")
        away_str = validate_strength(match.away.strength, field="away.strength")
        validate_seed(match.round_hash, field="round_hash")
        validate_seed(match.block_hash, field="block_hash")
        validate_seed(server_seed, field="server_seed")
    except InvalidInputError as e:
        raise InvalidMatchInputError(f"match {match.match_id}: {e}") from e
    if not match.home.id or not match.away.id:
        raise InvalidMatchInputError(f"match {match.match_id}: team ids are required")
    if match.home.id == match.away.id:
        raise InvalidMatchInputError(f"match {match.match_id}: a team cannot play itself")
    return home_str, away_str


def generate_result(
    match: MatchDescription,
    server_seed: str,
    *,
    card_clock: Callable[[], int] | None = None,
) -> MatchResult:
    """
    Play out 90 minutes from (server_seed, round_hash, block_hash, strengths).

    Minute m draws hmac_float(server_seed, "round_hash:block_hash:m") and lands
    in at most one band:
      < 0.042          goal, scorer drawn from ":scorer" weighted by strength,
                       the trailing side's strength boosted by 1.15
      > 0.987          injury
      (0.970, 0.987]   card, type and side from the ":card" sub-draw
      (0.945, 0.970]   near miss, side from the ":chance" sub-draw

    With `card_clock` set, its value (epoch ms) is appended to the card key
    the way older recorded rounds were produced. Those cards cannot be
    re-derived later.
    """
    home_str, away_str = _check_match(match, server_seed)
    home, away = match.home, match.away

    home_score = 0
    away_score = 0
    events: list[MatchEvent] = [MatchEvent(minute=1, type="whistle", description="Kick-off!")]

    for m in range(1, MATCH_MINUTES + 1):
        payload = f"{match.round_hash}:{match.block_hash}:{m}"
        rand = hmac_float(server_seed, payload)

        home_momentum = TRAILING_MOMENTUM if home_score < away_score else 1.0
        away_momentum = TRAILING_MOMENTUM if away_score < home_score else 1.0

        if rand < SCORING_CHANCE:
            scorer_rand = hmac_float(server_seed, f"{payload}:scorer")
            home_weight = home_str * home_momentum
            home_prob = home_weight / (home_weight + away_str * away_momentum)
            if scorer_rand < home_prob:
                home_score += 1
                events.append(MatchEvent(m, "goal", f"GOAL! {home.name}", home.id))
            else:
                away_score += 1
                events.append(MatchEvent(m, "goal", f"GOAL! {away.name}", away.id))
        elif rand > INJURY_ABOVE:
            events.append(MatchEvent(m, "injury", "Injury timeout."))
        elif rand > CARD_ABOVE:
            card_key = f"{payload}:card"
            if card_clock is not None:
                card_key = f"{card_key}:{int(card_clock())}"
            card_rand = hmac_float(server_seed, card_key)
            team = home if card_rand > 0.5 else away
            if card_rand > RED_CARD_ABOVE:
                events.append(MatchEvent(m, "red_card", f"RED CARD! {team.name}", team.id))
            else:
                events.append(MatchEvent(m, "yellow_card", f"Yellow Card: {team.name}", team.id))
        elif rand > CHANCE_ABOVE:
            chance_rand = hmac_float(server_seed, f"{payload}:chance")
            team = home if chance_rand > 0.5 else away
            events.append(MatchEvent(m, "chance", f"{team.name} near miss!"))

    events.append(MatchEvent(minute=MATCH_MINUTES, type="whistle", description="Full Time"))

    return MatchResult(
        home_score=home_score,
        away_score=away_score,
        events=tuple(events),
        summary=f"FT: {home_score}-{away_score}",
        server_seed=server_seed,
    )


def verify_result(
    match: MatchDescription,
    server_seed: str,
    *,
    home_score: int,
    away_score: int,
    events: Iterable[MatchEvent],
) -> bool:
    """Re-derive the result from the revealed seed and compare it with what was recorded."""
    replay = generate_result(match, server_seed)
    return (
        replay.home_score == int(home_score)
        and replay.away_score == int(away_score)
        and list(replay.events) == list(events)
    )
