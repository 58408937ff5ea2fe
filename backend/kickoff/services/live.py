from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from ..config import MATCH_MINUTES
from .simulation import MatchEvent


@dataclass(frozen=True)
class LiveSnapshot:
    minute: int
    home_score: int
    away_score: int
    events: tuple[MatchEvent, ...]


def progress_at(live_started_at: datetime | None, now: datetime, live_duration_sec: float) -> float:
    if live_started_at is None or live_duration_sec <= 0:
        return 0.0
    elapsed = (now - live_started_at).total_seconds()
    return min(1.0, max(0.0, elapsed / float(live_duration_sec)))


def current_minute(progress: float) -> int:
    p = min(1.0, max(0.0, float(progress)))
    return min(MATCH_MINUTES, math.floor(p * MATCH_MINUTES))


def project(
    events: Iterable[MatchEvent],
    progress: float,
    *,
    home_team_id: str,
    away_team_id: str,
) -> LiveSnapshot:
    """
    What a viewer sees `progress` of the way through the live window.

    Pure: the same script and progress always give the same snapshot.
    """
    minute = current_minute(progress)
    visible = tuple(e for e in events if e.minute <= minute)
    home = sum(1 for e in visible if e.type == "goal" and e.team_id == home_team_id)
    away = sum(1 for e in visible if e.type == "goal" and e.team_id == away_team_id)
    return LiveSnapshot(minute=minute, home_score=home, away_score=away, events=visible)
