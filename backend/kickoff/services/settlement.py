from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlmodel import Session, select

from ..clock import utcnow
from ..config import ALLIANCE_WIN_REWARD
from ..errors import InvalidInputError, MatchStateError
from ..models import Accumulator, Bet, Match, Transaction, User

log = logging.getLogger(__name__)

SELECTIONS = ("home", "draw", "away", "gg", "nogg")


@dataclass(frozen=True)
class SettlementSummary:
    match_id: int
    settled: int
    winners: int
    refunded: int
    already_settled: bool = False


def bet_wins(selection: str, home_score: int, away_score: int) -> bool:
    if selection == "home":
        return home_score > away_score
    if selection == "draw":
        return home_score == away_score
    if selection == "away":
        return away_score > home_score
    if selection == "gg":
        return home_score > 0 and away_score > 0
    if selection == "nogg":
        return home_score == 0 or away_score == 0
    raise InvalidInputError(f"Unknown selection {selection!r}")


def _credit(s: Session, wallet: str, amount: int, *, kind: str, description: str, now: datetime) -> User | None:
    user = s.get(User, wallet)
    if user is None:
        log.error("Cannot credit %s %s: user %s missing", kind, amount, wallet)
        return None
    user.token_balance = int(user.token_balance) + int(amount)
    user.updated_at = now
    s.add(user)
    s.add(
        Transaction(
            wallet_address=wallet,
            type=kind,
            amount=int(amount),
            currency="token",
            description=description,
            created_at=now,
        )
    )
    return user


def _record_win(user: User | None, payout: int, odds: float) -> None:
    if user is None:
        return
    user.wins = int(user.wins) + 1
    user.biggest_win = max(int(user.biggest_win), int(payout))
    user.best_odds_won = max(float(user.best_odds_won), float(odds))


def _resolve_accumulator(s: Session, acc: Accumulator, now: datetime) -> None:
    """
    Close an accumulator once its legs allow it.

    Lost as soon as one leg loses. Otherwise it waits until every leg is
    settled; void legs drop out of the price, and an all-void slip is refunded.
    """
    if acc.status != "pending":
        return

    legs = list(s.exec(select(Bet).where(Bet.accumulator_id == acc.id)).all())
    statuses = [b.status for b in legs]

    if "lost" in statuses:
        acc.status = "lost"
        acc.settled_at = now
        s.add(acc)
        return
    if "pending" in statuses:
        return

    live_legs = [b for b in legs if b.status == "won"]
    if not live_legs:
        acc.status = "void"
        acc.settled_at = now
        s.add(acc)
        _credit(s, acc.wallet_address, acc.stake, kind="refund", description="Accumulator void (stake returned)", now=now)
        return

    total_odds = math.prod(float(b.odds) for b in live_legs)
    payout = math.floor(acc.stake * total_odds)
    acc.total_odds = round(total_odds, 4)
    acc.potential_return = payout
    acc.status = "won"
    acc.settled_at = now
    s.add(acc)
    user = _credit(
        s,
        acc.wallet_address,
        payout,
        kind="win",
        description=f"Accumulator win ({len(legs)} legs) +{payout}",
        now=now,
    )
    _record_win(user, payout, total_odds)


def _accrue_alliance_rewards(s: Session, match: Match) -> int:
    """Queue ALLIANCE_WIN_REWARD for every supporter of the winning side. Draws pay nobody."""
    if match.home_score == match.away_score:
        return 0
    winner = match.home_team_id if match.home_score > match.away_score else match.away_team_id
    supporters = s.exec(select(User).where(User.alliance_team_id == winner)).all()
    for user in supporters:
        user.unclaimed_alliance_rewards = int(user.unclaimed_alliance_rewards) + ALLIANCE_WIN_REWARD
        s.add(user)
    return len(supporters)


def settle_match(s: Session, match: Match, now: datetime | None = None) -> SettlementSummary:
    """
    Settle every pending bet on a finished (or voided) match.

    Safe to call again: a match that already carries `settled_at` is left
    alone, and only `pending` bets are ever touched. The match is claimed
    with a conditional UPDATE first, so two settlers working from the same
    unsettled snapshot cannot both pay out. The caller commits.
    """
    now = now or utcnow()
    already = SettlementSummary(match_id=int(match.id), settled=0, winners=0, refunded=0, already_settled=True)
    if match.settled_at is not None:
        return already
    if match.status not in ("FINISHED", "VOID"):
        raise MatchStateError(f"Match {match.id} is {match.status}; only finished matches can be settled")

    void = match.status == "VOID"
    if not void and (match.home_score is None or match.away_score is None):
        raise MatchStateError(f"Match {match.id} has no final score")

    claim = (
        update(Match)
        .where(Match.id == match.id, Match.settled_at.is_(None))
        .values(settled_at=now)
        .execution_options(synchronize_session=False)
    )
    if s.exec(claim).rowcount != 1:
        log.info("Match %s was settled concurrently; skipping", match.id)
        return already

    pending = list(s.exec(select(Bet).where(Bet.match_id == match.id, Bet.status == "pending")).all())

    settled = 0
    winners = 0
    refunded = 0
    touched_accumulators: dict[int, Accumulator] = {}

    for bet in pending:
        if void:
            bet.status = "void"
        else:
            bet.status = "won" if bet_wins(bet.selection, int(match.home_score), int(match.away_score)) else "lost"
        bet.settled_at = now
        s.add(bet)
        settled += 1

        if bet.bet_type == "accumulator" and bet.accumulator_id is not None:
            acc = s.get(Accumulator, bet.accumulator_id)
            if acc is not None:
                touched_accumulators[int(acc.id)] = acc
            continue

        if bet.status == "void":
            _credit(s, bet.wallet_address, bet.stake, kind="refund", description=f"Match {match.id} void (stake returned)", now=now)
            refunded += 1
        elif bet.status == "won":
            winners += 1
            user = _credit(s, bet.wallet_address, bet.potential_return, kind="win", description=f"Bet win @ {bet.odds}", now=now)
            _record_win(user, bet.potential_return, bet.odds)

    s.flush()
    for acc in touched_accumulators.values():
        _resolve_accumulator(s, acc, now)
    if not void:
        _accrue_alliance_rewards(s, match)

    match.settled_at = now
    s.add(match)
    log.info(
        "Settled match %s (%s): bets=%s winners=%s refunded=%s",
        match.id,
        match.status,
        settled,
        winners,
        refunded,
    )
    return SettlementSummary(match_id=int(match.id), settled=settled, winners=winners, refunded=refunded)
