from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal

from ..validation import validate_strength

DRAW_PROB = 0.34
BASE_PROB = 0.33
DIFF_SCALE = 160.0
MARGIN = 0.10

ODDS_MIN = 1.15
ODDS_MAX = 45.0


@dataclass(frozen=True)
class BttsPrices:
    """Both-teams-to-score prices. Fixed, not derived from strengths."""
    gg: float = 1.75
    nogg: float = 1.90


@dataclass(frozen=True)
class OddsSet:
    home: float
    draw: float
    away: float
    gg: float
    nogg: float

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


def _clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def _round2(x: float) -> float:
    # half-up on the exact binary value, same digits as Number.toFixed(2)
    return float(Decimal(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _price(prob: float) -> float:
    implied = prob + MARGIN / 3
    if implied == 0:
        return ODDS_MAX
    # past a ~58-point gap the implied value turns negative and clamps to the floor
    return _round2(_clamp(1.0 / implied, ODDS_MIN, ODDS_MAX))


def compute_odds(home_strength: float, away_strength: float, *, btts: BttsPrices = BttsPrices()) -> OddsSet:
    """
    1X2 prices from two team strengths plus the fixed GG/NOGG pair.

    The three probabilities are deliberately left unnormalized: home and
    away move linearly with the strength gap while draw stays at 0.34.
    Each price is 1 / (p + margin/3), clamped to [1.15, 45.0].
    """
    hs = validate_strength(home_strength, field="home_strength")
    aws = validate_strength(away_strength, field="away_strength")

    diff = hs - aws
    home_prob = BASE_PROB + diff / DIFF_SCALE
    away_prob = BASE_PROB - diff / DIFF_SCALE

    return OddsSet(
        home=_price(home_prob),
        draw=_price(DRAW_PROB),
        away=_price(away_prob),
        gg=float(btts.gg),
        nogg=float(btts.nogg),
    )


def implied_probabilities(odds: OddsSet) -> dict[str, float]:
    """
    Invert the 1X2 prices back into probabilities, with and without the book's margin.
    """
    raw = {k: 1.0 / float(v) for k, v in (("home", odds.home), ("draw", odds.draw), ("away", odds.away))}
    total = sum(raw.values())
    return {
        "p_home": round(raw["home"] / total, 6),
        "p_draw": round(raw["draw"] / total, 6),
        "p_away": round(raw["away"] / total, 6),
        "implied_home": round(raw["home"], 6),
        "implied_draw": round(raw["draw"], 6),
        "implied_away": round(raw["away"], 6),
    }


def overround(odds: OddsSet) -> float:
    """Sum of implied 1X2 probabilities minus one (the book's margin)."""
    return round(1.0 / odds.home + 1.0 / odds.draw + 1.0 / odds.away - 1.0, 6)
