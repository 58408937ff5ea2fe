import math
import re

from .config import STRENGTH_MAX, STRENGTH_MIN
from .errors import InvalidInputError

_WALLET_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def validate_strength(value, *, field: str = "strength") -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{field} must be a number, got {type(value).__name__}")
    v = float(value)
    if math.isnan(v) or math.isinf(v):
        raise InvalidInputError(f"{field} must be finite")
    if v < STRENGTH_MIN or v > STRENGTH_MAX:
        raise InvalidInputError(f"{field} must be between {STRENGTH_MIN} and {STRENGTH_MAX}, got {v:g}")
    return v


def validate_seed(value, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} must be a non-empty string")
    if value != value.strip():
        raise InvalidInputError(f"{field} must not contain surrounding whitespace")
    return value


def normalize_wallet(value: str | None) -> str:
    v = str(value or "").strip()
    if not _WALLET_RE.match(v):
        raise InvalidInputError("wallet_address must be 0x followed by 40 hex digits")
    return v.lower()
