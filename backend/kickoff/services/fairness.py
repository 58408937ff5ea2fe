from __future__ import annotations

import hashlib
import hmac
import math
import secrets
import string

SEED_HEX_DIGITS = 64


def string_hash(text: str) -> int:
    """
    32-bit signed `h = h * 31 + c` over the UTF-16 code units of `text`.

    Wraps after every step, so results match the classic JS/Java string hash.
    """
    data = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def hmac_float(key: str, data: str) -> float:
    """
    Keyed draw in [0, 1). Not a cryptographic HMAC: the string hash of
    "key:data" is mixed through frac(|sin(h)| * 10000).

    The hash is exact, but sin comes from the platform libm. Draws agree with
    the browser's Math.sin only up to last-bit rounding (around 1e-12), so a
    value sitting right on a band threshold could land differently on
    another runtime.
    """
    h = string_hash(f"{key}:{data}")
    x = abs(math.sin(h) * 10000.0)
    return x - math.floor(x)


def new_seed() -> str:
    return "0x" + secrets.token_hex(SEED_HEX_DIGITS // 2)


def commit_for(server_seed: str) -> str:
    return "0x" + hashlib.sha256(server_seed.encode("utf-8")).hexdigest()


def verify_commit(server_seed: str, commit_hash: str | None) -> bool:
    if not commit_hash:
        return False
    return hmac.compare_digest(commit_for(server_seed), commit_hash.lower())


def is_seed(value: object) -> bool:
    """True for "0x" + 64 hex digits (either case)."""
    if not isinstance(value, str) or len(value) != SEED_HEX_DIGITS + 2:
        return False
    if not value.startswith("0x"):
        return False
    return all(c in string.hexdigits for c in value[2:])
