from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import json

from .services.odds import BttsPrices
from .services.rounds import RoundClock


@dataclass(frozen=True)
class Settings:
    db_url: str
    admin_password: str
    jwt_secret: str
    log_level: str = "INFO"
    tick_interval_sec: float = 1.0
    round_duration_sec: int = 240
    live_duration_sec: int = 120
    result_duration_sec: int = 240
    gg_odds: float = 1.75
    nogg_odds: float = 1.90

    def round_clock(self) -> RoundClock:
        return RoundClock(
            betting_sec=self.round_duration_sec,
            live_sec=self.live_duration_sec,
            result_sec=self.result_duration_sec,
        )

    def btts_prices(self) -> BttsPrices:
        return BttsPrices(gg=self.gg_odds, nogg=self.nogg_odds)


def load_settings(
    *,
    secrets_path: str,
    db_url: str | None = None,
    admin_password: str | None = None,
    jwt_secret: str | None = None,
    log_level: str | None = None,
    tick_interval_sec: float | None = None,
) -> Settings:
    secrets: dict = {}
    p = Path(secrets_path)
    if p.exists():
        secrets = json.loads(p.read_text(encoding="utf-8"))

    def pick(key: str, cli_val, default):
        if cli_val is not None and cli_val != "":
            return cli_val
        val = secrets.get(key)
        return default if val is None or val == "" else val

    return Settings(
        db_url=pick("db_url", db_url, "sqlite:///./app.db"),
        admin_password=pick("admin_password", admin_password, "change-me-admin"),
        jwt_secret=pick("jwt_secret", jwt_secret, "dev-change-me"),
        log_level=pick("log_level", log_level, "INFO"),
        tick_interval_sec=float(pick("tick_interval_sec", tick_interval_sec, 1.0)),
        round_duration_sec=int(pick("round_duration_sec", None, 240)),
        live_duration_sec=int(pick("live_duration_sec", None, 120)),
        result_duration_sec=int(pick("result_duration_sec", None, 240)),
        gg_odds=float(pick("gg_odds", None, 1.75)),
        nogg_odds=float(pick("nogg_odds", None, 1.90)),
    )
