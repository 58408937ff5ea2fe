import json

import pytest
from sqlalchemy.exc import OperationalError

from kickoff import db
from kickoff.services.odds import BttsPrices
from kickoff.services.rounds import RoundClock
from kickoff.settings import load_settings


def test_load_settings_precedence(tmp_path):
    p = tmp_path / "secrets.json"
    p.write_text(
        json.dumps({"db_url": "sqlite:///from-file.db", "jwt_secret": "file-secret", "gg_odds": 1.9, "live_duration_sec": 60}),
        encoding="utf-8",
    )
    s = load_settings(secrets_path=str(p), db_url="sqlite:///cli.db")

    assert s.db_url == "sqlite:///cli.db"
    assert s.jwt_secret == "file-secret"
    assert s.admin_password == "change-me-admin"
    assert s.btts_prices() == BttsPrices(gg=1.9, nogg=1.90)
    assert s.round_clock() == RoundClock(betting_sec=240, live_sec=60, result_sec=240)


def test_missing_secrets_file_uses_defaults(tmp_path):
    s = load_settings(secrets_path=str(tmp_path / "nope.json"), tick_interval_sec=0)
    assert s.db_url == "sqlite:///./app.db"
    assert s.tick_interval_sec == 0
    assert s.round_clock() == RoundClock()


def _flaky(fail_times: int):
    calls = {"n": 0}

    def work(s):
        calls["n"] += 1
        if calls["n"] <= fail_times:
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))
        return calls["n"]

    return work, calls


def test_run_with_retry_recovers(tmp_path, monkeypatch):
    db.configure_db(f"sqlite:///{tmp_path / 'retry.db'}")
    sleeps = []
    monkeypatch.setattr(db.time, "sleep", sleeps.append)

    work, calls = _flaky(2)
    assert db.run_with_retry(work, max_retries=3, backoff_sec=0.5) == 3
    assert sleeps == [0.5, 1.0]


def test_run_with_retry_gives_up(tmp_path, monkeypatch):
    db.configure_db(f"sqlite:///{tmp_path / 'retry.db'}")
    monkeypatch.setattr(db.time, "sleep", lambda _: None)

    work, calls = _flaky(5)
    with pytest.raises(OperationalError):
        db.run_with_retry(work, max_retries=3)
    assert calls["n"] == 3
