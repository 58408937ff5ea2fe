from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError
from sqlmodel import SQLModel, Session, create_engine

log = logging.getLogger(__name__)

T = TypeVar("T")

_engine = None

def configure_db(db_url: str) -> None:
    global _engine
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    _engine = create_engine(db_url, echo=False, connect_args=connect_args)

def init_db() -> None:
    if _engine is None:
        raise RuntimeError("DB not configured. Call configure_db(db_url) first.")
    from . import models  # noqa: F401  (register tables)
    SQLModel.metadata.create_all(_engine)

def get_session():
    if _engine is None:
        raise RuntimeError("DB not configured. Call configure_db(db_url) first.")
    with Session(_engine) as s:
        yield s

def get_engine():
    if _engine is None:
        raise RuntimeError("DB not configured")
    return _engine


def run_with_retry(work: Callable[[Session], T], *, max_retries: int = 3, backoff_sec: float = 0.5) -> T:
    """
    Run `work` in a fresh session and commit, retrying transient connection errors.

    Each attempt starts from a clean session, so `work` must re-read whatever
    state it needs (the round loop and settlement do). After the last attempt
    the error propagates.
    """
    engine = get_engine()
    for attempt in range(max_retries):
        with Session(engine) as s:
            try:
                out = work(s)
                s.commit()
                return out
            except OperationalError as e:
                s.rollback()
                if attempt < max_retries - 1:
                    log.warning("DB work failed (attempt %s/%s): %s", attempt + 1, max_retries, e)
                    time.sleep(backoff_sec * (attempt + 1))
                    continue
                log.error("DB work failed after %s attempts: %s", max_retries, e)
                raise
    raise RuntimeError("max_retries must be >= 1")
