import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from .catalog import load_catalog
from .clock import utcnow
from .config import CORS_ALLOW_ORIGINS
from .db import configure_db, get_engine, init_db, run_with_retry
from .logging_config import setup_logging
from .seed import catalog_missing, seed_catalog
from .services.rounds import RoundManager
from .settings import Settings
from .ws import ws_manager

from .routers.auth import router as auth_router
from .routers.bets import router as bets_router
from .routers.coupons import router as coupons_router
from .routers.leagues import router as leagues_router
from .routers.matches import router as matches_router
from .routers.me import router as me_router
from .routers.rounds import router as rounds_router
from .routers.users import router as users_router

log = logging.getLogger(__name__)


def _seed_if_empty() -> None:
    with Session(get_engine()) as s:
        if catalog_missing(s):
            seed_catalog(s, load_catalog())


async def _round_ticker(app: FastAPI, interval: float) -> None:
    manager: RoundManager = app.state.round_manager
    while True:
        await asyncio.sleep(interval)
        try:
            now = utcnow()
            async with app.state.tick_lock:
                events = await run_in_threadpool(run_with_retry, lambda s: manager.tick(s, now))
            for ev in events:
                await ws_manager.broadcast(ev.event, asdict(ev))
        except asyncio.CancelledError:
            raise
        except Exception:
            # keep the loop alive; the next tick retries the overdue transitions
            log.exception("Round tick failed")


def create_app(settings: Settings) -> FastAPI:
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db()
        _seed_if_empty()
        log.info("DB initialized")

        ticker = None
        if settings.tick_interval_sec > 0:
            ticker = asyncio.create_task(_round_ticker(app, settings.tick_interval_sec))
            log.info("Round ticker started (every %ss)", settings.tick_interval_sec)
        try:
            yield
        finally:
            if ticker is not None:
                ticker.cancel()
                try:
                    await ticker
                except asyncio.CancelledError:
                    pass
                log.info("Round ticker stopped")

    app = FastAPI(
        title="Kickoff Rivals",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.round_manager = RoundManager(settings.round_clock(), settings.btts_prices())
    app.state.tick_lock = asyncio.Lock()
    configure_db(settings.db_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS if CORS_ALLOW_ORIGINS != ["*"] else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(me_router)
    app.include_router(leagues_router)
    app.include_router(matches_router)
    app.include_router(rounds_router)
    app.include_router(users_router)
    app.include_router(bets_router)
    app.include_router(coupons_router)

    @app.websocket("/ws/rounds")
    async def ws_rounds(ws: WebSocket) -> None:
        await ws_manager.connect(ws)
        try:
            await ws.send_json({"event": "connected", "payload": {}})
            while True:
                _ = await ws.receive_text()
                await ws.send_json({"event": "pong", "payload": {}})
        except WebSocketDisconnect:
            ws_manager.disconnect(ws)

    return app
