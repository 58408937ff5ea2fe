import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(level: str | None) -> None:
    lvl = getattr(logging, str(level or "INFO").upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(lvl)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    # uvicorn runs with log_config=None, route its loggers through ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.propagate = True
        lg.setLevel(lvl)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
