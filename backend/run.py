import argparse
import uvicorn
from kickoff.settings import load_settings

def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Kickoff Rivals backend")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=8001)
    p.add_argument("--reload", action="store_true")
    p.add_argument("--secrets", default="./secrets.json")

    # Optional overrides (override secrets.json)
    p.add_argument("--db-url")
    p.add_argument("--admin-password")
    p.add_argument("--jwt-secret")
    p.add_argument("--log-level")
    p.add_argument("--tick-interval", type=float, help="Seconds between round ticks (0 disables the ticker)")
    return p.parse_args()

def app_factory():
    # IMPORTANT: executed in uvicorn worker process (including reload)
    args = parse_args()
    settings = load_settings(
        secrets_path=args.secrets,
        db_url=args.db_url,
        admin_password=args.admin_password,
        jwt_secret=args.jwt_secret,
        log_level=args.log_level,
        tick_interval_sec=args.tick_interval,
    )
    from kickoff.main import create_app
    return create_app(settings)

def main() -> None:
    args = parse_args()
    uvicorn.run(
        "run:app_factory",
        host=args.host,
        port=args.port,
        reload=args.reload,
        factory=True,
        log_config=None,
    )

if __name__ == "__main__":
    main()
