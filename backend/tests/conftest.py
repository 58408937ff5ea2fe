import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine

from kickoff.catalog import load_catalog
from kickoff.main import create_app
from kickoff.seed import seed_catalog
from kickoff.settings import Settings

from tests.util import login


def make_settings(db_path, **overrides) -> Settings:
    base = dict(
        db_url=f"sqlite:///{db_path}",
        admin_password="admin-secret",
        jwt_secret="test-jwt-secret",
        log_level="DEBUG",
        tick_interval_sec=0,
    )
    base.update(overrides)
    return Settings(**base)


@pytest.fixture()
def client(tmp_path):
    app = create_app(make_settings(tmp_path / "test.db"))
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def fast_client(tmp_path):
    """No betting or live window: the second tick of a round already settles it."""
    app = create_app(
        make_settings(
            tmp_path / "fast.db",
            round_duration_sec=0,
            live_duration_sec=0,
            result_duration_sec=600,
        )
    )
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def session(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'svc.db'}", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        seed_catalog(s, load_catalog())
        yield s


@pytest.fixture()
def admin_headers(client):
    token = login(client, "admin-secret")
    return {"Authorization": f"Bearer {token}"}
