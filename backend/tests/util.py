from fastapi.testclient import TestClient

WALLET = "0x" + "ab" * 20
OTHER_WALLET = "0x" + "cd" * 20


def login(client: TestClient, password: str) -> str:
    r = client.post("/auth/login", json={"password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def register(client: TestClient, wallet: str = WALLET, username: str | None = None) -> dict:
    r = client.post("/users", json={"wallet_address": wallet, "username": username})
    assert r.status_code == 200, r.text
    return r.json()


def current(client: TestClient) -> dict:
    r = client.get("/matches/current")
    assert r.status_code == 200, r.text
    return r.json()
