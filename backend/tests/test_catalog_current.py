import json

import pytest

from kickoff.catalog import load_catalog, parse_catalog


def test_leagues_and_teams(client):
    r = client.get("/leagues")
    assert r.status_code == 200, r.text
    assert [lg["id"] for lg in r.json()] == ["l1", "l2", "l3"]

    r = client.get("/leagues/l2/teams")
    assert r.status_code == 200, r.text
    teams = r.json()
    assert len(teams) == 12
    assert all(t["league_id"] == "l2" for t in teams)
    assert all(1 <= t["strength"] <= 100 for t in teams)

    assert client.get("/leagues/l9/teams").status_code == 404


def test_standings_before_and_after_a_round(fast_client):
    r = fast_client.get("/leagues/standings")
    assert r.status_code == 200
    assert r.json() == {"season_id": None, "leagues": {}}

    fast_client.get("/matches/current")
    fast_client.get("/matches/current")

    body = fast_client.get("/leagues/standings").json()
    assert sorted(body["leagues"]) == ["l1", "l2", "l3"]
    for rows in body["leagues"].values():
        assert len(rows) == 12
        assert all(row["played"] == 1 for row in rows)
        assert rows[0]["position"] == 1
        assert sum(row["goals_for"] for row in rows) == sum(row["goals_against"] for row in rows)


def test_bundled_catalog_is_valid():
    cat = load_catalog()
    assert len(cat.leagues) == 3
    for lg in cat.leagues:
        assert len(cat.teams_in(lg.id)) == 12


def test_catalog_path_override(tmp_path, monkeypatch):
    p = tmp_path / "teams.json"
    p.write_text(
        json.dumps(
            {
                "leagues": [{"id": "x1", "name": "Test League"}],
                "teams": [
                    {"id": "a", "league_id": "x1", "name": "A", "strength": 60},
                    {"id": "b", "league_id": "x1", "name": "B", "strength": 61},
                ],
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("TEAMS_CONFIG_PATH", str(p))
    cat = load_catalog()
    assert [t.id for t in cat.teams] == ["a", "b"]


@pytest.mark.parametrize(
    "raw",
    [
        {"leagues": [{"id": "x1", "name": "L"}], "teams": [{"id": "a", "league_id": "x9", "name": "A", "strength": 50}]},
        {"leagues": [{"id": "x1", "name": "L"}], "teams": [{"id": "a", "league_id": "x1", "name": "A", "strength": 0}]},
        {"leagues": [{"id": "x1", "name": "L"}, {"id": "x1", "name": "L2"}], "teams": []},
        {"leagues": [{"id": "x1", "name": "L"}], "teams": [{"id": "a", "league_id": "x1", "name": "A", "strength": 50}] * 2},
    ],
)
def test_bad_catalog_rejected(raw):
    with pytest.raises(ValueError):
        parse_catalog(raw)
