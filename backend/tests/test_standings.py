from types import SimpleNamespace

from kickoff.services.standings import compute_standings


def team(tid, name):
    return SimpleNamespace(id=tid, name=name, color="#fff")


def match(home, away, hs, as_, status="FINISHED"):
    return SimpleNamespace(home_team_id=home, away_team_id=away, home_score=hs, away_score=as_, status=status)


def test_points_and_ordering():
    teams = [team("a", "Alpha"), team("b", "Bravo"), team("c", "Charlie")]
    matches = [
        match("a", "b", 2, 0),
        match("b", "c", 1, 1),
        match("c", "a", 3, 1),
        # not counted
        match("a", "c", 5, 0, status="LIVE"),
        match("b", "a", 4, 0, status="VOID"),
    ]
    rows = compute_standings(matches, teams)
    by_id = {r["team_id"]: r for r in rows}

    assert by_id["a"]["points"] == 3 and by_id["a"]["played"] == 2
    assert by_id["c"]["points"] == 4 and by_id["c"]["goal_diff"] == 2
    assert by_id["b"]["points"] == 1 and by_id["b"]["lost"] == 1

    assert [r["team_id"] for r in rows] == ["c", "a", "b"]
    assert [r["position"] for r in rows] == [1, 2, 3]


def test_ties_broken_by_goal_difference_then_goals_then_name():
    teams = [team("x", "Xray"), team("y", "Yankee"), team("z", "Zulu"), team("w", "Whiskey")]
    matches = [
        match("x", "w", 3, 0),
        match("y", "w", 4, 1),
        match("z", "w", 1, 0),
    ]
    rows = compute_standings(matches, teams)
    # x and y: 3 pts, +3; y scored more
    assert [r["team_id"] for r in rows] == ["y", "x", "z", "w"]


def test_teams_without_matches_are_listed():
    rows = compute_standings([], [team("b", "Bravo"), team("a", "Alpha")])
    assert [r["team_name"] for r in rows] == ["Alpha", "Bravo"]
    assert all(r["played"] == 0 for r in rows)
