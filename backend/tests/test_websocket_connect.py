def test_websocket_connect(client):
    with client.websocket_connect("/ws/rounds") as ws:
        msg = ws.receive_json()
        assert msg["event"] == "connected"
        ws.send_text("ping")
        pong = ws.receive_json()
        assert pong["event"] == "pong"


def test_round_events_are_broadcast(client, admin_headers):
    with client.websocket_connect("/ws/rounds") as ws:
        assert ws.receive_json()["event"] == "connected"

        r = client.post("/rounds/tick", headers=admin_headers)
        assert r.status_code == 200, r.text

        msg = ws.receive_json()
        assert msg["event"] == "round_created"
        assert msg["payload"]["round"] == 1
        assert msg["payload"]["payload"]["matches"] == 18
        assert "ts" in msg
