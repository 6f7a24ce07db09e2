import json

import pytest
from starlette.websockets import WebSocketDisconnect


def create_sensor(client, admin_headers, sensor_id="s1", threshold=5.0):
    response = client.post("/api/sensors", headers=admin_headers, json={
        "id": sensor_id,
        "name": "Canal gauge",
        "location": [106.7, 10.8],
        "type": "water_level",
        "threshold": threshold,
        "actionType": "flood",
    })
    assert response.status_code == 201
    return response.json()["sensor"]


def create_rule(client, admin_headers, rule_id="r1", sensors=("s1",)):
    response = client.post("/api/sensor-rules", headers=admin_headers, json={
        "id": rule_id,
        "name": "Canal overflow",
        "type": "1-sensor",
        "sensors": list(sensors),
        "actionType": "flood",
        "actionShape": "circle",
        "metadata": {"condition": "active"},
    })
    assert response.status_code == 201
    return response.json()["rule"]


def test_health_check(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert client.get("/api/v1/health").json()["api_version"] == "v1"


def test_sensor_data_triggers_zone_broadcast(client, admin_headers):
    create_sensor(client, admin_headers)
    create_rule(client, admin_headers)

    with client.websocket_connect("/?userId=viewer-1") as ws:
        response = client.post("/api/sensor-data", json={"sensorId": "s1", "value": 7, "waterLevel": 7})
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["thresholdExceeded"] is True
        assert body["automation"]["rulesChecked"] == 1
        assert body["automation"]["rulesTriggered"] == 1
        assert len(body["automation"]["zonesCreated"]) == 1

        event = ws.receive_json()
        assert event["type"] == "zone_created"
        assert event["payload"]["id"] == body["automation"]["zonesCreated"][0]
        assert event["payload"]["center"] == [106.7, 10.8]
        assert event["payload"]["automatedFrom"] == "r1"

    zones = client.get("/api/zones").json()["zones"]
    assert len(zones) == 1
    assert zones[0]["riskLevel"] == 80

    data = client.get("/api/sensor-data?limit=10").json()["data"]
    assert data[0]["sensorId"] == "s1"
    assert data[0]["waterLevel"] == 7

    latest = client.get("/api/sensor-data/latest").json()["readings"]
    assert latest["s1"]["value"] == 7


def test_sensor_data_for_unknown_sensor(client):
    response = client.post("/api/sensor-data", json={"sensorId": "ghost", "value": 99})
    assert response.status_code == 202
    assert "not found" in response.json()["warning"]

    history = client.get("/api/sensor-data/ghost").json()
    assert len(history["data"]) == 1


def test_sensor_data_requires_numeric_value(client):
    response = client.post("/api/sensor-data", json={"sensorId": "s1", "value": "high"})
    assert response.status_code == 422


def test_admin_key_required(client):
    response = client.post("/api/sensors", json={
        "name": "x", "type": "water_level", "threshold": 1, "actionType": "flood",
    })
    assert response.status_code == 403


def test_two_sensor_rule_validation(client, admin_headers):
    response = client.post("/api/sensor-rules", headers=admin_headers, json={
        "name": "Bad rule",
        "type": "2-sensor",
        "sensors": ["a", "a"],
        "operator": "AND",
        "actionType": "flood",
        "actionShape": "circle",
    })
    assert response.status_code == 422

    response = client.post("/api/sensor-rules", headers=admin_headers, json={
        "name": "No operator",
        "type": "2-sensor",
        "sensors": ["a", "b"],
        "actionType": "flood",
        "actionShape": "circle",
    })
    assert response.status_code == 422


def test_rule_toggle_and_patch(client, admin_headers):
    create_sensor(client, admin_headers)
    create_rule(client, admin_headers)

    toggled = client.post("/api/sensor-rules/r1/toggle", headers=admin_headers).json()["rule"]
    assert toggled["enabled"] is False

    bad = client.patch("/api/sensor-rules?id=r1", headers=admin_headers, json={"type": "2-sensor"})
    assert bad.status_code == 422

    patched = client.patch("/api/sensor-rules?id=r1", headers=admin_headers, json={"name": "Renamed", "actionRadius": 250})
    assert patched.status_code == 200
    assert patched.json()["rule"]["name"] == "Renamed"
    assert patched.json()["rule"]["actionRadius"] == 250

    assert client.delete("/api/sensor-rules?id=r1", headers=admin_headers).status_code == 200
    assert client.get("/api/sensor-rules").json()["rules"] == []


def test_zone_crud_broadcasts(client, admin_headers):
    with client.websocket_connect("/?userId=viewer-1") as ws:
        created = client.post("/api/zones", json={
            "type": "outage",
            "shape": "line",
            "coordinates": [[106.70, 10.80], [106.72, 10.82]],
            "title": "Power line down",
        })
        assert created.status_code == 201
        zone = created.json()["zone"]
        assert zone["riskLevel"] == 50
        assert ws.receive_json()["type"] == "zone_created"

        updated = client.patch(f"/api/zones/{zone['id']}", json={"riskLevel": 90})
        assert updated.json()["zone"]["riskLevel"] == 90
        event = ws.receive_json()
        assert event["type"] == "zone_updated"
        assert event["payload"]["riskLevel"] == 90

        assert client.delete(f"/api/zones/{zone['id']}").status_code == 200
        assert ws.receive_json() == {"type": "zone_deleted", "payload": {"zoneId": zone["id"]}}

    assert client.get(f"/api/zones/{zone['id']}").status_code == 404


def test_zone_validation(client):
    response = client.post("/api/zones", json={"type": "flood", "shape": "circle", "radius": 100})
    assert response.status_code == 422
    response = client.post("/api/zones", json={"type": "flood", "shape": "line", "coordinates": [[1, 2]]})
    assert response.status_code == 422


def test_clear_zones_by_type(client, admin_headers):
    client.post("/api/zones", json={"type": "flood", "shape": "circle", "center": [1, 2], "radius": 10})
    client.post("/api/zones", json={"type": "outage", "shape": "circle", "center": [1, 2], "radius": 10})

    with client.websocket_connect("/?userId=viewer-1") as ws:
        response = client.delete("/api/zones?type=flood", headers=admin_headers)
        assert response.json()["count"] == 1
        assert ws.receive_json() == {"type": "zones_cleared", "payload": {"type": "flood", "count": 1}}

    remaining = client.get("/api/zones").json()["zones"]
    assert [z["type"] for z in remaining] == ["outage"]


def test_user_report_broadcast(client, admin_headers):
    with client.websocket_connect("/?userId=viewer-1") as ws:
        response = client.post("/api/user-reports", json={
            "type": "flood",
            "location": [106.7, 10.8],
            "description": "Street under 30cm of water",
            "severity": "high",
        })
        assert response.status_code == 201
        report = response.json()["report"]
        assert report["status"] == "new"
        event = ws.receive_json()
        assert event["type"] == "user_report_created"
        assert event["payload"]["id"] == report["id"]

    response = client.patch("/api/user-reports", headers=admin_headers, json={"reportId": report["id"], "status": "resolved"})
    assert response.json()["report"]["status"] == "resolved"


def test_notification_to_connected_user(client, admin_headers):
    with client.websocket_connect("/?userId=alice") as ws:
        response = client.post("/api/notifications/alice", headers=admin_headers, json={
            "title": "Evacuate", "message": "Move to higher ground",
        })
        assert response.json()["delivered"] is True
        event = ws.receive_json()
        assert event["type"] == "notification"
        assert event["payload"]["title"] == "Evacuate"

    response = client.post("/api/notifications/alice", headers=admin_headers, json={"title": "Late", "message": "-"})
    assert response.json()["delivered"] is False


def test_user_socket_requires_user_id(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/"):
            pass


def test_ws_relay_to_other_clients(client):
    with client.websocket_connect("/ws") as sender, client.websocket_connect("/ws") as receiver:
        sender.send_text('{"kind": "chat", "text": "water rising"}')
        assert receiver.receive_text() == '{"kind": "chat", "text": "water rising"}'


def test_ws_relay_drops_non_json(client):
    with client.websocket_connect("/ws") as sender, client.websocket_connect("/ws") as receiver:
        sender.send_text("not json at all")
        sender.send_text('{"ok": 1}')
        assert receiver.receive_text() == '{"ok": 1}'


def test_ws_relay_accepts_binary_frames(client):
    with client.websocket_connect("/ws") as sender, client.websocket_connect("/ws") as receiver:
        sender.send_bytes(b'{"a": 1}')
        sender.send_bytes(b"\xff\xfe")
        sender.send_text('{"b": 2}')
        assert receiver.receive_text() == '{"a": 1}'
        assert receiver.receive_text() == '{"b": 2}'


def test_signaling_over_sockets(client):
    with client.websocket_connect("/signaling?userId=camera-ai") as producer:
        producer.send_text(json.dumps({"type": "register", "cameraId": "cam1"}))
        # status round-trip orders the register ahead of the viewer's offer
        status = client.get("/api/realtime/status").json()
        assert status["producers"] == {"cam1": "camera-ai"}

        with client.websocket_connect("/signaling?userId=viewer-1") as viewer:
            offer = json.dumps({"type": "offer", "cameraId": "cam1", "peerId": "p-1", "sdp": "v=0\r\n"})
            viewer.send_text(offer)
            assert producer.receive_text() == offer

            answer = json.dumps({"type": "answer", "cameraId": "cam1", "peerId": "p-1", "sdp": "v=0\r\nanswer"})
            producer.send_text(answer)
            assert viewer.receive_text() == answer

    status = client.get("/api/realtime/status").json()
    assert status["connections"] == 0
    assert status["producers"] == {}


def test_camera_detection_updates_viewers(client, admin_headers):
    client.post("/api/cameras", headers=admin_headers, json={"id": "cam1", "name": "Bridge"})

    with client.websocket_connect("/?userId=viewer-1") as viewer:
        with client.websocket_connect("/camera-feed?cameraId=cam1") as camera:
            camera.send_text("not json")
            camera.send_text(json.dumps({
                "type": "detection",
                "cameraId": "cam1",
                "counts": {"car": 3},
                "uniqueCounts": {"car": 5},
                "timestamp": 1700000000000,
            }))
            event = viewer.receive_json()

    assert event == {
        "type": "camera-update",
        "payload": {"cameraId": "cam1", "counts": {"car": 3}, "uniqueCounts": {"car": 5}, "timestamp": 1700000000000},
    }
    camera_row = client.get("/api/cameras/cam1").json()["camera"]
    assert camera_row["status"] == "online"
    assert camera_row["counts"] == {"car": 3}


def test_sensor_data_keeps_zero_timestamp(client):
    response = client.post("/api/sensor-data", json={"sensorId": "ghost", "value": 1, "timestamp": 0})
    assert response.status_code == 202

    data = client.get("/api/sensor-data/ghost").json()["data"]
    assert data[0]["timestamp"] == 0


def create_report(client, **overrides):
    body = {"type": "flood", "location": [106.7, 10.8], "description": "Water over the curb", "severity": "medium"}
    body.update(overrides)
    return client.post("/api/user-reports", json=body).json()["report"]


def test_report_upvotes_create_zone_once(client):
    report = create_report(client)

    with client.websocket_connect("/?userId=viewer-1") as ws:
        for user in ("u1", "u2"):
            body = client.post(f"/api/user-reports/vote?userId={user}", json={"reportId": report["id"], "voteType": "up"}).json()
            assert body["zoneCreated"] is False

        body = client.post("/api/user-reports/vote", headers={"X-User-Id": "u3"},
                           json={"reportId": report["id"], "voteType": "up"}).json()
        assert body["voteScore"] == 3
        assert body["zoneCreated"] is True

        event = ws.receive_json()
        assert event["type"] == "zone_created"
        assert event["payload"]["id"] == body["zoneId"]
        assert event["payload"]["center"] == [106.7, 10.8]
        assert event["payload"]["riskLevel"] == 60

    body = client.post("/api/user-reports/vote?userId=u4", json={"reportId": report["id"], "voteType": "up"}).json()
    assert body["voteScore"] == 4
    assert len(client.get("/api/zones").json()["zones"]) == 1


def test_report_vote_change_and_remove(client):
    report = create_report(client)
    vote = {"reportId": report["id"], "voteType": "up"}

    assert client.post("/api/user-reports/vote?userId=u1", json=vote).json()["voteScore"] == 1
    # a user's second vote replaces the first
    assert client.post("/api/user-reports/vote?userId=u1", json=vote).json()["voteScore"] == 1
    assert client.post("/api/user-reports/vote?userId=u1", json={**vote, "voteType": "down"}).json()["voteScore"] == -1
    assert client.post("/api/user-reports/vote?userId=u1", json={**vote, "voteType": "remove"}).json()["voteScore"] == 0


def test_report_vote_errors(client):
    report = create_report(client)

    response = client.post("/api/user-reports/vote", json={"reportId": report["id"], "voteType": "up"})
    assert response.status_code == 401

    response = client.post("/api/user-reports/vote?userId=u1", json={"reportId": "missing", "voteType": "up"})
    assert response.status_code == 404

    response = client.post("/api/user-reports/vote?userId=u1", json={"reportId": report["id"], "voteType": "maybe"})
    assert response.status_code == 422


def test_admin_approve_report(client, admin_headers):
    report = create_report(client, type="outage", severity="high")

    assert client.post("/api/user-reports/approve", json={"reportId": report["id"]}).status_code == 403

    with client.websocket_connect("/?userId=viewer-1") as ws:
        body = client.post("/api/user-reports/approve", headers=admin_headers, json={"reportId": report["id"]}).json()
        assert body["success"] is True
        assert body["zone"]["type"] == "outage"
        assert body["zone"]["riskLevel"] == 90
        event = ws.receive_json()
        assert event == {"type": "zone_created", "payload": body["zone"]}

    again = client.post("/api/user-reports/approve", headers=admin_headers, json={"reportId": report["id"]}).json()
    assert again["success"] is False

    stored = client.get("/api/user-reports").json()["reports"][0]
    assert stored["adminApproved"] is True
    assert stored["zoneCreated"] is True
    assert stored["zoneId"] == body["zone"]["id"]

    # approved reports are not promoted again by votes
    for user in ("u1", "u2", "u3"):
        client.post(f"/api/user-reports/vote?userId={user}", json={"reportId": report["id"], "voteType": "up"})
    assert len(client.get("/api/zones").json()["zones"]) == 1


def test_approve_unknown_report(client, admin_headers):
    response = client.post("/api/user-reports/approve", headers=admin_headers, json={"reportId": "missing"})
    assert response.status_code == 404
