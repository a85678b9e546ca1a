"""Tests for the /alerts endpoints"""
VIN = "1HGCM82633A004352"


def alert_payload(severity="High", alert_type="LowFuel", message="Fuel below 15%"):
    return {"vehicleVin": VIN, "alertType": alert_type, "severity": severity, "message": message}


def test_create_and_fetch_alert(client, add_vehicle):
    add_vehicle(VIN)

    response = client.post("/alerts", json=alert_payload())
    assert response.status_code == 201
    created = response.json()
    assert created["resolved"] is False
    assert created["resolvedAt"] is None

    response = client.get(f"/alerts/{created['id']}")
    assert response.status_code == 200
    assert response.json()["alertType"] == "LowFuel"


def test_alert_for_unknown_vehicle(client):
    response = client.post("/alerts", json=alert_payload())
    assert response.status_code == 404


def test_alert_validation(client, add_vehicle):
    add_vehicle(VIN)

    assert client.post("/alerts", json=alert_payload(severity="Urgent")).status_code == 400

    response = client.post("/alerts", json=alert_payload(alert_type=" ", message=""))
    assert response.status_code == 400
    assert [d["field"] for d in response.json()["details"]] == ["alertType", "message"]


def test_malformed_alert_id(client):
    response = client.get("/alerts/not-an-id")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid alert ID"


def test_unknown_alert_id(client):
    response = client.get("/alerts/65f000000000000000000000")
    assert response.status_code == 404


def test_resolve_alert(client, add_vehicle):
    add_vehicle(VIN)
    alert_id = client.post("/alerts", json=alert_payload()).json()["id"]

    response = client.patch(f"/alerts/{alert_id}/resolve")

    assert response.status_code == 200
    body = response.json()
    assert body["resolved"] is True
    assert body["resolvedAt"] is not None


def test_alert_count_filters(client, add_vehicle, add_alert):
    add_vehicle(VIN)
    add_alert(VIN, severity="High")
    add_alert(VIN, severity="High", resolved=True)
    add_alert(VIN, severity="Low", alert_type="Speeding")

    assert client.get("/alerts/count/total").json() == {"count": 3}
    assert client.get("/alerts/count/total", params={"severity": "High"}).json() == {"count": 2}
    assert client.get("/alerts/count/total", params={"resolved": "false", "severity": "High"}).json() == {"count": 1}
    assert client.get("/alerts/count/total", params={"alertType": "Speeding"}).json() == {"count": 1}
    assert client.get("/alerts/count/total", params={"vehicleVin": "OTHER"}).json() == {"count": 0}


def test_alert_count_time_range(client, add_vehicle, add_alert):
    add_vehicle(VIN)
    add_alert(VIN, hours_ago=1)
    add_alert(VIN, hours_ago=72)

    response = client.get("/alerts/count/total", params={"startTime": "2000-01-01T00:00:00Z"})
    assert response.json() == {"count": 2}


def test_alert_count_rejects_unknown_severity(client):
    response = client.get("/alerts/count/total", params={"severity": "Urgent"})
    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "severity"
