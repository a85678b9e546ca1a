"""Tests for the /vehicles endpoints"""
VIN = "1HGCM82633A004352"


def vehicle_payload(vin=VIN, fleet_id="F1", status="Active"):
    return {
        "vin": vin,
        "manufacturer": "Honda",
        "model": "Accord",
        "fleetId": fleet_id,
        "ownerOperator": {"name": "Dana Reyes", "contact": "dana@example.com", "department": "Logistics"},
        "registrationStatus": status,
    }


def test_create_vehicle(client):
    response = client.post("/vehicles", json=vehicle_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["vin"] == VIN
    assert body["fleetId"] == "F1"
    assert body["ownerOperator"]["department"] == "Logistics"
    assert body["id"]
    assert body["createdAt"]


def test_duplicate_vin_rejected(client):
    client.post("/vehicles", json=vehicle_payload())
    response = client.post("/vehicles", json=vehicle_payload())

    assert response.status_code == 400
    assert response.json()["error"] == "vehicle with this VIN already exists"


def test_invalid_registration_status(client):
    response = client.post("/vehicles", json=vehicle_payload(status="Scrapped"))

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["details"][0]["field"] == "registrationStatus"


def test_blank_vin_rejected(client):
    response = client.post("/vehicles", json=vehicle_payload(vin="   "))
    assert response.status_code == 400


def test_list_vehicles_with_filters(client):
    client.post("/vehicles", json=vehicle_payload("VIN0000000000000A", fleet_id="F1"))
    client.post("/vehicles", json=vehicle_payload("VIN0000000000000B", fleet_id="F2", status="Maintenance"))

    assert len(client.get("/vehicles").json()) == 2

    response = client.get("/vehicles", params={"fleetId": "F2"})
    assert [v["vin"] for v in response.json()] == ["VIN0000000000000B"]

    response = client.get("/vehicles", params={"registrationStatus": "Active"})
    assert [v["vin"] for v in response.json()] == ["VIN0000000000000A"]


def test_get_vehicle(client):
    client.post("/vehicles", json=vehicle_payload())

    response = client.get(f"/vehicles/{VIN}")
    assert response.status_code == 200
    assert response.json()["manufacturer"] == "Honda"


def test_get_unknown_vehicle(client):
    response = client.get("/vehicles/NOPE")

    assert response.status_code == 404
    assert response.json()["error"] == "vehicle not found"


def test_update_vehicle(client):
    client.post("/vehicles", json=vehicle_payload())

    response = client.put(f"/vehicles/{VIN}", json={"registrationStatus": "Maintenance", "model": "Civic"})

    assert response.status_code == 200
    body = response.json()
    assert body["registrationStatus"] == "Maintenance"
    assert body["model"] == "Civic"
    assert body["manufacturer"] == "Honda"


def test_update_unknown_vehicle(client):
    response = client.put("/vehicles/NOPE", json={"model": "Civic"})
    assert response.status_code == 404


def test_delete_vehicle(client):
    client.post("/vehicles", json=vehicle_payload())

    response = client.delete(f"/vehicles/{VIN}")
    assert response.status_code == 204
    assert client.get(f"/vehicles/{VIN}").status_code == 404
    assert client.delete(f"/vehicles/{VIN}").status_code == 404
