"""Tests for the /telemetry endpoints"""
VIN = "1HGCM82633A004352"


def reading(vin=VIN, timestamp="2024-05-01T10:00:00Z", odometer=1000, fuel=50, speed=60):
    return {
        "vehicleVin": vin,
        "latitude": 40.7128,
        "longitude": -74.006,
        "speed": speed,
        "engineStatus": "On",
        "fuelBatteryLevel": fuel,
        "odometerReading": odometer,
        "diagnosticCodes": ["P0420"],
        "timestamp": timestamp,
    }


def test_create_telemetry(client, add_vehicle):
    add_vehicle(VIN)

    response = client.post("/telemetry", json=reading())

    assert response.status_code == 201
    body = response.json()
    assert body["vehicleVin"] == VIN
    assert body["engineStatus"] == "On"
    assert body["diagnosticCodes"] == ["P0420"]
    assert body["timestamp"].startswith("2024-05-01T10:00:00")


def test_telemetry_for_unknown_vehicle(client):
    response = client.post("/telemetry", json=reading())

    assert response.status_code == 404
    assert response.json()["error"] == "vehicle not found"


def test_telemetry_range_checks(client, add_vehicle):
    add_vehicle(VIN)

    response = client.post("/telemetry", json=reading(speed=400, fuel=120))

    assert response.status_code == 400
    fields = [detail["field"] for detail in response.json()["details"]]
    assert fields == ["speed", "fuelBatteryLevel"]


def test_invalid_engine_status(client, add_vehicle):
    add_vehicle(VIN)
    payload = reading()
    payload["engineStatus"] = "Flying"

    response = client.post("/telemetry", json=payload)
    assert response.status_code == 400


def test_batch_ingestion(client, add_vehicle):
    add_vehicle(VIN)

    response = client.post("/telemetry/batch", json={"records": [
        reading(timestamp="2024-05-01T10:00:00Z", odometer=1000),
        reading(timestamp="2024-05-01T11:00:00Z", odometer=1050),
    ]})

    assert response.status_code == 201
    assert [r["odometerReading"] for r in response.json()] == [1000, 1050]


def test_batch_is_all_or_nothing(client, add_vehicle, db):
    add_vehicle(VIN)

    response = client.post("/telemetry/batch", json={"records": [
        reading(),
        reading(odometer=-1),
    ]})

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "records[1].odometerReading"
    assert db["telemetry"].count_documents({}) == 0


def test_history_newest_first_with_range(client, add_vehicle):
    add_vehicle(VIN)
    for hour, odometer in ((8, 900), (10, 1000), (12, 1100)):
        client.post("/telemetry", json=reading(timestamp=f"2024-05-01T{hour:02d}:00:00Z", odometer=odometer))

    body = client.get(f"/telemetry/{VIN}/history").json()
    assert body["recordCount"] == 3
    assert [r["odometerReading"] for r in body["data"]] == [1100, 1000, 900]

    body = client.get(f"/telemetry/{VIN}/history", params={
        "startTime": "2024-05-01T09:00:00Z",
        "endTime": "2024-05-01T11:00:00Z",
    }).json()
    assert [r["odometerReading"] for r in body["data"]] == [1000]


def test_history_rejects_bad_range(client, add_vehicle):
    add_vehicle(VIN)

    response = client.get(f"/telemetry/{VIN}/history", params={"startTime": "garbage"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid startTime format"

    response = client.get(f"/telemetry/{VIN}/history", params={
        "startTime": "2024-05-02T00:00:00Z",
        "endTime": "2024-05-01T00:00:00Z",
    })
    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "timeRange"


def test_latest_telemetry(client, add_vehicle):
    add_vehicle(VIN)
    client.post("/telemetry", json=reading(timestamp="2024-05-01T08:00:00Z", fuel=70))
    client.post("/telemetry", json=reading(timestamp="2024-05-01T09:00:00Z", fuel=65))

    response = client.get(f"/telemetry/{VIN}/latest")
    assert response.status_code == 200
    assert response.json()["fuelBatteryLevel"] == 65


def test_latest_telemetry_missing(client, add_vehicle):
    add_vehicle(VIN)

    response = client.get(f"/telemetry/{VIN}/latest")
    assert response.status_code == 404
    assert response.json()["error"] == "no telemetry data found for vehicle"
