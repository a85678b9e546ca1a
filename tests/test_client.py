"""Tests for the polling client's retry/backoff and error mapping"""
import itertools
from unittest.mock import MagicMock, call, patch

import pytest
import requests

from fleetwatch.client import HTTP_ERROR, NETWORK_ERROR, TIMEOUT, ApiError, FleetwatchClient


def fake_response(status_code=200, body=None, reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body
    return response


FUEL_BODY = {
    "success": True,
    "data": {
        "averageFuelLevel": 40.0,
        "lowFuelVehicles": 1,
        "criticalFuelVehicles": 0,
        "fleetId": "F1",
        "lastUpdated": "2024-05-01T10:00:00",
    },
}


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def api(session):
    return FleetwatchClient("http://fleet.test/", session=session)


@patch("fleetwatch.client.time.sleep")
def test_success_returns_typed_result(sleep, api, session):
    session.request.return_value = fake_response(body=FUEL_BODY)

    result = api.get_fuel_analytics(fleet_id="F1")

    assert result.average_fuel_level == 40.0
    assert result.fleet_id == "F1"
    method, url = session.request.call_args.args
    assert (method, url) == ("GET", "http://fleet.test/analytics/fuel")
    assert session.request.call_args.kwargs["params"] == {"fleetId": "F1"}
    sleep.assert_not_called()


@patch("fleetwatch.client.time.sleep")
def test_retries_with_exponential_backoff(sleep, api, session):
    session.request.side_effect = [
        requests.ConnectionError("refused"),
        fake_response(503, {"success": False, "error": "Failed to retrieve fuel analytics"}),
        fake_response(body=FUEL_BODY),
    ]

    result = api.get_fuel_analytics()

    assert result.low_fuel_vehicles == 1
    assert session.request.call_count == 3
    assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]


@patch("fleetwatch.client.time.sleep")
def test_gives_up_after_three_attempts(sleep, api, session):
    session.request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(ApiError) as excinfo:
        api.get_fleet_analytics()

    assert excinfo.value.code == NETWORK_ERROR
    assert excinfo.value.status == 0
    assert session.request.call_count == 3
    assert sleep.call_count == 2


@patch("fleetwatch.client.time.sleep")
def test_timeout_maps_to_timeout_code(sleep, api, session):
    session.request.side_effect = requests.Timeout("slow")

    with pytest.raises(ApiError) as excinfo:
        api.get_cache_stats()

    assert excinfo.value.code == TIMEOUT
    assert excinfo.value.status == 408


@patch("fleetwatch.client.time.sleep")
def test_client_errors_are_not_retried(sleep, api, session):
    session.request.return_value = fake_response(400, {
        "success": False,
        "error": "Invalid query parameters",
        "details": [{"field": "timeWindow", "message": "bad", "value": "0"}],
    }, reason="Bad Request")

    with pytest.raises(ApiError) as excinfo:
        api.get_fleet_analytics(time_window=0)

    assert excinfo.value.code == HTTP_ERROR
    assert excinfo.value.status == 400
    assert excinfo.value.message == "Invalid query parameters"
    assert excinfo.value.details[0]["field"] == "timeWindow"
    assert session.request.call_count == 1
    sleep.assert_not_called()


@patch("fleetwatch.client.time.sleep")
def test_list_params_and_booleans(sleep, api, session):
    session.request.return_value = fake_response(body={"success": True, "data": {
        "byType": {}, "bySeverity": {}, "total": 0, "timeWindow": 24, "lastUpdated": "2024-05-01T10:00:00",
    }})

    api.get_alert_summary(resolved=False, severities=["High", "Critical"])

    assert session.request.call_args.kwargs["params"] == {"resolved": "false", "severities": ["High", "Critical"]}


@patch("fleetwatch.client.time.sleep")
def test_refresh_cache_posts_fleet(sleep, api, session):
    session.request.return_value = fake_response(body={"success": True, "message": "Cache refreshed for fleet F1"})

    result = api.refresh_cache("F1")

    assert result["message"] == "Cache refreshed for fleet F1"
    assert session.request.call_args.kwargs["json"] == {"fleetId": "F1"}


@patch("fleetwatch.client.time.sleep")
@patch("fleetwatch.client.time.time")
def test_wait_for_server(clock, sleep, api, session):
    clock.side_effect = itertools.count()
    session.request.side_effect = [
        requests.ConnectionError("refused"),
        fake_response(body={"success": True, "data": {"status": "unhealthy", "cacheSize": 0}}),
        fake_response(body={"success": True, "data": {"status": "healthy", "cacheSize": 0}}),
    ]

    assert api.wait_for_server(timeout=60, check_interval=5) is True

    assert sleep.call_args_list == [call(5), call(5)]
    urls = [c.args[1] for c in session.request.call_args_list]
    assert urls == ["http://fleet.test/analytics/health"] * 3


@patch("fleetwatch.client.time.sleep")
@patch("fleetwatch.client.time.time")
def test_wait_for_server_times_out(clock, sleep, api, session):
    clock.side_effect = itertools.count(step=10)
    session.request.side_effect = requests.ConnectionError("refused")

    assert api.wait_for_server(timeout=30, check_interval=10) is False
    assert session.request.called
