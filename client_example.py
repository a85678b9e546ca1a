"""
Example client for the Fleetwatch backend

This example shows how to:
1. Wait for the server and its database to be ready
2. Poll the fleet analytics the dashboard shows
3. Refresh the analytics cache for one fleet
"""

import time

from fleetwatch.client import ApiError, FleetwatchClient


def print_snapshot(client, fleet_id=None):
    fleet = client.get_fleet_analytics(fleet_id=fleet_id)
    print(f"🚗 Vehicles: {fleet.total_vehicles} total, {fleet.active_vehicles} active, "
          f"{fleet.inactive_vehicles} inactive")
    print(f"⛽ Average fuel level: {fleet.average_fuel_level}%")
    print(f"📏 Distance (24h): {fleet.total_distance_last24h} km")
    print(f"🚨 Alerts (24h): {fleet.alert_summary.total} {fleet.alert_summary.by_severity}")

    for vehicle in client.get_vehicle_activity(fleet_id=fleet_id):
        state = "active" if vehicle.is_active else "inactive"
        print(f"   {vehicle.vehicle_vin}: {state}, last seen {vehicle.hours_inactive}h ago")


def main():
    client = FleetwatchClient("http://localhost:3000")

    if not client.wait_for_server(timeout=60, check_interval=10):
        return

    try:
        for _ in range(3):
            print_snapshot(client)
            time.sleep(30)

        result = client.refresh_cache("FLEET-001")
        print(f"🔄 {result['message']}")
    except ApiError as e:
        print(f"❌ API error ({e.code}, status {e.status}): {e.message}")


if __name__ == "__main__":
    main()
