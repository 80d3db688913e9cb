import pytest
from httpx import AsyncClient
from fastapi import status

JANUARY = {"start_date": "2030-01-01T00:00:00", "end_date": "2030-01-31T00:00:00"}


@pytest.fixture
async def business_month(client: AsyncClient, admin_headers: dict, create_customer, create_vehicle, create_rental):
    """
    One completed rental (388.00 with a late day), one reservation that must not
    count as income, and one completed maintenance costing 95.50, all in January 2030.
    """
    customer = await create_customer()
    rented = await create_vehicle(license_plate="RPT001")
    reserved = await create_vehicle(license_plate="RPT002", daily_rate="60.00")

    rental = await create_rental(customer["id"], rented["id"], "2030-01-10T10:00:00", "2030-01-12T10:00:00")
    await client.patch(f"/api/v1/rentals/{rental['id']}/confirm", headers=admin_headers)
    await client.patch(
        f"/api/v1/rentals/{rental['id']}/start", json={"pickup_mileage": 1000}, headers=admin_headers
    )
    completed = await client.patch(
        f"/api/v1/rentals/{rental['id']}/complete",
        json={"return_mileage": 1400, "fuel_level_return": "full", "actual_return_date": "2030-01-12T20:00:00"},
        headers=admin_headers
    )
    assert completed.status_code == status.HTTP_200_OK, completed.text

    await create_rental(customer["id"], reserved["id"], "2030-01-15T10:00:00", "2030-01-17T10:00:00")

    maintenance = await client.post(
        "/api/v1/maintenances/",
        json={
            "vehicle_id": rented["id"],
            "maintenance_type": "preventive",
            "title": "Revision 1.500 km",
            "description": "Revision general posterior al arriendo",
            "scheduled_date": "2030-01-20T09:00:00",
        },
        headers=admin_headers
    )
    maintenance_id = maintenance.json()["data"]["id"]
    await client.patch(f"/api/v1/maintenances/{maintenance_id}/start", headers=admin_headers)
    await client.patch(
        f"/api/v1/maintenances/{maintenance_id}/complete",
        json={"actual_cost": "95.50", "completed_date": "2030-01-20T15:00:00"},
        headers=admin_headers
    )

    return {"customer": customer, "rented": rented, "reserved": reserved}


@pytest.mark.asyncio
class TestReports:

    async def test_income_report(self, client: AsyncClient, customer_headers: dict, business_month):
        response = await client.get("/api/v1/reports/income", params=JANUARY, headers=customer_headers)
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["income_by_period"] == [
            {"period": "2030-01", "total_rentals": 1, "total_income": 388.0, "average_rental_amount": 388.0}
        ]
        assert data["total_stats"] == {
            "total_rentals": 1,
            "total_income": 388.0,
            "average_rental_amount": 388.0,
            "highest_rental": 388.0,
            "lowest_rental": 388.0,
        }
        assert data["top_vehicles"][0]["vehicle_id"] == business_month["rented"]["id"]
        assert data["top_vehicles"][0]["rental_count"] == 1
        assert data["top_customers"][0]["customer_id"] == business_month["customer"]["id"]
        assert data["top_customers"][0]["total_spent"] == 388.0
        assert data["filters"]["group_by"] == "month"

    async def test_income_report_by_day(self, client: AsyncClient, admin_headers: dict, business_month):
        response = await client.get(
            "/api/v1/reports/income", params={**JANUARY, "group_by": "day"}, headers=admin_headers
        )
        periods = [row["period"] for row in response.json()["data"]["income_by_period"]]
        assert periods == ["2030-01-10"]

    async def test_income_report_outside_window(self, client: AsyncClient, admin_headers: dict, business_month):
        response = await client.get(
            "/api/v1/reports/income",
            params={"start_date": "2030-03-01T00:00:00", "end_date": "2030-03-31T00:00:00"},
            headers=admin_headers
        )
        data = response.json()["data"]
        assert data["income_by_period"] == []
        assert data["total_stats"]["total_rentals"] == 0
        assert data["total_stats"]["total_income"] == 0.0

    async def test_invalid_group_by(self, client: AsyncClient, admin_headers: dict):
        response = await client.get("/api/v1/reports/income?group_by=decade", headers=admin_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_reports_require_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/reports/income")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_maintenance_cost_report(self, client: AsyncClient, admin_headers: dict, business_month):
        response = await client.get("/api/v1/reports/maintenance-costs", params=JANUARY, headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["costs_by_period"] == [
            {
                "period": "2030-01",
                "maintenance_type": "preventive",
                "total_maintenances": 1,
                "total_cost": 95.5,
                "average_cost": 95.5,
            }
        ]
        assert data["costs_by_type"][0]["maintenance_type"] == "preventive"
        assert data["costs_by_type"][0]["highest_cost"] == 95.5
        assert data["vehicles_costs"][0]["vehicle_id"] == business_month["rented"]["id"]
        assert data["total_stats"] == {"total_maintenances": 1, "total_cost": 95.5, "average_cost": 95.5}

    async def test_maintenance_cost_report_type_filter(self, client: AsyncClient, admin_headers: dict, business_month):
        response = await client.get(
            "/api/v1/reports/maintenance-costs",
            params={**JANUARY, "maintenance_type": "corrective"},
            headers=admin_headers
        )
        data = response.json()["data"]
        assert data["costs_by_period"] == []
        assert data["total_stats"]["total_maintenances"] == 0

    async def test_fleet_availability_report(self, client: AsyncClient, admin_headers: dict, business_month):
        response = await client.get("/api/v1/reports/fleet-availability", params=JANUARY, headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["availability_by_period"] == [
            {
                "period": "2030-01",
                "total_rentals": 1,
                "vehicles_rented": 1,
                "total_vehicles": 2,
                "vehicles_available": 1,
                "utilization_rate": 50.0,
            }
        ]

        utilization = {row["license_plate"]: row for row in data["vehicle_utilization"]}
        assert utilization["RPT001"]["days_rented"] == 2
        assert utilization["RPT001"]["total_days_in_period"] == 30
        assert utilization["RPT001"]["utilization_rate"] == 6.67
        assert utilization["RPT002"]["days_rented"] == 0

        assert data["currently_rented"] == []
        assert data["in_maintenance"] == []
        assert data["summary"]["total_vehicles"] == 2
        assert data["summary"]["currently_available"] == 1
        statuses = {row["status"]: row["count"] for row in data["current_fleet_status"]}
        assert statuses == {"available": 1, "rented": 1}

    async def test_fleet_availability_rejects_inverted_window(self, client: AsyncClient, admin_headers: dict):
        response = await client.get(
            "/api/v1/reports/fleet-availability",
            params={"start_date": "2030-01-31T00:00:00", "end_date": "2030-01-01T00:00:00"},
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"success": False, "message": "end_date must be after start_date"}

    async def test_fleet_availability_future_start_only(
        self, client: AsyncClient, admin_headers: dict, business_month
    ):
        # Without end_date the window closes now, before a start in 2090
        response = await client.get(
            "/api/v1/reports/fleet-availability", params={"start_date": "2090-01-01T00:00:00"}, headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_fleet_availability_default_window(
        self, client: AsyncClient, admin_headers: dict, business_month
    ):
        response = await client.get("/api/v1/reports/fleet-availability", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

        for row in response.json()["data"]["vehicle_utilization"]:
            assert row["total_days_in_period"] == 30
            assert 0 <= row["days_rented"] <= 30

    async def test_executive_summary(self, client: AsyncClient, admin_headers: dict, business_month):
        response = await client.get("/api/v1/reports/executive-summary", params=JANUARY, headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["income"] == {"total_rentals": 1, "total_income": 388.0, "average_rental": 388.0}
        assert data["maintenance"] == {"total_maintenances": 1, "total_cost": 95.5, "average_cost": 95.5}
        assert data["fleet"]["total_vehicles"] == 2
        assert data["fleet"]["available_vehicles"] == 1
        assert data["fleet"]["utilization_rate"] == 50.0
        assert data["profitability"] == {
            "gross_income": 388.0,
            "maintenance_costs": 95.5,
            "net_income": 292.5,
            "profit_margin": 75.39,
        }

    async def test_executive_summary_empty(self, client: AsyncClient, admin_headers: dict):
        response = await client.get("/api/v1/reports/executive-summary", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["income"]["total_rentals"] == 0
        assert data["fleet"]["total_vehicles"] == 0
        assert data["profitability"]["profit_margin"] == 0.0
