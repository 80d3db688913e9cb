import pytest
from decimal import Decimal
from httpx import AsyncClient
from fastapi import status

START = "2030-01-10T10:00:00"
END = "2030-01-12T10:00:00"


@pytest.fixture
async def booking(create_customer, create_vehicle):
    """A customer and a 100.00/day vehicle ready to be booked"""
    customer = await create_customer()
    vehicle = await create_vehicle()
    return customer, vehicle


async def _advance_to_active(client: AsyncClient, headers: dict, rental_id: int, pickup_mileage: int = 1500):
    confirm = await client.patch(f"/api/v1/rentals/{rental_id}/confirm", headers=headers)
    assert confirm.status_code == status.HTTP_200_OK, confirm.text
    start = await client.patch(
        f"/api/v1/rentals/{rental_id}/start",
        json={"pickup_mileage": pickup_mileage, "fuel_level_pickup": "full"},
        headers=headers
    )
    assert start.status_code == status.HTTP_200_OK, start.text
    return start.json()["data"]


@pytest.mark.asyncio
class TestRentalCreation:
    """Booking rules and price calculation"""

    async def test_create_rental_prices_the_booking(
        self, client: AsyncClient, admin_headers: dict, booking, create_rental
    ):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)

        assert rental["rental_number"].startswith("RNT-")
        assert rental["rental_status"] == "reserved"
        assert rental["payment_status"] == "pending"
        assert rental["total_days"] == 2
        assert Decimal(rental["daily_rate"]) == Decimal("100.00")
        assert Decimal(rental["subtotal"]) == Decimal("200.00")
        assert Decimal(rental["tax_amount"]) == Decimal("38.00")
        assert Decimal(rental["total_amount"]) == Decimal("238.00")
        assert rental["customer"]["id"] == customer["id"]
        assert rental["vehicle"]["license_plate"] == vehicle["license_plate"]

        response = await client.get(f"/api/v1/vehicles/{vehicle['id']}", headers=admin_headers)
        assert response.json()["data"]["status"] == "rented"

    async def test_partial_day_rounds_up(self, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, "2030-01-11T12:00:00")

        assert rental["total_days"] == 2
        assert Decimal(rental["total_amount"]) == Decimal("238.00")

    async def test_additional_charges_and_discount(self, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(
            customer["id"], vehicle["id"], START, END,
            additional_charges="50.00", discount_amount="20.00", deposit_amount="300.00"
        )

        assert Decimal(rental["additional_charges"]) == Decimal("50.00")
        assert Decimal(rental["discount_amount"]) == Decimal("20.00")
        assert Decimal(rental["deposit_amount"]) == Decimal("300.00")
        assert Decimal(rental["total_amount"]) == Decimal("268.00")

    async def test_discount_larger_than_total(self, client: AsyncClient, admin_headers: dict, booking):
        customer, vehicle = booking
        response = await client.post(
            "/api/v1/rentals/",
            json={
                "customer_id": customer["id"],
                "vehicle_id": vehicle["id"],
                "start_date": START,
                "end_date": END,
                "pickup_location": "Aeropuerto SCL",
                "return_location": "Aeropuerto SCL",
                "discount_amount": "1000.00",
            },
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

        vehicle_response = await client.get(f"/api/v1/vehicles/{vehicle['id']}", headers=admin_headers)
        assert vehicle_response.json()["data"]["status"] == "available"

    async def test_end_before_start(self, client: AsyncClient, admin_headers: dict, booking):
        customer, vehicle = booking
        response = await client.post(
            "/api/v1/rentals/",
            json={
                "customer_id": customer["id"],
                "vehicle_id": vehicle["id"],
                "start_date": END,
                "end_date": START,
                "pickup_location": "Aeropuerto SCL",
                "return_location": "Aeropuerto SCL",
            },
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_overlapping_booking_conflicts(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        await create_rental(customer["id"], vehicle["id"], START, END)

        response = await client.post(
            "/api/v1/rentals/",
            json={
                "customer_id": customer["id"],
                "vehicle_id": vehicle["id"],
                "start_date": "2030-01-11T10:00:00",
                "end_date": "2030-01-14T10:00:00",
                "pickup_location": "Aeropuerto SCL",
                "return_location": "Aeropuerto SCL",
            },
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert "already booked" in response.json()["message"]

    async def test_touching_boundary_conflicts(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        await create_rental(customer["id"], vehicle["id"], START, END)

        response = await client.post(
            "/api/v1/rentals/",
            json={
                "customer_id": customer["id"],
                "vehicle_id": vehicle["id"],
                "start_date": END,
                "end_date": "2030-01-15T10:00:00",
                "pickup_location": "Aeropuerto SCL",
                "return_location": "Aeropuerto SCL",
            },
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_vehicle_in_maintenance_cannot_be_booked(self, client: AsyncClient, admin_headers: dict, booking):
        customer, vehicle = booking
        critical = await client.post(
            "/api/v1/maintenances/",
            json={
                "vehicle_id": vehicle["id"],
                "maintenance_type": "corrective",
                "title": "Falla de frenos",
                "description": "Pastillas gastadas, revisar discos",
                "scheduled_date": "2030-06-01T09:00:00",
                "priority": "critical",
            },
            headers=admin_headers
        )
        assert critical.status_code == status.HTTP_201_CREATED

        response = await client.post(
            "/api/v1/rentals/",
            json={
                "customer_id": customer["id"],
                "vehicle_id": vehicle["id"],
                "start_date": START,
                "end_date": END,
                "pickup_location": "Aeropuerto SCL",
                "return_location": "Aeropuerto SCL",
            },
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["message"] == "Vehicle is not available (current status: maintenance)"

        rentals = await client.get(f"/api/v1/rentals/?vehicle_id={vehicle['id']}", headers=admin_headers)
        assert rentals.json()["data"]["pagination"]["total"] == 0
        vehicle_now = await client.get(f"/api/v1/vehicles/{vehicle['id']}", headers=admin_headers)
        assert vehicle_now.json()["data"]["status"] == "maintenance"

    async def test_unknown_customer(self, client: AsyncClient, admin_headers: dict, create_vehicle):
        vehicle = await create_vehicle()
        response = await client.post(
            "/api/v1/rentals/",
            json={
                "customer_id": 9999,
                "vehicle_id": vehicle["id"],
                "start_date": START,
                "end_date": END,
                "pickup_location": "Aeropuerto SCL",
                "return_location": "Aeropuerto SCL",
            },
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "Customer not found"

    async def test_inactive_customer(self, client: AsyncClient, admin_headers: dict, booking):
        customer, vehicle = booking
        await client.put(f"/api/v1/customers/{customer['id']}", json={"is_active": False}, headers=admin_headers)

        response = await client.post(
            "/api/v1/rentals/",
            json={
                "customer_id": customer["id"],
                "vehicle_id": vehicle["id"],
                "start_date": START,
                "end_date": END,
                "pickup_location": "Aeropuerto SCL",
                "return_location": "Aeropuerto SCL",
            },
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "Customer is not active"


@pytest.mark.asyncio
class TestRentalLifecycle:
    """reserved -> confirmed -> active -> completed, and cancellation"""

    async def test_full_lifecycle_with_late_return(
        self, client: AsyncClient, admin_headers: dict, booking, create_rental
    ):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)

        active = await _advance_to_active(client, admin_headers, rental["id"])
        assert active["rental_status"] == "active"
        assert active["pickup_mileage"] == 1500

        response = await client.patch(
            f"/api/v1/rentals/{rental['id']}/complete",
            json={
                "return_mileage": 1800,
                "fuel_level_return": "half",
                "actual_return_date": "2030-01-12T20:00:00",
            },
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["late_days"] == 1
        assert Decimal(data["late_fees"]) == Decimal("150.00")
        assert Decimal(data["total_additional_charges"]) == Decimal("150.00")
        assert Decimal(data["new_total_amount"]) == Decimal("388.00")
        assert data["rental"]["rental_status"] == "completed"
        assert Decimal(data["rental"]["total_amount"]) == Decimal("388.00")
        assert data["rental"]["return_mileage"] == 1800
        assert data["rental"]["actual_return_date"] == "2030-01-12T20:00:00"

        vehicle_response = await client.get(f"/api/v1/vehicles/{vehicle['id']}", headers=admin_headers)
        vehicle_data = vehicle_response.json()["data"]
        assert vehicle_data["status"] == "available"
        assert vehicle_data["current_mileage"] == 1800

    async def test_on_time_return_with_extra_charges(
        self, client: AsyncClient, admin_headers: dict, booking, create_rental
    ):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)
        await _advance_to_active(client, admin_headers, rental["id"])

        response = await client.patch(
            f"/api/v1/rentals/{rental['id']}/complete",
            json={
                "return_mileage": 1600,
                "fuel_level_return": "full",
                "additional_charges": "30.00",
                "actual_return_date": "2030-01-12T09:00:00",
            },
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["late_days"] == 0
        assert Decimal(data["late_fees"]) == Decimal("0.00")
        assert Decimal(data["new_total_amount"]) == Decimal("268.00")

    async def test_start_requires_confirmation(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)

        response = await client.patch(
            f"/api/v1/rentals/{rental['id']}/start",
            json={"pickup_mileage": 1500},
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_confirm_twice(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)

        first = await client.patch(f"/api/v1/rentals/{rental['id']}/confirm", headers=admin_headers)
        assert first.json()["data"]["rental_status"] == "confirmed"

        second = await client.patch(f"/api/v1/rentals/{rental['id']}/confirm", headers=admin_headers)
        assert second.status_code == status.HTTP_400_BAD_REQUEST

    async def test_pickup_mileage_below_odometer(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)
        await client.patch(f"/api/v1/rentals/{rental['id']}/confirm", headers=admin_headers)

        response = await client.patch(
            f"/api/v1/rentals/{rental['id']}/start",
            json={"pickup_mileage": 500},
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_return_mileage_below_pickup(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)
        await _advance_to_active(client, admin_headers, rental["id"], pickup_mileage=2000)

        response = await client.patch(
            f"/api/v1/rentals/{rental['id']}/complete",
            json={"return_mileage": 1900, "fuel_level_return": "full"},
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_complete_requires_active(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)

        response = await client.patch(
            f"/api/v1/rentals/{rental['id']}/complete",
            json={"return_mileage": 1200, "fuel_level_return": "full"},
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_cancel_releases_vehicle(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END, additional_notes="Silla de bebe")

        response = await client.patch(
            f"/api/v1/rentals/{rental['id']}/cancel",
            json={"reason": "Cliente cambio de planes"},
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["rental_status"] == "cancelled"
        assert data["additional_notes"] == "Silla de bebe\n\nCancellation reason: Cliente cambio de planes"

        vehicle_response = await client.get(f"/api/v1/vehicles/{vehicle['id']}", headers=admin_headers)
        assert vehicle_response.json()["data"]["status"] == "available"

    async def test_cancel_terminal_rental(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)
        await client.patch(f"/api/v1/rentals/{rental['id']}/cancel", headers=admin_headers)

        response = await client.patch(f"/api/v1/rentals/{rental['id']}/cancel", headers=admin_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "Cannot cancel a cancelled rental"

    async def test_cancelled_period_can_be_rebooked(
        self, client: AsyncClient, admin_headers: dict, booking, create_rental
    ):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)
        await client.patch(f"/api/v1/rentals/{rental['id']}/cancel", headers=admin_headers)

        again = await create_rental(customer["id"], vehicle["id"], START, END)
        assert again["rental_status"] == "reserved"


@pytest.mark.asyncio
class TestRentalUpdates:

    async def test_update_dates_recalculates(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)

        response = await client.put(
            f"/api/v1/rentals/{rental['id']}",
            json={"end_date": "2030-01-13T10:00:00", "payment_status": "partial"},
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["total_days"] == 3
        assert Decimal(data["subtotal"]) == Decimal("300.00")
        assert Decimal(data["tax_amount"]) == Decimal("57.00")
        assert Decimal(data["total_amount"]) == Decimal("357.00")
        assert data["payment_status"] == "partial"

    async def test_update_rejects_lifecycle_fields(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)

        response = await client.put(
            f"/api/v1/rentals/{rental['id']}",
            json={"rental_status": "completed"},
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["errors"][0]["field"] == "rental_status"

    async def test_update_terminal_rental(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)
        await client.patch(f"/api/v1/rentals/{rental['id']}/cancel", headers=admin_headers)

        response = await client.put(
            f"/api/v1/rentals/{rental['id']}",
            json={"additional_notes": "tarde"},
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_update_dates_after_pickup(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)
        await _advance_to_active(client, admin_headers, rental["id"])

        response = await client.put(
            f"/api/v1/rentals/{rental['id']}",
            json={"end_date": "2030-01-13T10:00:00"},
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.asyncio
class TestRentalQueries:

    async def test_get_rental_not_found(self, client: AsyncClient, admin_headers: dict):
        response = await client.get("/api/v1/rentals/9999", headers=admin_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_list_rentals_filtered_by_status(
        self, client: AsyncClient, admin_headers: dict, create_customer, create_vehicle, create_rental
    ):
        customer = await create_customer()
        first = await create_vehicle(license_plate="LIST01")
        second = await create_vehicle(license_plate="LIST02")
        kept = await create_rental(customer["id"], first["id"], START, END)
        dropped = await create_rental(customer["id"], second["id"], START, END)
        await client.patch(f"/api/v1/rentals/{dropped['id']}/cancel", headers=admin_headers)

        response = await client.get("/api/v1/rentals/?rental_status=reserved", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert [r["id"] for r in data["items"]] == [kept["id"]]
        assert data["items"][0]["vehicle"]["license_plate"] == "LIST01"
        assert data["pagination"]["total"] == 1

        by_vehicle = await client.get(f"/api/v1/rentals/?vehicle_id={second['id']}", headers=admin_headers)
        assert [r["id"] for r in by_vehicle.json()["data"]["items"]] == [dropped["id"]]

    async def test_rental_stats(self, client: AsyncClient, admin_headers: dict, booking, create_rental):
        customer, vehicle = booking
        rental = await create_rental(customer["id"], vehicle["id"], START, END)
        await _advance_to_active(client, admin_headers, rental["id"])
        await client.patch(
            f"/api/v1/rentals/{rental['id']}/complete",
            json={"return_mileage": 1800, "fuel_level_return": "half", "actual_return_date": "2030-01-12T20:00:00"},
            headers=admin_headers
        )

        response = await client.get("/api/v1/rentals/stats", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["total"] == 1
        assert data["completed"] == 1
        assert data["active"] == 0
        assert data["overdue"] == 0
        assert Decimal(data["total_revenue"]) == Decimal("388.00")
