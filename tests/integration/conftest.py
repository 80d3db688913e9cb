import pytest
from typing import AsyncGenerator
from httpx import ASGITransport, AsyncClient

from main import app
from rentauto.core.database import async_session_maker, engine
from rentauto.db.seeds.initial_data import seed_users
from rentauto.models.base import Base

ADMIN_CREDENTIALS = {"email": "admin@rentauto.cl", "password": "admin123"}
FLEET_CREDENTIALS = {"email": "flota@rentauto.cl", "password": "flota123"}
CUSTOMER_CREDENTIALS = {"email": "cliente@rentauto.cl", "password": "cliente123"}

VEHICLE_DATA = {
    "license_plate": "TEST01",
    "brand": "Toyota",
    "model": "Yaris",
    "year": 2022,
    "color": "Blanco",
    "vehicle_type": "sedan",
    "fuel_type": "gasoline",
    "transmission": "automatic",
    "seats": 5,
    "daily_rate": "100.00",
    "current_mileage": 1000,
    "next_maintenance_mileage": 10000,
}

CUSTOMER_DATA = {
    "first_name": "Ana",
    "last_name": "Perez",
    "email": "ana.perez@rentauto.cl",
    "phone": "+56911112222",
    "document_type": "dni",
    "document_number": "11111111-1",
    "date_of_birth": "1990-05-20",
    "address": "Av. Libertador 1000",
    "city": "Santiago",
    "driver_license_number": "LIC-200001",
    "driver_license_expiry": "2035-05-20",
}


@pytest.fixture
async def setup_database():
    """Fresh schema with the seeded staff accounts for every test"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        await seed_users(session)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def client(setup_database) -> AsyncGenerator[AsyncClient, None]:
    """Create test client"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _login(client: AsyncClient, credentials: dict) -> dict:
    response = await client.post("/api/v1/auth/login", json=credentials)
    assert response.status_code == 200, response.text
    token = response.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_headers(client: AsyncClient) -> dict:
    return await _login(client, ADMIN_CREDENTIALS)


@pytest.fixture
async def fleet_headers(client: AsyncClient) -> dict:
    return await _login(client, FLEET_CREDENTIALS)


@pytest.fixture
async def customer_headers(client: AsyncClient) -> dict:
    return await _login(client, CUSTOMER_CREDENTIALS)


@pytest.fixture
def vehicle_payload() -> dict:
    return dict(VEHICLE_DATA)


@pytest.fixture
def customer_payload() -> dict:
    return dict(CUSTOMER_DATA)


@pytest.fixture
def create_vehicle(client: AsyncClient, admin_headers: dict):
    """Factory posting a vehicle; keyword overrides replace the default fields"""
    async def _create(**overrides) -> dict:
        response = await client.post(
            "/api/v1/vehicles/", json={**VEHICLE_DATA, **overrides}, headers=admin_headers
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def create_customer(client: AsyncClient, admin_headers: dict):
    """Factory posting a customer; keyword overrides replace the default fields"""
    async def _create(**overrides) -> dict:
        response = await client.post(
            "/api/v1/customers/", json={**CUSTOMER_DATA, **overrides}, headers=admin_headers
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def create_rental(client: AsyncClient, admin_headers: dict):
    """Factory booking a vehicle for a customer over the given ISO dates"""
    async def _create(customer_id: int, vehicle_id: int, start_date: str, end_date: str, **extra) -> dict:
        payload = {
            "customer_id": customer_id,
            "vehicle_id": vehicle_id,
            "start_date": start_date,
            "end_date": end_date,
            "pickup_location": "Aeropuerto SCL",
            "return_location": "Aeropuerto SCL",
            **extra,
        }
        response = await client.post("/api/v1/rentals/", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create
