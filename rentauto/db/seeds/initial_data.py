"""
Initial Seed Data (async, idempotent)
- Demo users for every role
- Sample vehicles and customers
Run:  python -m rentauto.db.seeds.initial_data
"""

import asyncio
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from rentauto.core.database import async_session_maker, engine
from rentauto.core.security import get_password_hash
from rentauto.models.base import Base
from rentauto.models.auth.user import User
from rentauto.models.customer.customer import Customer
from rentauto.models.fleet.vehicle import Vehicle
from rentauto.models.shared.enums import UserRole, VehicleStatus

logger = logging.getLogger(__name__)

# ----------------------------------------------------------------------
# SEED DATA
# ----------------------------------------------------------------------

USERS_SEED = [
    {
        "email": "admin@rentauto.cl",
        "password": "admin123",
        "first_name": "Administrador",
        "last_name": "Sistema",
        "phone": "+56912345670",
        "role": UserRole.ADMIN.value,
    },
    {
        "email": "flota@rentauto.cl",
        "password": "flota123",
        "first_name": "Gestor",
        "last_name": "Flota",
        "phone": "+56912345671",
        "role": UserRole.FLEET_MANAGER.value,
    },
    {
        "email": "cliente@rentauto.cl",
        "password": "cliente123",
        "first_name": "Cliente",
        "last_name": "Demo",
        "phone": "+56912345672",
        "role": UserRole.CUSTOMER.value,
    },
]

VEHICLES_SEED = [
    {
        "license_plate": "ABCD12", "brand": "Toyota", "model": "Corolla", "year": 2022, "color": "Blanco",
        "vehicle_type": "sedan", "fuel_type": "gasoline", "transmission": "automatic", "seats": 5,
        "daily_rate": Decimal("35000.00"), "current_mileage": 15000, "next_maintenance_mileage": 20000,
    },
    {
        "license_plate": "EFGH34", "brand": "Hyundai", "model": "Tucson", "year": 2023, "color": "Gris",
        "vehicle_type": "suv", "fuel_type": "diesel", "transmission": "automatic", "seats": 5,
        "daily_rate": Decimal("52000.00"), "current_mileage": 8000, "next_maintenance_mileage": 10000,
    },
    {
        "license_plate": "IJKL56", "brand": "Chevrolet", "model": "Spark", "year": 2021, "color": "Rojo",
        "vehicle_type": "hatchback", "fuel_type": "gasoline", "transmission": "manual", "seats": 4,
        "daily_rate": Decimal("22000.00"), "current_mileage": 41000, "next_maintenance_mileage": 40000,
    },
    {
        "license_plate": "MNOP78", "brand": "Nissan", "model": "Navara", "year": 2022, "color": "Negro",
        "vehicle_type": "pickup", "fuel_type": "diesel", "transmission": "manual", "seats": 5,
        "daily_rate": Decimal("60000.00"), "current_mileage": 23000, "next_maintenance_mileage": 30000,
    },
]

CUSTOMERS_SEED = [
    {
        "first_name": "Camila", "last_name": "Rojas", "email": "camila.rojas@rentauto.cl",
        "phone": "+56987654321", "document_type": "dni", "document_number": "12345678-9",
        "date_of_birth": date(1990, 4, 12), "address": "Av. Providencia 1234", "city": "Santiago",
        "driver_license_number": "LIC-100001", "driver_license_expiry": date(2030, 4, 12),
    },
    {
        "first_name": "Matias", "last_name": "Fuentes", "email": "matias.fuentes@rentauto.cl",
        "phone": "+56987654322", "document_type": "passport", "document_number": "P1234567",
        "date_of_birth": date(1985, 9, 3), "address": "Calle Prat 456", "city": "Valparaiso",
        "driver_license_number": "LIC-100002", "driver_license_expiry": date(2029, 9, 3),
    },
]

# ----------------------------------------------------------------------
# ASYNC HELPERS (idempotent upserts)
# ----------------------------------------------------------------------

async def get_or_create_user(db: AsyncSession, data: dict) -> User:
    result = await db.execute(select(User).where(User.email == data["email"]))
    obj = result.scalar_one_or_none()
    if obj:
        return obj
    payload = {k: v for k, v in data.items() if k != "password"}
    obj = User(**payload, hashed_password=get_password_hash(data["password"]), is_active=True)
    db.add(obj)
    await db.flush()
    return obj

async def get_or_create_vehicle(db: AsyncSession, data: dict, created_by: int) -> Vehicle:
    result = await db.execute(select(Vehicle).where(Vehicle.license_plate == data["license_plate"]))
    obj = result.scalar_one_or_none()
    if obj:
        return obj
    obj = Vehicle(**data, status=VehicleStatus.AVAILABLE.value, is_active=True, created_by=created_by)
    db.add(obj)
    await db.flush()
    return obj

async def get_or_create_customer(db: AsyncSession, data: dict, created_by: int) -> Customer:
    result = await db.execute(select(Customer).where(Customer.document_number == data["document_number"]))
    obj = result.scalar_one_or_none()
    if obj:
        return obj
    obj = Customer(**data, is_active=True, created_by=created_by)
    db.add(obj)
    await db.flush()
    return obj

# ----------------------------------------------------------------------
# MAIN ASYNC SEED LOGIC
# ----------------------------------------------------------------------

async def seed_users(db: AsyncSession) -> dict:
    users = {}
    for data in USERS_SEED:
        user = await get_or_create_user(db, data)
        users[user.role] = user
    await db.commit()
    logger.info(f"Users ready: {len(users)}")
    return users

async def seed(db: AsyncSession):
    users = await seed_users(db)
    admin_id = users[UserRole.ADMIN.value].id

    vehicles = [await get_or_create_vehicle(db, data, admin_id) for data in VEHICLES_SEED]
    await db.commit()
    logger.info(f"Vehicles ready: {len(vehicles)}")

    customers = [await get_or_create_customer(db, data, admin_id) for data in CUSTOMERS_SEED]
    await db.commit()
    logger.info(f"Customers ready: {len(customers)}")

# ----------------------------------------------------------------------
# ASYNC ENTRY POINT
# ----------------------------------------------------------------------

async def main():
    # Create tables (safe if already created)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as db:
        try:
            await seed(db)
            logger.info("Initial seed completed successfully")
        except Exception as ex:
            await db.rollback()
            logger.error(f"Seed failed: {ex}")
            raise

if __name__ == "__main__":
    from rentauto.core.logging_config import setup_logging

    setup_logging()
    asyncio.run(main())
