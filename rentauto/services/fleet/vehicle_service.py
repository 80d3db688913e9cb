# rentauto/services/fleet/vehicle_service.py
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, exists

from rentauto.core.exceptions import BusinessRuleError, ConflictError, NotFoundError, ValidationError
from rentauto.models.fleet.vehicle import Vehicle
from rentauto.models.rental.rental import Rental
from rentauto.models.shared.enums import OPEN_RENTAL_STATUSES, VehicleStatus
from rentauto.schemas.fleet.vehicle import VehicleCreate, VehicleUpdate
from rentauto.utils.pagination import paginate

logger = logging.getLogger(__name__)

class VehicleService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_vehicle(self, vehicle_data: VehicleCreate, user_id: int) -> Vehicle:
        """Create a new vehicle"""
        try:
            await self._ensure_unique(vehicle_data.license_plate, vehicle_data.vin)

            vehicle = Vehicle(**vehicle_data.model_dump())
            vehicle.status = VehicleStatus.AVAILABLE.value
            vehicle.is_active = True
            vehicle.created_by = user_id
            self.session.add(vehicle)
            await self.session.commit()
            await self.session.refresh(vehicle)

            logger.info(f"Vehicle created successfully with ID: {vehicle.id} ({vehicle.license_plate})")
            return vehicle

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating vehicle: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create vehicle"
            )

    async def get_vehicle(self, vehicle_id: int) -> Optional[Vehicle]:
        """Get vehicle by ID"""
        result = await self.session.execute(
            select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.is_deleted == False)
        )
        return result.scalar_one_or_none()

    async def get_vehicles(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        vehicle_status: Optional[str] = None,
        vehicle_type: Optional[str] = None,
        brand: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> Dict[str, Any]:
        """Get list of vehicles with filters"""
        conditions = [Vehicle.is_deleted == False]

        if search:
            conditions.append(
                or_(
                    Vehicle.license_plate.ilike(f"%{search}%"),
                    Vehicle.brand.ilike(f"%{search}%"),
                    Vehicle.model.ilike(f"%{search}%")
                )
            )
        if vehicle_status:
            conditions.append(Vehicle.status == vehicle_status)
        if vehicle_type:
            conditions.append(Vehicle.vehicle_type == vehicle_type)
        if brand:
            conditions.append(Vehicle.brand.ilike(f"%{brand}%"))
        if is_active is not None:
            conditions.append(Vehicle.is_active == is_active)

        query = select(Vehicle).where(and_(*conditions)).order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
        return await paginate(self.session, query, page, limit)

    async def get_available_vehicles(
        self,
        start_date: datetime,
        end_date: datetime,
        vehicle_type: Optional[str] = None
    ) -> List[Vehicle]:
        """Active, available vehicles with no open rental overlapping the window"""
        if start_date >= end_date:
            raise ValidationError("end_date must be after start_date")

        conflicting = exists().where(
            Rental.vehicle_id == Vehicle.id,
            Rental.is_deleted == False,
            Rental.rental_status.in_(OPEN_RENTAL_STATUSES),
            Rental.start_date <= end_date,
            Rental.end_date >= start_date,
        )
        conditions = [
            Vehicle.is_deleted == False,
            Vehicle.is_active == True,
            Vehicle.status == VehicleStatus.AVAILABLE.value,
            ~conflicting,
        ]
        if vehicle_type:
            conditions.append(Vehicle.vehicle_type == vehicle_type)

        result = await self.session.execute(
            select(Vehicle).where(and_(*conditions)).order_by(Vehicle.daily_rate.asc(), Vehicle.id)
        )
        return list(result.scalars().all())

    async def update_vehicle(self, vehicle_id: int, vehicle_data: VehicleUpdate, user_id: int) -> Vehicle:
        """Update vehicle"""
        try:
            vehicle = await self.get_vehicle(vehicle_id)
            if not vehicle:
                raise NotFoundError("Vehicle not found")

            update_data = {k: v for k, v in vehicle_data.model_dump(exclude_unset=True).items() if v is not None or k == "notes"}
            await self._ensure_unique(
                update_data.get("license_plate"),
                update_data.get("vin"),
                exclude_id=vehicle_id
            )

            for field, value in update_data.items():
                setattr(vehicle, field, value)

            vehicle.updated_by = user_id
            await self.session.commit()
            await self.session.refresh(vehicle)

            logger.info(f"Vehicle {vehicle_id} updated successfully")
            return vehicle

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating vehicle {vehicle_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update vehicle"
            )

    async def update_mileage(self, vehicle_id: int, mileage: int, user_id: int) -> Vehicle:
        """Record a new odometer reading; readings never go backwards"""
        try:
            vehicle = await self.get_vehicle(vehicle_id)
            if not vehicle:
                raise NotFoundError("Vehicle not found")

            if mileage < (vehicle.current_mileage or 0):
                raise BusinessRuleError(
                    f"New mileage cannot be lower than the current mileage ({vehicle.current_mileage})"
                )

            vehicle.current_mileage = mileage
            vehicle.updated_by = user_id
            await self.session.commit()
            await self.session.refresh(vehicle)

            if vehicle.next_maintenance_mileage and mileage >= vehicle.next_maintenance_mileage:
                logger.warning(f"Vehicle {vehicle.license_plate} reached its maintenance mileage ({mileage} km)")
            return vehicle

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating mileage for vehicle {vehicle_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update mileage"
            )

    async def delete_vehicle(self, vehicle_id: int, user_id: int) -> bool:
        """Soft delete vehicle"""
        try:
            vehicle = await self.get_vehicle(vehicle_id)
            if not vehicle:
                raise NotFoundError("Vehicle not found")

            # Check if vehicle has open rentals
            open_rentals = await self.session.scalar(
                select(func.count(Rental.id)).where(
                    Rental.vehicle_id == vehicle_id,
                    Rental.is_deleted == False,
                    Rental.rental_status.in_(OPEN_RENTAL_STATUSES)
                )
            )
            if open_rentals:
                raise ConflictError("Cannot delete vehicle with reserved, confirmed or active rentals")

            vehicle.is_active = False
            vehicle.is_deleted = True
            vehicle.status = VehicleStatus.INACTIVE.value
            vehicle.updated_by = user_id
            await self.session.commit()

            logger.info(f"Vehicle {vehicle_id} deleted successfully")
            return True

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting vehicle {vehicle_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to delete vehicle"
            )

    async def get_vehicle_stats(self) -> Dict[str, Any]:
        result = await self.session.execute(
            select(Vehicle.status, func.count(Vehicle.id))
            .where(Vehicle.is_deleted == False)
            .group_by(Vehicle.status)
        )
        by_status = {vehicle_status.value: 0 for vehicle_status in VehicleStatus}
        by_status.update({row[0]: row[1] for row in result.all()})

        maintenance_due = await self.session.scalar(
            select(func.count(Vehicle.id)).where(
                Vehicle.is_deleted == False,
                Vehicle.is_active == True,
                Vehicle.next_maintenance_mileage.is_not(None),
                Vehicle.current_mileage >= Vehicle.next_maintenance_mileage
            )
        )

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "maintenance_due": maintenance_due or 0,
        }

    async def _ensure_unique(
        self,
        license_plate: Optional[str],
        vin: Optional[str],
        exclude_id: Optional[int] = None
    ) -> None:
        checks = (
            (license_plate, Vehicle.license_plate, "License plate already exists"),
            (vin, Vehicle.vin, "VIN already exists"),
        )
        for value, column, message in checks:
            if not value:
                continue
            query = select(Vehicle.id).where(column == value)
            if exclude_id is not None:
                query = query.where(Vehicle.id != exclude_id)
            if (await self.session.execute(query)).first():
                raise ConflictError(message)
