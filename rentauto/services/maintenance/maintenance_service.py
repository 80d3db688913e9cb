# rentauto/services/maintenance/maintenance_service.py
import logging
from typing import Any, Dict, Optional
from datetime import datetime, timedelta
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, update
from sqlalchemy.orm import selectinload

from rentauto.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from rentauto.models.fleet.vehicle import Vehicle
from rentauto.models.maintenance.maintenance import Maintenance
from rentauto.models.shared.enums import (
    OPEN_MAINTENANCE_STATUSES,
    MaintenancePriority,
    MaintenanceStatus,
    VehicleStatus,
)
from rentauto.schemas.maintenance.maintenance import (
    MaintenanceCancel,
    MaintenanceComplete,
    MaintenanceCreate,
    MaintenanceStart,
    MaintenanceUpdate,
)
from rentauto.services.rental.pricing import money
from rentauto.utils.dates import utc_now
from rentauto.utils.pagination import paginate
from rentauto.utils.references import generate_reference

logger = logging.getLogger(__name__)

CLOSED_MAINTENANCE_STATUSES = (
    MaintenanceStatus.COMPLETED.value,
    MaintenanceStatus.CANCELLED.value,
)
NULLABLE_UPDATE_FIELDS = {"notes", "service_provider", "service_provider_contact"}


class MaintenanceService:
    def __init__(self, session: AsyncSession):
        self.session = session

    # =================== QUERIES ===================

    async def get_maintenance(self, maintenance_id: int) -> Optional[Maintenance]:
        """Get maintenance by ID with its vehicle loaded"""
        result = await self.session.execute(
            select(Maintenance)
            .options(selectinload(Maintenance.vehicle))
            .where(Maintenance.id == maintenance_id, Maintenance.is_deleted == False)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_maintenances(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        maintenance_type: Optional[str] = None,
        maintenance_status: Optional[str] = None,
        priority: Optional[str] = None,
        vehicle_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Get list of maintenances with filters"""
        await self.mark_overdue()

        conditions = [Maintenance.is_deleted == False]

        if search:
            conditions.append(
                or_(
                    Maintenance.title.ilike(f"%{search}%"),
                    Maintenance.maintenance_number.ilike(f"%{search}%"),
                    Maintenance.service_provider.ilike(f"%{search}%")
                )
            )
        if maintenance_type:
            conditions.append(Maintenance.maintenance_type == maintenance_type)
        if maintenance_status:
            conditions.append(Maintenance.status == maintenance_status)
        if priority:
            conditions.append(Maintenance.priority == priority)
        if vehicle_id:
            conditions.append(Maintenance.vehicle_id == vehicle_id)
        if start_date:
            conditions.append(Maintenance.scheduled_date >= start_date)
        if end_date:
            conditions.append(Maintenance.scheduled_date <= end_date)

        query = (
            select(Maintenance)
            .where(and_(*conditions))
            .order_by(Maintenance.scheduled_date.desc(), Maintenance.id.desc())
        )
        return await paginate(self.session, query, page, limit)

    async def mark_overdue(self) -> int:
        """Flag scheduled maintenances whose date has passed"""
        result = await self.session.execute(
            update(Maintenance)
            .where(
                Maintenance.is_deleted == False,
                Maintenance.status == MaintenanceStatus.SCHEDULED.value,
                Maintenance.scheduled_date < utc_now()
            )
            .values(status=MaintenanceStatus.OVERDUE.value)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount:
            logger.info(f"Marked {result.rowcount} maintenance(s) as overdue")
        return result.rowcount or 0

    async def get_maintenance_stats(self) -> Dict[str, Any]:
        base = Maintenance.is_deleted == False

        status_rows = await self.session.execute(
            select(Maintenance.status, func.count(Maintenance.id)).where(base).group_by(Maintenance.status)
        )
        by_status = {maintenance_status.value: 0 for maintenance_status in MaintenanceStatus}
        by_status.update({row[0]: row[1] for row in status_rows.all()})

        type_rows = await self.session.execute(
            select(Maintenance.maintenance_type, func.count(Maintenance.id))
            .where(base)
            .group_by(Maintenance.maintenance_type)
        )
        by_type = {row[0]: row[1] for row in type_rows.all()}

        overdue = await self.session.scalar(
            select(func.count(Maintenance.id)).where(
                base,
                or_(
                    Maintenance.status == MaintenanceStatus.OVERDUE.value,
                    and_(
                        Maintenance.status == MaintenanceStatus.SCHEDULED.value,
                        Maintenance.scheduled_date < utc_now()
                    )
                )
            )
        )
        critical_pending = await self.session.scalar(
            select(func.count(Maintenance.id)).where(
                base,
                Maintenance.priority == MaintenancePriority.CRITICAL.value,
                Maintenance.status.in_(OPEN_MAINTENANCE_STATUSES)
            )
        )
        total_cost = await self.session.scalar(
            select(func.coalesce(func.sum(Maintenance.actual_cost), 0)).where(
                base, Maintenance.status == MaintenanceStatus.COMPLETED.value
            )
        )

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "overdue": overdue or 0,
            "critical_pending": critical_pending or 0,
            "total_cost": money(total_cost),
            "by_type": by_type,
        }

    async def get_vehicles_due(self, days_ahead: int = 30) -> Dict[str, Any]:
        """Vehicles due by mileage, with overdue work, or with work scheduled soon"""
        now = utc_now()
        horizon = now + timedelta(days=days_ahead)

        by_mileage = await self.session.execute(
            select(Vehicle)
            .where(
                Vehicle.is_deleted == False,
                Vehicle.is_active == True,
                Vehicle.next_maintenance_mileage.is_not(None),
                Vehicle.current_mileage >= Vehicle.next_maintenance_mileage
            )
            .order_by(Vehicle.current_mileage.desc())
        )
        due_by_mileage = [
            {
                "vehicle": vehicle,
                "reason": "Mileage limit reached",
                "current_mileage": vehicle.current_mileage,
                "next_maintenance_mileage": vehicle.next_maintenance_mileage,
            }
            for vehicle in by_mileage.scalars().all()
        ]

        pending = await self.session.execute(
            select(Maintenance)
            .options(selectinload(Maintenance.vehicle))
            .join(Vehicle, Vehicle.id == Maintenance.vehicle_id)
            .where(
                Maintenance.is_deleted == False,
                Vehicle.is_deleted == False,
                Maintenance.status.in_((MaintenanceStatus.SCHEDULED.value, MaintenanceStatus.OVERDUE.value)),
                Maintenance.scheduled_date <= horizon
            )
            .order_by(Maintenance.scheduled_date)
        )

        overdue, upcoming = [], []
        for maintenance in pending.scalars().all():
            is_overdue = maintenance.scheduled_date < now
            (overdue if is_overdue else upcoming).append({
                "vehicle": maintenance.vehicle,
                "reason": f"{'Overdue' if is_overdue else 'Scheduled'}: {maintenance.title}",
                "current_mileage": maintenance.vehicle.current_mileage,
                "next_maintenance_mileage": maintenance.vehicle.next_maintenance_mileage,
                "maintenance_id": maintenance.id,
                "scheduled_date": maintenance.scheduled_date,
            })

        return {"due_by_mileage": due_by_mileage, "overdue": overdue, "upcoming": upcoming}

    # =================== LIFECYCLE ===================

    async def create_maintenance(self, maintenance_data: MaintenanceCreate, user_id: int) -> Maintenance:
        """
        Schedule maintenance for a vehicle.

        A date already in the past stores the record as overdue. Critical work
        takes an available vehicle out of service immediately.
        """
        try:
            vehicle = await self._lock_vehicle(maintenance_data.vehicle_id)
            if not vehicle.is_active:
                raise BusinessRuleError("Vehicle is not active")

            maintenance = Maintenance(
                **maintenance_data.model_dump(),
                maintenance_number=await self._generate_maintenance_number(),
                created_by=user_id,
            )
            maintenance.status = self._scheduled_status(maintenance.scheduled_date)

            if (
                maintenance.priority == MaintenancePriority.CRITICAL.value
                and maintenance.status == MaintenanceStatus.SCHEDULED.value
            ):
                if vehicle.status == VehicleStatus.AVAILABLE.value:
                    vehicle.status = VehicleStatus.MAINTENANCE.value
                    vehicle.updated_by = user_id
                else:
                    logger.warning(
                        f"Critical maintenance scheduled for vehicle {vehicle.id} while {vehicle.status}, "
                        f"vehicle status left unchanged"
                    )

            self.session.add(maintenance)
            await self.session.commit()

            logger.info(f"Maintenance {maintenance.maintenance_number} created for vehicle {vehicle.id}")
            return await self.get_maintenance(maintenance.id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating maintenance: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create maintenance"
            )

    async def update_maintenance(self, maintenance_id: int, maintenance_data: MaintenanceUpdate, user_id: int) -> Maintenance:
        try:
            maintenance = await self._get_maintenance_or_404(maintenance_id)
            if maintenance.status in CLOSED_MAINTENANCE_STATUSES:
                raise BusinessRuleError(f"Cannot update a {maintenance.status} maintenance")

            update_data = {
                field: value
                for field, value in maintenance_data.model_dump(exclude_unset=True).items()
                if value is not None or field in NULLABLE_UPDATE_FIELDS
            }
            for field, value in update_data.items():
                setattr(maintenance, field, value)

            if maintenance.status in (MaintenanceStatus.SCHEDULED.value, MaintenanceStatus.OVERDUE.value):
                maintenance.status = self._scheduled_status(maintenance.scheduled_date)

            maintenance.updated_by = user_id
            await self.session.commit()

            logger.info(f"Maintenance {maintenance.maintenance_number} updated: {', '.join(update_data) or 'no changes'}")
            return await self.get_maintenance(maintenance.id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating maintenance {maintenance_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update maintenance"
            )

    async def start_maintenance(self, maintenance_id: int, start_data: MaintenanceStart, user_id: int) -> Maintenance:
        """Put the vehicle into the workshop"""
        try:
            maintenance = await self._get_maintenance_or_404(maintenance_id)
            if maintenance.status not in (MaintenanceStatus.SCHEDULED.value, MaintenanceStatus.OVERDUE.value):
                raise BusinessRuleError("Only scheduled or overdue maintenance can be started")

            vehicle = await self._lock_vehicle(maintenance.vehicle_id)
            if vehicle.status == VehicleStatus.RENTED.value:
                raise ConflictError("Vehicle is currently rented and cannot go into maintenance")

            maintenance.status = MaintenanceStatus.IN_PROGRESS.value
            maintenance.mileage_at_maintenance = (
                start_data.mileage_at_maintenance
                if start_data.mileage_at_maintenance is not None
                else vehicle.current_mileage
            )
            maintenance.updated_by = user_id

            vehicle.status = VehicleStatus.MAINTENANCE.value
            vehicle.updated_by = user_id

            await self.session.commit()

            logger.info(f"Maintenance {maintenance.maintenance_number} started on vehicle {vehicle.id}")
            return await self.get_maintenance(maintenance.id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error starting maintenance {maintenance_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to start maintenance"
            )

    async def complete_maintenance(self, maintenance_id: int, complete_data: MaintenanceComplete, user_id: int) -> Maintenance:
        """Close in-progress work and return the vehicle to the fleet"""
        try:
            maintenance = await self._get_maintenance_or_404(maintenance_id)
            if maintenance.status != MaintenanceStatus.IN_PROGRESS.value:
                raise BusinessRuleError("Maintenance must be in progress to be completed")

            maintenance.status = MaintenanceStatus.COMPLETED.value
            maintenance.completed_date = complete_data.completed_date or utc_now()
            maintenance.actual_cost = complete_data.actual_cost
            maintenance.parts_replaced = [
                part.model_dump(mode="json") for part in complete_data.parts_replaced
            ] or None
            maintenance.labor_hours = complete_data.labor_hours
            maintenance.labor_cost = complete_data.labor_cost
            maintenance.invoice_number = complete_data.invoice_number
            maintenance.warranty_expiry = complete_data.warranty_expiry
            if complete_data.next_maintenance_mileage is not None:
                maintenance.next_maintenance_mileage = complete_data.next_maintenance_mileage
            if complete_data.next_maintenance_date is not None:
                maintenance.next_maintenance_date = complete_data.next_maintenance_date
            if complete_data.notes:
                maintenance.notes = complete_data.notes
            maintenance.completed_by = user_id
            maintenance.updated_by = user_id

            vehicle = await self._lock_vehicle(maintenance.vehicle_id)
            vehicle.last_maintenance_mileage = (
                maintenance.mileage_at_maintenance
                if maintenance.mileage_at_maintenance is not None
                else vehicle.current_mileage
            )
            if complete_data.next_maintenance_mileage is not None:
                vehicle.next_maintenance_mileage = complete_data.next_maintenance_mileage
            vehicle.updated_by = user_id
            await self._release_vehicle(maintenance, user_id)

            await self.session.commit()

            logger.info(
                f"Maintenance {maintenance.maintenance_number} completed, cost {maintenance.actual_cost}"
            )
            return await self.get_maintenance(maintenance.id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error completing maintenance {maintenance_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to complete maintenance"
            )

    async def cancel_maintenance(self, maintenance_id: int, cancel_data: MaintenanceCancel, user_id: int) -> Maintenance:
        try:
            maintenance = await self._get_maintenance_or_404(maintenance_id)
            if maintenance.status in CLOSED_MAINTENANCE_STATUSES:
                raise BusinessRuleError(f"Cannot cancel a {maintenance.status} maintenance")

            held_vehicle = self._holds_vehicle(maintenance)
            maintenance.status = MaintenanceStatus.CANCELLED.value
            if cancel_data.reason:
                note = f"Cancellation reason: {cancel_data.reason}"
                maintenance.notes = f"{maintenance.notes}\n\n{note}" if maintenance.notes else note
            maintenance.updated_by = user_id

            if held_vehicle:
                await self._release_vehicle(maintenance, user_id)

            await self.session.commit()

            logger.info(f"Maintenance {maintenance.maintenance_number} cancelled")
            return await self.get_maintenance(maintenance.id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error cancelling maintenance {maintenance_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to cancel maintenance"
            )

    async def delete_maintenance(self, maintenance_id: int, user_id: int) -> bool:
        """Soft delete maintenance"""
        try:
            maintenance = await self._get_maintenance_or_404(maintenance_id)
            if maintenance.status == MaintenanceStatus.COMPLETED.value:
                raise BusinessRuleError("Completed maintenance cannot be deleted")

            if self._holds_vehicle(maintenance):
                await self._release_vehicle(maintenance, user_id)
            maintenance.is_deleted = True
            maintenance.updated_by = user_id
            await self.session.commit()

            logger.info(f"Maintenance {maintenance_id} deleted successfully")
            return True

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting maintenance {maintenance_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to delete maintenance"
            )

    # =================== HELPERS ===================

    async def _get_maintenance_or_404(self, maintenance_id: int) -> Maintenance:
        result = await self.session.execute(
            select(Maintenance)
            .where(Maintenance.id == maintenance_id, Maintenance.is_deleted == False)
            .with_for_update()
        )
        maintenance = result.scalar_one_or_none()
        if not maintenance:
            raise NotFoundError("Maintenance not found")
        return maintenance

    async def _lock_vehicle(self, vehicle_id: int) -> Vehicle:
        result = await self.session.execute(
            select(Vehicle)
            .where(Vehicle.id == vehicle_id, Vehicle.is_deleted == False)
            .with_for_update()
        )
        vehicle = result.scalar_one_or_none()
        if not vehicle:
            raise NotFoundError("Vehicle not found")
        return vehicle

    @staticmethod
    def _scheduled_status(scheduled_date: datetime) -> str:
        if scheduled_date < utc_now():
            return MaintenanceStatus.OVERDUE.value
        return MaintenanceStatus.SCHEDULED.value

    @staticmethod
    def _holds_vehicle(maintenance: Maintenance) -> bool:
        """Whether this record is what keeps its vehicle in maintenance status"""
        if maintenance.status == MaintenanceStatus.IN_PROGRESS.value:
            return True
        return (
            maintenance.priority == MaintenancePriority.CRITICAL.value
            and maintenance.status in (MaintenanceStatus.SCHEDULED.value, MaintenanceStatus.OVERDUE.value)
        )

    async def _release_vehicle(self, maintenance: Maintenance, user_id: int) -> None:
        """Return the vehicle to available unless another open record still holds it"""
        vehicle = await self._lock_vehicle(maintenance.vehicle_id)
        if vehicle.status != VehicleStatus.MAINTENANCE.value:
            return

        other_holders = await self.session.scalar(
            select(func.count(Maintenance.id)).where(
                Maintenance.vehicle_id == vehicle.id,
                Maintenance.id != maintenance.id,
                Maintenance.is_deleted == False,
                or_(
                    Maintenance.status == MaintenanceStatus.IN_PROGRESS.value,
                    and_(
                        Maintenance.priority == MaintenancePriority.CRITICAL.value,
                        Maintenance.status.in_(
                            (MaintenanceStatus.SCHEDULED.value, MaintenanceStatus.OVERDUE.value)
                        )
                    )
                )
            )
        )
        if other_holders:
            logger.info(f"Vehicle {vehicle.id} stays in maintenance, {other_holders} other open record(s)")
            return

        vehicle.status = VehicleStatus.AVAILABLE.value
        vehicle.updated_by = user_id

    async def _maintenance_number_exists(self, maintenance_number: str) -> bool:
        result = await self.session.execute(
            select(Maintenance.id).where(Maintenance.maintenance_number == maintenance_number)
        )
        return result.first() is not None

    async def _generate_maintenance_number(self) -> str:
        """Generate unique maintenance number"""
        maintenance_number = generate_reference("MNT")
        while await self._maintenance_number_exists(maintenance_number):
            maintenance_number = generate_reference("MNT")
        return maintenance_number
