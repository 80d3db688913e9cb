# rentauto/services/rental/rental_service.py
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import selectinload

from rentauto.core.exceptions import BusinessRuleError, ConflictError, NotFoundError, ValidationError
from rentauto.models.customer.customer import Customer
from rentauto.models.fleet.vehicle import Vehicle
from rentauto.models.rental.rental import Rental
from rentauto.models.shared.enums import (
    OPEN_RENTAL_STATUSES,
    TERMINAL_RENTAL_STATUSES,
    RentalStatus,
    VehicleStatus,
)
from rentauto.schemas.rental.rental import RentalCancel, RentalComplete, RentalCreate, RentalStart, RentalUpdate
from rentauto.services.rental import pricing
from rentauto.utils.dates import utc_now
from rentauto.utils.pagination import paginate
from rentauto.utils.references import generate_reference

logger = logging.getLogger(__name__)

# Fields that may be cleared by sending null
NULLABLE_UPDATE_FIELDS = {"additional_notes"}


class RentalService:
    def __init__(self, session: AsyncSession):
        self.session = session

    # =================== QUERIES ===================

    async def get_rental(self, rental_id: int) -> Optional[Rental]:
        """Get rental by ID with customer and vehicle loaded"""
        result = await self.session.execute(
            select(Rental)
            .options(selectinload(Rental.customer), selectinload(Rental.vehicle))
            .where(Rental.id == rental_id, Rental.is_deleted == False)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_rentals(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        rental_status: Optional[str] = None,
        payment_status: Optional[str] = None,
        customer_id: Optional[int] = None,
        vehicle_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Get list of rentals with filters"""
        conditions = [Rental.is_deleted == False]

        if search:
            conditions.append(
                or_(
                    Rental.rental_number.ilike(f"%{search}%"),
                    Rental.pickup_location.ilike(f"%{search}%"),
                    Rental.return_location.ilike(f"%{search}%"),
                )
            )
        if rental_status:
            conditions.append(Rental.rental_status == rental_status)
        if payment_status:
            conditions.append(Rental.payment_status == payment_status)
        if customer_id:
            conditions.append(Rental.customer_id == customer_id)
        if vehicle_id:
            conditions.append(Rental.vehicle_id == vehicle_id)
        if start_date:
            conditions.append(Rental.start_date >= start_date)
        if end_date:
            conditions.append(Rental.start_date <= end_date)

        query = select(Rental).where(and_(*conditions)).order_by(Rental.created_at.desc(), Rental.id.desc())
        return await paginate(
            self.session,
            query,
            page,
            limit,
            options=(selectinload(Rental.customer), selectinload(Rental.vehicle)),
        )

    async def find_conflicts(
        self,
        vehicle_id: int,
        start_date: datetime,
        end_date: datetime,
        exclude_rental_id: Optional[int] = None,
    ) -> List[Rental]:
        """
        Open rentals on the vehicle whose period overlaps [start_date, end_date].

        Bounds are inclusive: an existing rental conflicts when it starts inside
        the period, ends inside it, or spans it. For valid periods that reduces to
        existing.start <= end AND existing.end >= start.
        """
        conditions = [
            Rental.vehicle_id == vehicle_id,
            Rental.is_deleted == False,
            Rental.rental_status.in_(OPEN_RENTAL_STATUSES),
            Rental.start_date <= end_date,
            Rental.end_date >= start_date,
        ]
        if exclude_rental_id is not None:
            conditions.append(Rental.id != exclude_rental_id)

        result = await self.session.execute(select(Rental).where(and_(*conditions)))
        return list(result.scalars().all())

    async def get_rental_stats(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        conditions = [Rental.is_deleted == False]
        if start_date and end_date:
            conditions.append(Rental.start_date.between(start_date, end_date))

        counts = await self.session.execute(
            select(Rental.rental_status, func.count(Rental.id))
            .where(and_(*conditions))
            .group_by(Rental.rental_status)
        )
        by_status = {row[0]: row[1] for row in counts.all()}

        revenue = await self.session.scalar(
            select(func.coalesce(func.sum(Rental.total_amount), 0)).where(
                and_(*conditions, Rental.rental_status == RentalStatus.COMPLETED.value)
            )
        )
        overdue = await self.session.scalar(
            select(func.count(Rental.id)).where(
                and_(
                    *conditions,
                    Rental.rental_status == RentalStatus.ACTIVE.value,
                    Rental.end_date < utc_now(),
                )
            )
        )

        return {
            "total": sum(by_status.values()),
            "active": by_status.get(RentalStatus.ACTIVE.value, 0),
            "completed": by_status.get(RentalStatus.COMPLETED.value, 0),
            "cancelled": by_status.get(RentalStatus.CANCELLED.value, 0),
            "overdue": overdue or 0,
            "total_revenue": pricing.money(revenue),
        }

    # =================== LIFECYCLE ===================

    async def create_rental(self, rental_data: RentalCreate, user_id: int) -> Rental:
        """
        Reserve a vehicle for a customer.

        Eligibility, the overlap check, pricing and the vehicle status switch
        all happen in one transaction; the vehicle row is locked and flipped
        to rented with a conditional update so two concurrent bookings cannot
        both succeed.
        """
        try:
            customer = await self._get_customer(rental_data.customer_id)
            if not customer.is_active:
                raise BusinessRuleError("Customer is not active")

            vehicle = await self._lock_vehicle(rental_data.vehicle_id)
            if not vehicle.is_active:
                raise BusinessRuleError("Vehicle is not active")

            conflicts = await self.find_conflicts(vehicle.id, rental_data.start_date, rental_data.end_date)
            if conflicts:
                raise ConflictError(
                    f"Vehicle already booked for the requested dates ({conflicts[0].rental_number})"
                )
            if vehicle.status != VehicleStatus.AVAILABLE.value:
                raise ConflictError(f"Vehicle is not available (current status: {vehicle.status})")

            charges = pricing.calculate_charges(
                daily_rate=vehicle.daily_rate,
                total_days=pricing.rental_days(rental_data.start_date, rental_data.end_date),
                additional_charges=rental_data.additional_charges,
                discount_amount=rental_data.discount_amount,
            )
            if charges.total_amount < 0:
                raise ValidationError("Discount cannot exceed the rental total")

            await self._claim_vehicle(vehicle, user_id)

            rental = Rental(
                rental_number=await self._generate_rental_number(),
                customer_id=customer.id,
                vehicle_id=vehicle.id,
                start_date=rental_data.start_date,
                end_date=rental_data.end_date,
                pickup_location=rental_data.pickup_location,
                return_location=rental_data.return_location,
                daily_rate=charges.daily_rate,
                total_days=charges.total_days,
                subtotal=charges.subtotal,
                tax_amount=charges.tax_amount,
                additional_charges=charges.additional_charges,
                discount_amount=charges.discount_amount,
                total_amount=charges.total_amount,
                deposit_amount=pricing.money(rental_data.deposit_amount),
                fuel_level_pickup=rental_data.fuel_level_pickup,
                additional_notes=rental_data.additional_notes,
                rental_status=RentalStatus.RESERVED.value,
                created_by=user_id,
            )
            self.session.add(rental)
            await self.session.commit()

            logger.info(
                f"Rental {rental.rental_number} created for vehicle {vehicle.id} "
                f"({rental.start_date} -> {rental.end_date}), total {rental.total_amount}"
            )
            return await self.get_rental(rental.id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating rental: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create rental"
            )

    async def update_rental(self, rental_id: int, rental_data: RentalUpdate, user_id: int) -> Rental:
        """Apply an allow-listed patch and recompute the totals"""
        try:
            rental = await self._get_rental_or_404(rental_id)
            if rental.rental_status in TERMINAL_RENTAL_STATUSES:
                raise BusinessRuleError(f"Cannot update a {rental.rental_status} rental")

            update_data = {
                field: value
                for field, value in rental_data.model_dump(exclude_unset=True).items()
                if value is not None or field in NULLABLE_UPDATE_FIELDS
            }

            if "start_date" in update_data or "end_date" in update_data:
                if rental.rental_status not in (RentalStatus.RESERVED.value, RentalStatus.CONFIRMED.value):
                    raise BusinessRuleError("Rental dates can only change before pickup")

                new_start = update_data.get("start_date", rental.start_date)
                new_end = update_data.get("end_date", rental.end_date)
                if new_start >= new_end:
                    raise ValidationError("end_date must be after start_date")

                await self._lock_vehicle(rental.vehicle_id)
                conflicts = await self.find_conflicts(
                    rental.vehicle_id, new_start, new_end, exclude_rental_id=rental.id
                )
                if conflicts:
                    raise ConflictError(
                        f"Vehicle already booked for the requested dates ({conflicts[0].rental_number})"
                    )

            for field, value in update_data.items():
                setattr(rental, field, value)

            charges = pricing.calculate_charges(
                daily_rate=rental.daily_rate,
                total_days=pricing.rental_days(rental.start_date, rental.end_date),
                additional_charges=rental.additional_charges,
                discount_amount=rental.discount_amount,
            )
            if charges.total_amount < 0:
                raise ValidationError("Discount cannot exceed the rental total")
            self._apply_charges(rental, charges)
            rental.updated_by = user_id

            await self.session.commit()

            logger.info(f"Rental {rental.rental_number} updated: {', '.join(update_data) or 'no changes'}")
            return await self.get_rental(rental.id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating rental {rental_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update rental"
            )

    async def confirm_rental(self, rental_id: int, user_id: int) -> Rental:
        """Move a reservation to confirmed"""
        try:
            rental = await self._get_rental_or_404(rental_id)
            if rental.rental_status != RentalStatus.RESERVED.value:
                raise BusinessRuleError("Only reserved rentals can be confirmed")

            rental.rental_status = RentalStatus.CONFIRMED.value
            rental.updated_by = user_id
            await self.session.commit()

            logger.info(f"Rental {rental.rental_number} confirmed")
            return await self.get_rental(rental.id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error confirming rental {rental_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to confirm rental"
            )

    async def start_rental(self, rental_id: int, start_data: RentalStart, user_id: int) -> Rental:
        """Hand the vehicle over to the customer"""
        try:
            rental = await self._get_rental_or_404(rental_id)
            if rental.rental_status != RentalStatus.CONFIRMED.value:
                raise BusinessRuleError("Rental must be confirmed before it can start")

            vehicle = await self._lock_vehicle(rental.vehicle_id)
            if start_data.pickup_mileage < (vehicle.current_mileage or 0):
                raise BusinessRuleError(
                    f"Pickup mileage cannot be lower than the vehicle's current mileage ({vehicle.current_mileage})"
                )

            rental.rental_status = RentalStatus.ACTIVE.value
            rental.pickup_mileage = start_data.pickup_mileage
            rental.fuel_level_pickup = start_data.fuel_level_pickup
            rental.damage_notes_pickup = start_data.damage_notes_pickup
            rental.updated_by = user_id

            vehicle.current_mileage = start_data.pickup_mileage
            vehicle.updated_by = user_id

            await self.session.commit()

            logger.info(f"Rental {rental.rental_number} started at {start_data.pickup_mileage} km")
            return await self.get_rental(rental.id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error starting rental {rental_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to start rental"
            )

    async def complete_rental(self, rental_id: int, complete_data: RentalComplete, user_id: int) -> Dict[str, Any]:
        """Close an active rental, charge late fees and release the vehicle"""
        try:
            rental = await self._get_rental_or_404(rental_id)
            if rental.rental_status != RentalStatus.ACTIVE.value:
                raise BusinessRuleError("Rental must be active to be completed")

            if rental.pickup_mileage is not None and complete_data.return_mileage < rental.pickup_mileage:
                raise BusinessRuleError(
                    f"Return mileage cannot be lower than pickup mileage ({rental.pickup_mileage})"
                )

            returned_at = complete_data.actual_return_date or utc_now()
            days_late = pricing.late_days(rental.end_date, returned_at)
            late_fee = pricing.late_fee(days_late, rental.daily_rate)

            base_charges = (
                complete_data.additional_charges
                if complete_data.additional_charges is not None
                else rental.additional_charges
            )
            total_additional = pricing.money(pricing.money(base_charges) + late_fee)
            new_total = pricing.total_amount(
                rental.subtotal, rental.tax_amount, total_additional, rental.discount_amount
            )

            rental.rental_status = RentalStatus.COMPLETED.value
            rental.actual_return_date = returned_at
            rental.return_mileage = complete_data.return_mileage
            rental.fuel_level_return = complete_data.fuel_level_return
            rental.damage_notes_return = complete_data.damage_notes_return
            rental.additional_charges = total_additional
            rental.total_amount = new_total
            rental.updated_by = user_id

            vehicle = await self._lock_vehicle(rental.vehicle_id)
            self._release_vehicle(vehicle, user_id)
            vehicle.current_mileage = max(vehicle.current_mileage or 0, complete_data.return_mileage)

            await self.session.commit()

            logger.info(
                f"Rental {rental.rental_number} completed, {days_late} late day(s), "
                f"late fee {late_fee}, total {new_total}"
            )
            return {
                "rental": await self.get_rental(rental.id),
                "late_days": days_late,
                "late_fees": late_fee,
                "total_additional_charges": total_additional,
                "new_total_amount": new_total,
            }

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error completing rental {rental_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to complete rental"
            )

    async def cancel_rental(self, rental_id: int, cancel_data: RentalCancel, user_id: int) -> Rental:
        """Cancel a non-terminal rental and free the vehicle"""
        try:
            rental = await self._get_rental_or_404(rental_id)
            if rental.rental_status in TERMINAL_RENTAL_STATUSES:
                raise BusinessRuleError(f"Cannot cancel a {rental.rental_status} rental")

            rental.rental_status = RentalStatus.CANCELLED.value
            if cancel_data.reason:
                note = f"Cancellation reason: {cancel_data.reason}"
                rental.additional_notes = f"{rental.additional_notes}\n\n{note}" if rental.additional_notes else note
            rental.updated_by = user_id

            vehicle = await self._lock_vehicle(rental.vehicle_id)
            self._release_vehicle(vehicle, user_id)

            await self.session.commit()

            logger.info(f"Rental {rental.rental_number} cancelled")
            return await self.get_rental(rental.id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error cancelling rental {rental_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to cancel rental"
            )

    # =================== HELPERS ===================

    async def _get_rental_or_404(self, rental_id: int) -> Rental:
        result = await self.session.execute(
            select(Rental)
            .where(Rental.id == rental_id, Rental.is_deleted == False)
            .with_for_update()
        )
        rental = result.scalar_one_or_none()
        if not rental:
            raise NotFoundError("Rental not found")
        return rental

    async def _get_customer(self, customer_id: int) -> Customer:
        result = await self.session.execute(
            select(Customer).where(Customer.id == customer_id, Customer.is_deleted == False)
        )
        customer = result.scalar_one_or_none()
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

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

    async def _claim_vehicle(self, vehicle: Vehicle, user_id: int) -> None:
        """Compare-and-swap the vehicle from available to rented"""
        result = await self.session.execute(
            update(Vehicle)
            .where(Vehicle.id == vehicle.id, Vehicle.status == VehicleStatus.AVAILABLE.value)
            .values(status=VehicleStatus.RENTED.value, updated_by=user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("Vehicle was booked by another request, please retry")
        await self.session.refresh(vehicle)

    def _release_vehicle(self, vehicle: Vehicle, user_id: int) -> None:
        if vehicle.status == VehicleStatus.RENTED.value:
            vehicle.status = VehicleStatus.AVAILABLE.value
            vehicle.updated_by = user_id
        else:
            logger.warning(f"Vehicle {vehicle.id} released while in status {vehicle.status}, left unchanged")

    @staticmethod
    def _apply_charges(rental: Rental, charges: pricing.RentalCharges) -> None:
        rental.total_days = charges.total_days
        rental.subtotal = charges.subtotal
        rental.tax_amount = charges.tax_amount
        rental.additional_charges = charges.additional_charges
        rental.discount_amount = charges.discount_amount
        rental.total_amount = charges.total_amount

    async def _rental_number_exists(self, rental_number: str) -> bool:
        result = await self.session.execute(
            select(Rental.id).where(Rental.rental_number == rental_number)
        )
        return result.first() is not None

    async def _generate_rental_number(self) -> str:
        """Generate unique rental number"""
        rental_number = generate_reference("RNT")
        while await self._rental_number_exists(rental_number):
            rental_number = generate_reference("RNT")
        return rental_number
