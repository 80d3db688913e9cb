# rentauto/services/customer/customer_service.py
import logging
from typing import Any, Dict, Optional
from datetime import timedelta
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, distinct
from sqlalchemy.orm import selectinload

from rentauto.core.config import settings
from rentauto.core.exceptions import ConflictError, NotFoundError
from rentauto.models.customer.customer import Customer
from rentauto.models.rental.rental import Rental
from rentauto.models.shared.enums import OPEN_RENTAL_STATUSES, RentalStatus
from rentauto.schemas.customer.customer import CustomerCreate, CustomerUpdate
from rentauto.utils.dates import calculate_age, utc_now
from rentauto.utils.pagination import paginate

logger = logging.getLogger(__name__)

# Unique columns and the message raised when a value is already taken
UNIQUE_FIELDS = (
    ("email", "Email is already registered"),
    ("document_number", "Document number is already registered"),
    ("driver_license_number", "Driver license number is already registered"),
)

class CustomerService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_customer(self, customer_data: CustomerCreate, user_id: int) -> Customer:
        """Create a new customer"""
        try:
            payload = customer_data.model_dump()
            payload["email"] = payload["email"].lower()
            await self._ensure_unique(payload)

            customer = Customer(**payload, is_active=True, created_by=user_id)
            self.session.add(customer)
            await self.session.commit()
            await self.session.refresh(customer)

            logger.info(f"Customer created successfully with ID: {customer.id}")
            return customer

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating customer: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create customer"
            )

    async def get_customer(self, customer_id: int, with_rentals: bool = False) -> Optional[Customer]:
        """Get customer by ID"""
        query = select(Customer).where(Customer.id == customer_id, Customer.is_deleted == False)
        if with_rentals:
            query = query.options(selectinload(Customer.rentals)).execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_customers(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        document_type: Optional[str] = None
    ) -> Dict[str, Any]:
        """Get list of customers with filters"""
        conditions = [Customer.is_deleted == False]

        if search:
            conditions.append(
                or_(
                    Customer.first_name.ilike(f"%{search}%"),
                    Customer.last_name.ilike(f"%{search}%"),
                    Customer.email.ilike(f"%{search}%"),
                    Customer.document_number.ilike(f"%{search}%"),
                    Customer.phone.ilike(f"%{search}%")
                )
            )
        if is_active is not None:
            conditions.append(Customer.is_active == is_active)
        if document_type:
            conditions.append(Customer.document_type == document_type)

        query = select(Customer).where(and_(*conditions)).order_by(Customer.created_at.desc(), Customer.id.desc())
        return await paginate(self.session, query, page, limit)

    async def update_customer(self, customer_id: int, customer_data: CustomerUpdate, user_id: int) -> Customer:
        """Update customer"""
        try:
            customer = await self.get_customer(customer_id)
            if not customer:
                raise NotFoundError("Customer not found")

            update_data = {
                k: v for k, v in customer_data.model_dump(exclude_unset=True).items()
                if v is not None or k in ("notes", "emergency_contact_name", "emergency_contact_phone")
            }
            if update_data.get("email"):
                update_data["email"] = update_data["email"].lower()
            await self._ensure_unique(update_data, exclude_id=customer_id)

            for field, value in update_data.items():
                setattr(customer, field, value)

            customer.updated_by = user_id
            await self.session.commit()
            await self.session.refresh(customer)

            logger.info(f"Customer {customer_id} updated successfully")
            return customer

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating customer {customer_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update customer"
            )

    async def delete_customer(self, customer_id: int, user_id: int) -> bool:
        """Soft delete customer"""
        try:
            customer = await self.get_customer(customer_id)
            if not customer:
                raise NotFoundError("Customer not found")

            if await self._count_open_rentals(customer_id):
                raise ConflictError("Cannot delete customer with reserved, confirmed or active rentals")

            customer.is_active = False
            customer.is_deleted = True
            customer.updated_by = user_id
            await self.session.commit()

            logger.info(f"Customer {customer_id} deleted successfully")
            return True

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting customer {customer_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to delete customer"
            )

    async def validate_customer(self, customer_id: int) -> Dict[str, Any]:
        """Check whether a customer may take a new rental"""
        customer = await self.get_customer(customer_id)
        if not customer:
            raise NotFoundError("Customer not found")

        today = utc_now().date()
        errors = []

        if not customer.is_active:
            errors.append("Customer is not active")
        if customer.driver_license_expiry < today:
            errors.append("Driver license has expired")
        if calculate_age(customer.date_of_birth, today) < settings.MIN_CUSTOMER_AGE:
            errors.append(f"Customer must be at least {settings.MIN_CUSTOMER_AGE} years old")

        open_rentals = await self._count_open_rentals(customer_id)
        if open_rentals:
            errors.append(f"Customer has {open_rentals} open rental(s)")

        return {
            "customer_id": customer.id,
            "is_valid": not errors,
            "validation_errors": errors,
        }

    async def get_customer_stats(self) -> Dict[str, Any]:
        today = utc_now().date()
        warning_limit = today + timedelta(days=settings.LICENSE_EXPIRY_WARNING_DAYS)
        active = and_(Customer.is_deleted == False, Customer.is_active == True)

        total_active = await self.session.scalar(select(func.count(Customer.id)).where(active))
        with_active_rentals = await self.session.scalar(
            select(func.count(distinct(Rental.customer_id)))
            .join(Customer, Customer.id == Rental.customer_id)
            .where(active, Rental.rental_status == RentalStatus.ACTIVE.value, Rental.is_deleted == False)
        )
        expired = await self.session.scalar(
            select(func.count(Customer.id)).where(active, Customer.driver_license_expiry < today)
        )
        expiring = await self.session.scalar(
            select(func.count(Customer.id)).where(
                active,
                Customer.driver_license_expiry >= today,
                Customer.driver_license_expiry <= warning_limit
            )
        )

        return {
            "total_active": total_active or 0,
            "with_active_rentals": with_active_rentals or 0,
            "expired_licenses": expired or 0,
            "expiring_licenses": expiring or 0,
        }

    async def _count_open_rentals(self, customer_id: int) -> int:
        count = await self.session.scalar(
            select(func.count(Rental.id)).where(
                Rental.customer_id == customer_id,
                Rental.is_deleted == False,
                Rental.rental_status.in_(OPEN_RENTAL_STATUSES)
            )
        )
        return count or 0

    async def _ensure_unique(self, data: Dict[str, Any], exclude_id: Optional[int] = None) -> None:
        for field, message in UNIQUE_FIELDS:
            value = data.get(field)
            if not value:
                continue
            query = select(Customer.id).where(getattr(Customer, field) == value)
            if exclude_id is not None:
                query = query.where(Customer.id != exclude_id)
            if (await self.session.execute(query)).first():
                raise ConflictError(message)
