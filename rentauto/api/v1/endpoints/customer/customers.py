import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rentauto.core.database import get_async_session
from rentauto.api.dependencies import Pagination, require_permission
from rentauto.models.shared.enums import DocumentType
from rentauto.schemas.common.pagination import PaginatedResponse
from rentauto.schemas.common.response import ApiResponse
from rentauto.schemas.customer.customer import (
    CustomerCreate,
    CustomerDetailResponse,
    CustomerResponse,
    CustomerStats,
    CustomerUpdate,
    CustomerValidation,
)
from rentauto.services.customer.customer_service import CustomerService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/", response_model=ApiResponse[PaginatedResponse[CustomerResponse]])
async def get_customers(
    pagination: Pagination = Depends(),
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    document_type: Optional[DocumentType] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("customer", "list"))
):
    """Get list of customers with optional filters"""
    try:
        customer_service = CustomerService(session)
        customers = await customer_service.get_customers(
            page=pagination.page,
            limit=pagination.limit,
            search=search,
            is_active=is_active,
            document_type=document_type.value if document_type else None
        )
        return {"success": True, "data": customers}
    except Exception as e:
        logger.error(f"Error getting customers: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve customers"
        )

@router.get("/stats", response_model=ApiResponse[CustomerStats])
async def get_customer_stats(
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("customer", "list"))
):
    try:
        customer_service = CustomerService(session)
        stats = await customer_service.get_customer_stats()
        return {"success": True, "data": stats}
    except Exception as e:
        logger.error(f"Error getting customer stats: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve customer statistics"
        )

@router.get("/{customer_id}", response_model=ApiResponse[CustomerDetailResponse])
async def get_customer(
    customer_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("customer", "read"))
):
    """Get customer by ID with rental history"""
    try:
        customer_service = CustomerService(session)
        customer = await customer_service.get_customer(customer_id, with_rentals=True)
        if not customer:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Customer not found"
            )
        return {"success": True, "data": customer}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting customer {customer_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve customer"
        )

@router.get("/{customer_id}/validate", response_model=ApiResponse[CustomerValidation])
async def validate_customer(
    customer_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("customer", "validate"))
):
    """Check whether the customer may take a new rental"""
    try:
        customer_service = CustomerService(session)
        result = await customer_service.validate_customer(customer_id)
        message = "Customer is eligible to rent" if result["is_valid"] else "Customer is not eligible to rent"
        return {"success": True, "message": message, "data": result}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error validating customer {customer_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to validate customer"
        )

@router.post("/", response_model=ApiResponse[CustomerResponse], status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("customer", "create"))
):
    """Create a new customer"""
    try:
        customer_service = CustomerService(session)
        customer = await customer_service.create_customer(customer_data, current_user.id)
        return {"success": True, "message": "Customer created successfully", "data": customer}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating customer: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create customer"
        )

@router.put("/{customer_id}", response_model=ApiResponse[CustomerResponse])
async def update_customer(
    customer_id: int,
    customer_data: CustomerUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("customer", "update"))
):
    """Update customer"""
    try:
        customer_service = CustomerService(session)
        customer = await customer_service.update_customer(customer_id, customer_data, current_user.id)
        return {"success": True, "message": "Customer updated successfully", "data": customer}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating customer {customer_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update customer"
        )

@router.delete("/{customer_id}", response_model=ApiResponse[None])
async def delete_customer(
    customer_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("customer", "delete"))
):
    """Delete customer"""
    try:
        customer_service = CustomerService(session)
        await customer_service.delete_customer(customer_id, current_user.id)
        return {"success": True, "message": "Customer deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting customer {customer_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete customer"
        )
