import logging
from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rentauto.core.database import get_async_session
from rentauto.api.dependencies import Pagination, require_permission
from rentauto.models.shared.enums import PaymentStatus, RentalStatus
from rentauto.schemas.common.pagination import PaginatedResponse
from rentauto.schemas.common.response import ApiResponse
from rentauto.schemas.rental.rental import (
    RentalCancel,
    RentalComplete,
    RentalCompletion,
    RentalCreate,
    RentalDetailResponse,
    RentalStart,
    RentalStats,
    RentalUpdate,
)
from rentauto.services.rental.rental_service import RentalService
from rentauto.utils.dates import to_naive_utc

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/", response_model=ApiResponse[PaginatedResponse[RentalDetailResponse]])
async def get_rentals(
    pagination: Pagination = Depends(),
    search: Optional[str] = Query(None),
    rental_status: Optional[RentalStatus] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    customer_id: Optional[int] = Query(None),
    vehicle_id: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("rental", "list"))
):
    """Get list of rentals with optional filters"""
    try:
        rental_service = RentalService(session)
        rentals = await rental_service.get_rentals(
            page=pagination.page,
            limit=pagination.limit,
            search=search,
            rental_status=rental_status.value if rental_status else None,
            payment_status=payment_status.value if payment_status else None,
            customer_id=customer_id,
            vehicle_id=vehicle_id,
            start_date=to_naive_utc(start_date),
            end_date=to_naive_utc(end_date)
        )
        return {"success": True, "data": rentals}
    except Exception as e:
        logger.error(f"Error getting rentals: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve rentals"
        )

@router.get("/stats", response_model=ApiResponse[RentalStats])
async def get_rental_stats(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("rental", "list"))
):
    try:
        rental_service = RentalService(session)
        stats = await rental_service.get_rental_stats(to_naive_utc(start_date), to_naive_utc(end_date))
        return {"success": True, "data": stats}
    except Exception as e:
        logger.error(f"Error getting rental stats: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve rental statistics"
        )

@router.get("/{rental_id}", response_model=ApiResponse[RentalDetailResponse])
async def get_rental(
    rental_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("rental", "read"))
):
    """Get rental by ID"""
    try:
        rental_service = RentalService(session)
        rental = await rental_service.get_rental(rental_id)
        if not rental:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Rental not found"
            )
        return {"success": True, "data": rental}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting rental {rental_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve rental"
        )

@router.post("/", response_model=ApiResponse[RentalDetailResponse], status_code=status.HTTP_201_CREATED)
async def create_rental(
    rental_data: RentalCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("rental", "create"))
):
    """Reserve a vehicle for a customer"""
    try:
        rental_service = RentalService(session)
        rental = await rental_service.create_rental(rental_data, current_user.id)
        return {"success": True, "message": "Rental created successfully", "data": rental}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating rental: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create rental"
        )

@router.put("/{rental_id}", response_model=ApiResponse[RentalDetailResponse])
async def update_rental(
    rental_id: int,
    rental_data: RentalUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("rental", "update"))
):
    """Update rental"""
    try:
        rental_service = RentalService(session)
        rental = await rental_service.update_rental(rental_id, rental_data, current_user.id)
        return {"success": True, "message": "Rental updated successfully", "data": rental}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating rental {rental_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update rental"
        )

@router.patch("/{rental_id}/confirm", response_model=ApiResponse[RentalDetailResponse])
async def confirm_rental(
    rental_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("rental", "confirm"))
):
    try:
        rental_service = RentalService(session)
        rental = await rental_service.confirm_rental(rental_id, current_user.id)
        return {"success": True, "message": "Rental confirmed successfully", "data": rental}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error confirming rental {rental_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to confirm rental"
        )

@router.patch("/{rental_id}/start", response_model=ApiResponse[RentalDetailResponse])
async def start_rental(
    rental_id: int,
    start_data: RentalStart,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("rental", "start"))
):
    """Hand the vehicle over to the customer"""
    try:
        rental_service = RentalService(session)
        rental = await rental_service.start_rental(rental_id, start_data, current_user.id)
        return {"success": True, "message": "Rental started successfully", "data": rental}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error starting rental {rental_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start rental"
        )

@router.patch("/{rental_id}/complete", response_model=ApiResponse[RentalCompletion])
async def complete_rental(
    rental_id: int,
    complete_data: RentalComplete,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("rental", "complete"))
):
    """Close the rental, charge late fees and release the vehicle"""
    try:
        rental_service = RentalService(session)
        result = await rental_service.complete_rental(rental_id, complete_data, current_user.id)
        return {"success": True, "message": "Rental completed successfully", "data": result}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error completing rental {rental_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to complete rental"
        )

@router.patch("/{rental_id}/cancel", response_model=ApiResponse[RentalDetailResponse])
async def cancel_rental(
    rental_id: int,
    cancel_data: Optional[RentalCancel] = None,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("rental", "cancel"))
):
    """Cancel a rental and free the vehicle"""
    try:
        rental_service = RentalService(session)
        rental = await rental_service.cancel_rental(rental_id, cancel_data or RentalCancel(), current_user.id)
        return {"success": True, "message": "Rental cancelled successfully", "data": rental}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error cancelling rental {rental_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel rental"
        )
