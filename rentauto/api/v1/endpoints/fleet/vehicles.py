import logging
from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rentauto.core.database import get_async_session
from rentauto.api.dependencies import Pagination, require_permission
from rentauto.models.shared.enums import VehicleStatus, VehicleType
from rentauto.schemas.common.pagination import PaginatedResponse
from rentauto.schemas.common.response import ApiResponse
from rentauto.schemas.fleet.vehicle import (
    MileageUpdate,
    VehicleCreate,
    VehicleResponse,
    VehicleStats,
    VehicleUpdate,
)
from rentauto.services.fleet.vehicle_service import VehicleService
from rentauto.utils.dates import to_naive_utc

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/available", response_model=ApiResponse[List[VehicleResponse]])
async def get_available_vehicles(
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    vehicle_type: Optional[VehicleType] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("vehicle", "read"))
):
    """Get vehicles free for the whole requested period"""
    try:
        vehicle_service = VehicleService(session)
        vehicles = await vehicle_service.get_available_vehicles(
            to_naive_utc(start_date),
            to_naive_utc(end_date),
            vehicle_type.value if vehicle_type else None
        )
        return {"success": True, "data": vehicles}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting available vehicles: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve available vehicles"
        )

@router.get("/stats", response_model=ApiResponse[VehicleStats])
async def get_vehicle_stats(
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("vehicle", "read"))
):
    try:
        vehicle_service = VehicleService(session)
        stats = await vehicle_service.get_vehicle_stats()
        return {"success": True, "data": stats}
    except Exception as e:
        logger.error(f"Error getting vehicle stats: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve vehicle statistics"
        )

@router.get("/", response_model=ApiResponse[PaginatedResponse[VehicleResponse]])
async def get_vehicles(
    pagination: Pagination = Depends(),
    search: Optional[str] = Query(None),
    vehicle_status: Optional[VehicleStatus] = Query(None, alias="status"),
    vehicle_type: Optional[VehicleType] = Query(None),
    brand: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("vehicle", "list"))
):
    """Get list of vehicles with optional filters"""
    try:
        vehicle_service = VehicleService(session)
        vehicles = await vehicle_service.get_vehicles(
            page=pagination.page,
            limit=pagination.limit,
            search=search,
            vehicle_status=vehicle_status.value if vehicle_status else None,
            vehicle_type=vehicle_type.value if vehicle_type else None,
            brand=brand,
            is_active=is_active
        )
        return {"success": True, "data": vehicles}
    except Exception as e:
        logger.error(f"Error getting vehicles: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve vehicles"
        )

@router.get("/{vehicle_id}", response_model=ApiResponse[VehicleResponse])
async def get_vehicle(
    vehicle_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("vehicle", "read"))
):
    """Get vehicle by ID"""
    try:
        vehicle_service = VehicleService(session)
        vehicle = await vehicle_service.get_vehicle(vehicle_id)
        if not vehicle:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Vehicle not found"
            )
        return {"success": True, "data": vehicle}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting vehicle {vehicle_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve vehicle"
        )

@router.post("/", response_model=ApiResponse[VehicleResponse], status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("vehicle", "create"))
):
    """Create a new vehicle"""
    try:
        vehicle_service = VehicleService(session)
        vehicle = await vehicle_service.create_vehicle(vehicle_data, current_user.id)
        return {"success": True, "message": "Vehicle created successfully", "data": vehicle}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating vehicle: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create vehicle"
        )

@router.put("/{vehicle_id}", response_model=ApiResponse[VehicleResponse])
async def update_vehicle(
    vehicle_id: int,
    vehicle_data: VehicleUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("vehicle", "update"))
):
    """Update vehicle"""
    try:
        vehicle_service = VehicleService(session)
        vehicle = await vehicle_service.update_vehicle(vehicle_id, vehicle_data, current_user.id)
        return {"success": True, "message": "Vehicle updated successfully", "data": vehicle}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating vehicle {vehicle_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update vehicle"
        )

@router.patch("/{vehicle_id}/mileage", response_model=ApiResponse[VehicleResponse])
async def update_vehicle_mileage(
    vehicle_id: int,
    mileage_data: MileageUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("vehicle", "update"))
):
    """Record a new odometer reading"""
    try:
        vehicle_service = VehicleService(session)
        vehicle = await vehicle_service.update_mileage(vehicle_id, mileage_data.current_mileage, current_user.id)
        return {"success": True, "message": "Mileage updated successfully", "data": vehicle}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating mileage for vehicle {vehicle_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update mileage"
        )

@router.delete("/{vehicle_id}", response_model=ApiResponse[None])
async def delete_vehicle(
    vehicle_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("vehicle", "delete"))
):
    """Delete vehicle"""
    try:
        vehicle_service = VehicleService(session)
        await vehicle_service.delete_vehicle(vehicle_id, current_user.id)
        return {"success": True, "message": "Vehicle deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting vehicle {vehicle_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete vehicle"
        )
