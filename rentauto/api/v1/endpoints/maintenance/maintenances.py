import logging
from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rentauto.core.database import get_async_session
from rentauto.api.dependencies import Pagination, require_permission
from rentauto.models.shared.enums import MaintenancePriority, MaintenanceStatus, MaintenanceType
from rentauto.schemas.common.pagination import PaginatedResponse
from rentauto.schemas.common.response import ApiResponse
from rentauto.schemas.maintenance.maintenance import (
    MaintenanceCancel,
    MaintenanceComplete,
    MaintenanceCreate,
    MaintenanceDetailResponse,
    MaintenanceResponse,
    MaintenanceStart,
    MaintenanceStats,
    MaintenanceUpdate,
    VehiclesDue,
)
from rentauto.services.maintenance.maintenance_service import MaintenanceService
from rentauto.utils.dates import to_naive_utc

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/", response_model=ApiResponse[PaginatedResponse[MaintenanceResponse]])
async def get_maintenances(
    pagination: Pagination = Depends(),
    search: Optional[str] = Query(None),
    maintenance_type: Optional[MaintenanceType] = Query(None),
    maintenance_status: Optional[MaintenanceStatus] = Query(None, alias="status"),
    priority: Optional[MaintenancePriority] = Query(None),
    vehicle_id: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("maintenance", "list"))
):
    """Get list of maintenances with optional filters"""
    try:
        maintenance_service = MaintenanceService(session)
        maintenances = await maintenance_service.get_maintenances(
            page=pagination.page,
            limit=pagination.limit,
            search=search,
            maintenance_type=maintenance_type.value if maintenance_type else None,
            maintenance_status=maintenance_status.value if maintenance_status else None,
            priority=priority.value if priority else None,
            vehicle_id=vehicle_id,
            start_date=to_naive_utc(start_date),
            end_date=to_naive_utc(end_date)
        )
        return {"success": True, "data": maintenances}
    except Exception as e:
        logger.error(f"Error getting maintenances: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve maintenances"
        )

@router.get("/stats", response_model=ApiResponse[MaintenanceStats])
async def get_maintenance_stats(
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("maintenance", "list"))
):
    try:
        maintenance_service = MaintenanceService(session)
        stats = await maintenance_service.get_maintenance_stats()
        return {"success": True, "data": stats}
    except Exception as e:
        logger.error(f"Error getting maintenance stats: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve maintenance statistics"
        )

@router.get("/vehicles-due", response_model=ApiResponse[VehiclesDue])
async def get_vehicles_due(
    days_ahead: int = Query(30, ge=1, le=365),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("maintenance", "list"))
):
    """Get vehicles that need maintenance"""
    try:
        maintenance_service = MaintenanceService(session)
        due = await maintenance_service.get_vehicles_due(days_ahead)
        return {"success": True, "data": due}
    except Exception as e:
        logger.error(f"Error getting vehicles due for maintenance: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve vehicles due for maintenance"
        )

@router.get("/{maintenance_id}", response_model=ApiResponse[MaintenanceDetailResponse])
async def get_maintenance(
    maintenance_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("maintenance", "read"))
):
    try:
        maintenance_service = MaintenanceService(session)
        maintenance = await maintenance_service.get_maintenance(maintenance_id)
        if not maintenance:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Maintenance not found"
            )
        return {"success": True, "data": maintenance}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting maintenance {maintenance_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve maintenance"
        )

@router.post("/", response_model=ApiResponse[MaintenanceDetailResponse], status_code=status.HTTP_201_CREATED)
async def create_maintenance(
    maintenance_data: MaintenanceCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("maintenance", "create"))
):
    """Schedule maintenance for a vehicle"""
    try:
        maintenance_service = MaintenanceService(session)
        maintenance = await maintenance_service.create_maintenance(maintenance_data, current_user.id)
        return {"success": True, "message": "Maintenance created successfully", "data": maintenance}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating maintenance: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create maintenance"
        )

@router.put("/{maintenance_id}", response_model=ApiResponse[MaintenanceDetailResponse])
async def update_maintenance(
    maintenance_id: int,
    maintenance_data: MaintenanceUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("maintenance", "update"))
):
    try:
        maintenance_service = MaintenanceService(session)
        maintenance = await maintenance_service.update_maintenance(maintenance_id, maintenance_data, current_user.id)
        return {"success": True, "message": "Maintenance updated successfully", "data": maintenance}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating maintenance {maintenance_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update maintenance"
        )

@router.patch("/{maintenance_id}/start", response_model=ApiResponse[MaintenanceDetailResponse])
async def start_maintenance(
    maintenance_id: int,
    start_data: Optional[MaintenanceStart] = None,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("maintenance", "start"))
):
    try:
        maintenance_service = MaintenanceService(session)
        maintenance = await maintenance_service.start_maintenance(
            maintenance_id, start_data or MaintenanceStart(), current_user.id
        )
        return {"success": True, "message": "Maintenance started successfully", "data": maintenance}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error starting maintenance {maintenance_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start maintenance"
        )

@router.patch("/{maintenance_id}/complete", response_model=ApiResponse[MaintenanceDetailResponse])
async def complete_maintenance(
    maintenance_id: int,
    complete_data: MaintenanceComplete,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("maintenance", "complete"))
):
    try:
        maintenance_service = MaintenanceService(session)
        maintenance = await maintenance_service.complete_maintenance(maintenance_id, complete_data, current_user.id)
        return {"success": True, "message": "Maintenance completed successfully", "data": maintenance}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error completing maintenance {maintenance_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to complete maintenance"
        )

@router.patch("/{maintenance_id}/cancel", response_model=ApiResponse[MaintenanceDetailResponse])
async def cancel_maintenance(
    maintenance_id: int,
    cancel_data: Optional[MaintenanceCancel] = None,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("maintenance", "cancel"))
):
    try:
        maintenance_service = MaintenanceService(session)
        maintenance = await maintenance_service.cancel_maintenance(
            maintenance_id, cancel_data or MaintenanceCancel(), current_user.id
        )
        return {"success": True, "message": "Maintenance cancelled successfully", "data": maintenance}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error cancelling maintenance {maintenance_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel maintenance"
        )

@router.delete("/{maintenance_id}", response_model=ApiResponse[None])
async def delete_maintenance(
    maintenance_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("maintenance", "delete"))
):
    try:
        maintenance_service = MaintenanceService(session)
        await maintenance_service.delete_maintenance(maintenance_id, current_user.id)
        return {"success": True, "message": "Maintenance deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting maintenance {maintenance_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete maintenance"
        )
