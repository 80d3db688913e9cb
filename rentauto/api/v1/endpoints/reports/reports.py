import logging
from typing import Any, Dict, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rentauto.core.database import get_async_session
from rentauto.api.dependencies import require_permission
from rentauto.models.shared.enums import MaintenanceType, ReportGroupBy
from rentauto.schemas.common.response import ApiResponse
from rentauto.services.reports.report_service import ReportService
from rentauto.utils.dates import to_naive_utc

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/income", response_model=ApiResponse[Dict[str, Any]])
async def get_income_report(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    group_by: ReportGroupBy = Query(ReportGroupBy.MONTH),
    vehicle_id: Optional[int] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("report", "read"))
):
    """Rental income grouped by period, with top vehicles and customers"""
    try:
        report_service = ReportService(session)
        report = await report_service.get_income_report(
            start_date=to_naive_utc(start_date),
            end_date=to_naive_utc(end_date),
            group_by=group_by.value,
            vehicle_id=vehicle_id
        )
        return {"success": True, "data": report}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating income report: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate income report"
        )

@router.get("/maintenance-costs", response_model=ApiResponse[Dict[str, Any]])
async def get_maintenance_cost_report(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    group_by: ReportGroupBy = Query(ReportGroupBy.MONTH),
    vehicle_id: Optional[int] = Query(None),
    maintenance_type: Optional[MaintenanceType] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("report", "read"))
):
    """Completed maintenance costs grouped by period, type and vehicle"""
    try:
        report_service = ReportService(session)
        report = await report_service.get_maintenance_cost_report(
            start_date=to_naive_utc(start_date),
            end_date=to_naive_utc(end_date),
            group_by=group_by.value,
            vehicle_id=vehicle_id,
            maintenance_type=maintenance_type.value if maintenance_type else None
        )
        return {"success": True, "data": report}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating maintenance cost report: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate maintenance cost report"
        )

@router.get("/fleet-availability", response_model=ApiResponse[Dict[str, Any]])
async def get_fleet_availability_report(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    group_by: ReportGroupBy = Query(ReportGroupBy.MONTH),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("report", "read"))
):
    """Fleet occupancy and per-vehicle utilization"""
    try:
        report_service = ReportService(session)
        report = await report_service.get_fleet_availability_report(
            start_date=to_naive_utc(start_date),
            end_date=to_naive_utc(end_date),
            group_by=group_by.value
        )
        return {"success": True, "data": report}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating fleet availability report: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate fleet availability report"
        )

@router.get("/executive-summary", response_model=ApiResponse[Dict[str, Any]])
async def get_executive_summary(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_permission("report", "read"))
):
    """Income, maintenance, fleet and profitability in one view"""
    try:
        report_service = ReportService(session)
        summary = await report_service.get_executive_summary(
            start_date=to_naive_utc(start_date),
            end_date=to_naive_utc(end_date)
        )
        return {"success": True, "data": summary}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating executive summary: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate executive summary"
        )
