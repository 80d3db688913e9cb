from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal
from rentauto.models.shared.enums import MaintenancePriority, MaintenanceType
from rentauto.schemas.fleet.vehicle import VehicleSummary
from rentauto.utils.dates import to_naive_utc

class PartReplaced(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(1, ge=1)
    cost: Decimal = Field(Decimal("0"), ge=0)
    part_number: Optional[str] = Field(None, max_length=50)

class MaintenanceCreate(BaseModel):
    vehicle_id: int = Field(..., gt=0)
    maintenance_type: MaintenanceType
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=10)
    scheduled_date: datetime
    priority: MaintenancePriority = MaintenancePriority.MEDIUM
    estimated_cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    service_provider: Optional[str] = Field(None, max_length=100)
    service_provider_contact: Optional[str] = Field(None, max_length=100)
    next_maintenance_mileage: Optional[int] = Field(None, ge=0)
    next_maintenance_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("scheduled_date")
    @classmethod
    def to_utc(cls, v):
        return to_naive_utc(v)

    class Config:
        use_enum_values = True
        validate_default = True

class MaintenanceUpdate(BaseModel):
    """Editable maintenance fields; status moves through start/complete/cancel"""
    maintenance_type: Optional[MaintenanceType] = None
    title: Optional[str] = Field(None, min_length=5, max_length=100)
    description: Optional[str] = Field(None, min_length=10)
    scheduled_date: Optional[datetime] = None
    priority: Optional[MaintenancePriority] = None
    estimated_cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    service_provider: Optional[str] = Field(None, max_length=100)
    service_provider_contact: Optional[str] = Field(None, max_length=100)
    next_maintenance_mileage: Optional[int] = Field(None, ge=0)
    next_maintenance_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("scheduled_date")
    @classmethod
    def to_utc(cls, v):
        return to_naive_utc(v)

    class Config:
        extra = "forbid"
        use_enum_values = True

class MaintenanceStart(BaseModel):
    mileage_at_maintenance: Optional[int] = Field(None, ge=0)

class MaintenanceComplete(BaseModel):
    actual_cost: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    parts_replaced: List[PartReplaced] = []
    labor_hours: Optional[Decimal] = Field(None, ge=0, max_digits=5, decimal_places=2)
    labor_cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    completed_date: Optional[datetime] = None
    next_maintenance_mileage: Optional[int] = Field(None, ge=0)
    next_maintenance_date: Optional[date] = None
    warranty_expiry: Optional[date] = None
    invoice_number: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None

    @field_validator("completed_date")
    @classmethod
    def to_utc(cls, v):
        return to_naive_utc(v)

class MaintenanceCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)

class MaintenanceResponse(BaseModel):
    id: int
    maintenance_number: str
    vehicle_id: int
    maintenance_type: str
    title: str
    description: str
    scheduled_date: datetime
    completed_date: Optional[datetime] = None
    mileage_at_maintenance: Optional[int] = None
    estimated_cost: Optional[Decimal] = None
    actual_cost: Optional[Decimal] = None
    labor_hours: Optional[Decimal] = None
    labor_cost: Optional[Decimal] = None
    parts_replaced: Optional[List[PartReplaced]] = None
    service_provider: Optional[str] = None
    service_provider_contact: Optional[str] = None
    status: str
    priority: str
    next_maintenance_mileage: Optional[int] = None
    next_maintenance_date: Optional[date] = None
    warranty_expiry: Optional[date] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    completed_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class MaintenanceDetailResponse(MaintenanceResponse):
    vehicle: Optional[VehicleSummary] = None

class MaintenanceStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    overdue: int
    critical_pending: int
    total_cost: Decimal
    by_type: Dict[str, int]

class VehicleDueItem(BaseModel):
    vehicle: VehicleSummary
    reason: str
    current_mileage: Optional[int] = None
    next_maintenance_mileage: Optional[int] = None
    maintenance_id: Optional[int] = None
    scheduled_date: Optional[datetime] = None

class VehiclesDue(BaseModel):
    due_by_mileage: List[VehicleDueItem]
    overdue: List[VehicleDueItem]
    upcoming: List[VehicleDueItem]
