from pydantic import BaseModel, Field, field_validator
from typing import Dict, Optional
from datetime import date, datetime
from decimal import Decimal
from rentauto.models.shared.enums import FuelType, Transmission, VehicleType

def _max_model_year() -> int:
    return date.today().year + 1

class VehicleBase(BaseModel):
    license_plate: str = Field(..., min_length=6, max_length=10)
    brand: str = Field(..., min_length=2, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)
    year: int = Field(..., ge=1990)
    color: str = Field(..., min_length=3, max_length=30)
    vin: Optional[str] = Field(None, min_length=17, max_length=17)
    vehicle_type: VehicleType
    fuel_type: FuelType
    transmission: Transmission = Transmission.MANUAL
    seats: int = Field(5, ge=2, le=9)
    daily_rate: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    current_mileage: int = Field(0, ge=0)
    last_maintenance_mileage: int = Field(0, ge=0)
    next_maintenance_mileage: Optional[int] = Field(None, ge=0)
    purchase_date: Optional[date] = None
    insurance_expiry: Optional[date] = None
    registration_expiry: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("license_plate", "vin")
    @classmethod
    def normalize_identifier(cls, v):
        return v.strip().upper() if v else v

    @field_validator("year")
    @classmethod
    def validate_year(cls, v):
        if v > _max_model_year():
            raise ValueError(f"Year must be between 1990 and {_max_model_year()}")
        return v

class VehicleCreate(VehicleBase):
    class Config:
        use_enum_values = True
        validate_default = True

class VehicleUpdate(BaseModel):
    """Editable vehicle fields; status only moves through rentals and maintenance"""
    license_plate: Optional[str] = Field(None, min_length=6, max_length=10)
    brand: Optional[str] = Field(None, min_length=2, max_length=50)
    model: Optional[str] = Field(None, min_length=1, max_length=50)
    year: Optional[int] = Field(None, ge=1990)
    color: Optional[str] = Field(None, min_length=3, max_length=30)
    vin: Optional[str] = Field(None, min_length=17, max_length=17)
    vehicle_type: Optional[VehicleType] = None
    fuel_type: Optional[FuelType] = None
    transmission: Optional[Transmission] = None
    seats: Optional[int] = Field(None, ge=2, le=9)
    daily_rate: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    next_maintenance_mileage: Optional[int] = Field(None, ge=0)
    purchase_date: Optional[date] = None
    insurance_expiry: Optional[date] = None
    registration_expiry: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("license_plate", "vin")
    @classmethod
    def normalize_identifier(cls, v):
        return v.strip().upper() if v else v

    @field_validator("year")
    @classmethod
    def validate_year(cls, v):
        if v is not None and v > _max_model_year():
            raise ValueError(f"Year must be between 1990 and {_max_model_year()}")
        return v

    class Config:
        extra = "forbid"
        use_enum_values = True
        validate_default = True

class MileageUpdate(BaseModel):
    current_mileage: int = Field(..., ge=0)

class VehicleResponse(BaseModel):
    id: int
    license_plate: str
    brand: str
    model: str
    year: int
    color: str
    vin: Optional[str] = None
    vehicle_type: str
    fuel_type: str
    transmission: str
    seats: int
    daily_rate: Decimal
    current_mileage: int
    last_maintenance_mileage: int
    next_maintenance_mileage: Optional[int] = None
    status: str
    is_active: bool
    purchase_date: Optional[date] = None
    insurance_expiry: Optional[date] = None
    registration_expiry: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class VehicleSummary(BaseModel):
    id: int
    license_plate: str
    brand: str
    model: str
    year: int
    status: str

    class Config:
        from_attributes = True

class VehicleStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    maintenance_due: int
