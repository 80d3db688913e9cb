from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from rentauto.models.shared.enums import FuelLevel, PaymentStatus
from rentauto.schemas.customer.customer import CustomerSummary
from rentauto.schemas.fleet.vehicle import VehicleSummary
from rentauto.utils.dates import to_naive_utc

class RentalCreate(BaseModel):
    customer_id: int = Field(..., gt=0)
    vehicle_id: int = Field(..., gt=0)
    start_date: datetime
    end_date: datetime
    pickup_location: str = Field(..., min_length=5, max_length=200)
    return_location: str = Field(..., min_length=5, max_length=200)
    additional_charges: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    discount_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    deposit_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    fuel_level_pickup: FuelLevel = FuelLevel.FULL
    additional_notes: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def to_utc(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_period(self):
        if self.start_date >= self.end_date:
            raise ValueError("end_date must be after start_date")
        return self

    class Config:
        use_enum_values = True
        validate_default = True

class RentalUpdate(BaseModel):
    """Patchable rental fields; lifecycle and pricing fields are not accepted"""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    pickup_location: Optional[str] = Field(None, min_length=5, max_length=200)
    return_location: Optional[str] = Field(None, min_length=5, max_length=200)
    additional_charges: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    discount_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    deposit_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    payment_status: Optional[PaymentStatus] = None
    additional_notes: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def to_utc(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_period(self):
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValueError("end_date must be after start_date")
        return self

    class Config:
        extra = "forbid"
        use_enum_values = True
        validate_default = True

class RentalStart(BaseModel):
    pickup_mileage: int = Field(..., ge=0)
    fuel_level_pickup: FuelLevel = FuelLevel.FULL
    damage_notes_pickup: Optional[str] = None

    class Config:
        use_enum_values = True
        validate_default = True

class RentalComplete(BaseModel):
    return_mileage: int = Field(..., ge=0)
    fuel_level_return: FuelLevel
    damage_notes_return: Optional[str] = None
    additional_charges: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    actual_return_date: Optional[datetime] = None

    @field_validator("actual_return_date")
    @classmethod
    def to_utc(cls, v):
        return to_naive_utc(v)

    class Config:
        use_enum_values = True
        validate_default = True

class RentalCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)

class RentalResponse(BaseModel):
    id: int
    rental_number: str
    customer_id: int
    vehicle_id: int
    start_date: datetime
    end_date: datetime
    actual_return_date: Optional[datetime] = None
    pickup_location: str
    return_location: str
    daily_rate: Decimal
    total_days: int
    subtotal: Decimal
    tax_amount: Decimal
    additional_charges: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    deposit_amount: Decimal
    payment_status: str
    rental_status: str
    pickup_mileage: Optional[int] = None
    return_mileage: Optional[int] = None
    fuel_level_pickup: Optional[str] = None
    fuel_level_return: Optional[str] = None
    damage_notes_pickup: Optional[str] = None
    damage_notes_return: Optional[str] = None
    additional_notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RentalDetailResponse(RentalResponse):
    customer: Optional[CustomerSummary] = None
    vehicle: Optional[VehicleSummary] = None

class RentalCompletion(BaseModel):
    rental: RentalDetailResponse
    late_days: int
    late_fees: Decimal
    total_additional_charges: Decimal
    new_total_amount: Decimal

class RentalStats(BaseModel):
    total: int
    active: int
    completed: int
    cancelled: int
    overdue: int
    total_revenue: Decimal
