from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from rentauto.models.shared.enums import DocumentType

class CustomerBase(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: str = Field(..., min_length=8, max_length=20)
    document_type: DocumentType = DocumentType.DNI
    document_number: str = Field(..., min_length=5, max_length=20)
    date_of_birth: date
    address: str = Field(..., min_length=5)
    city: str = Field(..., min_length=2, max_length=50)
    country: str = Field("Chile", min_length=2, max_length=50)
    driver_license_number: str = Field(..., min_length=5, max_length=20)
    driver_license_expiry: date
    emergency_contact_name: Optional[str] = Field(None, max_length=100)
    emergency_contact_phone: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = None

    @field_validator("date_of_birth")
    @classmethod
    def birth_date_in_past(cls, v):
        if v >= date.today():
            raise ValueError("Date of birth must be in the past")
        return v

class CustomerCreate(CustomerBase):
    class Config:
        use_enum_values = True
        validate_default = True

class CustomerUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=8, max_length=20)
    document_type: Optional[DocumentType] = None
    document_number: Optional[str] = Field(None, min_length=5, max_length=20)
    date_of_birth: Optional[date] = None
    address: Optional[str] = Field(None, min_length=5)
    city: Optional[str] = Field(None, min_length=2, max_length=50)
    country: Optional[str] = Field(None, min_length=2, max_length=50)
    driver_license_number: Optional[str] = Field(None, min_length=5, max_length=20)
    driver_license_expiry: Optional[date] = None
    emergency_contact_name: Optional[str] = Field(None, max_length=100)
    emergency_contact_phone: Optional[str] = Field(None, max_length=20)
    is_active: Optional[bool] = None
    notes: Optional[str] = None

    class Config:
        extra = "forbid"
        use_enum_values = True
        validate_default = True

class CustomerResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    document_type: str
    document_number: str
    date_of_birth: date
    address: str
    city: str
    country: str
    driver_license_number: str
    driver_license_expiry: date
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    is_active: bool
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CustomerSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    document_number: str

    class Config:
        from_attributes = True

class CustomerStats(BaseModel):
    total_active: int
    with_active_rentals: int
    expired_licenses: int
    expiring_licenses: int

class CustomerValidation(BaseModel):
    customer_id: int
    is_valid: bool
    validation_errors: List[str]

class CustomerRentalBrief(BaseModel):
    id: int
    rental_number: str
    vehicle_id: int
    start_date: datetime
    end_date: datetime
    rental_status: str
    total_amount: Decimal

    class Config:
        from_attributes = True

class CustomerDetailResponse(CustomerResponse):
    rentals: List[CustomerRentalBrief] = []
