from sqlalchemy import Column, String, Boolean, Text, Date
from sqlalchemy.orm import relationship
from rentauto.db.base import BaseModel

class Customer(BaseModel):
    __tablename__ = "customers"

    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=False)
    document_type = Column(String(20), nullable=False, default="dni")
    document_number = Column(String(20), unique=True, index=True, nullable=False)
    date_of_birth = Column(Date, nullable=False)
    address = Column(Text, nullable=False)
    city = Column(String(50), nullable=False)
    country = Column(String(50), nullable=False, default="Chile")
    driver_license_number = Column(String(20), unique=True, nullable=False)
    driver_license_expiry = Column(Date, nullable=False)
    emergency_contact_name = Column(String(100), nullable=True)
    emergency_contact_phone = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)

    # Relationships
    rentals = relationship("Rental", back_populates="customer", order_by="Rental.start_date.desc()")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Customer {self.document_number}>"
