from sqlalchemy import Column, Integer, String, Boolean, Text, Numeric, Date
from sqlalchemy.orm import relationship
from rentauto.db.base import BaseModel
from rentauto.models.shared.enums import Transmission, VehicleStatus

class Vehicle(BaseModel):
    __tablename__ = "vehicles"

    license_plate = Column(String(10), unique=True, index=True, nullable=False)
    brand = Column(String(50), nullable=False, index=True)
    model = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    color = Column(String(30), nullable=False)
    vin = Column(String(17), unique=True, nullable=True)
    vehicle_type = Column(String(20), nullable=False, index=True)  # sedan, suv, van...
    fuel_type = Column(String(20), nullable=False)
    transmission = Column(String(20), nullable=False, default=Transmission.MANUAL.value)
    seats = Column(Integer, nullable=False, default=5)
    daily_rate = Column(Numeric(10, 2), nullable=False)

    # Mileage counters in km
    current_mileage = Column(Integer, nullable=False, default=0)
    last_maintenance_mileage = Column(Integer, nullable=False, default=0)
    next_maintenance_mileage = Column(Integer, nullable=True)

    status = Column(String(20), nullable=False, default=VehicleStatus.AVAILABLE.value, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    purchase_date = Column(Date, nullable=True)
    insurance_expiry = Column(Date, nullable=True)
    registration_expiry = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    rentals = relationship("Rental", back_populates="vehicle")
    maintenances = relationship("Maintenance", back_populates="vehicle")

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.model} ({self.license_plate})"

    def __repr__(self):
        return f"<Vehicle {self.license_plate}>"
