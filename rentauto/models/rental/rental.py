from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from rentauto.db.base import BaseModel
from rentauto.models.shared.enums import FuelLevel, PaymentStatus, RentalStatus

class Rental(BaseModel):
    __tablename__ = "rentals"
    __table_args__ = (
        Index("ix_rentals_vehicle_period", "vehicle_id", "start_date", "end_date"),
    )

    rental_number = Column(String(30), unique=True, index=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)

    # Stored as naive UTC
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    actual_return_date = Column(DateTime, nullable=True)

    pickup_location = Column(String(200), nullable=False)
    return_location = Column(String(200), nullable=False)

    # Charges
    daily_rate = Column(Numeric(10, 2), nullable=False)
    total_days = Column(Integer, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    additional_charges = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False)
    deposit_amount = Column(Numeric(10, 2), nullable=False, default=0)

    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    rental_status = Column(String(20), nullable=False, default=RentalStatus.RESERVED.value, index=True)

    # Handover details
    pickup_mileage = Column(Integer, nullable=True)
    return_mileage = Column(Integer, nullable=True)
    fuel_level_pickup = Column(String(20), nullable=False, default=FuelLevel.FULL.value)
    fuel_level_return = Column(String(20), nullable=True)
    damage_notes_pickup = Column(Text, nullable=True)
    damage_notes_return = Column(Text, nullable=True)
    additional_notes = Column(Text, nullable=True)

    # Relationships
    customer = relationship("Customer", back_populates="rentals")
    vehicle = relationship("Vehicle", back_populates="rentals")

    def __repr__(self):
        return f"<Rental {self.rental_number} [{self.rental_status}]>"
