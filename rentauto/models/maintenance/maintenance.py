from sqlalchemy import Column, Integer, String, Text, Numeric, Date, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from rentauto.db.base import BaseModel
from rentauto.models.shared.enums import MaintenancePriority, MaintenanceStatus

class Maintenance(BaseModel):
    __tablename__ = "maintenances"

    maintenance_number = Column(String(30), unique=True, index=True, nullable=False)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    maintenance_type = Column(String(20), nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)

    scheduled_date = Column(DateTime, nullable=False)
    completed_date = Column(DateTime, nullable=True)
    mileage_at_maintenance = Column(Integer, nullable=True)

    # Costs
    estimated_cost = Column(Numeric(10, 2), nullable=True)
    actual_cost = Column(Numeric(10, 2), nullable=True)
    labor_hours = Column(Numeric(5, 2), nullable=True)
    labor_cost = Column(Numeric(10, 2), nullable=True)
    parts_replaced = Column(JSON, nullable=True)  # [{name, quantity, cost, part_number}]

    service_provider = Column(String(100), nullable=True)
    service_provider_contact = Column(String(100), nullable=True)

    status = Column(String(20), nullable=False, default=MaintenanceStatus.SCHEDULED.value, index=True)
    priority = Column(String(20), nullable=False, default=MaintenancePriority.MEDIUM.value)

    next_maintenance_mileage = Column(Integer, nullable=True)
    next_maintenance_date = Column(Date, nullable=True)
    warranty_expiry = Column(Date, nullable=True)
    invoice_number = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    completed_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    vehicle = relationship("Vehicle", back_populates="maintenances")

    def __repr__(self):
        return f"<Maintenance {self.maintenance_number} [{self.status}]>"
