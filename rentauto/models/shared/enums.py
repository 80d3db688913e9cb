from enum import Enum

# Enums
class UserRole(str, Enum):
    ADMIN = "admin"
    FLEET_MANAGER = "fleet_manager"
    CUSTOMER = "customer"

class VehicleType(str, Enum):
    SEDAN = "sedan"
    SUV = "suv"
    HATCHBACK = "hatchback"
    PICKUP = "pickup"
    VAN = "van"
    COUPE = "coupe"

class FuelType(str, Enum):
    GASOLINE = "gasoline"
    DIESEL = "diesel"
    HYBRID = "hybrid"
    ELECTRIC = "electric"

class Transmission(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"

class VehicleStatus(str, Enum):
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"

class DocumentType(str, Enum):
    DNI = "dni"
    PASSPORT = "passport"
    LICENSE = "license"

class RentalStatus(str, Enum):
    RESERVED = "reserved"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"

class FuelLevel(str, Enum):
    EMPTY = "empty"
    QUARTER = "quarter"
    HALF = "half"
    THREE_QUARTERS = "three_quarters"
    FULL = "full"

class MaintenanceType(str, Enum):
    PREVENTIVE = "preventive"
    CORRECTIVE = "corrective"
    PREDICTIVE = "predictive"
    SCHEDULED = "scheduled"

class MaintenanceStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    OVERDUE = "overdue"

class MaintenancePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class ReportGroupBy(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


# Rentals in these states hold the vehicle for their date range
OPEN_RENTAL_STATUSES = (
    RentalStatus.RESERVED.value,
    RentalStatus.CONFIRMED.value,
    RentalStatus.ACTIVE.value,
)
TERMINAL_RENTAL_STATUSES = (
    RentalStatus.COMPLETED.value,
    RentalStatus.CANCELLED.value,
)
OPEN_MAINTENANCE_STATUSES = (
    MaintenanceStatus.SCHEDULED.value,
    MaintenanceStatus.OVERDUE.value,
    MaintenanceStatus.IN_PROGRESS.value,
)
