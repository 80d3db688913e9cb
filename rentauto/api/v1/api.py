from fastapi import APIRouter
from rentauto.api.v1.endpoints.auth import login, users
from rentauto.api.v1.endpoints.customer import customers
from rentauto.api.v1.endpoints.fleet import vehicles
from rentauto.api.v1.endpoints.maintenance import maintenances
from rentauto.api.v1.endpoints.rental import rentals
from rentauto.api.v1.endpoints.reports import reports

api_router = APIRouter()

# Authentication routes
api_router.include_router(login.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/auth", tags=["Users"])

# Main application routes
api_router.include_router(vehicles.router, prefix="/vehicles", tags=["Vehicles"])
api_router.include_router(customers.router, prefix="/customers", tags=["Customers"])
api_router.include_router(rentals.router, prefix="/rentals", tags=["Rentals"])
api_router.include_router(maintenances.router, prefix="/maintenances", tags=["Maintenance"])
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
