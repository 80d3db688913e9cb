from rentauto.models.auth.user import User
from rentauto.models.fleet.vehicle import Vehicle
from rentauto.models.customer.customer import Customer
from rentauto.models.rental.rental import Rental
from rentauto.models.maintenance.maintenance import Maintenance
