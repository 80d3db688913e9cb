# rentauto/services/reports/report_service.py
import logging
import math
from collections import defaultdict
from typing import Dict, Any, List, Optional
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func, desc, distinct
from sqlalchemy.orm import selectinload

from rentauto.core.exceptions import ValidationError
from rentauto.models.customer.customer import Customer
from rentauto.models.fleet.vehicle import Vehicle
from rentauto.models.maintenance.maintenance import Maintenance
from rentauto.models.rental.rental import Rental
from rentauto.models.shared.enums import (
    OPEN_MAINTENANCE_STATUSES,
    MaintenanceStatus,
    RentalStatus,
    VehicleStatus,
)
from rentauto.services.rental.pricing import ONE_DAY, periods_overlap
from rentauto.utils.dates import period_key, utc_now

logger = logging.getLogger(__name__)

# Rentals that produce income and occupy the fleet
BILLABLE_RENTAL_STATUSES = (RentalStatus.COMPLETED.value, RentalStatus.ACTIVE.value)
DEFAULT_WINDOW_DAYS = 30


def _float(value) -> float:
    return round(float(value or 0), 2)


def _rate(part, whole) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _vehicle_brief(vehicle: Vehicle) -> Dict[str, Any]:
    return {
        "id": vehicle.id,
        "brand": vehicle.brand,
        "model": vehicle.model,
        "year": vehicle.year,
        "license_plate": vehicle.license_plate,
        "status": vehicle.status,
    }


class ReportService:
    def __init__(self, session: AsyncSession):
        self.session = session

    # =================== INCOME ===================

    async def get_income_report(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        group_by: str = "month",
        vehicle_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """Income from completed and active rentals, bucketed by rental start"""
        try:
            conditions = self._rental_conditions(start_date, end_date)
            if vehicle_id:
                conditions.append(Rental.vehicle_id == vehicle_id)

            rows = await self.session.execute(
                select(Rental.start_date, Rental.total_amount).where(and_(*conditions))
            )
            buckets = defaultdict(list)
            for row in rows.all():
                buckets[period_key(row.start_date, group_by)].append(float(row.total_amount or 0))

            income_by_period = [
                {
                    "period": period,
                    "total_rentals": len(amounts),
                    "total_income": _float(sum(amounts)),
                    "average_rental_amount": _float(sum(amounts) / len(amounts)),
                }
                for period, amounts in sorted(buckets.items())
            ]

            totals = (await self.session.execute(
                select(
                    func.count(Rental.id).label("total_rentals"),
                    func.sum(Rental.total_amount).label("total_income"),
                    func.avg(Rental.total_amount).label("average_rental_amount"),
                    func.max(Rental.total_amount).label("highest_rental"),
                    func.min(Rental.total_amount).label("lowest_rental")
                ).where(and_(*conditions))
            )).one()

            income = func.sum(Rental.total_amount).label("total_income")
            top_vehicles = await self.session.execute(
                select(
                    Vehicle.id, Vehicle.brand, Vehicle.model, Vehicle.year, Vehicle.license_plate,
                    func.count(Rental.id).label("rental_count"),
                    income
                )
                .join(Vehicle, Vehicle.id == Rental.vehicle_id)
                .where(and_(*conditions))
                .group_by(Vehicle.id, Vehicle.brand, Vehicle.model, Vehicle.year, Vehicle.license_plate)
                .order_by(desc(income))
                .limit(10)
            )
            spent = func.sum(Rental.total_amount).label("total_spent")
            top_customers = await self.session.execute(
                select(
                    Customer.id, Customer.first_name, Customer.last_name, Customer.email,
                    func.count(Rental.id).label("rental_count"),
                    spent
                )
                .join(Customer, Customer.id == Rental.customer_id)
                .where(and_(*conditions))
                .group_by(Customer.id, Customer.first_name, Customer.last_name, Customer.email)
                .order_by(desc(spent))
                .limit(10)
            )

            return {
                "income_by_period": income_by_period,
                "total_stats": {
                    "total_rentals": totals.total_rentals or 0,
                    "total_income": _float(totals.total_income),
                    "average_rental_amount": _float(totals.average_rental_amount),
                    "highest_rental": _float(totals.highest_rental),
                    "lowest_rental": _float(totals.lowest_rental),
                },
                "top_vehicles": [
                    {
                        "vehicle_id": row.id,
                        "brand": row.brand,
                        "model": row.model,
                        "year": row.year,
                        "license_plate": row.license_plate,
                        "rental_count": row.rental_count,
                        "total_income": _float(row.total_income),
                    }
                    for row in top_vehicles.all()
                ],
                "top_customers": [
                    {
                        "customer_id": row.id,
                        "first_name": row.first_name,
                        "last_name": row.last_name,
                        "email": row.email,
                        "rental_count": row.rental_count,
                        "total_spent": _float(row.total_spent),
                    }
                    for row in top_customers.all()
                ],
                "filters": {
                    "start_date": start_date,
                    "end_date": end_date,
                    "group_by": group_by,
                    "vehicle_id": vehicle_id,
                },
            }

        except Exception as e:
            logger.error(f"Error in income report: {str(e)}")
            raise

    # =================== MAINTENANCE COSTS ===================

    async def get_maintenance_cost_report(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        group_by: str = "month",
        vehicle_id: Optional[int] = None,
        maintenance_type: Optional[str] = None
    ) -> Dict[str, Any]:
        """Costs of completed maintenance, bucketed by completion date"""
        try:
            conditions = self._maintenance_conditions(start_date, end_date)
            if vehicle_id:
                conditions.append(Maintenance.vehicle_id == vehicle_id)
            if maintenance_type:
                conditions.append(Maintenance.maintenance_type == maintenance_type)

            rows = await self.session.execute(
                select(Maintenance.completed_date, Maintenance.maintenance_type, Maintenance.actual_cost)
                .where(and_(*conditions))
            )
            buckets = defaultdict(list)
            for row in rows.all():
                key = (period_key(row.completed_date, group_by), row.maintenance_type)
                buckets[key].append(float(row.actual_cost or 0))

            costs_by_period = [
                {
                    "period": period,
                    "maintenance_type": m_type,
                    "total_maintenances": len(costs),
                    "total_cost": _float(sum(costs)),
                    "average_cost": _float(sum(costs) / len(costs)),
                }
                for (period, m_type), costs in sorted(buckets.items())
            ]

            type_cost = func.sum(Maintenance.actual_cost).label("total_cost")
            by_type = await self.session.execute(
                select(
                    Maintenance.maintenance_type,
                    func.count(Maintenance.id).label("total_count"),
                    type_cost,
                    func.avg(Maintenance.actual_cost).label("average_cost"),
                    func.max(Maintenance.actual_cost).label("highest_cost"),
                    func.min(Maintenance.actual_cost).label("lowest_cost")
                )
                .where(and_(*conditions))
                .group_by(Maintenance.maintenance_type)
                .order_by(desc(type_cost))
            )

            vehicle_cost = func.sum(Maintenance.actual_cost).label("total_cost")
            by_vehicle = await self.session.execute(
                select(
                    Vehicle.id, Vehicle.brand, Vehicle.model, Vehicle.year, Vehicle.license_plate,
                    Vehicle.current_mileage,
                    func.count(Maintenance.id).label("maintenance_count"),
                    vehicle_cost,
                    func.avg(Maintenance.actual_cost).label("average_cost")
                )
                .join(Vehicle, Vehicle.id == Maintenance.vehicle_id)
                .where(and_(*conditions))
                .group_by(
                    Vehicle.id, Vehicle.brand, Vehicle.model, Vehicle.year, Vehicle.license_plate,
                    Vehicle.current_mileage
                )
                .order_by(desc(vehicle_cost))
                .limit(10)
            )

            totals = (await self.session.execute(
                select(
                    func.count(Maintenance.id).label("total_maintenances"),
                    func.sum(Maintenance.actual_cost).label("total_cost"),
                    func.avg(Maintenance.actual_cost).label("average_cost")
                ).where(and_(*conditions))
            )).one()

            return {
                "costs_by_period": costs_by_period,
                "costs_by_type": [
                    {
                        "maintenance_type": row.maintenance_type,
                        "total_count": row.total_count,
                        "total_cost": _float(row.total_cost),
                        "average_cost": _float(row.average_cost),
                        "highest_cost": _float(row.highest_cost),
                        "lowest_cost": _float(row.lowest_cost),
                    }
                    for row in by_type.all()
                ],
                "vehicles_costs": [
                    {
                        "vehicle_id": row.id,
                        "brand": row.brand,
                        "model": row.model,
                        "year": row.year,
                        "license_plate": row.license_plate,
                        "current_mileage": row.current_mileage,
                        "maintenance_count": row.maintenance_count,
                        "total_cost": _float(row.total_cost),
                        "average_cost": _float(row.average_cost),
                    }
                    for row in by_vehicle.all()
                ],
                "total_stats": {
                    "total_maintenances": totals.total_maintenances or 0,
                    "total_cost": _float(totals.total_cost),
                    "average_cost": _float(totals.average_cost),
                },
                "filters": {
                    "start_date": start_date,
                    "end_date": end_date,
                    "group_by": group_by,
                    "vehicle_id": vehicle_id,
                    "maintenance_type": maintenance_type,
                },
            }

        except Exception as e:
            logger.error(f"Error in maintenance cost report: {str(e)}")
            raise

    # =================== FLEET AVAILABILITY ===================

    async def get_fleet_availability_report(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        group_by: str = "month"
    ) -> Dict[str, Any]:
        """Fleet occupancy per period, current fleet state and per-vehicle utilization"""
        try:
            window_start, window_end = self._utilization_window(start_date, end_date)
            now = utc_now()
            fleet_conditions = [Vehicle.is_deleted == False, Vehicle.status != VehicleStatus.INACTIVE.value]

            vehicles = (await self.session.execute(
                select(Vehicle).where(and_(*fleet_conditions)).order_by(Vehicle.brand, Vehicle.model, Vehicle.id)
            )).scalars().all()
            total_vehicles = len(vehicles)

            # Occupancy per period
            rows = await self.session.execute(
                select(Rental.id, Rental.vehicle_id, Rental.start_date)
                .where(and_(*self._rental_conditions(start_date, end_date)))
            )
            periods = defaultdict(lambda: {"vehicles": set(), "rentals": 0})
            for row in rows.all():
                bucket = periods[period_key(row.start_date, group_by)]
                bucket["vehicles"].add(row.vehicle_id)
                bucket["rentals"] += 1

            availability_by_period = []
            for period, bucket in sorted(periods.items()):
                rented = len(bucket["vehicles"])
                availability_by_period.append({
                    "period": period,
                    "total_rentals": bucket["rentals"],
                    "vehicles_rented": rented,
                    "total_vehicles": total_vehicles,
                    "vehicles_available": max(total_vehicles - rented, 0),
                    "utilization_rate": _rate(rented, total_vehicles),
                })

            # Current state
            by_status = {}
            for vehicle in vehicles:
                by_status[vehicle.status] = by_status.get(vehicle.status, 0) + 1
            current_fleet_status = [{"status": key, "count": count} for key, count in sorted(by_status.items())]

            rented_rows = (await self.session.execute(
                select(Rental)
                .options(selectinload(Rental.vehicle))
                .where(
                    Rental.is_deleted == False,
                    Rental.rental_status == RentalStatus.ACTIVE.value,
                    Rental.start_date <= now,
                    Rental.end_date >= now
                )
            )).scalars().all()
            currently_rented = [
                {"rental_id": rental.id, "rental_number": rental.rental_number, "vehicle": _vehicle_brief(rental.vehicle)}
                for rental in rented_rows
            ]

            maintenance_rows = (await self.session.execute(
                select(Maintenance)
                .options(selectinload(Maintenance.vehicle))
                .where(Maintenance.is_deleted == False, Maintenance.status.in_(OPEN_MAINTENANCE_STATUSES))
            )).scalars().all()
            in_maintenance = [
                {
                    "maintenance_id": maintenance.id,
                    "maintenance_number": maintenance.maintenance_number,
                    "status": maintenance.status,
                    "vehicle": _vehicle_brief(maintenance.vehicle),
                }
                for maintenance in maintenance_rows
            ]

            vehicle_utilization = await self._vehicle_utilization(vehicles, window_start, window_end)

            rented_vehicles = len({item["vehicle"]["id"] for item in currently_rented})
            return {
                "availability_by_period": availability_by_period,
                "current_fleet_status": current_fleet_status,
                "currently_rented": currently_rented,
                "in_maintenance": in_maintenance,
                "vehicle_utilization": vehicle_utilization,
                "summary": {
                    "total_vehicles": total_vehicles,
                    "currently_available": by_status.get(VehicleStatus.AVAILABLE.value, 0),
                    "currently_rented": rented_vehicles,
                    "in_maintenance": len({item["vehicle"]["id"] for item in in_maintenance}),
                    "overall_utilization": _rate(rented_vehicles, total_vehicles),
                },
                "filters": {
                    "start_date": start_date,
                    "end_date": end_date,
                    "group_by": group_by,
                },
            }

        except Exception as e:
            logger.error(f"Error in fleet availability report: {str(e)}")
            raise

    @staticmethod
    def _utilization_window(start_date: Optional[datetime], end_date: Optional[datetime]):
        """Resolve the window, defaulting to the last DEFAULT_WINDOW_DAYS days"""
        window_end = end_date or utc_now()
        window_start = start_date or window_end - timedelta(days=DEFAULT_WINDOW_DAYS)
        if window_start >= window_end:
            raise ValidationError("end_date must be after start_date")
        return window_start, window_end

    async def _vehicle_utilization(
        self,
        vehicles: List[Vehicle],
        window_start: datetime,
        window_end: datetime
    ) -> List[Dict[str, Any]]:
        """Days each vehicle spent rented inside the window over the window length"""
        total_days = math.ceil((window_end - window_start) / ONE_DAY)

        rows = await self.session.execute(
            select(Rental.vehicle_id, Rental.start_date, Rental.end_date).where(
                Rental.is_deleted == False,
                Rental.rental_status.in_(BILLABLE_RENTAL_STATUSES),
                Rental.start_date <= window_end,
                Rental.end_date >= window_start
            )
        )
        rentals_by_vehicle = defaultdict(list)
        for row in rows.all():
            if periods_overlap(window_start, window_end, row.start_date, row.end_date):
                rentals_by_vehicle[row.vehicle_id].append(row)

        utilization = []
        for vehicle in vehicles:
            rentals = rentals_by_vehicle.get(vehicle.id, [])
            days_rented = sum(
                max(math.ceil((min(rental.end_date, window_end) - max(rental.start_date, window_start)) / ONE_DAY), 0)
                for rental in rentals
            )
            days_rented = min(days_rented, total_days)
            utilization.append({
                **_vehicle_brief(vehicle),
                "total_rentals": len(rentals),
                "days_rented": days_rented,
                "total_days_in_period": total_days,
                "utilization_rate": _rate(days_rented, total_days),
            })
        return utilization

    # =================== EXECUTIVE SUMMARY ===================

    async def get_executive_summary(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> Dict[str, Any]:
        try:
            income = (await self.session.execute(
                select(
                    func.count(Rental.id).label("total_rentals"),
                    func.sum(Rental.total_amount).label("total_income"),
                    func.avg(Rental.total_amount).label("average_rental")
                ).where(and_(*self._rental_conditions(start_date, end_date)))
            )).one()

            maintenance = (await self.session.execute(
                select(
                    func.count(Maintenance.id).label("total_maintenances"),
                    func.sum(Maintenance.actual_cost).label("total_cost"),
                    func.avg(Maintenance.actual_cost).label("average_cost")
                ).where(and_(*self._maintenance_conditions(start_date, end_date)))
            )).one()

            fleet_rows = await self.session.execute(
                select(Vehicle.status, func.count(distinct(Vehicle.id)).label("count"))
                .where(Vehicle.is_deleted == False, Vehicle.status != VehicleStatus.INACTIVE.value)
                .group_by(Vehicle.status)
            )
            fleet_breakdown = [{"status": row.status, "count": row.count} for row in fleet_rows.all()]
            total_vehicles = sum(item["count"] for item in fleet_breakdown)
            available = next(
                (item["count"] for item in fleet_breakdown if item["status"] == VehicleStatus.AVAILABLE.value), 0
            )

            gross_income = _float(income.total_income)
            maintenance_costs = _float(maintenance.total_cost)
            net_income = round(gross_income - maintenance_costs, 2)

            return {
                "income": {
                    "total_rentals": income.total_rentals or 0,
                    "total_income": gross_income,
                    "average_rental": _float(income.average_rental),
                },
                "maintenance": {
                    "total_maintenances": maintenance.total_maintenances or 0,
                    "total_cost": maintenance_costs,
                    "average_cost": _float(maintenance.average_cost),
                },
                "fleet": {
                    "total_vehicles": total_vehicles,
                    "available_vehicles": available,
                    "utilization_rate": _rate(total_vehicles - available, total_vehicles),
                    "fleet_breakdown": fleet_breakdown,
                },
                "profitability": {
                    "gross_income": gross_income,
                    "maintenance_costs": maintenance_costs,
                    "net_income": net_income,
                    "profit_margin": _rate(net_income, gross_income),
                },
                "filters": {"start_date": start_date, "end_date": end_date},
            }

        except Exception as e:
            logger.error(f"Error in executive summary: {str(e)}")
            raise

    # =================== HELPERS ===================

    @staticmethod
    def _rental_conditions(start_date: Optional[datetime], end_date: Optional[datetime]) -> list:
        conditions = [Rental.is_deleted == False, Rental.rental_status.in_(BILLABLE_RENTAL_STATUSES)]
        if start_date:
            conditions.append(Rental.start_date >= start_date)
        if end_date:
            conditions.append(Rental.start_date <= end_date)
        return conditions

    @staticmethod
    def _maintenance_conditions(start_date: Optional[datetime], end_date: Optional[datetime]) -> list:
        conditions = [Maintenance.is_deleted == False, Maintenance.status == MaintenanceStatus.COMPLETED.value]
        if start_date:
            conditions.append(Maintenance.completed_date >= start_date)
        if end_date:
            conditions.append(Maintenance.completed_date <= end_date)
        return conditions
