"""
Live vehicle status derivation.

Decision flow (first match wins):
  under_maintenance flag set          → MAINTENANCE
  referenced by a lesson running now  → IN_USE
  active in the fleet                 → AVAILABLE
  otherwise                           → persisted status (usually OUT_OF_SERVICE)

Derived statuses are recomputed on every fleet read and never written back.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session, joinedload

from driveschool.errors import ErrorKind, SchedulingError
from driveschool.models import Lesson, Vehicle, VehicleStatus
from driveschool.scheduling.time_window import compute_time_window

logger = logging.getLogger(__name__)


@dataclass
class FleetEntry:
    vehicle: Vehicle
    status: VehicleStatus       # derived, not persisted


def vehicles_in_use(lessons: Iterable[Lesson], current_time: str) -> set[int]:
    """Vehicle ids referenced by any lesson (any type) running at `current_time`."""
    return {
        lesson.vehicle_id
        for lesson in lessons
        if lesson.vehicle_id is not None
        and lesson.start_time <= current_time < lesson.end_time
    }


def derive_vehicle_status(vehicle: Vehicle, in_use: set[int]) -> VehicleStatus:
    if vehicle.under_maintenance:
        return VehicleStatus.MAINTENANCE
    if vehicle.id in in_use:
        return VehicleStatus.IN_USE
    if vehicle.is_active:
        return VehicleStatus.AVAILABLE
    return VehicleStatus(vehicle.status)


def derive_fleet_status(vehicles: Iterable[Vehicle], todays_lessons: Iterable[Lesson],
                        now: datetime) -> list[FleetEntry]:
    """`todays_lessons` must already be restricted to the calendar date of `now`."""
    current_time = compute_time_window(now).current_time
    in_use = vehicles_in_use(todays_lessons, current_time)
    return [FleetEntry(vehicle=v, status=derive_vehicle_status(v, in_use)) for v in vehicles]


def list_fleet(db: Session, now: datetime,
               status: Optional[VehicleStatus] = None,
               category_id: Optional[int] = None) -> list[FleetEntry]:
    """Full roster with live status; `status` filters on the derived value."""
    window = compute_time_window(now)

    query = db.query(Vehicle).options(joinedload(Vehicle.category))
    if category_id is not None:
        query = query.filter(Vehicle.category_id == category_id)
    vehicles = query.order_by(Vehicle.id).all()

    todays_lessons = (
        db.query(Lesson)
        .filter(Lesson.lesson_date == window.today)
        .filter(Lesson.vehicle_id.isnot(None))
        .all()
    )

    fleet = derive_fleet_status(vehicles, todays_lessons, now)
    if status is not None:
        fleet = [entry for entry in fleet if entry.status == status]
    return fleet


def set_maintenance(db: Session, vehicle_id: int, under_maintenance: bool) -> Vehicle:
    vehicle = db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise SchedulingError(ErrorKind.VEHICLE_NOT_FOUND, "Vehicle not found",
                              field="vehicle_id")
    vehicle.under_maintenance = under_maintenance
    db.commit()
    db.refresh(vehicle)
    logger.info("Vehicle %s %s maintenance", vehicle.registration_number,
                "marked for" if under_maintenance else "removed from")
    return vehicle
