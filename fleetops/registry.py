"""Registration of vehicles and drivers, administrative status changes, fuel logging."""

import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from .clock import SystemClock
from .driver import Driver
from .errors import InvalidStateTransition, NotFoundError
from .fuel_log_entry import FuelLogEntry
from .status import DriverStatus, VehicleCategory, VehicleStatus
from .store import FleetStore, Mutation
from .trip import Trip
from .vehicle import Vehicle
from .validation import require_quantity

logger = logging.getLogger(__name__)


class FleetRegistry:
    """Adds fleet assets and records fuel fills."""

    def __init__(self, store: FleetStore, clock=None):
        self.store = store
        self.clock = clock or SystemClock()

    def register_vehicle(
        self,
        name: str,
        license_plate: str,
        category,
        max_capacity: float,
        odometer: float = 0,
        acquisition_cost: float = 0,
        model: Optional[str] = None,
        region: Optional[str] = None,
    ) -> Vehicle:
        """Add a vehicle. License plates are unique across the fleet."""
        if require_quantity("max_capacity", max_capacity) == 0:
            raise ValueError("max_capacity must be positive, got 0")
        require_quantity("odometer", odometer)
        require_quantity("acquisition_cost", acquisition_cost)
        plate = license_plate.strip().upper()
        vehicle = Vehicle(
            id=self.store.next_id(Vehicle),
            name=name,
            license_plate=plate,
            category=VehicleCategory.parse(category),
            max_capacity=max_capacity,
            odometer=odometer,
            acquisition_cost=acquisition_cost,
            model=model,
            region=region,
        )
        with self.store.locked(("license_plate", plate)):
            if self.store.list(Vehicle, lambda v: v.license_plate == plate):
                raise ValueError(f"License plate {plate} is already registered")
            self.store.add(vehicle)

        logger.info("Registered vehicle %s as %s", vehicle.display_name, vehicle.id)
        return vehicle

    def register_driver(
        self,
        name: str,
        license_number: str,
        license_expiry: date,
        license_category: Optional[str] = None,
        status=DriverStatus.OFF_DUTY,
        safety_score: float = 100,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Driver:
        if require_quantity("safety_score", safety_score) > 100:
            raise ValueError(f"safety_score must be within 0-100, got {safety_score}")
        status = DriverStatus.parse(status)
        if status == DriverStatus.ON_TRIP:
            raise ValueError("A new driver cannot start out on a trip")
        driver = Driver(
            id=self.store.next_id(Driver),
            name=name,
            license_number=license_number,
            license_expiry=license_expiry,
            license_category=license_category,
            status=status,
            safety_score=safety_score,
            phone=phone,
            email=email,
        )
        self.store.add(driver)
        logger.info("Registered driver %s as %s", name, driver.id)
        return driver

    def set_driver_status(self, driver_id: int, status) -> Driver:
        """
        Change a driver between ON_DUTY, OFF_DUTY and SUSPENDED.

        ON_TRIP belongs to the trip lifecycle: it can be neither set nor
        cleared here.
        """
        status = DriverStatus.parse(status)
        with self.store.locked((Driver, driver_id)):
            driver, version = self.store.get_versioned(Driver, driver_id)
            if status == DriverStatus.ON_TRIP or driver.status == DriverStatus.ON_TRIP:
                error = InvalidStateTransition("driver", driver.status, status)
                logger.warning("Rejected status change for driver %s: %s", driver_id, error)
                raise error
            updated = replace(driver, status=status)
            self.store.commit([Mutation(updated, version)])

        logger.info("Driver %s is now %s", driver_id, status.value)
        return updated

    def retire_vehicle(self, vehicle_id: int) -> Vehicle:
        """Take a vehicle out of the fleet for good. Not allowed mid-trip."""
        with self.store.locked((Vehicle, vehicle_id)):
            vehicle, version = self.store.get_versioned(Vehicle, vehicle_id)
            if vehicle.status == VehicleStatus.ON_TRIP:
                error = InvalidStateTransition("vehicle", vehicle.status, VehicleStatus.RETIRED)
                logger.warning("Rejected retirement of vehicle %s: %s", vehicle_id, error)
                raise error
            updated = replace(vehicle, status=VehicleStatus.RETIRED)
            self.store.commit([Mutation(updated, version)])

        logger.info("Retired vehicle %s", vehicle.display_name)
        return updated

    def add_fuel_log(
        self,
        vehicle_id: int,
        liters: float,
        cost: float,
        odometer: Optional[float] = None,
        fill_date: Optional[date] = None,
        trip_id: Optional[int] = None,
    ) -> FuelLogEntry:
        """Append a fuel fill for a vehicle, optionally tied to one of its trips."""
        require_quantity("liters", liters)
        require_quantity("cost", cost)
        require_quantity("odometer", odometer, optional=True)
        self.store.get(Vehicle, vehicle_id)
        if trip_id is not None:
            trip = self.store.get(Trip, trip_id)
            if trip.vehicle_id != vehicle_id:
                raise NotFoundError(f"Trip for vehicle {vehicle_id}", trip_id)

        entry = FuelLogEntry(
            id=self.store.next_id(FuelLogEntry),
            vehicle_id=vehicle_id,
            date=fill_date or self.clock.today(),
            liters=liters,
            cost=cost,
            odometer=odometer,
            trip_id=trip_id,
        )
        self.store.add(entry)
        logger.info("Logged %.1f L for vehicle %s", liters, vehicle_id)
        return entry
