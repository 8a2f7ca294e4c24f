"""
Trip lifecycle controller.

Trip state machine and its side effects:

    create    -> DRAFT       no vehicle/driver change
    dispatch  DRAFT -> DISPATCHED      vehicle ON_TRIP, driver ON_TRIP
    complete  DISPATCHED -> COMPLETED  vehicle AVAILABLE + odometer,
                                       driver ON_DUTY + trips_completed
    cancel    DISPATCHED -> CANCELLED  vehicle AVAILABLE, driver ON_DUTY

Each transition holds the locks of every entity it reads and commits all of
its mutations in one batch.
"""

import logging
from dataclasses import replace
from typing import List, Optional

from .clock import SystemClock
from .driver import Driver
from .eligibility import can_assign_driver, can_assign_vehicle
from .errors import (
    DriverNotOnDuty,
    InvalidStateTransition,
    OdometerRegression,
    PreconditionFailed,
    VehicleUnavailable,
)
from .status import DriverStatus, TripState, VehicleStatus
from .store import FleetStore, Mutation
from .trip import Trip, format_reference
from .validation import require_quantity
from .vehicle import Vehicle

logger = logging.getLogger(__name__)


class TripController:
    """Creates trips and moves them through their lifecycle."""

    def __init__(self, store: FleetStore, clock=None):
        self.store = store
        self.clock = clock or SystemClock()

    def get_trip(self, trip_id: int) -> Trip:
        return self.store.get(Trip, trip_id)

    def list_trips(self, state: Optional[TripState] = None) -> List[Trip]:
        if state is None:
            return self.store.list(Trip)
        return self.store.list(Trip, lambda t: t.state == state)

    def create_trip(
        self,
        vehicle_id: int,
        driver_id: int,
        cargo_weight: float,
        origin: str,
        destination: str,
        odometer_start: Optional[float] = None,
    ) -> Trip:
        """
        Create a DRAFT trip after validating the vehicle and driver.

        The vehicle and driver are not changed until the trip is dispatched.
        odometer_start defaults to the vehicle's current reading.
        """
        require_quantity("cargo_weight", cargo_weight)
        require_quantity("odometer_start", odometer_start, optional=True)
        with self.store.locked((Vehicle, vehicle_id), (Driver, driver_id)):
            vehicle = self.store.get(Vehicle, vehicle_id)
            driver = self.store.get(Driver, driver_id)
            now = self.clock.now()

            for check in (
                can_assign_vehicle(vehicle, cargo_weight),
                can_assign_driver(driver, now.date()),
            ):
                if not check.eligible:
                    logger.warning(
                        "Rejected trip for vehicle %s / driver %s: %s",
                        vehicle_id,
                        driver_id,
                        check.reason,
                    )
                    raise check.reason

            sequence = self.store.next_trip_sequence(now.year)
            trip = Trip(
                id=self.store.next_id(Trip),
                reference=format_reference(now.year, sequence),
                vehicle_id=vehicle_id,
                driver_id=driver_id,
                origin=origin,
                destination=destination,
                cargo_weight=cargo_weight,
                start_time=now,
                odometer_start=(
                    vehicle.odometer if odometer_start is None else odometer_start
                ),
            )
            self.store.commit([Mutation(trip)])

        logger.info("Created trip %s (%s -> %s)", trip.reference, origin, destination)
        return trip

    def dispatch_trip(self, trip_id: int) -> Trip:
        """
        Send a DRAFT trip out.

        The vehicle must still be available and the driver still on duty,
        since either may have changed since the trip was drafted.
        """
        trip = self.store.get(Trip, trip_id)
        with self._locked(trip):
            trip, trip_version = self.store.get_versioned(Trip, trip_id)
            vehicle, vehicle_version = self.store.get_versioned(Vehicle, trip.vehicle_id)
            driver, driver_version = self.store.get_versioned(Driver, trip.driver_id)

            self._require_state(trip, TripState.DRAFT, TripState.DISPATCHED)
            if vehicle.status != VehicleStatus.AVAILABLE:
                self._reject(trip, VehicleUnavailable(vehicle.id, vehicle.status))
            if driver.status != DriverStatus.ON_DUTY:
                self._reject(trip, DriverNotOnDuty(driver.id, driver.status))

            updated = replace(trip, state=TripState.DISPATCHED)
            self.store.commit(
                [
                    Mutation(updated, trip_version),
                    Mutation(replace(vehicle, status=VehicleStatus.ON_TRIP), vehicle_version),
                    Mutation(replace(driver, status=DriverStatus.ON_TRIP), driver_version),
                ]
            )

        logger.info("Dispatched trip %s", updated.reference)
        return updated

    def complete_trip(self, trip_id: int, odometer_end: float) -> Trip:
        """Finish a DISPATCHED trip and release its vehicle and driver."""
        require_quantity("odometer_end", odometer_end)
        trip = self.store.get(Trip, trip_id)
        with self._locked(trip):
            trip, trip_version = self.store.get_versioned(Trip, trip_id)
            vehicle, vehicle_version = self.store.get_versioned(Vehicle, trip.vehicle_id)
            driver, driver_version = self.store.get_versioned(Driver, trip.driver_id)

            self._require_state(trip, TripState.DISPATCHED, TripState.COMPLETED)
            floor = vehicle.odometer
            if trip.odometer_start is not None and trip.odometer_start > floor:
                floor = trip.odometer_start
            if odometer_end < floor:
                self._reject(trip, OdometerRegression(floor, odometer_end))

            updated = replace(
                trip,
                state=TripState.COMPLETED,
                end_time=self.clock.now(),
                odometer_end=odometer_end,
            )
            self.store.commit(
                [
                    Mutation(updated, trip_version),
                    Mutation(
                        replace(
                            vehicle,
                            status=VehicleStatus.AVAILABLE,
                            odometer=odometer_end,
                        ),
                        vehicle_version,
                    ),
                    Mutation(
                        replace(
                            driver,
                            status=DriverStatus.ON_DUTY,
                            trips_completed=driver.trips_completed + 1,
                        ),
                        driver_version,
                    ),
                ]
            )

        logger.info("Completed trip %s at %s", updated.reference, odometer_end)
        return updated

    def cancel_trip(self, trip_id: int) -> Trip:
        """Call off a DISPATCHED trip and release its vehicle and driver."""
        trip = self.store.get(Trip, trip_id)
        with self._locked(trip):
            trip, trip_version = self.store.get_versioned(Trip, trip_id)
            vehicle, vehicle_version = self.store.get_versioned(Vehicle, trip.vehicle_id)
            driver, driver_version = self.store.get_versioned(Driver, trip.driver_id)

            self._require_state(trip, TripState.DISPATCHED, TripState.CANCELLED)

            updated = replace(trip, state=TripState.CANCELLED)
            self.store.commit(
                [
                    Mutation(updated, trip_version),
                    Mutation(replace(vehicle, status=VehicleStatus.AVAILABLE), vehicle_version),
                    Mutation(replace(driver, status=DriverStatus.ON_DUTY), driver_version),
                ]
            )

        logger.info("Cancelled trip %s", updated.reference)
        return updated

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _locked(self, trip: Trip):
        return self.store.locked(
            (Trip, trip.id), (Vehicle, trip.vehicle_id), (Driver, trip.driver_id)
        )

    def _require_state(self, trip: Trip, expected: TripState, target: TripState) -> None:
        if trip.state != expected:
            self._reject(trip, InvalidStateTransition("trip", trip.state, target))

    @staticmethod
    def _reject(trip: Trip, error: PreconditionFailed) -> None:
        logger.warning("Rejected transition for trip %s: %s", trip.reference, error)
        raise error
