"""
Pure eligibility checks for trip assignment.

These functions only look at the snapshots passed in. They never touch the
store and give the same answer for the same inputs.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from .driver import Driver
from .errors import (
    CapacityExceeded,
    DriverNotOnDuty,
    LicenseExpired,
    PreconditionFailed,
    VehicleUnavailable,
)
from .status import DriverStatus, VehicleStatus
from .vehicle import Vehicle

LICENSE_WARNING_WINDOW = timedelta(days=30)


@dataclass(frozen=True)
class Eligibility:
    """Outcome of an eligibility check: the failure reason, if any."""

    reason: Optional[PreconditionFailed] = None

    @property
    def eligible(self) -> bool:
        return self.reason is None

    def __bool__(self) -> bool:
        return self.eligible


OK = Eligibility()


def can_assign_vehicle(vehicle: Vehicle, cargo_weight: float) -> Eligibility:
    """Vehicle must be available and able to carry the cargo."""
    if vehicle.status != VehicleStatus.AVAILABLE:
        return Eligibility(VehicleUnavailable(vehicle.id, vehicle.status))
    if cargo_weight > vehicle.max_capacity:
        return Eligibility(CapacityExceeded(cargo_weight, vehicle.max_capacity))
    return OK


def can_assign_driver(driver: Driver, as_of: date) -> Eligibility:
    """Driver must be on duty with a license valid past as_of."""
    if driver.status != DriverStatus.ON_DUTY:
        return Eligibility(DriverNotOnDuty(driver.id, driver.status))
    if not is_license_valid(driver, as_of):
        return Eligibility(LicenseExpired(driver.id, driver.license_expiry))
    return OK


def is_license_valid(driver: Driver, as_of: date) -> bool:
    """A license expiring on as_of is already expired."""
    return driver.license_expiry > as_of


def is_license_expiring_soon(
    driver: Driver, as_of: date, window: timedelta = LICENSE_WARNING_WINDOW
) -> bool:
    """
    Advisory flag for a still-valid license that expires within window.

    Never used to block a transition.
    """
    if not is_license_valid(driver, as_of):
        return False
    return driver.license_expiry - as_of < window
