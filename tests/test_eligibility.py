#!/usr/bin/env python3
"""Tests for eligibility checks."""

from datetime import date, timedelta

import pytest

from fleetops import (
    CapacityExceeded,
    Driver,
    DriverNotOnDuty,
    DriverStatus,
    LicenseExpired,
    Vehicle,
    VehicleCategory,
    VehicleStatus,
    VehicleUnavailable,
    can_assign_driver,
    can_assign_vehicle,
    is_license_expiring_soon,
    is_license_valid,
)

AS_OF = date(2026, 3, 1)


def make_vehicle(**kwargs):
    defaults = dict(
        id=1,
        name="Van-01",
        license_plate="ABC-1234",
        category=VehicleCategory.VAN,
        max_capacity=800,
    )
    defaults.update(kwargs)
    return Vehicle(**defaults)


def make_driver(**kwargs):
    defaults = dict(
        id=1,
        name="Alex Rivera",
        license_number="LIC-001",
        license_expiry=date(2027, 1, 1),
        status=DriverStatus.ON_DUTY,
    )
    defaults.update(kwargs)
    return Driver(**defaults)


class TestCanAssignVehicle:
    """Tests for can_assign_vehicle."""

    def test_available_within_capacity(self):
        """An available vehicle can carry cargo under its capacity."""
        result = can_assign_vehicle(make_vehicle(), 450)
        assert result.eligible
        assert result.reason is None

    def test_cargo_equal_to_capacity_allowed(self):
        """Cargo exactly at capacity is allowed."""
        assert can_assign_vehicle(make_vehicle(), 800).eligible

    def test_capacity_exceeded_reports_both_weights(self):
        """The refusal carries both the cargo weight and the capacity."""
        result = can_assign_vehicle(make_vehicle(), 850)
        assert not result.eligible
        assert result.reason == CapacityExceeded(850, 800)
        assert result.reason.requested == 850
        assert result.reason.maximum == 800

    @pytest.mark.parametrize(
        "status", [VehicleStatus.ON_TRIP, VehicleStatus.IN_SHOP, VehicleStatus.RETIRED]
    )
    def test_unavailable_status(self, status):
        """Vehicles that are not available cannot be assigned."""
        result = can_assign_vehicle(make_vehicle(status=status), 100)
        assert isinstance(result.reason, VehicleUnavailable)

    def test_unavailable_checked_before_capacity(self):
        """Status is reported before an overweight load."""
        result = can_assign_vehicle(make_vehicle(status=VehicleStatus.IN_SHOP), 9000)
        assert isinstance(result.reason, VehicleUnavailable)

    def test_deterministic(self):
        """The same inputs always give the same answer."""
        vehicle = make_vehicle()
        assert can_assign_vehicle(vehicle, 900) == can_assign_vehicle(vehicle, 900)


class TestCanAssignDriver:
    """Tests for can_assign_driver."""

    def test_on_duty_with_valid_license(self):
        """An on-duty driver with a valid license is eligible."""
        assert can_assign_driver(make_driver(), AS_OF).eligible

    @pytest.mark.parametrize(
        "status", [DriverStatus.OFF_DUTY, DriverStatus.SUSPENDED, DriverStatus.ON_TRIP]
    )
    def test_not_on_duty(self, status):
        """Drivers off duty, on a trip or suspended are refused."""
        result = can_assign_driver(make_driver(status=status), AS_OF)
        assert isinstance(result.reason, DriverNotOnDuty)

    def test_expired_license(self):
        """An expired license disqualifies the driver."""
        result = can_assign_driver(make_driver(license_expiry=date(2025, 3, 1)), AS_OF)
        assert isinstance(result.reason, LicenseExpired)

    def test_license_expiring_today_is_expired(self):
        """A license is no longer valid on its expiry date."""
        result = can_assign_driver(make_driver(license_expiry=AS_OF), AS_OF)
        assert isinstance(result.reason, LicenseExpired)


class TestLicenseHelpers:
    """Tests for is_license_valid and is_license_expiring_soon."""

    def test_valid_after_as_of(self):
        """A license expiring after as_of is valid."""
        assert is_license_valid(make_driver(license_expiry=AS_OF + timedelta(days=1)), AS_OF)

    def test_expiring_within_window(self):
        """Expiry inside the warning window counts as expiring soon."""
        driver = make_driver(license_expiry=AS_OF + timedelta(days=10))
        assert is_license_expiring_soon(driver, AS_OF)

    def test_not_expiring_outside_window(self):
        """Expiry beyond the window is not flagged."""
        driver = make_driver(license_expiry=AS_OF + timedelta(days=60))
        assert not is_license_expiring_soon(driver, AS_OF)

    def test_custom_window(self):
        """The warning window can be widened."""
        driver = make_driver(license_expiry=AS_OF + timedelta(days=60))
        assert is_license_expiring_soon(driver, AS_OF, window=timedelta(days=90))

    def test_expired_is_not_expiring_soon(self):
        """An already expired license is not also expiring soon."""
        driver = make_driver(license_expiry=AS_OF - timedelta(days=1))
        assert not is_license_expiring_soon(driver, AS_OF)

    def test_advisory_does_not_block(self):
        """A license expiring soon still passes can_assign_driver."""
        driver = make_driver(license_expiry=AS_OF + timedelta(days=5))
        assert is_license_expiring_soon(driver, AS_OF)
        assert can_assign_driver(driver, AS_OF).eligible
