"""Shared fixtures: a small fleet on a fixed clock."""

from datetime import date, datetime

import pytest

from fleetops import (
    DriverStatus,
    FixedClock,
    FleetRegistry,
    FleetStore,
    MaintenanceController,
    TripController,
)


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 1, 9, 0))


@pytest.fixture
def store():
    return FleetStore()


@pytest.fixture
def registry(store, clock):
    return FleetRegistry(store, clock)


@pytest.fixture
def trips(store, clock):
    return TripController(store, clock)


@pytest.fixture
def maintenance(store, clock):
    return MaintenanceController(store, clock)


@pytest.fixture
def van(registry):
    return registry.register_vehicle(
        "Toyota Hiace Van-01",
        "ABC-1234",
        "van",
        max_capacity=800,
        odometer=45200,
        acquisition_cost=25000,
    )


@pytest.fixture
def driver(registry):
    return registry.register_driver(
        "Alex Rivera",
        "LIC-001-2024",
        date(2027, 8, 15),
        status=DriverStatus.ON_DUTY,
    )
