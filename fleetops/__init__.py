"""
Fleet operations core.

This package tracks a logistics fleet and enforces its operating rules:
- Status enums: VehicleStatus, DriverStatus, TripState, MaintenanceState
- Records: Vehicle, Driver, Trip, MaintenanceRecord, FuelLogEntry
- FleetStore: owner of all records, with atomic batch commits
- Eligibility checks for assigning vehicles and drivers
- TripController / MaintenanceController: lifecycle transitions
- FleetRegistry: vehicle/driver registration and fuel logging
- compute_analytics: utilization, efficiency, ROI, dead stock, summaries
"""

from .status import (
    VehicleStatus,
    DriverStatus,
    TripState,
    MaintenanceState,
    VehicleCategory,
)
from .vehicle import Vehicle
from .driver import Driver
from .trip import Trip, format_reference
from .maintenance_record import MaintenanceRecord
from .fuel_log_entry import FuelLogEntry
from .errors import (
    FleetError,
    NotFoundError,
    PreconditionFailed,
    VehicleUnavailable,
    CapacityExceeded,
    DriverNotOnDuty,
    LicenseExpired,
    InvalidStateTransition,
    OdometerRegression,
    ConflictError,
)
from .clock import SystemClock, FixedClock
from .store import FleetStore, FleetSnapshot, Mutation
from .eligibility import (
    Eligibility,
    can_assign_vehicle,
    can_assign_driver,
    is_license_valid,
    is_license_expiring_soon,
)
from .trips import TripController
from .maintenance import MaintenanceController
from .registry import FleetRegistry
from .settings import Settings, load_settings
from .analytics import AnalyticsSnapshot, EfficiencyPoint, MonthlySummary, compute_analytics
from .loader import load_fleet, save_fleet, load_schema

__all__ = [
    "VehicleStatus",
    "DriverStatus",
    "TripState",
    "MaintenanceState",
    "VehicleCategory",
    "Vehicle",
    "Driver",
    "Trip",
    "format_reference",
    "MaintenanceRecord",
    "FuelLogEntry",
    "FleetError",
    "NotFoundError",
    "PreconditionFailed",
    "VehicleUnavailable",
    "CapacityExceeded",
    "DriverNotOnDuty",
    "LicenseExpired",
    "InvalidStateTransition",
    "OdometerRegression",
    "ConflictError",
    "SystemClock",
    "FixedClock",
    "FleetStore",
    "FleetSnapshot",
    "Mutation",
    "Eligibility",
    "can_assign_vehicle",
    "can_assign_driver",
    "is_license_valid",
    "is_license_expiring_soon",
    "TripController",
    "MaintenanceController",
    "FleetRegistry",
    "Settings",
    "load_settings",
    "AnalyticsSnapshot",
    "EfficiencyPoint",
    "MonthlySummary",
    "compute_analytics",
    "load_fleet",
    "save_fleet",
    "load_schema",
]
