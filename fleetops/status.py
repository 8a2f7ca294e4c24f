"""Status enums for fleet entities."""

from enum import Enum


class _ParsedEnum(Enum):
    """Enum whose members can be parsed from loosely formatted strings."""

    @classmethod
    def parse(cls, value):
        """
        Parse a raw status string into a member.

        Case and separators are normalized, so "On Trip", "on-trip" and
        "on_trip" are the same value. Anything else raises ValueError.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Invalid {cls.__name__}: {value!r}")
        key = value.strip().lower().replace(" ", "_").replace("-", "_")
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Invalid {cls.__name__}: {value!r}")


class VehicleStatus(_ParsedEnum):
    """Where a vehicle is in its rotation."""

    AVAILABLE = "available"
    ON_TRIP = "on_trip"
    IN_SHOP = "in_shop"
    RETIRED = "retired"


class DriverStatus(_ParsedEnum):
    """Duty status of a driver. ON_TRIP is set only by dispatch."""

    ON_DUTY = "on_duty"
    OFF_DUTY = "off_duty"
    ON_TRIP = "on_trip"
    SUSPENDED = "suspended"


class TripState(_ParsedEnum):
    """Trip lifecycle states."""

    DRAFT = "draft"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MaintenanceState(_ParsedEnum):
    """Maintenance record lifecycle states."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class VehicleCategory(_ParsedEnum):
    VAN = "van"
    TRUCK = "truck"
    BIKE = "bike"
