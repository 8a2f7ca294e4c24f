"""
Error types raised by the fleet controllers.

- NotFoundError: a referenced vehicle, driver, trip or record does not exist
- PreconditionFailed: the current state does not permit the transition
- ConflictError: a concurrent write changed an entity before commit
"""


class FleetError(Exception):
    """Base class for all fleet operation errors."""


class NotFoundError(FleetError):
    def __init__(self, kind: str, entity_id):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id} not found")


class PreconditionFailed(FleetError):
    """The entity's status or state does not allow the requested change."""


class VehicleUnavailable(PreconditionFailed):
    def __init__(self, vehicle_id, status):
        self.vehicle_id = vehicle_id
        self.status = status
        super().__init__(f"Vehicle {vehicle_id} is not available ({status.value})")


class CapacityExceeded(PreconditionFailed):
    def __init__(self, requested: float, maximum: float):
        self.requested = requested
        self.maximum = maximum
        super().__init__(
            f"Cargo weight {requested:g}kg exceeds vehicle capacity {maximum:g}kg"
        )

    def __eq__(self, other):
        if not isinstance(other, CapacityExceeded):
            return NotImplemented
        return (self.requested, self.maximum) == (other.requested, other.maximum)

    def __hash__(self):
        return hash((self.requested, self.maximum))


class DriverNotOnDuty(PreconditionFailed):
    def __init__(self, driver_id, status):
        self.driver_id = driver_id
        self.status = status
        super().__init__(f"Driver {driver_id} is not on duty ({status.value})")


class LicenseExpired(PreconditionFailed):
    def __init__(self, driver_id, expiry):
        self.driver_id = driver_id
        self.expiry = expiry
        super().__init__(f"Driver {driver_id} license expired on {expiry.isoformat()}")


class InvalidStateTransition(PreconditionFailed):
    def __init__(self, kind: str, current, requested):
        self.kind = kind
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move {kind} from {current.value} to {requested.value}"
        )


class OdometerRegression(PreconditionFailed):
    def __init__(self, current: float, requested: float):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Odometer reading {requested:,.0f} is below current {current:,.0f}"
        )


class ConflictError(FleetError):
    """An entity changed between read and commit."""
