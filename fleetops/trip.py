"""Trip record."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .status import TripState


def format_reference(year: int, sequence: int) -> str:
    """Build a trip reference code, e.g. TRIP-2026-007."""
    return f"TRIP-{year}-{sequence:03d}"


def parse_reference(reference: str) -> Optional[tuple]:
    """Split a reference code into (year, sequence), or None if malformed."""
    parts = reference.split("-")
    if len(parts) != 3 or parts[0] != "TRIP":
        return None
    try:
        return int(parts[1]), int(parts[2])
    except ValueError:
        return None


@dataclass(frozen=True)
class Trip:
    """One dispatch of a vehicle and driver from origin to destination."""

    id: int
    reference: str
    vehicle_id: int
    driver_id: int
    origin: str
    destination: str
    cargo_weight: float
    start_time: datetime
    state: TripState = TripState.DRAFT
    end_time: Optional[datetime] = None
    odometer_start: Optional[float] = None
    odometer_end: Optional[float] = None

    @property
    def distance(self) -> Optional[float]:
        """Distance driven, known only once both odometer readings exist."""
        if self.odometer_start is None or self.odometer_end is None:
            return None
        return self.odometer_end - self.odometer_start

    @property
    def is_active(self) -> bool:
        return self.state in (TripState.DRAFT, TripState.DISPATCHED)
