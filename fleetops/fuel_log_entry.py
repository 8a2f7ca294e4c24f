"""FuelLogEntry class for fuel fills."""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class FuelLogEntry:
    """A single fuel fill. Entries are never modified once logged."""

    id: int
    vehicle_id: int
    date: date
    liters: float
    cost: float
    odometer: Optional[float] = None
    trip_id: Optional[int] = None
