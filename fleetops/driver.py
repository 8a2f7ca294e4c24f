"""Driver record."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from .status import DriverStatus


@dataclass(frozen=True)
class Driver:
    """A driver, their license and their duty status."""

    id: int
    name: str
    license_number: str
    license_expiry: date
    license_category: Optional[str] = None
    status: DriverStatus = DriverStatus.OFF_DUTY
    safety_score: float = 100
    trips_completed: int = 0
    phone: Optional[str] = None
    email: Optional[str] = None
