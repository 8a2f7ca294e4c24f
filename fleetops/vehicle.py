"""Vehicle record."""

from dataclasses import dataclass
from typing import Optional

from .status import VehicleCategory, VehicleStatus


@dataclass(frozen=True)
class Vehicle:
    """A fleet vehicle and its current rotation status."""

    id: int
    name: str
    license_plate: str
    category: VehicleCategory
    max_capacity: float
    odometer: float = 0
    status: VehicleStatus = VehicleStatus.AVAILABLE
    acquisition_cost: float = 0
    model: Optional[str] = None
    region: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Human-readable name with plate, e.g. 'Van-01 (ABC-1234)'."""
        return f"{self.name} ({self.license_plate})"

    @property
    def is_retired(self) -> bool:
        return self.status == VehicleStatus.RETIRED
