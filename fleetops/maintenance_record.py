"""MaintenanceRecord class for shop visits."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from .status import MaintenanceState


@dataclass(frozen=True)
class MaintenanceRecord:
    """A service job that keeps a vehicle in the shop until done."""

    id: int
    vehicle_id: int
    description: str
    service_date: date
    cost: float = 0
    service_type: Optional[str] = None
    mechanic: Optional[str] = None
    state: MaintenanceState = MaintenanceState.SCHEDULED

    @property
    def is_open(self) -> bool:
        return self.state != MaintenanceState.DONE
