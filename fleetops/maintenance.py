"""Maintenance lifecycle controller."""

import logging
from dataclasses import replace
from datetime import date
from typing import List, Optional

from .clock import SystemClock
from .errors import InvalidStateTransition
from .maintenance_record import MaintenanceRecord
from .status import MaintenanceState, VehicleStatus
from .store import FleetStore, Mutation
from .vehicle import Vehicle
from .validation import require_quantity

logger = logging.getLogger(__name__)


class MaintenanceController:
    """Opens and closes maintenance records and moves vehicles in and out of the shop."""

    def __init__(self, store: FleetStore, clock=None):
        self.store = store
        self.clock = clock or SystemClock()

    def get_maintenance(self, record_id: int) -> MaintenanceRecord:
        return self.store.get(MaintenanceRecord, record_id)

    def list_maintenance(
        self, vehicle_id: Optional[int] = None, open_only: bool = False
    ) -> List[MaintenanceRecord]:
        return self.store.list(
            MaintenanceRecord,
            lambda m: (vehicle_id is None or m.vehicle_id == vehicle_id)
            and (m.is_open or not open_only),
        )

    def create_maintenance(
        self,
        vehicle_id: int,
        description: str,
        cost: float = 0,
        service_date: Optional[date] = None,
        service_type: Optional[str] = None,
        mechanic: Optional[str] = None,
    ) -> MaintenanceRecord:
        """Schedule a service job. The vehicle goes IN_SHOP whatever its status."""
        require_quantity("cost", cost)
        with self.store.locked((Vehicle, vehicle_id)):
            vehicle, vehicle_version = self.store.get_versioned(Vehicle, vehicle_id)
            record = MaintenanceRecord(
                id=self.store.next_id(MaintenanceRecord),
                vehicle_id=vehicle_id,
                description=description,
                service_date=service_date or self.clock.today(),
                cost=cost,
                service_type=service_type,
                mechanic=mechanic,
            )
            self.store.commit(
                [
                    Mutation(record),
                    Mutation(replace(vehicle, status=VehicleStatus.IN_SHOP), vehicle_version),
                ]
            )

        logger.info(
            "Scheduled maintenance %s for vehicle %s: %s",
            record.id,
            vehicle_id,
            description,
        )
        return record

    def start_maintenance(self, record_id: int) -> MaintenanceRecord:
        """Move a SCHEDULED record to IN_PROGRESS."""
        record = self.store.get(MaintenanceRecord, record_id)
        with self.store.locked((MaintenanceRecord, record_id), (Vehicle, record.vehicle_id)):
            record, version = self.store.get_versioned(MaintenanceRecord, record_id)
            if record.state != MaintenanceState.SCHEDULED:
                self._reject(record, MaintenanceState.IN_PROGRESS)
            updated = replace(record, state=MaintenanceState.IN_PROGRESS)
            self.store.commit([Mutation(updated, version)])

        logger.info("Started maintenance %s", record_id)
        return updated

    def complete_maintenance(self, record_id: int) -> MaintenanceRecord:
        """
        Close a record and release the vehicle if nothing else keeps it in the shop.

        Other open records for the vehicle are looked up now, under the
        vehicle lock, so a record opened concurrently is never missed.
        """
        record = self.store.get(MaintenanceRecord, record_id)
        with self.store.locked((MaintenanceRecord, record_id), (Vehicle, record.vehicle_id)):
            record, version = self.store.get_versioned(MaintenanceRecord, record_id)
            if record.state == MaintenanceState.DONE:
                self._reject(record, MaintenanceState.DONE)

            updated = replace(record, state=MaintenanceState.DONE)
            mutations = [Mutation(updated, version)]

            still_open = self.store.list(
                MaintenanceRecord,
                lambda m: m.vehicle_id == record.vehicle_id
                and m.id != record.id
                and m.is_open,
            )
            vehicle, vehicle_version = self.store.get_versioned(Vehicle, record.vehicle_id)
            released = not still_open and vehicle.status == VehicleStatus.IN_SHOP
            if released:
                mutations.append(
                    Mutation(replace(vehicle, status=VehicleStatus.AVAILABLE), vehicle_version)
                )
            self.store.commit(mutations)

        if released:
            logger.info("Completed maintenance %s; vehicle %s available", record_id, vehicle.id)
        else:
            logger.info(
                "Completed maintenance %s; vehicle %s has %d open record(s)",
                record_id,
                vehicle.id,
                len(still_open),
            )
        return updated

    @staticmethod
    def _reject(record: MaintenanceRecord, target: MaintenanceState) -> None:
        error = InvalidStateTransition("maintenance record", record.state, target)
        logger.warning("Rejected transition for maintenance %s: %s", record.id, error)
        raise error
