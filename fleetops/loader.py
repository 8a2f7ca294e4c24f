"""YAML loading and saving utilities for fleet data."""

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from dateutil.parser import isoparse
from jsonschema import validate

from .clock import to_naive
from .driver import Driver
from .fuel_log_entry import FuelLogEntry
from .maintenance_record import MaintenanceRecord
from .settings import Settings
from .status import (
    DriverStatus,
    MaintenanceState,
    TripState,
    VehicleCategory,
    VehicleStatus,
)
from .store import FleetStore
from .trip import Trip
from .vehicle import Vehicle

SCHEMA_PATH = Path(__file__).parent / "schema.yaml"


def load_schema() -> dict:
    """Load the JSON schema for fleet files."""
    with open(SCHEMA_PATH) as f:
        return yaml.safe_load(f)


def _to_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return isoparse(str(value)).date()


def parse_timestamp(value) -> datetime:
    """
    Parse an ISO timestamp into a naive datetime.

    Timestamps with a UTC offset ("Z", "+08:00") are converted to UTC and
    the offset dropped, so they compare with the naive times the clock
    hands out. Malformed strings raise ValueError.
    """
    parsed = value if isinstance(value, datetime) else isoparse(str(value))
    return to_naive(parsed)


def _to_datetime(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    return parse_timestamp(value)


# =============================================================================
# Parsing
# =============================================================================


def _parse_vehicle(dct: Dict[str, Any]) -> Vehicle:
    return Vehicle(
        id=dct["id"],
        name=dct["name"],
        license_plate=dct["licensePlate"],
        category=VehicleCategory.parse(dct["category"]),
        max_capacity=dct["maxCapacity"],
        odometer=dct.get("odometer", 0),
        status=VehicleStatus.parse(dct.get("status", "available")),
        acquisition_cost=dct.get("acquisitionCost", 0),
        model=dct.get("model"),
        region=dct.get("region"),
    )


def _parse_driver(dct: Dict[str, Any]) -> Driver:
    return Driver(
        id=dct["id"],
        name=dct["name"],
        license_number=dct["licenseNumber"],
        license_expiry=_to_date(dct["licenseExpiry"]),
        license_category=dct.get("licenseCategory"),
        status=DriverStatus.parse(dct.get("status", "off_duty")),
        safety_score=dct.get("safetyScore", 100),
        trips_completed=dct.get("tripsCompleted", 0),
        phone=dct.get("phone"),
        email=dct.get("email"),
    )


def _parse_trip(dct: Dict[str, Any]) -> Trip:
    return Trip(
        id=dct["id"],
        reference=dct["reference"],
        vehicle_id=dct["vehicleId"],
        driver_id=dct["driverId"],
        origin=dct["origin"],
        destination=dct["destination"],
        cargo_weight=dct["cargoWeight"],
        start_time=_to_datetime(dct["startTime"]),
        state=TripState.parse(dct.get("state", "draft")),
        end_time=_to_datetime(dct.get("endTime")),
        odometer_start=dct.get("odometerStart"),
        odometer_end=dct.get("odometerEnd"),
    )


def _parse_maintenance(dct: Dict[str, Any]) -> MaintenanceRecord:
    return MaintenanceRecord(
        id=dct["id"],
        vehicle_id=dct["vehicleId"],
        description=dct["description"],
        service_date=_to_date(dct["serviceDate"]),
        cost=dct.get("cost", 0),
        service_type=dct.get("serviceType"),
        mechanic=dct.get("mechanic"),
        state=MaintenanceState.parse(dct.get("state", "scheduled")),
    )


def _parse_fuel_log(dct: Dict[str, Any]) -> FuelLogEntry:
    return FuelLogEntry(
        id=dct["id"],
        vehicle_id=dct["vehicleId"],
        date=_to_date(dct["date"]),
        liters=dct["liters"],
        cost=dct["cost"],
        odometer=dct.get("odometer"),
        trip_id=dct.get("tripId"),
    )


_SECTIONS = (
    ("vehicles", _parse_vehicle),
    ("drivers", _parse_driver),
    ("trips", _parse_trip),
    ("maintenance", _parse_maintenance),
    ("fuelLogs", _parse_fuel_log),
)


def read_fleet_data(filename: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a fleet YAML file into plain JSON-compatible data.

    Dates that YAML parsed into date objects come back as ISO strings.
    """
    with open(filename, "rb") as fp:
        data = yaml.load(fp, Loader=yaml.SafeLoader) or {}
    return json.loads(json.dumps(data, default=lambda v: v.isoformat()))


def load_fleet(
    filename: Union[str, Path], validate_schema: bool = False
) -> Tuple[FleetStore, Settings]:
    """
    Load a fleet file into a new store.

    Unrecognized status values raise ValueError. With validate_schema the
    file is checked against schema.yaml first and jsonschema's
    ValidationError propagates.
    """
    data = read_fleet_data(filename)
    if validate_schema:
        validate(instance=data, schema=load_schema())

    store = FleetStore()
    for section, parse in _SECTIONS:
        for dct in data.get(section) or []:
            store.add(parse(dct))
    return store, Settings.from_dict(data.get("settings"))


# =============================================================================
# Saving
# =============================================================================


def _drop_none(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _vehicle_to_dict(v: Vehicle) -> Dict[str, Any]:
    return _drop_none(
        {
            "id": v.id,
            "name": v.name,
            "licensePlate": v.license_plate,
            "category": v.category.value,
            "maxCapacity": v.max_capacity,
            "odometer": v.odometer,
            "status": v.status.value,
            "acquisitionCost": v.acquisition_cost,
            "model": v.model,
            "region": v.region,
        }
    )


def _driver_to_dict(d: Driver) -> Dict[str, Any]:
    return _drop_none(
        {
            "id": d.id,
            "name": d.name,
            "licenseNumber": d.license_number,
            "licenseExpiry": _iso(d.license_expiry),
            "licenseCategory": d.license_category,
            "status": d.status.value,
            "safetyScore": d.safety_score,
            "tripsCompleted": d.trips_completed,
            "phone": d.phone,
            "email": d.email,
        }
    )


def _trip_to_dict(t: Trip) -> Dict[str, Any]:
    return _drop_none(
        {
            "id": t.id,
            "reference": t.reference,
            "vehicleId": t.vehicle_id,
            "driverId": t.driver_id,
            "origin": t.origin,
            "destination": t.destination,
            "cargoWeight": t.cargo_weight,
            "state": t.state.value,
            "startTime": _iso(t.start_time),
            "endTime": _iso(t.end_time),
            "odometerStart": t.odometer_start,
            "odometerEnd": t.odometer_end,
        }
    )


def _maintenance_to_dict(m: MaintenanceRecord) -> Dict[str, Any]:
    return _drop_none(
        {
            "id": m.id,
            "vehicleId": m.vehicle_id,
            "description": m.description,
            "serviceDate": _iso(m.service_date),
            "serviceType": m.service_type,
            "cost": m.cost,
            "mechanic": m.mechanic,
            "state": m.state.value,
        }
    )


def _fuel_log_to_dict(f: FuelLogEntry) -> Dict[str, Any]:
    return _drop_none(
        {
            "id": f.id,
            "vehicleId": f.vehicle_id,
            "tripId": f.trip_id,
            "date": _iso(f.date),
            "liters": f.liters,
            "cost": f.cost,
            "odometer": f.odometer,
        }
    )


def fleet_to_dict(
    store: FleetStore, settings: Optional[Settings] = None
) -> Dict[str, Any]:
    """Serialize a consistent snapshot of the store to the YAML dict format."""
    snapshot = store.snapshot()
    data: Dict[str, Any] = {}
    if settings is not None and settings != Settings():
        data["settings"] = settings.to_dict()
    data["vehicles"] = [_vehicle_to_dict(v) for v in snapshot.vehicles]
    data["drivers"] = [_driver_to_dict(d) for d in snapshot.drivers]
    data["trips"] = [_trip_to_dict(t) for t in snapshot.trips]
    data["maintenance"] = [_maintenance_to_dict(m) for m in snapshot.maintenance]
    data["fuelLogs"] = [_fuel_log_to_dict(f) for f in snapshot.fuel_logs]
    return data


def save_fleet(
    filename: Union[str, Path], store: FleetStore, settings: Optional[Settings] = None
) -> None:
    """Write the whole fleet to a YAML file."""
    with open(filename, "w") as fp:
        yaml.dump(
            fleet_to_dict(store, settings),
            fp,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=120,
        )
