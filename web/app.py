"""Flask JSON API for fleet operations."""

import logging
import os
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from threading import Lock

from dateutil.parser import isoparse
from flask import Flask, abort, jsonify, request

from fleetops import (
    ConflictError,
    FleetRegistry,
    MaintenanceController,
    NotFoundError,
    PreconditionFailed,
    Settings,
    SystemClock,
    TripController,
    TripState,
    compute_analytics,
    load_fleet,
    save_fleet,
)
from fleetops.driver import Driver
from fleetops.loader import parse_timestamp
from fleetops.store import FleetStore
from fleetops.vehicle import Vehicle

logger = logging.getLogger(__name__)

# Path to the fleet file (relative to project root)
DEFAULT_FLEET_FILE = Path(__file__).parent.parent / "fleets" / "manila.yaml"


def to_json(value):
    """Convert records, enums and dates to JSON-compatible values with camelCase keys."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {_json_key(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    if hasattr(value, "__dataclass_fields__"):
        data = {name: getattr(value, name) for name in value.__dataclass_fields__}
        for name in ("net_profit", "total", "operating_cost"):
            if hasattr(type(value), name):
                data[name] = getattr(value, name)
        return to_json(data)
    return value


def _json_key(key):
    if not isinstance(key, str):
        return str(key)
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _require(payload, *names):
    missing = [n for n in names if payload.get(n) is None]
    if missing:
        abort(400, description=f"Missing field(s): {', '.join(missing)}")


def _parse_date(value):
    return isoparse(str(value)).date() if value else None


def create_app(store: FleetStore = None, settings: Settings = None, fleet_file=None, clock=None):
    """
    Build the app around one store.

    With fleet_file set, the store is loaded from it (when no store is
    given) and every successful write is saved back to it.
    """
    app = Flask(__name__)
    app.secret_key = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-prod")

    if store is None:
        fleet_file = fleet_file or os.environ.get("FLEET_FILE") or DEFAULT_FLEET_FILE
        store, loaded_settings = load_fleet(fleet_file)
        settings = settings or loaded_settings
    settings = settings or Settings()
    clock = clock or SystemClock()

    trips = TripController(store, clock)
    maintenance = MaintenanceController(store, clock)
    registry = FleetRegistry(store, clock)
    save_lock = Lock()

    def persist():
        if fleet_file is None:
            return
        with save_lock:
            save_fleet(fleet_file, store, settings)

    @app.errorhandler(NotFoundError)
    def handle_not_found(error):
        return jsonify(error=str(error)), 404

    @app.errorhandler(PreconditionFailed)
    def handle_precondition(error):
        return jsonify(error=str(error), kind=type(error).__name__), 400

    @app.errorhandler(ConflictError)
    def handle_conflict(error):
        return jsonify(error=str(error)), 409

    @app.errorhandler(ValueError)
    def handle_value_error(error):
        return jsonify(error=str(error)), 400

    @app.errorhandler(400)
    def handle_bad_request(error):
        return jsonify(error=error.description), 400

    # -------------------------------------------------------------------------
    # Vehicles and drivers
    # -------------------------------------------------------------------------

    @app.route("/vehicles")
    def list_vehicles():
        return jsonify(to_json(store.list(Vehicle)))

    @app.route("/vehicles", methods=["POST"])
    def add_vehicle():
        payload = request.get_json(force=True)
        _require(payload, "name", "licensePlate", "category", "maxCapacity")
        vehicle = registry.register_vehicle(
            payload["name"],
            payload["licensePlate"],
            payload["category"],
            payload["maxCapacity"],
            odometer=payload.get("odometer", 0),
            acquisition_cost=payload.get("acquisitionCost", 0),
            model=payload.get("model"),
            region=payload.get("region"),
        )
        persist()
        return jsonify(to_json(vehicle)), 201

    @app.route("/vehicles/<int:vehicle_id>/retire", methods=["PUT"])
    def retire_vehicle(vehicle_id):
        vehicle = registry.retire_vehicle(vehicle_id)
        persist()
        return jsonify(to_json(vehicle))

    @app.route("/drivers")
    def list_drivers():
        return jsonify(to_json(store.list(Driver)))

    @app.route("/drivers", methods=["POST"])
    def add_driver():
        payload = request.get_json(force=True)
        _require(payload, "name", "licenseNumber", "licenseExpiry")
        driver = registry.register_driver(
            payload["name"],
            payload["licenseNumber"],
            _parse_date(payload["licenseExpiry"]),
            license_category=payload.get("licenseCategory"),
            status=payload.get("status", "off_duty"),
            safety_score=payload.get("safetyScore", 100),
            phone=payload.get("phone"),
            email=payload.get("email"),
        )
        persist()
        return jsonify(to_json(driver)), 201

    @app.route("/drivers/<int:driver_id>/status", methods=["PUT"])
    def update_driver_status(driver_id):
        payload = request.get_json(force=True)
        _require(payload, "status")
        driver = registry.set_driver_status(driver_id, payload["status"])
        persist()
        return jsonify(to_json(driver))

    # -------------------------------------------------------------------------
    # Trips
    # -------------------------------------------------------------------------

    @app.route("/trips")
    def list_trips():
        state = request.args.get("state")
        result = trips.list_trips(TripState.parse(state) if state else None)
        return jsonify(to_json(sorted(result, key=lambda t: t.id, reverse=True)))

    @app.route("/trips", methods=["POST"])
    def create_trip():
        payload = request.get_json(force=True)
        _require(payload, "vehicleId", "driverId", "cargoWeight", "origin", "destination")
        trip = trips.create_trip(
            payload["vehicleId"],
            payload["driverId"],
            payload["cargoWeight"],
            payload["origin"],
            payload["destination"],
            odometer_start=payload.get("odometerStart"),
        )
        persist()
        return jsonify(to_json(trip)), 201

    @app.route("/trips/<int:trip_id>/dispatch", methods=["PUT"])
    def dispatch_trip(trip_id):
        trip = trips.dispatch_trip(trip_id)
        persist()
        return jsonify(to_json(trip))

    @app.route("/trips/<int:trip_id>/complete", methods=["PUT"])
    def complete_trip(trip_id):
        payload = request.get_json(force=True)
        _require(payload, "odometerEnd")
        trip = trips.complete_trip(trip_id, payload["odometerEnd"])
        persist()
        return jsonify(to_json(trip))

    @app.route("/trips/<int:trip_id>/cancel", methods=["PUT"])
    def cancel_trip(trip_id):
        trip = trips.cancel_trip(trip_id)
        persist()
        return jsonify(to_json(trip))

    # -------------------------------------------------------------------------
    # Maintenance and fuel
    # -------------------------------------------------------------------------

    @app.route("/maintenance")
    def list_maintenance():
        vehicle_id = request.args.get("vehicleId", type=int)
        open_only = request.args.get("open", "").lower() == "true"
        records = maintenance.list_maintenance(vehicle_id=vehicle_id, open_only=open_only)
        return jsonify(to_json(records))

    @app.route("/maintenance", methods=["POST"])
    def create_maintenance():
        payload = request.get_json(force=True)
        _require(payload, "vehicleId", "description")
        record = maintenance.create_maintenance(
            payload["vehicleId"],
            payload["description"],
            cost=payload.get("cost", 0),
            service_date=_parse_date(payload.get("serviceDate")),
            service_type=payload.get("serviceType"),
            mechanic=payload.get("mechanic"),
        )
        persist()
        return jsonify(to_json(record)), 201

    @app.route("/maintenance/<int:record_id>/start", methods=["PUT"])
    def start_maintenance(record_id):
        record = maintenance.start_maintenance(record_id)
        persist()
        return jsonify(to_json(record))

    @app.route("/maintenance/<int:record_id>/complete", methods=["PUT"])
    def complete_maintenance(record_id):
        record = maintenance.complete_maintenance(record_id)
        persist()
        return jsonify(to_json(record))

    @app.route("/fuel-logs", methods=["POST"])
    def add_fuel_log():
        payload = request.get_json(force=True)
        _require(payload, "vehicleId", "liters", "cost")
        entry = registry.add_fuel_log(
            payload["vehicleId"],
            payload["liters"],
            payload["cost"],
            odometer=payload.get("odometer"),
            fill_date=_parse_date(payload.get("date")),
            trip_id=payload.get("tripId"),
        )
        persist()
        return jsonify(to_json(entry)), 201

    # -------------------------------------------------------------------------
    # Dashboard and analytics
    # -------------------------------------------------------------------------

    @app.route("/dashboard")
    def dashboard():
        snapshot = compute_analytics(store, clock.now(), settings)
        counts = snapshot.counts
        return jsonify(
            activeFleet=counts.on_trip,
            inShop=counts.in_shop,
            totalVehicles=counts.total,
            pendingTrips=counts.pending_trips,
            openMaintenance=counts.open_maintenance,
            utilizationRate=snapshot.utilization_rate,
        )

    @app.route("/analytics")
    def analytics():
        as_of = request.args.get("asOf")
        as_of = parse_timestamp(as_of) if as_of else clock.now()
        return jsonify(to_json(compute_analytics(store, as_of, settings)))

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(debug=True)
