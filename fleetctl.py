#!/usr/bin/env python3
"""
Unified CLI for fleet operations.

Commands:
  status                - Fleet dashboard: counts, utilization, license alerts
  vehicles / drivers    - List fleet assets
  trips                 - List trips
  create-trip           - Draft a trip for a vehicle and driver
  dispatch / complete / cancel
                        - Move a trip through its lifecycle
  maintenance           - List maintenance records
  add-maintenance       - Send a vehicle to the shop
  start-maintenance / complete-maintenance
                        - Move a maintenance record through its lifecycle
  log-fuel              - Record a fuel fill
  analytics             - Efficiency, ROI, dead stock and monthly summary
"""

import argparse
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

from dateutil.parser import isoparse
from tabulate import tabulate

from fleetops import (
    FleetError,
    FleetRegistry,
    MaintenanceController,
    MaintenanceRecord,
    SystemClock,
    Trip,
    TripController,
    TripState,
    compute_analytics,
    is_license_expiring_soon,
    is_license_valid,
    load_fleet,
    save_fleet,
)
from fleetops.driver import Driver
from fleetops.vehicle import Vehicle

logger = logging.getLogger("fleetctl")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_distance(distance: Optional[float]) -> str:
    """Format an odometer reading or distance for display."""
    return f"{distance:,.0f}" if distance is not None else "-"


def format_cost(cost: Optional[float]) -> str:
    """Format cost for display."""
    return f"${cost:,.2f}" if cost is not None else "-"


def format_percent(value: Optional[float]) -> str:
    """Format a percentage; None means there was no data to compute it."""
    return f"{value:.1f}%" if value is not None else "no data"


def format_efficiency(value: Optional[float]) -> str:
    return f"{value:.1f} km/L" if value is not None else "no data"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def parse_date(value: str) -> date:
    return isoparse(value).date()


# =============================================================================
# Table builders
# =============================================================================


def make_vehicle_table(vehicles: List[Vehicle]) -> List[List[str]]:
    """Convert vehicles to table rows."""
    return [
        [
            str(v.id),
            v.name,
            v.license_plate,
            v.category.value,
            format_distance(v.max_capacity),
            format_distance(v.odometer),
            v.status.value,
        ]
        for v in vehicles
    ]


def make_driver_table(drivers: List[Driver], as_of: date) -> List[List[str]]:
    """Convert drivers to table rows, flagging expired or expiring licenses."""
    rows = []
    for d in drivers:
        expiry = d.license_expiry.isoformat()
        if not is_license_valid(d, as_of):
            expiry += " (expired)"
        elif is_license_expiring_soon(d, as_of):
            expiry += " (soon)"
        rows.append(
            [
                str(d.id),
                d.name,
                d.license_number,
                expiry,
                d.status.value,
                f"{d.safety_score:g}",
                str(d.trips_completed),
            ]
        )
    return rows


def make_trip_table(trips: List[Trip]) -> List[List[str]]:
    """Convert trips to table rows."""
    return [
        [
            str(t.id),
            t.reference,
            str(t.vehicle_id),
            str(t.driver_id),
            truncate(f"{t.origin} -> {t.destination}", 40),
            format_distance(t.cargo_weight),
            t.state.value,
            t.start_time.strftime("%Y-%m-%d %H:%M"),
            format_distance(t.distance),
        ]
        for t in trips
    ]


def make_maintenance_table(records: List[MaintenanceRecord]) -> List[List[str]]:
    """Convert maintenance records to table rows."""
    return [
        [
            str(m.id),
            str(m.vehicle_id),
            m.service_date.isoformat(),
            truncate(m.description),
            m.service_type or "-",
            m.mechanic or "-",
            format_cost(m.cost),
            m.state.value,
        ]
        for m in records
    ]


# =============================================================================
# Read commands
# =============================================================================


def cmd_status(args, store, settings, clock):
    """Fleet dashboard."""
    snapshot = compute_analytics(store, clock.now(), settings)
    counts = snapshot.counts
    print(f"Vehicles: {counts.total}")
    print(f"  Available: {counts.available}")
    print(f"  On trip:   {counts.on_trip}")
    print(f"  In shop:   {counts.in_shop}")
    print(f"  Retired:   {counts.retired}")
    print(f"Utilization: {snapshot.utilization_rate}%")
    print(f"Pending trips: {counts.pending_trips}")
    print(f"Open maintenance: {counts.open_maintenance}")

    if snapshot.license_alerts:
        print()
        print("LICENSE ALERTS:")
        for alert in snapshot.license_alerts:
            label = "expired" if alert.expired else "expires"
            print(f"  Driver {alert.driver_id}: {label} {alert.license_expiry.isoformat()}")
    return 0


def cmd_vehicles(args, store, settings, clock):
    headers = ["ID", "Name", "Plate", "Type", "Capacity", "Odometer", "Status"]
    print(tabulate(make_vehicle_table(store.list(Vehicle)), headers=headers, tablefmt="simple"))
    return 0


def cmd_drivers(args, store, settings, clock):
    headers = ["ID", "Name", "License", "Expiry", "Status", "Safety", "Trips"]
    rows = make_driver_table(store.list(Driver), clock.today())
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_trips(args, store, settings, clock):
    """List trips, newest first."""
    trips = TripController(store, clock).list_trips(
        TripState.parse(args.state) if args.state else None
    )
    trips = sorted(trips, key=lambda t: t.start_time, reverse=True)
    if not trips:
        print("No trips found.")
        return 0
    headers = ["ID", "Reference", "Vehicle", "Driver", "Route", "Cargo", "State", "Start", "Distance"]
    print(tabulate(make_trip_table(trips), headers=headers, tablefmt="simple"))
    return 0


def cmd_maintenance(args, store, settings, clock):
    records = MaintenanceController(store, clock).list_maintenance(
        vehicle_id=args.vehicle, open_only=args.open
    )
    if not records:
        print("No maintenance records found.")
        return 0
    total_cost = sum(m.cost for m in records)
    headers = ["ID", "Vehicle", "Date", "Description", "Type", "Mechanic", "Cost", "State"]
    print(tabulate(make_maintenance_table(records), headers=headers, tablefmt="simple"))
    print()
    print(f"Total cost: {format_cost(total_cost)}")
    return 0


def cmd_analytics(args, store, settings, clock):
    """Efficiency, ROI, dead stock and monthly summary."""
    as_of = datetime.combine(args.as_of, datetime.min.time()) if args.as_of else clock.now()
    snapshot = compute_analytics(store, as_of, settings)
    names = {v.id: v.name for v in store.list(Vehicle)}

    print(f"As of: {as_of:%Y-%m-%d}")
    print(f"Utilization: {snapshot.utilization_rate}%")
    print(f"Revenue: {format_cost(snapshot.totals.revenue)}")
    print(f"Operating cost: {format_cost(snapshot.totals.operating_cost)}")
    print(f"Fleet ROI: {format_percent(snapshot.totals.roi)}")
    print()

    rows = [
        [
            names[vid],
            format_efficiency(snapshot.fuel_efficiency[vid]),
            format_percent(snapshot.roi[vid]),
        ]
        for vid in names
    ]
    print(tabulate(rows, headers=["Vehicle", "Efficiency", "ROI"], tablefmt="simple"))
    print()

    if snapshot.monthly_summary:
        print("MONTHLY SUMMARY:")
        rows = [
            [
                m.month,
                format_cost(m.revenue),
                format_cost(m.fuel_cost),
                format_cost(m.maintenance_cost),
                format_cost(m.net_profit),
            ]
            for m in snapshot.monthly_summary
        ]
        headers = ["Month", "Revenue", "Fuel", "Maintenance", "Net"]
        print(tabulate(rows, headers=headers, tablefmt="simple"))
        print()

    if snapshot.efficiency_trend:
        print("EFFICIENCY TREND:")
        rows = [[p.month, format_efficiency(p.efficiency)] for p in snapshot.efficiency_trend]
        print(tabulate(rows, headers=["Month", "Efficiency"], tablefmt="simple"))
        print()

    if snapshot.dead_stock:
        print(f"DEAD STOCK (no trips in {settings.dead_stock_days} days):")
        for vid in snapshot.dead_stock:
            print(f"  {names[vid]}")
    return 0


# =============================================================================
# Write commands
# =============================================================================


def cmd_create_trip(args, store, settings, clock):
    trip = TripController(store, clock).create_trip(
        args.vehicle,
        args.driver,
        args.cargo,
        args.origin,
        args.destination,
        odometer_start=args.odometer_start,
    )
    print(f"Created {trip.reference} (id {trip.id}) as draft.")
    return 0


def cmd_dispatch(args, store, settings, clock):
    trip = TripController(store, clock).dispatch_trip(args.trip)
    print(f"Dispatched {trip.reference}.")
    return 0


def cmd_complete(args, store, settings, clock):
    trip = TripController(store, clock).complete_trip(args.trip, args.odometer)
    print(f"Completed {trip.reference} ({format_distance(trip.distance)} driven).")
    return 0


def cmd_cancel(args, store, settings, clock):
    trip = TripController(store, clock).cancel_trip(args.trip)
    print(f"Cancelled {trip.reference}.")
    return 0


def cmd_add_maintenance(args, store, settings, clock):
    record = MaintenanceController(store, clock).create_maintenance(
        args.vehicle,
        args.description,
        cost=args.cost,
        service_date=args.date,
        service_type=args.type,
        mechanic=args.mechanic,
    )
    print(f"Scheduled maintenance {record.id}; vehicle {record.vehicle_id} is in the shop.")
    return 0


def cmd_start_maintenance(args, store, settings, clock):
    record = MaintenanceController(store, clock).start_maintenance(args.record)
    print(f"Maintenance {record.id} in progress.")
    return 0


def cmd_complete_maintenance(args, store, settings, clock):
    record = MaintenanceController(store, clock).complete_maintenance(args.record)
    vehicle = store.get(Vehicle, record.vehicle_id)
    print(f"Maintenance {record.id} done; vehicle {vehicle.id} is {vehicle.status.value}.")
    return 0


def cmd_log_fuel(args, store, settings, clock):
    entry = FleetRegistry(store, clock).add_fuel_log(
        args.vehicle,
        args.liters,
        args.cost,
        odometer=args.odometer,
        fill_date=args.date,
        trip_id=args.trip,
    )
    print(f"Logged {entry.liters:g} L ({format_cost(entry.cost)}) for vehicle {entry.vehicle_id}.")
    return 0


COMMANDS = {
    "status": (cmd_status, False),
    "vehicles": (cmd_vehicles, False),
    "drivers": (cmd_drivers, False),
    "trips": (cmd_trips, False),
    "maintenance": (cmd_maintenance, False),
    "analytics": (cmd_analytics, False),
    "create-trip": (cmd_create_trip, True),
    "dispatch": (cmd_dispatch, True),
    "complete": (cmd_complete, True),
    "cancel": (cmd_cancel, True),
    "add-maintenance": (cmd_add_maintenance, True),
    "start-maintenance": (cmd_start_maintenance, True),
    "complete-maintenance": (cmd_complete_maintenance, True),
    "log-fuel": (cmd_log_fuel, True),
}


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fleet operations tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s fleets/manila.yaml status
  %(prog)s fleets/manila.yaml trips --state dispatched
  %(prog)s fleets/manila.yaml create-trip 1 1 --cargo 450 \\
      --origin "Warehouse A" --destination "SM North EDSA"
  %(prog)s fleets/manila.yaml dispatch 6
  %(prog)s fleets/manila.yaml complete 6 45600
  %(prog)s fleets/manila.yaml add-maintenance 3 "Oil change" --cost 180
  %(prog)s fleets/manila.yaml analytics --as-of 2026-03-01
""",
    )
    parser.add_argument("fleet_file", type=Path, help="Path to fleet YAML file")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Apply changes in memory only, without saving",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Fleet dashboard")
    subparsers.add_parser("vehicles", help="List vehicles")
    subparsers.add_parser("drivers", help="List drivers")

    trips_parser = subparsers.add_parser("trips", help="List trips")
    trips_parser.add_argument(
        "--state",
        choices=[s.value for s in TripState],
        help="Only show trips in this state",
    )

    maint_parser = subparsers.add_parser("maintenance", help="List maintenance records")
    maint_parser.add_argument("--vehicle", type=int, help="Only this vehicle")
    maint_parser.add_argument("--open", action="store_true", help="Only open records")

    analytics_parser = subparsers.add_parser("analytics", help="Fleet analytics")
    analytics_parser.add_argument(
        "--as-of", type=parse_date, help="Evaluation date YYYY-MM-DD (default: now)"
    )

    create_parser = subparsers.add_parser("create-trip", help="Draft a new trip")
    create_parser.add_argument("vehicle", type=int, help="Vehicle id")
    create_parser.add_argument("driver", type=int, help="Driver id")
    create_parser.add_argument("--cargo", type=float, required=True, help="Cargo weight (kg)")
    create_parser.add_argument("--origin", required=True)
    create_parser.add_argument("--destination", required=True)
    create_parser.add_argument(
        "--odometer-start", type=float, help="Start odometer (default: vehicle odometer)"
    )

    for name, help_text in (
        ("dispatch", "Dispatch a draft trip"),
        ("cancel", "Cancel a dispatched trip"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("trip", type=int, help="Trip id")

    complete_parser = subparsers.add_parser("complete", help="Complete a dispatched trip")
    complete_parser.add_argument("trip", type=int, help="Trip id")
    complete_parser.add_argument("odometer", type=float, help="End odometer reading")

    add_maint_parser = subparsers.add_parser(
        "add-maintenance", help="Schedule maintenance (vehicle goes in shop)"
    )
    add_maint_parser.add_argument("vehicle", type=int, help="Vehicle id")
    add_maint_parser.add_argument("description")
    add_maint_parser.add_argument("--cost", type=float, default=0)
    add_maint_parser.add_argument("--date", type=parse_date, help="Service date (default: today)")
    add_maint_parser.add_argument("--type", help="Service type (e.g. 'oil_change', 'brake')")
    add_maint_parser.add_argument("--mechanic", help="Mechanic or vendor")

    for name, help_text in (
        ("start-maintenance", "Mark maintenance in progress"),
        ("complete-maintenance", "Mark maintenance done"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("record", type=int, help="Maintenance record id")

    fuel_parser = subparsers.add_parser("log-fuel", help="Record a fuel fill")
    fuel_parser.add_argument("vehicle", type=int, help="Vehicle id")
    fuel_parser.add_argument("liters", type=float)
    fuel_parser.add_argument("cost", type=float)
    fuel_parser.add_argument("--odometer", type=float)
    fuel_parser.add_argument("--date", type=parse_date, help="Fill date (default: today)")
    fuel_parser.add_argument("--trip", type=int, help="Trip id the fill belongs to")

    return parser


def main(argv=None, clock=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    clock = clock or SystemClock()

    # Validate fleet file exists
    if not args.fleet_file.exists():
        print(f"Error: File not found: {args.fleet_file}")
        return 1

    try:
        store, settings = load_fleet(args.fleet_file)
    except ValueError as e:
        print(f"Error: {args.fleet_file}: {e}")
        return 1

    handler, writes = COMMANDS[args.command]
    try:
        result = handler(args, store, settings, clock)
    except (FleetError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    if writes:
        if args.dry_run:
            print("(dry run - no changes made)")
        else:
            save_fleet(args.fleet_file, store, settings)
            logger.debug("Saved %s", args.fleet_file)
    return result


if __name__ == "__main__":
    sys.exit(main() or 0)
