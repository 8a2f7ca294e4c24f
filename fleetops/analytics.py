"""
Fleet analytics derived from a store snapshot.

Everything here is read-only and recomputed on demand. Metrics that cannot
be computed for lack of data are reported as None rather than raising.
"""

import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from .clock import to_naive
from .eligibility import is_license_expiring_soon, is_license_valid
from .settings import Settings
from .status import MaintenanceState, TripState, VehicleStatus
from .store import FleetSnapshot, FleetStore


@dataclass(frozen=True)
class FleetCounts:
    total: int = 0
    available: int = 0
    on_trip: int = 0
    in_shop: int = 0
    retired: int = 0
    pending_trips: int = 0
    open_maintenance: int = 0


@dataclass(frozen=True)
class FleetTotals:
    fuel_cost: float = 0
    maintenance_cost: float = 0
    revenue: float = 0
    # ROI on operating cost; None when nothing has been spent yet
    roi: Optional[float] = None

    @property
    def operating_cost(self) -> float:
        return self.fuel_cost + self.maintenance_cost


@dataclass(frozen=True)
class MonthlySummary:
    """Revenue and costs for one calendar month (YYYY-MM)."""

    month: str
    revenue: float = 0
    fuel_cost: float = 0
    maintenance_cost: float = 0

    @property
    def net_profit(self) -> float:
        return self.revenue - self.fuel_cost - self.maintenance_cost


@dataclass(frozen=True)
class EfficiencyPoint:
    """Fleet-wide distance per liter for one calendar month (YYYY-MM)."""

    month: str
    efficiency: Optional[float] = None


@dataclass(frozen=True)
class VehicleCost:
    vehicle_id: int
    fuel_cost: float
    maintenance_cost: float

    @property
    def total(self) -> float:
        return self.fuel_cost + self.maintenance_cost


@dataclass(frozen=True)
class LicenseAlert:
    driver_id: int
    license_expiry: date
    expired: bool


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """All fleet metrics as of one moment."""

    as_of: datetime
    utilization_rate: int
    counts: FleetCounts
    totals: FleetTotals
    fuel_efficiency: Dict[int, Optional[float]] = field(default_factory=dict)
    roi: Dict[int, Optional[float]] = field(default_factory=dict)
    dead_stock: List[int] = field(default_factory=list)
    monthly_summary: List[MonthlySummary] = field(default_factory=list)
    efficiency_trend: List[EfficiencyPoint] = field(default_factory=list)
    heatmap_weeks: List[Tuple[date, date]] = field(default_factory=list)
    heatmap: Dict[int, List[Optional[float]]] = field(default_factory=dict)
    costliest_vehicles: List[VehicleCost] = field(default_factory=list)
    license_alerts: List[LicenseAlert] = field(default_factory=list)


# =============================================================================
# Individual metrics
# =============================================================================


def utilization_rate(snapshot: FleetSnapshot) -> int:
    """Percent of the fleet currently on a trip, rounded half up; 0 if empty."""
    if not snapshot.vehicles:
        return 0
    active = sum(1 for v in snapshot.vehicles if v.status == VehicleStatus.ON_TRIP)
    return math.floor(active * 100 / len(snapshot.vehicles) + 0.5)


def fleet_counts(snapshot: FleetSnapshot) -> FleetCounts:
    by_status = defaultdict(int)
    for vehicle in snapshot.vehicles:
        by_status[vehicle.status] += 1
    return FleetCounts(
        total=len(snapshot.vehicles),
        available=by_status[VehicleStatus.AVAILABLE],
        on_trip=by_status[VehicleStatus.ON_TRIP],
        in_shop=by_status[VehicleStatus.IN_SHOP],
        retired=by_status[VehicleStatus.RETIRED],
        pending_trips=sum(1 for t in snapshot.trips if t.state == TripState.DRAFT),
        open_maintenance=sum(
            1 for m in snapshot.maintenance if m.state != MaintenanceState.DONE
        ),
    )


def fuel_efficiency(snapshot: FleetSnapshot, vehicle_id: int) -> Optional[float]:
    """Distance per liter over completed trips; None when no fuel is logged."""
    liters = sum(f.liters for f in snapshot.fuel_logs if f.vehicle_id == vehicle_id)
    if liters <= 0:
        return None
    distance = sum(
        t.distance or 0
        for t in snapshot.trips
        if t.vehicle_id == vehicle_id and t.state == TripState.COMPLETED
    )
    return distance / liters


def vehicle_costs(snapshot: FleetSnapshot, vehicle_id: int) -> VehicleCost:
    return VehicleCost(
        vehicle_id=vehicle_id,
        fuel_cost=sum(f.cost for f in snapshot.fuel_logs if f.vehicle_id == vehicle_id),
        maintenance_cost=sum(
            m.cost for m in snapshot.maintenance if m.vehicle_id == vehicle_id
        ),
    )


def vehicle_roi(
    snapshot: FleetSnapshot, vehicle_id: int, revenue_per_trip: float
) -> Optional[float]:
    """
    Return on acquisition cost, in percent.

    revenue = completed trips * revenue_per_trip
    operating cost = fuel cost + maintenance cost
    None when the acquisition cost is unknown (zero).
    """
    vehicle = next((v for v in snapshot.vehicles if v.id == vehicle_id), None)
    if vehicle is None or not vehicle.acquisition_cost:
        return None
    completed = sum(
        1
        for t in snapshot.trips
        if t.vehicle_id == vehicle_id and t.state == TripState.COMPLETED
    )
    revenue = completed * revenue_per_trip
    costs = vehicle_costs(snapshot, vehicle_id)
    return (revenue - costs.total) / vehicle.acquisition_cost * 100


def dead_stock(snapshot: FleetSnapshot, as_of: datetime, days: int = 30) -> List[int]:
    """Non-retired vehicles with no trip started in the last `days` days."""
    cutoff = to_naive(as_of) - relativedelta(days=days)
    recent = {t.vehicle_id for t in snapshot.trips if t.start_time > cutoff}
    return [
        v.id
        for v in snapshot.vehicles
        if v.status != VehicleStatus.RETIRED and v.id not in recent
    ]


def monthly_summary(
    snapshot: FleetSnapshot, revenue_per_trip: float
) -> List[MonthlySummary]:
    """Revenue, fuel and maintenance cost grouped by month, oldest first."""
    months = defaultdict(lambda: {"revenue": 0, "fuel_cost": 0, "maintenance_cost": 0})
    for trip in snapshot.trips:
        if trip.state == TripState.COMPLETED:
            months[_month_key(trip.start_time)]["revenue"] += revenue_per_trip
    for entry in snapshot.fuel_logs:
        months[_month_key(entry.date)]["fuel_cost"] += entry.cost
    for record in snapshot.maintenance:
        months[_month_key(record.service_date)]["maintenance_cost"] += record.cost
    return [MonthlySummary(month=key, **months[key]) for key in sorted(months)]


def efficiency_trend(snapshot: FleetSnapshot, months: int = 6) -> List[EfficiencyPoint]:
    """
    Fleet-wide distance per liter by calendar month, oldest first.

    Distance is summed over completed trips by start month and liters over
    fuel logs by fill date. Only the last `months` months that have either
    are kept. A month without fuel reports None.
    """
    if months <= 0:
        return []
    distance = defaultdict(float)
    liters = defaultdict(float)
    for trip in snapshot.trips:
        if trip.state == TripState.COMPLETED:
            distance[_month_key(trip.start_time)] += trip.distance or 0
    for entry in snapshot.fuel_logs:
        liters[_month_key(entry.date)] += entry.liters

    trend = []
    for key in sorted(set(distance) | set(liters))[-months:]:
        fuel = liters.get(key, 0)
        efficiency = round(distance.get(key, 0) / fuel, 1) if fuel > 0 else None
        trend.append(EfficiencyPoint(month=key, efficiency=efficiency))
    return trend


def heatmap_windows(as_of: datetime, weeks: int = 8) -> List[Tuple[date, date]]:
    """
    Trailing week windows ending the day before as_of, oldest first.

    Each window is (start, end), both inclusive.
    """
    today = as_of.date()
    windows = []
    for i in range(weeks):
        start = today - relativedelta(weeks=i + 1)
        windows.append((start, start + timedelta(days=6)))
    return list(reversed(windows))


def efficiency_heatmap(
    snapshot: FleetSnapshot, as_of: datetime, weeks: int = 8
) -> Dict[int, List[Optional[float]]]:
    """Weekly distance-per-liter score per vehicle; None for weeks without fuel."""
    windows = heatmap_windows(as_of, weeks)
    heatmap = {}
    for vehicle in snapshot.vehicles:
        scores = []
        for start, end in windows:
            liters = sum(
                f.liters
                for f in snapshot.fuel_logs
                if f.vehicle_id == vehicle.id and start <= f.date <= end
            )
            if liters <= 0:
                scores.append(None)
                continue
            distance = sum(
                t.distance or 0
                for t in snapshot.trips
                if t.vehicle_id == vehicle.id
                and t.state == TripState.COMPLETED
                and start <= t.start_time.date() <= end
            )
            scores.append(round(distance / liters, 1))
        heatmap[vehicle.id] = scores
    return heatmap


def license_alerts(
    snapshot: FleetSnapshot, as_of: date, warning_days: int = 30
) -> List[LicenseAlert]:
    """Drivers whose license has expired or will within warning_days."""
    window = timedelta(days=warning_days)
    alerts = []
    for driver in snapshot.drivers:
        expired = not is_license_valid(driver, as_of)
        if expired or is_license_expiring_soon(driver, as_of, window):
            alerts.append(LicenseAlert(driver.id, driver.license_expiry, expired))
    return alerts


def fleet_totals(snapshot: FleetSnapshot, revenue_per_trip: float) -> FleetTotals:
    fuel_cost = sum(f.cost for f in snapshot.fuel_logs)
    maintenance_cost = sum(m.cost for m in snapshot.maintenance)
    completed = sum(1 for t in snapshot.trips if t.state == TripState.COMPLETED)
    revenue = completed * revenue_per_trip
    operating = fuel_cost + maintenance_cost
    return FleetTotals(
        fuel_cost=fuel_cost,
        maintenance_cost=maintenance_cost,
        revenue=revenue,
        roi=(revenue - operating) / operating * 100 if operating > 0 else None,
    )


# =============================================================================
# Everything at once
# =============================================================================


def compute_analytics(
    store: FleetStore, as_of: datetime, settings: Optional[Settings] = None
) -> AnalyticsSnapshot:
    """Compute every metric from one consistent snapshot of the store."""
    settings = settings or Settings()
    as_of = to_naive(as_of)
    snapshot = store.snapshot()
    vehicle_ids = [v.id for v in snapshot.vehicles]

    costs = sorted(
        (vehicle_costs(snapshot, vid) for vid in vehicle_ids),
        key=lambda c: (-c.total, c.vehicle_id),
    )

    return AnalyticsSnapshot(
        as_of=as_of,
        utilization_rate=utilization_rate(snapshot),
        counts=fleet_counts(snapshot),
        totals=fleet_totals(snapshot, settings.revenue_per_trip),
        fuel_efficiency={vid: fuel_efficiency(snapshot, vid) for vid in vehicle_ids},
        roi={
            vid: vehicle_roi(snapshot, vid, settings.revenue_per_trip)
            for vid in vehicle_ids
        },
        dead_stock=dead_stock(snapshot, as_of, settings.dead_stock_days),
        monthly_summary=monthly_summary(snapshot, settings.revenue_per_trip),
        efficiency_trend=efficiency_trend(snapshot),
        heatmap_weeks=heatmap_windows(as_of, settings.heatmap_weeks),
        heatmap=efficiency_heatmap(snapshot, as_of, settings.heatmap_weeks),
        costliest_vehicles=costs[:5],
        license_alerts=license_alerts(
            snapshot, as_of.date(), settings.license_warning_days
        ),
    )


def _month_key(value) -> str:
    return f"{value.year:04d}-{value.month:02d}"
