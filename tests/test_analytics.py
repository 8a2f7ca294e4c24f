#!/usr/bin/env python3
"""
Tests for fleet analytics.

Covers:
1. Utilization rate and fleet counts
2. Fuel efficiency and ROI, including the no-data cases
3. Dead stock, monthly summary and the weekly heatmap
4. License alerts and compute_analytics as a whole
"""

from dataclasses import replace
from datetime import date, datetime

import pytest
from dateutil import tz
from dateutil.relativedelta import relativedelta

from fleetops import (
    Driver,
    FleetStore,
    FuelLogEntry,
    MaintenanceRecord,
    MaintenanceState,
    Settings,
    Trip,
    TripState,
    Vehicle,
    VehicleCategory,
    VehicleStatus,
    compute_analytics,
)
from fleetops.analytics import (
    dead_stock,
    efficiency_heatmap,
    efficiency_trend,
    fleet_counts,
    fleet_totals,
    fuel_efficiency,
    heatmap_windows,
    license_alerts,
    monthly_summary,
    utilization_rate,
    vehicle_roi,
)

AS_OF = datetime(2026, 3, 1, 9, 0)


def make_vehicle(vehicle_id, status=VehicleStatus.AVAILABLE, acquisition_cost=25000):
    return Vehicle(
        id=vehicle_id,
        name=f"Van-{vehicle_id:02d}",
        license_plate=f"PLT-{vehicle_id}",
        category=VehicleCategory.VAN,
        max_capacity=800,
        status=status,
        acquisition_cost=acquisition_cost,
    )


def make_trip(trip_id, vehicle_id, start, distance=None, state=TripState.COMPLETED):
    odometer_end = None if distance is None else 1000 + distance
    return Trip(
        id=trip_id,
        reference=f"TRIP-{start.year}-{trip_id:03d}",
        vehicle_id=vehicle_id,
        driver_id=1,
        origin="A",
        destination="B",
        cargo_weight=100,
        start_time=start,
        state=state,
        odometer_start=1000,
        odometer_end=odometer_end,
    )


def make_fuel(entry_id, vehicle_id, on, liters, cost=1000):
    return FuelLogEntry(id=entry_id, vehicle_id=vehicle_id, date=on, liters=liters, cost=cost)


def make_maintenance(record_id, vehicle_id, on, cost, state=MaintenanceState.DONE):
    return MaintenanceRecord(
        id=record_id,
        vehicle_id=vehicle_id,
        description="Service",
        service_date=on,
        cost=cost,
        state=state,
    )


def build_store(*entities):
    store = FleetStore()
    for entity in entities:
        store.add(entity)
    return store


# =============================================================================
# Utilization and counts
# =============================================================================


class TestUtilization:
    """Tests for utilization_rate."""

    def test_two_of_five_on_trip(self):
        """Two active vehicles out of five is 40 percent."""
        store = build_store(
            make_vehicle(1, VehicleStatus.ON_TRIP),
            make_vehicle(2, VehicleStatus.ON_TRIP),
            make_vehicle(3),
            make_vehicle(4, VehicleStatus.IN_SHOP),
            make_vehicle(5, VehicleStatus.RETIRED),
        )
        assert utilization_rate(store.snapshot()) == 40

    def test_empty_fleet_is_zero(self):
        """An empty fleet reports zero instead of dividing by zero."""
        assert utilization_rate(FleetStore().snapshot()) == 0

    def test_rounds_half_up(self):
        """Exact halves round up."""
        vehicles = [make_vehicle(i) for i in range(1, 9)]
        vehicles[0] = replace(vehicles[0], status=VehicleStatus.ON_TRIP)
        assert utilization_rate(build_store(*vehicles).snapshot()) == 13

    def test_rounds_down_below_half(self):
        """Fractions under a half round down."""
        store = build_store(
            make_vehicle(1, VehicleStatus.ON_TRIP), make_vehicle(2), make_vehicle(3)
        )
        assert utilization_rate(store.snapshot()) == 33


class TestFleetCounts:
    def test_counts_by_status(self):
        """Vehicles are tallied per status alongside pending trips and open jobs."""
        store = build_store(
            make_vehicle(1, VehicleStatus.ON_TRIP),
            make_vehicle(2, VehicleStatus.IN_SHOP),
            make_vehicle(3),
            make_trip(1, 3, AS_OF, state=TripState.DRAFT),
            make_maintenance(1, 2, date(2026, 2, 1), 100, MaintenanceState.SCHEDULED),
            make_maintenance(2, 2, date(2026, 1, 1), 100),
        )
        counts = fleet_counts(store.snapshot())
        assert counts.total == 3
        assert counts.on_trip == 1
        assert counts.in_shop == 1
        assert counts.available == 1
        assert counts.pending_trips == 1
        assert counts.open_maintenance == 1


# =============================================================================
# Efficiency and ROI
# =============================================================================


class TestFuelEfficiency:
    """Tests for fuel_efficiency."""

    def test_distance_per_liter(self):
        """Completed distance divided by logged liters."""
        store = build_store(
            make_vehicle(1),
            make_trip(1, 1, datetime(2026, 2, 1), distance=300),
            make_trip(2, 1, datetime(2026, 2, 5), distance=100),
            make_fuel(1, 1, date(2026, 2, 1), 40),
        )
        assert fuel_efficiency(store.snapshot(), 1) == pytest.approx(10.0)

    def test_only_completed_trips_count(self):
        """Draft, dispatched and cancelled trips add no distance."""
        store = build_store(
            make_vehicle(1),
            make_trip(1, 1, datetime(2026, 2, 1), distance=300),
            make_trip(2, 1, datetime(2026, 2, 5), state=TripState.DISPATCHED),
            make_fuel(1, 1, date(2026, 2, 1), 30),
        )
        assert fuel_efficiency(store.snapshot(), 1) == pytest.approx(10.0)

    def test_no_fuel_is_none(self):
        """No fuel logged means no efficiency figure."""
        store = build_store(make_vehicle(1), make_trip(1, 1, AS_OF, distance=300))
        assert fuel_efficiency(store.snapshot(), 1) is None

    def test_zero_liters_is_none(self):
        """Fuel logs adding up to zero liters also give None."""
        store = build_store(make_vehicle(1), make_fuel(1, 1, date(2026, 2, 1), 0))
        assert fuel_efficiency(store.snapshot(), 1) is None


class TestRoi:
    """Tests for vehicle_roi and fleet_totals."""

    def test_roi_percent(self):
        """Revenue less fuel and maintenance, over acquisition cost."""
        store = build_store(
            make_vehicle(1),
            make_trip(1, 1, datetime(2026, 2, 1), distance=10),
            make_trip(2, 1, datetime(2026, 2, 2), distance=10),
            make_fuel(1, 1, date(2026, 2, 1), 20, cost=300),
            make_maintenance(1, 1, date(2026, 2, 1), 400),
        )
        # (2 * 850 - 700) / 25000 * 100
        assert vehicle_roi(store.snapshot(), 1, 850) == pytest.approx(4.0)

    def test_unknown_acquisition_cost_is_none(self):
        """A vehicle without an acquisition cost has no ROI."""
        store = build_store(make_vehicle(1, acquisition_cost=0))
        assert vehicle_roi(store.snapshot(), 1, 850) is None

    def test_fleet_totals(self):
        """Fleet totals sum costs and revenue over every vehicle."""
        store = build_store(
            make_vehicle(1),
            make_trip(1, 1, datetime(2026, 2, 1), distance=10),
            make_fuel(1, 1, date(2026, 2, 1), 20, cost=300),
            make_maintenance(1, 1, date(2026, 2, 1), 200),
        )
        totals = fleet_totals(store.snapshot(), 850)
        assert totals.revenue == 850
        assert totals.operating_cost == 500
        assert totals.roi == pytest.approx(70.0)

    def test_fleet_roi_none_without_costs(self):
        """Fleet ROI is None when nothing has been spent."""
        assert fleet_totals(FleetStore().snapshot(), 850).roi is None


# =============================================================================
# Dead stock, monthly summary, heatmap
# =============================================================================


class TestDeadStock:
    """Tests for dead_stock."""

    def test_idle_vehicles_listed(self):
        """Vehicles without a recent trip are listed; retired ones are skipped."""
        store = build_store(
            make_vehicle(1),
            make_vehicle(2),
            make_vehicle(3),
            make_vehicle(4, VehicleStatus.RETIRED),
            make_trip(1, 1, datetime(2026, 2, 20)),
            make_trip(2, 2, datetime(2026, 1, 15)),
        )
        assert dead_stock(store.snapshot(), AS_OF, 30) == [2, 3]

    def test_draft_trip_counts_as_activity(self):
        """A draft trip counts as recent activity."""
        store = build_store(
            make_vehicle(1), make_trip(1, 1, datetime(2026, 2, 25), state=TripState.DRAFT)
        )
        assert dead_stock(store.snapshot(), AS_OF) == []


class TestMonthlySummary:
    def test_grouped_by_month(self):
        """Revenue and costs land in the month they happened."""
        store = build_store(
            make_vehicle(1),
            make_trip(1, 1, datetime(2026, 1, 10), distance=10),
            make_trip(2, 1, datetime(2026, 1, 20), state=TripState.CANCELLED),
            make_fuel(1, 1, date(2026, 2, 3), 30, cost=2150),
            make_maintenance(1, 1, date(2026, 2, 10), 180),
        )
        summary = monthly_summary(store.snapshot(), 850)
        assert [m.month for m in summary] == ["2026-01", "2026-02"]
        assert summary[0].revenue == 850
        assert summary[0].net_profit == 850
        assert summary[1].fuel_cost == 2150
        assert summary[1].maintenance_cost == 180
        assert summary[1].net_profit == -2330


class TestEfficiencyTrend:
    """Tests for efficiency_trend."""

    def test_distance_per_liter_by_month(self):
        """Months with only fuel score zero and months with only trips score None."""
        store = build_store(
            make_vehicle(1),
            make_vehicle(2),
            make_trip(1, 1, datetime(2026, 1, 10), distance=200),
            make_trip(2, 2, datetime(2026, 1, 28), distance=100),
            make_trip(3, 1, datetime(2026, 1, 30), distance=500, state=TripState.CANCELLED),
            make_fuel(1, 1, date(2026, 1, 11), 20),
            make_fuel(2, 2, date(2026, 1, 29), 10),
            make_fuel(3, 1, date(2026, 2, 5), 15),
            make_trip(4, 1, datetime(2026, 3, 2), distance=80),
        )
        trend = efficiency_trend(store.snapshot())
        assert [(p.month, p.efficiency) for p in trend] == [
            ("2026-01", 10.0),
            ("2026-02", 0.0),
            ("2026-03", None),
        ]

    def test_keeps_most_recent_months(self):
        """Only the latest months are kept, six by default."""
        store = build_store(
            make_vehicle(1),
            *[
                make_fuel(i + 1, 1, date(2025, 6, 1) + relativedelta(months=i), 10)
                for i in range(8)
            ],
        )
        trend = efficiency_trend(store.snapshot())
        assert [p.month for p in trend] == [
            "2025-08",
            "2025-09",
            "2025-10",
            "2025-11",
            "2025-12",
            "2026-01",
        ]
        assert [p.month for p in efficiency_trend(store.snapshot(), months=2)] == [
            "2025-12",
            "2026-01",
        ]

    def test_rounded_to_one_decimal(self):
        """Efficiency is rounded to one decimal place."""
        store = build_store(
            make_vehicle(1),
            make_trip(1, 1, datetime(2026, 2, 24), distance=900),
            make_fuel(1, 1, date(2026, 2, 25), 171),
        )
        assert efficiency_trend(store.snapshot())[0].efficiency == 5.3

    def test_empty_fleet(self):
        """An empty fleet has no trend."""
        assert efficiency_trend(FleetStore().snapshot()) == []


class TestHeatmap:
    """Tests for heatmap_windows and efficiency_heatmap."""

    def test_windows_oldest_first(self):
        """Windows run back from the day before as_of."""
        windows = heatmap_windows(AS_OF, 8)
        assert len(windows) == 8
        assert windows[-1] == (date(2026, 2, 22), date(2026, 2, 28))
        assert windows[0] == (date(2026, 1, 4), date(2026, 1, 10))

    def test_scores_per_week(self):
        """Weeks without fuel score None."""
        store = build_store(
            make_vehicle(1),
            make_vehicle(2),
            make_trip(1, 1, datetime(2026, 2, 24, 8), distance=401),
            make_fuel(1, 1, date(2026, 2, 25), 40),
        )
        heatmap = efficiency_heatmap(store.snapshot(), AS_OF, 8)
        assert heatmap[1][-1] == 10.0
        assert heatmap[1][:-1] == [None] * 7
        assert heatmap[2] == [None] * 8


# =============================================================================
# Alerts and the combined snapshot
# =============================================================================


class TestLicenseAlerts:
    def test_expired_and_expiring(self):
        """Expired and soon-to-expire licenses are flagged; valid ones are not."""
        store = build_store(
            Driver(1, "Expired", "L1", date(2025, 12, 31)),
            Driver(2, "Soon", "L2", date(2026, 3, 15)),
            Driver(3, "Fine", "L3", date(2027, 8, 15)),
        )
        alerts = license_alerts(store.snapshot(), AS_OF.date(), 30)
        assert [(a.driver_id, a.expired) for a in alerts] == [(1, True), (2, False)]


class TestComputeAnalytics:
    """Tests for compute_analytics."""

    @pytest.fixture
    def fleet(self):
        return build_store(
            make_vehicle(1, VehicleStatus.ON_TRIP),
            make_vehicle(2),
            make_vehicle(3, acquisition_cost=0),
            make_trip(1, 1, datetime(2026, 2, 24), distance=400),
            make_fuel(1, 1, date(2026, 2, 25), 40, cost=2000),
            make_maintenance(1, 2, date(2026, 2, 10), 3000),
        )

    def test_all_metrics(self, fleet):
        """Every metric is filled in from one store."""
        result = compute_analytics(fleet, AS_OF)
        assert result.utilization_rate == 33
        assert result.fuel_efficiency == {1: 10.0, 2: None, 3: None}
        assert result.roi[3] is None
        assert result.dead_stock == [2, 3]
        assert [c.vehicle_id for c in result.costliest_vehicles] == [2, 1, 3]
        assert len(result.heatmap_weeks) == 8

    def test_settings_applied(self, fleet):
        """Settings change revenue per trip and heatmap width."""
        settings = Settings(revenue_per_trip=1000, heatmap_weeks=4)
        result = compute_analytics(fleet, AS_OF, settings)
        assert result.totals.revenue == 1000
        assert len(result.heatmap[1]) == 4

    def test_idempotent(self, fleet):
        """Two runs over the same store give equal results."""
        assert compute_analytics(fleet, AS_OF) == compute_analytics(fleet, AS_OF)

    def test_costliest_limited_to_five(self):
        """The costliest list stops at five vehicles."""
        store = build_store(*[make_vehicle(i) for i in range(1, 8)])
        assert len(compute_analytics(store, AS_OF).costliest_vehicles) == 5

    def test_trend_included(self, fleet):
        """The monthly efficiency trend is part of the result."""
        result = compute_analytics(fleet, AS_OF)
        assert [(p.month, p.efficiency) for p in result.efficiency_trend] == [("2026-02", 10.0)]

    def test_aware_as_of_matches_naive(self, fleet):
        """An as_of carrying a UTC offset is read as the same instant in naive UTC."""
        aware = datetime(2026, 3, 1, 9, 0, tzinfo=tz.UTC)
        assert compute_analytics(fleet, aware) == compute_analytics(fleet, AS_OF)
        manila = datetime(2026, 3, 1, 17, 0, tzinfo=tz.tzoffset("PHT", 8 * 3600))
        assert dead_stock(fleet.snapshot(), manila) == [2, 3]
