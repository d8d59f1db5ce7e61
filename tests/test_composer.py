# tests/test_composer.py

from datetime import date

import numpy as np
import pytest

from clinic_dashboard.scorecard.aggregator import aggregate_division, aggregate_employees
from clinic_dashboard.scorecard.composer import DashboardComposer, compose_dashboard
from clinic_dashboard.scorecard.models import EmployeeKPIData, HormoneUnit, KPIData

from conftest import FixedRandom, make_entry, make_submission

DIVISIONS = [
    {'id': 'laser', 'name': 'Laser', 'color': '#ff9680'},
    {'id': 'hormone', 'name': 'Hormone', 'color': '#5c6f75'},
]


def _compose(month='01', year=2025, division_filter='all', kpi_data=(), employee_kpi_data=(),
             daily_submissions=(), employees=(), **kwargs):
    kwargs.setdefault('divisions', DIVISIONS)
    kwargs.setdefault('rng', FixedRandom(0.5))
    return compose_dashboard(
        month, year, division_filter, kpi_data, employee_kpi_data,
        daily_submissions, employees, **kwargs
    )


# =============================================================================
# COMPANY TOTALS
# =============================================================================

def test_totals_come_from_daily_submissions(laser_january, employees):
    kpi = [aggregate_division(laser_january, 'laser', '01', 2025)]

    metrics = _compose(kpi_data=kpi, daily_submissions=laser_january, employees=employees)

    assert metrics.company_sales == 3830
    assert metrics.service_revenue == 3300
    assert metrics.retail_sales == 530
    assert metrics.hours_worked == 24
    assert metrics.hours_booked == 20
    assert metrics.consults == 10
    assert metrics.consult_converted == 7
    assert metrics.new_clients == 7
    # Mean over both divisions; hormone has no scorecard
    assert metrics.company_productivity == 42
    assert not metrics.is_degraded


def test_revenue_split_estimate_without_daily_data():
    kpi = [KPIData(division_id='laser', month='01', year=2025, average_ticket=250, new_clients=10,
                   productivity_rate=80)]

    metrics = _compose(kpi_data=kpi)

    assert metrics.company_sales == 2500
    assert metrics.service_revenue == 1750
    assert metrics.retail_sales == 750
    assert abs(metrics.service_revenue + metrics.retail_sales - metrics.company_sales) <= 1
    assert metrics.consults == 15
    assert metrics.consult_converted == 11


def test_hours_fall_back_to_scheduling(employees):
    employee_kpi = [EmployeeKPIData(employee_id='e1', division_id='laser', month='01', year=2025, hours_sold=30)]

    metrics = _compose(
        employee_kpi_data=employee_kpi,
        employees=employees,
        scheduled_hours={'e1-01-2025': 40, 'e2-01-2025': 20},
    )

    assert metrics.hours_worked == 60
    assert metrics.hours_booked == 30


def test_division_filter_limits_divisions(laser_january, employees):
    kpi = [aggregate_division(laser_january, 'laser', '01', 2025)]

    metrics = _compose(division_filter='laser', kpi_data=kpi, daily_submissions=laser_january, employees=employees)

    assert [d['id'] for d in metrics.divisions] == ['laser']
    assert metrics.company_productivity == 83
    assert metrics.divisions[0] == {
        'id': 'laser',
        'name': 'Laser',
        'color': '#ff9680',
        'team_members': 3,
        'sales': 3830,
        'productivity': 83,
        'new_clients': 7,
    }


def test_failure_yields_degraded_snapshot():
    metrics = _compose(month='13')

    assert metrics.is_degraded
    assert metrics.company_sales == 0
    assert metrics.divisions == []
    assert metrics.trend_data == []


# =============================================================================
# TREND
# =============================================================================

def test_trend_has_six_labelled_months():
    metrics = _compose()

    assert [p['month'] for p in metrics.trend_data] == [
        'Aug 2024', 'Sep 2024', 'Oct 2024', 'Nov 2024', 'Dec 2024', 'Jan 2025',
    ]


def test_trend_prefers_kpi_then_employee_mean(employees):
    kpi = [
        KPIData(division_id='laser', month='01', year=2025, productivity_rate=83),
        KPIData(division_id='laser', month='12', year=2024, productivity_rate=70),
    ]
    employee_kpi = [
        EmployeeKPIData(employee_id='e1', division_id='laser', month='11', year=2024, productivity_rate=60),
        EmployeeKPIData(employee_id='e2', division_id='laser', month='11', year=2024, productivity_rate=81),
    ]

    trend = _compose(kpi_data=kpi, employee_kpi_data=employee_kpi, employees=employees).trend_data

    by_month = {p['month']: p for p in trend}
    assert by_month['Jan 2025']['Laser'] == 83
    assert by_month['Dec 2024']['Laser'] == 70
    assert by_month['Nov 2024']['Laser'] == 71
    # No data: current productivity with zero jitter at random() == 0.5
    assert by_month['Aug 2024']['Laser'] == 83
    assert by_month['Aug 2024']['Hormone'] == 0


def test_trend_jitter_bounds():
    kpi = [KPIData(division_id='laser', month='01', year=2025, productivity_rate=50)]

    low = _compose(kpi_data=kpi, rng=FixedRandom(0.0)).trend_data
    high = _compose(kpi_data=kpi, rng=FixedRandom(0.999)).trend_data

    assert low[0]['Laser'] == 45
    assert high[0]['Laser'] == 55
    assert low[0]['Hormone'] == 0  # never negative


def test_seeded_rng_is_reproducible():
    kpi = [KPIData(division_id='laser', month='01', year=2025, productivity_rate=50)]

    first = _compose(kpi_data=kpi, rng=np.random.default_rng(7)).trend_data
    second = _compose(kpi_data=kpi, rng=np.random.default_rng(7)).trend_data

    assert first == second
    assert all(45 <= p['Laser'] <= 55 for p in first[:-1])


# =============================================================================
# STATISTICS
# =============================================================================

def test_division_revenue_tiers():
    explicit = KPIData(division_id='laser', month='01', year=2025, service_revenue=900, retail_sales=100,
                       average_ticket=1, new_clients=1)
    estimated = KPIData(division_id='laser', month='01', year=2025, average_ticket=200, new_clients=4)

    assert DashboardComposer.division_revenue(explicit) == 1000
    assert DashboardComposer.division_revenue(estimated) == 800
    assert DashboardComposer.division_revenue(None) == 0


def test_division_performance_zero_fills_missing(employees):
    composer = DashboardComposer(employees=employees, divisions=DIVISIONS)

    performance = composer.division_performance('01', 2025)

    hormone = performance[1]
    assert hormone['team_size'] == 1
    assert hormone['total_revenue'] == 0
    assert hormone['kpi'] == KPIData.zero('hormone', '01', 2025)


def test_employee_stats_ranks_performers(laser_january, employees):
    employee_kpi = aggregate_employees(laser_january, employees, '01', 2025)
    composer = DashboardComposer(employee_kpi_data=employee_kpi, employees=employees)

    stats = composer.employee_stats('01', 2025, 'laser')

    assert stats['total_employees'] == 5
    assert stats['active_employees'] == 3
    # e1 75, e2 88, e3 88
    assert stats['avg_productivity'] == 84
    assert stats['avg_happiness'] == 8.5
    top = stats['top_performers']
    assert [p['employee'].id for p in top] == ['e3', 'e2', 'e1']
    # (88 + 14 + 85 + 95) / 4 = 70.5
    assert [p['score'] for p in top] == [71, 70, 68]


def test_scheduling_stats(employees):
    employee_kpi = [EmployeeKPIData(employee_id='e1', division_id='laser', month='01', year=2025, hours_sold=30)]
    composer = DashboardComposer(
        employee_kpi_data=employee_kpi,
        employees=employees,
        scheduled_hours={'e1-01-2025': 40, 'x1-01-2025': 100},
    )

    stats = composer.scheduling_stats('01', 2025)

    assert stats['total_scheduled_hours'] == 40
    assert stats['total_booked_hours'] == 30
    assert stats['utilization_rate'] == 75
    assert stats['revenue_from_scheduling'] == 4500
    assert stats['employee_utilization'][0]['employee_id'] == 'e1'


def test_hormone_unit_metrics():
    units = [
        HormoneUnit(unit_id='u1', np_ids=['n1'], specialist_ids=['s1'], guest_care_id='g1'),
        HormoneUnit(unit_id='u2', np_ids=['n2']),
    ]
    kpi = [KPIData(division_id='hormone', month='01', year=2025, average_ticket=300, new_clients=10,
                   productivity_rate=0)]

    metrics = DashboardComposer(kpi_data=kpi, hormone_units=units).hormone_unit_metrics('01', 2025)

    assert metrics['total_units'] == 2
    assert metrics['total_staff'] == 4
    assert metrics['total_revenue'] == 3000
    assert [u['revenue'] for u in metrics['unit_performance']] == [1500, 1500]
    assert metrics['unit_performance'][0]['productivity'] == 85


def test_daily_submission_stats(laser_january):
    unknown = make_submission('pcos', date(2025, 1, 20), [make_entry('e1')], is_complete=False)
    composer = DashboardComposer(daily_submissions=laser_january + [unknown], divisions=DIVISIONS)

    stats = composer.daily_submission_stats('01', 2025)

    assert stats['total_submissions'] == 4
    assert stats['completed_submissions'] == 3
    assert stats['completion_rate'] == 75
    recent = stats['recent_submissions']
    assert recent[0]['division_name'] == 'Unknown'
    assert [r['date'] for r in recent] == [
        date(2025, 1, 20), date(2025, 1, 8), date(2025, 1, 7), date(2025, 1, 6),
    ]


@pytest.mark.parametrize("division_filter, expected", [('laser', 3), ('hormone', 0)])
def test_daily_submission_stats_filter(laser_january, division_filter, expected):
    composer = DashboardComposer(daily_submissions=laser_january, divisions=DIVISIONS)

    assert composer.daily_submission_stats(1, 2025, division_filter)['total_submissions'] == expected
