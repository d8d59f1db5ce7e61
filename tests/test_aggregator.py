# tests/test_aggregator.py

from datetime import date

import pytest

from clinic_dashboard.scorecard.aggregator import (
    aggregate_division,
    aggregate_employees,
    aggregate_month,
    daily_metrics,
    entries_frame,
)
from clinic_dashboard.scorecard.constants import DEFAULT_DIVISIONS
from clinic_dashboard.scorecard.models import KPIData

from conftest import make_entry, make_submission

PERCENT_FIELDS = (
    'productivity_rate',
    'prebook_rate',
    'first_time_retention_rate',
    'repeat_retention_rate',
    'retail_percentage',
    'clients_retail_percentage',
)


# =============================================================================
# DIVISION
# =============================================================================

def test_laser_division_month(laser_january):
    kpi = aggregate_division(laser_january, 'laser', '01', 2025)

    assert kpi.productivity_rate == 83
    assert kpi.service_revenue + kpi.retail_sales == 3830
    assert kpi.retail_percentage == 14
    assert kpi.clients_retail_percentage == 14
    assert kpi.average_ticket == 547
    assert kpi.service_sales_per_hour == 165
    assert kpi.first_time_retention_rate == 70
    assert kpi.repeat_retention_rate == 80
    assert kpi.net_cash_percentage == 2681
    assert kpi.prebook_rate == 58
    assert kpi.new_clients == 7
    assert kpi.hours_sold == 20
    assert kpi.happiness_score == 8.5
    assert kpi.hours_worked == 24


def test_inert_entries_do_not_contribute(laser_january):
    noisy = laser_january + [make_submission('laser', date(2025, 1, 9), [
        make_entry('e1', status='sick', hours_worked=100, service_revenue=99999),
        make_entry('e2', is_submitted=False, hours_worked=100, service_revenue=99999),
    ])]

    assert aggregate_division(noisy, 'laser', '01', 2025) == aggregate_division(laser_january, 'laser', '01', 2025)


def test_zero_worked_hours_yield_zero_rates():
    submissions = [make_submission('laser', date(2025, 1, 6), [
        make_entry('e1', hours_worked=0, hours_booked=0, service_revenue=0, retail_sales=0,
                   new_clients=0, consults=0, consult_converted=0, total_clients=0, prebooks=0),
    ])]

    kpi = aggregate_division(submissions, 'laser', '01', 2025)

    assert kpi.productivity_rate == 0
    assert kpi.prebook_rate == 0
    assert kpi.average_ticket == 0
    assert kpi.service_sales_per_hour == 0
    assert kpi.repeat_retention_rate == 10


def test_percentages_stay_in_range_when_booked_exceeds_worked():
    submissions = [make_submission('laser', date(2025, 1, 6), [
        make_entry('e1', hours_worked=4, hours_booked=9, prebooks=30, total_clients=10,
                   consults=2, consult_converted=5),
    ])]

    kpi = aggregate_division(submissions, 'laser', 1, 2025)

    for name in PERCENT_FIELDS:
        assert 0 <= getattr(kpi, name) <= 100
    assert kpi.repeat_retention_rate == 100


def test_no_submissions_returns_stored_record(laser_january):
    stored = KPIData(division_id='hormone', month='01', year=2025, productivity_rate=77, happiness_score=9)

    result = aggregate_division(laser_january, 'hormone', '01', 2025, existing_kpi=[stored])

    assert result is stored


def test_no_submissions_and_nothing_stored_returns_zero_record(laser_january):
    result = aggregate_division(laser_january, 'laser', '02', 2025)

    assert result == KPIData.zero('laser', '02', 2025)
    assert result.happiness_score == 0
    assert result.net_cash_percentage == 0


def test_other_months_are_ignored(laser_january):
    february = make_submission('laser', date(2025, 2, 3), [make_entry('e1', hours_worked=8, hours_booked=0)])

    kpi = aggregate_division(laser_january + [february], 'laser', '01', 2025)

    assert kpi.productivity_rate == 83


def test_accepts_stored_dicts(laser_january):
    stored = [s.to_dict() for s in laser_january]

    assert aggregate_division(stored, 'laser', '01', 2025).productivity_rate == 83


# =============================================================================
# EMPLOYEES
# =============================================================================

def test_first_entry_seeds_employee_record(laser_january, employees):
    records = aggregate_employees(laser_january, employees, '01', 2025)

    assert [r.employee_id for r in records] == ['e1', 'e2', 'e3']
    first = records[0]
    assert first.division_id == 'laser'
    assert first.productivity_rate == 75
    assert first.prebook_rate == 60
    assert first.first_time_retention_rate == 67
    assert first.repeat_retention_rate == 77
    assert first.retail_percentage == 17
    assert first.average_ticket == 600
    assert first.service_sales_per_hour == 167
    assert first.clients_retail_percentage == 50
    assert first.hours_sold == 6
    assert first.net_cash_percentage == 840
    assert first.attendance_rate == 95
    assert first.training_hours == 8
    assert first.customer_satisfaction_score == 9.0


def _two_days(first_productivity_booked, second_productivity_booked):
    return [
        make_submission('laser', date(2025, 1, 6), [make_entry(
            'e1', hours_worked=10, hours_booked=first_productivity_booked,
            service_revenue=600, retail_sales=0, new_clients=2,
        )]),
        make_submission('laser', date(2025, 1, 7), [make_entry(
            'e1', hours_worked=10, hours_booked=second_productivity_booked,
            service_revenue=900, retail_sales=100, new_clients=3,
        )]),
    ]


def test_latest_entry_productivity_wins(employees):
    records = aggregate_employees(_two_days(6, 9), employees, '01', 2025)

    assert len(records) == 1
    record = records[0]
    assert record.productivity_rate == 90
    assert record.hours_sold == 15
    assert record.new_clients == 5
    assert record.service_sales_per_hour == 100
    assert record.retail_percentage == 10
    assert record.average_ticket == 200


def test_employee_aggregation_is_order_dependent(employees):
    forward = aggregate_employees(_two_days(6, 9), employees, '01', 2025)[0]
    backward = aggregate_employees(list(reversed(_two_days(6, 9))), employees, '01', 2025)[0]

    assert forward.productivity_rate == 90
    assert backward.productivity_rate == 60
    assert forward.hours_sold == backward.hours_sold


def test_hourly_rate_without_booked_hours_uses_latest_revenue(employees):
    submissions = [
        make_submission('laser', date(2025, 1, 6), [make_entry('e1', hours_booked=0, service_revenue=300)]),
        make_submission('laser', date(2025, 1, 7), [make_entry('e1', hours_booked=0, service_revenue=250)]),
    ]

    record = aggregate_employees(submissions, employees, '01', 2025)[0]

    assert record.hours_sold == 0
    assert record.service_sales_per_hour == 250.0
    assert isinstance(record.service_sales_per_hour, float)


def test_unmatched_and_inactive_employees_are_skipped(employees):
    submissions = [make_submission('laser', date(2025, 1, 6), [
        make_entry('ghost'),
        make_entry('x1'),
        make_entry('e2'),
    ])]

    records = aggregate_employees(submissions, employees, '01', 2025)

    assert [r.employee_id for r in records] == ['e2']


def test_employee_division_comes_from_directory(employees):
    submissions = [make_submission('guest-care', date(2025, 1, 6), [make_entry('h1')])]

    records = aggregate_employees(submissions, employees, '01', 2025)

    assert records[0].division_id == 'hormone'


# =============================================================================
# FRAMES AND MONTHLY PASS
# =============================================================================

def test_entries_frame_keeps_order(laser_january):
    df = entries_frame(laser_january)

    assert list(df['employee_id']) == ['e1', 'e2', 'e3']
    assert df['hours_booked'].sum() == 20


def test_entries_frame_empty():
    df = entries_frame([])
    assert df.empty
    assert 'hours_worked' in df.columns


def test_daily_metrics_sums(laser_january):
    totals = daily_metrics(laser_january, '01', 2025)

    assert totals['service_revenue'] == 3300
    assert totals['retail_sales'] == 530
    assert totals['consults'] == 10
    assert totals['entry_count'] == 3
    assert isinstance(totals['hours_worked'], int)


def test_daily_metrics_empty_month(laser_january):
    totals = daily_metrics(laser_january, '03', 2025)
    assert totals['hours_worked'] == 0
    assert totals['entry_count'] == 0


def test_aggregate_month_only_touches_divisions_with_submissions(laser_january, employees):
    division_kpi, employee_kpi = aggregate_month(laser_january, DEFAULT_DIVISIONS, employees, '01', 2025)

    assert [k.division_id for k in division_kpi] == ['laser']
    assert len(employee_kpi) == 3


@pytest.mark.parametrize("month", ['01', 1, '1'])
def test_month_formats_are_equivalent(laser_january, month):
    assert aggregate_division(laser_january, 'laser', month, 2025).month == '01'
