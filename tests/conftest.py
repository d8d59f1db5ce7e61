# tests/conftest.py
"""Shared fixtures for the scorecard tests."""

from datetime import date

import pytest

from clinic_dashboard.scorecard.models import DailyEntry, DailySubmission, Employee
from clinic_dashboard.scorecard.store import KPIStore, MemoryBackend


def make_entry(employee_id: str, **overrides) -> DailyEntry:
    values = dict(
        employee_id=employee_id,
        status='active',
        is_submitted=True,
        hours_worked=8,
        hours_booked=6,
        service_revenue=1000,
        retail_sales=200,
        new_clients=2,
        consults=3,
        consult_converted=2,
        total_clients=10,
        prebooks=6,
    )
    values.update(overrides)
    return DailyEntry(**values)


def make_submission(division_id: str, day: date, entries, is_complete: bool = True) -> DailySubmission:
    return DailySubmission(division_id=division_id, date=day, is_complete=is_complete, entries=list(entries))


class FixedRandom:
    """RNG stand-in whose random() always returns the same value."""

    def __init__(self, value: float = 0.5):
        self.value = value

    def random(self):
        return self.value


@pytest.fixture
def employees():
    return [
        Employee(id='e1', name='Ava Laser', division_id='laser'),
        Employee(id='e2', name='Ben Laser', division_id='laser'),
        Employee(id='e3', name='Cleo Laser', division_id='laser'),
        Employee(id='h1', name='Hana Hormone', division_id='hormone'),
        Employee(id='x1', name='Former Staff', division_id='laser', is_active=False),
    ]


@pytest.fixture
def laser_january():
    """Three active, submitted laser entries in January 2025."""
    return [
        make_submission('laser', date(2025, 1, 6), [make_entry(
            'e1', hours_worked=8, hours_booked=6, service_revenue=1000, retail_sales=200,
            new_clients=2, consults=3, consult_converted=2, total_clients=10, prebooks=6,
        )]),
        make_submission('laser', date(2025, 1, 7), [make_entry(
            'e2', hours_worked=8, hours_booked=7, service_revenue=1200, retail_sales=150,
            new_clients=3, consults=4, consult_converted=3, total_clients=12, prebooks=7,
        )]),
        make_submission('laser', date(2025, 1, 8), [make_entry(
            'e3', hours_worked=8, hours_booked=7, service_revenue=1100, retail_sales=180,
            new_clients=2, consults=3, consult_converted=2, total_clients=11, prebooks=6,
        )]),
    ]


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    return KPIStore(backend)


@pytest.fixture
def fixed_rng():
    return FixedRandom(0.5)
