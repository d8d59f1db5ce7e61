# tests/test_scoring.py

import pytest

from clinic_dashboard.scorecard.scoring import (
    score_level,
    score_color,
    score_percentage,
    score_summary,
    format_currency,
    format_percentage,
    format_number,
)


@pytest.mark.parametrize("value, target, expected", [
    (95, 100, 'excellent'),
    (120, 100, 'excellent'),
    (94.9, 100, 'good'),
    (80, 100, 'good'),
    (79.9, 100, 'warning'),
    (60, 100, 'warning'),
    (59, 100, 'poor'),
    (0, 100, 'poor'),
])
def test_score_level_thresholds(value, target, expected):
    assert score_level(value, target) == expected


def test_score_level_without_usable_target_is_poor():
    assert score_level(50, 0) == 'poor'
    assert score_level(50, None) == 'poor'


def test_score_percentage_is_rounded_and_uncapped():
    assert score_percentage(83, 85) == 98
    assert score_percentage(150, 100) == 150
    assert score_percentage(1, 200) == 1  # 0.5 rounds up


def test_score_percentage_zero_target():
    assert score_percentage(10, 0) == 0


def test_score_color_tokens():
    assert score_color('excellent') == '#16a34a'
    assert score_color('poor') == '#dc2626'
    with pytest.raises(ValueError):
        score_color('stellar')


def test_score_summary():
    assert score_summary(70, 100) == {'level': 'warning', 'color': '#d97706', 'percentage': 70}


def test_format_currency():
    assert format_currency(1234.5) == '$1,235'
    assert format_currency(3830) == '$3,830'
    assert format_currency(0) == '$0'
    assert format_currency(-1500) == '-$1,500'
    assert format_currency(None) == '-'


def test_format_percentage_and_number():
    assert format_percentage(83) == '83.0%'
    assert format_percentage(None) == '-'
    assert format_number(1234567) == '1,234,567'
    assert format_number(8.5, 1) == '8.5'
