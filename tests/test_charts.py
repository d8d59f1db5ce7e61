# tests/test_charts.py

import altair as alt

from clinic_dashboard.scorecard.charts import ScorecardCharts
from clinic_dashboard.scorecard.constants import DEFAULT_DIVISION_TARGET, MUTED_TEXT_COLOR
from clinic_dashboard.scorecard.models import KPIData

TREND = [
    {'month': 'Dec 2024', 'Laser': 70, 'Hormone': 60},
    {'month': 'Jan 2025', 'Laser': 83, 'Hormone': 0},
]


def test_trend_frame_is_long_format():
    df = ScorecardCharts.trend_frame(TREND)

    assert len(df) == 4
    assert list(df['month']) == ['Dec 2024', 'Dec 2024', 'Jan 2025', 'Jan 2025']
    assert list(df['division']) == ['Hormone', 'Laser', 'Hormone', 'Laser']
    assert list(df['productivity']) == [60, 70, 0, 83]


def test_trend_frame_empty():
    assert ScorecardCharts.trend_frame([]).empty


def test_scorecard_frame_levels():
    kpi = KPIData(division_id='laser', month='01', year=2025, productivity_rate=83, prebook_rate=30)

    df = ScorecardCharts.scorecard_frame(kpi, DEFAULT_DIVISION_TARGET).set_index('metric')

    assert df.loc['Productivity', 'level'] == 'excellent'
    assert df.loc['Productivity', 'percent_of_target'] == 98
    assert df.loc['Prebook Rate', 'level'] == 'poor'
    assert df.loc['Prebook Rate', 'color'] == '#dc2626'


def test_scorecard_frame_without_target():
    kpi = KPIData(division_id='laser', month='01', year=2025)

    df = ScorecardCharts.scorecard_frame(kpi)

    assert df['level'].isna().all()


def test_charts_build_for_data_and_empty_input():
    divisions = [{'id': 'laser', 'name': 'Laser', 'color': '#ff9680', 'sales': 3830, 'productivity': 83,
                  'team_members': 3, 'new_clients': 7}]

    assert isinstance(ScorecardCharts.build_trend_chart(TREND), alt.TopLevelMixin)
    assert isinstance(ScorecardCharts.build_division_sales_chart(divisions), alt.TopLevelMixin)
    assert isinstance(ScorecardCharts.build_trend_chart([]), alt.TopLevelMixin)


def test_empty_chart_uses_muted_text():
    spec = ScorecardCharts._empty_chart("Nothing yet").to_dict()

    assert spec['mark']['color'] == MUTED_TEXT_COLOR
    assert spec['mark']['text'] == "Nothing yet"
