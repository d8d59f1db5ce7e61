# clinic_dashboard/scorecard/charts.py
"""
Altair Chart Builders for the Clinic Scorecard

- KPI summary cards (using st.metric)
- Six-month productivity trend (line per division)
- Division sales bars
- Scorecard table (actual vs target with score level)
"""

import logging
from typing import Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from .constants import CHART_WIDTH, CHART_HEIGHT, KPI_FIELDS, MUTED_TEXT_COLOR
from .models import DashboardMetrics
from .scoring import score_level, score_color, score_percentage, format_currency, format_percentage, format_number

logger = logging.getLogger(__name__)


class ScorecardCharts:
    """
    Chart builders for the manager dashboard.

    All methods are static.

    Usage:
        ScorecardCharts.render_kpi_cards(metrics)
        chart = ScorecardCharts.build_trend_chart(metrics.trend_data, metrics.divisions)
        st.altair_chart(chart, use_container_width=True)
    """

    # =========================================================================
    # KPI CARDS (Using st.metric)
    # =========================================================================

    @staticmethod
    def render_kpi_cards(metrics: DashboardMetrics):
        """Company totals in two rows of four cards."""
        with st.container(border=True):
            st.markdown("**💰 COMPANY**")
            col1, col2, col3, col4 = st.columns(4)
            col1.metric("Company Sales", format_currency(metrics.company_sales))
            col2.metric("Productivity", format_percentage(metrics.company_productivity, 0))
            col3.metric("Service Revenue", format_currency(metrics.service_revenue))
            col4.metric("Retail Sales", format_currency(metrics.retail_sales))

            col1, col2, col3, col4 = st.columns(4)
            col1.metric(
                "Hours Booked",
                format_number(metrics.hours_booked),
                help=f"of {format_number(metrics.hours_worked)} hours worked"
            )
            col2.metric("New Clients", format_number(metrics.new_clients))
            col3.metric("Consults", format_number(metrics.consults))
            conversion = score_percentage(metrics.consult_converted, metrics.consults)
            col4.metric(
                "Converted",
                format_number(metrics.consult_converted),
                delta=f"{conversion}% of consults" if metrics.consults else None,
                delta_color="off"
            )

        if metrics.is_degraded:
            st.warning("⚠️ Dashboard data could not be computed; showing empty values.")

    # =========================================================================
    # DATA PREPARATION
    # =========================================================================

    @staticmethod
    def trend_frame(trend_data: List[Dict]) -> pd.DataFrame:
        """Long format: one row per (month, division)."""
        if not trend_data:
            return pd.DataFrame(columns=['month', 'division', 'productivity', 'order'])

        df = pd.DataFrame(trend_data)
        df['order'] = range(len(df))
        long_df = df.melt(id_vars=['month', 'order'], var_name='division', value_name='productivity')
        return long_df.sort_values(['order', 'division']).reset_index(drop=True)

    @staticmethod
    def scorecard_frame(actual, target=None) -> pd.DataFrame:
        """
        Actual vs target table for one KPIData / EmployeeKPIData record.

        Args:
            actual: Scorecard record
            target: KPITarget / EmployeeTarget or dict of targets (optional)

        Returns:
            DataFrame with metric, actual, target, percent, level, color
        """
        rows = []
        for field_name, label, unit in KPI_FIELDS:
            value = getattr(actual, field_name, 0) or 0
            if target is None:
                goal = None
            elif isinstance(target, dict):
                goal = target.get(field_name)
            else:
                goal = getattr(target, field_name, None)

            level = score_level(value, goal) if goal else None
            rows.append({
                'metric': label,
                'unit': unit,
                'actual': value,
                'target': goal,
                'percent_of_target': score_percentage(value, goal) if goal else None,
                'level': level,
                'color': score_color(level) if level else None,
            })
        return pd.DataFrame(rows)

    # =========================================================================
    # CHARTS
    # =========================================================================

    @staticmethod
    def build_trend_chart(
        trend_data: List[Dict],
        divisions: Optional[List[Dict]] = None,
        title: str = "📈 Productivity Trend (6 months)"
    ) -> alt.Chart:
        """
        Line per division over the trend months.

        Args:
            trend_data: DashboardMetrics.trend_data
            divisions: DashboardMetrics.divisions, for line colors
            title: Chart title

        Returns:
            Altair chart
        """
        df = ScorecardCharts.trend_frame(trend_data)
        if df.empty:
            return ScorecardCharts._empty_chart("No trend data available")

        month_order = list(dict.fromkeys(df['month']))
        color = alt.Color('division:N', title='Division', legend=alt.Legend(orient='bottom'))
        if divisions:
            color = alt.Color(
                'division:N',
                title='Division',
                scale=alt.Scale(
                    domain=[d['name'] for d in divisions],
                    range=[d['color'] for d in divisions]
                ),
                legend=alt.Legend(orient='bottom')
            )

        return alt.Chart(df).mark_line(point=True, strokeWidth=2).encode(
            x=alt.X('month:N', sort=month_order, title='Month'),
            y=alt.Y('productivity:Q', title='Productivity %', scale=alt.Scale(domain=[0, 100])),
            color=color,
            tooltip=[
                alt.Tooltip('month:N', title='Month'),
                alt.Tooltip('division:N', title='Division'),
                alt.Tooltip('productivity:Q', title='Productivity %', format='.0f')
            ]
        ).properties(
            width=CHART_WIDTH,
            height=CHART_HEIGHT,
            title=title
        )

    @staticmethod
    def build_division_sales_chart(
        divisions: List[Dict],
        title: str = "💰 Sales by Division"
    ) -> alt.Chart:
        """Horizontal bars of division sales, colored by division."""
        if not divisions:
            return ScorecardCharts._empty_chart("No division data available")

        df = pd.DataFrame(divisions)

        bars = alt.Chart(df).mark_bar().encode(
            y=alt.Y('name:N', sort='-x', title=None),
            x=alt.X('sales:Q', title='Sales (USD)', axis=alt.Axis(format='~s')),
            color=alt.Color('color:N', scale=None),
            tooltip=[
                alt.Tooltip('name:N', title='Division'),
                alt.Tooltip('sales:Q', title='Sales', format='$,.0f'),
                alt.Tooltip('productivity:Q', title='Productivity %'),
                alt.Tooltip('team_members:Q', title='Team'),
                alt.Tooltip('new_clients:Q', title='New Clients')
            ]
        )

        labels = bars.mark_text(align='left', dx=3, fontSize=10).encode(
            text=alt.Text('sales:Q', format='$,.0f'),
            color=alt.value(MUTED_TEXT_COLOR)
        )

        return (bars + labels).properties(
            width=CHART_WIDTH,
            height=max(len(df) * 40, 120),
            title=title
        )

    @staticmethod
    def _empty_chart(message: str = "No data available") -> alt.Chart:
        """Create an empty chart with a message."""
        return alt.Chart(pd.DataFrame({'note': [message]})).mark_text(
            text=message,
            fontSize=16,
            color=MUTED_TEXT_COLOR
        ).properties(
            width=CHART_WIDTH,
            height=200
        )
