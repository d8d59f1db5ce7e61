# clinic_dashboard/scorecard/export.py
"""
Formatted Excel Export for the Clinic Scorecard

Creates Excel reports with:
- Summary sheet with the company dashboard totals
- Division scorecards vs targets, cells filled by score level
- Employee scorecards
- Productivity trend

Uses openpyxl for formatting capabilities.
"""

import logging
from datetime import datetime
from io import BytesIO
from typing import Dict, Iterable, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter

from .constants import EXCEL_STYLES, KPI_FIELDS, DEFAULT_DIVISION_TARGET
from .helpers import month_label
from .models import DashboardMetrics, EmployeeKPIData, KPIData, KPITarget
from .scoring import score_level, score_color

logger = logging.getLogger(__name__)

CURRENCY_FIELDS = {'average_ticket', 'service_sales_per_hour', 'net_cash_percentage'}


class ScorecardExport:
    """
    Excel report generator for the manager dashboard.

    Usage:
        exporter = ScorecardExport()
        excel_bytes = exporter.create_report(
            metrics=metrics,
            division_kpi=kpi_rows,
            employee_kpi=employee_rows,
            filters={'month': '01', 'year': 2025, 'division': 'all'}
        )

        st.download_button(
            label="Download Report",
            data=excel_bytes,
            file_name="clinic_scorecard.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
    """

    def __init__(self):
        """Initialize with default styles."""
        self.wb = None
        self._init_styles()

    def _init_styles(self):
        """Initialize reusable styles."""
        self.header_fill = PatternFill(
            start_color=EXCEL_STYLES['header_fill_color'],
            end_color=EXCEL_STYLES['header_fill_color'],
            fill_type='solid'
        )

        self.header_font = Font(
            bold=True,
            color=EXCEL_STYLES['header_font_color'],
            size=11
        )

        self.title_font = Font(bold=True, size=16)
        self.subtitle_font = Font(bold=True, size=12)

        thin_border = Side(style='thin', color='000000')
        self.cell_border = Border(
            left=thin_border,
            right=thin_border,
            top=thin_border,
            bottom=thin_border
        )

        self.center_align = Alignment(horizontal='center', vertical='center')
        self.right_align = Alignment(horizontal='right', vertical='center')

        self.currency_format = EXCEL_STYLES['currency_format']
        self.number_format = EXCEL_STYLES['number_format']
        self.percent_format = EXCEL_STYLES['percent_format']

    @staticmethod
    def _level_fill(level: str) -> PatternFill:
        color = score_color(level).lstrip('#').upper()
        return PatternFill(start_color=color, end_color=color, fill_type='solid')

    # =========================================================================
    # MAIN EXPORT METHOD
    # =========================================================================

    def create_report(
        self,
        metrics: DashboardMetrics,
        division_kpi: Iterable[KPIData],
        employee_kpi: Iterable[EmployeeKPIData] = (),
        targets: Iterable[KPITarget] = (),
        filters: Dict = None,
        employee_names: Dict[str, str] = None
    ) -> BytesIO:
        """
        Create formatted Excel report with multiple sheets.

        Args:
            metrics: Dashboard snapshot
            division_kpi: Division scorecards of the period
            employee_kpi: Employee scorecards of the period
            targets: Division targets; standard targets apply where missing
            filters: {'month', 'year', 'division'}
            employee_names: employee id -> display name

        Returns:
            BytesIO containing Excel file
        """
        filters = filters or {}
        self.wb = Workbook()

        self._create_summary_sheet(metrics, filters)
        self._create_division_sheet(list(division_kpi), list(targets or ()))

        employee_kpi = list(employee_kpi or ())
        if employee_kpi:
            self._create_employee_sheet(employee_kpi, employee_names or {})

        if metrics.trend_data:
            self._create_trend_sheet(metrics.trend_data)

        output = BytesIO()
        self.wb.save(output)
        output.seek(0)

        logger.info("Excel report created successfully")
        return output

    # =========================================================================
    # SUMMARY SHEET
    # =========================================================================

    def _create_summary_sheet(self, metrics: DashboardMetrics, filters: Dict):
        ws = self.wb.active
        ws.title = "Summary"

        row = 1
        ws.cell(row=row, column=1, value="Clinic Scorecard Report")
        ws.cell(row=row, column=1).font = self.title_font
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=4)
        row += 2

        period = ""
        if filters.get('month') and filters.get('year'):
            period = month_label(filters['month'], filters['year'])

        info_rows = [
            ("Report Period:", period),
            ("Division:", filters.get('division', 'all')),
            ("Generated:", datetime.now().strftime('%Y-%m-%d %H:%M')),
        ]
        for label, value in info_rows:
            ws.cell(row=row, column=1, value=label)
            ws.cell(row=row, column=2, value=value)
            row += 1

        if metrics.is_degraded:
            ws.cell(row=row, column=1, value="Dashboard data could not be computed")
            ws.cell(row=row, column=1).font = Font(bold=True, color='DC2626')
            row += 1
        row += 1

        ws.cell(row=row, column=1, value="Company Totals")
        ws.cell(row=row, column=1).font = self.subtitle_font
        row += 1

        kpi_rows = [
            ("Company Sales", metrics.company_sales, self.currency_format),
            ("Productivity", metrics.company_productivity, self.percent_format),
            ("Service Revenue", metrics.service_revenue, self.currency_format),
            ("Retail Sales", metrics.retail_sales, self.currency_format),
            ("Hours Worked", metrics.hours_worked, self.number_format),
            ("Hours Booked", metrics.hours_booked, self.number_format),
            ("New Clients", metrics.new_clients, self.number_format),
            ("Consults", metrics.consults, self.number_format),
            ("Consults Converted", metrics.consult_converted, self.number_format),
        ]
        for label, value, number_format in kpi_rows:
            ws.cell(row=row, column=1, value=label)
            cell = ws.cell(row=row, column=2, value=value)
            cell.number_format = number_format
            cell.alignment = self.right_align
            row += 1

        ws.column_dimensions['A'].width = 25
        ws.column_dimensions['B'].width = 20

    # =========================================================================
    # DIVISION SHEET
    # =========================================================================

    def _write_headers(self, ws, headers: List[tuple]):
        for col_idx, (header, width) in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.fill = self.header_fill
            cell.font = self.header_font
            cell.alignment = self.center_align
            cell.border = self.cell_border
            ws.column_dimensions[get_column_letter(col_idx)].width = width

    @staticmethod
    def _target_for(targets: List[KPITarget], kpi: KPIData) -> Optional[KPITarget]:
        matches = [
            t for t in targets
            if t.division_id == kpi.division_id and t.applies_to(kpi.month, kpi.year)
        ]
        # Dated targets win over standing ones
        matches.sort(key=lambda t: t.month is None)
        return matches[0] if matches else None

    def _create_division_sheet(self, division_kpi: List[KPIData], targets: List[KPITarget]):
        ws = self.wb.create_sheet("Divisions")

        self._write_headers(ws, [
            ('Division', 18),
            ('Period', 12),
            ('Metric', 24),
            ('Actual', 14),
            ('Target', 14),
            ('Level', 12),
        ])

        row = 2
        for kpi in division_kpi:
            target = self._target_for(targets, kpi)
            for field_name, label, _unit in KPI_FIELDS:
                actual = getattr(kpi, field_name)
                goal = getattr(target, field_name) if target else DEFAULT_DIVISION_TARGET.get(field_name)
                level = score_level(actual, goal)

                values = [kpi.division_id, month_label(kpi.month, kpi.year), label, actual, goal, level]
                for col_idx, value in enumerate(values, 1):
                    cell = ws.cell(row=row, column=col_idx, value=value)
                    cell.border = self.cell_border

                for col_idx in (4, 5):
                    cell = ws.cell(row=row, column=col_idx)
                    cell.alignment = self.right_align
                    if field_name in CURRENCY_FIELDS:
                        cell.number_format = self.currency_format

                ws.cell(row=row, column=6).fill = self._level_fill(level)
                ws.cell(row=row, column=6).alignment = self.center_align
                row += 1

        ws.freeze_panes = 'A2'

    # =========================================================================
    # EMPLOYEE SHEET
    # =========================================================================

    def _create_employee_sheet(self, employee_kpi: List[EmployeeKPIData], names: Dict[str, str]):
        ws = self.wb.create_sheet("Employees")

        columns = [
            ('employee_id', 'Employee', 22),
            ('division_id', 'Division', 16),
            ('productivity_rate', 'Productivity %', 14),
            ('prebook_rate', 'Prebook %', 12),
            ('retail_percentage', 'Retail %', 12),
            ('new_clients', 'New Clients', 12),
            ('average_ticket', 'Avg Ticket', 12),
            ('service_sales_per_hour', 'Sales / Hour', 12),
            ('hours_sold', 'Hours Sold', 12),
            ('net_cash_percentage', 'Net Cash', 14),
        ]
        self._write_headers(ws, [(header, width) for _, header, width in columns])

        for row_idx, record in enumerate(employee_kpi, 2):
            for col_idx, (field_name, _, _) in enumerate(columns, 1):
                value = getattr(record, field_name)
                if field_name == 'employee_id':
                    value = names.get(value, value)
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.border = self.cell_border
                if field_name in CURRENCY_FIELDS:
                    cell.number_format = self.currency_format
                    cell.alignment = self.right_align

        ws.freeze_panes = 'A2'

    # =========================================================================
    # TREND SHEET
    # =========================================================================

    def _create_trend_sheet(self, trend_data: List[Dict]):
        ws = self.wb.create_sheet("Trend")

        series = [key for key in trend_data[0] if key != 'month']
        self._write_headers(ws, [('Month', 12)] + [(name, 16) for name in series])

        for row_idx, point in enumerate(trend_data, 2):
            ws.cell(row=row_idx, column=1, value=point['month']).border = self.cell_border
            for col_idx, name in enumerate(series, 2):
                cell = ws.cell(row=row_idx, column=col_idx, value=point.get(name))
                cell.border = self.cell_border
                cell.number_format = self.percent_format

        ws.freeze_panes = 'A2'
