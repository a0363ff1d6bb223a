# crm/dashboard/export.py
"""
Formatted Excel Export for the CRM Dashboard

Creates Excel reports with:
- Summary sheet with overview KPIs and the filters in effect
- Agent leaderboard
- Deal list (visible deals only)
- Callback list (optional)

Uses openpyxl for formatting capabilities.
"""

import logging
import math
from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .constants import EXCEL_STYLES
from .normalizers import format_date

logger = logging.getLogger(__name__)

DEAL_COLUMNS = [
    ('deal_id', 'Deal ID', 22),
    ('customer_name', 'Customer', 28),
    ('amount', 'Amount (USD)', 15),
    ('sales_agent_name', 'Sales Agent', 22),
    ('closing_agent_name', 'Closing Agent', 22),
    ('team', 'Team', 16),
    ('service_tier', 'Service', 16),
    ('status', 'Status', 12),
    ('created_at', 'Created', 14),
]

CALLBACK_COLUMNS = [
    ('callback_id', 'Callback ID', 22),
    ('customer_name', 'Customer', 28),
    ('phone_number', 'Phone', 18),
    ('sales_agent_name', 'Sales Agent', 22),
    ('team', 'Team', 16),
    ('status', 'Status', 12),
    ('priority', 'Priority', 10),
    ('created_at', 'Created', 14),
    ('scheduled_date', 'Scheduled', 14),
]

LEADERBOARD_COLUMNS = [
    ('agent', 'Agent', 25),
    ('deals', 'Deals', 10),
    ('revenue', 'Revenue (USD)', 15),
    ('avg_deal_size', 'Avg Deal (USD)', 15),
]

CURRENCY_FIELDS = {'amount', 'revenue', 'avg_deal_size'}
DATE_FIELDS = {'created_at', 'scheduled_date'}


def _export_value(field_name: str, value: Any) -> Any:
    """Excel-safe cell value; non-finite money exports as 0."""
    if field_name in CURRENCY_FIELDS:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
        return number if math.isfinite(number) else 0.0
    if field_name in DATE_FIELDS:
        return format_date(value)
    return value if value is not None else ''


class DealsExport:
    """
    Excel report generator for deals and callbacks.

    Usage:
        exporter = DealsExport()
        excel_bytes = exporter.create_report(
            deals=deals,
            overview=overview,
            filters=filter_values,
        )

        st.download_button(
            label="Download Report",
            data=excel_bytes,
            file_name="crm_report.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
    """

    def __init__(self):
        self.wb = None
        self._init_styles()

    def _init_styles(self):
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

    # =========================================================================
    # MAIN EXPORT METHOD
    # =========================================================================

    def create_report(
        self,
        deals: List[Any],
        overview: Dict,
        filters: Dict = None,
        leaderboard: List[Dict] = None,
        callbacks: List[Any] = None,
        generated_by: str = ""
    ) -> BytesIO:
        """
        Create formatted Excel report with multiple sheets.

        Returns:
            BytesIO containing Excel file
        """
        self.wb = Workbook()

        self._create_summary_sheet(overview, filters or {}, generated_by)
        if leaderboard:
            self._create_table_sheet("Agents", LEADERBOARD_COLUMNS, leaderboard)
        self._create_table_sheet("Deals", DEAL_COLUMNS, deals)
        if callbacks:
            self._create_table_sheet("Callbacks", CALLBACK_COLUMNS, callbacks)

        output = BytesIO()
        self.wb.save(output)
        output.seek(0)

        logger.info(f"Excel report created: {len(deals)} deals, {len(callbacks or [])} callbacks")
        return output

    # =========================================================================
    # SUMMARY SHEET
    # =========================================================================

    def _create_summary_sheet(self, overview: Dict, filters: Dict, generated_by: str):
        ws = self.wb.active
        ws.title = "Summary"

        row = 1

        ws.cell(row=row, column=1, value="Sales CRM Report")
        ws.cell(row=row, column=1).font = self.title_font
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=4)
        row += 2

        info_rows = [
            ("Period:", filters.get('date_range_label', 'All time')),
            ("Generated:", datetime.now().strftime('%Y-%m-%d %H:%M')),
        ]
        if generated_by:
            info_rows.append(("Generated by:", generated_by))
        if filters.get('search'):
            info_rows.append(("Search:", filters['search']))

        for label, value in info_rows:
            ws.cell(row=row, column=1, value=label)
            ws.cell(row=row, column=2, value=value)
            row += 1
        row += 1

        ws.cell(row=row, column=1, value="Key Performance Indicators")
        ws.cell(row=row, column=1).font = self.subtitle_font
        row += 1

        kpi_rows = [
            ("Total Revenue", _export_value('revenue', overview.get('total_revenue', 0)), True),
            ("Total Deals", overview.get('total_deals', 0), False),
            ("Average Deal Size", _export_value('revenue', overview.get('avg_deal_size', 0)), True),
            ("Completed Deals", overview.get('completed_deals', 0), False),
            ("Active Agents", overview.get('unique_agents', 0), False),
            ("Total Callbacks", overview.get('total_callbacks', 0), False),
            ("Conversion Rate", f"{overview.get('conversion_rate', 0):.1f}%", False),
        ]

        for label, value, is_money in kpi_rows:
            ws.cell(row=row, column=1, value=label)
            cell = ws.cell(row=row, column=2, value=value)
            cell.alignment = self.right_align
            if is_money:
                cell.number_format = self.currency_format
            row += 1

        ws.column_dimensions['A'].width = 25
        ws.column_dimensions['B'].width = 20

    # =========================================================================
    # TABLE SHEETS
    # =========================================================================

    def _create_table_sheet(self, title: str, columns: List, rows: List[Any]):
        ws = self.wb.create_sheet(title)

        for col_idx, (_, header, width) in enumerate(columns, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.fill = self.header_fill
            cell.font = self.header_font
            cell.alignment = self.center_align
            cell.border = self.cell_border
            ws.column_dimensions[get_column_letter(col_idx)].width = width

        for row_idx, record in enumerate(rows, 2):
            for col_idx, (field_name, _, _) in enumerate(columns, 1):
                if isinstance(record, dict):
                    raw = record.get(field_name)
                else:
                    raw = getattr(record, field_name, None)

                cell = ws.cell(row=row_idx, column=col_idx, value=_export_value(field_name, raw))
                cell.border = self.cell_border

                if field_name in CURRENCY_FIELDS:
                    cell.number_format = self.currency_format
                    cell.alignment = self.right_align
                elif field_name in DATE_FIELDS or field_name in ('status', 'priority', 'deals'):
                    cell.alignment = self.center_align

        ws.freeze_panes = 'A2'


__all__ = ['DealsExport', 'DEAL_COLUMNS', 'CALLBACK_COLUMNS']
