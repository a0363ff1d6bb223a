# tests/test_export.py
from openpyxl import load_workbook

from crm.dashboard.export import DealsExport, _export_value
from crm.dashboard.constants import INVALID_DATE
from crm.dashboard.metrics import DashboardMetrics


def test_report_sheets(deals, callbacks, now):
    metrics = DashboardMetrics(deals, callbacks, now=now)

    output = DealsExport().create_report(
        deals=deals,
        overview=metrics.calculate_overview(),
        filters={'date_range_label': "Last 30 days", 'search': "acme"},
        leaderboard=metrics.agent_leaderboard(),
        callbacks=callbacks,
        generated_by="Mona Manager",
    )

    wb = load_workbook(output)
    assert wb.sheetnames == ["Summary", "Agents", "Deals", "Callbacks"]

    ws = wb["Deals"]
    assert ws.cell(row=1, column=1).value == "Deal ID"
    assert ws.max_row == len(deals) + 1
    assert ws.cell(row=2, column=3).value == 1000.0
    # Unparseable dates are written as the marker text
    assert ws.cell(row=5, column=9).value == INVALID_DATE


def test_optional_sheets_are_skipped(now):
    output = DealsExport().create_report(deals=[], overview=DashboardMetrics(now=now).calculate_overview())
    assert load_workbook(output).sheetnames == ["Summary", "Deals"]


def test_non_finite_money_exports_as_zero():
    assert _export_value('amount', float('nan')) == 0.0
    assert _export_value('revenue', float('inf')) == 0.0
    assert _export_value('amount', "junk") == 0.0
    assert _export_value('amount', 12.5) == 12.5
    assert _export_value('customer_name', None) == ''
