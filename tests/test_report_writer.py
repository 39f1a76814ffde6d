"""
Unit tests for ReportWriter exports.
"""

import json
from unittest.mock import patch

import pandas as pd
import pytest
from openpyxl import load_workbook

from canvas_inventory.inventory_models import (
    TABULAR_COLUMNS, ConnectionRef, DependencyRecord, TableRef
)
from canvas_inventory.report_writer import ReportWriter

TS = "20240101_120000"
ENV = "https://contoso.crm.dynamics.com"

@pytest.fixture
def records():
    first = DependencyRecord(
        app_name="Expense Tracker", app_id="app-1", environment="Default-123",
        created_time="2024-01-02", last_modified_time="2024-03-04", owner="alice@contoso.com",
    )
    first.tables.extend([
        TableRef("Expenses", "cr123_expense", "cr123_expenses", "NativeCDSDataSourceInfo"),
        TableRef("Accounts", "account", "accounts", "NativeCDSDataSourceInfo"),
    ])
    first.connections.append(ConnectionRef("c1", "shared_sql", "SQL Server"))
    first.component_libraries.append("Component library reference: Src/Components/Header.fx.yaml")

    second = DependencyRecord(app_name="<Help & Desk>", app_id="app-2", environment="Default-123")
    second.other_dependencies.append("Extraction failed: network unreachable")

    return [first, second]

@pytest.fixture
def writer(tmp_path, quiet_logger):
    tmp_path.joinpath("out").mkdir()
    return ReportWriter(tmp_path / "out", TS, ENV, quiet_logger)

def read_csv(path):
    return pd.read_csv(path, encoding="utf-8-sig", keep_default_na=False)

class TestPaths:
    """Test artifact naming."""

    def test_names_share_timestamp(self, writer):
        assert writer.csv_path.name == f"CanvasApps_Dependencies_{TS}.csv"
        assert writer.json_path.name == f"CanvasApps_Dependencies_Detailed_{TS}.json"
        assert writer.html_path.name == f"CanvasApps_Dependencies_Report_{TS}.html"
        assert writer.excel_path.name == f"CanvasApps_Dependencies_Workbook_{TS}.xlsx"

class TestCsvExport:
    """Test the tabular export."""

    def test_one_row_per_record(self, writer, records):
        df = read_csv(writer.export_csv(records))

        assert list(df.columns) == TABULAR_COLUMNS
        assert len(df) == len(records)
        assert df["Tables Count"].tolist() == [len(r.tables) for r in records]
        assert df.loc[0, "Tables"] == "Expenses; Accounts"
        assert df.loc[0, "Connections"] == "SQL Server"
        assert "network unreachable" in df.loc[1, "Other Dependencies"]

    def test_empty_inventory_writes_header_only(self, writer):
        path = writer.export_csv([])

        lines = path.read_text(encoding="utf-8-sig").strip().splitlines()
        assert lines == [",".join(TABULAR_COLUMNS)]

class TestJsonExport:
    """Test the structured export."""

    def test_round_trip_preserves_records(self, writer, records):
        loaded = ReportWriter.load_json(writer.export_json(records))

        assert len(loaded) == len(records)
        for original, restored in zip(records, loaded):
            assert restored.app_name == original.app_name
            assert restored.app_id == original.app_id
            assert restored.environment == original.environment
            assert restored.created_time == original.created_time
            assert restored.last_modified_time == original.last_modified_time
            assert restored.owner == original.owner
        assert loaded == records

    def test_nested_sequences_are_written(self, writer, records):
        data = json.loads(writer.export_json(records).read_text(encoding="utf-8"))

        assert data[0]["tables"][1]["entitySetName"] == "accounts"
        assert data[0]["connections"][0]["type"] == "shared_sql"
        assert data[1]["otherDependencies"] == ["Extraction failed: network unreachable"]

    def test_empty_inventory_is_empty_array(self, writer):
        data = json.loads(writer.export_json([]).read_text(encoding="utf-8"))

        assert data == []

class TestHtmlExport:
    """Test the HTML document."""

    def test_summary_and_sections(self, writer, records):
        html = writer.export_html(records).read_text(encoding="utf-8")

        assert '<span class="value" id="total-apps">2</span>' in html
        assert ENV in html
        assert "Expense Tracker" in html
        assert '<span class="tag table">Expenses</span>' in html
        assert '<span class="tag connection">SQL Server</span>' in html
        assert "network unreachable" in html

    def test_app_names_are_escaped(self, writer, records):
        html = writer.export_html(records).read_text(encoding="utf-8")

        assert "&lt;Help &amp; Desk&gt;" in html
        assert "<Help & Desk>" not in html

    def test_empty_inventory_shows_zero(self, writer):
        html = writer.export_html([]).read_text(encoding="utf-8")

        assert '<span class="value" id="total-apps">0</span>' in html
        assert "No canvas apps found" in html

    def test_open_in_browser_uses_file_uri(self, writer, records):
        path = writer.export_html(records)

        with patch("canvas_inventory.report_writer.webbrowser.open", return_value=True) as mock_open:
            assert writer.open_in_browser(path) is True

        assert mock_open.call_args[0][0].startswith("file://")

class TestExcelExport:
    """Test the workbook export."""

    def test_sheets_and_rows(self, writer, records):
        wb = load_workbook(writer.export_excel(records))

        assert wb.sheetnames == ["Summary", "Apps", "Tables", "Connections", "ComponentLibraries", "Errors"]
        assert wb["Apps"].max_row == len(records) + 1
        assert wb["Tables"].max_row == 3
        assert wb["Connections"].max_row == 2
        assert wb["Apps"].freeze_panes == "A2"
        assert wb["Apps"]["A1"].font.bold
        assert wb["Apps"]["A1"].border.bottom.style == "medium"
        assert wb["Apps"]["A2"].border.left.style == "thin"

    def test_errors_sheet_lists_logged_warnings(self, writer, records, quiet_logger):
        quiet_logger.warning("Extraction failed: network unreachable", "<Help & Desk>")

        wb = load_workbook(writer.export_excel(records))

        errors = wb["Errors"]
        assert errors["A2"].value == "WARNING"
        assert errors["C2"].value == "<Help & Desk>"

    def test_empty_inventory_still_writes_workbook(self, writer):
        wb = load_workbook(writer.export_excel([]))

        assert wb["Apps"].max_row == 1
        assert wb["Errors"]["A2"].value == "INFO"

class TestWriteAll:
    """Test writing every artifact at once."""

    def test_writes_all_artifacts(self, tmp_path, quiet_logger, records):
        writer = ReportWriter(tmp_path / "new" / "reports", TS, ENV, quiet_logger)

        outputs = writer.write_all(records)

        assert set(outputs) == {"csv", "json", "html", "excel"}
        assert all(path.exists() for path in outputs.values())

    def test_excel_can_be_skipped(self, writer, records):
        outputs = writer.write_all(records, include_excel=False)

        assert "excel" not in outputs
        assert not writer.excel_path.exists()
