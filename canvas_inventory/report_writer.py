"""
Canvas App Inventory - report generation

Every export is derived from the final list of DependencyRecords only:

  • CSV   : one row per app (pandas)
  • JSON  : full nested records
  • HTML  : summary + one section per app (Jinja2 template)
  • XLSX  : Summary / Apps / Tables / Connections / ComponentLibraries / Errors
"""

import json
import webbrowser
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .excel_styles import format_sheet, highlight_rows, style_summary_sheet
from .inventory_models import (
    TABULAR_COLUMNS, Config, DependencyRecord, Logger, TextSanitizer
)

TEMPLATE_DIR = Path(__file__).parent / 'templates'
HTML_TEMPLATE = 'inventory_report.html'

class ReportWriter:
    """
     Writes all report artifacts for one run

    File names share the run timestamp:
      <prefix>_<ts>.csv
      <prefix>_Detailed_<ts>.json
      <prefix>_Report_<ts>.html
      <prefix>_Workbook_<ts>.xlsx
    """

    def __init__(self, output_dir: Union[str, Path], timestamp: str, environment: str,
                 logger: Optional[Logger] = None, prefix: str = Config.REPORT_PREFIX):
        self.output_dir = Path(output_dir)
        self.timestamp = timestamp
        self.environment = environment
        self.logger = logger or Logger()
        self.prefix = prefix
        self._used_sheet_names = set()

    # ═══════════════════════════════════════════════════════════════════════
    # PATHS
    # ═══════════════════════════════════════════════════════════════════════

    @property
    def csv_path(self) -> Path:
        return self.output_dir / f"{self.prefix}_{self.timestamp}.csv"

    @property
    def json_path(self) -> Path:
        return self.output_dir / f"{self.prefix}_Detailed_{self.timestamp}.json"

    @property
    def html_path(self) -> Path:
        return self.output_dir / f"{self.prefix}_Report_{self.timestamp}.html"

    @property
    def excel_path(self) -> Path:
        return self.output_dir / f"{self.prefix}_Workbook_{self.timestamp}.xlsx"

    # ═══════════════════════════════════════════════════════════════════════
    # ALL EXPORTS
    # ═══════════════════════════════════════════════════════════════════════

    def write_all(self, records: List[DependencyRecord], include_excel: bool = True) -> Dict[str, Path]:
        """
        Write every artifact

        Returns:
            {'csv': path, 'json': path, 'html': path[, 'excel': path]}
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        outputs = {
            'csv': self.export_csv(records),
            'json': self.export_json(records),
            'html': self.export_html(records),
        }
        if include_excel:
            outputs['excel'] = self.export_excel(records)

        return outputs

    # ═══════════════════════════════════════════════════════════════════════
    # CSV
    # ═══════════════════════════════════════════════════════════════════════

    def export_csv(self, records: List[DependencyRecord]) -> Path:
        """One row per app; header is written even for an empty inventory"""
        df = pd.DataFrame([r.to_row() for r in records], columns=TABULAR_COLUMNS)

        # utf-8-sig so Excel detects the encoding
        df.to_csv(self.csv_path, index=False, encoding='utf-8-sig')

        self.logger.info(f"  ✓ CSV: {len(df):,} rows -> {self.csv_path}")
        return self.csv_path

    # ═══════════════════════════════════════════════════════════════════════
    # JSON
    # ═══════════════════════════════════════════════════════════════════════

    def export_json(self, records: List[DependencyRecord]) -> Path:
        """Full nested records, depth-bounded at JSON_MAX_DEPTH"""
        payload = TextSanitizer.bound_depth(
            [r.to_dict() for r in records],
            max_depth=Config.JSON_MAX_DEPTH,
        )

        with open(self.json_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False, default=str)

        self.logger.info(f"  ✓ JSON: {len(records):,} records -> {self.json_path}")
        return self.json_path

    @staticmethod
    def load_json(path: Union[str, Path]) -> List[DependencyRecord]:
        """Read a structured export back into records"""
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return [DependencyRecord.from_dict(item) for item in data]

    # ═══════════════════════════════════════════════════════════════════════
    # HTML
    # ═══════════════════════════════════════════════════════════════════════

    def export_html(self, records: List[DependencyRecord]) -> Path:
        """Static HTML document: summary block, then one section per app"""
        env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(['html']),
        )
        template = env.get_template(HTML_TEMPLATE)

        html_content = template.render(
            report_title="Canvas App Dependency Report",
            environment=self.environment,
            generation_date=datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            total_apps=len(records),
            total_tables=sum(len(r.tables) for r in records),
            total_connections=sum(len(r.connections) for r in records),
            failed_apps=sum(1 for r in records if r.has_errors),
            apps=records,
        )

        with open(self.html_path, 'w', encoding='utf-8') as f:
            f.write(html_content)

        self.logger.info(f"  ✓ HTML report -> {self.html_path}")
        return self.html_path

    def open_in_browser(self, path: Optional[Path] = None) -> bool:
        """Open the HTML report in the default viewer"""
        target = Path(path or self.html_path).resolve()
        opened = webbrowser.open(target.as_uri())
        if not opened:
            self.logger.warning(f"Could not open a browser for {target}")
        return opened

    # ═══════════════════════════════════════════════════════════════════════
    # EXCEL WORKBOOK
    # ═══════════════════════════════════════════════════════════════════════

    def export_excel(self, records: List[DependencyRecord]) -> Path:
        """
         Workbook export

        Sheets:
        - Summary            : run metadata and totals
        - Apps               : same rows as the CSV
        - Tables             : one row per table reference
        - Connections        : one row per connection reference
        - ComponentLibraries : one row per component-library note
        - Errors             : logged errors and warnings
        """
        self._used_sheet_names = set()

        with pd.ExcelWriter(self.excel_path, engine='openpyxl') as writer:
            summary_name = self._write_sheet(writer, 'Summary', self._summary_rows(records),
                                             ['Category', 'Metric', 'Value'])
            style_summary_sheet(writer.sheets[summary_name])

            apps_name = self._write_sheet(writer, 'Apps', [r.to_row() for r in records], TABULAR_COLUMNS)
            highlight_rows(writer.sheets[apps_name], 'Other Dependencies')

            self._write_sheet(writer, 'Tables', [
                {'App Name': r.app_name, 'App ID': r.app_id, 'Name': t.name, 'Table Name': t.table_name,
                 'Entity Set Name': t.entity_set_name, 'Type': t.type}
                for r in records for t in r.tables
            ], ['App Name', 'App ID', 'Name', 'Table Name', 'Entity Set Name', 'Type'])

            self._write_sheet(writer, 'Connections', [
                {'App Name': r.app_name, 'App ID': r.app_id, 'Name': c.name, 'Type': c.type,
                 'Display Name': c.display_name}
                for r in records for c in r.connections
            ], ['App Name', 'App ID', 'Name', 'Type', 'Display Name'])

            self._write_sheet(writer, 'ComponentLibraries', [
                {'App Name': r.app_name, 'App ID': r.app_id, 'Reference': TextSanitizer.sanitize_value(lib)}
                for r in records for lib in r.component_libraries
            ], ['App Name', 'App ID', 'Reference'])

            errors = self.logger.get_all_logs()
            if not errors:
                errors = [{'Level': 'INFO', 'Message': 'No errors or warnings logged', 'Context': '',
                           'Timestamp': datetime.now().isoformat()}]
            self._write_sheet(writer, 'Errors', errors, ['Level', 'Message', 'Context', 'Timestamp'])

        self.logger.info(f"  ✓ Workbook -> {self.excel_path}")
        return self.excel_path

    def _summary_rows(self, records: List[DependencyRecord]) -> List[Dict[str, Any]]:
        return [
            {'Category': 'METADATA', 'Metric': 'Generated', 'Value': datetime.now().strftime('%Y-%m-%d %H:%M:%S')},
            {'Category': 'METADATA', 'Metric': 'Environment', 'Value': self.environment},
            {'Category': 'METADATA', 'Metric': 'Run Timestamp', 'Value': self.timestamp},
            {'Category': 'APPS', 'Metric': 'Total Apps', 'Value': len(records)},
            {'Category': 'APPS', 'Metric': 'Apps With Errors', 'Value': sum(1 for r in records if r.has_errors)},
            {'Category': 'APPS', 'Metric': 'Apps Using Component Libraries',
             'Value': sum(1 for r in records if r.component_libraries)},
            {'Category': 'DEPENDENCIES', 'Metric': 'Table References', 'Value': sum(len(r.tables) for r in records)},
            {'Category': 'DEPENDENCIES', 'Metric': 'Connection References',
             'Value': sum(len(r.connections) for r in records)},
        ]

    def _write_sheet(self, writer, sheet_name: str, rows: List[Dict[str, Any]], columns: List[str]) -> str:
        df = pd.DataFrame(rows, columns=columns)
        for col in df.columns:
            if df[col].dtype == object:
                df[col] = df[col].map(TextSanitizer.sanitize_value)

        safe_name = self._get_unique_sheet_name(sheet_name)
        df.to_excel(writer, sheet_name=safe_name, index=False)
        format_sheet(writer.sheets[safe_name])

        self.logger.debug(f"  ✓ {safe_name}: {len(df):,} rows")
        return safe_name

    def _get_unique_sheet_name(self, name: str) -> str:
        safe_name = TextSanitizer.sanitize_sheet_name(name)

        if safe_name not in self._used_sheet_names:
            self._used_sheet_names.add(safe_name)
            return safe_name

        counter = 2
        while True:
            unique_name = f"{safe_name[:28]}_{counter}"
            if unique_name not in self._used_sheet_names:
                self._used_sheet_names.add(unique_name)
                return unique_name
            counter += 1
