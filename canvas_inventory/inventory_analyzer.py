"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                                                                              ║
║   CANVAS APP DEPENDENCY INVENTORY                                            ║
║                                                                              ║
║   Lists every canvas app in a Power Platform environment, downloads and      ║
║   unpacks each package, and reports the tables, connections and component   ║
║   libraries each app depends on.                                             ║
║                                                                              ║
╚══════════════════════════════════════════════════════════════════════════════╝

Pipeline (strictly sequential):
  1. Authenticate         (pac auth create, optional)
  2. Enumerate apps       (pac canvas list)        -> fatal on failure
  3. Extract per app      (download, unpack, scan) -> failures kept on the record
  4. Write reports        (CSV, JSON, HTML, XLSX)  -> fatal on failure
  5. Open HTML, clean up, print summary
"""

import gc
import shutil
import traceback
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Optional, Union

from tqdm import tqdm

from .dependency_extractor import DependencyExtractor
from .inventory_models import AppDescriptor, Config, DependencyRecord, Logger, PathNamer
from .pac_client import PowerPlatformCli
from .report_writer import ReportWriter

class CanvasAppInventory:
    """
     Canvas app dependency inventory for one environment
    """

    def __init__(self, environment_url: str = Config.ENVIRONMENT_URL,
                 output_dir: Union[str, Path] = Config.OUTPUT_DIR,
                 cli=None,
                 pac_executable: str = Config.PAC_EXECUTABLE,
                 tool_timeout: Optional[int] = Config.TOOL_TIMEOUT_SECONDS,
                 skip_auth: bool = False,
                 open_report: bool = True,
                 include_excel: bool = True,
                 cleanup: bool = False,
                 log_level: int = Config.LOG_LEVEL_INFO,
                 timestamp: Optional[str] = None):
        """
        Args:
            environment_url: Environment to inventory
            output_dir: Folder receiving reports (packages go to a subfolder)
            cli: Object with authenticate/list_apps/download_app/unpack_app;
                 defaults to PowerPlatformCli
            pac_executable: pac executable for the default CLI
            tool_timeout: Per-command timeout in seconds (None = no timeout)
            skip_auth: Reuse the currently selected pac auth profile
            open_report: Open the HTML report when done
            include_excel: Also write the Excel workbook
            cleanup: Delete downloaded packages and unpacked folders afterwards
            log_level: Logging verbosity level
            timestamp: Run timestamp (default: now, TIMESTAMP_FORMAT)
        """
        self.environment_url = environment_url
        self.output_dir = Path(output_dir)
        self.work_dir = self.output_dir / Config.PACKAGE_SUBFOLDER
        self.skip_auth = skip_auth
        self.open_report = open_report
        self.include_excel = include_excel
        self.cleanup = cleanup
        self.timestamp = timestamp or datetime.now().strftime(Config.TIMESTAMP_FORMAT)
        self.logger = Logger(level=log_level)

        self.cli = cli or PowerPlatformCli(
            environment_url, executable=pac_executable, timeout=tool_timeout, logger=self.logger
        )
        self.extractor = DependencyExtractor(self.cli, PathNamer(self.work_dir, self.timestamp), self.logger)
        self.writer = ReportWriter(self.output_dir, self.timestamp, environment_url, self.logger)

        self.apps: List[AppDescriptor] = []
        self.records: List[DependencyRecord] = []
        self.outputs: Dict[str, Path] = {}

    # ═══════════════════════════════════════════════════════════════════════
    # PIPELINE STAGES
    # ═══════════════════════════════════════════════════════════════════════

    def enumerate_apps(self) -> List[AppDescriptor]:
        """Authenticate (unless skipped) and list apps; errors propagate"""
        if not self.skip_auth:
            self.cli.authenticate()
        self.apps = list(self.cli.list_apps())
        return self.apps

    def extract_all(self, apps: List[AppDescriptor]) -> List[DependencyRecord]:
        """One record per app, in enumeration order"""
        self.records = []
        self.work_dir.mkdir(parents=True, exist_ok=True)

        progress = tqdm(apps, desc="Extracting", unit="app",
                        disable=self.logger.level < Config.LOG_LEVEL_INFO or not apps)
        for app in progress:
            progress.set_postfix_str(app.display_name[:30])
            self.records.append(self.extractor.extract(app))

        return self.records

    def write_reports(self) -> Dict[str, Path]:
        self.logger.info("Writing reports...")
        self.outputs = self.writer.write_all(self.records, include_excel=self.include_excel)
        return self.outputs

    def remove_work_files(self) -> None:
        if self.work_dir.exists():
            shutil.rmtree(self.work_dir)
            self.logger.info(f"Removed work folder {self.work_dir}")

    # ═══════════════════════════════════════════════════════════════════════
    # MAIN EXECUTION ORCHESTRATION
    # ═══════════════════════════════════════════════════════════════════════

    def run(self) -> bool:
        """
         Main execution orchestration

        Returns:
            True if reports were written, False on a fatal failure
            (enumeration or report generation). KeyboardInterrupt is
            logged and re-raised.
        """
        try:
            print("\n" + "═"*80)
            print("🚀 STARTING CANVAS APP DEPENDENCY INVENTORY")
            print(f"   Environment: {self.environment_url}")
            print(f"   Output:      {self.output_dir}")
            print("═"*80)

            try:
                apps = self.enumerate_apps()
            except Exception as e:
                self.logger.error(f"App enumeration failed - aborting: {e}", self.environment_url)
                return False

            self.extract_all(apps)
            self.write_reports()

            if self.open_report:
                try:
                    self.writer.open_in_browser(self.outputs['html'])
                except Exception as e:
                    self.logger.warning(f"Could not open report: {e}", str(self.outputs['html']))

            if self.cleanup:
                self.remove_work_files()

            self.print_summary()
            gc.collect()

            print("\n" + "═"*80)
            print(" INVENTORY COMPLETE - SUCCESS")
            print("═"*80)
            return True

        except KeyboardInterrupt:
            self.logger.error("Inventory interrupted by user")
            raise
        except Exception as e:
            self.logger.error(f"Inventory failed: {e}")
            traceback.print_exc()
            return False

    def print_summary(self):
        """
         Print inventory summary
        """
        failed = [r for r in self.records if r.has_errors]

        print("\n" + "="*80)
        print(" CANVAS APP INVENTORY SUMMARY")
        print("="*80)

        print(f"\n📦 APPS:")
        print(f"  • Enumerated: {len(self.apps):,}")
        print(f"  • Recorded: {len(self.records):,}")
        print(f"  • With extraction errors: {len(failed):,}")
        print(f"  • Using component libraries: {sum(1 for r in self.records if r.component_libraries):,}")

        print(f"\n🔗 DEPENDENCIES:")
        print(f"  • Table references: {sum(len(r.tables) for r in self.records):,}")
        print(f"  • Connection references: {sum(len(r.connections) for r in self.records):,}")

        if failed:
            print(f"\n  FAILED APPS:")
            for record in failed[:5]:
                print(f"    • {record.app_name}: {record.other_dependencies[0]}")
            if len(failed) > 5:
                print(f"    ... and {len(failed) - 5} more")

        if self.outputs:
            print(f"\n📁 OUTPUT:")
            for kind, path in self.outputs.items():
                print(f"  • {kind.upper():5} : {path}")

        print("\n" + "="*80 + "\n")
