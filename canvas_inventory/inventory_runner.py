"""
inventory_runner.py

Command-line entry point for the canvas app dependency inventory.
"""

import sys
import argparse
from typing import List, Optional

from .inventory_analyzer import CanvasAppInventory
from .inventory_models import Config

def parse_args(argv: List[str]) -> argparse.Namespace:
    """Parse CLI arguments.

    Flags:
      --environment <url>   Environment to inventory
      --output <path>       Output directory for reports and packages
      --pac-path <path>     pac executable
      --timeout <seconds>   Per-command timeout for pac (0 disables)
      --skip-auth           Reuse the currently selected pac auth profile
      --no-open             Do not open the HTML report
      --no-excel            Skip the Excel workbook
      --cleanup             Remove downloaded packages after the run
      --debug / --quiet     Logging verbosity

    Returns argparse.Namespace with parsed values.
    """
    parser = argparse.ArgumentParser(
        prog="canvas-inventory",
        description="Inventory canvas app dependencies (tables, connections, component libraries) "
                    "in a Power Platform environment",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--environment", default=Config.ENVIRONMENT_URL, help="Environment URL")
    parser.add_argument("--output", default=Config.OUTPUT_DIR, help="Output directory (created if missing)")
    parser.add_argument("--pac-path", default=Config.PAC_EXECUTABLE, help="Power Platform CLI executable")
    parser.add_argument("--timeout", type=int, default=Config.TOOL_TIMEOUT_SECONDS,
                        help="Timeout in seconds for each pac command (0 = no timeout)")
    parser.add_argument("--skip-auth", action="store_true", help="Do not run 'pac auth create' first")
    parser.add_argument("--no-open", action="store_true", help="Do not open the HTML report when done")
    parser.add_argument("--no-excel", action="store_true", help="Do not write the Excel workbook")
    parser.add_argument("--cleanup", action="store_true", help="Delete downloaded packages and unpacked folders")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--debug", action="store_true", help="Enable debug logging")
    verbosity.add_argument("--quiet", action="store_true", help="Only print warnings and errors")

    return parser.parse_args(argv)

def build_inventory(args: argparse.Namespace) -> CanvasAppInventory:
    if args.debug:
        log_level = Config.LOG_LEVEL_DEBUG
    elif args.quiet:
        log_level = Config.LOG_LEVEL_WARNING
    else:
        log_level = Config.LOG_LEVEL_INFO

    return CanvasAppInventory(
        environment_url=args.environment,
        output_dir=args.output,
        pac_executable=args.pac_path,
        tool_timeout=args.timeout or None,
        skip_auth=args.skip_auth,
        open_report=not args.no_open,
        include_excel=not args.no_excel,
        cleanup=args.cleanup,
        log_level=log_level,
    )

def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = parse_args(sys.argv[1:] if argv is None else argv)

    try:
        inventory = build_inventory(args)
        success = inventory.run()
    except KeyboardInterrupt:
        print(f"\n\n  Inventory interrupted by user")
        sys.exit(130)

    if success:
        print(f"\n SUCCESS: Inventory complete!")
        print(f"   Reports written to: {args.output}")
        sys.exit(0)

    print(f"\n FAILED: Inventory did not complete")
    print(f"  Check console output above for details")
    sys.exit(1)

if __name__ == "__main__":
    main()
