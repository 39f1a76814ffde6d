"""Canvas app dependency inventory for Power Platform environments"""

from .inventory_models import (
    AppDescriptor, Config, ConnectionRef, DependencyRecord, Logger, PathNamer, TableRef
)
from .pac_client import PacCliError, PowerPlatformCli
from .dependency_extractor import DependencyExtractor
from .report_writer import ReportWriter
from .inventory_analyzer import CanvasAppInventory

__version__ = "1.0.0"

__all__ = [
    "AppDescriptor", "Config", "ConnectionRef", "DependencyRecord", "Logger", "PathNamer", "TableRef",
    "PacCliError", "PowerPlatformCli", "DependencyExtractor", "ReportWriter", "CanvasAppInventory",
]
