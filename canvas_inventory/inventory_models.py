"""
Canvas App Inventory - configuration, logging and record types

Shared building blocks used by every stage of the inventory pipeline:

  • Config            : centralized constants (paths, tool timeouts, markers)
  • Logger            : level-filtered console logging with error collection
  • TextSanitizer     : value/sheet-name/file-name sanitization
  • PathNamer         : deterministic, collision-free package/folder names
  • AppDescriptor     : one application as returned by the enumerator
  • TableRef / ConnectionRef / DependencyRecord : the aggregated data model
"""

# ═══════════════════════════════════════════════════════════════════════════
# IMPORTS
# ═══════════════════════════════════════════════════════════════════════════

import json
import re
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, List, Set, Union
from dataclasses import dataclass, field

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURATION & CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

class Config:
    """
     Centralized configuration

    Every value can be overridden from the command line runner; the
    defaults below are what a bare `canvas-inventory` run uses.
    """

    # Target environment & output
    ENVIRONMENT_URL = "https://yourorg.crm.dynamics.com"
    OUTPUT_DIR = "output"
    PACKAGE_SUBFOLDER = "packages"
    REPORT_PREFIX = "CanvasApps_Dependencies"
    TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

    # External tool
    PAC_EXECUTABLE = "pac"
    TOOL_TIMEOUT_SECONDS = 600

    # Unpacked package layout
    CONNECTIONS_MANIFEST = Path("Connections") / "Connections.json"
    DATA_SOURCES_FOLDER = "DataSources"
    COMPONENTS_FOLDER = "Components"
    COMPONENT_FILE_SUFFIXES = (".json", ".yaml")

    # Extraction rules
    TABLE_SOURCE_TYPES = ("NativeCDSDataSourceInfo",)
    COMPONENT_LIBRARY_MARKERS = ("ComponentLibrary", "LibraryUniqueName")

    # Naming
    NAME_FILLER = "_"
    EMPTY_NAME = "app"
    MAX_FILE_STEM_LENGTH = 100

    # Export limits
    JSON_MAX_DEPTH = 10
    LIST_SEPARATOR = "; "
    MAX_EXCEL_CELL_LENGTH = 32767
    MAX_SHEET_NAME_LENGTH = 31
    MAX_COLUMN_WIDTH = 60
    MIN_COLUMN_WIDTH = 10

    # Logging
    LOG_LEVEL_ERROR = 0
    LOG_LEVEL_WARNING = 1
    LOG_LEVEL_INFO = 2
    LOG_LEVEL_DEBUG = 3

# ═══════════════════════════════════════════════════════════════════════════
# UTILITY CLASSES
# ═══════════════════════════════════════════════════════════════════════════

class Logger:
    """
     Simple console logger

    Errors and warnings are kept in memory as well, so the workbook
    export can list them on its Errors sheet.
    """

    def __init__(self, level: int = Config.LOG_LEVEL_INFO):
        self.level = level
        self.errors = []
        self.warnings = []

    def error(self, message: str, context: str = ""):
        """Log error message"""
        self.errors.append(self._entry('ERROR', message, context))
        if self.level >= Config.LOG_LEVEL_ERROR:
            print(f" ERROR: {message}" + (f" (Context: {context})" if context else ""))

    def warning(self, message: str, context: str = ""):
        """Log warning message"""
        self.warnings.append(self._entry('WARNING', message, context))
        if self.level >= Config.LOG_LEVEL_WARNING:
            print(f"  WARNING: {message}" + (f" (Context: {context})" if context else ""))

    def info(self, message: str):
        if self.level >= Config.LOG_LEVEL_INFO:
            print(f"ℹ  {message}")

    def debug(self, message: str):
        if self.level >= Config.LOG_LEVEL_DEBUG:
            print(f" DEBUG: {message}")

    def get_all_logs(self) -> List[Dict]:
        """Get all logged errors and warnings"""
        return self.errors + self.warnings

    @staticmethod
    def _entry(level: str, message: str, context: str) -> Dict[str, str]:
        return {
            'Level': level,
            'Message': message,
            'Context': context,
            'Timestamp': datetime.now().isoformat()
        }

class TextSanitizer:
    """
     Centralized text sanitization for exports

    Handles:
    - None values
    - Complex objects (dict/list)
    - Illegal XML characters (Excel rejects them)
    - Excel sheet-name restrictions
    - File-system safe names (allow-list)
    """

    ILLEGAL_CHARS_PATTERN = re.compile(r'[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F-\x9F]')
    UNSAFE_NAME_PATTERN = re.compile(r'[^A-Za-z0-9]')

    @staticmethod
    def sanitize_value(value: Any, max_length: int = None) -> str:
        """
        Sanitize any value for a spreadsheet cell

        Args:
            value: Any value to sanitize
            max_length: Maximum length (default: MAX_EXCEL_CELL_LENGTH)

        Returns:
            Sanitized single-line string
        """
        if max_length is None:
            max_length = Config.MAX_EXCEL_CELL_LENGTH

        if value is None:
            return ''

        if isinstance(value, (dict, list)):
            text = json.dumps(value, default=str, ensure_ascii=False)
        else:
            text = str(value)

        text = TextSanitizer.ILLEGAL_CHARS_PATTERN.sub(' ', text[:max_length])
        text = re.sub(r'\s+', ' ', text).strip()
        return text[:max_length]

    @staticmethod
    def sanitize_sheet_name(name: str) -> str:
        """
        Sanitize sheet name for Excel compatibility

        Excel restrictions:
        - Max 31 characters
        - No \\ / ? * : [ ]
        - Cannot be empty or 'History'
        - Cannot start/end with apostrophe
        """
        if not name:
            return 'Sheet1'

        for char in ['\\', '/', '?', '*', ':', '[', ']']:
            name = name.replace(char, '_')

        name = name.strip("' ")[:Config.MAX_SHEET_NAME_LENGTH]

        if not name:
            return 'Sheet1'
        if name.lower() == 'history':
            return 'History_'
        return name

    @staticmethod
    def safe_file_stem(name: str) -> str:
        """
        Allow-list filter for file names

        Every character outside [A-Za-z0-9] becomes the filler character,
        so the same display name always maps to the same stem.
        Long names are cut to MAX_FILE_STEM_LENGTH.
        """
        stem = TextSanitizer.UNSAFE_NAME_PATTERN.sub(Config.NAME_FILLER, name or '')
        stem = stem[:Config.MAX_FILE_STEM_LENGTH]
        return stem or Config.EMPTY_NAME

    @staticmethod
    def bound_depth(value: Any, max_depth: int = Config.JSON_MAX_DEPTH, _depth: int = 0) -> Any:
        """
        Copy a JSON-compatible value, stringifying anything nested deeper
        than max_depth levels.
        """
        if isinstance(value, dict):
            if _depth >= max_depth:
                return json.dumps(value, default=str, ensure_ascii=False)
            return {str(k): TextSanitizer.bound_depth(v, max_depth, _depth + 1) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            if _depth >= max_depth:
                return json.dumps(list(value), default=str, ensure_ascii=False)
            return [TextSanitizer.bound_depth(v, max_depth, _depth + 1) for v in value]
        if value is None or isinstance(value, (str, int, float, bool)):
            return value
        return str(value)

class PathNamer:
    """
     Deterministic, collision-free names for downloaded packages

    The same display name and run timestamp always produce the same base
    name. When a base name was already handed out during this run, or the
    package file / unpack folder already exists on disk, a numeric suffix
    is appended (name, name_2, name_3, ...).
    """

    PACKAGE_SUFFIX = ".msapp"

    def __init__(self, work_dir: Union[str, Path], timestamp: str):
        self.work_dir = Path(work_dir)
        self.timestamp = timestamp
        self._used_names: Set[str] = set()

    def reserve(self, display_name: str) -> Dict[str, Path]:
        """
        Reserve package and unpack paths for one application

        Returns:
            {'package': <work_dir>/<stem>_<ts>.msapp, 'folder': <work_dir>/<stem>_<ts>}
        """
        base = f"{TextSanitizer.safe_file_stem(display_name)}_{self.timestamp}"

        candidate = base
        counter = 2
        while self._is_taken(candidate):
            candidate = f"{base}_{counter}"
            counter += 1

        self._used_names.add(candidate)
        return {
            'package': self.work_dir / f"{candidate}{self.PACKAGE_SUFFIX}",
            'folder': self.work_dir / candidate,
        }

    def _is_taken(self, name: str) -> bool:
        if name in self._used_names:
            return True
        return (self.work_dir / f"{name}{self.PACKAGE_SUFFIX}").exists() or (self.work_dir / name).exists()

# ═══════════════════════════════════════════════════════════════════════════
# RECORD TYPES
# ═══════════════════════════════════════════════════════════════════════════

def _lookup(raw: Dict[str, Any], *paths: str) -> Any:
    """First non-empty value among dot-separated paths, else None"""
    for path in paths:
        current = raw
        for key in path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                current = None
                break
        if current not in (None, ''):
            return current
    return None

def _text(value: Any) -> str:
    return '' if value is None else str(value)

@dataclass(frozen=True)
class AppDescriptor:
    """
     One canvas app as listed by the enumerator

    Missing fields default to "" (environment falls back to the
    environment the listing was requested for).
    """
    display_name: str = ""
    app_id: str = ""
    environment: str = ""
    created_time: str = ""
    last_modified_time: str = ""
    owner: str = ""

    @classmethod
    def from_tool_output(cls, raw: Dict[str, Any], default_environment: str = "") -> 'AppDescriptor':
        """Build a descriptor from one listing entry, tolerating PascalCase and nested properties"""
        if not isinstance(raw, dict):
            raw = {}
        return cls(
            display_name=_text(_lookup(raw, 'displayName', 'DisplayName', 'properties.displayName')),
            app_id=_text(_lookup(raw, 'name', 'AppName', 'appId', 'id', 'AppId')),
            environment=_text(
                _lookup(raw, 'environmentName', 'EnvironmentName', 'properties.environment.name')
                or default_environment
            ),
            created_time=_text(_lookup(raw, 'createdTime', 'CreatedTime', 'properties.createdTime')),
            last_modified_time=_text(
                _lookup(raw, 'lastModifiedTime', 'LastModifiedTime', 'properties.lastModifiedTime')
            ),
            owner=_text(_lookup(raw, 'owner.email', 'Owner.email', 'properties.owner.email')),
        )

@dataclass
class TableRef:
    """A data table the app reads or writes"""
    name: str = ""
    table_name: str = ""
    entity_set_name: str = ""
    type: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            'name': self.name,
            'tableName': self.table_name,
            'entitySetName': self.entity_set_name,
            'type': self.type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TableRef':
        return cls(
            name=_text(data.get('name')),
            table_name=_text(data.get('tableName')),
            entity_set_name=_text(data.get('entitySetName')),
            type=_text(data.get('type')),
        )

@dataclass
class ConnectionRef:
    """A configured connection the app uses"""
    name: str = ""
    type: str = ""
    display_name: str = ""

    @property
    def label(self) -> str:
        return self.display_name or self.name

    def to_dict(self) -> Dict[str, str]:
        return {
            'name': self.name,
            'type': self.type,
            'displayName': self.display_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConnectionRef':
        return cls(
            name=_text(data.get('name')),
            type=_text(data.get('type')),
            display_name=_text(data.get('displayName')),
        )

@dataclass
class DependencyRecord:
    """
     Dependencies of one canvas app

    Identity and metadata fields are set once from the AppDescriptor;
    the lists are only appended to while the app is being extracted.
    flows, custom_connectors and environment_variables are declared for
    completeness but are never populated.
    """
    app_name: str
    app_id: str
    environment: str
    created_time: str = ""
    last_modified_time: str = ""
    owner: str = ""
    tables: List[TableRef] = field(default_factory=list)
    connections: List[ConnectionRef] = field(default_factory=list)
    flows: List[Any] = field(default_factory=list)
    custom_connectors: List[Any] = field(default_factory=list)
    component_libraries: List[Any] = field(default_factory=list)
    environment_variables: List[Any] = field(default_factory=list)
    other_dependencies: List[Any] = field(default_factory=list)

    @classmethod
    def from_descriptor(cls, app: AppDescriptor) -> 'DependencyRecord':
        return cls(
            app_name=app.display_name,
            app_id=app.app_id,
            environment=app.environment,
            created_time=app.created_time,
            last_modified_time=app.last_modified_time,
            owner=app.owner,
        )

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    @property
    def connection_names(self) -> List[str]:
        return [c.label for c in self.connections]

    @property
    def has_errors(self) -> bool:
        return bool(self.other_dependencies)

    def to_dict(self) -> Dict[str, Any]:
        """Full nested form used by the JSON export"""
        return {
            'appName': self.app_name,
            'appId': self.app_id,
            'environment': self.environment,
            'createdTime': self.created_time,
            'lastModifiedTime': self.last_modified_time,
            'owner': self.owner,
            'tables': [t.to_dict() for t in self.tables],
            'connections': [c.to_dict() for c in self.connections],
            'flows': list(self.flows),
            'customConnectors': list(self.custom_connectors),
            'componentLibraries': list(self.component_libraries),
            'environmentVariables': list(self.environment_variables),
            'otherDependencies': list(self.other_dependencies),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DependencyRecord':
        """Inverse of to_dict (reads a JSON export back)"""
        return cls(
            app_name=_text(data.get('appName')),
            app_id=_text(data.get('appId')),
            environment=_text(data.get('environment')),
            created_time=_text(data.get('createdTime')),
            last_modified_time=_text(data.get('lastModifiedTime')),
            owner=_text(data.get('owner')),
            tables=[TableRef.from_dict(t) for t in data.get('tables') or []],
            connections=[ConnectionRef.from_dict(c) for c in data.get('connections') or []],
            flows=list(data.get('flows') or []),
            custom_connectors=list(data.get('customConnectors') or []),
            component_libraries=list(data.get('componentLibraries') or []),
            environment_variables=list(data.get('environmentVariables') or []),
            other_dependencies=list(data.get('otherDependencies') or []),
        )

    def to_row(self) -> Dict[str, Any]:
        """Flat row for the CSV export and the Apps sheet"""
        sep = Config.LIST_SEPARATOR
        return {
            'App Name': self.app_name,
            'App ID': self.app_id,
            'Environment': self.environment,
            'Owner': self.owner,
            'Created Time': self.created_time,
            'Last Modified Time': self.last_modified_time,
            'Tables Count': len(self.tables),
            'Tables': sep.join(self.table_names),
            'Connections Count': len(self.connections),
            'Connections': sep.join(self.connection_names),
            'Component Libraries Count': len(self.component_libraries),
            'Other Dependencies': sep.join(TextSanitizer.sanitize_value(d) for d in self.other_dependencies),
        }

TABULAR_COLUMNS = [
    'App Name', 'App ID', 'Environment', 'Owner', 'Created Time', 'Last Modified Time',
    'Tables Count', 'Tables', 'Connections Count', 'Connections',
    'Component Libraries Count', 'Other Dependencies',
]
