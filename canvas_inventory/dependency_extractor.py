"""
Dependency extraction for one canvas app

Downloads and unpacks the app package, then reads the unpacked source
layout:

  Connections/Connections.json   -> ConnectionRef per manifest entry
  DataSources/*.json             -> TableRef per table-typed data source
  **/Components/*.json|*.yaml    -> note per component-library reference
"""

import json
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

from .inventory_models import (
    AppDescriptor, Config, ConnectionRef, DependencyRecord, Logger, PathNamer, TableRef
)

class DependencyExtractor:
    """
     Per-app extraction step

    Any failure while handling one app (download, unpack, unreadable or
    malformed files) is recorded on that app's record instead of being
    raised, so the record is always returned.
    """

    def __init__(self, cli, namer: PathNamer, logger: Optional[Logger] = None):
        self.cli = cli
        self.namer = namer
        self.logger = logger or Logger()

    def extract(self, app: AppDescriptor) -> DependencyRecord:
        """
        Produce the DependencyRecord for one app

        Args:
            app: Descriptor from the enumerator

        Returns:
            Populated record, or a record whose other_dependencies holds
            the failure message
        """
        record = DependencyRecord.from_descriptor(app)

        try:
            paths = self.namer.reserve(app.display_name)

            self.logger.debug(f"Downloading {app.display_name} -> {paths['package']}")
            package = self.cli.download_app(app.app_id, paths['package'])

            self.logger.debug(f"Unpacking {package.name} -> {paths['folder']}")
            folder = self.cli.unpack_app(package, paths['folder'])

            self.extract_connections(folder, record)
            self.extract_tables(folder, record)
            self.extract_component_libraries(folder, record)

        except Exception as e:
            message = f"Extraction failed: {e}"
            record.other_dependencies.append(message)
            self.logger.warning(message, app.display_name or app.app_id)

        return record

    # ═══════════════════════════════════════════════════════════════════════
    # CONNECTIONS
    # ═══════════════════════════════════════════════════════════════════════

    def extract_connections(self, folder: Path, record: DependencyRecord) -> None:
        """Append one ConnectionRef per manifest entry, in manifest order"""
        manifest = Path(folder) / Config.CONNECTIONS_MANIFEST
        if not manifest.is_file():
            self.logger.debug(f"No connections manifest in {folder}")
            return

        data = _read_json(manifest)

        for key, entry in _manifest_entries(data):
            record.connections.append(self.parse_connection(key, entry))

    @staticmethod
    def parse_connection(key: str, entry: Any) -> ConnectionRef:
        """
        Map one manifest entry to a ConnectionRef

        type is the first declared data source's type tag. Data sources
        declared by name only carry no tag, so the connector API name at
        the end of connectionRef.id (e.g. shared_sql) is used instead.
        """
        if not isinstance(entry, dict):
            entry = {}

        connection_ref = entry.get('connectionRef')
        if not isinstance(connection_ref, dict):
            connection_ref = {}

        api_name = str(connection_ref.get('id') or '').rstrip('/').split('/')[-1]

        data_sources = entry.get('dataSources') or []
        first = data_sources[0] if isinstance(data_sources, list) and data_sources else None

        if isinstance(first, dict):
            source_type = str(first.get('type') or first.get('Type') or api_name)
        elif first is not None:
            source_type = api_name or str(first)
        else:
            source_type = api_name

        return ConnectionRef(
            name=str(entry.get('id') or key or ''),
            type=source_type,
            display_name=str(connection_ref.get('displayName') or entry.get('displayName') or ''),
        )

    # ═══════════════════════════════════════════════════════════════════════
    # TABLES
    # ═══════════════════════════════════════════════════════════════════════

    def extract_tables(self, folder: Path, record: DependencyRecord) -> None:
        """Append a TableRef for every table-typed data source description"""
        sources_dir = Path(folder) / Config.DATA_SOURCES_FOLDER
        if not sources_dir.is_dir():
            self.logger.debug(f"No {Config.DATA_SOURCES_FOLDER} folder in {folder}")
            return

        for source_file in sorted(sources_dir.glob('*.json')):
            data = _read_json(source_file)
            sources = data if isinstance(data, list) else [data]

            for source in sources:
                if isinstance(source, dict) and source.get('Type') in Config.TABLE_SOURCE_TYPES:
                    record.tables.append(TableRef(
                        name=str(source.get('Name') or ''),
                        table_name=str(source.get('TableLogicalName') or source.get('LogicalName') or ''),
                        entity_set_name=str(source.get('EntitySetName') or ''),
                        type=str(source.get('Type') or ''),
                    ))

    # ═══════════════════════════════════════════════════════════════════════
    # COMPONENT LIBRARIES
    # ═══════════════════════════════════════════════════════════════════════

    def extract_component_libraries(self, folder: Path, record: DependencyRecord) -> None:
        """
        Note component files that reference a component library

        Only the presence of a reference is recorded; the reference itself
        is not parsed.
        """
        folder = Path(folder)

        for component_file in _component_files(folder):
            text = component_file.read_text(encoding='utf-8', errors='replace')
            if any(marker in text for marker in Config.COMPONENT_LIBRARY_MARKERS):
                relative = component_file.relative_to(folder).as_posix()
                record.component_libraries.append(f"Component library reference: {relative}")

# ═══════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def _read_json(path: Path) -> Any:
    # utf-8-sig: unpacked sources are sometimes written with a BOM
    with open(path, 'r', encoding='utf-8-sig') as f:
        return json.load(f)

def _manifest_entries(data: Any) -> List[Tuple[str, Any]]:
    if isinstance(data, dict):
        return list(data.items())
    if isinstance(data, list):
        return [('', entry) for entry in data]
    return []

def _component_files(folder: Path) -> Iterator[Path]:
    for path in sorted(folder.rglob('*')):
        if (path.is_file()
                and path.suffix.lower() in Config.COMPONENT_FILE_SUFFIXES
                and Config.COMPONENTS_FOLDER in path.relative_to(folder).parts[:-1]):
            yield path
