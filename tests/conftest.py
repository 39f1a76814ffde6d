"""
Shared fixtures: a fake pac CLI and helpers that lay out unpacked app sources.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from canvas_inventory.inventory_models import AppDescriptor, Config, Logger
from canvas_inventory.pac_client import PacCliError

def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path

def connection_entry(conn_id: str, display_name: str, api: str, data_sources: Optional[List[Any]] = None) -> Dict:
    return {
        "id": conn_id,
        "connectionRef": {
            "displayName": display_name,
            "id": f"/providers/microsoft.powerapps/apis/{api}",
        },
        "dataSources": data_sources if data_sources is not None else ["Source1"],
    }

def table_source(name: str, logical: str, entity_set: str) -> Dict:
    return {
        "Name": name,
        "Type": "NativeCDSDataSourceInfo",
        "TableLogicalName": logical,
        "EntitySetName": entity_set,
    }

def build_sources(folder: Path, layout: Dict[str, Any]) -> None:
    """
    Lay out an unpacked app:
      layout['connections'] -> Connections/Connections.json
      layout['data_sources'] -> {file_name: content} under DataSources/
      layout['components'] -> {relative path: text}
    """
    folder.mkdir(parents=True, exist_ok=True)
    if "connections" in layout:
        write_json(folder / Config.CONNECTIONS_MANIFEST, layout["connections"])
    for file_name, content in layout.get("data_sources", {}).items():
        write_json(folder / Config.DATA_SOURCES_FOLDER / file_name, content)
    for relative, text in layout.get("components", {}).items():
        target = folder / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")

class FakeCli:
    """Stands in for PowerPlatformCli; layouts are keyed by app id"""

    def __init__(self, apps: List[AppDescriptor], layouts: Optional[Dict[str, Dict]] = None,
                 failing_downloads: Optional[Dict[str, str]] = None, list_error: Optional[Exception] = None):
        self.apps = apps
        self.layouts = layouts or {}
        self.failing_downloads = failing_downloads or {}
        self.list_error = list_error
        self.authenticated = False
        self.downloads = []
        self._package_ids = {}

    def authenticate(self):
        self.authenticated = True

    def list_apps(self):
        if self.list_error:
            raise self.list_error
        return list(self.apps)

    def download_app(self, app_id, package_path):
        if app_id in self.failing_downloads:
            raise PacCliError(self.failing_downloads[app_id])
        package_path = Path(package_path)
        package_path.parent.mkdir(parents=True, exist_ok=True)
        package_path.write_bytes(b"PK\x03\x04")
        self.downloads.append(package_path)
        self._package_ids[package_path] = app_id
        return package_path

    def unpack_app(self, package_path, folder):
        folder = Path(folder)
        build_sources(folder, self.layouts.get(self._package_ids[Path(package_path)], {}))
        return folder

@pytest.fixture
def quiet_logger():
    return Logger(level=Config.LOG_LEVEL_ERROR)

@pytest.fixture
def sample_apps():
    return [
        AppDescriptor(display_name="Expense Tracker", app_id="app-1", environment="Default-123",
                      created_time="2024-01-02T10:00:00Z", last_modified_time="2024-03-04T11:00:00Z",
                      owner="alice@contoso.com"),
        AppDescriptor(display_name="Field Service / Mobile", app_id="app-2", environment="Default-123",
                      created_time="2024-02-01T09:00:00Z", last_modified_time="2024-02-15T09:30:00Z",
                      owner="bob@contoso.com"),
        AppDescriptor(display_name="Help Desk", app_id="app-3", environment="Default-123",
                      created_time="2023-11-20T08:00:00Z", last_modified_time="2024-01-10T08:00:00Z",
                      owner="carol@contoso.com"),
    ]

@pytest.fixture
def sample_layouts():
    return {
        "app-1": {
            "connections": {
                "c1": connection_entry("c1", "Microsoft Dataverse", "shared_commondataserviceforapps"),
                "c2": connection_entry("c2", "Office 365 Users", "shared_office365users"),
            },
            "data_sources": {
                "Expenses.json": table_source("Expenses", "cr123_expense", "cr123_expenses"),
                "Users.json": {"Name": "Office365Users", "Type": "ServiceInfo"},
            },
            "components": {
                "Src/Components/Header.fx.yaml": "Header As CanvasComponent:\n    ComponentLibrary: Corp Library\n",
            },
        },
        "app-2": {
            "connections": {
                "c3": connection_entry("c3", "SQL Server", "shared_sql"),
            },
            "data_sources": {
                "Accounts.json": table_source("Accounts", "account", "accounts"),
                "Contacts.json": table_source("Contacts", "contact", "contacts"),
            },
        },
        "app-3": {},
    }
