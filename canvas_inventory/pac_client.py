"""Power Platform CLI wrapper - authentication, app listing, package download and unpack"""

import json
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Union

from .inventory_models import AppDescriptor, Config, Logger

class PacCliError(RuntimeError):
    """A pac invocation failed (non-zero exit, missing executable or timeout)"""

    def __init__(self, message: str, command: Optional[List[str]] = None, stderr: str = ""):
        super().__init__(message)
        self.command = command or []
        self.stderr = stderr

class PowerPlatformCli:
    """
     Thin wrapper around the `pac` command-line tool

    Commands are run as argument lists (no shell). `runner` defaults to
    subprocess.run and is swapped out in tests.
    """

    def __init__(self, environment_url: str,
                 executable: str = Config.PAC_EXECUTABLE,
                 timeout: Optional[int] = Config.TOOL_TIMEOUT_SECONDS,
                 logger: Optional[Logger] = None,
                 runner: Callable[..., subprocess.CompletedProcess] = subprocess.run):
        self.environment_url = environment_url
        self.executable = executable
        self.timeout = timeout
        self.logger = logger or Logger()
        self._runner = runner

    # ═══════════════════════════════════════════════════════════════════════
    # COMMANDS
    # ═══════════════════════════════════════════════════════════════════════

    def authenticate(self) -> None:
        """Create (or refresh) an auth profile for the target environment"""
        self.logger.info(f"Authenticating to {self.environment_url}")
        self._run(['auth', 'create', '--environment', self.environment_url])

    def list_apps(self) -> List[AppDescriptor]:
        """
        List canvas apps in the environment

        The tool's JSON output may be a bare list or an object wrapping the
        list under 'value' or 'apps'. Entries are mapped best-effort; see
        AppDescriptor.from_tool_output for the per-field defaults.
        """
        output = self._run(['canvas', 'list', '--environment', self.environment_url, '--json'])

        try:
            payload = json.loads(output) if output.strip() else []
        except json.JSONDecodeError as e:
            raise PacCliError(f"App listing is not valid JSON: {e.msg} (line {e.lineno})") from e

        if isinstance(payload, dict):
            payload = payload.get('value', payload.get('apps', []))
        if not isinstance(payload, list):
            raise PacCliError(f"Unexpected app listing shape: {type(payload).__name__}")

        apps = [AppDescriptor.from_tool_output(raw, self.environment_url) for raw in payload]
        self.logger.info(f"Found {len(apps):,} canvas apps")
        return apps

    def download_app(self, app_id: str, package_path: Union[str, Path]) -> Path:
        """Download one app's .msapp package to package_path"""
        package_path = Path(package_path)
        package_path.parent.mkdir(parents=True, exist_ok=True)
        self._run([
            'canvas', 'download',
            '--name', app_id,
            '--environment', self.environment_url,
            '--file-name', str(package_path),
        ])
        if not package_path.exists():
            raise PacCliError(f"Download reported success but no package at {package_path}")
        return package_path

    def unpack_app(self, package_path: Union[str, Path], folder: Union[str, Path]) -> Path:
        """Expand a .msapp package into source folder layout"""
        folder = Path(folder)
        self._run(['canvas', 'unpack', '--msapp', str(package_path), '--sources', str(folder)])
        return folder

    # ═══════════════════════════════════════════════════════════════════════
    # PROCESS EXECUTION
    # ═══════════════════════════════════════════════════════════════════════

    def _run(self, args: List[str]) -> str:
        command = [self.executable] + args
        self.logger.debug(f"Running: {' '.join(command)}")

        try:
            completed = self._runner(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise PacCliError(f"'{self.executable}' not found - install the Power Platform CLI", command) from e
        except subprocess.TimeoutExpired as e:
            raise PacCliError(f"'{' '.join(command[:3])}' timed out after {self.timeout}s", command) from e

        if completed.returncode != 0:
            stderr = (completed.stderr or completed.stdout or '').strip()
            raise PacCliError(
                f"'{' '.join(command[:3])}' exited with code {completed.returncode}: {stderr}",
                command,
                stderr,
            )

        return completed.stdout or ''
