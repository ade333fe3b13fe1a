"""Query job state from Veeam Backup & Replication.

The classifier only depends on the :class:`JobQuery` protocol: something that
returns CSV text for a category or raises :class:`QueryError`. The production
implementation runs a PowerShell script against the Veeam PowerShell module.
"""

from __future__ import annotations

import logging
import subprocess
from typing import NamedTuple
from typing import Protocol

from veeam_monitor.config import MonitorConfig
from veeam_monitor.models import Category

logger = logging.getLogger(__name__)

POWERSHELL_EXECUTABLE = "powershell"


class QueryError(Exception):
    """The backup server could not be queried."""


class JobQuery(Protocol):
    def fetch(self, category: Category, config: MonitorConfig) -> str:
        """Return header + data rows for ``category`` or raise QueryError."""
        ...


class CommandResult(NamedTuple):
    """Result of a PowerShell invocation."""

    success: bool
    output: str
    returncode: int


def _ps_quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


_CONNECT = """
Import-Module {module}
$server = {server}
if ($server -ne '') {{
    Connect-VBRServer -Server $server | Out-Null
}}
"""

_DISCONNECT = """
if ($server -ne '') {{
    Disconnect-VBRServer
}}
"""

_STATUS_SELECT = """
Get-VBRJob | Where-Object {{ $_.LastResult -eq {status} }} |
    Select-Object Name,LastResult,LastStart,LastEnd,Description |
    ConvertTo-Csv -NoTypeInformation
"""

# Elapsed minutes go in the sixth column; the threshold is applied by the caller.
_RUNNING_SELECT = """
Get-VBRJob | Where-Object { $_.IsRunning -eq $true } |
    Select-Object Name,
        @{Name="Status";Expression={"Running"}},
        @{Name="StartTime";Expression={$_.FindLastSession().CreationTime}},
        @{Name="EndTime";Expression={"N/A"}},
        @{Name="Description";Expression={"Currently running"}},
        @{Name="Duration";Expression={((Get-Date) - $_.FindLastSession().CreationTime).TotalMinutes}} |
    ConvertTo-Csv -NoTypeInformation
"""


def build_script(category: Category, config: MonitorConfig) -> str:
    """Build the PowerShell script that prints CSV rows for ``category``."""
    if category is Category.LONG_RUNNING:
        select = _RUNNING_SELECT
    else:
        select = _STATUS_SELECT.format(status=_ps_quote(category.state.value))

    connect = _CONNECT.format(
        module=_ps_quote(config.veeam_powershell_module),
        server=_ps_quote(config.veeam_server_address),
    )
    return connect + select + _DISCONNECT.format()


def run_powershell(script: str, *, executable: str = POWERSHELL_EXECUTABLE) -> CommandResult:
    """
    Run a PowerShell script and capture its combined output.

    No timeout is applied: the call blocks until PowerShell exits. Output is
    decoded with the locale codec; undecodable bytes are replaced.

    Returns:
        CommandResult with success status, stdout+stderr, and returncode.
        A missing executable is reported as returncode -1.
    """
    command = [executable, "-NoProfile", "-NonInteractive", "-Command", script]
    try:
        result = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError as e:
        logger.error("Failed to start %s: %s", executable, e)
        return CommandResult(success=False, output=str(e), returncode=-1)

    return CommandResult(
        success=result.returncode == 0,
        output=result.stdout or "",
        returncode=result.returncode,
    )


class PowerShellQuery:
    """Query Veeam through the Veeam PowerShell module."""

    def __init__(self, executable: str = POWERSHELL_EXECUTABLE, logger: logging.Logger | None = None):
        self.executable = executable
        self.logger = logger or logging.getLogger(__name__)

    def fetch(self, category: Category, config: MonitorConfig) -> str:
        script = build_script(category, config)
        self.logger.debug("Querying %s jobs on %s", category.label, config.veeam_server_address or "localhost")

        try:
            result = run_powershell(script, executable=self.executable)
        except Exception as e:
            raise QueryError(f"failed to run PowerShell for {category.label} jobs: {e}") from e

        if not result.success:
            raise QueryError(
                f"failed to execute PowerShell command for {category.label} jobs "
                f"(rc={result.returncode}): {result.output.strip()[:200]}"
            )
        return result.output
