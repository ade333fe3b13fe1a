"""Configuration loading for veeam-monitor.

Settings are read once at startup from a JSON file using the camelCase keys of
the ``config.json`` format::

    {
        "veeamServerAddress": "vbr01.example.com",
        "checkIntervalMinutes": 15,
        "smtpServer": "mail.example.com",
        "smtpPort": 25,
        "emailFrom": "veeam@example.com",
        "emailTo": ["ops@example.com"],
        "monitorFailedJobs": true,
        "monitorWarningJobs": true,
        "monitorRunningJobs": true,
        "longRunningThreshold": 120
    }

Precedence: defaults < file < env vars < CLI args
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator
from pydantic import model_validator

from veeam_monitor.models import Category

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.json")
DEFAULT_POWERSHELL_MODULE = "Veeam.Backup.PowerShell"
DEFAULT_INTERVAL_MINUTES = 15
DEFAULT_SMTP_PORT = 25
DEFAULT_LONG_RUNNING_THRESHOLD = 120

# env var -> (config alias, is list)
_ENV_OVERRIDES: dict[str, tuple[str, bool]] = {
    "VEEAM_SERVER": ("veeamServerAddress", False),
    "VEEAM_POWERSHELL_MODULE": ("veeamPowerShellModule", False),
    "SMTP_SERVER": ("smtpServer", False),
    "SMTP_PORT": ("smtpPort", False),
    "EMAIL_FROM": ("emailFrom", False),
    "EMAIL_TO": ("emailTo", True),
    "EMAIL_PASSWORD": ("emailPassword", False),
}

# (field name, alias, default) of the per-category switches
_CATEGORY_TOGGLES = (
    ("monitor_failed_jobs", "monitorFailedJobs", True),
    ("monitor_warning_jobs", "monitorWarningJobs", False),
    ("monitor_running_jobs", "monitorRunningJobs", False),
)


class MonitorConfig(BaseModel):
    """Process-wide monitor settings. Immutable once loaded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    veeam_powershell_module: str = Field(default=DEFAULT_POWERSHELL_MODULE, alias="veeamPowerShellModule")
    veeam_server_address: str = Field(default="", alias="veeamServerAddress")
    check_interval_minutes: int = Field(default=DEFAULT_INTERVAL_MINUTES, alias="checkIntervalMinutes")
    smtp_server: str = Field(default="", alias="smtpServer")
    smtp_port: int = Field(default=DEFAULT_SMTP_PORT, ge=1, le=65535, alias="smtpPort")
    email_from: str = Field(default="", alias="emailFrom")
    email_to: tuple[str, ...] = Field(default=(), alias="emailTo")
    email_password: str = Field(default="", alias="emailPassword", repr=False)
    monitor_failed_jobs: bool = Field(default=True, alias="monitorFailedJobs")
    monitor_warning_jobs: bool = Field(default=False, alias="monitorWarningJobs")
    monitor_running_jobs: bool = Field(default=False, alias="monitorRunningJobs")
    long_running_threshold: int = Field(default=DEFAULT_LONG_RUNNING_THRESHOLD, alias="longRunningThreshold")

    @field_validator("check_interval_minutes")
    @classmethod
    def _clamp_interval(cls, value: int) -> int:
        if value < 1:
            logger.warning(
                "Check interval is less than 1 minute, setting to default of %d minutes",
                DEFAULT_INTERVAL_MINUTES,
            )
            return DEFAULT_INTERVAL_MINUTES
        return value

    @field_validator("long_running_threshold")
    @classmethod
    def _clamp_threshold(cls, value: int) -> int:
        if value < 1:
            logger.warning(
                "Long running threshold not set, defaulting to %d minutes",
                DEFAULT_LONG_RUNNING_THRESHOLD,
            )
            return DEFAULT_LONG_RUNNING_THRESHOLD
        return value

    @field_validator("email_to", mode="before")
    @classmethod
    def _split_recipients(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(addr.strip() for addr in value.split(",") if addr.strip())
        return value

    @model_validator(mode="before")
    @classmethod
    def _require_category(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if any(data.get(alias, data.get(name, default)) for name, alias, default in _CATEGORY_TOGGLES):
            return data
        logger.warning("No monitoring options enabled, enabling failed job monitoring by default")
        data = {key: value for key, value in data.items() if key != "monitor_failed_jobs"}
        data["monitorFailedJobs"] = True
        return data

    @property
    def enabled_categories(self) -> list[Category]:
        """Enabled categories, in check order."""
        toggles = {
            Category.FAILED: self.monitor_failed_jobs,
            Category.WARNING: self.monitor_warning_jobs,
            Category.LONG_RUNNING: self.monitor_running_jobs,
        }
        return [category for category in Category if toggles[category]]

    @property
    def email_configured(self) -> bool:
        return bool(self.smtp_server and self.email_from and self.email_to)

    @property
    def check_interval_seconds(self) -> int:
        return self.check_interval_minutes * 60


@dataclass
class LoadedConfig:
    """Effective configuration plus where each value came from."""

    config: MonitorConfig
    path: Path
    sources: dict[str, str] = field(default_factory=dict)

    def source_of(self, alias: str) -> str:
        return self.sources.get(alias, "default")


def _read_config_file(path: Path) -> dict[str, Any]:
    """Read and validate the JSON config file, returning the keys it sets."""
    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        raise ValueError("Config file must contain a JSON object")
    # Validated on its own so a bad file is rejected as a whole.
    return MonitorConfig.model_validate(data).model_dump(by_alias=True, exclude_unset=True)


def _env_values() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for env_key, (alias, is_list) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_key)
        if not raw:
            continue
        if env_key == "SMTP_PORT":
            try:
                values[alias] = int(raw)
            except ValueError:
                logger.warning("Invalid SMTP_PORT value: %r, ignoring", raw)
            continue
        values[alias] = [addr.strip() for addr in raw.split(",") if addr.strip()] if is_list else raw
    return values


def _accepted_values(values: dict[str, Any], origin: str) -> dict[str, Any]:
    """Drop the keys of one override layer that fail validation on their own."""
    accepted: dict[str, Any] = {}
    for key, value in values.items():
        try:
            MonitorConfig.model_validate({key: value})
        except ValidationError as e:
            reason = e.errors()[0]["msg"]
            logger.warning("Ignoring invalid %s value for %s: %s", origin, key, reason)
            continue
        accepted[key] = value
    return accepted


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    *,
    use_env: bool = True,
) -> LoadedConfig:
    """Load configuration from file, environment and command-line overrides.

    A missing or invalid config file is not fatal: a warning is logged and the
    built-in defaults are used instead.

    Args:
        config_path: JSON config file. Defaults to ``config.json`` in the
            working directory.
        overrides: Values from the command line, keyed by camelCase alias.
            ``None`` and empty values are ignored.
        use_env: Apply ``VEEAM_*`` / ``SMTP_*`` / ``EMAIL_*`` env overrides
            (a ``.env`` file is loaded first).

    Returns:
        LoadedConfig with the frozen config and per-key sources.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    data: dict[str, Any] = {}
    sources: dict[str, str] = {}

    try:
        data.update(_read_config_file(path))
        sources.update({key: "file" for key in data})
        logger.info("Loaded configuration from %s", path)
    except (OSError, ValueError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError
        logger.warning("Error loading configuration from %s: %s", path, e)
        logger.warning("Will use default values and command-line parameters")

    if use_env:
        load_dotenv()
        env = _accepted_values(_env_values(), "environment")
        data.update(env)
        sources.update({key: "env" for key in env})

    cli = {key: value for key, value in (overrides or {}).items() if value not in (None, "", [], ())}
    for key, value in _accepted_values(cli, "command-line").items():
        data[key] = value
        sources[key] = "cli"
        if key == "emailPassword":
            logger.info("Using email password from command line")
        else:
            logger.info("Using %s from command line: %s", key, value)

    config = MonitorConfig.model_validate(data)
    return LoadedConfig(config=config, path=path, sources=sources)


def validate_config(config: MonitorConfig) -> list[str]:
    """Return human-readable warnings for settings that limit monitoring."""
    warnings: list[str] = []
    if not config.veeam_server_address:
        warnings.append("No Veeam server address specified, querying the local server")
    if not config.email_configured:
        warnings.append("Email configuration incomplete. Notifications will not be sent.")
    return warnings


def get_effective_config_display(loaded: LoadedConfig) -> list[tuple[str, str, str]]:
    """Get a display list of effective config values with sources.

    Returns:
        List of (key, value, source) tuples. The password is masked.
    """
    dumped = loaded.config.model_dump(by_alias=True)
    entries = []
    for alias, value in dumped.items():
        if alias == "emailPassword":
            display = "****" if value else ""
        elif isinstance(value, (list, tuple)):
            display = ", ".join(value)
        else:
            display = str(value)
        entries.append((alias, display, loaded.source_of(alias)))
    return entries
