"""Veeam Backup & Replication job monitor.

Polls a Veeam server on a fixed interval, classifies failed, warning and
long-running jobs, and emails a plain-text digest when any are found.

Usage:
    from veeam_monitor import JobClassifier, Monitor, EmailDispatcher, load_config
    from veeam_monitor.query import PowerShellQuery

    config = load_config().config
    monitor = Monitor(
        JobClassifier(PowerShellQuery(), config),
        EmailDispatcher(config),
        config,
    )
    monitor.run_forever()
"""

__version__ = "0.1.0"

from veeam_monitor.classifier import ClassifierError
from veeam_monitor.classifier import JobClassifier
from veeam_monitor.config import MonitorConfig
from veeam_monitor.config import load_config
from veeam_monitor.digest import Digest
from veeam_monitor.digest import format_digest
from veeam_monitor.models import Category
from veeam_monitor.models import JobState
from veeam_monitor.models import JobStatus
from veeam_monitor.monitor import Monitor
from veeam_monitor.notifier import EmailDispatcher
from veeam_monitor.parser import parse_job_rows

__all__ = [
    "Category",
    "ClassifierError",
    "Digest",
    "EmailDispatcher",
    "JobClassifier",
    "JobState",
    "JobStatus",
    "Monitor",
    "MonitorConfig",
    "__version__",
    "format_digest",
    "load_config",
    "parse_job_rows",
]
