"""Test configuration and fixtures."""

from __future__ import annotations

import logging

import pytest

from veeam_monitor.config import MonitorConfig
from veeam_monitor.models import Category
from veeam_monitor.query import QueryError

CSV_HEADER = '"Name","LastResult","LastStart","LastEnd","Description"'
RUNNING_HEADER = '"Name","Status","StartTime","EndTime","Description","Duration"'


class FakeQuery:
    """JobQuery returning canned output per category, or raising QueryError."""

    def __init__(self, outputs: dict[Category, str] | None = None, failures: set[Category] | None = None):
        self.outputs = outputs or {}
        self.failures = failures or set()
        self.calls: list[Category] = []

    def fetch(self, category: Category, config: MonitorConfig) -> str:
        self.calls.append(category)
        if category in self.failures:
            raise QueryError(f"failed to execute PowerShell command for {category.label} jobs (rc=1)")
        return self.outputs.get(category, "")


class FakeSMTP:
    """Stand-in for smtplib.SMTP that records the conversation."""

    instances: list["FakeSMTP"] = []

    def __init__(self, host: str, port: int, *, starttls: bool = False, fail_with: Exception | None = None):
        self.host = host
        self.port = port
        self.supports_starttls = starttls
        self.fail_with = fail_with
        self.started_tls = False
        self.auth_calls: list[tuple[str, str]] = []
        self.sent: list[tuple[str, list[str], str]] = []
        self.user = ""
        self.password = ""
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        return (250, b"ok")

    def has_extn(self, name: str) -> bool:
        return name == "starttls" and self.supports_starttls

    def starttls(self):
        self.started_tls = True

    def auth_plain(self, challenge=None):
        return f"\0{self.user}\0{self.password}"

    def auth(self, mechanism, authobject):
        self.auth_calls.append((mechanism, authobject()))
        return (235, b"ok")

    def sendmail(self, from_addr, to_addrs, msg):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((from_addr, list(to_addrs), msg))
        return {}


def csv_output(*rows: str, header: str = CSV_HEADER) -> str:
    return "\n".join([header, *rows]) + "\n"


@pytest.fixture(autouse=True)
def clear_smtp_instances():
    FakeSMTP.instances.clear()
    yield
    FakeSMTP.instances.clear()


@pytest.fixture
def config() -> MonitorConfig:
    """Fully configured monitor with every category enabled."""
    return MonitorConfig(
        veeam_server_address="vbr01",
        smtp_server="mail.example.com",
        smtp_port=25,
        email_from="veeam@example.com",
        email_to=("ops@example.com",),
        monitor_failed_jobs=True,
        monitor_warning_jobs=True,
        monitor_running_jobs=True,
        long_running_threshold=120,
    )


@pytest.fixture
def failed_only_config(config: MonitorConfig) -> MonitorConfig:
    return config.model_copy(update={"monitor_warning_jobs": False, "monitor_running_jobs": False})


@pytest.fixture
def app_logger() -> logging.Logger:
    return logging.getLogger("veeam_monitor.tests")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Environment without any config override variables."""
    for key in (
        "VEEAM_SERVER",
        "VEEAM_POWERSHELL_MODULE",
        "SMTP_SERVER",
        "SMTP_PORT",
        "EMAIL_FROM",
        "EMAIL_TO",
        "EMAIL_PASSWORD",
    ):
        monkeypatch.delenv(key, raising=False)
    # keep load_dotenv from picking up a developer's .env
    monkeypatch.setattr("veeam_monitor.config.load_dotenv", lambda *a, **k: False)
