"""Command-line interface for veeam-monitor.

Usage:
    veeam-monitor run                 # Poll forever
    veeam-monitor check               # Run a single poll cycle
    veeam-monitor config show         # Show effective configuration
    veeam-monitor test-email          # Verify SMTP settings
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated
from typing import List
from typing import Optional

import typer

from veeam_monitor import __version__
from veeam_monitor.classifier import JobClassifier
from veeam_monitor.config import DEFAULT_CONFIG_PATH
from veeam_monitor.config import LoadedConfig
from veeam_monitor.config import get_effective_config_display
from veeam_monitor.config import load_config
from veeam_monitor.config import validate_config
from veeam_monitor.digest import Digest
from veeam_monitor.logging_config import DEFAULT_LOG_DIR
from veeam_monitor.logging_config import setup_logging
from veeam_monitor.monitor import Monitor
from veeam_monitor.notifier import EmailDispatcher
from veeam_monitor.query import PowerShellQuery

# Exit codes
EXIT_SUCCESS = 0
EXIT_ALERT_FAILED = 1

app = typer.Typer(
    name="veeam-monitor",
    help="Monitor Veeam Backup & Replication jobs and email alerts",
    no_args_is_help=True,
)

config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")

ConfigOption = Annotated[
    Path, typer.Option("--config", "-c", help="Path to configuration file", dir_okay=False)
]
ServerOption = Annotated[Optional[str], typer.Option("--veeam-server", help="Veeam server address")]
FromOption = Annotated[Optional[str], typer.Option("--from", help="Sender email address")]
PasswordOption = Annotated[Optional[str], typer.Option("--password", help="Sender email password")]
ToOption = Annotated[
    Optional[List[str]], typer.Option("--to", help="Recipient email address (repeatable)")
]
SMTPOption = Annotated[Optional[str], typer.Option("--smtp", help="SMTP server address")]
LogDirOption = Annotated[Path, typer.Option("--log-dir", help="Directory for daily log files", file_okay=False)]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")]


def _overrides(
    veeam_server: str | None,
    email_from: str | None,
    password: str | None,
    to: list[str] | None,
    smtp: str | None,
) -> dict:
    return {
        "veeamServerAddress": veeam_server,
        "emailFrom": email_from,
        "emailPassword": password,
        "emailTo": to,
        "smtpServer": smtp,
    }


def _startup(config_path: Path, overrides: dict, log_dir: Path, verbose: bool) -> tuple[LoadedConfig, logging.Logger]:
    """Set up logging, then load and validate configuration."""
    logger = setup_logging(log_dir, logging.DEBUG if verbose else logging.INFO)
    loaded = load_config(config_path, overrides)
    for warning in validate_config(loaded.config):
        logger.warning("Warning: %s", warning)
    return loaded, logger


def build_monitor(loaded: LoadedConfig, logger: logging.Logger) -> Monitor:
    """Wire the query, classifier, dispatcher and loop for ``loaded``."""
    config = loaded.config
    classifier = JobClassifier(PowerShellQuery(logger=logger), config, logger=logger)
    dispatcher = EmailDispatcher(config, logger=logger)
    return Monitor(classifier, dispatcher, config, logger=logger)


@app.command()
def run(
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    veeam_server: ServerOption = None,
    email_from: FromOption = None,
    password: PasswordOption = None,
    to: ToOption = None,
    smtp: SMTPOption = None,
    log_dir: LogDirOption = DEFAULT_LOG_DIR,
    verbose: VerboseOption = False,
) -> None:
    """Poll the Veeam server forever, emailing a digest when jobs need attention."""
    loaded, logger = _startup(config, _overrides(veeam_server, email_from, password, to, smtp), log_dir, verbose)
    monitor = build_monitor(loaded, logger)
    try:
        monitor.run_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted by user, monitoring stopped")
        raise typer.Exit(EXIT_SUCCESS)


@app.command()
def check(
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    veeam_server: ServerOption = None,
    email_from: FromOption = None,
    password: PasswordOption = None,
    to: ToOption = None,
    smtp: SMTPOption = None,
    log_dir: LogDirOption = DEFAULT_LOG_DIR,
    verbose: VerboseOption = False,
) -> None:
    """Run a single poll cycle and exit.

    Exits 1 when problem jobs were found but the alert could not be sent.
    """
    loaded, logger = _startup(config, _overrides(veeam_server, email_from, password, to, smtp), log_dir, verbose)
    result = build_monitor(loaded, logger).run_cycle()
    if result.alert_failed:
        raise typer.Exit(EXIT_ALERT_FAILED)


@app.command(name="test-email")
def send_test_email(
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    email_from: FromOption = None,
    password: PasswordOption = None,
    to: ToOption = None,
    smtp: SMTPOption = None,
    log_dir: LogDirOption = DEFAULT_LOG_DIR,
    verbose: VerboseOption = False,
) -> None:
    """Send a test email to verify the SMTP settings."""
    loaded, logger = _startup(config, _overrides(None, email_from, password, to, smtp), log_dir, verbose)
    digest = Digest(
        subject="Veeam Backup Monitor - Test Email",
        body="This is a test email from the Veeam Backup Monitor. Your email configuration is working correctly.\n",
    )
    if EmailDispatcher(loaded.config, logger=logger).send(digest):
        typer.secho("Test email sent.", fg=typer.colors.GREEN)
        return
    typer.secho("Test email could not be sent, see the log for details.", fg=typer.colors.RED, err=True)
    raise typer.Exit(EXIT_ALERT_FAILED)


@config_app.command(name="show")
def config_show(
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    veeam_server: ServerOption = None,
    email_from: FromOption = None,
    password: PasswordOption = None,
    to: ToOption = None,
    smtp: SMTPOption = None,
) -> None:
    """Show effective configuration with sources.

    Displays the merged configuration from file, environment variables,
    command-line options and defaults, indicating where each value comes from.
    """
    loaded = load_config(config, _overrides(veeam_server, email_from, password, to, smtp))

    typer.echo(f"Config file: {loaded.path}")
    typer.echo(f"  {'exists' if loaded.path.exists() else 'not found'}")
    typer.echo("")
    typer.echo("Effective configuration:")
    typer.echo("-" * 50)

    for key, value, source in get_effective_config_display(loaded):
        source_indicator = {
            "file": typer.style("[file]", fg=typer.colors.CYAN),
            "env": typer.style("[env]", fg=typer.colors.YELLOW),
            "cli": typer.style("[cli]", fg=typer.colors.GREEN),
            "default": typer.style("[default]", fg=typer.colors.WHITE, dim=True),
        }.get(source, f"[{source}]")
        typer.echo(f"  {key}: {value} {source_indicator}")

    for warning in validate_config(loaded.config):
        typer.secho(f"Warning: {warning}", fg=typer.colors.YELLOW)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"veeam-monitor {__version__}")
        raise typer.Exit()


@app.callback()
def _main(
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = False,
) -> None:
    """Monitor Veeam Backup & Replication jobs and email alerts."""


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
