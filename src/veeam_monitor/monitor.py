"""Polling loop: check, notify, sleep, repeat."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field

from veeam_monitor.classifier import JobClassifier
from veeam_monitor.config import MonitorConfig
from veeam_monitor.digest import Digest
from veeam_monitor.digest import format_digest
from veeam_monitor.models import Category
from veeam_monitor.models import JobStatus
from veeam_monitor.notifier import EmailDispatcher


@dataclass
class CycleResult:
    """Outcome of one poll cycle."""

    jobs: list[JobStatus] = field(default_factory=list)
    failed_categories: list[Category] = field(default_factory=list)
    digest: Digest | None = None
    dispatched: bool = False

    @property
    def alert_failed(self) -> bool:
        """True when there was something to report and it was not delivered."""
        return bool(self.jobs) and not self.dispatched


class Monitor:
    """Runs poll cycles on a fixed interval until the process is stopped."""

    def __init__(
        self,
        classifier: JobClassifier,
        dispatcher: EmailDispatcher,
        config: MonitorConfig,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.classifier = classifier
        self.dispatcher = dispatcher
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.sleep = sleep
        self.cycle_count = 0

    def run_cycle(self) -> CycleResult:
        """Check every enabled category and email a digest if anything is wrong."""
        self.cycle_count += 1
        self.logger.info("Checking Veeam backup job statuses (cycle #%d)...", self.cycle_count)

        classified = self.classifier.classify_all()
        result = CycleResult(jobs=classified.jobs, failed_categories=list(classified.errors))
        summary = ", ".join(f"{category.label}={count}" for category, count in classified.counts.items())
        self.logger.info("Cycle #%d found %d problem jobs (%s)", self.cycle_count, len(classified.jobs), summary)

        if not result.jobs:
            self.logger.info("No problematic jobs found")
            return result

        result.digest = format_digest(result.jobs)
        result.dispatched = self.dispatcher.send(result.digest)
        if result.dispatched:
            self.logger.info("Email alert sent successfully")
        else:
            self.logger.error("Error sending email alert for %d jobs", len(result.jobs))
            self.logger.info("Report body:\n%s", result.digest.body)
        return result

    def run_forever(self) -> None:
        """Alternate between checking and sleeping. Never returns."""
        self.logger.info("Starting Veeam backup monitoring service")
        while True:
            try:
                self.run_cycle()
            except Exception as e:
                self.logger.exception("Error in monitoring cycle: %s", e)

            minutes = self.config.check_interval_minutes
            self.logger.info("Sleeping for %d minutes until next check", minutes)
            self.sleep(self.config.check_interval_seconds)
