"""Classify Veeam jobs into monitoring categories."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field

from veeam_monitor.config import MonitorConfig
from veeam_monitor.models import Category
from veeam_monitor.models import JobStatus
from veeam_monitor.parser import parse_job_rows
from veeam_monitor.query import JobQuery
from veeam_monitor.query import QueryError

LONG_RUNNING_PREFIX = "Long-running job (over {threshold} minutes): "


class ClassifierError(Exception):
    """A category could not be checked."""

    def __init__(self, category: Category, message: str):
        super().__init__(f"{category.label} jobs: {message}")
        self.category = category


@dataclass
class ClassificationResult:
    """Merged jobs of one poll cycle and the categories that failed."""

    jobs: list[JobStatus] = field(default_factory=list)
    errors: dict[Category, ClassifierError] = field(default_factory=dict)
    counts: dict[Category, int] = field(default_factory=dict)


def _elapsed_minutes(duration: str) -> float | None:
    try:
        return float(duration)
    except ValueError:
        return None


class JobClassifier:
    """Run the job query for each enabled category and parse the results."""

    def __init__(self, query: JobQuery, config: MonitorConfig, logger: logging.Logger | None = None):
        self.query = query
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def classify(self, category: Category) -> list[JobStatus]:
        """Fetch and parse the jobs for one category.

        Raises:
            ClassifierError: when the backup server could not be queried.
        """
        try:
            output = self.query.fetch(category, self.config)
        except QueryError as e:
            raise ClassifierError(category, str(e)) from e

        jobs = parse_job_rows(output, category.state)
        if category is Category.LONG_RUNNING:
            jobs = self._long_running(jobs)
        return jobs

    def _long_running(self, jobs: list[JobStatus]) -> list[JobStatus]:
        threshold = self.config.long_running_threshold
        prefix = LONG_RUNNING_PREFIX.format(threshold=threshold)

        long_running = []
        for job in jobs:
            minutes = _elapsed_minutes(job.duration)
            if minutes is None:
                self.logger.debug("Ignoring running job %s with unreadable duration %r", job.name, job.duration)
                continue
            if minutes <= threshold:
                continue
            job.description = prefix + job.description
            long_running.append(job)
        return long_running

    def classify_all(self) -> ClassificationResult:
        """Check every enabled category, in order.

        A failing category is logged and recorded; the remaining categories
        are still checked.
        """
        result = ClassificationResult()
        for category in self.config.enabled_categories:
            try:
                jobs = self.classify(category)
            except ClassifierError as e:
                self.logger.error("Error checking %s", e)
                result.errors[category] = e
                continue

            self.logger.info("Found %d %s jobs", len(jobs), category.label)
            result.counts[category] = len(jobs)
            result.jobs.extend(jobs)
        return result
