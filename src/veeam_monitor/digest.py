"""Plain-text digest of problem jobs."""

from __future__ import annotations

from typing import NamedTuple

from veeam_monitor.models import JobState
from veeam_monitor.models import JobStatus

TITLE = "Veeam Backup & Replication Job Status Report"
FOOTER = "This is an automated message from the Veeam Backup Monitor."

TITLE_RULE = "=" * 43

# Group order is fixed regardless of input order. Underlines have fixed widths.
_SECTIONS = [
    (JobState.FAILED, "FAILED JOBS", "-" * 14),
    (JobState.WARNING, "WARNING JOBS", "-" * 16),
    (JobState.RUNNING, "LONG-RUNNING JOBS", "-" * 21),
]


class Digest(NamedTuple):
    subject: str
    body: str


def format_subject(count: int) -> str:
    return f"ALERT: {count} Veeam Backup Jobs Need Attention"


def running_minutes(duration: str) -> str:
    """Whole minutes of a duration string: everything before the first '.'."""
    return duration.split(".", 1)[0]


def _job_block(job: JobStatus) -> list[str]:
    if job.status is JobState.RUNNING:
        suffix = f" (Running for {running_minutes(job.duration)} minutes)" if job.duration else ""
        return [
            f"Job: {job.name}",
            f"Status: {job.status.value}{suffix}",
            f"Start Time: {job.start_time}",
            f"Description: {job.description}",
            "",
        ]
    return [
        f"Job: {job.name}",
        f"Status: {job.status.value}",
        f"Start Time: {job.start_time}",
        f"End Time: {job.end_time}",
        f"Description: {job.description}",
        "",
    ]


def format_digest(jobs: list[JobStatus]) -> Digest:
    """Render the alert subject and body for one poll cycle's problem jobs."""
    lines = [TITLE, TITLE_RULE, ""]

    for state, heading, rule in _SECTIONS:
        group = [job for job in jobs if job.status is state]
        if not group:
            continue
        lines.append(f"{heading} ({len(group)}):")
        lines.append(rule)
        for job in group:
            lines.extend(_job_block(job))
        lines.append("")

    lines.extend(["", FOOTER])
    return Digest(subject=format_subject(len(jobs)), body="\n".join(lines) + "\n")
