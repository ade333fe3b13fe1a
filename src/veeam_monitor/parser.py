"""Parse the CSV rows printed by ``ConvertTo-Csv -NoTypeInformation``.

Rows are split on commas and surrounding double quotes are stripped. Embedded
commas inside a quoted field are not supported: such a row is split into more
fields than it has, and its trailing columns shift.
"""

from __future__ import annotations

import logging

from veeam_monitor.models import JobState
from veeam_monitor.models import JobStatus

logger = logging.getLogger(__name__)

MIN_FIELDS = 5


def _field(value: str) -> str:
    return value.strip().strip('"')


def _parse_state(value: str) -> JobState | None:
    try:
        return JobState(value)
    except ValueError:
        return None


def parse_job_rows(output: str, status: JobState | None = None) -> list[JobStatus]:
    """Turn query output into job records.

    Args:
        output: Header line followed by zero or more data lines.
        status: State the query asked for. Used when a row's own status
            column is not a known job state.

    Returns:
        One record per data row with at least five fields, in input order.
        Short rows and blank lines are skipped.
    """
    lines = output.splitlines()
    if len(lines) < 2:
        return []

    jobs: list[JobStatus] = []
    for line in lines[1:]:
        line = line.strip()
        if not line:
            continue

        fields = [_field(f) for f in line.split(",")]
        if len(fields) < MIN_FIELDS:
            logger.debug("Skipping malformed row (%d fields): %s", len(fields), line[:200])
            continue

        state = _parse_state(fields[1]) or status
        if state is None:
            logger.debug("Skipping row with unknown status %r", fields[1])
            continue

        jobs.append(
            JobStatus(
                name=fields[0],
                status=state,
                start_time=fields[2],
                end_time=fields[3],
                description=fields[4],
                duration=fields[5] if len(fields) >= 6 else "",
            )
        )

    return jobs
