"""Tests for the CSV row parser."""

from __future__ import annotations

from conftest import RUNNING_HEADER
from conftest import csv_output

from veeam_monitor.models import JobState
from veeam_monitor.parser import parse_job_rows


class TestParseJobRows:
    """Tests for parse_job_rows."""

    def test_one_record_per_row_in_order(self):
        """Each well-formed row becomes one record, order preserved."""
        output = csv_output(
            '"JobA","Failed","2024-01-01 01:00","2024-01-01 02:00","Disk full"',
            '"JobB","Failed","2024-01-02 01:00","2024-01-02 02:00","Timeout"',
            '"JobC","Failed","2024-01-03 01:00","2024-01-03 02:00","Agent offline"',
        )
        jobs = parse_job_rows(output, JobState.FAILED)

        assert [j.name for j in jobs] == ["JobA", "JobB", "JobC"]
        first = jobs[0]
        assert first.status is JobState.FAILED
        assert first.start_time == "2024-01-01 01:00"
        assert first.end_time == "2024-01-01 02:00"
        assert first.description == "Disk full"
        assert first.duration == ""

    def test_short_rows_skipped_without_aborting(self):
        """Rows with fewer than five fields are dropped; later rows still parse."""
        output = csv_output(
            '"JobA","Failed","2024-01-01","2024-01-01","Disk full"',
            '"Broken","Failed","2024-01-01"',
            '"JobB","Failed","2024-01-02","2024-01-02","Timeout"',
        )
        jobs = parse_job_rows(output)
        assert [j.name for j in jobs] == ["JobA", "JobB"]

    def test_sixth_field_is_duration(self):
        output = csv_output(
            '"Nightly","Running","2024-01-01 22:00","N/A","Currently running","145.5"',
            header=RUNNING_HEADER,
        )
        (job,) = parse_job_rows(output, JobState.RUNNING)
        assert job.status is JobState.RUNNING
        assert job.duration == "145.5"

    def test_empty_input(self):
        """Empty or whitespace-only output yields no records."""
        assert parse_job_rows("") == []
        assert parse_job_rows("   \n\t\n") == []

    def test_header_only(self):
        assert parse_job_rows(csv_output()) == []

    def test_blank_lines_and_crlf(self):
        output = (
            '"Name","LastResult","LastStart","LastEnd","Description"\r\n'
            "\r\n"
            '"JobA","Warning","s","e","Slow"\r\n'
            "\r\n"
        )
        (job,) = parse_job_rows(output, JobState.WARNING)
        assert job.name == "JobA"
        assert job.description == "Slow"

    def test_unknown_status_uses_query_state(self):
        """A status column that is not a job state falls back to the queried state."""
        output = csv_output('"JobA","None","s","e","d"')
        (job,) = parse_job_rows(output, JobState.WARNING)
        assert job.status is JobState.WARNING

    def test_unknown_status_without_fallback_dropped(self):
        output = csv_output('"JobA","None","s","e","d"')
        assert parse_job_rows(output) == []

    def test_embedded_comma_splits_field(self):
        """Embedded commas are not supported: the row's columns shift."""
        output = csv_output('"JobA","Failed","s","e","Disk full, retry later"')
        (job,) = parse_job_rows(output, JobState.FAILED)
        assert job.description == "Disk full"
        assert job.duration == "retry later"
