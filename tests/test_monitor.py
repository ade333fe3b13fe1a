"""Tests for the polling loop."""

from __future__ import annotations

from unittest import mock

import pytest
from conftest import FakeQuery
from conftest import csv_output

from veeam_monitor.classifier import JobClassifier
from veeam_monitor.models import Category
from veeam_monitor.monitor import Monitor
from veeam_monitor.notifier import EmailDispatcher


class StopLoop(Exception):
    pass


def _monitor(config, query, *, sent=True, sleep=None):
    dispatcher = mock.create_autospec(EmailDispatcher, instance=True)
    dispatcher.send.return_value = sent
    monitor = Monitor(JobClassifier(query, config), dispatcher, config, sleep=sleep or mock.Mock())
    return monitor, dispatcher


class TestRunCycle:
    """Tests for a single poll cycle."""

    def test_end_to_end_failed_job(self, failed_only_config):
        """One failed job: one digest with only the FAILED section, one dispatch."""
        output = 'Name,LastResult,LastStart,LastEnd,Description\n"JobA","Failed","2024-01-01","2024-01-01","Disk full"'
        monitor, dispatcher = _monitor(failed_only_config, FakeQuery({Category.FAILED: output}))

        result = monitor.run_cycle()

        dispatcher.send.assert_called_once()
        (digest,) = dispatcher.send.call_args.args
        assert "FAILED JOBS (1):" in digest.body
        assert "Job: JobA" in digest.body
        assert "WARNING JOBS" not in digest.body
        assert "LONG-RUNNING JOBS" not in digest.body
        assert result.dispatched is True
        assert result.alert_failed is False

    def test_no_problem_jobs_no_dispatch(self, config):
        monitor, dispatcher = _monitor(config, FakeQuery())
        result = monitor.run_cycle()

        dispatcher.send.assert_not_called()
        assert result.jobs == []
        assert result.digest is None
        assert result.alert_failed is False

    def test_category_failure_still_reports_others(self, config):
        query = FakeQuery(
            {Category.WARNING: csv_output('"JobW","Warning","s","e","Slow"')},
            failures={Category.FAILED, Category.LONG_RUNNING},
        )
        monitor, dispatcher = _monitor(config, query)

        result = monitor.run_cycle()

        assert result.failed_categories == [Category.FAILED, Category.LONG_RUNNING]
        (digest,) = dispatcher.send.call_args.args
        assert "WARNING JOBS (1):" in digest.body

    def test_logs_per_category_counts(self, config, caplog):
        query = FakeQuery(
            {Category.FAILED: csv_output('"JobA","Failed","s","e","Disk full"')},
            failures={Category.LONG_RUNNING},
        )
        monitor, _ = _monitor(config, query)

        with caplog.at_level("INFO"):
            monitor.run_cycle()

        assert "Cycle #1 found 1 problem jobs (failed=1, warning=0)" in caplog.text

    def test_dispatch_failure_is_not_raised(self, failed_only_config):
        query = FakeQuery({Category.FAILED: csv_output('"JobA","Failed","s","e","Disk full"')})
        monitor, _ = _monitor(failed_only_config, query, sent=False)

        result = monitor.run_cycle()

        assert result.dispatched is False
        assert result.alert_failed is True

    def test_fresh_state_each_cycle(self, failed_only_config):
        """Repeat alerts are not suppressed across cycles."""
        query = FakeQuery({Category.FAILED: csv_output('"JobA","Failed","s","e","Disk full"')})
        monitor, dispatcher = _monitor(failed_only_config, query)

        monitor.run_cycle()
        monitor.run_cycle()

        assert dispatcher.send.call_count == 2
        assert monitor.cycle_count == 2


class TestRunForever:
    """Tests for the check/sleep loop."""

    def test_sleeps_for_configured_interval(self, config):
        config = config.model_copy(update={"check_interval_minutes": 7})
        sleep = mock.Mock(side_effect=[None, StopLoop()])
        monitor, _ = _monitor(config, FakeQuery(), sleep=sleep)

        with pytest.raises(StopLoop):
            monitor.run_forever()

        assert sleep.call_args_list == [mock.call(420), mock.call(420)]
        assert monitor.cycle_count == 2

    def test_unexpected_error_does_not_stop_loop(self, config):
        sleep = mock.Mock(side_effect=[None, StopLoop()])
        monitor, _ = _monitor(config, FakeQuery(), sleep=sleep)
        monitor.classifier = mock.Mock()
        monitor.classifier.classify_all.side_effect = RuntimeError("boom")

        with pytest.raises(StopLoop):
            monitor.run_forever()

        assert monitor.classifier.classify_all.call_count == 2
