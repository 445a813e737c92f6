"""Tests for the pytest session reporter."""
import os
import sys
from types import SimpleNamespace
from unittest.mock import Mock, patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from navreport_plugin import SessionReporter, is_assertion_failure, row_from_test_report
from report_rows import RowStatus


def make_report(when='call', outcome='passed', nodeid='tests/solutions/test_home.py::test_menu',
                head_line='test_menu', longrepr=None, longreprtext='', **extra):
    return SimpleNamespace(
        when=when,
        passed=outcome == 'passed',
        failed=outcome == 'failed',
        skipped=outcome == 'skipped',
        nodeid=nodeid,
        head_line=head_line,
        longrepr=longrepr,
        longreprtext=longreprtext,
        **extra,
    )


def crash_repr(message):
    return SimpleNamespace(reprcrash=SimpleNamespace(message=message))


class TestRowFromTestReport:
    """Test suite for row_from_test_report()."""

    def test_passed_call(self):
        row = row_from_test_report(make_report())
        assert row.status is RowStatus.PASS
        assert row.field == 'test_menu'
        assert row.section == 'tests/solutions/test_home.py'

    def test_passed_setup_and_teardown_add_nothing(self):
        assert row_from_test_report(make_report(when='setup')) is None
        assert row_from_test_report(make_report(when='teardown')) is None

    def test_failed_teardown_is_an_error(self):
        row = row_from_test_report(make_report(when='teardown', outcome='failed', longreprtext='browser gone'))
        assert row.status is RowStatus.ERROR
        assert row.field == 'test_menu (teardown)'
        assert row.detail == 'browser gone'

    def test_skip_reason(self):
        report = make_report(when='setup', outcome='skipped',
                             longrepr=('test_home.py', 12, 'Skipped: no prod credentials'))
        row = row_from_test_report(report)
        assert row.status is RowStatus.SKIP
        assert row.actual == 'Skipped: no prod credentials'

    def test_assertion_failure_is_fail(self):
        report = make_report(outcome='failed', navreport_assertion=True,
                             longrepr=crash_repr('AssertionError: expected 7 modules\nassert 6 == 7'),
                             longreprtext='full traceback')
        row = row_from_test_report(report)
        assert row.status is RowStatus.FAIL
        assert row.actual == 'AssertionError: expected 7 modules'
        assert row.detail == 'full traceback'

    def test_other_exception_is_error(self):
        report = make_report(outcome='failed', navreport_assertion=False,
                             longrepr=crash_repr('TimeoutError: Timeout 30000ms exceeded'),
                             longreprtext='TimeoutError: Timeout 30000ms exceeded')
        row = row_from_test_report(report)
        assert row.status is RowStatus.ERROR
        assert row.detail == 'TimeoutError: Timeout 30000ms exceeded'

    def test_nodeid_used_without_head_line(self):
        row = row_from_test_report(make_report(head_line=None))
        assert row.field == 'tests/solutions/test_home.py::test_menu'


class TestIsAssertionFailure:
    """Test suite for is_assertion_failure()."""

    def test_flag_wins(self):
        assert not is_assertion_failure(make_report(navreport_assertion=False,
                                                    longrepr=crash_repr('AssertionError: x')))

    def test_falls_back_to_crash_message(self):
        assert is_assertion_failure(make_report(longrepr=crash_repr('assert 1 == 2')))
        assert not is_assertion_failure(make_report(longrepr=crash_repr('KeyError: x')))
        assert not is_assertion_failure(make_report(longrepr='plain text'))


class TestSessionReporter:
    """Test suite for SessionReporter."""

    def test_collects_and_publishes(self):
        publisher = Mock()
        publisher.env_label = 'DEV'
        reporter = SessionReporter(publisher=publisher)

        reporter.pytest_runtest_logreport(make_report(when='setup'))
        reporter.pytest_runtest_logreport(make_report())
        reporter.pytest_runtest_logreport(make_report(when='teardown'))
        reporter.started = 1000.0
        with patch('navreport_plugin.time.time', return_value=1042.4):
            reporter.pytest_sessionfinish(session=Mock(), exitstatus=0)

        assert len(reporter.rows) == 1
        title, rows = publisher.publish_menu_report.call_args[0]
        assert title == 'DEV – QA Automation Results'
        assert rows == reporter.rows
        assert publisher.publish_menu_report.call_args[1]['elapsed_seconds'] == 42

    def test_custom_title(self):
        publisher = Mock()
        SessionReporter('Nightly smoke', publisher=publisher).publish()
        assert publisher.publish_menu_report.call_args[0][0] == 'Nightly smoke'

    def test_publish_errors_do_not_escape(self):
        publisher = Mock()
        publisher.env_label = 'PROD'
        publisher.publish_menu_report.side_effect = RuntimeError('collector not writable')
        reporter = SessionReporter(publisher=publisher)
        reporter.pytest_sessionfinish(session=Mock(), exitstatus=1)
        publisher.publish_menu_report.assert_called_once()
