"""
pytest plugin that reports a test session to the webhook.

Enabled with --navreport. Every test becomes one row (PASS, FAIL for assertion
failures, ERROR for any other exception, SKIP), and at session end the rows are
published through ReportPublisher. In collect mode (SLACK_COLLECT=1) they are
appended to the collector instead, to be flushed by `navreport flush`.

Usage:
    pytest --navreport tests/solutions
"""

import logging
import time
from typing import Optional

import pytest

from config_manager import ReportSettings, load_config_if_present
from error_normalizer import first_line
from report_publisher import ReportPublisher
from report_rows import Row
from run_outcomes import RunOutcomeTracker


PLUGIN_NAME = 'navreport-session'
TEST_EXPECTED = 'Test passes'

logger = logging.getLogger(__name__)


def pytest_addoption(parser):
    group = parser.getgroup('navreport', 'navigation check reporting')
    group.addoption('--navreport', action='store_true', default=False,
                    help="Post a summary of this session to the configured webhook.")
    group.addoption('--navreport-title', default=None,
                    help="Report title (default: '<ENV> – QA Automation Results').")


def pytest_configure(config):
    if config.getoption('navreport', default=False):
        config.pluginmanager.register(SessionReporter(config.getoption('navreport_title')), PLUGIN_NAME)


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    report.navreport_assertion = call.excinfo is not None and call.excinfo.errisinstance(AssertionError)


def is_assertion_failure(report) -> bool:
    flagged = getattr(report, 'navreport_assertion', None)
    if flagged is not None:
        return bool(flagged)
    # Reports rebuilt from worker processes lose custom attributes.
    crash = getattr(getattr(report, 'longrepr', None), 'reprcrash', None)
    message = getattr(crash, 'message', '') or ''
    return message.startswith(('AssertionError', 'assert '))


def row_from_test_report(report) -> Optional[Row]:
    """
    Row for one phase report, or None when the phase adds nothing.

    The call phase always yields a row. Setup yields one only when it failed or
    skipped the test, teardown only when it failed.
    """
    section = report.nodeid.split('::')[0]
    field = getattr(report, 'head_line', None) or report.nodeid

    if report.when == 'teardown':
        if not report.failed:
            return None
        return Row.errored(f'{field} (teardown)', detail=report.longreprtext, section=section)

    if report.when == 'setup' and report.passed:
        return None

    if report.passed:
        return Row.passed(field, section=section, expected=TEST_EXPECTED)
    if report.skipped:
        reason = report.longrepr[2] if isinstance(report.longrepr, tuple) else 'Skipped'
        return Row.skipped(field, section=section, reason=str(reason))
    if report.when == 'call' and is_assertion_failure(report):
        crash = getattr(report.longrepr, 'reprcrash', None)
        actual = first_line(getattr(crash, 'message', '') or report.longreprtext)
        return Row.failed(field, TEST_EXPECTED, actual, section=section, detail=report.longreprtext)
    return Row.errored(field, detail=report.longreprtext, section=section)


class SessionReporter:
    """Collects rows during the session and publishes them at the end."""

    def __init__(self, title: Optional[str] = None, publisher: Optional[ReportPublisher] = None):
        self.title = title
        self.publisher = publisher
        self.rows = []
        self.started = time.time()

    def pytest_runtest_logreport(self, report):
        row = row_from_test_report(report)
        if row is not None:
            self.rows.append(row)

    def _publisher(self) -> ReportPublisher:
        if self.publisher is None:
            self.publisher = ReportPublisher(ReportSettings.from_sources(load_config_if_present()))
        return self.publisher

    def elapsed_seconds(self) -> int:
        return round(time.time() - self.started)

    def pytest_sessionfinish(self, session, exitstatus):
        elapsed = self.elapsed_seconds()
        tracker = RunOutcomeTracker('navreport session')
        outcome = tracker.capture('publish session report', lambda: self.publish(elapsed))
        logger.info(f"SessionReporter: {len(self.rows)} rows in {elapsed}s, publish ok={outcome.ok}")

    def publish(self, elapsed_seconds: Optional[int] = None):
        publisher = self._publisher()
        if elapsed_seconds is None:
            elapsed_seconds = self.elapsed_seconds()
        title = self.title or f'{publisher.env_label} – QA Automation Results'
        return publisher.publish_menu_report(title, self.rows, elapsed_seconds=elapsed_seconds)
