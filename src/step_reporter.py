"""
Step-by-step flow reporting.

Wraps each step of a browser flow (login, open panel, fill form, ...) so that
its outcome lands in a row list. The first failing step captures a full-page
screenshot and the current URL; every later step is recorded as SKIP instead
of producing a cascade of follow-on errors.

Usage:
    reporter = StepReporter(page, rows, errors)
    reporter.step("Open Compliance", lambda: open_solution_panel(page, "Compliance"))
    reporter.step("Submit form", lambda: submit(page))
"""

import logging
import os
import re
import time
from typing import Callable, List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from error_normalizer import first_line
from report_rows import Row


SKIP_REASON = 'Skipped because a previous step failed.'
NO_PAGE_URL = '(no page)'

_SLUG_RE = re.compile(r'[^a-z0-9]+')


def slugify(text: str, max_length: int = 60) -> str:
    """
    Lower-case text and join its alphanumeric runs with underscores.

    Examples:
        >>> slugify("Open Compliance > Personnel")
        'open_compliance_personnel'
    """
    return _SLUG_RE.sub('_', (text or '').lower()).strip('_')[:max_length]


class StepReporter:
    """
    Record flow steps as rows.

    Args:
        page: Playwright page used for screenshots and the current URL
        rows: Row list the steps are appended to
        errors: Error list receiving "<step>: <first line>" for each failure
        section: Section name stored on every row
        stop_on_error: Halt after the first failure (later steps become SKIP)
        logs_dir: Directory for failure screenshots
    """

    def __init__(self, page: Optional[Page], rows: List[Row], errors: List[str],
                 section: str = 'Flow', stop_on_error: bool = True, logs_dir: str = 'logs'):
        self.logger = logging.getLogger(__name__)
        self.page = page
        self.rows = rows
        self.errors = errors
        self.section = section
        self.stop_on_error = stop_on_error
        self.logs_dir = logs_dir
        self._halted = False

    def is_halted(self) -> bool:
        return self._halted

    def step(self, name: str, func: Callable[[], object]) -> bool:
        """
        Run one step and record its outcome.

        Returns:
            bool: True when the step ran and passed, False when it failed or was skipped
        """
        if self._halted:
            self.rows.append(Row.skipped(name, section=self.section, reason=SKIP_REASON))
            self.logger.info(f"StepReporter: Skipping '{name}' (halted)")
            return False

        try:
            func()
        except Exception as e:
            self._record_error(name, e)
            if self.stop_on_error:
                self._halted = True
            return False

        self.rows.append(Row.passed(name, section=self.section))
        return True

    def _current_url(self) -> str:
        if self.page is None:
            return NO_PAGE_URL
        try:
            return self.page.url
        except PlaywrightError:
            return NO_PAGE_URL

    def _screenshot(self, name: str) -> str:
        path = os.path.join(self.logs_dir, f'flow_{int(time.time() * 1000)}_{slugify(name)}.png')
        if self.page is None:
            return path
        try:
            os.makedirs(self.logs_dir, exist_ok=True)
            self.page.screenshot(path=path, full_page=True)
        except (PlaywrightError, OSError) as e:
            self.logger.warning(f"StepReporter: Screenshot failed for '{name}': {e}")
        return path

    def _record_error(self, name: str, error: Exception) -> None:
        message = first_line(str(error)) or type(error).__name__
        url = self._current_url()
        shot = self._screenshot(name)

        self.errors.append(f'{name}: {message}')
        self.rows.append(Row.errored(
            name,
            detail=f'{message} | url={url} | shot={shot}',
            section=self.section,
            expected='Step completes',
        ))
        self.logger.error(f"StepReporter: Step '{name}' failed: {message} (url={url})")
