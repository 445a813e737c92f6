"""
Per-run menu report and module runner.

A MenuReport accumulates the rows and error strings of one solution check.
run_modules executes module checks one after another and turns each outcome
into a row, so one broken module never hides the results of the others.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from error_normalizer import strip_ansi
from report_rows import CollectedReport, Row


SYSTEM_SECTION = 'System'
MODULE_EXPECTED = 'Module loads and is usable'

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_text(err: Any) -> str:
    if isinstance(err, BaseException):
        return strip_ansi(str(err)) or type(err).__name__
    return strip_ansi(str(err))


@dataclass
class MenuReport:
    """Rows and errors collected by one check run."""

    title: str
    started_at: str = field(default_factory=_now_iso)
    finished_at: Optional[str] = None
    base_url: str = ''
    meta: Dict[str, str] = field(default_factory=dict)
    links: Dict[str, str] = field(default_factory=dict)
    rows: List[Row] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def finish(self) -> 'MenuReport':
        self.finished_at = _now_iso()
        return self

    @property
    def failed(self) -> bool:
        return bool(self.errors) or any(row.is_problem for row in self.rows)

    def to_collected(self, mention: Optional[str] = None) -> CollectedReport:
        return CollectedReport(title=self.title, rows=list(self.rows), mention=mention)


@dataclass(frozen=True)
class ModuleCheck:
    """A named module check; run receives the page."""
    name: str
    run: Callable[[Any], None]


def create_menu_report(title: str, meta: Optional[Dict[str, str]] = None, base_url: str = '') -> MenuReport:
    return MenuReport(title=title, meta=dict(meta or {}), base_url=base_url)


def push_error(report: MenuReport, where: str, err: Any) -> None:
    """Record err as a System ERROR row plus an error line."""
    message = _error_text(err)
    report.errors.append(f'{where}: {message}')
    report.rows.append(Row.errored(where, detail=message, section=SYSTEM_SECTION))


def run_modules(page: Any, menu_name: str, modules: Sequence[ModuleCheck], report: MenuReport) -> int:
    """
    Run every module check and record a row for each.

    Args:
        page: Page handle passed to each check
        menu_name: Section name for the rows (e.g. "Top menu")
        modules: Checks to run, in order
        report: Report receiving the rows

    Returns:
        int: Number of modules that failed
    """
    failed = 0
    for module in modules:
        where = f'{menu_name} > {module.name}'
        try:
            module.run(page)
        except Exception as e:
            failed += 1
            push_error(report, where, e)
            logger.warning(f"run_modules(): Module failed: {where}: {_error_text(e)}")
            continue
        report.rows.append(Row.passed(module.name, section=menu_name, expected=MODULE_EXPECTED))
    return failed


@contextmanager
def fatal_guard(report: MenuReport) -> Iterator[MenuReport]:
    """
    Record an exception escaping the block as a System/Fatal ERROR row, then re-raise.

    Example:
        with fatal_guard(report):
            login(page)
            run_modules(page, "Side menu", checks, report)
    """
    try:
        yield report
    except Exception as e:
        push_error(report, 'Fatal', e)
        logger.error(f"fatal_guard(): {report.title}: {_error_text(e)}")
        raise
