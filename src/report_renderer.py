"""
Report rendering for the messaging webhook.

Turns rows (or collected reports from several processes) into the
markdown-like text posted to the chat webhook. Rendering is pure: the
environment label, mention and limits are all inputs, so the same rows always
produce the same message.

Layouts:
    flat      one check run, one line per row plus error details
    combined  several collected reports grouped by menu placement and solution
    detailed  single flow run with overview/answers on success and
              where-it-stopped / mismatches / errors on failure
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from error_normalizer import dedupe_errors, normalize_error, shorten, strip_ansi, collapse_whitespace
from report_rows import (
    AXIS_TITLES,
    STATUS_GLYPHS,
    UNEXPECTED_ITEM_MESSAGE,
    CollectedReport,
    MenuAxis,
    Row,
    RowStatus,
    flatten_rows,
)


NONE_BULLET = '• (none)'
TEXT_LINE_LIMIT = 260
TIMER_GLYPH = '⏱️'


@dataclass(frozen=True)
class ReportCounts:
    """Aggregate counts over a set of rows."""

    passed: int = 0
    failed: int = 0
    errored: int = 0
    skipped: int = 0
    extra: int = 0

    @property
    def problems(self) -> int:
        """FAIL plus ERROR rows (extra entries are FAIL rows)."""
        return self.failed + self.errored

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.errored + self.skipped


def count_rows(rows: Iterable[Row]) -> ReportCounts:
    passed = failed = errored = skipped = extra = 0
    for row in rows:
        if row.status is RowStatus.PASS:
            passed += 1
        elif row.status is RowStatus.FAIL:
            failed += 1
        elif row.status is RowStatus.ERROR:
            errored += 1
        else:
            skipped += 1
        if row.extra:
            extra += 1
    return ReportCounts(passed, failed, errored, skipped, extra)


def _section(name: str, bullets: List[str]) -> str:
    return f'*{name}*\n' + ('\n'.join(bullets) if bullets else NONE_BULLET)


def _sorted_solutions(groups: Mapping[str, List[Row]]) -> List[str]:
    return sorted(groups, key=lambda name: (name.casefold(), name))


class ReportRenderer:
    """
    Render rows into webhook message text.

    Args:
        mention: Alert mention (e.g. "<@U012ABC>") prepended when a report has
            problems. Empty disables mentions.
        max_detail_length: Length bound for normalized error details.
    """

    def __init__(self, mention: str = '', max_detail_length: int = 120):
        self.mention = (mention or '').strip()
        self.max_detail_length = max_detail_length

    # ------------------------------------------------------------------
    # Shared pieces
    # ------------------------------------------------------------------

    @staticmethod
    def needs_alert(rows: Iterable[Row]) -> bool:
        return any(row.is_problem for row in rows)

    def header(self, title: str, env_label: str, counts: ReportCounts, alert: bool = False) -> str:
        result = (
            f"Result: {STATUS_GLYPHS[RowStatus.PASS]} {counts.passed}  "
            f"{STATUS_GLYPHS[RowStatus.FAIL]} {counts.failed}  "
            f"{STATUS_GLYPHS[RowStatus.ERROR]} {counts.errored}"
        )
        if counts.skipped:
            result += f"  {STATUS_GLYPHS[RowStatus.SKIP]} {counts.skipped}"

        lines = []
        if alert and self.mention:
            lines.append(self.mention)
        lines.append(f'*{title}* — *{env_label}*')
        lines.append(result)
        return '\n'.join(lines)

    def describe_problem(self, row: Row) -> str:
        """Short human-readable cause for a FAIL, ERROR or extra row."""
        if row.extra:
            detail = shorten(row.detail, self.max_detail_length) if row.detail else ''
            return f'{UNEXPECTED_ITEM_MESSAGE}: {detail}' if detail else UNEXPECTED_ITEM_MESSAGE
        if row.status is RowStatus.ERROR:
            return normalize_error(row.diagnostic, self.max_detail_length)
        return (f'expected "{shorten(row.expected, self.max_detail_length)}" '
                f'→ got "{shorten(row.actual, self.max_detail_length)}"')

    # ------------------------------------------------------------------
    # Layouts
    # ------------------------------------------------------------------

    def render(self, reports: Sequence[CollectedReport], env_label: str, title: str) -> str:
        """Combined layout for several reports, flat layout for exactly one."""
        if len(reports) == 1:
            return self.render_flat(title, reports[0].rows, env_label)
        return self.render_combined(reports, env_label, title)

    def render_flat(self, title: str, rows: Sequence[Row], env_label: str,
                    include_error_details: bool = True,
                    elapsed_seconds: Optional[int] = None) -> str:
        """
        One line per row, then an error details section when anything failed.

        Example:
            *Corporate Planning - Navigation Report* — *DEV*
            Result: ✅ 1  ❌ 0  🛑 1

            • Side menu — Finance ✅
            • Side menu — HR 🛑

            *Error details*
            • Side menu — HR: Test timed out while waiting for UI/network.

        elapsed_seconds adds a "Total time" line under the result counts.
        """
        counts = count_rows(rows)
        alert = self.needs_alert(rows)
        text = self.header(title, env_label, counts, alert)
        if elapsed_seconds is not None:
            text += f'\n{TIMER_GLYPH} Total time: {elapsed_seconds}s'
        text += '\n\n'
        text += '\n'.join(f'• {row.label} {row.glyph}' for row in rows) if rows else NONE_BULLET

        problems = [row for row in rows if row.is_problem]
        if include_error_details and problems:
            details = [f'• {row.label}: {self.describe_problem(row)}' for row in problems]
            text += '\n\n*Error details*\n' + '\n'.join(details)
        return text

    def render_combined(self, reports: Sequence[CollectedReport], env_label: str, title: str) -> str:
        """
        Group rows from several reports by menu placement and solution.

        Solutions are sorted by name within each menu block, rows keep their
        discovery order, and extra entries only show up in the Error section.
        """
        all_rows = flatten_rows(list(reports))
        counts = count_rows(all_rows)
        alert = self.needs_alert(all_rows)

        groups: Dict[MenuAxis, Dict[str, List[Row]]] = {
            MenuAxis.TOP: OrderedDict(),
            MenuAxis.SIDE: OrderedDict(),
        }
        error_lines = []

        for report in reports:
            for row in report.rows:
                solution = report.solution_for(row)
                if row.axis in groups and not row.extra:
                    groups[row.axis].setdefault(solution, []).append(row)
                if row.is_problem:
                    item = row.field or row.label
                    error_lines.append(
                        f'• *{solution}* — {AXIS_TITLES[row.axis]}: {item} — {self.describe_problem(row)}'
                    )

        text = self.header(title, env_label, counts, alert) + '\n'
        text += f'\n*Top Menu →*\n{self._render_blocks(groups[MenuAxis.TOP])}\n'
        text += f'\n*Side Menu →*\n{self._render_blocks(groups[MenuAxis.SIDE])}'
        if error_lines:
            text += '\n\n*Error*\n' + '\n'.join(error_lines)
        return text

    def _render_blocks(self, by_solution: Mapping[str, List[Row]]) -> str:
        blocks = []
        for solution in _sorted_solutions(by_solution):
            lines = [f'*{solution}*']
            lines.extend(f'• {row.field} {row.glyph}' for row in by_solution[solution])
            blocks.append('\n'.join(lines))
        return '\n\n'.join(blocks) if blocks else NONE_BULLET

    def render_detailed(self, title: str, rows: Sequence[Row], env_label: str,
                        links: Optional[Mapping[str, str]] = None,
                        errors: Optional[Sequence[str]] = None,
                        overview_section: str = 'Overview',
                        answers_section: str = 'Documents & Data') -> str:
        """
        Detailed single-flow layout.

        A clean run shows the overview and submitted answers. A run with
        problems shows where it stopped (top two distinct errors), value
        mismatches and a deduplicated error list instead.

        Args:
            links: Label → URL pairs listed under the header
            errors: Extra error strings collected outside of rows
        """
        counts = count_rows(rows)
        extra_errors = list(errors or [])
        alert = counts.problems > 0 or bool(extra_errors)

        text = self.header(title, env_label, counts, alert)
        link_lines = [f'• {label}: {url}' for label, url in (links or {}).items() if url]
        if link_lines:
            text += '\n' + '\n'.join(link_lines)

        error_rows = [row for row in rows if row.status is RowStatus.ERROR]
        fail_rows = [row for row in rows if row.status is RowStatus.FAIL]

        if not alert:
            overview = [f'• {row.field}: {shorten(row.actual)}'
                        for row in rows if row.section == overview_section]
            answers = [f'• {row.field}: {shorten(row.actual)}'
                       for row in rows if row.section == answers_section]
            body = (
                _section('OVERVIEW', overview or ['• (no overview data)'])
                + '\n\n'
                + _section(f'SUBMITTED ANSWERS ({answers_section})', answers or ['• (no extracted answers)'])
            )
            return f'{text}\n\n{body}'

        candidates = [f'{row.section} > {row.field}: {row.diagnostic}' for row in error_rows[:4]]
        if not candidates:
            candidates = extra_errors[:4]
        where_stopped = dedupe_errors(candidates, self.max_detail_length)[:2]

        mismatches = [
            f'• {row.section} > {row.field}: {self.describe_problem(row)}'
            for row in fail_rows[:15]
        ]

        merged = [f'{row.section} > {row.field}: {row.diagnostic}' for row in error_rows] + extra_errors
        deduped = dedupe_errors(merged, self.max_detail_length)[:10]

        body = (
            _section('WHERE IT STOPPED', [f'• {e}' for e in where_stopped])
            + '\n\n'
            + _section('MISMATCHES', mismatches)
            + '\n\n'
            + _section('ERRORS (deduped)', [f'• {e}' for e in deduped])
        )
        return f'{text}\n\n{body}'

    @staticmethod
    def render_text(title: str, lines: Iterable[str]) -> str:
        """Bold title followed by caller-formatted lines, each compacted."""
        body = []
        for line in lines:
            clean = collapse_whitespace(strip_ansi(line))
            if len(clean) > TEXT_LINE_LIMIT:
                clean = clean[:TEXT_LINE_LIMIT] + '…'
            body.append(clean)
        return '\n'.join([f'*{title}*'] + body)

    def render_empty(self, env_label: str, title: str, collect_path: str) -> str:
        """Warning posted when a run finished without collecting any rows."""
        counts = ReportCounts()
        return (
            self.header(title, env_label, counts, alert=True)
            + '\n\n'
            + f'{STATUS_GLYPHS[RowStatus.ERROR]} *No rows were collected.*\n'
            + 'Check that every check publishes its report in a finally block, '
            + f'and that SLACK_COLLECT_PATH matches: `{collect_path}`'
        )
