"""
Row model for navigation and flow check results.

A Row is the canonical record of one check's outcome. Its status decides which
optional fields carry meaning:

    PASS   actual is conventionally "OK", no diagnostic
    FAIL   expected/actual mismatch (also used for unexpected "extra" menu entries)
    ERROR  exception while performing the check, detail holds the raw error text
    SKIP   not attempted because an earlier dependent step failed

Menu placement (top/side) and solution are structured fields set when the row
is created. Label parsing only exists for reading entries written by older
collectors that stored a free-text label such as "Side menu — AI Hub".
"""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RowStatus(Enum):
    """Outcome of a single check."""
    PASS = "PASS"
    FAIL = "FAIL"
    ERROR = "ERROR"
    SKIP = "SKIP"

    @classmethod
    def parse(cls, value: Any) -> 'RowStatus':
        """Parse a stored status, accepting the legacy SKIPPED spelling."""
        if isinstance(value, RowStatus):
            return value
        text = str(value or '').strip().upper()
        if text == 'SKIPPED':
            return cls.SKIP
        return cls(text)


class MenuAxis(Enum):
    """Where a navigational entry lives in the app shell."""
    TOP = "TOP"
    SIDE = "SIDE"
    OTHER = "OTHER"


# Output contract: report tests assert these exact glyphs.
STATUS_GLYPHS = {
    RowStatus.PASS: '✅',
    RowStatus.FAIL: '❌',
    RowStatus.ERROR: '🛑',
    RowStatus.SKIP: '⏭️',
}

AXIS_LABELS = {
    MenuAxis.TOP: 'Top menu',
    MenuAxis.SIDE: 'Side menu',
}

AXIS_TITLES = {
    MenuAxis.TOP: 'Top Menu',
    MenuAxis.SIDE: 'Side Menu',
    MenuAxis.OTHER: 'Menu',
}

UNEXPECTED_ITEM_MESSAGE = 'Unexpected menu item found'

_LABEL_RE = re.compile(r'^(Top|Side)\s+menu(\s+EXTRA)?\s*[—–-]\s*(.*)$', re.IGNORECASE)
_EXTRA_RE = re.compile(r'EXTRA', re.IGNORECASE)

_SOLUTION_SUFFIXES = (
    re.compile(r'\s*[—–-]\s*(DEV|PROD|ENV)\s*$', re.IGNORECASE),
    re.compile(r'\s*-\s*Navigation Report\s*$', re.IGNORECASE),
    re.compile(r'\s*Solution\s*$', re.IGNORECASE),
)


def glyph(status: RowStatus) -> str:
    return STATUS_GLYPHS[status]


def _parse_flag(value: Any) -> bool:
    """Stored boolean, accepting "true"/"false" strings written by other collectors."""
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    return value is True or value == 1


def parse_menu_label(label: str) -> Tuple[MenuAxis, bool, str]:
    """
    Split a legacy free-text label into (axis, extra, item).

    Examples:
        >>> parse_menu_label("Top menu — AI Hub")
        (<MenuAxis.TOP: 'TOP'>, False, 'AI Hub')
        >>> parse_menu_label("Side menu EXTRA — Reports")
        (<MenuAxis.SIDE: 'SIDE'>, True, 'Reports')
    """
    text = (label or '').strip()
    match = _LABEL_RE.match(text)
    if not match:
        return MenuAxis.OTHER, bool(_EXTRA_RE.search(text)), text
    axis = MenuAxis.TOP if match.group(1).lower() == 'top' else MenuAxis.SIDE
    return axis, bool(match.group(2)), match.group(3).strip()


def normalize_solution_name(title: str) -> str:
    """
    Reduce a report title to its solution name.

    "Corporate Planning - Navigation Report — DEV" becomes "Corporate Planning".
    """
    name = (title or '').strip()
    for pattern in _SOLUTION_SUFFIXES:
        name = pattern.sub('', name)
    return name.strip()


@dataclass(frozen=True)
class Row:
    """One check's outcome."""

    field: str
    status: RowStatus
    section: str = ''
    expected: str = ''
    actual: str = ''
    detail: str = ''
    solution: str = ''
    axis: MenuAxis = MenuAxis.OTHER
    extra: bool = False

    @classmethod
    def passed(cls, field: str, section: str = '', expected: str = 'Step completes', **kwargs) -> 'Row':
        return cls(field=field, status=RowStatus.PASS, section=section,
                   expected=expected, actual='OK', **kwargs)

    @classmethod
    def failed(cls, field: str, expected: str, actual: str, section: str = '', **kwargs) -> 'Row':
        return cls(field=field, status=RowStatus.FAIL, section=section,
                   expected=expected, actual=actual, **kwargs)

    @classmethod
    def errored(cls, field: str, detail: str, section: str = '', expected: str = 'No error', **kwargs) -> 'Row':
        return cls(field=field, status=RowStatus.ERROR, section=section,
                   expected=expected, actual=detail, detail=detail, **kwargs)

    @classmethod
    def skipped(cls, field: str, section: str = '', reason: str = 'Skipped because a previous step failed.',
                **kwargs) -> 'Row':
        return cls(field=field, status=RowStatus.SKIP, section=section,
                   expected='Step completes', actual=reason, **kwargs)

    @classmethod
    def unexpected(cls, item: str, detail: str = '', axis: MenuAxis = MenuAxis.SIDE, **kwargs) -> 'Row':
        """An entry that was discovered in the UI but is not in the expected module list."""
        return cls(field=item, status=RowStatus.FAIL, expected='Not present', actual=item,
                   detail=detail, axis=axis, extra=True, **kwargs)

    @property
    def is_problem(self) -> bool:
        return self.status in (RowStatus.FAIL, RowStatus.ERROR) or self.extra

    @property
    def diagnostic(self) -> str:
        """Raw diagnostic text; empty for PASS and SKIP rows."""
        if self.status is RowStatus.ERROR:
            return self.detail or self.actual
        if self.status is RowStatus.FAIL:
            return self.detail
        return ''

    @property
    def label(self) -> str:
        prefix = AXIS_LABELS.get(self.axis)
        if not prefix:
            return self.field
        if self.extra:
            return f'{prefix} EXTRA — {self.field}'
        return f'{prefix} — {self.field}'

    @property
    def glyph(self) -> str:
        return glyph(self.status)

    def with_solution(self, solution: str) -> 'Row':
        return replace(self, solution=solution)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'label': self.label,
            'field': self.field,
            'status': self.status.value,
            'section': self.section,
            'expected': self.expected,
            'actual': self.actual,
            'detail': self.detail,
            'solution': self.solution,
            'axis': self.axis.value,
            'extra': self.extra,
        }
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Row':
        """
        Rebuild a row from a stored entry.

        Entries without an 'axis' are legacy label-only rows; their label is
        parsed once here.

        Raises:
            ValueError: If the status is missing or unknown
            TypeError: If the entry is not an object
            KeyError: If neither 'field' nor 'label' is present
        """
        if not isinstance(data, dict):
            raise TypeError(f"Row entry must be an object, got {type(data).__name__}")
        status = RowStatus.parse(data.get('status'))
        if 'axis' in data:
            axis = MenuAxis(str(data['axis']).upper())
            extra = _parse_flag(data.get('extra', False))
            item = data['field'] if 'field' in data else data['label']
        else:
            axis, extra, item = parse_menu_label(data.get('label') or data['field'])

        actual = data.get('actual')
        if actual is None:
            actual = 'OK' if status is RowStatus.PASS else data.get('detail', '')

        return cls(
            field=str(item),
            status=status,
            section=str(data.get('section') or ''),
            expected=str(data.get('expected') or ''),
            actual=str(actual or ''),
            detail=str(data.get('detail') or ''),
            solution=str(data.get('solution') or ''),
            axis=axis,
            extra=extra,
        )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CollectedReport:
    """A titled batch of rows produced by one logical check run."""

    title: str
    rows: List[Row] = field(default_factory=list)
    created_at: str = field(default_factory=_now_iso)
    mention: Optional[str] = None

    @property
    def solution(self) -> str:
        return normalize_solution_name(self.title)

    def solution_for(self, row: Row) -> str:
        return row.solution or self.solution

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'title': self.title,
            'rows': [row.to_dict() for row in self.rows],
            'createdAt': self.created_at,
        }
        if self.mention:
            data['mentionUserId'] = self.mention
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CollectedReport':
        """
        Rebuild a report from a stored entry.

        Raises:
            ValueError, KeyError, TypeError: If the entry is malformed
        """
        if not isinstance(data, dict):
            raise TypeError(f"Report entry must be an object, got {type(data).__name__}")
        rows = data.get('rows') or []
        if not isinstance(rows, list):
            raise TypeError("Report 'rows' must be a list")
        return cls(
            title=str(data['title']),
            rows=[Row.from_dict(row) for row in rows],
            created_at=str(data.get('createdAt') or data.get('created_at') or ''),
            mention=data.get('mentionUserId') or data.get('mention') or None,
        )


def flatten_rows(reports: List[CollectedReport]) -> List[Row]:
    return [row for report in reports for row in report.rows]
