"""
Error text normalization for report summaries.

Raw failure text from Playwright and the check helpers is noisy: colour codes,
multi-line call logs, evidence suffixes (| url=... | shot=...) and repeated
prefixes. This module reduces it to a short, classified, human-readable cause
so identical failures collapse into one line when deduplicated.

Functions:
    normalize_error: Reduce raw failure text to a short cause
    classify_error: Report which classification rule applies
    dedupe_errors: Normalize and drop repeats, keeping first-seen order
"""

import re
from enum import Enum
from typing import Iterable, List, Optional
from urllib.parse import urlparse


UNKNOWN_ERROR_MESSAGE = 'Unknown error'
BROWSER_CLOSED_MESSAGE = (
    'Browser/Page closed unexpectedly (possible navigation crash, logout, reload, or app error).'
)
TIMEOUT_MESSAGE = 'Test timed out while waiting for UI/network.'
UNEXPECTED_URL_MESSAGE = 'Navigated to unexpected URL'
NOT_FOUND_MESSAGE = 'Page or menu item not found (404).'
EXPECT_FAILED_PREFIX = 'Expect failed: '

DEFAULT_MAX_LENGTH = 160
ELLIPSIS = '…'

_ANSI_RE = re.compile(r'\x1b\[[0-9;]*m')
_EVIDENCE_RE = re.compile(r'\s*\|\s*(?:url|shot)=[^\n]*', re.IGNORECASE)
_WHITESPACE_RE = re.compile(r'\s+')

_BROWSER_CLOSED_RE = re.compile(r'Target page, context or browser has been closed', re.IGNORECASE)
_TIMEOUT_RE = re.compile(r'\b(?:Test )?timeout (?:of )?\d+\s*ms exceeded', re.IGNORECASE)
_URL_ASSERT_RE = re.compile(r'toHaveURL|to_have_url|Expected pattern:', re.IGNORECASE)
_RECEIVED_QUOTED_RE = re.compile(r'Received string:\s*["\']([^"\']+)["\']', re.IGNORECASE)
_RECEIVED_BARE_RE = re.compile(r'Received string:\s*(\S+)', re.IGNORECASE)
_NOT_FOUND_RE = re.compile(r'not found|404', re.IGNORECASE)

_ERROR_PREFIX_RE = re.compile(r'^(?:Error:\s*)+', re.IGNORECASE)
_EXPECT_PREFIX_RE = re.compile(r'^expect\.[^:]+:\s*', re.IGNORECASE)
_CANONICAL_URL_RE = re.compile(r'^' + re.escape(UNEXPECTED_URL_MESSAGE) + r'(?: \(.*\))?$')

_FIXED_MESSAGES = frozenset({
    UNKNOWN_ERROR_MESSAGE,
    BROWSER_CLOSED_MESSAGE,
    TIMEOUT_MESSAGE,
    NOT_FOUND_MESSAGE,
})


class ErrorCause(Enum):
    """Classification of a raw failure message."""
    UNKNOWN = "unknown"
    BROWSER_CLOSED = "browser_closed"
    TIMEOUT = "timeout"
    UNEXPECTED_URL = "unexpected_url"
    NOT_FOUND = "not_found"
    GENERIC = "generic"


def strip_ansi(text: Optional[str]) -> str:
    """Remove terminal colour codes (ESC[...m)."""
    return _ANSI_RE.sub('', text or '')


def first_line(text: Optional[str]) -> str:
    """First line of text, ANSI-stripped and trimmed."""
    return strip_ansi(text).split('\n')[0].strip()


def strip_evidence(text: Optional[str]) -> str:
    """Drop the '| url=... | shot=...' evidence tail appended to step errors."""
    return _EVIDENCE_RE.sub('', text or '')


def collapse_whitespace(text: Optional[str]) -> str:
    return _WHITESPACE_RE.sub(' ', text or '').strip()


def shorten(text: Optional[str], max_length: int = 140) -> str:
    """
    Collapse whitespace and cut text to max_length characters.

    Truncated values end with a single ellipsis character and never exceed
    max_length.
    """
    value = collapse_whitespace(strip_ansi(text))
    if len(value) > max_length:
        return value[:max_length - 1] + ELLIPSIS
    return value


def _is_canonical(text: str) -> bool:
    return text in _FIXED_MESSAGES or bool(_CANONICAL_URL_RE.match(text))


def _received_url(text: str) -> str:
    match = _RECEIVED_QUOTED_RE.search(text) or _RECEIVED_BARE_RE.search(text)
    if not match:
        return ''
    received = match.group(1).strip()
    if received.lower().startswith('http'):
        try:
            path = urlparse(received).path
        except ValueError:
            return received
        return path or '/'
    return received


def _strip_prefixes(line: str) -> str:
    expect_failed = False
    while True:
        stripped = _ERROR_PREFIX_RE.sub('', line)
        match = _EXPECT_PREFIX_RE.match(stripped)
        if match:
            stripped = stripped[match.end():]
            expect_failed = True
        if stripped == line:
            break
        line = stripped
    if expect_failed and not line.startswith(EXPECT_FAILED_PREFIX):
        line = EXPECT_FAILED_PREFIX + line
    return line


def _prepare(raw: Optional[str]) -> str:
    return strip_evidence(strip_ansi(raw)).strip()


def classify_error(raw: Optional[str]) -> ErrorCause:
    """
    Return the classification rule that applies to raw failure text.

    Rules are checked in priority order: closed browser, test timeout,
    URL assertion mismatch, not found. Anything else is GENERIC.
    """
    text = _prepare(raw)
    if not text:
        return ErrorCause.UNKNOWN

    collapsed = collapse_whitespace(text)
    if collapsed == UNKNOWN_ERROR_MESSAGE:
        return ErrorCause.UNKNOWN
    if collapsed == BROWSER_CLOSED_MESSAGE or _BROWSER_CLOSED_RE.search(collapsed):
        return ErrorCause.BROWSER_CLOSED
    if collapsed == TIMEOUT_MESSAGE or _TIMEOUT_RE.search(collapsed):
        return ErrorCause.TIMEOUT
    if _CANONICAL_URL_RE.match(collapsed) or _URL_ASSERT_RE.search(collapsed):
        return ErrorCause.UNEXPECTED_URL
    if _NOT_FOUND_RE.search(collapsed):
        return ErrorCause.NOT_FOUND
    return ErrorCause.GENERIC


def normalize_error(raw: Optional[str], max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """
    Reduce raw failure text to a short, classified, human-readable cause.

    Args:
        raw: Raw error text (may be multi-line, coloured, with evidence tail)
        max_length: Upper bound for generic messages, ellipsis included

    Returns:
        str: Normalized message. normalize_error(normalize_error(s)) == normalize_error(s).

    Examples:
        >>> normalize_error("Test timeout of 90000ms exceeded.")
        'Test timed out while waiting for UI/network.'
        >>> normalize_error("Error: boom | url=https://x | shot=logs/a.png")
        'boom'
    """
    text = _prepare(raw)
    if not text:
        return UNKNOWN_ERROR_MESSAGE

    collapsed = collapse_whitespace(text)
    if _is_canonical(collapsed):
        return collapsed

    cause = classify_error(text)
    if cause is ErrorCause.BROWSER_CLOSED:
        return BROWSER_CLOSED_MESSAGE
    if cause is ErrorCause.TIMEOUT:
        return TIMEOUT_MESSAGE
    if cause is ErrorCause.UNEXPECTED_URL:
        received = _received_url(collapsed)
        return f'{UNEXPECTED_URL_MESSAGE} ({received})' if received else UNEXPECTED_URL_MESSAGE
    if cause is ErrorCause.NOT_FOUND:
        return NOT_FOUND_MESSAGE

    line = _strip_prefixes(collapse_whitespace(text.split('\n')[0]))
    if not line:
        return UNKNOWN_ERROR_MESSAGE
    return shorten(line, max_length)


def dedupe_errors(items: Iterable[Optional[str]], max_length: int = DEFAULT_MAX_LENGTH) -> List[str]:
    """
    Normalize every item and drop repeats, preserving first-seen order.

    Examples:
        >>> dedupe_errors(["A: foo", "B: bar", "A: foo"])
        ['A: foo', 'B: bar']
    """
    seen = set()
    out = []
    for item in items:
        normalized = normalize_error(item, max_length)
        if normalized not in seen:
            seen.add(normalized)
            out.append(normalized)
    return out
