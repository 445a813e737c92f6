"""Tests for error text normalization and deduplication."""
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from error_normalizer import (
    BROWSER_CLOSED_MESSAGE,
    NOT_FOUND_MESSAGE,
    TIMEOUT_MESSAGE,
    UNKNOWN_ERROR_MESSAGE,
    ErrorCause,
    classify_error,
    dedupe_errors,
    first_line,
    normalize_error,
    shorten,
    strip_ansi,
    strip_evidence,
)


URL_MISMATCH = (
    'Error: expect(page).toHaveURL(expected) failed\n\n'
    'Expected pattern: /\\/corporate\\/hr/i\n'
    'Received string:  "https://dev.example.com/corporate/finance?tab=1"\n'
    'Timeout: 15000ms\n\n'
    'Call log:\n  - waiting for navigation'
)

RAW_SAMPLES = [
    None,
    '',
    'Target page, context or browser has been closed\nCall log: ...',
    'Test timeout of 90000ms exceeded.',
    'locator.click: Timeout 30000ms exceeded.\n=========================== logs',
    URL_MISMATCH,
    'Error: Top menu item not found for: HR (/corporate/hr)',
    'Error: Error: something broke\n    at helper (page-utils.ts:10)',
    'expect.toBeVisible: Module not visible: Finance',
    '\x1b[31mboom\x1b[39m | url=https://dev.example.com/x | shot=logs/flow_1_x.png',
    'x' * 300,
]


class TestNormalizeError:
    """Test suite for normalize_error()."""

    @pytest.mark.parametrize('raw', [None, '', '   \n  '])
    def test_empty_input_is_unknown(self, raw):
        assert normalize_error(raw) == UNKNOWN_ERROR_MESSAGE

    def test_closed_browser(self):
        assert normalize_error(RAW_SAMPLES[2]) == BROWSER_CLOSED_MESSAGE

    def test_test_timeout(self):
        assert normalize_error('Test timeout of 90000ms exceeded.') == TIMEOUT_MESSAGE

    def test_action_timeout(self):
        assert normalize_error(RAW_SAMPLES[4]) == TIMEOUT_MESSAGE

    def test_url_mismatch_reports_received_path(self):
        assert normalize_error(URL_MISMATCH) == 'Navigated to unexpected URL (/corporate/finance)'

    def test_url_mismatch_without_received_value(self):
        assert normalize_error('expect(page).toHaveURL failed') == 'Navigated to unexpected URL'

    def test_url_mismatch_with_relative_received_value(self):
        raw = 'toHaveURL failed. Received string: /login'
        assert normalize_error(raw) == 'Navigated to unexpected URL (/login)'

    def test_not_found(self):
        assert normalize_error(RAW_SAMPLES[6]) == NOT_FOUND_MESSAGE
        assert normalize_error('Request failed with status 404') == NOT_FOUND_MESSAGE

    def test_generic_message_uses_first_line_without_error_prefixes(self):
        assert normalize_error(RAW_SAMPLES[7]) == 'something broke'

    def test_expect_prefix_is_rewritten(self):
        assert normalize_error(RAW_SAMPLES[8]) == 'Expect failed: Module not visible: Finance'

    def test_ansi_and_evidence_are_stripped(self):
        assert normalize_error(RAW_SAMPLES[9]) == 'boom'

    def test_long_message_is_truncated_with_ellipsis(self):
        result = normalize_error('x' * 300)
        assert len(result) == 160
        assert result.endswith('…')

    def test_custom_max_length(self):
        result = normalize_error('abcdefghij', max_length=5)
        assert result == 'abcd…'

    @pytest.mark.parametrize('raw', RAW_SAMPLES)
    def test_normalize_is_idempotent(self, raw):
        once = normalize_error(raw)
        assert normalize_error(once) == once


class TestClassifyError:
    """Test suite for classify_error()."""

    def test_priority_order(self):
        # A closed browser during a timed out test is reported as a closed browser.
        raw = 'Test timeout of 1000ms exceeded.\nTarget page, context or browser has been closed'
        assert classify_error(raw) is ErrorCause.BROWSER_CLOSED

    def test_url_assertion_with_timeout_suffix_is_url_mismatch(self):
        assert classify_error(URL_MISMATCH) is ErrorCause.UNEXPECTED_URL

    def test_unknown_and_generic(self):
        assert classify_error(None) is ErrorCause.UNKNOWN
        assert classify_error('Something else') is ErrorCause.GENERIC


class TestDedupeErrors:
    """Test suite for dedupe_errors()."""

    def test_keeps_first_seen_order(self):
        assert dedupe_errors(['A: foo', 'B: bar', 'A: foo']) == ['A: foo', 'B: bar']

    def test_collapses_by_normalized_value(self):
        items = ['Test timeout of 1000ms exceeded.', 'Test timeout of 2000ms exceeded.', 'other']
        assert dedupe_errors(items) == [TIMEOUT_MESSAGE, 'other']

    def test_is_idempotent(self):
        once = dedupe_errors(RAW_SAMPLES)
        assert dedupe_errors(once) == once

    def test_empty(self):
        assert dedupe_errors([]) == []


class TestHelpers:
    """Test suite for the small text helpers."""

    def test_strip_ansi(self):
        assert strip_ansi('\x1b[2mdim\x1b[22m') == 'dim'
        assert strip_ansi(None) == ''

    def test_first_line(self):
        assert first_line('  one  \ntwo') == 'one'

    def test_strip_evidence(self):
        assert strip_evidence('boom | url=https://x | shot=logs/a.png') == 'boom'

    def test_shorten(self):
        assert shorten('a   b\n c') == 'a b c'
        assert shorten('abcdef', 4) == 'abc…'
        assert shorten(None) == ''
