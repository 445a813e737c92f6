"""Tests for RunOutcomeTracker."""
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from run_outcomes import Outcome, RunOutcomeTracker


class TestOutcome:
    """Test suite for Outcome constructors."""

    def test_success(self):
        outcome = Outcome.success('flush', value=3)
        assert outcome.ok and outcome.value == 3 and outcome.error == ''

    def test_failure_from_exception(self):
        outcome = Outcome.failure('dev', RuntimeError('exit 1'))
        assert not outcome.ok
        assert outcome.error == 'exit 1'
        assert not outcome.fatal

    def test_failure_without_message_uses_type(self):
        assert Outcome.failure('dev', KeyError()).error == 'KeyError'


class TestRunOutcomeTracker:
    """Test suite for RunOutcomeTracker."""

    def test_capture_never_raises(self):
        tracker = RunOutcomeTracker('nightly')

        def explode():
            raise ValueError('boom')

        failed = tracker.capture('explode', explode, fatal=True)
        passed = tracker.capture('answer', lambda: 42)

        assert not failed.ok and failed.error == 'boom' and failed.fatal
        assert passed.ok and passed.value == 42
        assert tracker.failures == [failed]
        assert tracker.has_fatal
        assert tracker.first_failure() is failed

    def test_exit_code(self):
        tracker = RunOutcomeTracker('nightly')
        tracker.record(Outcome.success('dev'))
        assert tracker.exit_code() == 0
        tracker.record(Outcome.failure('prod', 'exit 1'))
        assert tracker.exit_code() == 1
        assert not tracker.has_fatal

    def test_summary(self):
        tracker = RunOutcomeTracker('nightly')
        tracker.record(Outcome.success('dev'))
        tracker.record(Outcome.failure('prod', 'exit 1'))
        summary = tracker.get_summary()
        assert summary['run_name'] == 'nightly'
        assert (summary['total'], summary['succeeded'], summary['failed']) == (2, 1, 1)
        assert summary['failures'] == ['prod: exit 1']
