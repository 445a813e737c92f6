#!/usr/bin/env python3
"""
run_outcomes.py - Run Outcome Tracking Utility

Collects the success or failure of each unit of work in a run (a check, an
environment run, a flush) as explicit Outcome values instead of letting
exceptions decide control flow. The tracker then answers the two questions a
runner needs at the end:
- Did anything fatal happen?
- What exit code should the process return?
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional


@dataclass(frozen=True)
class Outcome:
    """Result of one unit of work."""

    name: str
    ok: bool
    error: str = ''
    value: Any = None
    fatal: bool = False

    @classmethod
    def success(cls, name: str, value: Any = None) -> 'Outcome':
        return cls(name=name, ok=True, value=value)

    @classmethod
    def failure(cls, name: str, error: Any, fatal: bool = False) -> 'Outcome':
        message = str(error) if not isinstance(error, str) else error
        return cls(name=name, ok=False, error=message or type(error).__name__, fatal=fatal)


class RunOutcomeTracker:
    """Tracks outcomes for a single run."""

    def __init__(self, run_name: str):
        """Initialize run outcome tracker.

        Args:
            run_name: Name of the run being tracked (used in logs and the summary)
        """
        self.logger = logging.getLogger(__name__)
        self.run_name = run_name
        self.started_at = datetime.now().isoformat()
        self.outcomes: List[Outcome] = []

    def record(self, outcome: Outcome) -> Outcome:
        """Record an outcome and return it."""
        self.outcomes.append(outcome)
        if outcome.ok:
            self.logger.info(f"RunOutcomeTracker: {outcome.name} succeeded")
        else:
            level = logging.ERROR if outcome.fatal else logging.WARNING
            self.logger.log(level, f"RunOutcomeTracker: {outcome.name} failed: {outcome.error}")
        return outcome

    def capture(self, name: str, func: Callable[[], Any], fatal: bool = False) -> Outcome:
        """Run func and record its outcome. Never raises for ordinary exceptions.

        Args:
            name: Name of the unit of work
            func: Zero-argument callable to run
            fatal: Whether a failure should be treated as fatal for the run

        Returns:
            Outcome: success with func's return value, or failure with the error text
        """
        try:
            value = func()
        except Exception as e:
            return self.record(Outcome.failure(name, e, fatal=fatal))
        return self.record(Outcome.success(name, value))

    @property
    def failures(self) -> List[Outcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def has_fatal(self) -> bool:
        return any(o.fatal for o in self.failures)

    def exit_code(self) -> int:
        """0 when every outcome succeeded, 1 otherwise."""
        return 1 if self.failures else 0

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of tracked outcomes.

        Returns:
            Dictionary containing tracking summary
        """
        return {
            'run_name': self.run_name,
            'start_time': self.started_at,
            'total': len(self.outcomes),
            'succeeded': len(self.outcomes) - len(self.failures),
            'failed': len(self.failures),
            'fatal': self.has_fatal,
            'failures': [f"{o.name}: {o.error}" for o in self.failures],
        }

    def first_failure(self) -> Optional[Outcome]:
        failures = self.failures
        return failures[0] if failures else None
