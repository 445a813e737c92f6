#!/usr/bin/env python3
"""
report_collector.py - Cross-process collector for check reports

Independent test processes each append one CollectedReport per logical check
to a shared file; a single flush step reads them back, renders one combined
message and clears the file.

Two persisted layouts are understood:
- jsonl: one JSON object per line. Appends are a single O_APPEND write of a
  whole line, so concurrent writers never overwrite each other's entries.
- json: one JSON array, rewritten on every append (single writer only).

Reading detects the layout from the file contents, whichever layout the
store was configured to write.
"""

import json
import logging
import os
from enum import Enum
from typing import List, Union

from report_rows import CollectedReport


class StoreLayout(Enum):
    """Persisted layout of the collector file."""
    JSONL = "jsonl"
    JSON = "json"


def default_collect_path(env_name: str = '', results_dir: str = 'test-results') -> str:
    """Collector path derived from the environment name, e.g. test-results/slack-dev.jsonl."""
    env = (env_name or 'env').strip().lower() or 'env'
    return os.path.join(results_dir, f'slack-{env}.jsonl')


class CollectorStore:
    """Append-only, file-backed store of CollectedReport entries."""

    def __init__(self, path: str, layout: Union[StoreLayout, str] = StoreLayout.JSONL):
        """Initialize the store.

        Args:
            path: Collector file path
            layout: StoreLayout (or its value) used when writing
        """
        self.logger = logging.getLogger(__name__)
        self.path = path
        self.layout = StoreLayout(layout) if not isinstance(layout, StoreLayout) else layout

    def _ensure_dir(self) -> None:
        parent = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(parent, exist_ok=True)

    def clear(self) -> None:
        """Truncate (or create) the collector so it holds no reports."""
        self._ensure_dir()
        empty = '[]' if self.layout is StoreLayout.JSON else ''
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write(empty)
        self.logger.info(f"CollectorStore: Cleared collector: {self.path}")

    def append(self, report: CollectedReport) -> None:
        """Add one report without disturbing previously appended reports."""
        self._ensure_dir()
        if self.layout is StoreLayout.JSON:
            self._append_json(report)
        else:
            self._append_jsonl(report)
        self.logger.info(
            f"CollectorStore: Appended '{report.title}' ({len(report.rows)} rows) to {self.path}"
        )

    def _append_jsonl(self, report: CollectedReport) -> None:
        line = (json.dumps(report.to_dict(), ensure_ascii=False) + '\n').encode('utf-8')
        fd = os.open(self.path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
        try:
            os.write(fd, line)
        finally:
            os.close(fd)

    def _append_json(self, report: CollectedReport) -> None:
        existing = [r.to_dict() for r in self.read_all()]
        existing.append(report.to_dict())
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(existing, f, ensure_ascii=False, indent=2)

    def read_all(self) -> List[CollectedReport]:
        """
        Return every report appended since the last clear, in append order.

        A missing or empty file yields []. Malformed entries are logged and
        skipped instead of failing the whole read.
        """
        if not os.path.exists(self.path):
            return []

        with open(self.path, 'r', encoding='utf-8') as f:
            raw = f.read().strip()
        if not raw:
            return []

        if raw.startswith('['):
            entries = self._parse_json_array(raw)
        else:
            entries = self._parse_jsonl(raw)

        reports = []
        for index, entry in enumerate(entries):
            try:
                reports.append(CollectedReport.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning(f"CollectorStore: Skipping malformed report #{index + 1} in {self.path}: {e}")
        return reports

    def _parse_json_array(self, raw: str) -> list:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            self.logger.warning(f"CollectorStore: Collector {self.path} is not valid JSON: {e}")
            return []
        if not isinstance(data, list):
            self.logger.warning(f"CollectorStore: Collector {self.path} does not hold a JSON array")
            return []
        return data

    def _parse_jsonl(self, raw: str) -> list:
        entries = []
        for line_no, line in enumerate(raw.split('\n'), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError as e:
                self.logger.warning(f"CollectorStore: Skipping malformed line {line_no} in {self.path}: {e}")
        return entries

    def drain(self) -> List[CollectedReport]:
        """Read every report, then clear the store."""
        reports = self.read_all()
        self.clear()
        return reports

    def exists(self) -> bool:
        return os.path.exists(self.path)
