"""
Report publishing.

Glue between the checks and the delivery pieces: in collect mode a finished
check appends its rows to the shared collector, otherwise it is rendered and
posted straight away. flush() is the single step that turns everything
collected during a run into one combined message.
"""

import logging
from typing import Iterable, Mapping, Optional, Sequence

from config_manager import ReportSettings
from logging_config import log_report_preview
from report_collector import CollectorStore
from report_renderer import ReportRenderer
from report_rows import CollectedReport, Row
from resilience import RetryManager, RetryStrategy
from webhook_sender import DeliveryResult, DeliveryStatus, WebhookSender


class ReportPublisher:
    """
    Publish check results according to ReportSettings.

    Args:
        settings: Reporting settings for this run
        store: Collector store (defaults to one at settings.collect_path)
        renderer: Report renderer (defaults to one using settings.mention)
        sender: Webhook sender (defaults to one posting to settings.webhook_url)
    """

    def __init__(self, settings: ReportSettings, store: Optional[CollectorStore] = None,
                 renderer: Optional[ReportRenderer] = None, sender: Optional[WebhookSender] = None):
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.store = store or CollectorStore(settings.collect_path, settings.store_layout)
        self.renderer = renderer or ReportRenderer(settings.mention, settings.max_detail_length)
        self.sender = sender or WebhookSender(
            settings.webhook_url,
            timeout=settings.timeout,
            retry_manager=RetryManager(max_retries=settings.max_retries, base_delay=1.0, max_delay=5.0,
                                       strategy=RetryStrategy.EXPONENTIAL_WITH_JITTER),
        )

    @property
    def env_label(self) -> str:
        return self.settings.env_label

    def _send(self, function_name: str, text: str) -> DeliveryResult:
        log_report_preview(function_name, text, self.logger)
        return self.sender.send(text)

    def publish_menu_report(self, title: str, rows: Sequence[Row],
                            include_error_details: bool = True,
                            elapsed_seconds: Optional[int] = None) -> Optional[DeliveryResult]:
        """
        Collect or send one check's rows.

        elapsed_seconds is shown as a "Total time" line when the report is sent
        directly; collected reports are combined at flush time without it.

        Returns:
            DeliveryResult when the report was sent, None when it was collected
        """
        if self.settings.collect:
            self.store.append(CollectedReport(title=title, rows=list(rows), mention=self.settings.mention or None))
            return None

        text = self.renderer.render_flat(title, list(rows), self.env_label, include_error_details,
                                          elapsed_seconds=elapsed_seconds)
        return self._send('publish_menu_report', text)

    def publish_detailed_report(self, title: str, rows: Sequence[Row],
                                links: Optional[Mapping[str, str]] = None,
                                errors: Optional[Sequence[str]] = None) -> DeliveryResult:
        text = self.renderer.render_detailed(title, list(rows), self.env_label, links=links, errors=errors)
        return self._send('publish_detailed_report', text)

    def publish_text(self, title: str, lines: Iterable[str]) -> DeliveryResult:
        return self._send('publish_text', self.renderer.render_text(title, lines))

    def flush(self, title: Optional[str] = None) -> DeliveryResult:
        """
        Render everything collected into one message, send it and clear the store.

        The store is kept when the webhook could not be reached, so a later
        flush can retry. An empty store is a SKIPPED result, and so is a
        flush without a webhook URL, which leaves the store untouched.
        """
        if not self.sender.configured:
            self.logger.info(f"ReportPublisher: No webhook URL configured; keeping {self.store.path} for a later flush.")
            return DeliveryResult(DeliveryStatus.SKIPPED)

        reports = self.store.read_all()
        if not reports:
            self.logger.info(f"ReportPublisher: No collected reports in {self.store.path}; nothing to flush.")
            return DeliveryResult(DeliveryStatus.SKIPPED)

        title = title or self.settings.combined_title
        text = self.renderer.render(reports, self.env_label, title)
        result = self._send('flush', text)

        if result.status is DeliveryStatus.FAILED:
            self.logger.warning(f"ReportPublisher: Keeping {len(reports)} collected reports in {self.store.path}")
            return result

        self.store.clear()
        self.logger.info(f"ReportPublisher: Flushed {len(reports)} collected reports ({result.status.value})")
        return result

    def flush_or_warn(self, title: Optional[str] = None) -> DeliveryResult:
        """Like flush, but an empty collector posts a warning message instead of staying silent."""
        if self.store.read_all():
            return self.flush(title)

        text = self.renderer.render_empty(self.env_label, title or self.settings.combined_title, self.store.path)
        self.logger.warning(f"ReportPublisher: No rows were collected in {self.store.path}")
        return self._send('flush_or_warn', text)
