"""
Centralized logging configuration for local and CI runs.

Environment Behavior:
    - Local Development: Logs written to files in logs/ directory
    - CI (CI=true): Logs written to stdout so they show up in the job console

Simple Usage:
    from logging_config import setup_logging
    setup_logging('navreport')
    logging.info("This will go to the right place automatically")

Utility Functions:
    from logging_config import log_report_preview
    log_report_preview("flush", rendered_text, logger)

Webhook URLs and tokens are masked by SensitiveDataFilter on every handler
installed here.
"""

import logging
import os
import re
import sys


# ============================================================================
# SIMPLE LOGGING
# ============================================================================

class SensitiveDataFilter(logging.Filter):
    """Filter to mask webhook URLs and secrets in logs."""

    # Patterns for sensitive data
    PATTERNS = {
        'slack_webhook': r'https://hooks\.slack\.com/services/[^\s"\']+',
        'webhook_url': r'(webhook[_-]?url["\']?\s*[:=]\s*["\']?)([^"\'}\s]+)',
        'password': r'(password["\']?\s*[:=]\s*["\']?)([^"\'}\s]+)',
        'token': r'(token["\']?\s*[:=]\s*["\']?)([^"\'}\s]+)',
        'authorization': r'(authorization["\']?\s*[:=]\s*["\']?Bearer\s+)([^"\'}\s]+)',
    }

    MASK = '****[REDACTED]****'

    @classmethod
    def mask(cls, text: str) -> str:
        """Return text with every sensitive value replaced by the mask."""
        for name, pattern in cls.PATTERNS.items():
            if name == 'slack_webhook':
                text = re.sub(pattern, cls.MASK, text, flags=re.IGNORECASE)
            else:
                text = re.sub(pattern, lambda m: m.group(1) + cls.MASK, text, flags=re.IGNORECASE)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and mask sensitive data."""
        if isinstance(record.msg, str):
            record.msg = self.mask(record.msg)

        # Also filter args if they're strings
        if isinstance(record.args, dict):
            record.args = {
                key: self.mask(value) if isinstance(value, str) else value
                for key, value in record.args.items()
            }
        elif isinstance(record.args, tuple):
            record.args = tuple(
                self.mask(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        return True


def setup_logging(script_name: str, level=logging.INFO, log_dir: str = None):
    """
    Configure logging based on execution environment.

    Args:
        script_name (str): Name of the script (used for log filename in local mode)
        level (int): Logging level (default: logging.INFO)
        log_dir (str): Directory for local log files (default: LOGS_DIR or 'logs')

    Environment Detection:
        - CI='true': Logs to stdout (for the CI console)
        - Otherwise: Logs to logs/{script_name}_log.txt

    Example:
        setup_logging('navreport')
        logging.info("Flushing collected reports...")
    """
    is_ci = os.getenv('CI', '').lower() in ('1', 'true', 'yes')

    # Common format for all logs
    log_format = "%(asctime)s - %(levelname)s - %(message)s"
    date_format = '%Y-%m-%d %H:%M:%S'

    if is_ci:
        # CI MODE: Log to stdout so it appears in the job console
        handler = logging.StreamHandler(sys.stdout)
        destination = 'stdout'
    else:
        # LOCAL MODE: Log to file
        log_dir = log_dir or os.getenv('LOGS_DIR') or 'logs'
        os.makedirs(log_dir, exist_ok=True)
        destination = f"{log_dir}/{script_name}_log.txt"
        handler = logging.FileHandler(destination, mode='a', encoding='utf-8')

    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True  # Override any existing configuration
    )
    logging.info(f"Logging configured for {'CI' if is_ci else 'local development'} ({destination}) - {script_name}")


# ============================================================================
# LOGGING UTILITIES
# ============================================================================

def log_report_preview(function_name: str, text: str, logger: logging.Logger = None) -> None:
    """
    Log a rendered report with first 100 and last 100 characters plus length.

    Keeps log files readable when a combined report runs to thousands of
    characters while still showing enough to confirm what was sent.

    Args:
        function_name: Name of the calling function (for debugging)
        text: The rendered message
        logger: Logger instance to use. If None, uses this module's logger.

    Examples:
        >>> log_report_preview("flush", "*Report* — *DEV*", logger)
        INFO - flush: Report has 16 chars: *Report* — *DEV*
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    if not text:
        logger.warning(f"{function_name}: Report text is empty")
        return

    text_len = len(text)

    if text_len <= 200:
        # If text is short, just show it all
        logger.info(f"{function_name}: Report has {text_len} chars: {text}")
    else:
        # Show first 100, ellipsis, last 100, and total length
        first_100 = text[:100].replace('\n', ' ').replace('\r', ' ')
        last_100 = text[-100:].replace('\n', ' ').replace('\r', ' ')
        logger.info(f"{function_name}: Report has {text_len:,} chars: {first_100}......{last_100}")
