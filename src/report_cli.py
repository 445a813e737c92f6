#!/usr/bin/env python3
"""
report_cli.py - Command line entry point for navigation reports

Subcommands:
    clear        Empty the collector for the current environment
    flush        Post everything collected as one combined message, then clear
    run          Per environment: clear, run the test command, flush
    clean-logs   Remove screenshots, log files and CSV exports (CLEAR_LOGS=1 only)

Usage:
    navreport clear
    navreport flush --title "Solutions - Navigation Report"
    navreport run --env dev --env prod -- python -m pytest tests/solutions
    CLEAR_LOGS=1 navreport clean-logs
"""

import argparse
import glob
import logging
import os
import subprocess
import sys
from typing import Dict, List, Mapping, Optional

from dotenv import dotenv_values, load_dotenv

from config_manager import ReportSettings, load_config_if_present
from logging_config import setup_logging
from report_collector import CollectorStore, default_collect_path
from report_publisher import ReportPublisher
from run_outcomes import Outcome, RunOutcomeTracker
from webhook_sender import DeliveryStatus


logger = logging.getLogger(__name__)

CLEAN_LOG_PATTERNS = ('*.png', '*_log.txt', '*.csv')


def build_settings(environ: Optional[Mapping[str, str]] = None) -> ReportSettings:
    return ReportSettings.from_sources(load_config_if_present(), environ)


def env_for_run(env_name: str, env_file: Optional[str] = None,
                base_environ: Optional[Mapping[str, str]] = None,
                results_dir: str = 'test-results') -> Dict[str, str]:
    """
    Environment for one run of the test command.

    Values already set in the process environment win over the env file
    (.env.<env_name> unless env_file is given). TARGET_ENV, SLACK_COLLECT and
    SLACK_COLLECT_PATH are always set for the run.
    """
    environ = dict(os.environ if base_environ is None else base_environ)
    env_file = env_file or f'.env.{env_name}'
    if os.path.exists(env_file):
        for key, value in dotenv_values(env_file).items():
            if value is not None:
                environ.setdefault(key, value)
        logger.info(f"env_for_run(): Loaded {env_file}")
    else:
        logger.warning(f"env_for_run(): Env file {env_file} not found; using the current environment.")

    environ['TARGET_ENV'] = env_name
    environ['SLACK_COLLECT'] = '1'
    environ['SLACK_COLLECT_PATH'] = default_collect_path(env_name, results_dir)
    return environ


def cmd_clear(args: argparse.Namespace) -> int:
    settings = build_settings()
    CollectorStore(settings.collect_path, settings.store_layout).clear()
    return 0


def cmd_flush(args: argparse.Namespace) -> int:
    settings = build_settings()
    result = ReportPublisher(settings).flush(args.title)
    return 1 if result.status is DeliveryStatus.FAILED else 0


def run_environment(env_name: str, command: List[str], env_file: Optional[str] = None,
                    title: Optional[str] = None) -> Outcome:
    """Clear the collector, run command with the environment's settings, then flush."""
    environ = env_for_run(env_name, env_file)
    settings = build_settings(environ)
    publisher = ReportPublisher(settings)

    publisher.store.clear()
    logger.info(f"run_environment(): [{settings.env_label}] Running: {' '.join(command)}")
    completed = subprocess.run(command, env=environ)

    result = publisher.flush_or_warn(title)
    logger.info(f"run_environment(): [{settings.env_label}] Exit code {completed.returncode}, "
                f"report {result.status.value}")

    if completed.returncode != 0:
        return Outcome.failure(env_name, f"test command exited with {completed.returncode}")
    return Outcome.success(env_name, completed.returncode)


def cmd_run(args: argparse.Namespace) -> int:
    command = list(args.test_command)
    if not command:
        command = [sys.executable, '-m', 'pytest']

    tracker = RunOutcomeTracker('navreport run')
    # Every environment runs even when an earlier one failed.
    for env_name in args.env or ['dev']:
        env_name = env_name.strip().lower()
        try:
            outcome = run_environment(env_name, command, args.env_file, args.title)
        except Exception as e:
            outcome = Outcome.failure(env_name, e, fatal=True)
        tracker.record(outcome)

    logger.info(f"cmd_run(): {tracker.get_summary()}")
    return tracker.exit_code()


def clean_logs(logs_dir: str, environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """
    Delete screenshots, log files and CSV exports from logs_dir.

    Only acts when CLEAR_LOGS=1. Returns the removed paths.
    """
    environ = os.environ if environ is None else environ
    if environ.get('CLEAR_LOGS') != '1':
        logger.info("clean_logs(): Skipped clearing logs (CLEAR_LOGS != 1).")
        return []

    removed = []
    for pattern in CLEAN_LOG_PATTERNS:
        for path in glob.glob(os.path.join(logs_dir, pattern)):
            os.remove(path)
            removed.append(path)
    os.makedirs(logs_dir, exist_ok=True)
    logger.info(f"clean_logs(): Removed {len(removed)} files from {logs_dir}")
    return removed


def cmd_clean_logs(args: argparse.Namespace) -> int:
    clean_logs(build_settings().logs_dir)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='navreport', description="Collect, flush and post navigation check reports.")
    subparsers = parser.add_subparsers(dest='command_name', required=True)

    clear = subparsers.add_parser('clear', help="Empty the collector for the current environment.")
    clear.set_defaults(func=cmd_clear)

    flush = subparsers.add_parser('flush', help="Post all collected reports as one message, then clear.")
    flush.add_argument('--title', help="Title of the combined report.")
    flush.set_defaults(func=cmd_flush)

    run = subparsers.add_parser('run', help="Clear, run the test command and flush, per environment.",
                                epilog="Everything after '--' is the test command (default: python -m pytest).")
    run.add_argument('--env', action='append',
                     help="Environment name (repeatable, e.g. --env dev --env prod). Default: dev.")
    run.add_argument('--env-file', help="Env file to load instead of .env.<env>.")
    run.add_argument('--title', help="Title of the combined report.")
    run.set_defaults(func=cmd_run)

    clean = subparsers.add_parser('clean-logs', help="Remove screenshots, log files and CSVs when CLEAR_LOGS=1.")
    clean.set_defaults(func=cmd_clean_logs)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    argv = sys.argv[1:] if argv is None else list(argv)
    test_command = []
    if '--' in argv:
        split = argv.index('--')
        argv, test_command = argv[:split], argv[split + 1:]

    args = build_parser().parse_args(argv)
    args.test_command = test_command
    setup_logging('navreport')

    try:
        return args.func(args)
    except Exception as e:
        logger.exception(f"main(): navreport {args.command_name} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
