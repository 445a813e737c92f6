"""Tests for the navreport command line."""
import os
import sys
from unittest.mock import Mock, patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

import report_cli
from report_rows import CollectedReport, Row
from report_collector import CollectorStore
from webhook_sender import DeliveryResult, DeliveryStatus


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Run every test from an empty directory with a clean reporting environment."""
    monkeypatch.chdir(tmp_path)
    for name in ('SLACK_WEBHOOK_URL', 'WEBHOOK_URL', 'SLACK_COLLECT', 'SLACK_COLLECT_PATH',
                 'TARGET_ENV', 'BASE_URL', 'CLEAR_LOGS', 'LOGS_DIR'):
        monkeypatch.delenv(name, raising=False)
    with patch('report_cli.setup_logging'):
        yield


class TestEnvForRun:
    """Test suite for env_for_run()."""

    def test_env_file_values_do_not_override_process_env(self, tmp_path):
        (tmp_path / '.env.dev').write_text('BASE_URL=https://dev.example.com\nSLACK_MENTION=<@U1>\n',
                                           encoding='utf-8')
        environ = report_cli.env_for_run('dev', base_environ={'SLACK_MENTION': '<@U2>'})
        assert environ['BASE_URL'] == 'https://dev.example.com'
        assert environ['SLACK_MENTION'] == '<@U2>'
        assert environ['TARGET_ENV'] == 'dev'
        assert environ['SLACK_COLLECT'] == '1'
        assert environ['SLACK_COLLECT_PATH'] == os.path.join('test-results', 'slack-dev.jsonl')

    def test_missing_env_file_is_tolerated(self):
        environ = report_cli.env_for_run('prod', base_environ={})
        assert environ['TARGET_ENV'] == 'prod'


class TestCommands:
    """Test suite for the subcommands."""

    def test_clear(self, tmp_path):
        path = tmp_path / 'collector.jsonl'
        store = CollectorStore(str(path))
        store.append(CollectedReport('Home', [Row.passed('Home')]))
        with patch.dict(os.environ, {'SLACK_COLLECT_PATH': str(path)}):
            assert report_cli.main(['clear']) == 0
        assert store.read_all() == []

    def test_flush_exit_code_follows_transport(self):
        publisher = Mock()
        publisher.flush.return_value = DeliveryResult(DeliveryStatus.FAILED, error='unreachable')
        with patch('report_cli.ReportPublisher', return_value=publisher):
            assert report_cli.main(['flush', '--title', 'Nightly']) == 1
        publisher.flush.assert_called_once_with('Nightly')

    def test_flush_rejected_is_not_an_error(self):
        publisher = Mock()
        publisher.flush.return_value = DeliveryResult(DeliveryStatus.REJECTED, status_code=400)
        with patch('report_cli.ReportPublisher', return_value=publisher):
            assert report_cli.main(['flush']) == 0

    def test_run_runs_every_env_and_fails_afterwards(self):
        publisher = Mock()
        publisher.flush_or_warn.return_value = DeliveryResult(DeliveryStatus.SENT, status_code=200)
        with patch('report_cli.ReportPublisher', return_value=publisher), \
                patch('report_cli.subprocess.run', side_effect=[Mock(returncode=1), Mock(returncode=0)]) as run:
            code = report_cli.main(['run', '--env', 'dev', '--env', 'prod', '--', 'pytest', 'tests/solutions'])

        assert code == 1
        assert run.call_count == 2
        first_env = run.call_args_list[0][1]['env']
        second_env = run.call_args_list[1][1]['env']
        assert run.call_args_list[0][0][0] == ['pytest', 'tests/solutions']
        assert (first_env['TARGET_ENV'], second_env['TARGET_ENV']) == ('dev', 'prod')
        assert publisher.store.clear.call_count == 2
        assert publisher.flush_or_warn.call_count == 2

    def test_run_succeeds_when_every_env_passes(self):
        publisher = Mock()
        publisher.flush_or_warn.return_value = DeliveryResult(DeliveryStatus.SKIPPED)
        with patch('report_cli.ReportPublisher', return_value=publisher), \
                patch('report_cli.subprocess.run', return_value=Mock(returncode=0)) as run:
            assert report_cli.main(['run']) == 0
        assert run.call_args[0][0] == [sys.executable, '-m', 'pytest']

    def test_exception_exits_with_one(self):
        with patch('report_cli.cmd_clear', side_effect=RuntimeError('disk full')):
            assert report_cli.main(['clear']) == 1


class TestCleanLogs:
    """Test suite for clean_logs()."""

    def make_logs(self, tmp_path):
        logs = tmp_path / 'logs'
        logs.mkdir()
        for name in ('flow_1_login.png', 'navreport_log.txt', 'menu_test_results.csv', 'keep.md'):
            (logs / name).write_text('x', encoding='utf-8')
        return logs

    def test_skipped_without_flag(self, tmp_path):
        logs = self.make_logs(tmp_path)
        assert report_cli.clean_logs(str(logs), environ={}) == []
        assert len(list(logs.iterdir())) == 4

    def test_removes_generated_files(self, tmp_path):
        logs = self.make_logs(tmp_path)
        removed = report_cli.clean_logs(str(logs), environ={'CLEAR_LOGS': '1'})
        assert len(removed) == 3
        assert [p.name for p in logs.iterdir()] == ['keep.md']
