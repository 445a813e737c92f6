"""Tests for ConfigManager and ReportSettings."""
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from config_manager import (
    DEFAULT_COMBINED_TITLE,
    ConfigError,
    ConfigManager,
    ReportSettings,
    load_config_if_present,
)
from environment import resolve_env_label
from report_collector import default_collect_path


class TestConfigManager:
    """Test suite for ConfigManager class."""

    def setup_method(self):
        """Reset singleton before each test."""
        ConfigManager._instance = None
        ConfigManager._config = None

    def teardown_method(self):
        ConfigManager._instance = None
        ConfigManager._config = None

    def test_singleton_pattern(self):
        """Verify singleton pattern works."""
        instance1 = ConfigManager.get_instance()
        instance2 = ConfigManager.get_instance()
        assert instance1 is instance2

    def test_project_config_has_reporting_section(self):
        """Verify the shipped config.yaml loads."""
        config = ConfigManager.get_instance().config
        assert isinstance(config, dict)
        assert 'reporting' in config
        assert 'solutions' in config

    def test_get_nested_and_default(self):
        assert ConfigManager.get('reporting.store_layout') == 'jsonl'
        assert ConfigManager.get('reporting.nonexistent', default='fallback') == 'fallback'
        assert ConfigManager.get('nonexistent_key', default='default_value') == 'default_value'

    def test_validate_required(self):
        assert ConfigManager.validate_required(['reporting', 'reporting.combined_title']) is True
        with pytest.raises(ConfigError):
            ConfigManager.validate_required(['reporting.missing_key'])

    def test_config_override_path(self, tmp_path, monkeypatch):
        path = tmp_path / 'custom.yaml'
        path.write_text('reporting:\n  logs_dir: custom-logs\n', encoding='utf-8')
        monkeypatch.setenv('NAVREPORT_CONFIG', str(path))
        ConfigManager.reload()
        assert ConfigManager.get('reporting.logs_dir') == 'custom-logs'

    def test_missing_file_raises(self, tmp_path, monkeypatch):
        monkeypatch.setenv('NAVREPORT_CONFIG', str(tmp_path / 'missing.yaml'))
        with pytest.raises(ConfigError):
            ConfigManager.get_instance()

    def test_invalid_yaml_raises(self, tmp_path, monkeypatch):
        path = tmp_path / 'broken.yaml'
        path.write_text('reporting: [unclosed\n', encoding='utf-8')
        monkeypatch.setenv('NAVREPORT_CONFIG', str(path))
        with pytest.raises(ConfigError):
            ConfigManager.get_instance()

    def test_load_config_if_present_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv('NAVREPORT_CONFIG', str(tmp_path / 'missing.yaml'))
        assert load_config_if_present() == {}


class TestReportSettings:
    """Test suite for ReportSettings.from_sources()."""

    def test_defaults(self):
        settings = ReportSettings.from_sources({}, {})
        assert settings.webhook_url == ''
        assert settings.collect is False
        assert settings.collect_path == os.path.join('test-results', 'slack-env.jsonl')
        assert settings.combined_title == DEFAULT_COMBINED_TITLE
        assert settings.env_label == 'ENV'
        assert not settings.webhook_configured

    def test_environment_values(self):
        environ = {
            'SLACK_WEBHOOK_URL': ' https://hooks.example.com/x ',
            'SLACK_COLLECT': '1',
            'TARGET_ENV': 'prod',
            'BASE_URL': 'https://prod.example.com/',
            'SLACK_MENTION': '<@U1>',
            'SLACK_COMBINED_TITLE': 'Nightly',
            'WEBHOOK_TIMEOUT': '3.5',
        }
        settings = ReportSettings.from_sources({}, environ)
        assert settings.webhook_url == 'https://hooks.example.com/x'
        assert settings.collect is True
        assert settings.collect_path == os.path.join('test-results', 'slack-prod.jsonl')
        assert settings.base_url == 'https://prod.example.com'
        assert settings.env_label == 'PROD'
        assert settings.mention == '<@U1>'
        assert settings.combined_title == 'Nightly'
        assert settings.timeout == 3.5

    def test_webhook_url_fallback_and_collect_flag(self):
        settings = ReportSettings.from_sources({}, {'WEBHOOK_URL': 'https://x', 'SLACK_COLLECT': 'true'})
        assert settings.webhook_url == 'https://x'
        assert settings.collect is False

    def test_explicit_collect_path_wins(self):
        settings = ReportSettings.from_sources({}, {'SLACK_COLLECT_PATH': 'out/c.jsonl', 'TARGET_ENV': 'dev'})
        assert settings.collect_path == 'out/c.jsonl'

    def test_default_collect_path_matches_collector(self):
        settings = ReportSettings.from_sources({'reporting': {'results_dir': 'results'}}, {'TARGET_ENV': 'Staging'})
        assert settings.collect_path == default_collect_path('Staging', 'results')

    def test_config_section_is_used(self):
        config = {'reporting': {'results_dir': 'results', 'mention': '<@U2>', 'store_layout': 'JSON',
                                'webhook_max_retries': 0}}
        settings = ReportSettings.from_sources(config, {'TARGET_ENV': 'Dev'})
        assert settings.collect_path == os.path.join('results', 'slack-dev.jsonl')
        assert settings.mention == '<@U2>'
        assert settings.store_layout == 'json'
        assert settings.max_retries == 1

    def test_invalid_number_raises(self):
        with pytest.raises(ConfigError):
            ReportSettings.from_sources({}, {'WEBHOOK_TIMEOUT': 'soon'})


class TestEnvLabel:
    """Test suite for resolve_env_label()."""

    @pytest.mark.parametrize('target, base, expected', [
        ('staging', 'https://dev.example.com', 'STAGING'),
        ('', 'https://app-dev.example.com', 'DEV'),
        (None, 'https://prod.example.com', 'PROD'),
        ('', 'https://app.example.com', 'ENV'),
        (None, None, 'ENV'),
    ])
    def test_resolution(self, target, base, expected):
        assert resolve_env_label(target, base) == expected
