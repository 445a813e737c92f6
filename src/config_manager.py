"""
Centralized configuration management.

Provides singleton access to config/config.yaml and builds the explicit
ReportSettings object handed to the collector store, renderer and sender:
- Single load point (config.yaml loaded once)
- Validation of required keys
- Environment variable overrides for secrets and per-run values
"""
import os
import yaml
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from environment import resolve_env_label
from report_collector import default_collect_path


DEFAULT_COMBINED_TITLE = 'Solutions - Navigation Report'


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


class ConfigManager:
    """
    Singleton configuration manager.

    Ensures configuration is loaded once and provides consistent access
    across the reporting tools.

    Usage:
        # Get instance
        config = ConfigManager.get_instance().config

        # Access nested config
        timeout = ConfigManager.get('reporting.webhook_timeout', default=10)
    """

    _instance = None
    _config = None

    @staticmethod
    def get_instance() -> 'ConfigManager':
        """
        Get or create singleton instance.
        Config is loaded only once on first access.

        Returns:
            ConfigManager: Singleton instance
        """
        if ConfigManager._instance is None:
            ConfigManager._instance = ConfigManager()
        return ConfigManager._instance

    def __init__(self):
        """Initialize and load configuration."""
        if ConfigManager._config is None:
            self._load_config()

    @staticmethod
    def config_path() -> str:
        """
        Path of the YAML config file.

        NAVREPORT_CONFIG overrides the default config/config.yaml relative to
        the project root.
        """
        override = os.getenv('NAVREPORT_CONFIG', '').strip()
        if override:
            return override
        base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        return os.path.join(base_dir, 'config', 'config.yaml')

    def _load_config(self) -> None:
        """
        Load configuration from YAML file.

        Raises:
            ConfigError: If config file not found or YAML parsing fails
        """
        config_path = self.config_path()
        if not os.path.exists(config_path):
            raise ConfigError(f"Config file not found: {config_path}")

        logging.info(f"Loading configuration from: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to load config: {e}")

        if not isinstance(loaded, dict):
            raise ConfigError("Config file is empty or invalid YAML")

        ConfigManager._config = loaded
        logging.info("Configuration loaded successfully")

    @property
    def config(self) -> Dict[str, Any]:
        """
        Get the full configuration dictionary.

        Returns:
            dict: Configuration loaded from config.yaml
        """
        if ConfigManager._config is None:
            self._load_config()
        return ConfigManager._config

    @staticmethod
    def get(key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key.

        Supports nested keys with dot notation:
            ConfigManager.get('reporting.logs_dir') → config['reporting']['logs_dir']

        Args:
            key: Configuration key (supports dots for nesting)
            default: Default value if key not found

        Returns:
            Configuration value or default if not found
        """
        return _lookup(ConfigManager.get_instance().config, key, default)

    @staticmethod
    def reload() -> None:
        """
        Force reload of configuration.

        Useful for testing or if config changes at runtime.
        """
        ConfigManager._config = None
        ConfigManager._instance = None
        ConfigManager.get_instance()
        logging.info("Configuration reloaded")

    @staticmethod
    def validate_required(required_keys: list) -> bool:
        """
        Validate that required configuration keys exist.

        Args:
            required_keys: List of keys that must exist (dot notation allowed)

        Returns:
            bool: True if all keys exist

        Raises:
            ConfigError: If any required key is missing
        """
        config = ConfigManager.get_instance().config
        missing = [key for key in required_keys if _lookup(config, key) is None]

        if missing:
            raise ConfigError(f"Missing required config keys: {missing}")

        return True


def load_config_if_present() -> Dict[str, Any]:
    """
    config.yaml contents, or an empty dict when the file does not exist.

    Command line and pytest entry points use this so reporting still works
    from environment variables alone.
    """
    path = ConfigManager.config_path()
    if not os.path.exists(path):
        logging.warning(f"load_config_if_present(): {path} not found; using environment only.")
        return {}
    return ConfigManager.get_instance().config


def _lookup(config: Mapping[str, Any], key: str, default: Any = None) -> Any:
    value: Any = config
    for part in key.split('.'):
        if isinstance(value, Mapping):
            value = value.get(part)
        else:
            return default
    return value if value is not None else default


@dataclass(frozen=True)
class ReportSettings:
    """
    Explicit settings for one reporting run.

    Built once from config.yaml plus environment variables and passed to the
    collector store, renderer and webhook sender, so no reporting module reads
    global state on its own.
    """

    webhook_url: str = ''
    collect: bool = False
    collect_path: str = ''
    target_env: str = ''
    base_url: str = ''
    mention: str = ''
    combined_title: str = DEFAULT_COMBINED_TITLE
    logs_dir: str = 'logs'
    results_dir: str = 'test-results'
    store_layout: str = 'jsonl'
    timeout: float = 10.0
    max_retries: int = 2
    max_detail_length: int = 120

    @property
    def env_label(self) -> str:
        return resolve_env_label(self.target_env, self.base_url)

    @property
    def webhook_configured(self) -> bool:
        return bool(self.webhook_url)

    @classmethod
    def from_sources(cls, config: Optional[Mapping[str, Any]] = None,
                     environ: Optional[Mapping[str, str]] = None) -> 'ReportSettings':
        """
        Build settings from a config dict and an environment mapping.

        Environment variables win over config.yaml values. The collector path
        falls back to <results_dir>/slack-<env>.jsonl when neither sets it.

        Args:
            config: Parsed config.yaml (only the 'reporting' section is read)
            environ: Environment mapping (defaults to os.environ)

        Raises:
            ConfigError: If a numeric setting cannot be parsed
        """
        environ = os.environ if environ is None else environ
        section = _lookup(config or {}, 'reporting', {}) or {}

        def env(name: str) -> str:
            return (environ.get(name) or '').strip()

        target_env = env('TARGET_ENV') or str(section.get('target_env') or '')
        results_dir = str(section.get('results_dir') or 'test-results')
        collect_path = env('SLACK_COLLECT_PATH') or str(section.get('collect_path') or '')
        if not collect_path:
            collect_path = default_collect_path(target_env, results_dir)

        try:
            timeout = float(env('WEBHOOK_TIMEOUT') or section.get('webhook_timeout', 10))
            max_retries = int(env('WEBHOOK_MAX_RETRIES') or section.get('webhook_max_retries', 2))
            max_detail_length = int(section.get('max_detail_length', 120))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric reporting setting: {e}")

        return cls(
            webhook_url=env('SLACK_WEBHOOK_URL') or env('WEBHOOK_URL'),
            collect=env('SLACK_COLLECT') == '1' or bool(section.get('collect', False)),
            collect_path=collect_path,
            target_env=target_env,
            base_url=env('BASE_URL').rstrip('/'),
            mention=env('SLACK_MENTION') or str(section.get('mention') or ''),
            combined_title=env('SLACK_COMBINED_TITLE') or str(section.get('combined_title') or DEFAULT_COMBINED_TITLE),
            logs_dir=env('LOGS_DIR') or str(section.get('logs_dir') or 'logs'),
            results_dir=results_dir,
            store_layout=str(section.get('store_layout') or 'jsonl').lower(),
            timeout=timeout,
            max_retries=max(1, max_retries),
            max_detail_length=max_detail_length,
        )

    @classmethod
    def load(cls, environ: Optional[Mapping[str, str]] = None) -> 'ReportSettings':
        """Settings from the singleton config plus the process environment."""
        return cls.from_sources(ConfigManager.get_instance().config, environ)
