"""Configuration management for the activity proxy."""

import os
import re
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any
from dotenv import load_dotenv

from ..core.logging import get_logger

logger = get_logger(__name__)

_DAILY_TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')


@dataclass(frozen=True)
class Config:
    """Immutable configuration object for the application."""

    # Upstream connection (required unless running on mock data)
    api_url: str = ""
    api_username: str = ""
    api_password: str = ""
    verify_ssl: bool = True
    page_size: int = 100
    request_timeout_seconds: Optional[float] = None

    # Refresh scheduling
    recent_interval_seconds: int = 60
    recent_window_hours: int = 72
    token_ttl_seconds: int = 3600
    token_renewal_interval_seconds: int = 3300
    daily_snapshot_time: str = "02:00"

    # Storage
    snapshot_file: str = "data/activities-snapshot.json"
    use_mock_data: bool = False
    mock_data_file: str = "saida.json"

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "standard"
    log_file: Optional[str] = None
    log_max_file_size_mb: int = 100
    log_backup_count: int = 10

    # Internal tracking
    _loaded_config_file: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.use_mock_data:
            if not self.api_url:
                raise ValueError("UPSTREAM_API_URL is required")
            if not self.api_username:
                raise ValueError("UPSTREAM_USERNAME is required")
            if not self.api_password:
                raise ValueError("UPSTREAM_PASSWORD is required")

        if self.page_size <= 0:
            raise ValueError("UPSTREAM_PAGE_SIZE must be positive")
        if self.request_timeout_seconds is not None and self.request_timeout_seconds <= 0:
            raise ValueError("UPSTREAM_REQUEST_TIMEOUT must be positive")
        if self.recent_interval_seconds <= 0:
            raise ValueError("SYNC_RECENT_INTERVAL_SECONDS must be positive")
        if self.recent_window_hours <= 0:
            raise ValueError("SYNC_RECENT_WINDOW_HOURS must be positive")
        if self.token_ttl_seconds <= 0:
            raise ValueError("SYNC_TOKEN_TTL_SECONDS must be positive")
        if self.token_renewal_interval_seconds <= 0:
            raise ValueError("SYNC_TOKEN_RENEWAL_SECONDS must be positive")
        if self.token_renewal_interval_seconds >= self.token_ttl_seconds:
            raise ValueError("SYNC_TOKEN_RENEWAL_SECONDS must be shorter than SYNC_TOKEN_TTL_SECONDS")
        if not _DAILY_TIME_PATTERN.match(self.daily_snapshot_time):
            raise ValueError(f"SYNC_DAILY_SNAPSHOT_TIME must be HH:MM, got '{self.daily_snapshot_time}'")
        if not self.snapshot_file:
            raise ValueError("SNAPSHOT_FILE is required")

        # Normalize API URL so endpoint paths can be appended
        if self.api_url.endswith("/"):
            object.__setattr__(self, 'api_url', self.api_url.rstrip("/"))

    @property
    def daily_snapshot_hour_minute(self):
        """The daily snapshot time as an (hour, minute) tuple."""
        hour, minute = self.daily_snapshot_time.split(":")
        return int(hour), int(minute)

    def log_config(self) -> None:
        """Log the current configuration (without secrets)."""
        if self._loaded_config_file:
            logger.info(f"Configuration loaded from: {self._loaded_config_file}")
        else:
            logger.info("Configuration loaded from: environment and defaults (no config file found)")
        logger.info(f"  MODE: {'MOCK (' + self.mock_data_file + ')' if self.use_mock_data else 'LIVE API'}")
        logger.info(f"  UPSTREAM_API_URL: {self.api_url}")
        logger.info(f"  UPSTREAM_USERNAME: {self.api_username}")
        logger.info(f"  UPSTREAM_PASSWORD: {'*' * len(self.api_password)} ({len(self.api_password)} chars)")
        logger.info(f"  UPSTREAM_VERIFY_SSL: {self.verify_ssl}")
        logger.info(f"  UPSTREAM_PAGE_SIZE: {self.page_size}")
        logger.info(f"  SYNC_RECENT_INTERVAL_SECONDS: {self.recent_interval_seconds}")
        logger.info(f"  SYNC_RECENT_WINDOW_HOURS: {self.recent_window_hours}")
        logger.info(f"  SYNC_TOKEN_TTL_SECONDS: {self.token_ttl_seconds}")
        logger.info(f"  SYNC_TOKEN_RENEWAL_SECONDS: {self.token_renewal_interval_seconds}")
        logger.info(f"  SYNC_DAILY_SNAPSHOT_TIME: {self.daily_snapshot_time}")
        logger.info(f"  SNAPSHOT_FILE: {self.snapshot_file}")
        logger.info(f"  LOG_LEVEL: {self.log_level}")
        logger.info(f"  LOG_FORMAT: {self.log_format}")


class ConfigLoader:
    """Loads configuration from multiple sources with precedence."""

    INT_KEYS = (
        'page_size', 'recent_interval_seconds', 'recent_window_hours',
        'token_ttl_seconds', 'token_renewal_interval_seconds',
        'log_max_file_size_mb', 'log_backup_count'
    )
    FLOAT_KEYS = ('request_timeout_seconds',)
    BOOL_KEYS = ('verify_ssl', 'use_mock_data')

    def __init__(self):
        self.logger = get_logger(__name__)

    def load_config(self,
                    config_file: Optional[str] = None,
                    cli_args: Optional[Dict[str, Any]] = None) -> Config:
        """Load configuration from all sources with precedence.

        Precedence order (highest to lowest):
        1. CLI arguments
        2. Environment variables
        3. YAML config file
        4. Defaults

        Args:
            config_file: Path to YAML config file
            cli_args: Dictionary of CLI arguments

        Returns:
            Immutable Config object

        Raises:
            ValueError: If the merged configuration is invalid
        """
        load_dotenv()

        config_data: Dict[str, Any] = {}
        loaded_config_file = None

        if config_file:
            config_data.update(self._load_yaml_config(config_file))
            loaded_config_file = config_file
        else:
            default_config_path = Path("config.yaml")
            if default_config_path.exists():
                config_data.update(self._load_yaml_config(str(default_config_path)))
                loaded_config_file = str(default_config_path)

        config_data.update(self._load_env_config())

        if cli_args:
            config_data.update(self._process_cli_args(cli_args))

        config_data = self._coerce_types(config_data)
        config_data['_loaded_config_file'] = loaded_config_file

        return Config(**config_data)

    def _load_yaml_config(self, config_file: str) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        config_path = Path(config_file)
        if not config_path.exists():
            self.logger.warning(f"Config file not found: {config_file}")
            return {}

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                yaml_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            self.logger.error(f"Error loading config file {config_file}: {e}")
            return {}

        if not isinstance(yaml_data, dict):
            self.logger.error(f"Config file {config_file} must contain a mapping at the top level")
            return {}
        return self._normalize_keys(yaml_data)

    def _load_env_config(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_mapping = {
            'UPSTREAM_API_URL': 'api_url',
            'UPSTREAM_USERNAME': 'api_username',
            'UPSTREAM_PASSWORD': 'api_password',
            'UPSTREAM_VERIFY_SSL': 'verify_ssl',
            'UPSTREAM_PAGE_SIZE': 'page_size',
            'UPSTREAM_REQUEST_TIMEOUT': 'request_timeout_seconds',
            'SYNC_RECENT_INTERVAL_SECONDS': 'recent_interval_seconds',
            'SYNC_RECENT_WINDOW_HOURS': 'recent_window_hours',
            'SYNC_TOKEN_TTL_SECONDS': 'token_ttl_seconds',
            'SYNC_TOKEN_RENEWAL_SECONDS': 'token_renewal_interval_seconds',
            'SYNC_DAILY_SNAPSHOT_TIME': 'daily_snapshot_time',
            'SNAPSHOT_FILE': 'snapshot_file',
            'USE_MOCK_DATA': 'use_mock_data',
            'MOCK_DATA_FILE': 'mock_data_file',
            'LOG_LEVEL': 'log_level',
            'LOG_FORMAT': 'log_format',
            'LOG_FILE': 'log_file',
            'LOG_MAX_FILE_SIZE_MB': 'log_max_file_size_mb',
            'LOG_BACKUP_COUNT': 'log_backup_count'
        }

        config = {}
        for env_var, config_key in env_mapping.items():
            value = os.getenv(env_var)
            if value is not None:
                config[config_key] = value
        return config

    def _process_cli_args(self, cli_args: Dict[str, Any]) -> Dict[str, Any]:
        """Process CLI arguments into config format."""
        cli_mapping = {
            'api_url': 'api_url',
            'username': 'api_username',
            'password': 'api_password',
            'snapshot_file': 'snapshot_file',
            'mock': 'use_mock_data',
            'mock_file': 'mock_data_file',
            'log_level': 'log_level',
            'log_format': 'log_format'
        }

        config = {}
        for cli_key, config_key in cli_mapping.items():
            if cli_key in cli_args and cli_args[cli_key] is not None:
                config[config_key] = cli_args[cli_key]
        return config

    def _coerce_types(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Convert string values from env/YAML into the field types."""
        coerced = dict(data)
        for key in self.INT_KEYS:
            if key in coerced and not isinstance(coerced[key], int):
                try:
                    coerced[key] = int(coerced[key])
                except (TypeError, ValueError):
                    self.logger.warning(f"Invalid integer value for {key}: {coerced[key]}")
                    del coerced[key]
        for key in self.FLOAT_KEYS:
            if key in coerced and coerced[key] is not None and not isinstance(coerced[key], float):
                try:
                    coerced[key] = float(coerced[key])
                except (TypeError, ValueError):
                    self.logger.warning(f"Invalid number value for {key}: {coerced[key]}")
                    del coerced[key]
        for key in self.BOOL_KEYS:
            if key in coerced and isinstance(coerced[key], str):
                coerced[key] = coerced[key].strip().lower() in ('1', 'true', 'yes', 'on')
        if 'daily_snapshot_time' in coerced:
            value = coerced['daily_snapshot_time']
            if isinstance(value, int) and not isinstance(value, bool):
                # YAML 1.1 reads an unquoted 12:30 as the sexagesimal integer 750
                value = f"{value // 60:02d}:{value % 60:02d}"
            coerced['daily_snapshot_time'] = str(value).strip()
        return coerced

    def _normalize_keys(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize nested YAML structure to flat config field names."""
        section_mappings = {
            'upstream': {
                'api-url': 'api_url',
                'username': 'api_username',
                'password': 'api_password',
                'verify-ssl': 'verify_ssl',
                'page-size': 'page_size',
                'request-timeout-seconds': 'request_timeout_seconds'
            },
            'sync': {
                'recent-interval-seconds': 'recent_interval_seconds',
                'recent-window-hours': 'recent_window_hours',
                'token-ttl-seconds': 'token_ttl_seconds',
                'token-renewal-interval-seconds': 'token_renewal_interval_seconds',
                'daily-snapshot-time': 'daily_snapshot_time'
            },
            'storage': {
                'snapshot-file': 'snapshot_file',
                'use-mock-data': 'use_mock_data',
                'mock-data-file': 'mock_data_file'
            },
            'logging': {
                'level': 'log_level',
                'format': 'log_format',
                'file': 'log_file',
                'max_file_size_mb': 'log_max_file_size_mb',
                'backup_count': 'log_backup_count'
            }
        }

        normalized = {}
        for section, mapping in section_mappings.items():
            section_data = data.get(section)
            if not isinstance(section_data, dict):
                continue
            for yaml_key, config_key in mapping.items():
                if yaml_key in section_data:
                    normalized[config_key] = section_data[yaml_key]

        # Flat keys like "page-size: 50" are accepted when not set by a section
        known_fields = set(Config.__dataclass_fields__) - {'_loaded_config_file'}
        for key, value in data.items():
            if key in section_mappings:
                continue
            normalized_key = key.replace('-', '_').lower()
            if normalized_key in known_fields and normalized_key not in normalized:
                normalized[normalized_key] = value
            elif normalized_key not in known_fields:
                self.logger.warning(f"Ignoring unknown config key: {key}")

        return normalized
