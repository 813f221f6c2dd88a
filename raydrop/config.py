"""
Configuration management - externalized and extensible.

Values come from environment variables (optionally loaded from a `.env`
file) and may be overridden by a YAML settings file.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

env_path = Path.cwd() / '.env'
if env_path.exists():
    load_dotenv(dotenv_path=env_path)

XRAY_BASE_URL = "https://xray.cloud.getxray.app"


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass
class XrayConfig:
    """Xray Cloud / Jira connection settings."""
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    jira_base_url: Optional[str] = None
    base_url: str = XRAY_BASE_URL
    timeout: int = 30
    import_timeout: int = 60
    job_poll_attempts: int = 30
    job_poll_interval: float = 2.0

    @classmethod
    def from_env(cls) -> 'XrayConfig':
        """Create config from environment variables."""
        return cls(
            client_id=os.getenv("XRAY_CLIENT_ID"),
            client_secret=os.getenv("XRAY_CLIENT_SECRET"),
            jira_base_url=os.getenv("JIRA_BASE_URL"),
            base_url=os.getenv("XRAY_BASE_URL", XRAY_BASE_URL),
            timeout=_int_env("XRAY_TIMEOUT", 30),
            import_timeout=_int_env("XRAY_IMPORT_TIMEOUT", 60),
            job_poll_attempts=_int_env("XRAY_JOB_POLL_ATTEMPTS", 30),
            job_poll_interval=_float_env("XRAY_JOB_POLL_INTERVAL", 2.0),
        )

    def is_complete(self) -> bool:
        """All credentials required to talk to Xray are present."""
        return bool(self.client_id and self.client_secret and self.jira_base_url)


@dataclass
class StorageConfig:
    """Local draft storage settings."""
    drafts_dir: str = "testCases"
    legacy_file: str = "raydrop_saved_test_cases.json"

    @classmethod
    def from_env(cls) -> 'StorageConfig':
        """Create config from environment variables."""
        return cls(
            drafts_dir=os.getenv("RAYDROP_DRAFTS_DIR", "testCases"),
            legacy_file=os.getenv("RAYDROP_LEGACY_FILE", "raydrop_saved_test_cases.json"),
        )


@dataclass
class LoggingConfig:
    """Structured logging settings."""
    level: int = logging.INFO
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'LoggingConfig':
        """Create config from environment variables."""
        level_name = os.getenv("RAYDROP_LOG_LEVEL", "INFO").upper()
        return cls(
            level=getattr(logging, level_name, logging.INFO),
            log_file=os.getenv("RAYDROP_LOG_FILE") or None,
        )


@dataclass
class AppConfig:
    """Application-wide configuration."""
    xray: XrayConfig = field(default_factory=XrayConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    active_project: Optional[str] = None

    @classmethod
    def load(cls) -> 'AppConfig':
        """Load application configuration from the environment."""
        return cls(
            xray=XrayConfig.from_env(),
            storage=StorageConfig.from_env(),
            logging=LoggingConfig.from_env(),
            active_project=os.getenv("RAYDROP_ACTIVE_PROJECT") or None,
        )

    @classmethod
    def load_from_yaml(cls, yaml_path: str) -> 'AppConfig':
        """Load configuration from a YAML file on top of the environment."""
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data, base=cls.load())

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: Optional['AppConfig'] = None) -> 'AppConfig':
        """Create AppConfig from a dictionary; missing keys keep `base` values."""
        config = base or cls()

        xray_data = data.get('xray', {}) or {}
        for key, value in xray_data.items():
            if hasattr(config.xray, key):
                setattr(config.xray, key, value)

        storage_data = data.get('storage', {}) or {}
        for key, value in storage_data.items():
            if hasattr(config.storage, key):
                setattr(config.storage, key, value)

        logging_data = data.get('logging', {}) or {}
        if 'level' in logging_data:
            level = logging_data['level']
            config.logging.level = (
                level if isinstance(level, int)
                else getattr(logging, str(level).upper(), logging.INFO)
            )
        if 'log_file' in logging_data:
            config.logging.log_file = logging_data['log_file']

        if data.get('active_project'):
            config.active_project = data['active_project']

        return config
