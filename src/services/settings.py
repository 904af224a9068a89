"""
Configuration loading.

Settings come from a YAML file merged over the bundled defaults
(templates/config-default.yaml). Only keys present in the defaults are
accepted, so a typo in config.yaml fails loudly instead of being ignored.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from domain.models import ErrorKind, ExpiryCheckError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / 'templates'
DEFAULT_CONFIG_PATH = TEMPLATES_DIR / 'config-default.yaml'
CUSTOMERS_EXAMPLE_PATH = TEMPLATES_DIR / 'customers-example.yaml'

# Config file used when no path is given (Lambda reads it from the package)
CONFIG_FILE = os.environ.get('EXPIRY_MONITOR_CONFIG', 'config.yaml')

LOG_FORMATS = ('lines', 'compact')
LOG_LEVELS = ('debug', 'info', 'error')


@dataclass
class Settings:
    """
    Runtime configuration.

    Attributes:
        admin_emails: Addresses receiving a copy of every report
        log_format: "lines" or "compact"
        log_level: "debug", "info" or "error"
        email_from: Sender address of report emails
        aws_region: SES region (empty = environment default)
        expire_soon_days: Days before expiry a domain becomes urgent
        ok_report_day: Weekday of the routine report, 0 = every run
        no_cache_days_before_expire: Cache eviction threshold in days
        state_file: Cache location (path or s3://bucket/key), empty = none
        customers_file: Path of the customer accounts YAML
    """
    admin_emails: List[str] = field(default_factory=list)
    log_format: str = 'lines'
    log_level: str = 'info'
    email_from: str = ''
    aws_region: str = ''
    expire_soon_days: int = 30
    ok_report_day: int = 1
    no_cache_days_before_expire: int = 30
    state_file: str = ''
    customers_file: str = 'customers.yaml'

    def validate(self) -> None:
        """
        Raises:
            ValueError: If a field has an invalid value
        """
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}, got '{self.log_format}'")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got '{self.log_level}'")
        if self.expire_soon_days < 0:
            raise ValueError(f"expire_soon_days must be >= 0, got {self.expire_soon_days}")
        if not 0 <= self.ok_report_day <= 7:
            raise ValueError(f"ok_report_day must be between 0 and 7, got {self.ok_report_day}")


def default_config_text() -> str:
    """Bundled default configuration, printed by --print-default-config."""
    return DEFAULT_CONFIG_PATH.read_text(encoding='utf-8')


def customers_example_text() -> str:
    """Bundled customers file example, printed by --print-customers-example."""
    return CUSTOMERS_EXAMPLE_PATH.read_text(encoding='utf-8')


def _read_yaml_mapping(path: Path) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def _coerce(name: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        return bool(value)
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer, got {value!r}")
        return value
    if isinstance(default, list):
        if not isinstance(value, list):
            raise ValueError(f"{name} must be a list, got {value!r}")
        return [str(v) for v in value]
    return '' if value is None else str(value)


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Load settings from a YAML file merged over the defaults.

    Args:
        path: Config file path; None loads the defaults only

    Returns:
        Settings: Validated settings

    Raises:
        ExpiryCheckError: CONFIG_FAILURE if a file can't be read, contains
            unknown keys or invalid values
    """
    try:
        merged = _read_yaml_mapping(DEFAULT_CONFIG_PATH)
        defaults = dict(merged)

        if path:
            logger.info(f"Loading config: {path}")
            overrides = _read_yaml_mapping(Path(path))
            unknown = sorted(set(overrides) - set(defaults))
            if unknown:
                raise ValueError(f"Unknown config field(s): {', '.join(unknown)}")
            merged.update(overrides)

        values = {
            name: _coerce(name, value, defaults[name])
            for name, value in merged.items()
        }
        settings = Settings(**values)
        settings.validate()

    except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
        logger.error(f"Failed to load config {path or DEFAULT_CONFIG_PATH}: {e}")
        raise ExpiryCheckError(ErrorKind.CONFIG_FAILURE, f"Failed to load config: {e}")

    return settings
