"""Configuration management and validation service."""

import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass

import yaml
from apscheduler.triggers.cron import CronTrigger

from ..models import DEFAULT_DATABASE_URL
from .providers.base import DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_AGENT
from .providers.coingecko import COINGECKO_BASE_URL
from .providers.cryptorates import CRYPTORATES_BASE_URL

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

SCHEMA_TYPES: Dict[str, Any] = {
    "str": str,
    "int": int,
    "float": (int, float),
    "bool": bool,
    "dict": dict,
}


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    path: str
    message: str


class ConfigValidationException(Exception):
    """Raised when config validation fails."""

    def __init__(self, errors: List[ConfigValidationError]):
        self.errors = errors
        messages = [f"{e.path}: {e.message}" for e in errors]
        super().__init__("Configuration validation failed:\n" + "\n".join(messages))


# Configuration schema definition
CONFIG_SCHEMA = {
    "server": {
        "type": "dict",
        "required": False,
        "properties": {
            "host": {"type": "str", "required": False},
            "port": {"type": "int", "required": False, "min": 1, "max": 65535},
        }
    },
    "database": {
        "type": "dict",
        "required": False,
        "properties": {
            "url": {"type": "str", "required": False},
        }
    },
    "cold_store": {
        "type": "dict",
        "required": False,
        "properties": {
            "root": {"type": "str", "required": False},
        }
    },
    "providers": {
        "type": "dict",
        "required": False,
        "properties": {
            "cryptorates_url": {"type": "str", "required": False},
            "coingecko_url": {"type": "str", "required": False},
            "timeout_seconds": {"type": "float", "required": False, "min": 1, "max": 120},
            "price_limit": {"type": "int", "required": False, "min": 1, "max": 5000},
            "registry_pages": {"type": "int", "required": False, "min": 1, "max": 20},
            "registry_per_page": {"type": "int", "required": False, "min": 1, "max": 250},
            "user_agent": {"type": "str", "required": False},
        }
    },
    "prices": {
        "type": "dict",
        "required": False,
        "properties": {
            "stale_after_seconds": {"type": "int", "required": False, "min": 60},
        }
    },
    "scheduler": {
        "type": "dict",
        "required": False,
        "properties": {
            "enabled": {"type": "bool", "required": False},
            "price_cron": {"type": "str", "required": False},
            "daily_cron": {"type": "str", "required": False},
        }
    },
    "logging": {
        "type": "dict",
        "required": False,
        "properties": {
            "level": {"type": "str", "required": False, "options": LOG_LEVELS},
            "format": {"type": "str", "required": False},
            "json": {"type": "bool", "required": False},
        }
    },
}

# Environment variable -> (config path, type)
ENV_OVERRIDES: Dict[str, Tuple[str, type]] = {
    "PRICE_CACHE_DATABASE_URL": ("database.url", str),
    "PRICE_CACHE_COLD_STORE_ROOT": ("cold_store.root", str),
    "PRICE_CACHE_LOG_LEVEL": ("logging.level", str),
    "PRICE_CACHE_SCHEDULER_ENABLED": ("scheduler.enabled", bool),
}


@dataclass(frozen=True)
class Settings:
    """Typed, validated service settings."""
    host: str = "0.0.0.0"
    port: int = 8787
    database_url: str = DEFAULT_DATABASE_URL
    cold_store_root: Optional[str] = None
    cryptorates_url: str = CRYPTORATES_BASE_URL
    coingecko_url: str = COINGECKO_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    price_limit: int = 500
    registry_pages: int = 2
    registry_per_page: int = 250
    user_agent: str = DEFAULT_USER_AGENT
    stale_after_seconds: int = 900
    scheduler_enabled: bool = True
    price_cron: str = "*/5 * * * *"
    daily_cron: str = "0 9 * * *"
    log_level: str = "INFO"
    log_format: Optional[str] = None
    log_json: bool = False


class ConfigService:
    """Service for loading and validating configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """``config_path`` defaults to $PRICE_CACHE_CONFIG, then backend/config.yaml."""
        if config_path is None:
            config_path = os.getenv("PRICE_CACHE_CONFIG")
        if config_path is None:
            backend_dir = Path(__file__).parent.parent.parent
            config_path = str(backend_dir / "config.yaml")

        self.config_path = config_path
        self._config: Dict[str, Any] = {}

    def load_and_validate(self) -> Dict[str, Any]:
        """Read the YAML file and check it against CONFIG_SCHEMA.

        A missing file means defaults. Raises ConfigValidationException with
        every problem found.
        """
        if not os.path.exists(self.config_path):
            logger.warning(f"Config file not found at {self.config_path}, using defaults")
            self._config = {}
            return self._config

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationException([
                ConfigValidationError(path="", message=f"Invalid YAML syntax: {e}")
            ])

        if not isinstance(config, dict):
            raise ConfigValidationException([
                ConfigValidationError(
                    path="",
                    message=f"Config must be a dictionary, got {type(config).__name__}"
                )
            ])

        errors = self._validate_dict(config, CONFIG_SCHEMA, "")
        if errors:
            raise ConfigValidationException(errors)

        self._config = config
        logger.info(f"Configuration loaded and validated from {self.config_path}")
        return config

    def load_settings(self) -> Settings:
        """Load, validate, apply environment overrides and build Settings.

        Raises:
            ConfigValidationException: If the file or an override is invalid.
        """
        self.load_and_validate()
        self._apply_env_overrides()
        self._validate_effective()

        defaults = Settings()
        return Settings(
            host=self.get("server.host", defaults.host),
            port=self.get("server.port", defaults.port),
            database_url=self.get("database.url", defaults.database_url),
            cold_store_root=self.get("cold_store.root", defaults.cold_store_root) or None,
            cryptorates_url=self.get("providers.cryptorates_url", defaults.cryptorates_url),
            coingecko_url=self.get("providers.coingecko_url", defaults.coingecko_url),
            timeout_seconds=float(self.get("providers.timeout_seconds", defaults.timeout_seconds)),
            price_limit=self.get("providers.price_limit", defaults.price_limit),
            registry_pages=self.get("providers.registry_pages", defaults.registry_pages),
            registry_per_page=self.get("providers.registry_per_page", defaults.registry_per_page),
            user_agent=self.get("providers.user_agent", defaults.user_agent),
            stale_after_seconds=self.get("prices.stale_after_seconds", defaults.stale_after_seconds),
            scheduler_enabled=self.get("scheduler.enabled", defaults.scheduler_enabled),
            price_cron=self.get("scheduler.price_cron", defaults.price_cron),
            daily_cron=self.get("scheduler.daily_cron", defaults.daily_cron),
            log_level=self.get("logging.level", defaults.log_level).upper(),
            log_format=self.get("logging.format", defaults.log_format),
            log_json=self.get("logging.json", defaults.log_json),
        )

    def _apply_env_overrides(self) -> None:
        """Overlay PRICE_CACHE_* environment variables onto the loaded config."""
        errors: List[ConfigValidationError] = []

        for env_name, (path, value_type) in ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue

            value: Any = raw
            if value_type is bool:
                lowered = raw.strip().lower()
                if lowered in ("1", "true", "yes", "on"):
                    value = True
                elif lowered in ("0", "false", "no", "off"):
                    value = False
                else:
                    errors.append(ConfigValidationError(
                        path=env_name,
                        message=f"Expected a boolean, got '{raw}'"
                    ))
                    continue

            section, key = path.split(".", 1)
            self._config.setdefault(section, {})[key] = value

        if errors:
            raise ConfigValidationException(errors)

    def _validate_effective(self) -> None:
        """Checks that need the merged file + environment view."""
        errors: List[ConfigValidationError] = []

        for cron_key in ("scheduler.price_cron", "scheduler.daily_cron"):
            expr = self.get(cron_key)
            if expr is None:
                continue
            try:
                CronTrigger.from_crontab(expr)
            except ValueError as e:
                errors.append(ConfigValidationError(
                    path=cron_key,
                    message=f"Invalid cron expression '{expr}': {e}"
                ))

        level = self.get("logging.level")
        if level is not None and str(level).upper() not in LOG_LEVELS:
            errors.append(ConfigValidationError(
                path="logging.level",
                message=f"Value '{level}' not in allowed options: {LOG_LEVELS}"
            ))

        if errors:
            raise ConfigValidationException(errors)

    def _validate_dict(
        self,
        data: Dict[str, Any],
        schema: Dict[str, Any],
        path: str
    ) -> List[ConfigValidationError]:
        """Check a mapping against a schema section, recursing into nested dicts."""
        errors = [
            ConfigValidationError(path=_join(path, key), message=f"Unknown configuration key '{key}'")
            for key in data
            if key not in schema
        ]

        for key, prop_schema in schema.items():
            if key in data:
                errors.extend(self._validate_value(data[key], prop_schema, _join(path, key)))
            elif prop_schema.get("required", False):
                errors.append(ConfigValidationError(path=_join(path, key), message="Required field missing"))

        return errors

    def _validate_value(
        self,
        value: Any,
        schema: Dict[str, Any],
        path: str
    ) -> List[ConfigValidationError]:
        expected_type = schema.get("type")
        expected = SCHEMA_TYPES.get(expected_type)
        if expected is None:
            return []

        # bool is an int subclass; "port: true" is not a port
        if not isinstance(value, expected) or (
            expected_type in ("int", "float") and isinstance(value, bool)
        ):
            return [ConfigValidationError(
                path=path,
                message=f"Expected {expected_type}, got {type(value).__name__}"
            )]

        if expected_type == "dict":
            return self._validate_dict(value, schema.get("properties", {}), path)

        errors = []
        if expected_type in ("int", "float"):
            if "min" in schema and value < schema["min"]:
                errors.append(ConfigValidationError(
                    path=path,
                    message=f"Value {value} is below minimum {schema['min']}"
                ))
            if "max" in schema and value > schema["max"]:
                errors.append(ConfigValidationError(
                    path=path,
                    message=f"Value {value} is above maximum {schema['max']}"
                ))

        if "options" in schema and value not in schema["options"]:
            errors.append(ConfigValidationError(
                path=path,
                message=f"Value '{value}' not in allowed options: {schema['options']}"
            ))
        return errors

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dot-notation key such as ``providers.price_limit``."""
        value: Any = self._config
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key
