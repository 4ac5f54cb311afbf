"""
Gateway settings.

Settings are built in layers, later ones winning: model defaults,
``EVENTGATE_<FIELD>`` variables, an optional YAML file with ``${VAR}`` /
``${VAR:default}`` substitution, and finally the plain variables such as
``PORT`` and ``DEBUG_LOGGING``.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from eventgate.utils.errors import ConfigurationError


DEFAULT_CONFIG_FILE = "eventgate.yaml"
CONFIG_FILE_ENV = "EVENTGATE_CONFIG"

DEBUG_LOG_MAX_LIMIT = 1000
DEFAULT_PORT = 8080

ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


class Settings(BaseSettings):
    """
    Runtime settings of the gateway process.

    Any field can also be set through an ``EVENTGATE_<FIELD>`` variable;
    values passed by ``ConfigLoader`` take precedence over those.
    """
    model_config = SettingsConfigDict(env_prefix="EVENTGATE_", frozen=True)

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    log_format: str = "text"

    debug_logging: bool = False
    debug_max_entries: int = 100
    log_unmatched_events: bool = False

    file_logging_enabled: bool = False
    file_log_max_size: int = Field(default=1048576, gt=0)
    file_log_max_files: int = Field(default=3, gt=0)
    log_directory: Optional[str] = None

    test_mode: bool = False

    routes_file: str = "routes.json"
    templates_dir: str = "templates"

    @field_validator("debug_max_entries")
    @classmethod
    def clamp_debug_max_entries(cls, v: int) -> int:
        return max(0, min(v, DEBUG_LOG_MAX_LIMIT))

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v


class ConfigLoader:
    """Settings loader for a YAML file with environment overrides."""

    def __init__(
        self,
        config_file: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None
    ):
        """Initialize the settings loader.

        Args:
            config_file: YAML settings file. Defaults to ``EVENTGATE_CONFIG``
                or ``eventgate.yaml`` in the working directory.
            environ: Environment mapping, defaults to ``os.environ``.
        """
        self.environ = os.environ if environ is None else environ
        if config_file is None:
            config_file = Path(self.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE))
        self.config_file = Path(config_file)

    def load(self) -> Settings:
        """Load and validate settings.

        Returns:
            Validated settings

        Raises:
            ConfigurationError: If the file or an environment value is invalid
        """
        config_data = self._load_yaml_file()
        config_data = self._substitute_env_vars(config_data)
        config_data.update(self._read_environment())

        try:
            return Settings(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e

    def _load_yaml_file(self) -> Dict[str, Any]:
        if not self.config_file.exists():
            return {}

        try:
            with open(self.config_file, "r", encoding="utf-8") as file:
                data = yaml.safe_load(file) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config file {self.config_file}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {self.config_file} must contain a mapping")
        return data

    def _substitute_env_vars(self, config: Any) -> Any:
        """Substitute environment variables in configuration values."""
        if isinstance(config, dict):
            return {key: self._substitute_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_string_env_vars(config)
        else:
            return config

    def _substitute_string_env_vars(self, value: str) -> str:
        def replace_env_var(match):
            var_spec = match.group(1)
            if ":" in var_spec:
                var_name, default_value = var_spec.split(":", 1)
                return self.environ.get(var_name, default_value)
            return self.environ.get(var_spec, match.group(0))

        return ENV_VAR_PATTERN.sub(replace_env_var, value)

    def _read_environment(self) -> Dict[str, Any]:
        env = self.environ
        overrides: Dict[str, Any] = {}

        if "PORT" in env:
            overrides["port"] = self._parse_port(env["PORT"])
        if "HOST" in env:
            overrides["host"] = env["HOST"]
        if "LOG_LEVEL" in env:
            overrides["log_level"] = env["LOG_LEVEL"]
        if "LOG_FORMAT" in env:
            overrides["log_format"] = env["LOG_FORMAT"]
        if "LOG_DIRECTORY" in env:
            overrides["log_directory"] = env["LOG_DIRECTORY"] or None
        if "ROUTES_FILE" in env:
            overrides["routes_file"] = env["ROUTES_FILE"]
        if "TEMPLATES_DIR" in env:
            overrides["templates_dir"] = env["TEMPLATES_DIR"]

        for env_name, setting in (
            ("DEBUG_LOGGING", "debug_logging"),
            ("FILE_LOGGING_ENABLED", "file_logging_enabled"),
            ("TEST_MODE", "test_mode"),
            ("LOG_UNMATCHED_EVENTS", "log_unmatched_events"),
        ):
            if env_name in env:
                overrides[setting] = env[env_name] == "true"

        debug_max = env.get("DEBUG_LOG_MAX", env.get("DEBUG_MAX_ENTRIES"))
        if debug_max is not None:
            overrides["debug_max_entries"] = self._parse_int("DEBUG_LOG_MAX", debug_max)

        if "FILE_LOG_MAX_SIZE" in env:
            overrides["file_log_max_size"] = self._parse_positive_int(
                "FILE_LOG_MAX_SIZE", env["FILE_LOG_MAX_SIZE"]
            )
        if "FILE_LOG_MAX_FILES" in env:
            overrides["file_log_max_files"] = self._parse_positive_int(
                "FILE_LOG_MAX_FILES", env["FILE_LOG_MAX_FILES"]
            )

        return overrides

    @staticmethod
    def _parse_port(value: str) -> int:
        try:
            return int(value)
        except ValueError:
            return DEFAULT_PORT

    @staticmethod
    def _parse_int(name: str, value: str) -> int:
        try:
            return int(value.strip())
        except ValueError:
            raise ConfigurationError(
                f"{name} must be a valid integer, got: {value}"
            ) from None

    @classmethod
    def _parse_positive_int(cls, name: str, value: str) -> int:
        parsed = cls._parse_int(name, value)
        if parsed <= 0:
            raise ConfigurationError(f"{name} must be a positive integer, got: {value}")
        return parsed


def load_settings(
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Load settings from the YAML file and environment."""
    return ConfigLoader(config_file=config_file, environ=environ).load()
