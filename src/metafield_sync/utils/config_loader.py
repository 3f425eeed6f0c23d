"""Configuration loader for the metafield sync service."""

import os
import re
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from metafield_sync.models.config import AppConfig

log = structlog.stdlib.get_logger()

CONFIG_DIR = Path(__file__).resolve().parents[3] / "config"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""


class ConfigLoader:
    """Loads application configuration from YAML with ``${VAR}`` substitution."""

    def __init__(self, config_dir: Path | None = None) -> None:
        self.config_dir = config_dir or CONFIG_DIR
        self.env_var_pattern = re.compile(r"\$\{([^}]+)\}")

    def load_config(self, config_path: str | None = None) -> AppConfig:
        """Load and validate configuration.

        Args:
            config_path: Path to a YAML file. If None, ``config/{APP_ENV}.yaml``
                is used, falling back to ``config/default.yaml``.

        Returns:
            AppConfig: Validated application configuration

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        if config_path is None:
            config_path = self._get_default_config_path()

        log.info("loading_configuration", config_path=config_path)

        config_dict = self._substitute_env_vars(self._load_yaml_file(config_path))

        try:
            app_config = AppConfig(**config_dict)
        except ValidationError as e:
            log.error("configuration_validation_failed", error=str(e))
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        log.info("configuration_loaded_successfully", shop_domain=app_config.shopify.shop_domain)
        return app_config

    def _get_default_config_path(self) -> str:
        env = os.getenv("APP_ENV", "default")
        config_file = self.config_dir / f"{env}.yaml"

        if not config_file.exists():
            config_file = self.config_dir / "default.yaml"

        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}. "
                f"Please create config/default.yaml or set APP_ENV to a valid environment."
            )

        return str(config_file)

    def _load_yaml_file(self, config_path: str) -> dict[str, Any]:
        try:
            with open(config_path, "r") as f:
                config_dict = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {config_path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file {config_path}: {e}") from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration file is empty or not a mapping: {config_path}")

        log.debug("yaml_file_loaded", config_path=config_path)
        return config_dict

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively replace ``${VAR_NAME}`` with environment values.

        Raises:
            ConfigurationError: If a referenced variable is not set
        """
        if isinstance(config, dict):
            return {key: self._substitute_env_vars(value) for key, value in config.items()}
        if isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        if isinstance(config, str):
            return self.env_var_pattern.sub(self._env_value, config)
        return config

    def _env_value(self, match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.getenv(var_name)
        if env_value is None:
            raise ConfigurationError(
                f"Required environment variable not set: {var_name}. "
                f"Please set {var_name} in your environment or .env file."
            )
        return env_value

    def validate_config(self, config: AppConfig) -> list[str]:
        """Return warnings for settings that are valid but probably unintended."""
        warnings = []

        if config.sync.concurrency_limit > config.sync.batch_size:
            warnings.append(
                f"concurrency_limit ({config.sync.concurrency_limit}) exceeds "
                f"batch_size ({config.sync.batch_size}); only {config.sync.batch_size} "
                f"variants can ever be in flight"
            )

        if config.sync.batch_delay_seconds == 0:
            warnings.append("batch_delay_seconds is 0; bulk runs may hit API throttling")

        if not config.shopify.shop_domain.endswith(".myshopify.com"):
            warnings.append(
                f"shop_domain '{config.shopify.shop_domain}' is not a *.myshopify.com domain"
            )

        if warnings:
            log.warning("configuration_validation_warnings", warnings=warnings)

        return warnings
