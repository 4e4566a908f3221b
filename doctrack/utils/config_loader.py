"""Configuration loader for doctrack."""

import os
import re
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from pydantic import ValidationError

from doctrack.errors import ConfigurationError
from doctrack.models.config import AppConfig, ScanConsistency

log = structlog.stdlib.get_logger()

CONFIG_DIR = Path(__file__).parent.parent.parent / "config"
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


class ConfigLoader:
    """Loads AppConfig from a YAML file with ${VAR} environment substitution."""

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self.config_dir = Path(config_dir) if config_dir is not None else CONFIG_DIR

    def load_config(self, config_path: Optional[str] = None) -> AppConfig:
        """Load and validate configuration.

        Args:
            config_path: Path to a YAML file. If None, uses
                ``<config_dir>/<DOCTRACK_ENV>.yaml`` or ``default.yaml``.

        Returns:
            AppConfig: Validated configuration

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

        log.info(
            "configuration_loaded_successfully",
            bucket=app_config.storage.bucket,
            scan_consistency=app_config.storage.scan_consistency.value,
        )
        return app_config

    def _get_default_config_path(self) -> str:
        env = os.getenv("DOCTRACK_ENV", "default")
        config_file = self.config_dir / f"{env}.yaml"

        if not config_file.exists():
            config_file = self.config_dir / "default.yaml"

        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}. "
                f"Create config/default.yaml or set DOCTRACK_ENV to a valid environment."
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

        if config_dict is None:
            raise ConfigurationError(f"Configuration file is empty: {config_path}")
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        log.debug("yaml_file_loaded", config_path=config_path)
        return config_dict

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively replace ${VAR_NAME} references with environment values."""
        if isinstance(config, dict):
            return {key: self._substitute_env_vars(value) for key, value in config.items()}
        if isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        if isinstance(config, str):
            return self._substitute_env_var_in_string(config)
        return config

    def _substitute_env_var_in_string(self, value: str) -> str:
        for var_name in ENV_VAR_PATTERN.findall(value):
            env_value = os.getenv(var_name)
            if env_value is None:
                raise ConfigurationError(
                    f"Required environment variable not set: {var_name}. "
                    f"Please set {var_name} in your environment."
                )
            value = value.replace(f"${{{var_name}}}", env_value)
        return value

    def validate_config(self, config: AppConfig) -> list[str]:
        """Return warnings for settings that are valid but probably unintended."""
        warnings = []

        if config.storage.scan_consistency is ScanConsistency.NOT_BOUNDED:
            warnings.append(
                "storage.scan_consistency is 'not_bounded'; reads may not see the latest writes"
            )
        if config.storage.connection_string.startswith("memory://"):
            warnings.append("storage.connection_string uses the in-memory backend; data is not durable")

        if warnings:
            log.warning("configuration_validation_warnings", warnings=warnings)

        return warnings
