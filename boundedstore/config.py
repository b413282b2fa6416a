"""
Configuration models and loader.
"""

import yaml
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from boundedstore.exceptions import ConfigError


class StoreSettings(BaseModel):
    """Bounded store configuration settings."""

    max_items: int = Field(default=1000, gt=0)  # Hard cap on stored entries
    mechanism: Literal["memory", "file"] = "memory"
    path: Optional[str] = None  # JSON store file, required for "file"
    prefix: Optional[str] = None  # Namespace inside a shared mechanism
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_path(self) -> "StoreSettings":
        if self.mechanism == "file" and not self.path:
            raise ValueError("'path' is required when mechanism is 'file'")
        return self


class BoundedStoreConfig(BaseModel):
    """Main configuration model."""

    version: Literal["1.0"]
    store: StoreSettings = Field(default_factory=StoreSettings)

    @classmethod
    def from_yaml(cls, path: str) -> "BoundedStoreConfig":
        """
        Load and validate configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            BoundedStoreConfig instance

        Raises:
            ConfigError: If file not found or invalid
        """
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing YAML file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {path}")

        # Validate version (handle both string and float from YAML)
        version = data.get("version")
        if str(version) != "1.0":
            raise ConfigError(f"Invalid version: {version}. Expected 1.0")
        data["version"] = "1.0"

        try:
            return cls(**data)
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(config_path: str) -> BoundedStoreConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        BoundedStoreConfig instance
    """
    return BoundedStoreConfig.from_yaml(config_path)
