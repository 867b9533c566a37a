"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
from pathlib import Path
from typing import Literal, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class SearchConfig(BaseModel):
    """Bounds of the forward-looking queries."""
    horizon_days: int = 30
    max_range_days: int = 31

    @field_validator("horizon_days", "max_range_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure search bounds are positive."""
        if value <= 0:
            raise ValueError(f"Search bounds must be greater than zero, got {value}")
        return value


class DataSourceConfig(BaseModel):
    """Where clinic schedules and appointments are read from."""
    kind: Literal["file", "http"] = "file"
    path: Optional[Path] = None
    base_url: Optional[str] = None
    api_token: Optional[str] = None
    timeout_seconds: float = 10.0

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value

    @model_validator(mode="after")
    def validate_location(self) -> "DataSourceConfig":
        """Ensure the selected source knows where to read from."""
        if self.kind == "file" and self.path is None:
            raise ValueError("data_source.path is required for kind 'file'")
        if self.kind == "http" and not self.base_url:
            raise ValueError("data_source.base_url is required for kind 'http'")
        return self


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    search: SearchConfig = Field(default_factory=SearchConfig)
    data_source: DataSourceConfig = Field(
        default_factory=lambda: DataSourceConfig(path=Path("clinic_data.yaml"))
    )
    log_level: str = "INFO"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Relative data-source paths are resolved against the config file's
        directory.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        source_path = config.data_source.path
        if source_path is not None and not source_path.is_absolute():
            config.data_source.path = config_path.parent / source_path

        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
