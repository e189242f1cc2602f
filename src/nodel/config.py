"""Configuration management for nodel using Pydantic models."""

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_FILE_NAME = ".nodel.json"


class LogLevel(str, Enum):
    """Logging levels."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


class FlowDirection(str, Enum):
    """Flowchart directions understood by the Mermaid renderer."""
    TOP_DOWN = "TD"
    LEFT_RIGHT = "LR"
    BOTTOM_TOP = "BT"
    RIGHT_LEFT = "RL"


class GraphConfig(BaseModel):
    """Graph model configuration section."""
    default_relation: str = Field(alias="defaultRelation", default="default")
    group_name_suffix: str = Field(alias="groupNameSuffix", default=" group")
    id_length: int = Field(alias="idLength", default=8)

    @field_validator("default_relation")
    @classmethod
    def validate_default_relation(cls, v):
        if not v:
            raise ValueError("default_relation must not be empty")
        return v

    @field_validator("id_length")
    @classmethod
    def validate_id_length(cls, v):
        if not (4 <= v <= 32):
            raise ValueError(f"id_length must be between 4-32, got: {v}")
        return v

    model_config = ConfigDict(populate_by_name=True)


class RenderConfig(BaseModel):
    """Render configuration section."""
    direction: FlowDirection = FlowDirection.TOP_DOWN
    label_key: str = Field(alias="labelKey", default="name")
    max_label_length: int = Field(alias="maxLabelLength", default=30)

    @field_validator("max_label_length")
    @classmethod
    def validate_max_label_length(cls, v):
        if v < 4:
            raise ValueError("max_label_length must be >= 4")
        return v

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, validate_default=True)


class LoggingConfig(BaseModel):
    """Logging configuration section."""
    level: LogLevel = LogLevel.INFO

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class NodelConfig(BaseModel):
    """Complete nodel configuration model."""
    graph: GraphConfig = Field(default_factory=GraphConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="forbid")


def load_config(config_path: str | Path | None = None) -> NodelConfig:
    """Load configuration from file with fallback to defaults.

    Args:
        config_path: Optional path to configuration file. If None, searches
                    current directory and parents for .nodel.json

    Returns:
        NodelConfig: Loaded and validated configuration

    Raises:
        ValueError: If configuration is invalid
    """
    if config_path is None:
        config_path = find_config_file()
    else:
        config_path = Path(config_path)

    if config_path and config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = json.load(f)
            return NodelConfig(**config_data)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file {config_path}: {e}")
        except Exception as e:
            raise ValueError(f"Failed to load config from {config_path}: {e}")
    else:
        return create_default_config()


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find .nodel.json by searching up the directory tree."""
    if start_dir is None:
        start_dir = Path.cwd()

    current = Path(start_dir).resolve()

    while True:
        config_file = current / CONFIG_FILE_NAME
        if config_file.exists():
            return config_file

        parent = current.parent
        if parent == current:  # Reached root directory
            break
        current = parent

    return None


def create_default_config() -> NodelConfig:
    """Create default configuration."""
    return NodelConfig()
