"""
Configuration Management for funcspy

Holds the library-wide settings that spies read when they are constructed.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

COPY_ARGS_ENV = "FUNCSPY_COPY_ARGS"


class SpyConfig(BaseModel):
    """Main configuration class for funcspy."""

    # Recorded arguments are the passed objects unless a copy mode is chosen
    copy_args: Literal["deep", "shallow", "none"] = Field(
        "none", description="How arguments are snapshotted into call records"
    )
    # When False only the number of fake return values is checked
    strict_returns: bool = Field(
        True, description="Type-check fake return values against the return annotation"
    )
    log_level: str = Field("WARNING", description="Level applied to the funcspy logger")

    model_config = {"validate_assignment": True}


class Config:
    """Global configuration singleton."""

    _instance: Optional[SpyConfig] = None
    _lock = threading.RLock()

    @classmethod
    def initialize(cls, config_path: Optional[Path] = None, **kwargs) -> SpyConfig:
        """Initialize configuration from file or kwargs."""
        with cls._lock:
            if config_path:
                cls._instance = cls.load_config(config_path)
            else:
                cls._instance = SpyConfig(**kwargs)
            cls._apply_environment(cls._instance)
            cls._apply_log_level(cls._instance)
            return cls._instance

    @classmethod
    def get_instance(cls) -> SpyConfig:
        """Get the configuration instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = SpyConfig()
                cls._apply_environment(cls._instance)
            return cls._instance

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        instance = cls.get_instance()
        return getattr(instance, key, default)

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        """Set a configuration value."""
        instance = cls.get_instance()
        if key in SpyConfig.model_fields:
            setattr(instance, key, value)
            if key == "log_level":
                cls._apply_log_level(instance)

    @classmethod
    def update(cls, updates: Dict[str, Any]) -> None:
        """Update multiple configuration values."""
        for key, value in updates.items():
            cls.set(key, value)

    @classmethod
    def reset(cls) -> None:
        """Drop the current instance; the next access rebuilds the defaults."""
        with cls._lock:
            cls._instance = None

    @classmethod
    def load_config(cls, config_path: Path) -> SpyConfig:
        """Load configuration from a JSON file."""
        if config_path.exists():
            try:
                with open(config_path) as f:
                    data = json.load(f)
                return SpyConfig(**data)
            except (OSError, ValueError, ValidationError) as e:
                logger.warning(f"Error loading config from {config_path}: {e}")

        return SpyConfig()

    @classmethod
    def to_dict(cls) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return cls.get_instance().model_dump()

    @staticmethod
    def _apply_environment(instance: SpyConfig) -> None:
        # Environment variable wins over file and defaults
        mode = os.environ.get(COPY_ARGS_ENV)
        if mode:
            try:
                instance.copy_args = mode
            except ValidationError:
                logger.warning(f"Ignoring invalid {COPY_ARGS_ENV}={mode!r}")

    @staticmethod
    def _apply_log_level(instance: SpyConfig) -> None:
        logging.getLogger("funcspy").setLevel(instance.log_level.upper())


def load_config(config_path: Optional[Path] = None) -> SpyConfig:
    """Load configuration from file or use defaults."""
    return Config.initialize(config_path)


def get_config() -> SpyConfig:
    """Get the current configuration."""
    return Config.get_instance()
