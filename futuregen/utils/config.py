"""Configuration management for FutureGen."""

import os
from pathlib import Path
from typing import Optional, Union
import yaml
from pydantic import BaseModel, Field, ValidationError
from dotenv import load_dotenv

from .errors import ConfigurationError
from .logger import get_logger
from ..models.enums import ModelId

logger = get_logger(__name__)

# Load environment variables
load_dotenv()

DEFAULT_CONFIG_PATH = Path("config/models.yaml")


class RetryConfig(BaseModel):
    """Backoff settings for rate-limited remote calls."""
    max_attempts: int = Field(default=3, ge=1)
    initial_delay_seconds: float = Field(default=2.0, ge=0)


class ImageConfig(BaseModel):
    """Settings for pre-transmission image compression."""
    max_dimension: int = Field(default=1024, gt=0)
    jpeg_quality: int = Field(default=95, ge=1, le=100)


class Config(BaseModel):
    """Main application configuration."""

    # API Keys
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")

    # Application Settings
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    timeout_seconds: float = Field(default=120.0, alias="TIMEOUT_SECONDS")

    # Model Configuration
    default_model: ModelId = ModelId.GEMINI_FLASH_IMAGE
    analysis_model: str = "gemini-2.5-flash"
    pro_image_size: str = "1K"
    retry: RetryConfig = Field(default_factory=RetryConfig)
    image: ImageConfig = Field(default_factory=ImageConfig)

    class Config:
        populate_by_name = True

    @property
    def has_credential(self) -> bool:
        return bool(self.gemini_api_key.strip())


# Global config instance
_config: Optional[Config] = None


def load_config(path: Union[str, Path, None] = None) -> Config:
    """
    Load configuration from environment and YAML file.

    Args:
        path: YAML file to read. Defaults to config/models.yaml; when the
            default file is absent, built-in defaults are used.

    Returns:
        Config instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config

    models_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    models_config = {}

    if models_path.exists():
        try:
            with open(models_path, "r", encoding="utf-8") as f:
                models_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {models_path}: {e}")
        if not isinstance(models_config, dict):
            raise ConfigurationError(f"{models_path} must contain a mapping")
    elif path is not None:
        raise ConfigurationError(f"Config file not found at {models_path}")
    else:
        logger.warning(f"{models_path} not found, using built-in defaults")

    # Merge environment variables with YAML config
    config_data = {
        **os.environ,
        **models_config,
    }

    try:
        _config = Config(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Failed to load configuration: {e}")

    logger.info(
        "Configuration loaded successfully",
        extra={
            "environment": _config.app_env,
            "default_model": _config.default_model.value,
            "credential_present": _config.has_credential,
        }
    )

    return _config


def get_config() -> Config:
    """
    Get the current configuration instance.

    Returns:
        Config instance

    Raises:
        ConfigurationError: If config not loaded
    """
    if _config is None:
        raise ConfigurationError("Configuration not loaded. Call load_config() first.")
    return _config
