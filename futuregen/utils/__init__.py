"""Utility modules for configuration, logging, images and error handling."""

from .config import load_config, get_config
from .logger import get_logger
from .retry import run_with_retry, is_rate_limit_error

__all__ = [
    "load_config",
    "get_config",
    "get_logger",
    "run_with_retry",
    "is_rate_limit_error",
]
