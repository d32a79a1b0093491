"""Shared utilities and configuration for the Entity Fusion Engine."""

from src.shared.config import Settings, get_settings, settings
from src.shared.logger import (
    FusionLogger,
    get_logger,
    log_config_status,
    log_result_table,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "settings",
    # Logger
    "FusionLogger",
    "get_logger",
    "log_config_status",
    "log_result_table",
]
