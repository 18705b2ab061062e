"""
Utilities module for the strategy bots.

This module provides common utilities:
- Logging setup and per-pass action logging
- Configuration management
"""

from .logger import (
    ActionLogger,
    LogEntry,
    setup_logging
)
from .config import (
    BotConfig,
    CTFConfig,
    LumberjackConfig,
    build_bot_config,
    load_config,
    save_config
)

__all__ = [
    'ActionLogger',
    'LogEntry',
    'setup_logging',
    'BotConfig',
    'CTFConfig',
    'LumberjackConfig',
    'build_bot_config',
    'load_config',
    'save_config'
]
