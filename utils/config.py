"""
config.py - Configuration management for the strategy bots.

This module provides utilities for:
- Loading configuration from YAML/JSON files
- Strategy and connection settings as dataclasses
- Applying configuration file sections onto those dataclasses
"""

import os
import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


def load_config(path: str) -> Optional[Dict]:
    """
    Load configuration from a YAML or JSON file.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary, or None if file not found
    """
    if not os.path.exists(path):
        print(f"Config file not found: {path}")
        return None

    try:
        with open(path, 'r') as f:
            if path.endswith('.yaml') or path.endswith('.yml'):
                return yaml.safe_load(f) or {}
            return json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error loading config: {e}")
        return None


def save_config(config: Dict, path: str) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration dictionary
        path: Path to save to
    """
    Path(path).parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        if path.endswith('.yaml') or path.endswith('.yml'):
            yaml.safe_dump(config, f, default_flow_style=False)
        else:
            json.dump(config, f, indent=2)


@dataclass
class LumberjackConfig:
    """Settings for the wood gathering strategy."""
    goal_points: int = 100
    log_name: str = 'spruce_log'
    planks_name: str = 'spruce_planks'
    axe_name: str = 'wooden_axe'
    axes_per_craft: int = 2
    table_search_distance: int = 20
    announce_collects: bool = True


@dataclass
class CTFConfig:
    """Settings for the capture-the-flag strategy."""
    throttle_ms: float = 50
    sight_range: float = 33
    max_opponents: int = 3
    bots_only_teammates: bool = True
    auto_start: bool = False  # treat spawning as the match start
    greeting: str = "I have come to win Capture The Flag with my main loop"


@dataclass
class BotConfig:
    """Connection and run settings shared by all strategies."""
    # Server settings
    host: str = "localhost"
    port: int = 25565
    username: str = ""
    auth: str = "offline"
    team: Optional[str] = None
    known_bots: List[str] = field(default_factory=list)

    # Run settings
    strategy: str = "lumberjack"
    dry_run: bool = False
    max_runtime_minutes: int = 60
    max_ticks: Optional[int] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None
    action_log_file: Optional[str] = None

    lumberjack: LumberjackConfig = field(default_factory=LumberjackConfig)
    ctf: CTFConfig = field(default_factory=CTFConfig)


def _apply(target: Any, values: Optional[Dict[str, Any]]) -> None:
    """Copy known keys from values onto a dataclass instance."""
    if not values:
        return
    names = {f.name for f in fields(target)}
    for key, value in values.items():
        key = key.replace('-', '_')
        if key in names and not isinstance(getattr(target, key), (LumberjackConfig, CTFConfig)):
            setattr(target, key, value)


def build_bot_config(config_dict: Optional[Dict[str, Any]]) -> BotConfig:
    """
    Build a BotConfig from a loaded configuration file.

    Recognised sections: server, account, bot_behavior, logging,
    lumberjack, ctf. Unknown keys are ignored.
    """
    bot_config = BotConfig()
    config_dict = config_dict or {}

    _apply(bot_config, config_dict.get('server'))
    _apply(bot_config, config_dict.get('account'))
    _apply(bot_config, config_dict.get('bot_behavior'))
    _apply(bot_config, config_dict.get('logging'))
    _apply(bot_config.lumberjack, config_dict.get('lumberjack'))
    _apply(bot_config.ctf, config_dict.get('ctf'))
    return bot_config
