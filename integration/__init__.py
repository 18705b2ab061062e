"""
Integration module for the strategy bots.

This module provides the host bot API the strategies call into:
- BotAPI / CTFUtils: abstract host contract and shared value types
- SimulatedBot / SimulatedCTF: in-process world for dry runs and tests
- MineflayerBot / MineflayerCTF: real Mineflayer bot through JSPyBridge
"""

from .bot_api import (
    BotAPI,
    BotAPIError,
    Block,
    CTFUtils,
    CraftingError,
    Entity,
    FindResult,
    GoalChanged,
    GoalNear,
    Item,
    MatchInfo,
    NotConnectedError,
    PathInterrupted,
    PathStopped,
    Player,
    Position,
    is_benign_path_error,
)
from .sim_bot import SimulatedBot, SimulatedCTF, build_arena, build_forest
from .mineflayer_bridge import BridgeConfig, MineflayerBot, MineflayerCTF

__all__ = [
    'BotAPI',
    'BotAPIError',
    'Block',
    'CTFUtils',
    'CraftingError',
    'Entity',
    'FindResult',
    'GoalChanged',
    'GoalNear',
    'Item',
    'MatchInfo',
    'NotConnectedError',
    'PathInterrupted',
    'PathStopped',
    'Player',
    'Position',
    'is_benign_path_error',
    'SimulatedBot',
    'SimulatedCTF',
    'build_arena',
    'build_forest',
    'BridgeConfig',
    'MineflayerBot',
    'MineflayerCTF',
]
