"""
Strategy scripts for the bot framework.

- LumberjackStrategy: chop wood and craft axes until a point goal
- CTFStrategy: capture-the-flag main loop bot
- DecisionLoop: ordered handler list, one action per pass
- helpers / handlers: building blocks shared by the strategies
"""

from .ctf import CTFStrategy
from .lumberjack import LumberjackStrategy
from .main_loop import DEFAULT_HANDLERS, DecisionLoop
from .helpers import (
    MovementDebouncer,
    PotionType,
    RunThrottle,
    move_toward_position,
    nearest_opponents,
    nearest_teammates,
)

__all__ = [
    'CTFStrategy',
    'LumberjackStrategy',
    'DEFAULT_HANDLERS',
    'DecisionLoop',
    'MovementDebouncer',
    'PotionType',
    'RunThrottle',
    'move_toward_position',
    'nearest_opponents',
    'nearest_teammates',
]
