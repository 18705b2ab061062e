"""
main_loop.py - Decision list runner for main loop bots.

A pass walks an ordered list of handlers and stops at the first one that
reports it acted, so the bot takes at most one action per pass.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from integration.bot_api import BotAPI, CTFUtils, Entity, is_benign_path_error
from . import handlers

logger = logging.getLogger(__name__)

Handler = Callable[[BotAPI, CTFUtils, List[Entity], List[Entity]], bool]

DEFAULT_HANDLERS: Tuple[Handler, ...] = (
    handlers.handle_low_health,
    handlers.handle_attack_flag_carrier,
    handlers.handle_attack_nearby_opponent,
    handlers.handle_scoring_flag,
    handlers.handle_collecting_flag,
    handlers.handle_placing_blocks,
    handlers.handle_looting_items,
    handlers.handle_bot_idle_position,
)


class DecisionLoop:
    """
    Ordered list of handlers evaluated once per main loop pass.

    Usage:
        loop = DecisionLoop()
        acted = loop.run_once(bot, ctf, opponents, teammates)
    """

    def __init__(self, handler_list: Optional[Sequence[Handler]] = None):
        self.handlers: List[Handler] = list(handler_list or DEFAULT_HANDLERS)

    def run_once(self, bot: BotAPI, ctf: CTFUtils, opponents: List[Entity],
                 teammates: List[Entity]) -> Optional[str]:
        """
        Run handlers in priority order until one acts.

        Returns:
            Name of the handler that acted, or None
        """
        for handler in self.handlers:
            if handler(bot, ctf, opponents, teammates):
                return handler.__name__
        return None

    def run_safely(self, bot: BotAPI, ctf: CTFUtils, opponents: List[Entity],
                   teammates: List[Entity]) -> Optional[str]:
        """
        run_once with the main loop's error policy.

        Interrupted paths are expected when a newer movement target wins and
        are ignored. Anything else is logged and the loop backs off a tick.
        """
        try:
            return self.run_once(bot, ctf, opponents, teammates)
        except Exception as e:
            handle_loop_error(bot, e)
            return None


def handle_loop_error(bot: BotAPI, error: Exception) -> None:
    """Ignore interrupted paths; log anything else and back off one tick."""
    if is_benign_path_error(error):
        logger.debug(f"Ignoring interrupted path: {error}")
        return
    logger.error(f"Error in main loop: {error}", exc_info=True)
    bot.wait(1)
