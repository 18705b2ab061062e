"""
ctf.py - Capture-the-flag strategy with a main loop.

The bot reacts to match and flag events and, while a match is running,
makes one decision per throttled pass:

    low health > attack flag carrier > attack nearby opponent >
    score flag > collect flag > place blocks > loot items > idle

After a flag is scored the bot collects items until a new flag appears.
A death abandons that collection loop since the bot has respawned
somewhere else.
"""

import time
import logging
from typing import List, Optional

from integration.bot_api import (
    BotAPI,
    CTFUtils,
    Entity,
    DEATH,
    FLAG_AVAILABLE,
    FLAG_OBTAINED,
    FLAG_SCORED,
    ITEM_COLLECTED,
    MATCH_ENDED,
    MATCH_STARTED,
    SPAWN,
)
from utils.config import CTFConfig
from utils.logger import ActionLogger
from . import handlers
from .helpers import RunThrottle, movement_for, nearest_opponents, nearest_teammates
from .main_loop import DecisionLoop, handle_loop_error

logger = logging.getLogger(__name__)


class CTFStrategy:
    """
    Capture-the-flag bot.

    Usage:
        strategy = CTFStrategy(bot, ctf)
        strategy.register()
        strategy.run(max_ticks=1000)
    """

    def __init__(
        self,
        bot: BotAPI,
        ctf: CTFUtils,
        config: Optional[CTFConfig] = None,
        decision_loop: Optional[DecisionLoop] = None,
        throttle: Optional[RunThrottle] = None,
        action_logger: Optional[ActionLogger] = None
    ):
        self.bot = bot
        self.ctf = ctf
        self.config = config or CTFConfig()
        self.decision_loop = decision_loop or DecisionLoop()
        self.throttle = throttle or RunThrottle(self.config.throttle_ms)
        self.action_logger = action_logger or ActionLogger()

        self.death_count = 0
        self.match_in_progress = False
        self.collecting_items = False
        self.passes = 0
        self._collect_pending = False
        self._running = False

    def register(self) -> 'CTFStrategy':
        """Wire the strategy's event handlers onto the bot."""
        self.bot.on(SPAWN, self.on_spawn)
        self.bot.on(DEATH, self.on_death)
        self.bot.on(MATCH_STARTED, self.on_match_started)
        self.bot.on(MATCH_ENDED, self.on_match_ended)
        self.bot.on(FLAG_OBTAINED, self.on_flag_obtained)
        self.bot.on(FLAG_SCORED, self.on_flag_scored)
        self.bot.on(FLAG_AVAILABLE, self.on_flag_available)
        self.bot.on(ITEM_COLLECTED, self.on_item_collected)
        return self

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_spawn(self, *args) -> None:
        self.bot.chat(self.config.greeting)
        movement_for(self.bot).reset()
        if self.config.auto_start and not self.match_in_progress:
            logger.info("Spawned, starting main loop")
            self.match_in_progress = True

    def on_death(self, *args) -> None:
        self.death_count += 1
        # a collection queued by a score before this death is stale
        self._collect_pending = False
        movement_for(self.bot).reset()
        logger.info(f"I died... (deaths: {self.death_count})")

    def on_match_started(self, *args) -> None:
        logger.info("Match started")
        self.match_in_progress = True

    def on_match_ended(self, *args) -> None:
        logger.info("Match ended")
        self.match_in_progress = False
        self._collect_pending = False

    def on_flag_obtained(self, player_name: Optional[str] = None, *args) -> None:
        logger.info(f"Player {player_name} obtained the flag")

    def on_flag_scored(self, team_name: Optional[str] = None, *args) -> None:
        self.bot.chat(f"Flag scored by {team_name} team, collecting items until new flag is here")
        self._collect_pending = True

    def on_flag_available(self, position=None, *args) -> None:
        self.bot.chat("Flag is available, going to get it")

    def on_item_collected(self, item=None, *args) -> None:
        name = getattr(item, 'name', item)
        logger.info(f"I collected: {name}")

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def collect_items_until_flag_respawns(self) -> int:
        """
        Loot items while waiting for a new flag.

        Stops when the flag is back, the match ends, or the bot dies
        (a changed death count means this loop's work is stale).

        Returns:
            Number of loot moves issued
        """
        deaths_at_start = self.death_count
        moves = 0
        self.collecting_items = True
        try:
            while (self.match_in_progress
                   and self.death_count == deaths_at_start
                   and self.ctf.get_flag_location() is None
                   and not self.ctf.has_flag()):
                self.throttle.throttle(self.bot)
                try:
                    if handlers.handle_looting_items(self.bot, self.ctf, [], []):
                        moves += 1
                        self.bot.wait(1)
                    else:
                        self.bot.wait(20)
                except Exception as e:
                    handle_loop_error(self.bot, e)
                self.ctf.poll()
        finally:
            self.collecting_items = False

        if self.death_count != deaths_at_start:
            logger.info("Died while collecting items, abandoning collection loop")
        return moves

    def gather_opponents(self) -> List[Entity]:
        return nearest_opponents(self.bot, self.config.sight_range, self.config.max_opponents)

    def gather_teammates(self) -> List[Entity]:
        return nearest_teammates(self.bot, self.config.sight_range,
                                 self.config.bots_only_teammates)

    def tick(self) -> Optional[str]:
        """
        One main loop pass.

        Returns:
            Name of the handler that acted, or None
        """
        self.throttle.throttle(self.bot)
        self.bot.process_events()
        self.passes += 1
        acted = None
        try:
            self.ctf.poll()
            if self._collect_pending:
                self._collect_pending = False
                self.collect_items_until_flag_respawns()
            else:
                acted = self.decision_loop.run_safely(self.bot, self.ctf,
                                                      self.gather_opponents(),
                                                      self.gather_teammates())
        except Exception as e:
            handle_loop_error(self.bot, e)
        self.action_logger.log_pass(acted)
        return acted

    def run(self, max_ticks: Optional[int] = None,
            max_runtime_seconds: Optional[float] = None) -> int:
        """
        Run until stopped or a limit is reached.

        Passes only act while a match is in progress; otherwise the bot
        waits a second and checks again.

        Returns:
            Number of loop iterations
        """
        self._running = True
        start = time.time()
        iterations = 0
        while self._running:
            if max_ticks is not None and iterations >= max_ticks:
                break
            if max_runtime_seconds is not None and time.time() - start >= max_runtime_seconds:
                logger.info("Runtime limit reached, stopping...")
                break
            if self.match_in_progress:
                self.tick()
            else:
                self.bot.wait(20)
            iterations += 1
        self._running = False
        return iterations

    def stop(self) -> None:
        self._running = False
