"""
lumberjack.py - Wood gathering strategy.

The bot chops spruce trees until it holds enough points worth of items
(logs and apples are worth 1 point each). Before chopping it crafts two
wooden axes if it carries none, gathering the planks, sticks and crafting
table that takes.
"""

import logging
from typing import Optional

from integration.bot_api import BotAPI, Block, Entity, PLAYER_COLLECT, SPAWN
from utils.config import LumberjackConfig

logger = logging.getLogger(__name__)

GROUND_BLOCKS = ('grass_block', 'grass', 'dirt')


class LumberjackStrategy:
    """
    Chop wood until the point goal is reached.

    Usage:
        strategy = LumberjackStrategy(bot)
        strategy.register()
        bot.spawn()
        strategy.run()
    """

    def __init__(self, bot: BotAPI, config: Optional[LumberjackConfig] = None):
        self.bot = bot
        self.config = config or LumberjackConfig()
        self.spawned = False
        self.goal_reached = False

    def register(self) -> 'LumberjackStrategy':
        self.bot.on(SPAWN, self.on_spawn)
        self.bot.on(PLAYER_COLLECT, self.on_player_collect)
        return self

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_spawn(self, *args) -> None:
        self.bot.chat("Hello, I have arrived!")
        self.spawned = True

    def on_player_collect(self, collector: Entity, collected: Entity) -> None:
        """Announce whenever this bot picks up a log or an apple."""
        if not self.config.announce_collects:
            return
        item_name = self.bot.get_entity_name(collected).lower()
        if collector.username == self.bot.username() and \
                ('log' in item_name or item_name == 'apple'):
            self.bot.chat(f"I collected a(n) {item_name}")

    # ------------------------------------------------------------------
    # Gathering and crafting
    # ------------------------------------------------------------------

    def points(self) -> int:
        return (self.bot.get_inventory_item_quantity(self.config.log_name) +
                self.bot.get_inventory_item_quantity('apple'))

    def gather_log(self) -> None:
        """
        Chop and pick up one log.

        Keeps going until the inventory holds more logs than when it
        started, since a dropped log is not always collected. A log that
        cannot be broken is skipped in favour of the next-closest one.
        """
        log_name = self.config.log_name
        skip_current_log = False
        logs_before = self.bot.get_inventory_item_quantity(log_name)

        while self.bot.get_inventory_item_quantity(log_name) <= logs_before:
            self.bot.process_events()
            found = self.bot.find_block(log_name, skip_closest=skip_current_log)
            if found is None:
                # nothing nearby: wander until a wander completes, then look again
                self._wander()
                skip_current_log = False
                continue

            if self.bot.find_and_dig_block(log_name, skip_closest=skip_current_log):
                skip_current_log = False
            elif skip_current_log:
                # the two closest logs both failed
                self._wander()
                skip_current_log = False
            else:
                skip_current_log = True

    def _wander(self) -> None:
        while not self.bot.wander():
            logger.debug("Wander did not complete, trying again")

    def craft_table(self) -> None:
        """Craft a crafting table unless one is carried (4 planks, from 1 log)."""
        planks = self.config.planks_name
        if self.bot.inventory_contains_item('crafting_table'):
            return
        if not self.bot.inventory_contains_item(planks, quantity=4):
            if not self.bot.inventory_contains_item(self.config.log_name):
                self.gather_log()
            self.bot.craft_item(planks)
        self.bot.craft_item('crafting_table')

    def craft_sticks(self) -> None:
        """Craft sticks unless 4 are carried (2 planks, from 1 log)."""
        planks = self.config.planks_name
        if self.bot.inventory_contains_item('stick', quantity=4):
            return
        if not self.bot.inventory_contains_item(planks, quantity=2):
            if not self.bot.inventory_contains_item(self.config.log_name):
                self.gather_log()
            self.bot.craft_item(planks)
        self.bot.craft_item('stick')

    def craft_planks(self) -> None:
        """Make sure 6 planks are carried, gathering up to 2 logs for them."""
        planks = self.config.planks_name
        if self.bot.inventory_contains_item(planks, quantity=6):
            return
        logs_carried = self.bot.get_inventory_item_quantity(self.config.log_name)
        logs_needed = 1 if self.bot.get_inventory_item_quantity(planks) >= 2 else 2
        for _ in range(logs_carried, logs_needed):
            self.gather_log()
        self.bot.craft_item(planks, quantity=logs_needed)

    def find_ground(self) -> Optional[Block]:
        for name in GROUND_BLOCKS:
            ground = self.bot.find_block(name, only_find_top_blocks=True,
                                         max_distance=self.config.table_search_distance)
            if ground is not None:
                return ground
        return None

    def craft_axes(self) -> bool:
        """
        Craft two axes at once, which beats crafting the second after the
        first breaks.

        Returns:
            True if axes were crafted
        """
        self.craft_table()
        self.craft_sticks()
        self.craft_planks()

        # place the table, stand next to it, craft, then take the table back
        ground = self.find_ground()
        if not self.bot.place_block('crafting_table', ground):
            logger.warning("Could not place a crafting table")
            return False
        placed_table = self.bot.find_block('crafting_table')
        if placed_table is None:
            logger.warning("Placed crafting table went missing")
            return False
        self.bot.approach_block(placed_table)

        crafted = self.bot.craft_item(self.config.axe_name, quantity=self.config.axes_per_craft,
                                      crafting_table=placed_table)
        self.bot.hold_item(self.config.axe_name)
        self.bot.find_and_dig_block('crafting_table')
        return crafted is not None

    def has_axe(self) -> bool:
        return self.bot.inventory_contains_item('_axe', partial_match=True)

    # ------------------------------------------------------------------
    # Main routine
    # ------------------------------------------------------------------

    def gather_until_goal(self) -> int:
        """
        Chop until logs + apples reach the goal, crafting axes whenever
        none is carried.

        Returns:
            Points held at the end
        """
        while self.points() < self.config.goal_points:
            if not self.has_axe():
                self.craft_axes()
            self.gather_log()

        logs = self.bot.get_inventory_item_quantity(self.config.log_name)
        apples = self.bot.get_inventory_item_quantity('apple')
        self.bot.chat(f"I reached my goal! I have {logs} logs and {apples} apples")
        self.goal_reached = True
        return logs + apples

    def run(self, max_wait_ticks: int = 600) -> int:
        """
        Wait for the bot to spawn, then gather until the goal is reached.

        Returns:
            Points held at the end (0 if the bot never spawned)
        """
        waited = 0
        while not self.spawned:
            if waited >= max_wait_ticks:
                logger.error("Bot did not spawn in time")
                return 0
            self.bot.wait(20)
            waited += 20
        return self.gather_until_goal()
