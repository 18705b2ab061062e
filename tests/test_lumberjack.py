"""Tests for the wood gathering strategy."""

import pytest

from integration import Position, SimulatedBot, build_forest
from strategies import LumberjackStrategy
from utils.config import LumberjackConfig


def digs(bot):
    return [a[2] for a in bot.actions if a[0] == 'dig']


@pytest.fixture
def lumberjack(bot):
    return LumberjackStrategy(bot, LumberjackConfig(goal_points=5)).register()


class TestGatherLog:
    def test_stops_once_one_log_is_collected(self, bot, lumberjack):
        bot.add_block('spruce_log', Position(3, 64, 0))
        bot.add_block('spruce_log', Position(6, 64, 0))
        lumberjack.gather_log()
        assert bot.get_inventory_item_quantity('spruce_log') == 1
        assert digs(bot) == [(3, 64, 0)]

    def test_counts_from_existing_logs(self, bot, lumberjack):
        bot.add_item('spruce_log', count=3)
        bot.add_block('spruce_log', Position(3, 64, 0))
        lumberjack.gather_log()
        assert bot.get_inventory_item_quantity('spruce_log') == 4

    def test_unbreakable_log_skips_to_next_closest(self, bot, lumberjack):
        bot.add_block('spruce_log', Position(2, 64, 0), diggable=False)
        bot.add_block('spruce_log', Position(5, 64, 0))
        lumberjack.gather_log()
        assert bot.get_inventory_item_quantity('spruce_log') == 1
        assert digs(bot) == [(2, 64, 0), (5, 64, 0)]

    def test_wanders_until_a_log_is_in_range(self, bot, lumberjack):
        bot.add_block('spruce_log', Position(55, 64, 0))
        bot.wander_failures = 1
        lumberjack.gather_log()
        assert bot.actions.count(('wander',)) == 2
        assert bot.get_inventory_item_quantity('spruce_log') == 1

    def test_announces_own_log_pickups(self, bot, lumberjack):
        bot.add_block('spruce_log', Position(3, 64, 0))
        lumberjack.gather_log()
        assert "I collected a(n) spruce_log" in bot.chat_log

    def test_ignores_other_players_pickups(self, bot, lumberjack):
        other = bot.add_player('someone', Position(1, 64, 0))
        dropped = bot.add_ground_item('spruce_log', Position(1, 64, 0))
        lumberjack.on_player_collect(other, dropped)
        assert bot.chat_log == []


class TestCrafting:
    @pytest.fixture
    def forest_bot(self, bot):
        build_forest(bot, trees=5)
        return bot

    def test_craft_axes_from_empty_inventory(self, forest_bot, lumberjack):
        assert lumberjack.craft_axes() is True
        assert forest_bot.get_inventory_item_quantity('wooden_axe') == 2
        assert forest_bot.equipped('hand').name == 'wooden_axe'
        # the table is picked back up
        assert forest_bot.get_inventory_item_quantity('crafting_table') == 1
        assert forest_bot.find_block('crafting_table') is None

    def test_craft_table_uses_existing_planks(self, bot, lumberjack):
        bot.add_item('spruce_planks', count=4)
        lumberjack.craft_table()
        assert bot.get_inventory_item_quantity('crafting_table') == 1
        assert digs(bot) == []

    def test_craft_table_skipped_when_carried(self, bot, lumberjack):
        bot.add_item('crafting_table')
        lumberjack.craft_table()
        assert [a for a in bot.actions if a[0] == 'craft'] == []

    def test_craft_sticks_from_log(self, bot, lumberjack):
        bot.add_item('spruce_log')
        lumberjack.craft_sticks()
        assert bot.get_inventory_item_quantity('stick') == 4
        assert bot.get_inventory_item_quantity('spruce_planks') == 2

    def test_craft_planks_needs_one_log_with_two_planks(self, bot, lumberjack):
        bot.add_item('spruce_planks', count=2)
        bot.add_block('spruce_log', Position(3, 64, 0))
        lumberjack.craft_planks()
        assert bot.get_inventory_item_quantity('spruce_planks') == 6
        assert ('craft', 'spruce_planks', 1) in bot.actions

    def test_craft_planks_needs_two_logs_otherwise(self, bot, lumberjack):
        bot.add_block('spruce_log', Position(3, 64, 0))
        bot.add_block('spruce_log', Position(4, 64, 0))
        lumberjack.craft_planks()
        assert bot.get_inventory_item_quantity('spruce_planks') == 8
        assert ('craft', 'spruce_planks', 2) in bot.actions

    def test_craft_axes_fails_without_ground(self, bot, lumberjack):
        bot.add_item('crafting_table')
        bot.add_item('stick', count=4)
        bot.add_item('spruce_planks', count=6)
        assert lumberjack.craft_axes() is False
        assert bot.get_inventory_item_quantity('wooden_axe') == 0


class TestRun:
    def test_gathers_until_goal(self, bot, lumberjack):
        build_forest(bot, trees=5)
        assert lumberjack.gather_until_goal() == 5
        assert lumberjack.goal_reached is True
        assert lumberjack.has_axe()
        assert bot.chat_log[-1] == "I reached my goal! I have 5 logs and 0 apples"

    def test_apples_count_toward_goal(self, bot, lumberjack):
        bot.add_item('apple', count=5)
        bot.add_item('wooden_axe')
        assert lumberjack.gather_until_goal() == 5
        assert digs(bot) == []

    def test_run_waits_for_spawn(self):
        bot = SimulatedBot(username="lumberjack")
        build_forest(bot, trees=5)
        strategy = LumberjackStrategy(bot, LumberjackConfig(goal_points=2)).register()
        bot.schedule(20, bot.spawn)
        assert strategy.run() == 2
        assert bot.chat_log[0] == "Hello, I have arrived!"

    def test_run_gives_up_without_spawn(self):
        bot = SimulatedBot(username="lumberjack")
        strategy = LumberjackStrategy(bot).register()
        assert strategy.run(max_wait_ticks=40) == 0
        assert bot.actions.count(('wait', 20)) == 2
