"""Tests for movement debounce, throttling, teammates and potion helpers."""

import pytest

from integration import Item, Player, Position, SimulatedBot
from strategies.helpers import (
    MovementDebouncer,
    PotionType,
    RunThrottle,
    equip_shield,
    get_potion_of_type,
    get_unbreakable_block_ids,
    movement_for,
    name_for_item,
    nearest_opponents,
    nearest_teammates,
    sort_by_distance,
    unequip_off_hand,
    use_potion,
    use_potion_of_type,
)
from conftest import make_opponent


def goto_actions(bot):
    return [a for a in bot.actions if a[0] == 'goto']


class TestMovementDebouncer:
    def test_first_move_issues_goal(self, bot):
        movement = MovementDebouncer()
        assert movement.move_toward_position(bot, Position(10, 64, 0)) is True
        assert bot.pathfinder_is_moving()
        assert goto_actions(bot) == [('goto', (10, 64, 0), 1)]

    def test_target_within_reach_is_not_reissued(self, bot):
        movement = MovementDebouncer()
        movement.move_toward_position(bot, Position(10, 64, 0), reach=1)
        assert movement.move_toward_position(bot, Position(10.5, 64, 0), reach=1) is False
        assert movement.move_toward_position(bot, Position(10, 64, 1), reach=1) is False
        assert len(goto_actions(bot)) == 1

    def test_target_outside_reach_is_reissued(self, bot):
        movement = MovementDebouncer()
        movement.move_toward_position(bot, Position(10, 64, 0), reach=1)
        assert movement.move_toward_position(bot, Position(12, 64, 0), reach=1) is True
        assert movement.last_move_position == Position(12, 64, 0)
        assert len(goto_actions(bot)) == 2

    def test_larger_reach_widens_debounce(self, bot):
        movement = MovementDebouncer()
        movement.move_toward_position(bot, Position(10, 64, 0), reach=3)
        assert movement.move_toward_position(bot, Position(12, 64, 0), reach=3) is False

    def test_idle_pathfinder_reissues_same_target(self, bot):
        movement = MovementDebouncer()
        movement.move_toward_position(bot, Position(10, 64, 0))
        bot.tick()  # goal reached
        assert not bot.pathfinder_is_moving()
        assert movement.last_move_position is None
        assert movement.move_toward_position(bot, Position(10, 64, 0)) is True

    def test_awaited_move_approaches_directly(self, bot):
        movement = MovementDebouncer()
        assert movement.move_toward_position(bot, Position(5, 64, 5), reach=2,
                                             should_await=True) is True
        assert ('approach', (5, 64, 5), 2) in bot.actions
        assert bot.position() == Position(5, 64, 5)
        assert goto_actions(bot) == []

    def test_movement_is_tracked_per_bot(self):
        first = SimulatedBot(username="a")
        second = SimulatedBot(username="b")
        assert movement_for(first) is movement_for(first)
        assert movement_for(first) is not movement_for(second)


class TestRunThrottle:
    def test_first_pass_never_waits(self, bot):
        throttle = RunThrottle(50, clock=lambda: 1000.0)
        assert throttle.throttle(bot) == 0
        assert ('wait', 0) not in bot.actions

    def test_waits_for_remaining_interval_in_ticks(self, bot):
        now = [1000.0]
        throttle = RunThrottle(50, clock=lambda: now[0])
        throttle.throttle(bot)
        now[0] = 1010.0
        assert throttle.throttle(bot) == 1  # 40ms ~ 1 tick
        assert ('wait', 1) in bot.actions

    def test_no_wait_after_interval_elapsed(self, bot):
        now = [1000.0]
        throttle = RunThrottle(50, clock=lambda: now[0])
        throttle.throttle(bot)
        now[0] = 1100.0
        assert throttle.throttle(bot) == 0
        assert throttle.last_run_time == 1100.0

    def test_sub_tick_wait_does_not_advance_world(self, bot):
        now = [1000.0]
        throttle = RunThrottle(50, clock=lambda: now[0])
        throttle.throttle(bot)
        now[0] = 1040.0
        assert throttle.throttle(bot) == 0
        assert bot.current_tick == 0


class TestTeammates:
    @pytest.fixture
    def team_bot(self):
        bot = SimulatedBot(username="me", team="BLUE", position=Position(0, 64, 0))
        bot.set_match_info([
            Player("me", "BLUE", is_bot=True),
            Player("mate1", "BLUE", is_bot=True),
            Player("mate2", "BLUE", is_bot=True),
            Player("human", "BLUE", is_bot=False),
            Player("enemy", "RED", is_bot=True),
        ])
        bot.add_player("mate1", Position(10, 64, 0))
        bot.add_player("mate2", Position(3, 64, 0))
        bot.add_player("human", Position(1, 64, 0))
        bot.add_player("enemy", Position(2, 64, 0))
        return bot

    def test_bot_teammates_sorted_by_distance(self, team_bot):
        mates = nearest_teammates(team_bot)
        assert [m.username for m in mates] == ["mate2", "mate1"]

    def test_human_teammates_included_when_asked(self, team_bot):
        mates = nearest_teammates(team_bot, bots_only=False)
        assert [m.username for m in mates] == ["human", "mate2", "mate1"]

    def test_max_distance_limits_results(self, team_bot):
        mates = nearest_teammates(team_bot, max_distance=5)
        assert [m.username for m in mates] == ["mate2"]

    def test_no_match_info_means_no_teammates(self, bot):
        assert nearest_teammates(bot) == []

    def test_opponents_exclude_own_team(self, team_bot):
        assert [o.username for o in nearest_opponents(team_bot)] == ["enemy"]

    def test_sort_by_distance(self):
        far = make_opponent(1, 20)
        near = make_opponent(2, 2)
        assert sort_by_distance([far, near], Position(0, 64, 0)) == [near, far]


class TestPotions:
    def test_name_for_item_prefers_custom_name(self):
        item = Item('potion', custom_name='{"extra": [{"text": "Healing Potion"}]}')
        assert name_for_item(item) == "Healing Potion"

    def test_name_for_item_falls_back_on_bad_custom_name(self):
        assert name_for_item(Item('potion', custom_name='not json')) == "Potion"
        assert name_for_item(Item('potion', custom_name='{"extra": []}')) == "Potion"

    def test_get_potion_of_type(self, bot):
        bot.add_item('potion', custom_name='{"extra": [{"text": "Gotta Go Fast"}]}')
        bot.add_item('golden_apple', display_name='Golden Apple')
        assert get_potion_of_type(bot, PotionType.HEALTH).name == 'golden_apple'
        assert get_potion_of_type(bot, 'movement').name == 'potion'
        assert get_potion_of_type(bot, PotionType.NINJA) is None
        assert get_potion_of_type(bot, 'unknown') is None

    def test_use_potion_holds_and_activates(self, bot):
        bot.add_item('golden_apple', count=2, display_name='Golden Apple')
        assert use_potion_of_type(bot, PotionType.HEALTH) is True
        assert ('equip', 'golden_apple', 'hand') in bot.actions
        assert ('activate', 'golden_apple') in bot.actions
        assert bot.get_inventory_item_quantity('golden_apple') == 1

    def test_use_potion_without_potion(self, bot):
        assert use_potion(bot, None) is False
        assert use_potion_of_type(bot, PotionType.COMBAT) is False


class TestEquipment:
    def test_equip_shield_into_off_hand(self, bot):
        bot.add_item('shield')
        assert equip_shield(bot) is True
        assert bot.equipped('off-hand').name == 'shield'
        unequip_off_hand(bot)
        assert bot.equipped('off-hand') is None

    def test_no_shield(self, bot):
        assert equip_shield(bot) is False

    def test_unbreakable_block_ids_follow_known_names(self, bot):
        bot.block_ids = {'glass': 20, 'snow': 78}
        assert get_unbreakable_block_ids(bot) == [78, 20]
