"""Tests for the capture-the-flag strategy: events, passes and the item collection loop."""

from unittest import mock

import pytest

from integration import Position
from integration.bot_api import DEATH, FLAG_SCORED, MATCH_ENDED, MATCH_STARTED
from strategies import CTFStrategy
from strategies.helpers import movement_for
from strategies.main_loop import DecisionLoop
from utils.config import CTFConfig


@pytest.fixture
def strategy(bot, ctf, no_wait_throttle):
    return CTFStrategy(bot, ctf, throttle=no_wait_throttle).register()


class TestEvents:
    def test_spawn_greets_without_starting(self, bot, strategy):
        bot.spawn()
        assert strategy.config.greeting in bot.chat_log
        assert strategy.match_in_progress is False

    def test_auto_start_on_spawn(self, bot, ctf, no_wait_throttle):
        strategy = CTFStrategy(bot, ctf, CTFConfig(auto_start=True),
                               throttle=no_wait_throttle).register()
        bot.spawn()
        assert strategy.match_in_progress is True

    def test_match_events_toggle_loop(self, bot, strategy):
        bot.emit(MATCH_STARTED)
        assert strategy.match_in_progress is True
        bot.emit(MATCH_ENDED)
        assert strategy.match_in_progress is False

    def test_death_counter_increments_once_per_death(self, bot, strategy):
        bot.die()
        assert strategy.death_count == 1
        bot.spawn()
        bot.die()
        assert strategy.death_count == 2

    def test_death_resets_movement_target(self, bot, strategy):
        movement_for(bot).move_toward_position(bot, Position(10, 64, 0))
        bot.die()
        assert movement_for(bot).last_move_position is None

    def test_flag_scored_announces(self, bot, strategy):
        bot.emit(FLAG_SCORED, 'RED')
        assert any("Flag scored by RED team" in message for message in bot.chat_log)


class TestTick:
    def test_pass_goes_for_the_flag(self, bot, strategy):
        bot.emit(MATCH_STARTED)
        assert strategy.tick() == 'handle_collecting_flag'
        assert strategy.action_logger.action_counts == {'handle_collecting_flag': 1}

    def test_error_in_pass_is_logged_and_backs_off(self, bot, ctf, no_wait_throttle):
        def broken(bot, ctf, opponents, teammates):
            raise RuntimeError("host went away")

        strategy = CTFStrategy(bot, ctf, throttle=no_wait_throttle,
                               decision_loop=DecisionLoop([broken])).register()
        assert strategy.tick() is None
        assert ('wait', 1) in bot.actions
        assert strategy.action_logger.idle_passes == 1

    def test_capture_and_score_flow(self, bot, ctf, strategy):
        bot.emit(MATCH_STARTED)

        assert strategy.tick() == 'handle_collecting_flag'
        bot.tick()  # reach the flag

        assert strategy.tick() == 'handle_scoring_flag'
        assert ctf.has_flag()
        bot.tick()  # reach the score pad

        # scoring pass switches to collecting items until the flag respawns
        assert strategy.tick() is None
        assert ctf.scores == 1
        assert ctf.get_flag_location() is not None
        assert "Flag is available, going to get it" in bot.chat_log
        assert strategy.collecting_items is False

    def test_run_waits_while_no_match(self, bot, strategy):
        assert strategy.run(max_ticks=3) == 3
        assert strategy.passes == 0
        assert bot.actions.count(('wait', 20)) == 3

    def test_run_passes_during_match(self, bot, strategy):
        bot.emit(MATCH_STARTED)
        strategy.run(max_ticks=4)
        assert strategy.passes == 4

    def test_passes_use_decision_loop_error_policy(self, bot, strategy):
        bot.emit(MATCH_STARTED)
        with mock.patch.object(strategy.decision_loop, 'run_safely',
                               return_value='handle_looting_items') as run_safely:
            assert strategy.tick() == 'handle_looting_items'
        run_safely.assert_called_once()

    def test_collecting_pass_is_logged(self, bot, ctf, strategy):
        bot.emit(MATCH_STARTED)
        ctf.flag_location = None
        bot.emit(FLAG_SCORED, 'BLUE')
        bot.schedule(20, ctf.respawn_flag)
        assert strategy.tick() is None
        assert strategy.action_logger.total_passes == strategy.passes == 1
        assert strategy.action_logger.idle_passes == 1

    def test_death_after_score_cancels_pending_collection(self, bot, ctf, strategy):
        bot.emit(MATCH_STARTED)
        ctf.flag_location = None
        bot.emit(FLAG_SCORED, 'BLUE')
        bot.die()
        bot.spawn()
        assert strategy.tick() == 'handle_bot_idle_position'
        assert ('wait', 20) not in bot.actions
        assert strategy.collecting_items is False

    def test_deferred_host_events_run_before_the_pass(self, bot, strategy):
        bot.emit(MATCH_STARTED)
        bot.defer(bot.emit, MATCH_ENDED)
        assert strategy.tick() == 'handle_collecting_flag'
        assert strategy.match_in_progress is False


class TestCollectItemsUntilFlagRespawns:
    @pytest.fixture
    def scored(self, bot, ctf, strategy):
        bot.emit(MATCH_STARTED)
        ctf.flag_location = None
        return strategy

    def test_stops_when_flag_respawns(self, bot, ctf, scored):
        bot.schedule(60, ctf.respawn_flag)
        scored.collect_items_until_flag_respawns()
        assert ctf.get_flag_location() is not None
        assert bot.actions.count(('wait', 20)) == 3

    def test_loots_while_waiting(self, bot, ctf, scored):
        bot.add_ground_item('arrow', Position(4, 64, 0))
        bot.schedule(40, ctf.respawn_flag)
        assert scored.collect_items_until_flag_respawns() == 1
        assert bot.get_inventory_item_quantity('arrow') == 1

    def test_death_abandons_collection(self, bot, ctf, scored):
        seen = []
        bot.on(DEATH, lambda: seen.append(scored.collecting_items))
        bot.schedule(20, bot.die)
        scored.collect_items_until_flag_respawns()
        assert seen == [True]
        assert scored.death_count == 1
        assert scored.collecting_items is False
        assert ctf.get_flag_location() is None

    def test_match_end_abandons_collection(self, bot, ctf, scored):
        bot.schedule(40, lambda: bot.emit(MATCH_ENDED))
        scored.collect_items_until_flag_respawns()
        assert bot.actions.count(('wait', 20)) == 2
        assert ctf.get_flag_location() is None
