"""Tests for the Mineflayer host with the JS bot replaced by a mock."""

import logging
from unittest import mock

import pytest

from integration import GoalNear, MineflayerBot, Position
from integration.bot_api import DEATH
from conftest import JavaScriptError


@pytest.fixture
def live_bot():
    bot = MineflayerBot()
    bot._bot = mock.Mock()
    bot._bot.pathfinder.isMoving.return_value = True
    bot._goals = mock.Mock()
    return bot


def test_bridge_events_wait_for_the_strategy_thread(live_bot):
    seen = []
    live_bot.on(DEATH, lambda: seen.append('death'))
    live_bot.defer(live_bot.emit, DEATH)
    assert seen == []
    live_bot.wait(2)
    live_bot._bot.waitForTicks.assert_called_once_with(2)
    assert seen == ['death']


def test_finished_goal_runs_its_callback(live_bot):
    reached = []
    live_bot.pathfinder_set_goal(GoalNear(1, 64, 1), on_reached=lambda: reached.append(1))
    live_bot._finish_goal(live_bot._goal_callbacks, None)
    assert reached == [1]
    assert live_bot._goal_callbacks == (None, None)


def test_replaced_goal_callbacks_are_dropped(live_bot):
    reached = []
    errors = []
    live_bot.pathfinder_set_goal(GoalNear(1, 64, 1), on_reached=lambda: reached.append('first'),
                                 on_error=errors.append)
    first = live_bot._goal_callbacks
    live_bot.pathfinder_set_goal(GoalNear(9, 64, 9), on_reached=lambda: reached.append('second'))

    # goal_reached for the first goal arrives after it was replaced
    live_bot._finish_goal(first, None)
    assert reached == []
    assert [type(e).__name__ for e in errors] == ['GoalChanged']

    live_bot._finish_goal(live_bot._goal_callbacks, None)
    assert reached == ['second']


def test_interrupted_approach_is_not_a_warning(live_bot, caplog):
    live_bot._bot.pathfinder.goto.side_effect = JavaScriptError(
        'goto', 'GoalChanged: The goal was changed before it could be completed!')
    with caplog.at_level(logging.WARNING):
        assert live_bot.approach_position(Position(5, 64, 5)) is False
    assert "Could not reach" not in caplog.text


def test_failed_approach_is_a_warning(live_bot, caplog):
    live_bot._bot.pathfinder.goto.side_effect = JavaScriptError('goto', 'Error: No path to the goal!')
    with caplog.at_level(logging.WARNING):
        assert live_bot.approach_position(Position(5, 64, 5)) is False
    assert "Could not reach" in caplog.text
