"""Shared fixtures: a spawned simulated bot and its flag state."""

import itertools

import pytest

from integration import Entity, Position, SimulatedBot, SimulatedCTF
from strategies.helpers import RunThrottle


@pytest.fixture
def bot() -> SimulatedBot:
    sim = SimulatedBot(username="blue1", team="BLUE")
    sim.spawn()
    return sim


@pytest.fixture
def ctf(bot) -> SimulatedCTF:
    return SimulatedCTF(bot)


@pytest.fixture
def no_wait_throttle() -> RunThrottle:
    """A throttle whose clock always jumps past the minimum interval."""
    clock = itertools.count(0, 100)
    return RunThrottle(50, clock=lambda: float(next(clock)))


def make_opponent(entity_id: int, x: float, y: float = 64, z: float = 0,
                  username: str = None, held_item=None) -> Entity:
    return Entity(
        entity_id=entity_id,
        name='player',
        position=Position(x, y, z),
        username=username or f"red{entity_id}",
        held_item=held_item,
    )


class JavaScriptError(Exception):
    """Shaped like JSPyBridge's error: the JS error text is in `js`, there is no `name`."""

    def __init__(self, call, js, py=None):
        super().__init__(js)
        self.call = call
        self.js = js
        self.py = py
