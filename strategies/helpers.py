"""
helpers.py - Shared helper functions for strategy bots.

This module provides:
- Arena knowledge (blocks that cannot be broken)
- Teammate and opponent lookup
- Debounced background movement
- Main loop throttling
- Potion, shield and item-name helpers
"""

import json
import time
import logging
import weakref
from enum import Enum
from typing import Callable, List, Optional, Union

import numpy as np

from integration.bot_api import BotAPI, Entity, GoalNear, Item, Position

logger = logging.getLogger(__name__)


UNBREAKABLE_BLOCK_NAMES = [
    # materials used for castles
    'stone_bricks',
    'stone_brick_slab',
    'stone_brick_stairs',
    'stone_brick_wall',
    'ladder',
    'cracked_stone_bricks',
    'white_wool',

    # blue castle
    'blue_wool',
    'light_blue_wool',
    'blue_stained_glass_pane',
    'light_blue_stained_glass_pane',
    'soul_torch',
    'soul_wall_torch',
    'soul_lantern',
    'lapis_block',
    'blue_glazed_terracotta',

    # red castle
    'red_wool',
    'pink_wool',
    'red_stained_glass_pane',
    'pink_stained_glass_pane',
    'redstone_torch',
    'redstone_wall_torch',
    'lantern',
    'red_glazed_terracotta',

    # item spawns + flag barrier
    'polished_andesite',
    'polished_andesite_slab',
    'polished_andesite_stairs',

    # arena, obstacles, and underwater tunnel
    'snow_block',
    'snow',
    'glass',
    'glass_pane',
    'white_stained_glass_pane',
    'spruce_fence',
]


def get_unbreakable_block_names() -> List[str]:
    return list(UNBREAKABLE_BLOCK_NAMES)


def get_unbreakable_block_ids(bot: BotAPI) -> List[int]:
    """Block ids of every arena block that is not breakable."""
    ids = []
    for name in UNBREAKABLE_BLOCK_NAMES:
        block_id = bot.block_id(name)
        if block_id is None:
            logger.warning(f"No block id known for '{name}'")
            continue
        ids.append(block_id)
    return ids


def sort_by_distance(entities: List[Entity], origin: Position) -> List[Entity]:
    """Sort entities by squared distance from origin, closest first."""
    if not entities:
        return []
    positions = np.array([e.position.to_tuple() for e in entities], dtype=float)
    distances = np.sum((positions - np.array(origin.to_tuple())) ** 2, axis=1)
    return [entities[i] for i in np.argsort(distances, kind='stable')]


def nearest_teammates(bot: BotAPI, max_distance: float = 99,
                      bots_only: bool = True) -> List[Entity]:
    """
    Find teammates within max_distance, closest first.

    The bot can only see roughly 30 blocks, so a teammate further away may
    be missed even when max_distance is larger.

    Args:
        bot: Bot API
        max_distance: Search radius in blocks
        bots_only: Only consider bots, not human players on the team

    Returns:
        Teammate entities sorted by distance
    """
    match_info = bot.match_info()
    if not match_info:
        return []

    bot_name = bot.username()
    team_name = bot.team_for_player(bot_name)
    logger.debug(f"Checking for any team-mates in range: {max_distance}")
    if not team_name:
        return []

    teammates = [
        p for p in match_info.players
        if p.team == team_name and (not bots_only or p.is_bot) and p.username != bot_name
    ]
    if not teammates:
        return []

    found = bot.find_entities(
        entity_names=[t.username for t in teammates],
        attackable=True,
        max_distance=max_distance,
        max_count=len(teammates),
    )
    return sort_by_distance([f.result for f in found], bot.position())


def nearest_opponents(bot: BotAPI, max_distance: float = 33,
                      max_count: int = 3) -> List[Entity]:
    """Find players on other teams within max_distance, closest first."""
    match_info = bot.match_info()
    if not match_info:
        return []

    my_team = bot.get_my_team()
    others = [p.username for p in match_info.players
              if p.team != my_team and p.username != bot.username()]
    if not others:
        return []

    found = bot.find_entities(
        entity_names=others,
        attackable=True,
        max_distance=max_distance,
        max_count=max_count,
    )
    return sort_by_distance([f.result for f in found], bot.position())


class MovementDebouncer:
    """
    Keeps background pathfinding from being reissued every loop pass.

    The pathfinding target only changes when the destination has really
    moved: when there is no previous target, the pathfinder has stopped, or
    the new target lies more than `reach` blocks from the previous one.
    """

    def __init__(self):
        self.last_move_position: Optional[Position] = None

    def reset(self) -> None:
        self.last_move_position = None

    def move_toward_position(
        self,
        bot: BotAPI,
        target_position: Position,
        reach: float = 1,
        should_await: bool = False
    ) -> bool:
        """
        Move toward a position unless already heading there.

        Args:
            bot: Bot API
            target_position: Pathfinding destination
            reach: How close to get before pathfinding stops
            should_await: Wait for arrival (True) or let pathing run in
                the background (False)

        Returns:
            True if a new movement command was issued
        """
        is_moving = bot.pathfinder_is_moving()
        last = self.last_move_position
        if last is not None and is_moving and \
                target_position.distance_squared(last) <= reach ** 2:
            logger.debug("[Movement] Not changing movement target because previous ~= new")
            return False

        logger.info(f"[Movement] Moving toward position: {bot.vec_to_string(target_position)}, "
                    f"isMoving: {is_moving}")
        self.last_move_position = target_position

        if should_await:
            bot.approach_position(target_position, reach=reach)
            logger.info(f"[Movement] Reached target position: {bot.vec_to_string(target_position)}")
            return True

        def on_reached() -> None:
            logger.info(f"[Movement] Reached target position: {bot.vec_to_string(target_position)}")
            self.last_move_position = None

        def on_error(error: BaseException) -> None:
            logger.info(f"[Movement] Path Changed or Errored - Did not reach target position: "
                        f"{bot.vec_to_string(target_position)}, lastMovePosition: "
                        f"{bot.vec_to_string(self.last_move_position)}")

        # Not awaited: a newer target will interrupt it if need be
        bot.pathfinder_set_goal(GoalNear.from_position(target_position, reach),
                                on_reached=on_reached, on_error=on_error)
        return True


_movement_by_bot: "weakref.WeakKeyDictionary[BotAPI, MovementDebouncer]" = weakref.WeakKeyDictionary()


def movement_for(bot: BotAPI) -> MovementDebouncer:
    """The movement debouncer belonging to a bot."""
    movement = _movement_by_bot.get(bot)
    if movement is None:
        movement = MovementDebouncer()
        _movement_by_bot[bot] = movement
    return movement


def move_toward_position(bot: BotAPI, target_position: Position, reach: float = 1,
                         should_await: bool = False) -> bool:
    return movement_for(bot).move_toward_position(bot, target_position, reach, should_await)


class RunThrottle:
    """
    Throttle the main loop to the server tick rate.

    The server runs 20 ticks per second (50ms per tick). Running the main
    loop more often than that re-processes stale game state and starves
    other bots sharing the CPU.
    """

    def __init__(self, min_interval_ms: float = 50,
                 clock: Optional[Callable[[], float]] = None):
        self.min_interval_ms = min_interval_ms
        self.clock = clock or (lambda: time.monotonic() * 1000)
        self.last_run_time = -1.0

    def throttle(self, bot: BotAPI) -> int:
        """Wait until the next pass may run; returns the ticks waited."""
        ticks = 0
        wait_time = (self.last_run_time + self.min_interval_ms) - self.clock()
        if self.last_run_time >= 0 and wait_time > 0:
            logger.debug(f"[Throttle] Waiting {wait_time:.0f} millis before next loop")
            ticks = round(wait_time * 20 / 1000)
            bot.wait(ticks)
        self.last_run_time = self.clock()
        return ticks


# sort potions with the ones you want to use first near the front
MOVEMENT_POTIONS = ['Gotta Go Fast', 'Lava Swim']
COMBAT_POTIONS = ['Increased Damage Potion']
NINJA_POTIONS = ['Poison Cloud II', 'Poison Cloud']
HEALTH_POTIONS = [
    'Totem of Undying',
    'Healing Potion',
    'Tincture of Life',
    'Tincture of Mending II',
    'Tincture of Mending',
    'Golden Apple',
]


class PotionType(str, Enum):
    MOVEMENT = 'movement'
    COMBAT = 'combat'
    NINJA = 'ninja'
    HEALTH = 'health'


POTIONS_BY_TYPE = {
    PotionType.MOVEMENT: MOVEMENT_POTIONS,
    PotionType.COMBAT: COMBAT_POTIONS,
    PotionType.NINJA: NINJA_POTIONS,
    PotionType.HEALTH: HEALTH_POTIONS,
}


def name_for_item(item: Item) -> str:
    """
    Custom name, display name or name of an item, in that order.

    Potions share name and display name, so only the custom name tells
    them apart.
    """
    if item.custom_name:
        try:
            return json.loads(item.custom_name)['extra'][0]['text']
        except (ValueError, KeyError, IndexError, TypeError):
            pass
    return item.display_name or item.name


def get_potion_of_type(bot: BotAPI, potion_type: Union[PotionType, str]) -> Optional[Item]:
    """First inventory item that is a potion of the given type."""
    try:
        potions = POTIONS_BY_TYPE[PotionType(potion_type)]
    except ValueError:
        return None
    return next(
        (item for item in bot.get_all_inventory_items() if name_for_item(item) in potions),
        None
    )


def use_potion(bot: BotAPI, potion: Optional[Item]) -> bool:
    """Hold and activate a potion. Returns True if a potion was used."""
    if potion is None:
        return False
    bot.equip(potion, 'hand')
    logger.info(f"[Potions] Using potion: {name_for_item(potion)}")
    bot.activate_item(False)
    return True


def use_potion_of_type(bot: BotAPI, potion_type: Union[PotionType, str]) -> bool:
    return use_potion(bot, get_potion_of_type(bot, potion_type))


def equip_shield(bot: BotAPI) -> bool:
    """Equip a shield from the inventory into the off-hand if possible."""
    shield = next(
        (item for item in bot.get_all_inventory_items()
         if 'Shield' in item.display_name or 'shield' in item.name),
        None
    )
    if shield is None:
        return False
    logger.info(f"[Shield] Equipping: {shield.display_name}")
    bot.equip(shield, 'off-hand')
    return True


def unequip_off_hand(bot: BotAPI) -> None:
    bot.unequip('off-hand')
