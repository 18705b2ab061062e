"""
handlers.py - Capture-the-flag main loop handlers.

Every handler takes (bot, ctf, opponents, teammates) and returns True if
it acted this pass. The main loop calls them in priority order and stops
at the first one that acts.
"""

import logging
from typing import List

from integration.bot_api import BotAPI, CTFUtils, Entity, Position
from .helpers import (
    PotionType,
    get_potion_of_type,
    move_toward_position,
    use_potion,
    use_potion_of_type,
)

logger = logging.getLogger(__name__)


NEAR_DEATH_HEALTH = 7
LOW_HEALTH = 15

# Squared distances
NINJA_RANGE_SQ = 16  # ~4 blocks
ATTACK_RANGE_WITH_FLAG_SQ = 25  # ~5 blocks
ATTACK_RANGE_SQ = 100  # ~10 blocks
PLACING_SAFE_RANGE_SQ = 225  # ~15 blocks
PLACEMENT_SITE_RANGE_SQ = 400  # ~20 blocks
PLACE_REACH_SQ = 15

SAME_PLANE_Y = 5
LOOT_RANGE = 33

PLACEABLE_BLOCK_DISPLAY_NAMES = ['Gravel', 'Grass Block', 'Dirt', 'Stripped Dark Oak Wood']

BLUE_BLOCK_PLACEMENTS = [
    # bridge blockade
    Position(81, 65, -387),
    Position(81, 66, -387),
    Position(81, 65, -385),
    Position(81, 66, -385),
]

RED_BLOCK_PLACEMENTS = [
    # bridge blockade
    Position(111, 65, -387),
    Position(111, 66, -387),
    Position(111, 65, -385),
    Position(111, 66, -385),
]


def handle_low_health(bot: BotAPI, ctf: CTFUtils, opponents: List[Entity],
                      teammates: List[Entity]) -> bool:
    health = bot.health()
    if health <= NEAR_DEATH_HEALTH:
        # near death, see if a potion can take the opponent down with me
        me = bot.position()
        near_opponent = next(
            (them for them in opponents if them.position.distance_squared(me) <= NINJA_RANGE_SQ),
            None
        )
        if near_opponent is not None:
            potion = get_potion_of_type(bot, PotionType.NINJA)
            if potion is not None:
                # look at their feet before throwing down a ninja potion
                bot.look_at(near_opponent.position.offset(0, -1, 0))
                return use_potion(bot, potion)
    elif health <= LOW_HEALTH:
        # just need a top-up
        logger.info("[Health] Need to use potion while my health is low")
        return use_potion_of_type(bot, PotionType.HEALTH)
    return False


def handle_attack_flag_carrier(bot: BotAPI, ctf: CTFUtils, opponents: List[Entity],
                               teammates: List[Entity]) -> bool:
    # only when the flag is not lying on the ground
    if ctf.get_flag_location() is not None:
        return False

    logger.debug(f"Checking {len(opponents)} opponents in range for flag carriers")
    carrier = next(
        (them for them in opponents
         if them.held_item is not None and ctf.FLAG_SUFFIX in them.held_item.name),
        None
    )
    if carrier is None:
        return False

    logger.info(f"Attacking flag carrier {carrier.username} at position: "
                f"{bot.vec_to_string(carrier.position)}")
    use_potion_of_type(bot, PotionType.MOVEMENT)  # run faster to get them
    bot.attack_entity(carrier)
    return True


def handle_attack_nearby_opponent(bot: BotAPI, ctf: CTFUtils, opponents: List[Entity],
                                  teammates: List[Entity]) -> bool:
    outnumbered = len(teammates) + 1 < len(opponents)
    yolo = len(teammates) == 0
    me = bot.position()

    # opportunistically attack anyone close, even if that means dropping the flag
    attack_range_sq = ATTACK_RANGE_WITH_FLAG_SQ if ctf.has_flag() else ATTACK_RANGE_SQ
    in_range = [op for op in opponents if op.position.distance_squared(me) <= attack_range_sq]

    logger.debug(f"Checking {len(in_range)} opponents in range to attack")
    if not in_range:
        return False

    first = in_range[0]
    if not outnumbered or yolo:
        logger.info(f"Attacking opponent at position: {bot.vec_to_string(first.position)}")
        bot.attack_entity(first)
    else:
        logger.info("Outnumbered, running to nearest team-mate for help")
        move_toward_position(bot, teammates[0].position, 3)
    return True


def handle_scoring_flag(bot: BotAPI, ctf: CTFUtils, opponents: List[Entity],
                        teammates: List[Entity]) -> bool:
    if not ctf.has_flag():
        return False
    logger.info("I have the flag, running to score")
    move_toward_position(bot, ctf.score_location_for(bot.get_my_team()), 1)
    return True


def handle_collecting_flag(bot: BotAPI, ctf: CTFUtils, opponents: List[Entity],
                           teammates: List[Entity]) -> bool:
    flag_location = ctf.get_flag_location()
    if flag_location is None:
        return False
    logger.info(f"Moving toward the flag at {bot.vec_to_string(flag_location)}")
    move_toward_position(bot, flag_location, 1)
    return True


def handle_placing_blocks(bot: BotAPI, ctf: CTFUtils, opponents: List[Entity],
                          teammates: List[Entity]) -> bool:
    me = bot.position()
    # ignore opponents down in the tunnel
    threats = [
        op for op in opponents
        if abs(op.position.y - me.y) < SAME_PLANE_Y
        and op.position.distance_squared(me) <= PLACING_SAFE_RANGE_SQ
    ]
    logger.debug(f"Checking {len(threats)} opponents in range before placing blocks")
    if threats:
        return False

    block_item = next(
        (item for item in bot.get_all_inventory_items()
         if item.display_name in PLACEABLE_BLOCK_DISPLAY_NAMES),
        None
    )
    if block_item is None:
        logger.debug("No placeable blocks in inventory")
        return False

    logger.debug(f"I have a '{block_item.display_name}' block to place")
    placements = BLUE_BLOCK_PLACEMENTS if bot.get_my_team() == 'BLUE' else RED_BLOCK_PLACEMENTS
    for location in placements:
        range_sq = location.distance_squared(me)
        if range_sq > PLACEMENT_SITE_RANGE_SQ:
            continue
        block = bot.block_at(location)
        if block is not None and block.block_type != 0:
            continue

        logger.info(f"Moving to place block '{block_item.display_name}' at: "
                    f"{bot.vec_to_string(location)}")
        move_toward_position(bot, location, 3)
        if range_sq < PLACE_REACH_SQ:
            logger.info(f"Placing block '{block_item.display_name}' at: "
                        f"{bot.vec_to_string(location)}")
            bot.equip(block_item, 'hand')
            below = bot.block_at(location.offset(0, -1, 0))
            if below is not None:
                # place on the top face of the block under the target
                bot.place_block_on(below, Position(0, 1, 0))
        return True
    return False


def handle_looting_items(bot: BotAPI, ctf: CTFUtils, opponents: List[Entity],
                         teammates: List[Entity]) -> bool:
    me = bot.position()
    found = bot.find_items_on_ground(
        max_distance=LOOT_RANGE,
        max_count=5,
        # prefer the closest items I don't already carry
        item_value_function=lambda name: 999999 if bot.inventory_contains_item(name) else 1,
        sort_value_function=lambda distance, value: distance * value,
    )
    item = next(
        (f.result for f in found if abs(f.result.position.y - me.y) < SAME_PLANE_Y),
        None
    )
    if item is None:
        return False

    logger.info(f"Going to collect item: {bot.get_entity_name(item)} at: "
                f"{bot.vec_to_string(item.position)}")
    move_toward_position(bot, item.position, 1)
    return True


def handle_bot_idle_position(bot: BotAPI, ctf: CTFUtils, opponents: List[Entity],
                             teammates: List[Entity]) -> bool:
    # TODO: spread out to key points instead of always holding the center
    logger.debug(f"Moving toward center point: {bot.vec_to_string(ctf.FLAG_SPAWN)}")
    move_toward_position(bot, ctf.FLAG_SPAWN, 1)
    return True
