"""
mineflayer_bridge.py - BotAPI implementation over a real Mineflayer bot.

The Node.js side (mineflayer, mineflayer-pathfinder, minecraft-data, vec3)
is driven through JSPyBridge (`pip install javascript`). Calls into JS
that return promises block until the promise settles, which gives the
strategies the same "one action at a time" behaviour they expect.
Background movement uses `pathfinder.setGoal` and the pathfinder events.

SAFETY NOTE:
Only connect to servers where automation is explicitly allowed by the
server owner.
"""

import os
import random
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .bot_api import (
    BotAPI,
    Block,
    CTFUtils,
    Entity,
    FindResult,
    GoalChanged,
    GoalNear,
    Item,
    MatchInfo,
    NotConnectedError,
    PathStopped,
    Player,
    Position,
    DEATH,
    FLAG_AVAILABLE,
    FLAG_OBTAINED,
    FLAG_SCORED,
    PLAYER_COLLECT,
    SPAWN,
    is_benign_path_error,
)

logger = logging.getLogger(__name__)


@dataclass
class BridgeConfig:
    """
    Connection settings for a Mineflayer bot.

    The password is read from an environment variable, never from the
    configuration file.
    """
    host: str = "localhost"
    port: int = 25565
    username: str = "StrategyBot"
    auth: str = "offline"  # "offline" or "microsoft"
    password_env_var: str = "MC_PASSWORD"
    team: Optional[str] = None
    known_bots: Set[str] = field(default_factory=set)

    def get_password(self) -> Optional[str]:
        """Get password from environment variable."""
        return os.environ.get(self.password_env_var)


def _position(vec: Any) -> Position:
    return Position(float(vec.x), float(vec.y), float(vec.z))


class MineflayerBot(BotAPI):
    """
    Drive a Mineflayer bot from Python.

    Usage:
        bot = MineflayerBot(BridgeConfig(host="localhost", username="bot"))
        bot.connect()
        bot.on('spawn', lambda: bot.chat("hello"))
    """

    def __init__(self, config: Optional[BridgeConfig] = None):
        super().__init__()
        self.config = config or BridgeConfig()
        self._js = None
        self._bot = None
        self._mc_data = None
        self._goals = None
        self._vec3 = None
        # (on_reached, on_error) for the current background goal
        self._goal_callbacks: Tuple[Optional[Callable[[], None]],
                                    Optional[Callable[[BaseException], None]]] = (None, None)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Create the Mineflayer bot and forward its events."""
        from javascript import require, On

        mineflayer = require('mineflayer')
        pathfinder = require('mineflayer-pathfinder')
        self._vec3 = require('vec3').Vec3
        self._goals = pathfinder.goals

        options = {
            'host': self.config.host,
            'port': self.config.port,
            'username': self.config.username,
            'auth': self.config.auth,
        }
        password = self.config.get_password()
        if password:
            options['password'] = password

        logger.info(f"Connecting to {self.config.host}:{self.config.port} "
                    f"as {self.config.username}...")
        self._bot = mineflayer.createBot(options)
        self._bot.loadPlugin(pathfinder.pathfinder)
        bot = self._bot

        # @On handlers run on the bridge thread: strategy callbacks are
        # deferred and run from wait() on the strategy thread.

        @On(bot, 'spawn')
        def handle_spawn(this, *args):
            self._mc_data = require('minecraft-data')(bot.version)
            movements = pathfinder.Movements(bot, self._mc_data)
            bot.pathfinder.setMovements(movements)
            self.defer(self.emit, SPAWN)

        @On(bot, 'death')
        def handle_death(this, *args):
            self.defer(self.emit, DEATH)

        @On(bot, 'playerCollect')
        def handle_collect(this, collector, collected):
            self.defer(self.emit, PLAYER_COLLECT, self._entity(collector), self._entity(collected))

        @On(bot, 'goal_reached')
        def handle_goal_reached(this, *args):
            self.defer(self._finish_goal, self._goal_callbacks, None)

        @On(bot, 'path_stop')
        def handle_path_stop(this, *args):
            self.defer(self._finish_goal, self._goal_callbacks,
                       PathStopped("Pathfinding stopped"))

    def _finish_goal(self, callbacks, error: Optional[BaseException]) -> None:
        """Run the callbacks of a finished goal unless a newer goal replaced it."""
        if callbacks is not self._goal_callbacks:
            return
        self._goal_callbacks = (None, None)
        on_reached, on_error = callbacks
        if error is None and on_reached:
            on_reached()
        elif error is not None and on_error:
            on_error(error)

    def disconnect(self) -> None:
        if self._bot is not None:
            logger.info("Disconnecting...")
            self._bot.quit()
            self._bot = None

    def _require_bot(self):
        if self._bot is None:
            raise NotConnectedError("Bot is not connected")
        return self._bot

    def _vec(self, position: Position):
        return self._vec3(position.x, position.y, position.z)

    def _entity(self, js_entity: Any) -> Entity:
        item = None
        if js_entity.name == 'item':
            dropped = js_entity.getDroppedItem()
            if dropped:
                item = self._item(dropped)
        held = js_entity.heldItem
        return Entity(
            entity_id=int(js_entity.id),
            name=str(js_entity.name),
            position=_position(js_entity.position),
            username=js_entity.username,
            held_item=self._item(held) if held else None,
            item=item,
        )

    @staticmethod
    def _item(js_item: Any) -> Item:
        return Item(
            name=str(js_item.name),
            count=int(js_item.count),
            display_name=str(js_item.displayName),
            custom_name=js_item.customName,
            slot=js_item.slot,
        )

    def _js_entities(self) -> List[Any]:
        bot = self._require_bot()
        return [bot.entities[key] for key in bot.entities if bot.entities[key] != bot.entity]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def username(self) -> str:
        return str(self._require_bot().username)

    def position(self) -> Position:
        return _position(self._require_bot().entity.position)

    def health(self) -> float:
        return float(self._require_bot().health)

    def get_my_team(self) -> Optional[str]:
        return self.config.team or self.team_for_player(self.username())

    def team_for_player(self, username: str) -> Optional[str]:
        team = self._require_bot().teamMap[username]
        if not team:
            return None
        return str(team.team).upper()

    def match_info(self) -> Optional[MatchInfo]:
        bot = self._require_bot()
        players = [
            Player(username=name, team=self.team_for_player(name),
                   is_bot=name in self.config.known_bots)
            for name in bot.players
        ]
        return MatchInfo(players=players)

    def block_id(self, name: str) -> Optional[int]:
        if self._mc_data is None:
            return None
        block_type = self._mc_data.blocksByName[name]
        return int(block_type.id) if block_type else None

    def get_all_inventory_items(self) -> List[Item]:
        return [self._item(i) for i in self._require_bot().inventory.items()]

    def block_at(self, position: Position) -> Optional[Block]:
        js_block = self._require_bot().blockAt(self._vec(position))
        if not js_block:
            return None
        return Block(name=str(js_block.name), position=position.floored(),
                     block_type=int(js_block.type))

    def find_block(
        self,
        name: str,
        max_distance: float = 50,
        skip_closest: bool = False,
        only_find_top_blocks: bool = False
    ) -> Optional[Block]:
        bot = self._require_bot()
        block_type = self._mc_data.blocksByName[name]
        if not block_type:
            logger.warning(f"Unknown block name: {name}")
            return None
        found = bot.findBlocks({
            'matching': block_type.id,
            'maxDistance': max_distance,
            'count': 16,
        })
        blocks = []
        for vec in found:
            position = _position(vec)
            if only_find_top_blocks:
                above = self.block_at(position.offset(0, 1, 0))
                if above is not None and above.block_type != 0:
                    continue
            blocks.append(Block(name=name, position=position))
        index = 1 if skip_closest else 0
        return blocks[index] if len(blocks) > index else None

    def find_entities(
        self,
        entity_names: Optional[List[str]] = None,
        attackable: bool = False,
        max_distance: float = 33,
        max_count: int = 1
    ) -> List[FindResult]:
        me = self.position()
        results = []
        for js_entity in self._js_entities():
            name = js_entity.username or js_entity.name
            if entity_names is not None and name not in entity_names:
                continue
            if attackable and js_entity.type not in ('player', 'mob', 'hostile'):
                continue
            entity = self._entity(js_entity)
            distance = entity.position.distance_to(me)
            if distance <= max_distance:
                results.append(FindResult(entity, distance))
        results.sort(key=lambda r: r.value)
        return results[:max_count]

    def find_items_on_ground(
        self,
        max_distance: float = 33,
        max_count: int = 1,
        item_value_function: Optional[Callable[[str], float]] = None,
        sort_value_function: Optional[Callable[[float, float], float]] = None
    ) -> List[FindResult]:
        me = self.position()
        results = []
        for js_entity in self._js_entities():
            if js_entity.name != 'item':
                continue
            entity = self._entity(js_entity)
            if entity.item is None:
                continue
            distance = entity.position.distance_to(me)
            if distance > max_distance:
                continue
            value = item_value_function(entity.item.name) if item_value_function else 1
            rank = sort_value_function(distance, value) if sort_value_function else distance
            results.append(FindResult(entity, rank))
        results.sort(key=lambda r: r.value)
        return results[:max_count]

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def chat(self, message: str) -> None:
        self._require_bot().chat(message)

    def wait(self, ticks: int) -> None:
        if ticks > 0:
            self._require_bot().waitForTicks(ticks)
        self.process_events()

    def wander(self, min_distance: float = 10, max_distance: float = 10) -> bool:
        me = self.position()
        distance = random.uniform(min_distance, max_distance)
        target = me.offset(random.choice([-1, 1]) * distance, 0,
                           random.choice([-1, 1]) * distance)
        return self.approach_position(target, reach=2)

    def find_and_dig_block(self, name: str, skip_closest: bool = False,
                           max_distance: float = 50) -> bool:
        bot = self._require_bot()
        block = self.find_block(name, max_distance=max_distance, skip_closest=skip_closest)
        if block is None:
            return False
        try:
            p = block.position
            bot.pathfinder.goto(self._goals.GoalGetToBlock(p.x, p.y, p.z))
            bot.dig(bot.blockAt(self._vec(p)))
            # walk over the drop so it gets collected
            bot.pathfinder.goto(self._goals.GoalNear(p.x, p.y, p.z, 1))
            return True
        except Exception as e:
            logger.warning(f"Failed to dig {name} at {self.vec_to_string(block.position)}: {e}")
            return False

    def craft_item(self, name: str, quantity: int = 1,
                   crafting_table: Optional[Block] = None) -> Optional[Item]:
        bot = self._require_bot()
        item_type = self._mc_data.itemsByName[name]
        if not item_type:
            logger.warning(f"Unknown item name: {name}")
            return None
        table = bot.blockAt(self._vec(crafting_table.position)) if crafting_table else None
        recipes = bot.recipesFor(item_type.id, None, 1, table)
        if not recipes or len(recipes) == 0:
            logger.warning(f"No usable recipe for {name}")
            return None
        bot.craft(recipes[0], quantity, table)
        return next((i for i in self.get_all_inventory_items() if i.name == name), None)

    def hold_item(self, name: str) -> Optional[Item]:
        item = next((i for i in self.get_all_inventory_items() if i.name == name), None)
        if item is not None:
            self.equip(item, 'hand')
        return item

    def equip(self, item: Item, destination: str = 'hand') -> None:
        bot = self._require_bot()
        bot.equip(bot.inventory.slots[item.slot], destination)

    def unequip(self, destination: str) -> None:
        self._require_bot().unequip(destination)

    def activate_item(self, off_hand: bool = False) -> None:
        self._require_bot().activateItem(off_hand)

    def look_at(self, position: Position) -> None:
        self._require_bot().lookAt(self._vec(position))

    def place_block_on(self, reference: Block, face: Position) -> None:
        bot = self._require_bot()
        bot.placeBlock(bot.blockAt(self._vec(reference.position)), self._vec(face))

    def place_block(self, name: str, ground: Optional[Block]) -> bool:
        if ground is None or self.hold_item(name) is None:
            return False
        try:
            self.place_block_on(ground, Position(0, 1, 0))
            return True
        except Exception as e:
            logger.warning(f"Failed to place {name}: {e}")
            return False

    def approach_position(self, position: Position, reach: float = 1) -> bool:
        bot = self._require_bot()
        try:
            bot.pathfinder.goto(self._goals.GoalNear(position.x, position.y, position.z, reach))
            return True
        except Exception as e:
            if is_benign_path_error(e):
                logger.debug(f"Path to {self.vec_to_string(position)} was interrupted")
            else:
                logger.warning(f"Could not reach {self.vec_to_string(position)}: {e}")
            return False

    def approach_block(self, block: Block, reach: float = 2) -> bool:
        return self.approach_position(block.position, reach)

    def attack_entity(self, entity: Entity) -> None:
        bot = self._require_bot()
        js_entity = bot.entities[entity.entity_id]
        if not js_entity:
            return
        self.approach_position(entity.position, reach=2)
        bot.attack(js_entity)

    # ------------------------------------------------------------------
    # Pathfinder
    # ------------------------------------------------------------------

    def pathfinder_is_moving(self) -> bool:
        return bool(self._require_bot().pathfinder.isMoving())

    def pathfinder_set_goal(
        self,
        goal: GoalNear,
        on_reached: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None
    ) -> None:
        bot = self._require_bot()
        _, previous_on_error = self._goal_callbacks
        self._goal_callbacks = (on_reached, on_error)
        if previous_on_error and self.pathfinder_is_moving():
            previous_on_error(GoalChanged("Goal was changed before it was reached"))
        bot.pathfinder.setGoal(self._goals.GoalNear(goal.x, goal.y, goal.z, goal.reach))


class MineflayerCTF(CTFUtils):
    """
    Flag tracking for a plain Mineflayer bot.

    The flag is a banner block on the ground or a banner item in someone's
    hands. `poll()` compares the current flag state with the previous one
    and emits the flag events on the bot.
    """

    def __init__(self, bot: MineflayerBot, banner_name: str = 'white_banner',
                 search_distance: float = 128):
        self.bot = bot
        self.banner_name = banner_name
        self.search_distance = search_distance
        self._last_location: Optional[Position] = None
        self._last_has_flag = False

    def get_flag_location(self) -> Optional[Position]:
        block = self.bot.find_block(self.banner_name, max_distance=self.search_distance)
        return block.position if block else None

    def has_flag(self) -> bool:
        return self.bot.inventory_contains_item(self.FLAG_SUFFIX, partial_match=True)

    def poll(self) -> Dict[str, bool]:
        location = self.get_flag_location()
        has_flag = self.has_flag()
        fired = {FLAG_OBTAINED: False, FLAG_AVAILABLE: False, FLAG_SCORED: False}

        if has_flag and not self._last_has_flag:
            fired[FLAG_OBTAINED] = True
            self.bot.emit(FLAG_OBTAINED, self.bot.username())
        elif self._last_has_flag and not has_flag and location is None:
            fired[FLAG_SCORED] = True
            self.bot.emit(FLAG_SCORED, self.bot.get_my_team())
        if location is not None and self._last_location is None:
            fired[FLAG_AVAILABLE] = True
            self.bot.emit(FLAG_AVAILABLE, location)

        self._last_location = location
        self._last_has_flag = has_flag
        return fired
