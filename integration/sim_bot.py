"""
sim_bot.py - In-process simulated host for dry runs and tests.

The simulation keeps just enough world state for the strategies to run
end to end without a server:
- an inventory with a handful of crafting recipes
- a sparse block map (digging a block drops it into the inventory)
- players and dropped items
- a pathfinder whose goals complete on the next tick

Every action is appended to `actions` so callers can inspect what a
strategy did.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from .bot_api import (
    BotAPI,
    Block,
    CraftingError,
    CTFUtils,
    Entity,
    FindResult,
    GoalChanged,
    GoalNear,
    Item,
    MatchInfo,
    NotConnectedError,
    Player,
    Position,
    DEATH,
    FLAG_AVAILABLE,
    FLAG_OBTAINED,
    FLAG_SCORED,
    ITEM_COLLECTED,
    PLAYER_COLLECT,
    SPAWN,
)

logger = logging.getLogger(__name__)


# name -> (items produced per craft, ingredients per craft, needs crafting table)
RECIPES: Dict[str, Tuple[int, Dict[str, int], bool]] = {
    'spruce_planks': (4, {'spruce_log': 1}, False),
    'oak_planks': (4, {'oak_log': 1}, False),
    'stick': (4, {'spruce_planks': 2}, False),
    'crafting_table': (1, {'spruce_planks': 4}, False),
    'wooden_axe': (1, {'spruce_planks': 3, 'stick': 2}, True),
}


def _rank(values: List[float], max_count: int) -> List[int]:
    """Indices of the `max_count` smallest values, smallest first."""
    if not values:
        return []
    order = np.argsort(np.asarray(values, dtype=float), kind='stable')
    return [int(i) for i in order[:max_count]]


class SimulatedBot(BotAPI):
    """
    A BotAPI backed by an in-memory world.

    Usage:
        bot = SimulatedBot(username="lumberjack")
        bot.add_block('spruce_log', Position(3, 64, 0))
        bot.spawn()
        bot.find_and_dig_block('spruce_log')
    """

    def __init__(
        self,
        username: str = "SimBot",
        team: Optional[str] = None,
        position: Optional[Position] = None,
        health: float = 20.0
    ):
        super().__init__()
        self._username = username
        self._position = position or Position(0, 64, 0)
        self._spawn_position = Position(*self._position.to_tuple())
        self._health = health
        self._teams: Dict[str, Optional[str]] = {username: team}
        self._match_info: Optional[MatchInfo] = None
        self._spawned = False

        self._inventory: List[Item] = []
        self._equipment: Dict[str, Item] = {}
        self._blocks: Dict[Tuple[int, int, int], Block] = {}
        self._undiggable: set = set()
        self._entities: Dict[int, Entity] = {}
        self._ground_items: Dict[int, Entity] = {}
        self._next_entity_id = 1

        # Pathfinder state
        self._goal: Optional[GoalNear] = None
        self._goal_callbacks: Tuple[Optional[Callable], Optional[Callable]] = (None, None)

        # Scheduled world changes, keyed by the tick they fire on
        self.current_tick = 0
        self._scheduled: List[Tuple[int, Callable[[], None]]] = []

        self.block_ids: Dict[str, int] = {}
        self.wander_failures = 0
        self.actions: List[Tuple[Any, ...]] = []
        self.chat_log: List[str] = []

    # ------------------------------------------------------------------
    # World setup helpers
    # ------------------------------------------------------------------

    def spawn(self) -> None:
        """Mark the bot as spawned and fire the spawn event."""
        self._spawned = True
        self._health = 20.0
        self._position = Position(*self._spawn_position.to_tuple())
        self.emit(SPAWN)

    def die(self) -> None:
        """Kill the bot, firing the death event."""
        self._health = 0.0
        self._goal = None
        self.emit(DEATH)

    def set_health(self, health: float) -> None:
        self._health = health

    def set_position(self, position: Position) -> None:
        self._position = position

    def set_match_info(self, players: List[Player]) -> None:
        self._match_info = MatchInfo(players=list(players))
        for player in players:
            self._teams[player.username] = player.team

    def add_item(self, name: str, count: int = 1, display_name: str = "",
                 custom_name: Optional[str] = None) -> Item:
        for item in self._inventory:
            if item.name == name and item.custom_name == custom_name:
                item.count += count
                return item
        item = Item(name=name, count=count, display_name=display_name,
                    custom_name=custom_name, slot=len(self._inventory))
        self._inventory.append(item)
        return item

    def remove_item(self, name: str, count: int = 1) -> int:
        """Remove up to `count` matching items; returns how many were removed."""
        removed = 0
        for item in list(self._inventory):
            if item.name != name or removed >= count:
                continue
            taken = min(item.count, count - removed)
            item.count -= taken
            removed += taken
            if item.count <= 0:
                self._inventory.remove(item)
                for slot, equipped in list(self._equipment.items()):
                    if equipped is item:
                        del self._equipment[slot]
        return removed

    def add_block(self, name: str, position: Position, diggable: bool = True) -> Block:
        block = Block(name=name, position=position.floored(),
                      block_type=0 if name == 'air' else 1)
        self._blocks[position.key()] = block
        if not diggable:
            self._undiggable.add(position.key())
        return block

    def add_player(self, username: str, position: Position,
                   held_item: Optional[Item] = None) -> Entity:
        entity = Entity(
            entity_id=self._new_entity_id(),
            name='player',
            position=position,
            username=username,
            held_item=held_item,
        )
        self._entities[entity.entity_id] = entity
        return entity

    def add_ground_item(self, name: str, position: Position, count: int = 1) -> Entity:
        entity = Entity(
            entity_id=self._new_entity_id(),
            name='item',
            position=position,
            item=Item(name=name, count=count),
        )
        self._ground_items[entity.entity_id] = entity
        return entity

    def schedule(self, ticks: int, callback: Callable[[], None]) -> None:
        """Run `callback` once `ticks` more ticks have elapsed."""
        self._scheduled.append((self.current_tick + ticks, callback))

    def tick(self, count: int = 1) -> None:
        """Advance the simulation: scheduled events and pathfinder goals."""
        for _ in range(count):
            self.current_tick += 1
            due = [cb for at, cb in self._scheduled if at <= self.current_tick]
            self._scheduled = [(at, cb) for at, cb in self._scheduled if at > self.current_tick]
            for callback in due:
                callback()
            self._advance_goal()

    def equipped(self, destination: str) -> Optional[Item]:
        return self._equipment.get(destination)

    def _new_entity_id(self) -> int:
        entity_id = self._next_entity_id
        self._next_entity_id += 1
        return entity_id

    def _require_spawned(self) -> None:
        if not self._spawned:
            raise NotConnectedError(f"{self._username} has not spawned")

    def _advance_goal(self) -> None:
        if self._goal is None:
            return
        goal = self._goal
        on_reached, _ = self._goal_callbacks
        self._goal = None
        self._goal_callbacks = (None, None)
        self._position = goal.position()
        self._pick_up_nearby_items()
        if on_reached:
            on_reached()

    def _pick_up_nearby_items(self) -> None:
        for entity_id, entity in list(self._ground_items.items()):
            if entity.position.distance_squared(self._position) <= 1:
                del self._ground_items[entity_id]
                self.add_item(entity.item.name, entity.item.count)
                self.emit(PLAYER_COLLECT, self._self_entity(), entity)
                self.emit(ITEM_COLLECTED, entity.item)

    def _self_entity(self) -> Entity:
        return Entity(entity_id=0, name='player', position=self._position,
                      username=self._username)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def username(self) -> str:
        return self._username

    def position(self) -> Position:
        return self._position

    def health(self) -> float:
        return self._health

    def get_my_team(self) -> Optional[str]:
        return self._teams.get(self._username)

    def team_for_player(self, username: str) -> Optional[str]:
        return self._teams.get(username)

    def match_info(self) -> Optional[MatchInfo]:
        return self._match_info

    def block_id(self, name: str) -> Optional[int]:
        return self.block_ids.get(name)

    def get_all_inventory_items(self) -> List[Item]:
        return list(self._inventory)

    def block_at(self, position: Position) -> Optional[Block]:
        return self._blocks.get(position.key())

    def find_block(
        self,
        name: str,
        max_distance: float = 50,
        skip_closest: bool = False,
        only_find_top_blocks: bool = False
    ) -> Optional[Block]:
        candidates = []
        for block in self._blocks.values():
            if block.name != name:
                continue
            if block.position.distance_squared(self._position) > max_distance ** 2:
                continue
            if only_find_top_blocks:
                above = self._blocks.get(block.position.offset(0, 1, 0).key())
                if above is not None and above.block_type != 0:
                    continue
            candidates.append(block)

        order = _rank([b.position.distance_squared(self._position) for b in candidates],
                      max_count=2)
        index = 1 if skip_closest else 0
        if len(order) <= index:
            return None
        return candidates[order[index]]

    def find_entities(
        self,
        entity_names: Optional[List[str]] = None,
        attackable: bool = False,
        max_distance: float = 33,
        max_count: int = 1
    ) -> List[FindResult]:
        candidates = [
            e for e in self._entities.values()
            if (entity_names is None or e.username in entity_names or e.name in entity_names)
            and e.position.distance_squared(self._position) <= max_distance ** 2
        ]
        distances = [e.position.distance_to(self._position) for e in candidates]
        return [FindResult(candidates[i], distances[i]) for i in _rank(distances, max_count)]

    def find_items_on_ground(
        self,
        max_distance: float = 33,
        max_count: int = 1,
        item_value_function: Optional[Callable[[str], float]] = None,
        sort_value_function: Optional[Callable[[float, float], float]] = None
    ) -> List[FindResult]:
        candidates = []
        ranks = []
        for entity in self._ground_items.values():
            distance = entity.position.distance_to(self._position)
            if distance > max_distance:
                continue
            value = item_value_function(entity.item.name) if item_value_function else 1
            rank = sort_value_function(distance, value) if sort_value_function else distance
            candidates.append(entity)
            ranks.append(rank)
        return [FindResult(candidates[i], ranks[i]) for i in _rank(ranks, max_count)]

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def chat(self, message: str) -> None:
        logger.info(f"[{self._username}] <chat> {message}")
        self.chat_log.append(message)
        self.actions.append(('chat', message))

    def wait(self, ticks: int) -> None:
        self.actions.append(('wait', ticks))
        self.tick(ticks)
        self.process_events()

    def wander(self, min_distance: float = 10, max_distance: float = 10) -> bool:
        self.actions.append(('wander',))
        if self.wander_failures > 0:
            self.wander_failures -= 1
            return False
        self._position = self._position.offset(max_distance, 0, 0)
        return True

    def find_and_dig_block(self, name: str, skip_closest: bool = False,
                           max_distance: float = 50) -> bool:
        self._require_spawned()
        block = self.find_block(name, max_distance=max_distance, skip_closest=skip_closest)
        if block is None:
            return False
        key = block.position.key()
        self.actions.append(('dig', name, key))
        if key in self._undiggable:
            logger.debug(f"Could not break {name} at {self.vec_to_string(block.position)}")
            return False
        del self._blocks[key]
        self._position = block.position.offset(1, 0, 0)
        dropped = Entity(entity_id=self._new_entity_id(), name='item',
                         position=block.position, item=Item(name=name))
        self.add_item(name)
        self.emit(PLAYER_COLLECT, self._self_entity(), dropped)
        return True

    def craft_item(self, name: str, quantity: int = 1,
                   crafting_table: Optional[Block] = None) -> Optional[Item]:
        if name not in RECIPES:
            raise CraftingError(f"No recipe for {name}")
        produced, ingredients, needs_table = RECIPES[name]
        if needs_table and crafting_table is None:
            logger.warning(f"Crafting {name} requires a crafting table")
            return None
        for ingredient, amount in ingredients.items():
            if self.get_inventory_item_quantity(ingredient) < amount * quantity:
                logger.warning(f"Missing {ingredient} to craft {quantity}x {name}")
                return None
        for ingredient, amount in ingredients.items():
            self.remove_item(ingredient, amount * quantity)
        self.actions.append(('craft', name, quantity))
        return self.add_item(name, produced * quantity)

    def hold_item(self, name: str) -> Optional[Item]:
        item = next((i for i in self._inventory if i.name == name), None)
        if item is not None:
            self.equip(item, 'hand')
        return item

    def equip(self, item: Item, destination: str = 'hand') -> None:
        self.actions.append(('equip', item.name, destination))
        self._equipment[destination] = item

    def unequip(self, destination: str) -> None:
        self.actions.append(('unequip', destination))
        self._equipment.pop(destination, None)

    def activate_item(self, off_hand: bool = False) -> None:
        item = self._equipment.get('off-hand' if off_hand else 'hand')
        self.actions.append(('activate', item.name if item else None))
        if item is not None:
            self.remove_item(item.name, 1)

    def look_at(self, position: Position) -> None:
        self.actions.append(('look_at', position.to_tuple()))

    def place_block_on(self, reference: Block, face: Position) -> None:
        held = self._equipment.get('hand')
        if held is None:
            raise NotConnectedError("Nothing held to place")
        target = reference.position.offset(face.x, face.y, face.z)
        self.actions.append(('place', held.name, target.key()))
        self.remove_item(held.name, 1)
        self.add_block(held.name, target)

    def place_block(self, name: str, ground: Optional[Block]) -> bool:
        if ground is None or not self.inventory_contains_item(name):
            return False
        self.remove_item(name, 1)
        target = ground.position.offset(0, 1, 0)
        self.actions.append(('place', name, target.key()))
        self.add_block(name, target)
        return True

    def approach_position(self, position: Position, reach: float = 1) -> bool:
        self.actions.append(('approach', position.to_tuple(), reach))
        self._position = Position(*position.to_tuple())
        self._pick_up_nearby_items()
        return True

    def approach_block(self, block: Block, reach: float = 2) -> bool:
        return self.approach_position(block.position.offset(1, 0, 0), reach)

    def attack_entity(self, entity: Entity) -> None:
        self.actions.append(('attack', entity.username or entity.entity_id))

    # ------------------------------------------------------------------
    # Pathfinder
    # ------------------------------------------------------------------

    def pathfinder_is_moving(self) -> bool:
        return self._goal is not None

    def pathfinder_set_goal(
        self,
        goal: GoalNear,
        on_reached: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None
    ) -> None:
        _, previous_on_error = self._goal_callbacks
        if self._goal is not None and previous_on_error:
            previous_on_error(GoalChanged("Goal was changed before it was reached"))
        self.actions.append(('goto', (goal.x, goal.y, goal.z), goal.reach))
        self._goal = goal
        self._goal_callbacks = (on_reached, on_error)


def build_forest(bot: SimulatedBot, trees: int = 40, log_name: str = 'spruce_log') -> None:
    """Populate a flat grass world with a row of trees for dry runs."""
    for x in range(-8, 9):
        for z in range(-8, 9):
            bot.add_block('grass_block', Position(x, 63, z))
    for i in range(trees):
        x = 3 + (i % 10) * 3
        z = 3 + (i // 10) * 3
        for height in range(4):
            bot.add_block(log_name, Position(x, 64 + height, z))


def build_arena(bot: SimulatedBot, opponents: int = 2) -> None:
    """Populate a tiny capture-the-flag arena for dry runs."""
    my_team = bot.get_my_team() or 'BLUE'
    other_team = 'RED' if my_team == 'BLUE' else 'BLUE'
    players = [Player(bot.username(), my_team, is_bot=True)]
    for i in range(opponents):
        name = f"{other_team.title()}Bot{i + 1}"
        players.append(Player(name, other_team, is_bot=True))
        bot.add_player(name, CTFUtils.FLAG_SPAWN.offset(20 + i * 5, 0, 0))
    bot.set_match_info(players)
    for x in range(70, 125):
        for z in (-387, -386, -385):
            bot.add_block('snow_block', Position(x, 64, z))
    bot.add_ground_item('golden_apple', CTFUtils.FLAG_SPAWN.offset(-6, 0, 1))


class SimulatedCTF(CTFUtils):
    """Capture-the-flag state for a SimulatedBot."""

    def __init__(self, bot: SimulatedBot, respawn_ticks: int = 100):
        self.bot = bot
        self.respawn_ticks = respawn_ticks
        self.flag_location: Optional[Position] = Position(*self.FLAG_SPAWN.to_tuple())
        self.carrying = False
        self.scores = 0

    def poll(self) -> Dict[str, bool]:
        """Pick up, score and respawn the flag based on the bot's position."""
        fired = {FLAG_OBTAINED: False, FLAG_SCORED: False}
        me = self.bot.position()
        if self.flag_location is not None and me.distance_squared(self.flag_location) <= 1:
            self.pick_up_flag()
            self.bot.add_item('white_banner')
            fired[FLAG_OBTAINED] = True
            self.bot.emit(FLAG_OBTAINED, self.bot.username())
        elif self.carrying:
            score_location = self.score_location_for(self.bot.get_my_team())
            if me.distance_squared(score_location) <= 1:
                self.carrying = False
                self.scores += 1
                self.bot.remove_item('white_banner')
                fired[FLAG_SCORED] = True
                self.bot.emit(FLAG_SCORED, self.bot.get_my_team())
                self.bot.schedule(self.respawn_ticks, self.respawn_flag)
        return fired

    def respawn_flag(self) -> None:
        self.flag_location = Position(*self.FLAG_SPAWN.to_tuple())
        self.bot.emit(FLAG_AVAILABLE, self.flag_location)

    def get_flag_location(self) -> Optional[Position]:
        return self.flag_location

    def has_flag(self) -> bool:
        return self.carrying

    def pick_up_flag(self) -> None:
        self.flag_location = None
        self.carrying = True

    def drop_flag(self, position: Optional[Position] = None) -> None:
        self.carrying = False
        self.flag_location = position or Position(*self.FLAG_SPAWN.to_tuple())
