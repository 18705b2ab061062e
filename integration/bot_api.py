"""
bot_api.py - Host bot API abstraction for strategy scripts.

This module describes the contract between the strategy scripts and the
bot runtime that actually plays the game. The strategies only ever talk
to a BotAPI; pathfinding, world caching, networking and physics live on
the other side of this interface.

Implementations:
- SimulatedBot (sim_bot.py): in-process world for dry runs and tests
- MineflayerBot (mineflayer_bridge.py): a real Mineflayer bot driven
  through a Python <-> Node.js bridge

SAFETY NOTE:
Strategies are intended to be used only where automation is explicitly
allowed by the server owner. Do not use this in violation of any
server's terms of service.
"""

import re
import math
import queue
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class BotAPIError(Exception):
    """Base error raised by a host bot implementation."""


class NotConnectedError(BotAPIError):
    """Raised when an action is issued before the bot has spawned."""


class CraftingError(BotAPIError):
    """Raised when an item cannot be crafted."""


class PathInterrupted(BotAPIError):
    """A pathfinding goal ended before it was reached."""


class GoalChanged(PathInterrupted):
    """A newer pathfinding goal replaced the current one."""


class PathStopped(PathInterrupted):
    """Pathfinding was stopped explicitly."""


# Pathfinding errors that only mean a newer movement target won
BENIGN_PATH_ERRORS: Tuple[type, ...] = (GoalChanged, PathStopped)
BENIGN_JS_ERROR = re.compile(r'\b(GoalChanged|PathStopped)\b')


def is_benign_path_error(error: BaseException) -> bool:
    """Check whether an error only signals a pre-empted movement goal."""
    if isinstance(error, BENIGN_PATH_ERRORS):
        return True
    # JSPyBridge raises JavaScriptError, which carries the JS error text in `js`
    js_text = getattr(error, 'js', None)
    return bool(js_text) and BENIGN_JS_ERROR.search(str(js_text)) is not None


@dataclass
class Position:
    """3D position in the world."""
    x: float
    y: float
    z: float

    def to_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def distance_squared(self, other: 'Position') -> float:
        """Squared Euclidean distance, used for all range checks."""
        return (
            (self.x - other.x) ** 2 +
            (self.y - other.y) ** 2 +
            (self.z - other.z) ** 2
        )

    def distance_to(self, other: 'Position') -> float:
        """Calculate Euclidean distance to another position."""
        return math.sqrt(self.distance_squared(other))

    def offset(self, dx: float, dy: float, dz: float) -> 'Position':
        return Position(self.x + dx, self.y + dy, self.z + dz)

    def floored(self) -> 'Position':
        return Position(math.floor(self.x), math.floor(self.y), math.floor(self.z))

    def key(self) -> Tuple[int, int, int]:
        """Integer block coordinates, usable as a dict key."""
        return (math.floor(self.x), math.floor(self.y), math.floor(self.z))


@dataclass
class Item:
    """Inventory or ground item."""
    name: str  # e.g. "spruce_log"
    count: int = 1
    display_name: str = ""
    custom_name: Optional[str] = None  # raw JSON text component
    slot: Optional[int] = None

    def __post_init__(self):
        if not self.display_name:
            self.display_name = self.name.replace('_', ' ').title()


@dataclass
class Block:
    """Block information. block_type 0 is air."""
    name: str
    position: Position
    block_type: int = 1


@dataclass
class Entity:
    """Entity information."""
    entity_id: int
    name: str  # e.g. "player", "item"
    position: Position
    username: Optional[str] = None
    held_item: Optional[Item] = None
    item: Optional[Item] = None  # the item carried by a dropped-item entity
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Player:
    """A player taking part in the current match."""
    username: str
    team: Optional[str] = None
    is_bot: bool = False


@dataclass
class MatchInfo:
    """Match information published by the host."""
    players: List[Player] = field(default_factory=list)


@dataclass
class FindResult:
    """A search hit together with its ranking value."""
    result: Any
    value: float = 0.0


@dataclass
class GoalNear:
    """Pathfinding goal: get within `reach` blocks of a position."""
    x: float
    y: float
    z: float
    reach: float = 1

    @classmethod
    def from_position(cls, position: Position, reach: float = 1) -> 'GoalNear':
        return cls(position.x, position.y, position.z, reach)

    def position(self) -> Position:
        return Position(self.x, self.y, self.z)


# Event names emitted by hosts
SPAWN = 'spawn'
DEATH = 'death'
PLAYER_COLLECT = 'playerCollect'
MATCH_STARTED = 'match_started'
MATCH_ENDED = 'match_ended'
FLAG_OBTAINED = 'flag_obtained'
FLAG_SCORED = 'flag_scored'
FLAG_AVAILABLE = 'flag_available'
ITEM_COLLECTED = 'item_collected'


class BotAPI(ABC):
    """
    Host-provided bot API used by every strategy.

    Subclasses implement the primitives; event registration and
    dispatch are shared here.

    Usage:
        bot = SimulatedBot(username="lumberjack")
        bot.on('spawn', lambda: bot.chat("hello"))
        bot.emit('spawn')
    """

    def __init__(self):
        self._event_handlers: Dict[str, List[Callable]] = {}
        self._deferred: "queue.Queue[Tuple[Callable, Tuple[Any, ...]]]" = queue.Queue()
        self.debug = False

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event_type: str, handler: Callable) -> None:
        """
        Register an event handler.

        Args:
            event_type: Event name (e.g., 'spawn', 'death')
            handler: Callback receiving the event arguments
        """
        if event_type not in self._event_handlers:
            self._event_handlers[event_type] = []
        self._event_handlers[event_type].append(handler)

    def emit(self, event_type: str, *args: Any) -> None:
        """Emit an event to registered handlers."""
        for handler in list(self._event_handlers.get(event_type, [])):
            try:
                handler(*args)
            except Exception as e:
                logger.error(f"Error in '{event_type}' handler: {e}", exc_info=True)

    def defer(self, callback: Callable, *args: Any) -> None:
        """
        Queue a callback for the strategy thread.

        Hosts whose events arrive on another thread hand them over here;
        they run at the next process_events().
        """
        self._deferred.put((callback, args))

    def process_events(self) -> int:
        """
        Run deferred callbacks on the calling thread.

        Returns:
            Number of callbacks run
        """
        count = 0
        while True:
            try:
                callback, args = self._deferred.get_nowait()
            except queue.Empty:
                return count
            count += 1
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in deferred callback: {e}", exc_info=True)

    def set_debug(self, debug: bool) -> None:
        self.debug = debug
        logger.setLevel(logging.DEBUG if debug else logging.NOTSET)

    @staticmethod
    def vec_to_string(position: Optional[Position]) -> str:
        if position is None:
            return "unknown"
        return f"({position.x:.1f}, {position.y:.1f}, {position.z:.1f})"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @abstractmethod
    def username(self) -> str:
        ...

    @abstractmethod
    def position(self) -> Position:
        ...

    @abstractmethod
    def health(self) -> float:
        """Current health (0-20)."""

    @abstractmethod
    def get_my_team(self) -> Optional[str]:
        ...

    @abstractmethod
    def team_for_player(self, username: str) -> Optional[str]:
        ...

    @abstractmethod
    def match_info(self) -> Optional[MatchInfo]:
        ...

    @abstractmethod
    def get_all_inventory_items(self) -> List[Item]:
        ...

    def get_inventory_item_quantity(self, name: str, partial_match: bool = False) -> int:
        """Total count of matching items across the inventory."""
        return sum(
            item.count for item in self.get_all_inventory_items()
            if _name_matches(item.name, name, partial_match)
        )

    def inventory_contains_item(
        self,
        name: str,
        quantity: int = 1,
        partial_match: bool = False
    ) -> bool:
        return self.get_inventory_item_quantity(name, partial_match) >= quantity

    @abstractmethod
    def block_at(self, position: Position) -> Optional[Block]:
        ...

    @abstractmethod
    def find_block(
        self,
        name: str,
        max_distance: float = 50,
        skip_closest: bool = False,
        only_find_top_blocks: bool = False
    ) -> Optional[Block]:
        """
        Find the nearest block with the given name.

        Args:
            name: Block name (e.g., 'spruce_log')
            max_distance: Search radius in blocks
            skip_closest: Return the second-nearest match instead
            only_find_top_blocks: Ignore blocks with a solid block above

        Returns:
            Matching block or None
        """

    @abstractmethod
    def find_entities(
        self,
        entity_names: Optional[List[str]] = None,
        attackable: bool = False,
        max_distance: float = 33,
        max_count: int = 1
    ) -> List[FindResult]:
        ...

    @abstractmethod
    def find_items_on_ground(
        self,
        max_distance: float = 33,
        max_count: int = 1,
        item_value_function: Optional[Callable[[str], float]] = None,
        sort_value_function: Optional[Callable[[float, float], float]] = None
    ) -> List[FindResult]:
        """
        Find dropped items, best first.

        Items are ranked by sort_value_function(distance, value) where
        value comes from item_value_function(item_name). Lower ranks first.
        """

    def block_id(self, name: str) -> Optional[int]:
        """Numeric block id for the server's game version, if known."""
        return None

    def get_entity_name(self, entity: Entity) -> str:
        if entity.item is not None:
            return entity.item.name
        return entity.username or entity.name

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    @abstractmethod
    def chat(self, message: str) -> None:
        ...

    @abstractmethod
    def wait(self, ticks: int) -> None:
        """Wait for a number of server ticks (20 per second)."""

    @abstractmethod
    def wander(self, min_distance: float = 10, max_distance: float = 10) -> bool:
        """Walk to a random nearby spot. Returns True once the walk completes."""

    @abstractmethod
    def find_and_dig_block(self, name: str, skip_closest: bool = False,
                           max_distance: float = 50) -> bool:
        ...

    @abstractmethod
    def craft_item(self, name: str, quantity: int = 1,
                   crafting_table: Optional[Block] = None) -> Optional[Item]:
        ...

    @abstractmethod
    def hold_item(self, name: str) -> Optional[Item]:
        ...

    @abstractmethod
    def equip(self, item: Item, destination: str = 'hand') -> None:
        ...

    @abstractmethod
    def unequip(self, destination: str) -> None:
        ...

    @abstractmethod
    def activate_item(self, off_hand: bool = False) -> None:
        ...

    @abstractmethod
    def look_at(self, position: Position) -> None:
        ...

    @abstractmethod
    def place_block_on(self, reference: Block, face: Position) -> None:
        """Place the held block against a face of the reference block."""

    @abstractmethod
    def place_block(self, name: str, ground: Optional[Block]) -> bool:
        """Place a block from the inventory on top of the ground block."""

    @abstractmethod
    def approach_position(self, position: Position, reach: float = 1) -> bool:
        """Walk to a position and wait until within reach."""

    @abstractmethod
    def approach_block(self, block: Block, reach: float = 2) -> bool:
        ...

    @abstractmethod
    def attack_entity(self, entity: Entity) -> None:
        ...

    # ------------------------------------------------------------------
    # Pathfinder (background movement)
    # ------------------------------------------------------------------

    @abstractmethod
    def pathfinder_is_moving(self) -> bool:
        ...

    @abstractmethod
    def pathfinder_set_goal(
        self,
        goal: GoalNear,
        on_reached: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None
    ) -> None:
        """
        Start moving toward a goal without waiting for it.

        Setting a new goal interrupts the previous one; its on_error
        receives a GoalChanged.
        """


class CTFUtils(ABC):
    """
    Capture-the-flag helpers published by the arena host.

    Positions of the flag spawn and both score pads are fixed for the
    arena map.
    """

    FLAG_SUFFIX = "_banner"
    FLAG_SPAWN = Position(96, 63, -386)
    BLUE_SCORE_LOCATION = Position(160, 63, -385)
    RED_SCORE_LOCATION = Position(33, 63, -385)

    @abstractmethod
    def get_flag_location(self) -> Optional[Position]:
        """Location of the flag on the ground, None while it is carried."""

    @abstractmethod
    def has_flag(self) -> bool:
        """Whether this bot is carrying the flag."""

    def poll(self) -> Dict[str, bool]:
        """Refresh flag state and emit flag events. Hosts that push events need nothing here."""
        return {}

    def score_location_for(self, team: Optional[str]) -> Position:
        return self.BLUE_SCORE_LOCATION if team == 'BLUE' else self.RED_SCORE_LOCATION


def _name_matches(item_name: str, name: str, partial_match: bool) -> bool:
    if partial_match:
        return name in item_name
    return item_name == name
