"""
In-memory aggregate for one character's persisted state.

A ``PlayerRecord`` is written by the load pipeline and read by the save
pipeline. Each attribute group is an independent facet. Facets that only a
full load populates (forge history, bosstiary, wheel, derived) stay ``None``
after a shallow load so the savers can tell "not loaded" from "empty".
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from worldserver.src.core.constants import BLESSING_COUNT


@dataclass
class Position:
    x: int = 0
    y: int = 0
    z: int = 0


@dataclass
class Condition:
    type: int
    ticks: int
    params: Dict[str, int] = field(default_factory=dict)


@dataclass
class Outfit:
    look_type: int = 136
    look_head: int = 0
    look_body: int = 0
    look_legs: int = 0
    look_feet: int = 0
    look_addons: int = 0
    look_mount: int = 0


@dataclass
class Skill:
    level: int = 10
    tries: int = 0


@dataclass
class KillEntry:
    target: int
    time: int
    unavenged: bool = False


@dataclass
class GuildMembership:
    guild_id: int
    guild_name: str
    rank_id: int
    rank_name: str
    rank_level: int
    nick: str = ""


@dataclass
class BestiaryCharms:
    charm_points: int = 0
    used_points: int = 0
    expansion: bool = False
    unlocked_runes: List[int] = field(default_factory=list)
    # charm id -> race id
    assignments: Dict[int, int] = field(default_factory=dict)
    tracker: List[int] = field(default_factory=list)


@dataclass
class Item:
    """
    An item, or a container when ``contents`` is not None.
    """
    item_type: int
    count: int = 1
    attributes: Dict[str, object] = field(default_factory=dict)
    contents: Optional[List["Item"]] = None

    @classmethod
    def container(cls, item_type: int, contents: Optional[List["Item"]] = None) -> "Item":
        return cls(item_type=item_type, contents=list(contents or []))

    @property
    def is_container(self) -> bool:
        return self.contents is not None

    def walk(self):
        """Yield this item and everything nested inside it, depth first."""
        yield self
        for child in self.contents or ():
            yield from child.walk()


@dataclass
class VipEntry:
    player_id: int
    name: str
    description: str = ""
    icon: int = 0
    notify: bool = False


@dataclass
class PreySlot:
    slot: int
    state: int = 0
    race_id: int = 0
    option: int = 0
    bonus_type: int = 0
    bonus_rarity: int = 0
    bonus_percentage: int = 0
    bonus_time_left: int = 0
    free_reroll: int = 0
    monster_list: List[int] = field(default_factory=list)


@dataclass
class TaskHuntingSlot:
    slot: int
    state: int = 0
    race_id: int = 0
    upgrade: bool = False
    rarity: int = 1
    kills: int = 0
    disabled_until: int = 0
    free_reroll: int = 0
    monster_list: List[int] = field(default_factory=list)


@dataclass
class ForgeHistoryEntry:
    action_type: int
    description: str
    done_at: int
    is_success: bool = False


@dataclass
class Bosstiary:
    boss_slot_one: int = 0
    boss_slot_two: int = 0
    remove_times: int = 1
    boss_points: int = 0
    tracker: List[int] = field(default_factory=list)


@dataclass
class WheelState:
    # slot id -> points spent
    slot_points: Dict[int, int] = field(default_factory=dict)
    total_points: int = 0


@dataclass
class DerivedStats:
    level_percent: int = 0
    inventory_item_count: int = 0
    depot_item_count: int = 0
    stash_item_count: int = 0


@dataclass
class PlayerRecord:
    # Identity and base stats
    id: int = 0
    name: str = ""
    account_id: int = 0
    group_id: int = 1
    vocation: int = 0
    sex: int = 0
    town_id: int = 1
    position: Position = field(default_factory=Position)
    health: int = 150
    health_max: int = 150
    mana: int = 0
    mana_max: int = 0
    soul: int = 0
    capacity: int = 400
    stamina: int = 2520
    balance: int = 0
    last_login: int = 0
    last_logout: int = 0

    # Experience
    level: int = 1
    experience: int = 0
    magic_level: int = 0
    mana_spent: int = 0

    blessings: List[int] = field(default_factory=lambda: [0] * BLESSING_COUNT)
    conditions: List[Condition] = field(default_factory=list)
    outfit: Outfit = field(default_factory=Outfit)
    skull: int = 0
    skull_until: int = 0
    skills: Dict[str, Skill] = field(default_factory=dict)
    spells: List[str] = field(default_factory=list)
    kills: List[KillEntry] = field(default_factory=list)
    guild: Optional[GuildMembership] = None
    stash: Dict[int, int] = field(default_factory=dict)
    charms: BestiaryCharms = field(default_factory=BestiaryCharms)

    # Item trees
    inventory: Dict[int, Item] = field(default_factory=dict)
    store_inbox: Optional[Item] = None
    depots: Dict[int, Item] = field(default_factory=dict)
    rewards: Dict[int, Item] = field(default_factory=dict)
    inbox: Optional[Item] = None

    storage: Dict[int, int] = field(default_factory=dict)
    vip: List[VipEntry] = field(default_factory=list)
    prey: List[PreySlot] = field(default_factory=list)
    task_hunting: List[TaskHuntingSlot] = field(default_factory=list)

    # Full load only
    forge_history: Optional[List[ForgeHistoryEntry]] = None
    bosstiary: Optional[Bosstiary] = None
    wheel: Optional[WheelState] = None
    derived: Optional[DerivedStats] = None

    loaded_facets: List[str] = field(default_factory=list)
