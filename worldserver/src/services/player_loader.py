"""
Player load pipeline.

Each ``load_*`` function populates one facet of a PlayerRecord from a
RowSnapshot. ``PlayerLoadService.load_player`` runs them in a fixed order
and stops after the online-relevant set when a shallow load is requested.
Any fault abandons the whole run; the caller must discard the record.
"""

import time
from typing import Callable, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..core.constants import (
    BLESSING_COUNT,
    DEFAULT_SKILL_LEVEL,
    DEFAULT_SKILLS,
    ITEM_INBOX,
    ITEM_STORE_INBOX,
    InventorySlot,
)
from ..core.exceptions import FacetLoadError, StoreError
from ..core.logging_config import get_logger
from ..core.metrics import MetricsHelper, player_load_duration_seconds, track_time
from ..schemas.player_record import (
    BestiaryCharms,
    Bosstiary,
    Condition,
    DerivedStats,
    ForgeHistoryEntry,
    GuildMembership,
    Item,
    KillEntry,
    Outfit,
    PlayerRecord,
    Position,
    PreySlot,
    Skill,
    TaskHuntingSlot,
    VipEntry,
    WheelState,
)
from ..schemas.snapshot import RowSnapshot
from .item_serialization import build_item_tree, count_items
from .player_snapshot_service import PlayerSnapshotService

logger = get_logger(__name__)

Loader = Callable[[PlayerRecord, RowSnapshot], None]


def _required(snapshot: RowSnapshot, column: str):
    value = snapshot.column(column)
    if value is None:
        raise ValueError(f"Column '{column}' is null")
    return value


def experience_for_level(level: int) -> int:
    level -= 1
    return (50 * level ** 3 - 150 * level ** 2 + 400 * level) // 3


# =============================================================================
# SUB-LOADERS
# =============================================================================


def load_player_first(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    player_id = int(_required(snapshot, "id"))
    name = _required(snapshot, "name")
    if player_id <= 0 or not name:
        raise ValueError(f"Invalid player identity id={player_id} name={name!r}")

    record.id = player_id
    record.name = name
    record.account_id = int(_required(snapshot, "account_id"))
    record.group_id = int(_required(snapshot, "group_id"))
    record.vocation = int(_required(snapshot, "vocation"))
    record.sex = int(_required(snapshot, "sex"))
    record.town_id = int(_required(snapshot, "town_id"))
    record.position = Position(
        x=int(_required(snapshot, "pos_x")),
        y=int(_required(snapshot, "pos_y")),
        z=int(_required(snapshot, "pos_z")),
    )
    record.health = int(_required(snapshot, "health"))
    record.health_max = int(_required(snapshot, "health_max"))
    record.mana = int(_required(snapshot, "mana"))
    record.mana_max = int(_required(snapshot, "mana_max"))
    record.soul = int(_required(snapshot, "soul"))
    record.capacity = int(_required(snapshot, "capacity"))
    record.stamina = int(_required(snapshot, "stamina"))
    record.balance = int(_required(snapshot, "balance"))
    record.last_login = int(_required(snapshot, "last_login"))
    record.last_logout = int(_required(snapshot, "last_logout"))


def load_player_experience(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    level = int(_required(snapshot, "level"))
    if level < 1:
        raise ValueError(f"Invalid level {level}")
    record.level = level
    record.experience = int(_required(snapshot, "experience"))
    record.magic_level = int(_required(snapshot, "magic_level"))
    record.mana_spent = int(_required(snapshot, "mana_spent"))


def load_player_blessings(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    blessings = [int(count) for count in _required(snapshot, "blessings")]
    if len(blessings) > BLESSING_COUNT:
        raise ValueError(f"Expected at most {BLESSING_COUNT} blessings, got {len(blessings)}")
    record.blessings = blessings + [0] * (BLESSING_COUNT - len(blessings))


def load_player_conditions(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    record.conditions = [
        Condition(
            type=int(entry["type"]),
            ticks=int(entry["ticks"]),
            params={str(k): int(v) for k, v in (entry.get("params") or {}).items()},
        )
        for entry in _required(snapshot, "conditions")
    ]


def load_player_default_outfit(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    record.outfit = Outfit(
        look_type=int(_required(snapshot, "look_type")),
        look_head=int(_required(snapshot, "look_head")),
        look_body=int(_required(snapshot, "look_body")),
        look_legs=int(_required(snapshot, "look_legs")),
        look_feet=int(_required(snapshot, "look_feet")),
        look_addons=int(_required(snapshot, "look_addons")),
        look_mount=int(_required(snapshot, "look_mount")),
    )


def load_player_skull_system(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    skull = int(_required(snapshot, "skull"))
    skull_until = int(_required(snapshot, "skull_until"))
    # An expired skull is dropped on load
    if skull_until <= int(time.time()):
        skull, skull_until = 0, 0
    record.skull = skull
    record.skull_until = skull_until


def load_player_skills(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    stored = _required(snapshot, "skills")
    skills = {name: Skill(level=DEFAULT_SKILL_LEVEL) for name in DEFAULT_SKILLS}
    for name, values in stored.items():
        skills[name] = Skill(level=int(values["level"]), tries=int(values["tries"]))
    record.skills = skills
    record.spells = [row["name"] for row in snapshot.cursor("spells")]


def load_player_kills(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    record.kills = [
        KillEntry(target=int(row["target"]), time=int(row["time"]), unavenged=bool(row["unavenged"]))
        for row in snapshot.cursor("kills")
    ]


def load_player_guild(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    row = snapshot.first("guild")
    if row is None:
        record.guild = None
        return
    record.guild = GuildMembership(
        guild_id=int(row["guild_id"]),
        guild_name=row["guild_name"],
        rank_id=int(row["rank_id"]),
        rank_name=row["rank_name"],
        rank_level=int(row["rank_level"]),
        nick=row["nick"] or "",
    )


def load_player_stash_items(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    record.stash = {int(row["item_id"]): int(row["item_count"]) for row in snapshot.cursor("stash")}


def load_player_bestiary_charms(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    row = snapshot.first("charms")
    if row is None:
        record.charms = BestiaryCharms()
        return
    record.charms = BestiaryCharms(
        charm_points=int(row["charm_points"]),
        used_points=int(row["used_points"]),
        expansion=bool(row["expansion"]),
        unlocked_runes=[int(rune) for rune in row["unlocked_runes"]],
        assignments={int(charm): int(race) for charm, race in row["assignments"].items()},
        tracker=[int(race) for race in row["tracker"]],
    )


def load_player_inventory_items(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    tree = build_item_tree(snapshot.cursor("items"))
    store_inbox = tree.pop(int(InventorySlot.STORE_INBOX), None)
    unknown = set(tree) - {int(slot) for slot in InventorySlot}
    if unknown:
        raise ValueError(f"Unknown inventory slots {sorted(unknown)}")
    record.inventory = tree
    record.store_inbox = store_inbox


def load_player_store_inbox(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    if record.store_inbox is None:
        record.store_inbox = Item.container(ITEM_STORE_INBOX)


def load_player_depot_items(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    record.depots = build_item_tree(snapshot.cursor("depot_items"))


def load_reward_items(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    record.rewards = build_item_tree(snapshot.cursor("reward_items"))


def load_player_inbox_items(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    tree = build_item_tree(snapshot.cursor("inbox_items"))
    if set(tree) - {0}:
        raise ValueError(f"Inbox rows reference unknown parents {sorted(set(tree) - {0})}")
    record.inbox = tree.get(0) or Item.container(ITEM_INBOX)


def load_player_storage_map(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    record.storage = {int(row["key"]): int(row["value"]) for row in snapshot.cursor("storage")}


def load_player_vip(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    record.vip = [
        VipEntry(
            player_id=int(row["player_id"]),
            name=row["name"],
            description=row["description"] or "",
            icon=int(row["icon"]),
            notify=bool(row["notify"]),
        )
        for row in snapshot.cursor("vip")
    ]


def load_player_prey_class(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    record.prey = [
        PreySlot(
            slot=int(row["slot"]),
            state=int(row["state"]),
            race_id=int(row["raceid"]),
            option=int(row["option"]),
            bonus_type=int(row["bonus_type"]),
            bonus_rarity=int(row["bonus_rarity"]),
            bonus_percentage=int(row["bonus_percentage"]),
            bonus_time_left=int(row["bonus_time"]),
            free_reroll=int(row["free_reroll"]),
            monster_list=[int(race) for race in row["monster_list"]],
        )
        for row in snapshot.cursor("prey")
    ]


def load_player_task_hunting_class(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    record.task_hunting = [
        TaskHuntingSlot(
            slot=int(row["slot"]),
            state=int(row["state"]),
            race_id=int(row["raceid"]),
            upgrade=bool(row["upgrade"]),
            rarity=int(row["rarity"]),
            kills=int(row["kills"]),
            disabled_until=int(row["disabled_time"]),
            free_reroll=int(row["free_reroll"]),
            monster_list=[int(race) for race in row["monster_list"]],
        )
        for row in snapshot.cursor("task_hunt")
    ]


def load_player_forge_history(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    record.forge_history = [
        ForgeHistoryEntry(
            action_type=int(row["action_type"]),
            description=row["description"],
            done_at=int(row["done_at"]),
            is_success=bool(row["is_success"]),
        )
        for row in snapshot.cursor("forge_history")
    ]


def load_player_bosstiary(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    row = snapshot.first("bosstiary")
    if row is None:
        record.bosstiary = Bosstiary()
        return
    record.bosstiary = Bosstiary(
        boss_slot_one=int(row["boss_slot_one"]),
        boss_slot_two=int(row["boss_slot_two"]),
        remove_times=int(row["remove_times"]),
        boss_points=int(row["boss_points"]),
        tracker=[int(race) for race in row["tracker"]],
    )


def load_player_initialize_system(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    """Wheel state and the totals derived from it."""
    row = snapshot.first("wheel")
    slot_points = {}
    if row is not None:
        slot_points = {int(slot): int(points) for slot, points in row["slot_points"].items()}
    record.wheel = WheelState(slot_points=slot_points, total_points=sum(slot_points.values()))


def load_player_update_system(record: PlayerRecord, snapshot: RowSnapshot) -> None:
    """Recompute cached values from the facets loaded before."""
    current = experience_for_level(record.level)
    following = experience_for_level(record.level + 1)
    level_percent = 0
    if following > current:
        progress = (record.experience - current) * 100 // (following - current)
        level_percent = max(0, min(100, progress))

    inventory = list(record.inventory.values())
    if record.store_inbox is not None:
        inventory.append(record.store_inbox)

    record.derived = DerivedStats(
        level_percent=level_percent,
        inventory_item_count=count_items(inventory),
        depot_item_count=count_items(record.depots.values()),
        stash_item_count=sum(record.stash.values()),
    )


# Always run, in this order
ONLINE_LOADERS: Tuple[Tuple[str, Loader], ...] = (
    ("first", load_player_first),
    ("experience", load_player_experience),
    ("blessings", load_player_blessings),
    ("conditions", load_player_conditions),
    ("default_outfit", load_player_default_outfit),
    ("skull_system", load_player_skull_system),
    ("skills", load_player_skills),
    ("kills", load_player_kills),
    ("guild", load_player_guild),
    ("stash_items", load_player_stash_items),
    ("bestiary_charms", load_player_bestiary_charms),
    ("inventory_items", load_player_inventory_items),
    ("store_inbox", load_player_store_inbox),
    ("depot_items", load_player_depot_items),
    ("reward_items", load_reward_items),
    ("inbox_items", load_player_inbox_items),
    ("storage_map", load_player_storage_map),
    ("vip", load_player_vip),
    ("prey_class", load_player_prey_class),
    ("task_hunting_class", load_player_task_hunting_class),
)

# Skipped by a shallow load
FULL_LOADERS: Tuple[Tuple[str, Loader], ...] = (
    ("forge_history", load_player_forge_history),
    ("bosstiary", load_player_bosstiary),
    ("initialize_system", load_player_initialize_system),
    ("update_system", load_player_update_system),
)


class PlayerLoadService:
    """Runs the load pipeline against snapshots."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        snapshot_service: Optional[PlayerSnapshotService] = None,
    ):
        self._snapshots = snapshot_service or PlayerSnapshotService(session_factory)

    def load_player_by_id(
        self, record: PlayerRecord, player_id: int, shallow: bool = True
    ) -> bool:
        return self._load_fetched(
            record, self._snapshots.fetch_by_id, player_id, shallow, {"player_id": player_id}
        )

    def load_player_by_name(
        self, record: PlayerRecord, name: str, shallow: bool = True
    ) -> bool:
        return self._load_fetched(
            record, self._snapshots.fetch_by_name, name, shallow, {"player_name": name}
        )

    def _load_fetched(self, record, fetch, key, shallow: bool, context) -> bool:
        try:
            snapshot = fetch(key)
        except SQLAlchemyError as e:
            error = StoreError(str(e), details=context)
            logger.error("Failed to read player snapshot", extra=error.to_dict())
            MetricsHelper.track_error("load", type(e).__name__)
            MetricsHelper.track_player_load("shallow" if shallow else "full", "failure")
            return False
        return self.load_player(record, snapshot, shallow)

    @track_time(player_load_duration_seconds)
    def load_player(
        self,
        record: Optional[PlayerRecord],
        snapshot: Optional[RowSnapshot],
        shallow: bool = False,
    ) -> bool:
        """
        Populate ``record`` from ``snapshot``.

        Args:
            record: Target aggregate, empty or reset
            snapshot: Point-in-time read of the player
            shallow: Stop after the online-relevant facets

        Returns:
            True if every scheduled facet loaded, False otherwise
        """
        if record is None or snapshot is None:
            missing = "Snapshot" if snapshot is None else "Player record"
            logger.warning(f"Cannot load player - {missing} is missing")
            return False

        depth = "shallow" if shallow else "full"
        steps = ONLINE_LOADERS if shallow else ONLINE_LOADERS + FULL_LOADERS

        for facet, loader in steps:
            try:
                loader(record, snapshot)
            except Exception as e:
                error = FacetLoadError(facet, str(snapshot.row.get("name", "")), str(e))
                logger.warning(
                    "Error while loading player",
                    extra={**error.to_dict(), "player_id": snapshot.row.get("id")},
                )
                MetricsHelper.track_facet_failure("load", facet)
                MetricsHelper.track_player_load(depth, "failure")
                return False
            record.loaded_facets.append(facet)

        MetricsHelper.track_player_load(depth, "success")
        logger.debug(
            "Player loaded",
            extra={"player_id": record.id, "player_name": record.name, "depth": depth},
        )
        return True
