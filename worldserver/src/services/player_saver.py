"""
Player save pipeline.

Each ``save_*`` function writes one facet of a PlayerRecord and reports a
FacetResult. ``PlayerSaveService.save_player`` runs them in a fixed order
inside one unit of work and stops at the first failure, which rolls back
everything written so far.

Collections are replaced (delete, then insert) keyed by player id, so
saving the same record twice leaves the same rows as saving it once.
"""

import functools
from dataclasses import asdict
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy import delete, insert, update
from sqlalchemy.orm import Session, sessionmaker

from ..core.constants import InventorySlot
from ..core.exceptions import FacetSaveError
from ..core.logging_config import get_logger
from ..core.metrics import MetricsHelper, player_save_duration_seconds, track_time
from ..models import (
    ForgeHistory,
    Player,
    PlayerBosstiary,
    PlayerCharm,
    PlayerDepotItem,
    PlayerInboxItem,
    PlayerItem,
    PlayerKill,
    PlayerPrey,
    PlayerRewardItem,
    PlayerSpell,
    PlayerStashItem,
    PlayerStorage,
    PlayerTaskHunt,
    PlayerWheelData,
)
from ..schemas.player_record import PlayerRecord
from ..schemas.service_results import FacetResult, ServiceResult
from .item_serialization import flatten_items
from .transaction_service import TransactionService

logger = get_logger(__name__)

Saver = Callable[[Session, PlayerRecord], FacetResult]


def facet_saver(facet: str):
    """
    Turn a facet writer into a Saver.

    Any error raised by the writer becomes a failed FacetResult naming the
    facet. The session is flushed so constraint violations surface on the
    facet that caused them.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(db: Session, record: PlayerRecord) -> FacetResult:
            try:
                func(db, record)
                db.flush()
            except Exception as e:
                return FacetResult.failed(facet, record.name, str(e))
            return FacetResult.saved(facet, record.name)

        wrapper.facet = facet
        return wrapper

    return decorator


def _replace_rows(db: Session, model, player_id: int, rows: List[Dict[str, Any]]) -> None:
    db.execute(delete(model).where(model.player_id == player_id))
    if rows:
        db.execute(insert(model), [{"player_id": player_id, **row} for row in rows])


# =============================================================================
# SUB-SAVERS
# =============================================================================


@facet_saver("first")
def save_player_first(db: Session, record: PlayerRecord) -> None:
    values = {
        "name": record.name,
        "group_id": record.group_id,
        "vocation": record.vocation,
        "sex": record.sex,
        "town_id": record.town_id,
        "level": record.level,
        "experience": record.experience,
        "magic_level": record.magic_level,
        "mana_spent": record.mana_spent,
        "health": record.health,
        "health_max": record.health_max,
        "mana": record.mana,
        "mana_max": record.mana_max,
        "soul": record.soul,
        "capacity": record.capacity,
        "stamina": record.stamina,
        "pos_x": record.position.x,
        "pos_y": record.position.y,
        "pos_z": record.position.z,
        "look_type": record.outfit.look_type,
        "look_head": record.outfit.look_head,
        "look_body": record.outfit.look_body,
        "look_legs": record.outfit.look_legs,
        "look_feet": record.outfit.look_feet,
        "look_addons": record.outfit.look_addons,
        "look_mount": record.outfit.look_mount,
        "skull": record.skull,
        "skull_until": record.skull_until,
        "blessings": list(record.blessings),
        "conditions": [asdict(condition) for condition in record.conditions],
        "skills": {name: asdict(skill) for name, skill in record.skills.items()},
        "balance": record.balance,
        "last_login": record.last_login,
        "last_logout": record.last_logout,
    }
    result = db.execute(update(Player).where(Player.id == record.id).values(**values))
    if result.rowcount != 1:
        raise ValueError(f"Player row {record.id} not found")


@facet_saver("stash")
def save_player_stash(db: Session, record: PlayerRecord) -> None:
    rows = [
        {"item_id": item_id, "item_count": count}
        for item_id, count in sorted(record.stash.items())
    ]
    _replace_rows(db, PlayerStashItem, record.id, rows)


@facet_saver("spells")
def save_player_spells(db: Session, record: PlayerRecord) -> None:
    _replace_rows(db, PlayerSpell, record.id, [{"name": name} for name in record.spells])


@facet_saver("kills")
def save_player_kills(db: Session, record: PlayerRecord) -> None:
    rows = [
        {"target": kill.target, "time": kill.time, "unavenged": kill.unavenged}
        for kill in record.kills
    ]
    _replace_rows(db, PlayerKill, record.id, rows)


@facet_saver("bestiary")
def save_player_bestiary_system(db: Session, record: PlayerRecord) -> None:
    charms = record.charms
    row = {
        "charm_points": charms.charm_points,
        "used_points": charms.used_points,
        "expansion": charms.expansion,
        "unlocked_runes": list(charms.unlocked_runes),
        "assignments": {str(charm): race for charm, race in charms.assignments.items()},
        "tracker": list(charms.tracker),
    }
    _replace_rows(db, PlayerCharm, record.id, [row])


@facet_saver("items")
def save_player_items(db: Session, record: PlayerRecord) -> None:
    top_level = dict(record.inventory)
    if record.store_inbox is not None:
        top_level[int(InventorySlot.STORE_INBOX)] = record.store_inbox
    _replace_rows(db, PlayerItem, record.id, flatten_items(top_level))


@facet_saver("depot_items")
def save_player_depot_items(db: Session, record: PlayerRecord) -> None:
    _replace_rows(db, PlayerDepotItem, record.id, flatten_items(record.depots))


@facet_saver("reward_items")
def save_reward_items(db: Session, record: PlayerRecord) -> None:
    _replace_rows(db, PlayerRewardItem, record.id, flatten_items(record.rewards))


@facet_saver("inbox")
def save_player_inbox(db: Session, record: PlayerRecord) -> None:
    top_level = {0: record.inbox} if record.inbox is not None else {}
    _replace_rows(db, PlayerInboxItem, record.id, flatten_items(top_level))


@facet_saver("prey_class")
def save_player_prey_class(db: Session, record: PlayerRecord) -> None:
    rows = [
        {
            "slot": prey.slot,
            "state": prey.state,
            "raceid": prey.race_id,
            "option": prey.option,
            "bonus_type": prey.bonus_type,
            "bonus_rarity": prey.bonus_rarity,
            "bonus_percentage": prey.bonus_percentage,
            "bonus_time": prey.bonus_time_left,
            "free_reroll": prey.free_reroll,
            "monster_list": list(prey.monster_list),
        }
        for prey in record.prey
    ]
    _replace_rows(db, PlayerPrey, record.id, rows)


@facet_saver("task_hunting_class")
def save_player_task_hunting_class(db: Session, record: PlayerRecord) -> None:
    rows = [
        {
            "slot": task.slot,
            "state": task.state,
            "raceid": task.race_id,
            "upgrade": task.upgrade,
            "rarity": task.rarity,
            "kills": task.kills,
            "disabled_time": task.disabled_until,
            "free_reroll": task.free_reroll,
            "monster_list": list(task.monster_list),
        }
        for task in record.task_hunting
    ]
    _replace_rows(db, PlayerTaskHunt, record.id, rows)


# The next three facets are only populated by a full load. A None facet was
# never loaded, so its stored rows are left as they are.


@facet_saver("forge_history")
def save_player_forge_history(db: Session, record: PlayerRecord) -> None:
    if record.forge_history is None:
        return
    rows = [asdict(entry) for entry in record.forge_history]
    _replace_rows(db, ForgeHistory, record.id, rows)


@facet_saver("bosstiary")
def save_player_bosstiary(db: Session, record: PlayerRecord) -> None:
    if record.bosstiary is None:
        return
    _replace_rows(db, PlayerBosstiary, record.id, [asdict(record.bosstiary)])


@facet_saver("wheel")
def save_player_wheel(db: Session, record: PlayerRecord) -> None:
    """Slot points written on logout."""
    if record.wheel is None:
        return
    slot_points = {str(slot): points for slot, points in record.wheel.slot_points.items()}
    _replace_rows(db, PlayerWheelData, record.id, [{"slot_points": slot_points}])


@facet_saver("storage")
def save_player_storage(db: Session, record: PlayerRecord) -> None:
    rows = [{"key": key, "value": value} for key, value in sorted(record.storage.items())]
    _replace_rows(db, PlayerStorage, record.id, rows)


SAVE_STEPS: Sequence[Saver] = (
    save_player_first,
    save_player_stash,
    save_player_spells,
    save_player_kills,
    save_player_bestiary_system,
    save_player_items,
    save_player_depot_items,
    save_reward_items,
    save_player_inbox,
    save_player_prey_class,
    save_player_task_hunting_class,
    save_player_forge_history,
    save_player_bosstiary,
    save_player_wheel,
    save_player_storage,
)


class PlayerSaveService:
    """Runs the save pipeline as one unit of work."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        transaction_service: Optional[TransactionService] = None,
        savers: Sequence[Saver] = SAVE_STEPS,
    ):
        self._transactions = transaction_service or TransactionService(session_factory)
        self._savers = tuple(savers)

    @track_time(player_save_duration_seconds)
    def save_player(self, record: Optional[PlayerRecord]) -> bool:
        """
        Persist every facet of ``record`` atomically.

        Returns:
            True if all facets were committed, False if nothing was
        """
        result = self._transactions.execute_within_transaction(
            lambda db: self._save_guard(db, record), label="save_player"
        )

        if not result.success:
            logger.error(
                "Error occurred saving player",
                extra={
                    "player_id": getattr(record, "id", None),
                    "error_code": result.error_code,
                },
            )
            MetricsHelper.track_player_save("failure")
            return False

        MetricsHelper.track_player_save("success")
        return True

    def _save_guard(self, db: Session, record: Optional[PlayerRecord]) -> ServiceResult:
        if record is None:
            return FacetResult.failed("player", "", "Player record is missing")

        for saver in self._savers:
            result = saver(db, record)
            if not result.success:
                error = FacetSaveError(result.facet, result.player_name, result.message)
                logger.error(str(error), extra={**error.to_dict(), "player_id": record.id})
                MetricsHelper.track_facet_failure("save", result.facet)
                return result

        logger.debug(
            "Player saved",
            extra={"player_id": record.id, "player_name": record.name},
        )
        return ServiceResult.success_no_data("Player saved")
