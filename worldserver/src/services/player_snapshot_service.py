"""
Service for reading a player's stored state as one RowSnapshot.

All rows of a snapshot are read inside a single transaction. On PostgreSQL
the transaction runs at REPEATABLE READ so every child cursor observes the
same point in time as the primary row.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from ..core.database import SessionLocal
from ..core.logging_config import get_logger
from ..models import (
    AccountVip,
    ForgeHistory,
    Guild,
    GuildMembership,
    GuildRank,
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
from ..schemas.snapshot import RowSnapshot

logger = get_logger(__name__)

# facet -> (model, order_by column names)
PLAYER_CHILD_TABLES = {
    "spells": (PlayerSpell, ("name",)),
    "kills": (PlayerKill, ("time", "id")),
    "stash": (PlayerStashItem, ("item_id",)),
    "charms": (PlayerCharm, ()),
    "items": (PlayerItem, ("sid",)),
    "depot_items": (PlayerDepotItem, ("sid",)),
    "reward_items": (PlayerRewardItem, ("sid",)),
    "inbox_items": (PlayerInboxItem, ("sid",)),
    "storage": (PlayerStorage, ("key",)),
    "prey": (PlayerPrey, ("slot",)),
    "task_hunt": (PlayerTaskHunt, ("slot",)),
    "forge_history": (ForgeHistory, ("done_at", "id")),
    "bosstiary": (PlayerBosstiary, ()),
    "wheel": (PlayerWheelData, ()),
}


class PlayerSnapshotService:
    """Reads players and their child rows into immutable snapshots."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or SessionLocal

    def fetch_by_id(self, player_id: int) -> Optional[RowSnapshot]:
        """
        Snapshot of the player with the given id.

        Returns:
            RowSnapshot, or None when no such player exists
        """
        return self._fetch(Player.__table__.c.id == player_id, {"player_id": player_id})

    def fetch_by_name(self, name: str) -> Optional[RowSnapshot]:
        """
        Snapshot of the player with the given name.

        Returns:
            RowSnapshot, or None when no such player exists
        """
        return self._fetch(Player.__table__.c.name == name, {"player_name": name})

    def _fetch(self, predicate, context: Dict[str, Any]) -> Optional[RowSnapshot]:
        with self._session_factory() as db:
            with db.begin():
                if db.get_bind().dialect.name == "postgresql":
                    db.connection(execution_options={"isolation_level": "REPEATABLE READ"})

                row = db.execute(select(Player.__table__).where(predicate)).mappings().first()
                if row is None:
                    logger.debug("Player snapshot not found", extra=context)
                    return None

                children = self._fetch_children(db, row["id"], row["account_id"])

        return RowSnapshot(row, children)

    def _fetch_children(
        self, db: Session, player_id: int, account_id: int
    ) -> Dict[str, List[Any]]:
        children: Dict[str, List[Any]] = {}

        for facet, (model, order_by) in PLAYER_CHILD_TABLES.items():
            table = model.__table__
            query = select(table).where(table.c.player_id == player_id)
            if order_by:
                query = query.order_by(*(table.c[column] for column in order_by))
            children[facet] = list(db.execute(query).mappings())

        guild_query = (
            select(
                GuildMembership.guild_id,
                GuildMembership.rank_id,
                GuildMembership.nick,
                Guild.name.label("guild_name"),
                GuildRank.name.label("rank_name"),
                GuildRank.level.label("rank_level"),
            )
            .join(Guild, Guild.id == GuildMembership.guild_id)
            .join(GuildRank, GuildRank.id == GuildMembership.rank_id)
            .where(GuildMembership.player_id == player_id)
        )
        children["guild"] = list(db.execute(guild_query).mappings())

        vip_query = (
            select(
                AccountVip.player_id,
                Player.name,
                AccountVip.description,
                AccountVip.icon,
                AccountVip.notify,
            )
            .join(Player, Player.id == AccountVip.player_id)
            .where(AccountVip.account_id == account_id)
            .order_by(AccountVip.id)
        )
        children["vip"] = list(db.execute(vip_query).mappings())

        return children
