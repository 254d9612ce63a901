"""
SQLAlchemy models for persisted item trees and the supply stash.

Every item table stores a flattened tree: top-level rows use ``pid`` for the
slot (inventory), depot id (depot) or reward id (rewards); nested rows use
the ``sid`` of their parent container as ``pid``.
"""

from sqlalchemy import (
    Column,
    Integer,
    JSON,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import declared_attr
from .base import Base


class ItemRowMixin:
    """Columns shared by all flattened item tables."""

    id = Column(Integer, primary_key=True)

    @declared_attr
    def player_id(cls):
        return Column(
            Integer,
            ForeignKey("players.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    pid = Column(Integer, nullable=False)
    sid = Column(Integer, nullable=False)
    item_type = Column(Integer, nullable=False)
    count = Column(Integer, default=1, nullable=False)
    attributes = Column(JSON, nullable=True)

    @declared_attr
    def __table_args__(cls):
        return (
            UniqueConstraint("player_id", "sid", name=f"uq_{cls.__tablename__}_player_sid"),
            {"extend_existing": True},
        )

    def __repr__(self):
        return (
            f"<{self.__class__.__name__}(player_id={self.player_id}, "
            f"pid={self.pid}, sid={self.sid}, item_type={self.item_type})>"
        )


class PlayerItem(ItemRowMixin, Base):
    """Inventory slots, their containers, and the store inbox."""

    __tablename__ = "player_items"


class PlayerDepotItem(ItemRowMixin, Base):
    __tablename__ = "player_depotitems"


class PlayerRewardItem(ItemRowMixin, Base):
    __tablename__ = "player_rewards"


class PlayerInboxItem(ItemRowMixin, Base):
    __tablename__ = "player_inboxitems"


class PlayerStashItem(Base):
    """Supply stash: stackable item counts keyed by item type."""

    __tablename__ = "player_stash"

    player_id = Column(
        Integer, ForeignKey("players.id", ondelete="CASCADE"), primary_key=True
    )
    item_id = Column(Integer, primary_key=True, autoincrement=False)
    item_count = Column(Integer, nullable=False)

    def __repr__(self):
        return f"<PlayerStashItem(player_id={self.player_id}, item_id={self.item_id}, count={self.item_count})>"

    __table_args__ = {"extend_existing": True}
