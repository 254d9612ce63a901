"""
SQLAlchemy models for per-player progress facets: kills, spells, storage,
bestiary charms, prey, task hunting, forge history, bosstiary and wheel.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    BigInteger,
    Boolean,
    JSON,
    ForeignKey,
)
from .base import Base


def _player_fk(primary_key: bool = False) -> Column:
    return Column(
        Integer,
        ForeignKey("players.id", ondelete="CASCADE"),
        primary_key=primary_key,
        nullable=False,
        index=not primary_key,
    )


class PlayerKill(Base):
    __tablename__ = "player_kills"

    id = Column(Integer, primary_key=True)
    player_id = _player_fk()
    target = Column(Integer, nullable=False)
    time = Column(BigInteger, nullable=False)
    unavenged = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<PlayerKill(player_id={self.player_id}, target={self.target}, time={self.time})>"

    __table_args__ = {"extend_existing": True}


class PlayerSpell(Base):
    __tablename__ = "player_spells"

    player_id = _player_fk(primary_key=True)
    name = Column(String(255), primary_key=True)

    __table_args__ = {"extend_existing": True}


class PlayerStorage(Base):
    __tablename__ = "player_storage"

    player_id = _player_fk(primary_key=True)
    key = Column(Integer, primary_key=True, autoincrement=False)
    value = Column(Integer, nullable=False)

    __table_args__ = {"extend_existing": True}


class PlayerCharm(Base):
    """Bestiary charm state, one row per player."""

    __tablename__ = "player_charms"

    player_id = _player_fk(primary_key=True)
    charm_points = Column(Integer, default=0, nullable=False)
    used_points = Column(Integer, default=0, nullable=False)
    expansion = Column(Boolean, default=False, nullable=False)
    unlocked_runes = Column(JSON, nullable=False)
    assignments = Column(JSON, nullable=False)
    tracker = Column(JSON, nullable=False)

    __table_args__ = {"extend_existing": True}


class PlayerPrey(Base):
    __tablename__ = "player_prey"

    player_id = _player_fk(primary_key=True)
    slot = Column(Integer, primary_key=True, autoincrement=False)
    state = Column(Integer, default=0, nullable=False)
    raceid = Column(Integer, default=0, nullable=False)
    option = Column(Integer, default=0, nullable=False)
    bonus_type = Column(Integer, default=0, nullable=False)
    bonus_rarity = Column(Integer, default=0, nullable=False)
    bonus_percentage = Column(Integer, default=0, nullable=False)
    bonus_time = Column(Integer, default=0, nullable=False)
    free_reroll = Column(BigInteger, default=0, nullable=False)
    monster_list = Column(JSON, nullable=False)

    __table_args__ = {"extend_existing": True}


class PlayerTaskHunt(Base):
    __tablename__ = "player_taskhunt"

    player_id = _player_fk(primary_key=True)
    slot = Column(Integer, primary_key=True, autoincrement=False)
    state = Column(Integer, default=0, nullable=False)
    raceid = Column(Integer, default=0, nullable=False)
    upgrade = Column(Boolean, default=False, nullable=False)
    rarity = Column(Integer, default=1, nullable=False)
    kills = Column(Integer, default=0, nullable=False)
    disabled_time = Column(BigInteger, default=0, nullable=False)
    free_reroll = Column(BigInteger, default=0, nullable=False)
    monster_list = Column(JSON, nullable=False)

    __table_args__ = {"extend_existing": True}


class ForgeHistory(Base):
    __tablename__ = "forge_history"

    id = Column(Integer, primary_key=True)
    player_id = _player_fk()
    action_type = Column(Integer, default=0, nullable=False)
    description = Column(String, nullable=False)
    done_at = Column(BigInteger, nullable=False)
    is_success = Column(Boolean, default=False, nullable=False)

    __table_args__ = {"extend_existing": True}


class PlayerBosstiary(Base):
    __tablename__ = "player_bosstiary"

    player_id = _player_fk(primary_key=True)
    boss_slot_one = Column(Integer, default=0, nullable=False)
    boss_slot_two = Column(Integer, default=0, nullable=False)
    remove_times = Column(Integer, default=1, nullable=False)
    boss_points = Column(Integer, default=0, nullable=False)
    tracker = Column(JSON, nullable=False)

    __table_args__ = {"extend_existing": True}


class PlayerWheelData(Base):
    """Wheel slot points written on logout."""

    __tablename__ = "player_wheeldata"

    player_id = _player_fk(primary_key=True)
    slot_points = Column(JSON, nullable=False)

    __table_args__ = {"extend_existing": True}
