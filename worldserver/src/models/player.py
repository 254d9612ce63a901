"""
SQLAlchemy models for players and the online registry.
"""

from sqlalchemy import Column, Integer, String, BigInteger, JSON
from sqlalchemy import ForeignKey
from .base import Base
from ..core.constants import BLESSING_COUNT


class Player(Base):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, index=True, nullable=False)
    account_id = Column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    group_id = Column(Integer, default=1, nullable=False)
    vocation = Column(Integer, default=0, nullable=False)
    sex = Column(Integer, default=0, nullable=False)
    town_id = Column(Integer, default=1, nullable=False)

    # Experience
    level = Column(Integer, default=1, nullable=False)
    experience = Column(BigInteger, default=0, nullable=False)
    magic_level = Column(Integer, default=0, nullable=False)
    mana_spent = Column(BigInteger, default=0, nullable=False)

    # Vitals
    health = Column(Integer, default=150, nullable=False)
    health_max = Column(Integer, default=150, nullable=False)
    mana = Column(Integer, default=0, nullable=False)
    mana_max = Column(Integer, default=0, nullable=False)
    soul = Column(Integer, default=0, nullable=False)
    capacity = Column(Integer, default=400, nullable=False)
    stamina = Column(Integer, default=2520, nullable=False)

    # Position
    pos_x = Column(Integer, default=0, nullable=False)
    pos_y = Column(Integer, default=0, nullable=False)
    pos_z = Column(Integer, default=0, nullable=False)

    # Default outfit
    look_type = Column(Integer, default=136, nullable=False)
    look_head = Column(Integer, default=0, nullable=False)
    look_body = Column(Integer, default=0, nullable=False)
    look_legs = Column(Integer, default=0, nullable=False)
    look_feet = Column(Integer, default=0, nullable=False)
    look_addons = Column(Integer, default=0, nullable=False)
    look_mount = Column(Integer, default=0, nullable=False)

    # Skull system
    skull = Column(Integer, default=0, nullable=False)
    skull_until = Column(BigInteger, default=0, nullable=False)

    # Serialized facets
    blessings = Column(JSON, nullable=False)
    conditions = Column(JSON, nullable=False)
    skills = Column(JSON, nullable=False)

    balance = Column(BigInteger, default=0, nullable=False)
    last_login = Column(BigInteger, default=0, nullable=False)
    last_logout = Column(BigInteger, default=0, nullable=False)

    # Non-zero marks a soft-deleted character
    deletion = Column(BigInteger, default=0, nullable=False)

    def __init__(self, **kwargs):
        defaults = {
            "blessings": [0] * BLESSING_COUNT,
            "conditions": [],
            "skills": {},
            "deletion": 0,
        }
        for key, value in defaults.items():
            kwargs.setdefault(key, value)
        super().__init__(**kwargs)

    def __repr__(self):
        return f"<Player(id={self.id}, name='{self.name}')>"

    __table_args__ = {"extend_existing": True}


class PlayerOnline(Base):
    """Rows mirror the in-process presence set."""

    __tablename__ = "players_online"

    player_id = Column(Integer, primary_key=True, autoincrement=False)

    def __repr__(self):
        return f"<PlayerOnline(player_id={self.player_id})>"

    __table_args__ = {"extend_existing": True}
