"""
SQLAlchemy models for guilds, ranks and memberships.
"""

from sqlalchemy import Column, Integer, String, ForeignKey
from .base import Base


class Guild(Base):
    __tablename__ = "guilds"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, nullable=False)

    def __repr__(self):
        return f"<Guild(id={self.id}, name='{self.name}')>"

    __table_args__ = {"extend_existing": True}


class GuildRank(Base):
    __tablename__ = "guild_ranks"

    id = Column(Integer, primary_key=True)
    guild_id = Column(
        Integer, ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    level = Column(Integer, default=1, nullable=False)

    def __repr__(self):
        return f"<GuildRank(id={self.id}, guild_id={self.guild_id}, name='{self.name}')>"

    __table_args__ = {"extend_existing": True}


class GuildMembership(Base):
    __tablename__ = "guild_membership"

    player_id = Column(
        Integer, ForeignKey("players.id", ondelete="CASCADE"), primary_key=True
    )
    guild_id = Column(
        Integer, ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False
    )
    rank_id = Column(
        Integer, ForeignKey("guild_ranks.id", ondelete="CASCADE"), nullable=False
    )
    nick = Column(String(15), default="", nullable=False)

    def __repr__(self):
        return f"<GuildMembership(player_id={self.player_id}, guild_id={self.guild_id})>"

    __table_args__ = {"extend_existing": True}
