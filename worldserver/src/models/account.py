"""
SQLAlchemy models for accounts, issued sessions and VIP lists.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    func,
)
from .base import Base
from ..core.constants import AccountType


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String(32), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    type = Column(Integer, default=int(AccountType.NORMAL), nullable=False)
    premium_days = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Account(id={self.id}, name='{self.name}')>"

    __table_args__ = {"extend_existing": True}


class AccountSession(Base):
    """
    A session issued to an account. Session tokens carry the id of this row;
    deleting the row revokes the token.
    """

    __tablename__ = "account_sessions"

    id = Column(String(64), primary_key=True)
    account_id = Column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<AccountSession(id='{self.id}', account_id={self.account_id})>"

    __table_args__ = {"extend_existing": True}


class AccountVip(Base):
    """
    Players watched by an account. (account_id, player_id) is the natural key
    used by edit/remove, but it is not unique.
    """

    __tablename__ = "account_viplist"

    id = Column(Integer, primary_key=True)
    account_id = Column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    player_id = Column(
        Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False
    )
    description = Column(String(128), default="", nullable=False)
    icon = Column(Integer, default=0, nullable=False)
    notify = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<AccountVip(account_id={self.account_id}, player_id={self.player_id})>"

    __table_args__ = (
        Index("ix_account_viplist_account_player", "account_id", "player_id"),
        {"extend_existing": True},
    )
