"""
Account collaborator used by the authentication gate.

An ``Account`` is built from whatever the client sent as its descriptor and
is loaded fresh from the store on every call to ``load()``. Nothing is
cached between authentication attempts.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..core.config import settings
from ..core.constants import AccountError, AccountType, AuthType
from ..core.database import SessionLocal
from ..core.logging_config import get_logger
from ..core.security import (
    create_session_token,
    decode_session_token,
    get_password_hash,
    verify_password,
)
from ..models.account import Account as AccountModel
from ..models.account import AccountSession
from ..models.player import Player

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Account:
    """
    An account as seen by one authentication attempt.

    Args:
        descriptor: E-mail, account name (``protocol_compat``) or session token
        session_factory: Source of store sessions
        protocol_compat: Old clients identify by account name
        auth_type: ``"password"`` or ``"session"``; defaults to settings
    """

    def __init__(
        self,
        descriptor: str,
        session_factory: Optional[sessionmaker] = None,
        protocol_compat: bool = False,
        auth_type: Optional[str] = None,
    ):
        self.descriptor = descriptor
        self.protocol_compat = protocol_compat
        self.auth_type = AuthType(auth_type or settings.AUTH_TYPE)
        self._session_factory = session_factory or SessionLocal
        self._account_id: Optional[int] = None
        self._password_hash: Optional[str] = None
        self._session_id: Optional[str] = None
        self.account_type = AccountType.NORMAL

    @property
    def id(self) -> int:
        return self._account_id or 0

    def load(self) -> AccountError:
        """Read the account row for the descriptor."""
        if self.auth_type == AuthType.SESSION:
            claims = decode_session_token(self.descriptor)
            if claims is None:
                return AccountError.NOT_FOUND
            self._session_id = claims["sid"]
            predicate = AccountModel.id == claims["sub"]
        elif self.protocol_compat:
            predicate = AccountModel.name == self.descriptor
        else:
            predicate = AccountModel.email == self.descriptor

        try:
            with self._session_factory() as db:
                row = db.execute(
                    select(AccountModel.id, AccountModel.password_hash, AccountModel.type)
                    .where(predicate)
                ).first()
        except SQLAlchemyError as e:
            logger.error("Failed to load account", extra={"error": str(e)})
            return AccountError.LOAD_FAILED

        if row is None:
            return AccountError.NOT_FOUND

        self._account_id = row.id
        self._password_hash = row.password_hash
        self.account_type = AccountType(row.type)
        return AccountError.NONE

    def authenticate(self, password: Optional[str] = None) -> bool:
        """
        Check the account's credential.

        In password mode ``password`` is verified against the stored bcrypt
        hash. In session mode it is ignored; the token's session must exist,
        belong to this account and not be expired.
        """
        if self._account_id is None:
            return False

        if self.auth_type == AuthType.PASSWORD:
            return verify_password(password or "", self._password_hash or "")

        if self._session_id is None:
            return False

        try:
            with self._session_factory() as db:
                session_row = db.get(AccountSession, self._session_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load account session", extra={"error": str(e)})
            return False

        if session_row is None or session_row.account_id != self._account_id:
            return False
        return _as_utc(session_row.expires_at) > datetime.now(timezone.utc)

    def get_account_players(self) -> Tuple[Dict[str, int], AccountError]:
        """
        Character roster of the account.

        Returns:
            ``{name: player_id}`` with soft-deleted characters mapped to 0,
            and the outcome
        """
        if self._account_id is None:
            return {}, AccountError.NOT_INITIALIZED

        try:
            with self._session_factory() as db:
                rows = db.execute(
                    select(Player.id, Player.name, Player.deletion)
                    .where(Player.account_id == self._account_id)
                    .order_by(Player.name)
                ).all()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to load account players",
                extra={"account_id": self._account_id, "error": str(e)},
            )
            return {}, AccountError.LOAD_FAILED

        roster = {row.name: (0 if row.deletion else row.id) for row in rows}
        return roster, AccountError.NONE


class AccountService:
    """Creates accounts and issues session tokens."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or SessionLocal

    def create_account(
        self,
        name: str,
        email: str,
        password: str,
        account_type: AccountType = AccountType.NORMAL,
        premium_days: int = 0,
    ) -> int:
        """
        Create a new account.

        Returns:
            The new account id
        """
        with self._session_factory() as db:
            with db.begin():
                account = AccountModel(
                    name=name,
                    email=email,
                    password_hash=get_password_hash(password),
                    type=int(account_type),
                    premium_days=premium_days,
                )
                db.add(account)
                db.flush()
                account_id = account.id

        logger.info("Account created", extra={"account_id": account_id, "account": name})
        return account_id

    def create_session(
        self, account_id: int, expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Issue a session for an account.

        Returns:
            Signed token carrying the account id and the session id
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.SESSION_TOKEN_EXPIRE_MINUTES)
        session_id = uuid.uuid4().hex

        with self._session_factory() as db:
            with db.begin():
                db.add(
                    AccountSession(
                        id=session_id,
                        account_id=account_id,
                        expires_at=datetime.now(timezone.utc) + expires_delta,
                    )
                )

        logger.debug("Account session issued", extra={"account_id": account_id})
        return create_session_token(account_id, session_id, expires_delta)

    def revoke_session(self, session_id: str) -> bool:
        """Delete an issued session. Returns False if it did not exist."""
        with self._session_factory() as db:
            with db.begin():
                session_row = db.get(AccountSession, session_id)
                if session_row is None:
                    return False
                db.delete(session_row)
        return True
