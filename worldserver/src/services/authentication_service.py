"""
Service for the game-world authentication gate.

Decides whether an account may enter the world with a given character.
Read-only: nothing is written to the store, whatever the outcome.
"""

from typing import Optional

from sqlalchemy.orm import sessionmaker

from ..core.config import settings
from ..core.constants import AccountError, AuthType
from ..core.exceptions import AccountNotFoundError, AuthenticationRejectedError
from ..core.logging_config import get_logger
from ..core.metrics import MetricsHelper
from .account_service import Account

logger = get_logger(__name__)


class AuthenticationService:
    """Service for authenticating world entry."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        auth_type: Optional[str] = None,
    ):
        self._session_factory = session_factory
        self.auth_type = AuthType(auth_type or settings.AUTH_TYPE)

    def game_world_authentication(
        self,
        account_descriptor: str,
        password: Optional[str],
        character_name: str,
        old_protocol: bool = False,
    ) -> Optional[int]:
        """
        Authenticate an account for entering the world as a character.

        Args:
            account_descriptor: E-mail, account name (old protocol) or session token
            password: Account password; ignored in session mode
            character_name: Character the client wants to play
            old_protocol: Client identifies the account by name

        Returns:
            Account id if the account may play the character, None otherwise
        """
        account = Account(
            account_descriptor,
            session_factory=self._session_factory,
            protocol_compat=old_protocol,
            auth_type=self.auth_type.value,
        )

        if account.load() != AccountError.NONE:
            error = AccountNotFoundError(
                "Couldn't load account",
                details={"account": self._subject(account)},
                error_code="account_not_found",
            )
            return self._deny(error.error_code, str(error))

        if self.auth_type == AuthType.SESSION:
            authenticated = account.authenticate()
        else:
            authenticated = account.authenticate(password)

        if not authenticated:
            error = AuthenticationRejectedError(self._subject(account))
            return self._deny(error.error_code, str(error))

        if account.load() != AccountError.NONE:
            return self._deny(
                "account_reload_failed",
                f"Failed to reload {self._subject(account)}",
            )

        roster, roster_error = account.get_account_players()
        if roster_error != AccountError.NONE:
            return self._deny(
                "roster_load_failed",
                f"Failed to load characters of {self._subject(account)}",
            )

        if roster.get(character_name, 0) == 0:
            return self._deny(
                "character_not_in_roster",
                f"Character {character_name} is not playable on {self._subject(account)}",
            )

        MetricsHelper.track_auth_attempt("success")
        logger.info(
            "Game world authentication successful",
            extra={"account_id": account.id, "character": character_name},
        )
        return account.id

    def _subject(self, account: Account) -> str:
        """How an account appears in logs. Session tokens are never written out."""
        if account.id:
            return f"account {account.id}"
        if self.auth_type == AuthType.SESSION:
            return "account <session token>"
        return f"account {account.descriptor}"

    @staticmethod
    def _deny(reason: str, message: str) -> None:
        MetricsHelper.track_auth_attempt("failure")
        MetricsHelper.track_auth_failure(reason)
        logger.warning(message, extra={"reason": reason})
        return None
