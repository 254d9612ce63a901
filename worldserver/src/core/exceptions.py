"""
Persistence exceptions for the world server.

Every failure the load/save pipelines and the authentication gate can hit
belongs to one of these classes. They carry structured details for logging;
the pipeline boundaries collapse them into plain success/failure values and
never let them escape to the session code.
"""

from typing import Any, Dict, Optional


class PersistenceError(Exception):
    """
    Base exception for persistence-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        error_code: Optional code for programmatic handling
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "error": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


class AccountNotFoundError(PersistenceError):
    """Account or player row is absent."""


class AuthenticationRejectedError(PersistenceError):
    """Credentials did not match. Never says which factor failed."""

    def __init__(self, descriptor: str) -> None:
        super().__init__(
            "Authentication rejected",
            details={"account": descriptor},
            error_code="authentication_rejected",
        )


class FacetError(PersistenceError):
    """A single facet of a player record could not be transferred."""

    action = "transfer"

    def __init__(self, facet: str, player_name: str, reason: str = "") -> None:
        self.facet = facet
        self.player_name = player_name
        self.reason = reason
        message = f"Failed to {self.action} player {facet}: {player_name}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message,
            details={"facet": facet, "player": player_name},
            error_code=f"{self.action}_{facet}_failed",
        )


class FacetLoadError(FacetError):
    """A sub-loader faulted (malformed row, unexpected null)."""

    action = "load"


class FacetSaveError(FacetError):
    """A sub-saver reported failure."""

    action = "save"


class StoreError(PersistenceError):
    """Connectivity or timeout at the store boundary."""
