"""
Structured result types for the persistence pipelines.

Sub-savers and the transaction coordinator return these instead of raising,
so the save pipeline can inspect each step in order and stop at the first
failure while keeping the failing facet on record.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    message: str = ""
    error_code: Optional[str] = None

    @classmethod
    def success_no_data(cls, message: str = "OK") -> "ServiceResult[None]":
        return cls(success=True, message=message)

    @classmethod
    def failure(cls, message: str, error_code: Optional[str] = None) -> "ServiceResult[T]":
        """Failed outcome; ``error_code`` is a stable machine-readable tag."""
        return cls(success=False, message=message, error_code=error_code)


@dataclass
class FacetResult(ServiceResult[None]):
    """Outcome of one sub-saver: names the facet and the player it ran for."""

    facet: str = ""
    player_name: str = ""

    @classmethod
    def saved(cls, facet: str, player_name: str) -> "FacetResult":
        return cls(True, message=f"Saved player {facet}", facet=facet, player_name=player_name)

    @classmethod
    def failed(cls, facet: str, player_name: str, reason: str) -> "FacetResult":
        return cls(
            False,
            message=reason,
            error_code=f"save_{facet}_failed",
            facet=facet,
            player_name=player_name,
        )
