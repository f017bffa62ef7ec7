"""
Domain models for cached session tokens.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SessionRecord(BaseModel):
    """The token pair cached for a single user."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(..., description="Subject identifier issued by the identity provider.")
    access_token: Optional[str] = Field(None, alias="accessToken")
    refresh_token: Optional[str] = Field(None, alias="refreshToken")

    def to_payload(self) -> dict[str, Optional[str]]:
        """Return the token pair as stored in the cache backends."""
        return self.model_dump(by_alias=True, exclude={"user_id"})

    @classmethod
    def from_payload(cls, user_id: str, payload: dict) -> SessionRecord:
        return cls(
            user_id=user_id,
            access_token=payload.get("accessToken"),
            refresh_token=payload.get("refreshToken"),
        )


class StoreStatus(str, Enum):
    """Outcome of a single call against the primary cache backend."""

    OK = "ok"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class StoreResult:
    """Result returned by the primary store instead of raising.

    ``record`` is only meaningful for reads; an ``OK`` read with no record
    means the key does not exist.
    """

    status: StoreStatus
    record: Optional[SessionRecord] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, record: Optional[SessionRecord] = None) -> StoreResult:
        return cls(status=StoreStatus.OK, record=record)

    @classmethod
    def unavailable(cls, error: str) -> StoreResult:
        return cls(status=StoreStatus.UNAVAILABLE, error=error)

    @property
    def is_ok(self) -> bool:
        return self.status is StoreStatus.OK


__all__ = ["SessionRecord", "StoreResult", "StoreStatus"]
