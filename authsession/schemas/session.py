"""Schemas for session lookups and token refresh responses."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from authsession.models.session import SessionRecord


class SessionTokens(BaseModel):
    """Token pair returned to API clients."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: Optional[str] = Field(None, alias="accessToken")
    refresh_token: Optional[str] = Field(None, alias="refreshToken")

    @classmethod
    def from_record(cls, record: SessionRecord) -> "SessionTokens":
        return cls(access_token=record.access_token, refresh_token=record.refresh_token)


__all__ = ["SessionTokens"]
