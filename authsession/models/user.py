"""
Domain model for the user profile kept alongside the session cache.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Latest known profile for an authenticated subject."""

    subject: str = Field(..., description="The ``sub`` claim from the identity provider.")
    email: Optional[str] = None
    name: Optional[str] = None
    nickname: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    picture: Optional[str] = None
    last_login: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "UserProfile":
        """Build a profile from OpenID-Connect userinfo claims."""
        return cls(
            subject=claims["sub"],
            email=claims.get("email"),
            name=claims.get("name"),
            nickname=claims.get("nickname"),
            given_name=claims.get("given_name"),
            family_name=claims.get("family_name"),
            picture=claims.get("picture"),
        )


__all__ = ["UserProfile"]
