"""Handle successful logins reported by the identity provider."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from authsession.clients.identity_provider import TokenGrant
from authsession.clients.sqlite_store import UserProfileStore
from authsession.models.user import UserProfile
from authsession.services.session_cache import SessionCache

logger = logging.getLogger(__name__)


class AuthEventHandler:
    """Record the user's profile and cache the token pair after login."""

    def __init__(self, profile_store: UserProfileStore, session_cache: SessionCache) -> None:
        self._profiles = profile_store
        self._cache = session_cache

    async def on_authentication_success(
        self, claims: Mapping[str, Any], grant: Optional[TokenGrant]
    ) -> str:
        """Persist the login and return the user's subject identifier.

        ``grant`` may be ``None`` when the provider client has no authorized
        tokens for the user; the session is still cached with empty tokens.
        """
        profile = UserProfile.from_claims(claims)
        created = self._profiles.upsert(profile)
        logger.info(
            "Recorded login for user %s (%s)",
            profile.subject,
            "new" if created else "returning",
        )

        access_token = grant.access_token if grant else None
        refresh_token = grant.refresh_token if grant else None
        await self._cache.save(profile.subject, access_token, refresh_token)
        return profile.subject


__all__ = ["AuthEventHandler"]
